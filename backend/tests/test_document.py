import json
from types import SimpleNamespace

import pytest

from funnel_builder.domain.blocks import create_block
from funnel_builder.domain.invariants.exceptions import InvariantViolation
from funnel_builder.domain.layout import create_section
from funnel_builder.domain.document import (
    build_funnel,
    default_funnel,
    load_content,
    load_settings,
    migrate_legacy_content,
    normalize_sections,
    serialize_content,
    serialize_settings,
)


def test_default_funnel():
    funnel = default_funnel()
    assert funnel["name"] == "Untitled Funnel"
    assert funnel["content"] == {"sections": []}
    assert funnel["settings"]["maxWidth"] == "1200px"
    assert funnel["status"] == "draft"
    assert funnel["is_published"] is False


def test_load_content_accepts_json_and_dicts():
    content = {"sections": [{"id": "s1", "type": "section", "layout": "single", "columns": [], "settings": {}}]}
    assert load_content(json.dumps(content)) == content
    assert load_content(content) == content


def test_malformed_content_falls_back_to_empty():
    assert load_content("{not json") == {"sections": []}
    assert load_content("") == {"sections": []}
    assert load_content(None) == {"sections": []}
    assert load_content({"blocks": []}) == {"sections": []}
    assert load_content(42) == {"sections": []}


def test_legacy_blocks_are_migrated_in_reading_order():
    legacy = [
        {"id": "b", "type": "image", "content": {"src": "x.png"}, "position": {"x": 300, "y": 10}},
        {"id": "a", "type": "text", "content": {"text": "Hello"}, "position": {"x": 0, "y": 10}},
        {"id": "c", "type": "button", "content": {}, "position": {"x": 0, "y": 200}},
        {"id": "d", "type": "hologram", "content": {}, "position": {"x": 0, "y": 0}},
    ]

    content = load_content(json.dumps(legacy))

    (section,) = content["sections"]
    assert section["layout"] == "single"
    (column,) = section["columns"]
    assert column["width"] == 100
    assert [b["id"] for b in column["blocks"]] == ["a", "b", "c"]
    assert all("position" not in b for b in column["blocks"])
    assert column["blocks"][0]["settings"]["padding"] == "16px"


def test_empty_legacy_list():
    assert migrate_legacy_content([]) == {"sections": []}
    assert load_content([]) == {"sections": []}


def test_load_settings_fills_defaults():
    assert load_settings('{"maxWidth": "960px"}')["maxWidth"] == "960px"
    assert load_settings("oops")["backgroundColor"] == "#ffffff"
    assert load_settings(None)["fontFamily"] == "Inter, sans-serif"


def test_serialization_round_trip():
    funnel = default_funnel()
    assert json.loads(serialize_content(funnel)) == {"sections": []}
    assert json.loads(serialize_settings(funnel)) == funnel["settings"]


def test_build_funnel_from_record():
    record = SimpleNamespace(
        id=7,
        name="Launch",
        description=None,
        content='{"sections": []}',
        settings={"backgroundColor": "#000"},
        status="bogus",
        is_published=0,
    )

    funnel = build_funnel(record)
    assert funnel["id"] == 7
    assert funnel["description"] == ""
    assert funnel["settings"]["backgroundColor"] == "#000"
    assert funnel["settings"]["maxWidth"] == "1200px"
    assert funnel["status"] == "draft"
    assert funnel["is_published"] is False


def section_with(blocks):
    section = create_section("single")
    section["columns"][0]["blocks"] = blocks
    return section


def test_malformed_nodes_are_dropped_on_load():
    container = create_block("container")
    container["children"] = [{"id": "b"}, create_block("text")]
    good = section_with([container, 7])

    content = load_content(json.dumps({"sections": [1, {"id": "s1"}, good]}))

    (section,) = content["sections"]
    assert section["id"] == good["id"]
    (box,) = section["columns"][0]["blocks"]
    assert [child["type"] for child in box["children"]] == ["text"]


def test_section_without_columns_is_dropped():
    assert load_content('{"sections": [{"id": "s1"}]}') == {"sections": []}


def test_non_list_children_drop_the_block():
    container = create_block("container")
    container["children"] = "text"
    content = load_content({"sections": [section_with([container])]})
    assert content["sections"][0]["columns"][0]["blocks"] == []


def test_strict_normalisation_raises():
    with pytest.raises(InvariantViolation, match="Section 1: section must be an object"):
        normalize_sections([1], strict=True)

    container = create_block("container")
    container["children"] = [{"id": "b"}]
    with pytest.raises(InvariantViolation, match="unknown block type None"):
        normalize_sections([section_with([container])], strict=True)

    with pytest.raises(InvariantViolation, match="section columns must be a list"):
        normalize_sections([{"id": "s1"}], strict=True)


def test_well_formed_sections_pass_unchanged():
    container = create_block("container")
    container["children"] = [create_block("text")]
    sections = [section_with([container, create_block("image")])]
    assert normalize_sections(sections, strict=True) == sections
