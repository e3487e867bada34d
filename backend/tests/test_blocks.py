import pytest

from funnel_builder.domain.blocks import (
    DEFAULT_BLOCK_CONTENT,
    DEFAULT_BLOCK_SETTINGS,
    create_block,
    new_id,
)


def test_create_block_uses_library_defaults():
    block = create_block("text")
    assert block["type"] == "text"
    assert block["content"]["text"] == "Enter your text here"
    assert block["settings"] == DEFAULT_BLOCK_SETTINGS
    assert "children" not in block


def test_create_block_merges_overrides():
    block = create_block("button", {"text": "Buy now"}, {"padding": "0"})
    assert block["content"]["text"] == "Buy now"
    assert block["content"]["url"] == "#"
    assert block["settings"]["padding"] == "0"
    assert block["settings"]["margin"] == DEFAULT_BLOCK_SETTINGS["margin"]


def test_containers_start_with_children():
    for block_type in ("container", "grid", "tabs", "accordion"):
        assert create_block(block_type)["children"] == []


def test_default_content_is_not_shared():
    block = create_block("form")
    block["content"]["fields"].append({"type": "text", "label": "Phone", "required": False})
    assert len(DEFAULT_BLOCK_CONTENT["form"]["fields"]) == 3


def test_unknown_type_raises():
    with pytest.raises(ValueError):
        create_block("carousel")


def test_new_id_shape_and_exclusion():
    block_id = new_id("block")
    prefix, millis, suffix = block_id.split("-")
    assert prefix == "block"
    assert millis.isdigit()
    assert len(suffix) == 9

    taken = {new_id("column") for _ in range(20)}
    assert new_id("column", taken) not in taken
