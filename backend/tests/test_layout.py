import pytest

from funnel_builder.domain import layout
from funnel_builder.domain.blocks import create_block
from funnel_builder.domain.tree import collect_ids


def build():
    first = layout.create_section("two-column")
    second = layout.create_section("single")

    container = create_block("container")
    container["children"] = [create_block("text")]
    first["columns"][0]["blocks"] = [create_block("text"), container]
    return [first, second]


@pytest.mark.parametrize("name,widths", [
    ("single", [100]),
    ("two-column", [50, 50]),
    ("three-column", [33.33, 33.33, 33.33]),
    ("two-column-66-33", [66.66, 33.33]),
    ("two-column-33-66", [33.33, 66.66]),
    ("four-column", [25, 25, 25, 25]),
    ("custom", [100]),
])
def test_create_section_from_template(name, widths):
    section = layout.create_section(name)
    assert section["layout"] == name
    assert [c["width"] for c in section["columns"]] == widths
    assert all(c["blocks"] == [] for c in section["columns"])
    assert len({c["id"] for c in section["columns"]}) == len(widths)


def test_unknown_layout():
    with pytest.raises(ValueError):
        layout.create_section("five-column")


def test_add_section_at_index():
    sections = build()
    new = layout.create_section()
    assert layout.add_section(sections, new, 0)[0] is new
    assert layout.add_section(sections, new)[-1] is new
    assert len(sections) == 2


def test_update_and_delete_section():
    sections = build()
    section_id = sections[1]["id"]

    updated = layout.update_section(sections, section_id, {"layout": "custom", "id": "x"})
    assert updated[1]["layout"] == "custom"
    assert updated[1]["id"] == section_id
    assert updated[0] is sections[0]

    assert [s["id"] for s in layout.delete_section(sections, section_id)] == [sections[0]["id"]]
    assert layout.delete_section(sections, "nope") is sections
    assert layout.update_section(sections, "nope", {"layout": "single"}) is sections


def test_duplicate_section_regenerates_all_ids():
    sections = build()
    result, new_id = layout.duplicate_section(sections, sections[0]["id"])

    assert [s["id"] for s in result] == [sections[0]["id"], new_id, sections[1]["id"]]
    original_ids = layout.all_ids([sections[0]])
    clone_ids = layout.all_ids([result[1]])
    assert original_ids.isdisjoint(clone_ids)
    assert len(clone_ids) == len(original_ids)

    # nested blocks were cloned too
    clone_blocks = result[1]["columns"][0]["blocks"]
    assert clone_blocks[1]["children"][0]["type"] == "text"


def test_duplicate_missing_section():
    sections = build()
    assert layout.duplicate_section(sections, "nope") == (sections, "")


def test_move_section_and_bounds():
    sections = build()
    moved = layout.move_section(sections, 0, 1)
    assert [s["id"] for s in moved] == [sections[1]["id"], sections[0]["id"]]
    assert layout.move_section(sections, 0, 5) is sections
    assert layout.move_section(sections, 1, 1) is sections


def test_update_column():
    sections = build()
    section = sections[0]
    column_id = section["columns"][1]["id"]

    result = layout.update_column(sections, section["id"], column_id, {"width": 40})
    assert result[0]["columns"][1]["width"] == 40
    assert result[0]["columns"][0] is section["columns"][0]
    assert layout.update_column(sections, section["id"], "nope", {"width": 1}) is sections


def test_column_block_operations():
    sections = build()
    section_id = sections[0]["id"]
    column_id = sections[0]["columns"][0]["id"]
    blocks = sections[0]["columns"][0]["blocks"]

    button = create_block("button")
    added = layout.add_block(sections, section_id, column_id, button, 0)
    assert layout.find_column(added, section_id, column_id)["blocks"][0] is button

    updated = layout.update_block(sections, section_id, column_id, blocks[0]["id"], {"content": {"text": "Hi"}})
    assert layout.find_column(updated, section_id, column_id)["blocks"][0]["content"] == {"text": "Hi"}

    deleted = layout.delete_block(sections, section_id, column_id, blocks[0]["id"])
    assert [b["id"] for b in layout.find_column(deleted, section_id, column_id)["blocks"]] == [blocks[1]["id"]]

    moved = layout.move_block(sections, section_id, column_id, 0, 1)
    assert [b["id"] for b in layout.find_column(moved, section_id, column_id)["blocks"]] == [
        blocks[1]["id"],
        blocks[0]["id"],
    ]


def test_column_block_operations_are_noops_for_unknown_targets():
    sections = build()
    section_id = sections[0]["id"]
    column_id = sections[0]["columns"][0]["id"]

    assert layout.add_block(sections, "nope", column_id, create_block("text")) is sections
    assert layout.update_block(sections, section_id, column_id, "nope", {}) is sections
    assert layout.delete_block(sections, section_id, column_id, "nope") is sections
    assert layout.move_block(sections, section_id, column_id, 0, 9) is sections
    assert layout.duplicate_block(sections, section_id, column_id, "nope") == (sections, "")


def test_duplicate_column_block_is_deep():
    sections = build()
    section_id = sections[0]["id"]
    column_id = sections[0]["columns"][0]["id"]
    container = sections[0]["columns"][0]["blocks"][1]

    result, new_id = layout.duplicate_block(sections, section_id, column_id, container["id"])
    blocks = layout.find_column(result, section_id, column_id)["blocks"]

    assert [b["id"] for b in blocks][1:] == [container["id"], new_id]
    assert collect_ids([blocks[2]]).isdisjoint(collect_ids([container]))


def test_locate_nested_block():
    sections = build()
    container = sections[0]["columns"][0]["blocks"][1]
    child = container["children"][0]

    address = layout.locate_block(sections, child["id"])
    assert address.section_id == sections[0]["id"]
    assert address.column_id == sections[0]["columns"][0]["id"]
    assert address.parent is container
    assert address.index == 0

    top = layout.locate_block(sections, container["id"])
    assert top.parent is None
    assert top.index == 1

    assert layout.locate_block(sections, "nope") is None
