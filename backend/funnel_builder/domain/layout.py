# funnel_builder/domain/layout.py
"""
Section, column and column-scoped block operations.

Sections and columns are not blocks, so they get their own pure functions.
A column's `blocks` list is itself a forest; nested edits inside it are
delegated to the tree engine and the result is routed back through
`replace_column_blocks`. Unknown ids and out-of-range indexes are no-ops.
"""
from __future__ import annotations

from copy import deepcopy
from typing import Any, Callable, Dict, List, Literal, NamedTuple, Optional, TypedDict

from .blocks import Block, new_id
from .tree import Forest, clone_with_new_ids, collect_ids, find_by_id

SectionLayout = Literal[
    "single",
    "two-column",
    "three-column",
    "two-column-66-33",
    "two-column-33-66",
    "four-column",
    "custom",
]

SECTION_LAYOUTS: tuple[str, ...] = (
    "single",
    "two-column",
    "three-column",
    "two-column-66-33",
    "two-column-33-66",
    "four-column",
    "custom",
)

# Column widths (percent) each layout template starts with.
LAYOUT_TEMPLATES: Dict[str, List[float]] = {
    "single": [100],
    "two-column": [50, 50],
    "three-column": [33.33, 33.33, 33.33],
    "two-column-66-33": [66.66, 33.33],
    "two-column-33-66": [33.33, 66.66],
    "four-column": [25, 25, 25, 25],
}


class ColumnSettings(TypedDict):
    padding: str
    backgroundColor: str
    verticalAlign: Literal["top", "middle", "bottom"]


class Column(TypedDict):
    id: str
    type: Literal["column"]
    width: float
    blocks: List[Block]
    settings: ColumnSettings


class SectionSettings(TypedDict, total=False):
    backgroundColor: str
    padding: str
    margin: str
    minHeight: str
    fullWidth: bool
    backgroundImage: str


class Section(TypedDict):
    id: str
    type: Literal["section"]
    layout: str
    columns: List[Column]
    settings: SectionSettings


class BlockAddress(NamedTuple):
    section_id: str
    column_id: str
    block: Block
    parent: Optional[Block]
    index: int


DEFAULT_SECTION_SETTINGS: SectionSettings = {
    "backgroundColor": "#ffffff",
    "padding": "40px 20px",
    "margin": "0",
    "minHeight": "auto",
    "fullWidth": False,
}

DEFAULT_COLUMN_SETTINGS: ColumnSettings = {
    "padding": "16px",
    "backgroundColor": "transparent",
    "verticalAlign": "top",
}


# -------------------------------------------------
# Factories
# -------------------------------------------------
def create_column(width: float = 100, settings: Optional[Dict[str, Any]] = None) -> Column:
    return {
        "id": new_id("column"),
        "type": "column",
        "width": width,
        "blocks": [],
        "settings": {**DEFAULT_COLUMN_SETTINGS, **(settings or {})},  # type: ignore[typeddict-item]
    }


def create_section(layout: str = "single", settings: Optional[Dict[str, Any]] = None) -> Section:
    """
    Build an empty section from a layout template.

    "custom" has no template and starts with a single full-width column.
    """
    if layout not in SECTION_LAYOUTS:
        raise ValueError(f"Unknown section layout: {layout}")

    widths = LAYOUT_TEMPLATES.get(layout, [100])

    return {
        "id": new_id("section"),
        "type": "section",
        "layout": layout,
        "columns": [create_column(width) for width in widths],
        "settings": {**DEFAULT_SECTION_SETTINGS, **(settings or {})},  # type: ignore[typeddict-item]
    }


# -------------------------------------------------
# Lookups
# -------------------------------------------------
def find_section(sections: List[Section], section_id: str) -> Optional[Section]:
    return next((s for s in sections if s["id"] == section_id), None)


def find_column(sections: List[Section], section_id: str, column_id: str) -> Optional[Column]:
    section = find_section(sections, section_id)
    if section is None:
        return None
    return next((c for c in section["columns"] if c["id"] == column_id), None)


def find_column_of(sections: List[Section], column_id: str) -> Optional[Section]:
    return next(
        (s for s in sections if any(c["id"] == column_id for c in s["columns"])),
        None,
    )


def locate_block(sections: List[Section], block_id: str) -> Optional[BlockAddress]:
    """Find a (possibly nested) block and the section/column that hold it."""
    for section in sections:
        for column in section["columns"]:
            block, parent, _ = find_by_id(column["blocks"], block_id)
            if block is None:
                continue

            siblings = (parent.get("children") or []) if parent else column["blocks"]
            index = next(i for i, item in enumerate(siblings) if item["id"] == block_id)
            return BlockAddress(section["id"], column["id"], block, parent, index)

    return None


def all_ids(sections: List[Section]) -> set[str]:
    ids: set[str] = set()
    for section in sections:
        ids.add(section["id"])
        for column in section["columns"]:
            ids.add(column["id"])
            ids |= collect_ids(column["blocks"])
    return ids


# -------------------------------------------------
# Sections
# -------------------------------------------------
def add_section(sections: List[Section], section: Section, index: Optional[int] = None) -> List[Section]:
    if index is None or index >= len(sections):
        return [*sections, section]
    index = max(index, 0)
    return [*sections[:index], section, *sections[index:]]


def update_section(sections: List[Section], section_id: str, updates: Dict[str, Any]) -> List[Section]:
    if find_section(sections, section_id) is None:
        return sections
    return [
        {**s, **updates, "id": s["id"]} if s["id"] == section_id else s  # type: ignore[misc]
        for s in sections
    ]


def delete_section(sections: List[Section], section_id: str) -> List[Section]:
    remaining = [s for s in sections if s["id"] != section_id]
    return remaining if len(remaining) != len(sections) else sections


def _clone_section(section: Section, taken: set[str]) -> Section:
    section_id = new_id("section", taken)
    taken.add(section_id)

    columns: List[Column] = []
    for column in section["columns"]:
        column_id = new_id("column", taken)
        taken.add(column_id)

        blocks: List[Block] = []
        for block in column["blocks"]:
            copy = clone_with_new_ids(block, taken)
            taken |= collect_ids([copy])
            blocks.append(copy)

        columns.append({
            **column,
            "id": column_id,
            "blocks": blocks,
            "settings": deepcopy(column["settings"]),
        })

    return {
        **section,
        "id": section_id,
        "columns": columns,
        "settings": deepcopy(section["settings"]),
    }


def duplicate_section(sections: List[Section], section_id: str) -> tuple[List[Section], str]:
    """
    Deep-clone a section with new ids for it, every column and every nested
    block, placed right after the original. Returns ("", sections) if absent.
    """
    index = next((i for i, s in enumerate(sections) if s["id"] == section_id), None)
    if index is None:
        return sections, ""

    copy = _clone_section(sections[index], all_ids(sections))
    return [*sections[: index + 1], copy, *sections[index + 1 :]], copy["id"]


def _reorder(items: list, from_index: int, to_index: int) -> list:
    if from_index == to_index:
        return items
    if not (0 <= from_index < len(items)) or not (0 <= to_index < len(items)):
        return items

    reordered = list(items)
    moved = reordered.pop(from_index)
    reordered.insert(to_index, moved)
    return reordered


def move_section(sections: List[Section], from_index: int, to_index: int) -> List[Section]:
    return _reorder(sections, from_index, to_index)


# -------------------------------------------------
# Columns
# -------------------------------------------------
def _map_column(
    sections: List[Section],
    section_id: str,
    column_id: str,
    fn: Callable[[Column], Column],
) -> List[Section]:
    column = find_column(sections, section_id, column_id)
    if column is None:
        return sections

    updated = fn(column)
    if updated is column:
        return sections

    return [
        {**s, "columns": [updated if c["id"] == column_id else c for c in s["columns"]]}
        if s["id"] == section_id
        else s
        for s in sections
    ]


def update_column(
    sections: List[Section], section_id: str, column_id: str, updates: Dict[str, Any]
) -> List[Section]:
    return _map_column(
        sections,
        section_id,
        column_id,
        lambda column: {**column, **updates, "id": column["id"]},  # type: ignore[misc]
    )


def replace_column_blocks(
    sections: List[Section], section_id: str, column_id: str, blocks: Forest
) -> List[Section]:
    return _map_column(
        sections,
        section_id,
        column_id,
        lambda column: column if column["blocks"] is blocks else {**column, "blocks": blocks},
    )


# -------------------------------------------------
# Column-scoped blocks
# -------------------------------------------------
def add_block(
    sections: List[Section],
    section_id: str,
    column_id: str,
    block: Block,
    index: Optional[int] = None,
) -> List[Section]:
    def insert(column: Column) -> Column:
        blocks = column["blocks"]
        if index is None or index >= len(blocks):
            return {**column, "blocks": [*blocks, block]}
        at = max(index, 0)
        return {**column, "blocks": [*blocks[:at], block, *blocks[at:]]}

    return _map_column(sections, section_id, column_id, insert)


def update_block(
    sections: List[Section],
    section_id: str,
    column_id: str,
    block_id: str,
    updates: Dict[str, Any],
) -> List[Section]:
    def update(column: Column) -> Column:
        if not any(b["id"] == block_id for b in column["blocks"]):
            return column
        return {
            **column,
            "blocks": [
                {**b, **updates, "id": b["id"]} if b["id"] == block_id else b  # type: ignore[misc]
                for b in column["blocks"]
            ],
        }

    return _map_column(sections, section_id, column_id, update)


def delete_block(
    sections: List[Section], section_id: str, column_id: str, block_id: str
) -> List[Section]:
    def delete(column: Column) -> Column:
        remaining = [b for b in column["blocks"] if b["id"] != block_id]
        if len(remaining) == len(column["blocks"]):
            return column
        return {**column, "blocks": remaining}

    return _map_column(sections, section_id, column_id, delete)


def duplicate_block(
    sections: List[Section], section_id: str, column_id: str, block_id: str
) -> tuple[List[Section], str]:
    """
    Duplicate a top-level block of a column right after the original.

    Every id in the copied subtree is regenerated.
    """
    column = find_column(sections, section_id, column_id)
    if column is None:
        return sections, ""

    index = next((i for i, b in enumerate(column["blocks"]) if b["id"] == block_id), None)
    if index is None:
        return sections, ""

    copy = clone_with_new_ids(column["blocks"][index], all_ids(sections))
    blocks = column["blocks"]

    updated = replace_column_blocks(
        sections,
        section_id,
        column_id,
        [*blocks[: index + 1], copy, *blocks[index + 1 :]],
    )
    return updated, copy["id"]


def move_block(
    sections: List[Section],
    section_id: str,
    column_id: str,
    from_index: int,
    to_index: int,
) -> List[Section]:
    return _map_column(
        sections,
        section_id,
        column_id,
        lambda column: (
            column
            if (reordered := _reorder(column["blocks"], from_index, to_index)) is column["blocks"]
            else {**column, "blocks": reordered}
        ),
    )
