# funnel_builder/domain/document.py
"""
Funnel documents: defaults, loading persisted content, and serialization.

Persisted content is always `{"sections": [...]}`. Older funnels stored a flat
list of absolutely positioned blocks; those are migrated into the section
tree on load so the rest of the code only ever sees one shape.
"""
from __future__ import annotations

import json
import logging
from copy import deepcopy
from typing import Any, Dict, List, Literal, Optional, TypedDict, Union

from .blocks import DEFAULT_BLOCK_SETTINGS, Block, is_block_type
from .invariants.exceptions import InvariantViolation
from .layout import Column, Section, create_section

logger = logging.getLogger(__name__)

FunnelStatus = Literal["draft", "published", "archived"]
FUNNEL_STATUSES = ("draft", "published", "archived")


class FunnelContent(TypedDict):
    sections: List[Section]


class FunnelSettings(TypedDict, total=False):
    backgroundColor: str
    maxWidth: str
    fontFamily: str


class Funnel(TypedDict, total=False):
    id: Any
    name: str
    description: str
    content: FunnelContent
    settings: FunnelSettings
    status: FunnelStatus
    is_published: bool


DEFAULT_FUNNEL_SETTINGS: FunnelSettings = {
    "backgroundColor": "#ffffff",
    "maxWidth": "1200px",
    "fontFamily": "Inter, sans-serif",
}


def empty_content() -> FunnelContent:
    return {"sections": []}


def default_funnel() -> Funnel:
    return {
        "name": "Untitled Funnel",
        "description": "",
        "content": empty_content(),
        "settings": dict(DEFAULT_FUNNEL_SETTINGS),  # type: ignore[typeddict-item]
        "status": "draft",
        "is_published": False,
    }


def _is_legacy_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, dict) and "type" in item for item in value
    )


def _position_key(block: Dict[str, Any]):
    position = block.get("position") or {}
    try:
        return float(position.get("y") or 0), float(position.get("x") or 0)
    except (TypeError, ValueError, AttributeError):
        return 0.0, 0.0


def migrate_legacy_content(blocks: List[Dict[str, Any]]) -> FunnelContent:
    """
    Convert a legacy flat block list into the section tree.

    All blocks land in one full-width section, ordered top-to-bottom then
    left-to-right by their old canvas position. Unknown block types are
    dropped.
    """
    if not blocks:
        return empty_content()

    converted: List[Block] = []
    for raw in sorted(blocks, key=_position_key):
        if not is_block_type(raw.get("type")):
            logger.warning("Dropping legacy block with unknown type %r", raw.get("type"))
            continue

        block: Block = {
            "id": str(raw.get("id") or f"block-legacy-{len(converted) + 1}"),
            "type": raw["type"],
            "content": deepcopy(raw.get("content") or {}),
            "settings": {**DEFAULT_BLOCK_SETTINGS, **(raw.get("settings") or {})},  # type: ignore[typeddict-item]
        }
        converted.append(block)

    section = create_section("single")
    section["columns"][0]["blocks"] = converted

    return {"sections": [section]}


# -------------------------------------------------
# Shape checks
# -------------------------------------------------
def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class _Shape:
    """
    Walks a sections list and keeps only well-formed nodes.

    In strict mode the first malformed node raises InvariantViolation;
    otherwise it is logged and dropped.
    """

    def __init__(self, strict: bool):
        self.strict = strict

    def reject(self, where: str, problem: str) -> None:
        message = f"{where}: {problem}"
        if self.strict:
            raise InvariantViolation(f"Malformed funnel content. {message}")
        logger.warning("Dropping malformed content node. %s", message)

    def block(self, raw: Any, where: str) -> Optional[Block]:
        if not isinstance(raw, dict):
            self.reject(where, "block must be an object")
            return None
        if not raw.get("id"):
            self.reject(where, "block is missing an id")
            return None
        if not is_block_type(raw.get("type")):
            self.reject(where, f"unknown block type {raw.get('type')!r}")
            return None

        block: Block = {
            **raw,
            "content": _as_dict(raw.get("content")),
            "settings": _as_dict(raw.get("settings")),
        }  # type: ignore[typeddict-item]

        if "children" in raw:
            children = raw["children"]
            if not isinstance(children, list):
                self.reject(where, "block children must be a list")
                return None
            block["children"] = self.blocks(children, f"{where}, block {raw['id']}")

        return block

    def blocks(self, raw: List[Any], where: str) -> List[Block]:
        kept = (self.block(item, where) for item in raw)
        return [block for block in kept if block is not None]

    def column(self, raw: Any, where: str) -> Optional[Column]:
        if not isinstance(raw, dict) or not raw.get("id"):
            self.reject(where, "column must be an object with an id")
            return None
        if not isinstance(raw.get("blocks"), list):
            self.reject(where, "column blocks must be a list")
            return None
        width = raw.get("width", 100)
        if isinstance(width, bool) or not isinstance(width, (int, float)):
            self.reject(where, "column width must be a number")
            return None
        return {
            **raw,
            "blocks": self.blocks(raw["blocks"], where),
            "settings": _as_dict(raw.get("settings")),
        }  # type: ignore[typeddict-item]

    def section(self, raw: Any, where: str) -> Optional[Section]:
        if not isinstance(raw, dict) or not raw.get("id"):
            self.reject(where, "section must be an object with an id")
            return None
        if not isinstance(raw.get("columns"), list):
            self.reject(where, "section columns must be a list")
            return None

        columns = []
        for c_index, item in enumerate(raw["columns"], start=1):
            column = self.column(item, f"{where}, column {c_index}")
            if column is not None:
                columns.append(column)

        return {**raw, "columns": columns, "settings": _as_dict(raw.get("settings"))}  # type: ignore[typeddict-item]


def normalize_sections(raw: List[Any], *, strict: bool = False) -> List[Section]:
    """
    Check that sections, columns and blocks (recursively) are objects with
    the keys the editor relies on. Loading drops malformed nodes; with
    `strict=True` the first one raises InvariantViolation instead.
    """
    shape = _Shape(strict)
    sections = []
    for s_index, item in enumerate(raw, start=1):
        section = shape.section(item, f"Section {s_index}")
        if section is not None:
            sections.append(section)
    return sections


def load_content(raw: Union[str, bytes, Dict[str, Any], List[Any], None]) -> FunnelContent:
    """
    Turn whatever the persistence layer holds into funnel content.

    Accepts a JSON string, an already-decoded dict, or a legacy block list.
    Anything else falls back to an empty document.
    """
    value: Any = raw

    if isinstance(value, (str, bytes)):
        if not value.strip():
            return empty_content()
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Failed to parse funnel content, starting from an empty document")
            return empty_content()

    if value is None:
        return empty_content()

    if isinstance(value, dict) and isinstance(value.get("sections"), list):
        return {"sections": normalize_sections(value["sections"])}

    if _is_legacy_list(value):
        logger.info("Migrating legacy block list with %d blocks", len(value))
        return migrate_legacy_content(value)

    logger.warning("Unrecognised funnel content shape: %s", type(value).__name__)
    return empty_content()


def load_settings(raw: Union[str, bytes, Dict[str, Any], None]) -> FunnelSettings:
    value: Any = raw

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value) if value.strip() else {}
        except ValueError:
            logger.warning("Failed to parse funnel settings, using defaults")
            value = {}

    if not isinstance(value, dict):
        value = {}

    return {**DEFAULT_FUNNEL_SETTINGS, **value}  # type: ignore[typeddict-item]


def serialize_content(funnel: Funnel) -> str:
    return json.dumps(funnel.get("content") or empty_content())


def serialize_settings(funnel: Funnel) -> str:
    return json.dumps(funnel.get("settings") or DEFAULT_FUNNEL_SETTINGS)


def build_funnel(record: Any) -> Funnel:
    """Build an editable document from a persisted funnel row (or any object with the same attributes)."""
    status: Optional[str] = getattr(record, "status", None)

    return {
        "id": getattr(record, "id", None),
        "name": getattr(record, "name", None) or "Untitled Funnel",
        "description": getattr(record, "description", None) or "",
        "content": load_content(getattr(record, "content", None)),
        "settings": load_settings(getattr(record, "settings", None)),
        "status": status if status in FUNNEL_STATUSES else "draft",  # type: ignore[typeddict-item]
        "is_published": bool(getattr(record, "is_published", False)),
    }
