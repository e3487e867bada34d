# funnel_builder/domain/invariants/structure.py
"""
Structural audit of block trees against the rule table.

Unlike `assert_funnel`, nothing here raises: findings are collected into a
StructureReport so editors can display them next to the offending blocks.
"""
from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional

from funnel_builder.domain.blocks import Block
from funnel_builder.domain.rules import can_add_child, validate_min_children
from funnel_builder.domain.tree import Forest

# Column widths of a section may drift this far from 100 before warning.
WIDTH_TOLERANCE = 1.0


class StructureReport(NamedTuple):
    is_valid: bool
    errors: List[str]
    warnings: List[str]


def _type(node: Any) -> str:
    value = node.get("type") if isinstance(node, dict) else None
    return value if isinstance(value, str) else ""


def _walk(blocks: Forest, parent: Optional[Block], errors: List[str]) -> None:
    for block in blocks:
        if not isinstance(block, dict):
            errors.append(f"Malformed block: {block!r}")
            continue

        if parent is not None:
            verdict = can_add_child(_type(parent), _type(block), [])
            if not verdict.allowed:
                errors.append(
                    f"Invalid child type: {block.get('type')} cannot be a child of "
                    f"{parent.get('type')}. {verdict.reason}"
                )

        children = block.get("children")
        if isinstance(children, list) and children:
            _walk(children, block, errors)


def validate_block_structure(blocks: Forest) -> StructureReport:
    """Check every parent/child pair of a forest against the rule table."""
    errors: List[str] = []
    _walk(blocks, None, errors)
    return StructureReport(not errors, errors, [])


def _min_children_warnings(blocks: Forest, where: str) -> List[str]:
    warnings = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        children = block.get("children")
        if isinstance(children, list):
            verdict = validate_min_children(_type(block), [_type(child) for child in children])
            if not verdict.valid:
                warnings.append(f"{where}: {verdict.reason}")
            warnings.extend(_min_children_warnings(children, where))
    return warnings


def _width(column: Dict[str, Any]) -> float:
    try:
        return float(column.get("width") or 0)
    except (TypeError, ValueError):
        return 0.0


def audit_document(funnel: Dict[str, Any]) -> StructureReport:
    """
    Audit a whole funnel document.

    Errors: top-level column blocks the column rule refuses, nested
    parent/child violations, and nodes that are not objects. Warnings: unmet
    container minimums and section column widths that do not add up to 100.
    """
    errors: List[str] = []
    warnings: List[str] = []

    content = funnel.get("content")
    sections = content.get("sections") if isinstance(content, dict) else None
    if not isinstance(sections, list):
        sections = []

    for s_index, section in enumerate(sections, start=1):
        if not isinstance(section, dict) or not isinstance(section.get("columns"), list):
            errors.append(f"Section {s_index}: malformed section")
            continue

        columns = [column for column in section["columns"] if isinstance(column, dict)]
        if len(columns) != len(section["columns"]):
            errors.append(f"Section {s_index}: malformed column")

        for c_index, column in enumerate(columns, start=1):
            where = f"Section {s_index}, column {c_index}"
            blocks = column.get("blocks")
            if not isinstance(blocks, list):
                errors.append(f"{where}: malformed column")
                continue

            for block in blocks:
                if not isinstance(block, dict):
                    continue
                verdict = can_add_child("column", _type(block), [])
                if not verdict.allowed:
                    errors.append(f"{where}: {verdict.reason}")

            report = validate_block_structure(blocks)
            errors.extend(f"{where}: {error}" for error in report.errors)
            warnings.extend(_min_children_warnings(blocks, where))

        if columns:
            total = sum(_width(column) for column in columns)
            if abs(total - 100) > WIDTH_TOLERANCE:
                warnings.append(
                    f"Section {s_index}: column widths add up to {total:g}%, expected 100%"
                )

    return StructureReport(not errors, errors, warnings)
