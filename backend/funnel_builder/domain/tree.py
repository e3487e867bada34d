# funnel_builder/domain/tree.py
"""
Pure operations over a forest of nested blocks.

Inputs are never mutated. Every function returns a new list for the levels it
changed and shares untouched subtrees; when nothing changes the very same
forest object comes back, so callers can compare by identity.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Collection, Dict, Iterator, List, NamedTuple, Optional

from .blocks import Block, new_id
from .rules import can_add_child

logger = logging.getLogger(__name__)

Forest = List[Block]


class BlockLocation(NamedTuple):
    node: Optional[Block]
    parent: Optional[Block]
    path: List[str]


class DuplicateResult(NamedTuple):
    forest: Forest
    new_block_id: str


def iter_blocks(forest: Forest) -> Iterator[Block]:
    """Depth-first, pre-order walk over every block in the forest."""
    for block in forest:
        yield block
        yield from iter_blocks(block.get("children") or [])


def collect_ids(forest: Forest) -> set[str]:
    return {block["id"] for block in iter_blocks(forest)}


def count_blocks_of_type(forest: Forest, block_type: str) -> int:
    return sum(1 for block in iter_blocks(forest) if block["type"] == block_type)


def has_blocks_of_type(forest: Forest, block_type: str) -> bool:
    return any(block["type"] == block_type for block in iter_blocks(forest))


def child_types(block: Optional[Block], exclude_id: Optional[str] = None) -> List[str]:
    if block is None:
        return []
    return [
        child["type"]
        for child in block.get("children") or []
        if child["id"] != exclude_id
    ]


def find_by_id(forest: Forest, block_id: str) -> BlockLocation:
    """
    Locate a block anywhere in the forest.

    Returns the first match in depth-first order, its immediate parent (None
    for top-level blocks) and the id path from the root down to the block.
    """

    def search(items: Forest, parent: Optional[Block], path: List[str]) -> Optional[BlockLocation]:
        for item in items:
            item_path = [*path, item["id"]]

            if item["id"] == block_id:
                return BlockLocation(item, parent, item_path)

            found = search(item.get("children") or [], item, item_path)
            if found:
                return found

        return None

    return search(forest, None, []) or BlockLocation(None, None, [])


def insert_under_parent(forest: Forest, parent_id: str, new_block: Block) -> Forest:
    """
    Append `new_block` to the children of `parent_id`.

    Does not consult the rule table; callers validate first.
    """
    changed = False
    result: Forest = []

    for block in forest:
        if block["id"] == parent_id:
            block = {**block, "children": [*(block.get("children") or []), new_block]}
            changed = True
        elif block.get("children"):
            children = insert_under_parent(block["children"], parent_id, new_block)
            if children is not block["children"]:
                block = {**block, "children": children}
                changed = True

        result.append(block)

    return result if changed else forest


def update_by_id(forest: Forest, block_id: str, updates: Dict[str, Any]) -> Forest:
    """Shallow-merge `updates` into the matching block; its id never changes."""
    changed = False
    result: Forest = []

    for block in forest:
        if block["id"] == block_id:
            block = {**block, **updates, "id": block["id"]}
            changed = True
        elif block.get("children"):
            children = update_by_id(block["children"], block_id, updates)
            if children is not block["children"]:
                block = {**block, "children": children}
                changed = True

        result.append(block)

    return result if changed else forest


def delete_by_id(forest: Forest, block_id: str) -> Forest:
    """Remove the block and its whole subtree wherever it appears."""
    changed = False
    result: Forest = []

    for block in forest:
        if block["id"] == block_id:
            changed = True
            continue

        if block.get("children"):
            children = delete_by_id(block["children"], block_id)
            if children is not block["children"]:
                block = {**block, "children": children}
                changed = True

        result.append(block)

    return result if changed else forest


def _remove_from_parent(forest: Forest, parent_id: str, block_id: str) -> Forest:
    changed = False
    result: Forest = []

    for block in forest:
        children = block.get("children")

        if block["id"] == parent_id:
            if children and any(child["id"] == block_id for child in children):
                block = {**block, "children": [c for c in children if c["id"] != block_id]}
                changed = True
        elif children:
            updated = _remove_from_parent(children, parent_id, block_id)
            if updated is not children:
                block = {**block, "children": updated}
                changed = True

        result.append(block)

    return result if changed else forest


def move_between_parents(
    forest: Forest,
    block_id: str,
    source_parent_id: Optional[str],
    target_parent_id: str,
) -> Forest:
    """
    Move a block under a new parent container.

    The target's rule is checked against its current children (not counting
    the moved block). A rejected move, a missing block, source or target, or
    a target inside the moved subtree leaves the forest unchanged.
    """
    block, _, _ = find_by_id(forest, block_id)
    if block is None:
        return forest

    target, _, target_path = find_by_id(forest, target_parent_id)
    if target is None:
        return forest

    if block_id in target_path:
        logger.warning("Cannot move %s into its own subtree (%s)", block_id, target_parent_id)
        return forest

    verdict = can_add_child(target["type"], block["type"], child_types(target, exclude_id=block_id))
    if not verdict.allowed:
        logger.warning("Cannot move %s to %s: %s", block["type"], target["type"], verdict.reason)
        return forest

    if source_parent_id is None:
        without_moved = [item for item in forest if item["id"] != block_id]
        if len(without_moved) == len(forest):
            return forest
    else:
        without_moved = _remove_from_parent(forest, source_parent_id, block_id)
        if without_moved is forest:
            return forest

    return insert_under_parent(without_moved, target_parent_id, block)


def clone_with_new_ids(block: Block, taken: Collection[str] | None = None) -> Block:
    """
    Deep-copy a block subtree, giving the clone and every descendant a fresh
    id that collides neither with `taken` nor with the other new ids.
    """
    used = set(taken or ())

    def clone(node: Block) -> Block:
        fresh = new_id("block", used)
        used.add(fresh)

        copy: Block = {
            **node,
            "id": fresh,
            "content": deepcopy(node.get("content") or {}),
            "settings": deepcopy(node.get("settings") or {}),  # type: ignore[typeddict-item]
        }
        if "children" in node:
            copy["children"] = [clone(child) for child in node.get("children") or []]

        return copy

    return clone(block)


def _insert_after(forest: Forest, sibling_id: str, new_block: Block) -> Forest:
    changed = False
    result: Forest = []

    for block in forest:
        if block.get("children"):
            children = block["children"]
            if any(child["id"] == sibling_id for child in children):
                index = next(i for i, child in enumerate(children) if child["id"] == sibling_id)
                block = {
                    **block,
                    "children": [*children[: index + 1], new_block, *children[index + 1 :]],
                }
                changed = True
            else:
                updated = _insert_after(children, sibling_id, new_block)
                if updated is not children:
                    block = {**block, "children": updated}
                    changed = True

        result.append(block)

    return result if changed else forest


def duplicate_block(forest: Forest, block_id: str) -> DuplicateResult:
    """
    Deep-duplicate a block.

    Nested blocks get their copy right after the original among its
    siblings; top-level blocks get theirs appended to the forest. Returns an
    empty id and the unchanged forest when the block does not exist.
    """
    block, parent, _ = find_by_id(forest, block_id)

    if block is None:
        return DuplicateResult(forest, "")

    duplicate = clone_with_new_ids(block, collect_ids(forest))

    if parent is None:
        return DuplicateResult([*forest, duplicate], duplicate["id"])

    return DuplicateResult(_insert_after(forest, block_id, duplicate), duplicate["id"])
