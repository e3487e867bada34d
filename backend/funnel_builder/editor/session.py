# funnel_builder/editor/session.py
"""
Editing session for one funnel document.

An EditorSession owns the live document, its undo/redo history, the current
selection and the transient notice shown when an edit is refused. It is built
once per editing session and handed to whatever needs it.

Every public mutating method is one logical user action and records exactly
one history snapshot. Wrap several actions in `batch()` (or
`begin_edit()`/`commit_edit()`) to record them as a single step.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional

from funnel_builder.domain import layout, tree
from funnel_builder.domain.blocks import Block, create_block, is_block_type, new_id
from funnel_builder.domain.document import (
    Funnel,
    default_funnel,
    normalize_sections,
    serialize_content,
    serialize_settings,
)
from funnel_builder.domain.history import DEFAULT_HISTORY_LIMIT, History
from funnel_builder.domain.invariants.structure import StructureReport, audit_document
from funnel_builder.domain.rules import ChildVerdict, can_add_child

logger = logging.getLogger(__name__)

NOTICE_SECONDS = 3
DEVICES = ("desktop", "tablet", "mobile")

Persist = Callable[[Dict[str, Any]], Any]


class Notice(NamedTuple):
    message: str
    expires_at: float


class EditResult(NamedTuple):
    """Outcome of a block edit; `block_id` is set when a block was created."""

    allowed: bool
    reason: Optional[str] = None
    block_id: Optional[str] = None


def _with_content(funnel: Funnel) -> Funnel:
    """Private copy of `funnel` that is guaranteed to hold a sections list."""
    funnel = deepcopy(funnel)
    content = funnel.get("content")
    if not isinstance(content, dict):
        content = {}
    sections = content.get("sections")
    content = {**content, "sections": normalize_sections(sections) if isinstance(sections, list) else []}
    funnel["content"] = content  # type: ignore[typeddict-item]
    return funnel


class EditorSession:
    def __init__(
        self,
        funnel: Optional[Funnel] = None,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self.funnel: Funnel = _with_content(funnel) if funnel is not None else default_funnel()
        self.history: History[Funnel] = History(self.funnel, limit=history_limit)

        self.is_dirty = False
        self.is_saving = False

        self.selected_section_id: Optional[str] = None
        self.selected_column_id: Optional[str] = None
        self.selected_block_id: Optional[str] = None
        self.selected_device = "desktop"
        self.dragged_block_id: Optional[str] = None

        self.notice: Optional[Notice] = None

        self._edit_depth = 0
        self._pending_commit = False

    # -------------------------------------------------
    # Internals
    # -------------------------------------------------
    @property
    def sections(self) -> List[layout.Section]:
        return self.funnel["content"]["sections"]

    def _apply(self, funnel: Funnel) -> bool:
        if funnel is self.funnel:
            return False

        self.funnel = funnel
        self.is_dirty = True

        if self._edit_depth:
            self._pending_commit = True
        else:
            self.history.push(funnel)

        return True

    def _apply_sections(self, sections: List[layout.Section]) -> bool:
        if sections is self.sections:
            return False
        return self._apply({**self.funnel, "content": {**self.funnel["content"], "sections": sections}})

    def _refuse(self, verdict: ChildVerdict) -> EditResult:
        message = verdict.reason or "This change is not allowed"
        logger.info("Edit refused: %s", message)
        self.notice = Notice(message, self._clock() + NOTICE_SECONDS)
        return EditResult(False, message)

    def _column_blocks(self, section_id: str, column_id: str) -> Optional[tree.Forest]:
        column = layout.find_column(self.sections, section_id, column_id)
        return None if column is None else column["blocks"]

    # -------------------------------------------------
    # Batching
    # -------------------------------------------------
    def begin_edit(self) -> None:
        self._edit_depth += 1

    def commit_edit(self) -> None:
        if not self._edit_depth:
            raise RuntimeError("commit_edit() called without begin_edit()")

        self._edit_depth -= 1
        if self._edit_depth == 0 and self._pending_commit:
            self._pending_commit = False
            self.history.push(self.funnel)

    @contextmanager
    def batch(self) -> Iterator["EditorSession"]:
        self.begin_edit()
        try:
            yield self
        finally:
            self.commit_edit()

    # -------------------------------------------------
    # Document
    # -------------------------------------------------
    def set_funnel(self, funnel: Funnel) -> None:
        """Load a document; history restarts from it and it counts as saved."""
        self.funnel = _with_content(funnel)
        self.history.reset(self.funnel)
        self.is_dirty = False
        self._pending_commit = False
        self.clear_selection()

    def update_name(self, name: str) -> bool:
        if name == self.funnel.get("name"):
            return False
        return self._apply({**self.funnel, "name": name})

    def update_description(self, description: str) -> bool:
        if description == self.funnel.get("description"):
            return False
        return self._apply({**self.funnel, "description": description})

    def update_settings(self, settings: Dict[str, Any]) -> bool:
        current = self.funnel.get("settings") or {}
        merged = {**current, **settings}
        if merged == current:
            return False
        return self._apply({**self.funnel, "settings": merged})  # type: ignore[typeddict-item]

    def set_sections(self, sections: List[layout.Section]) -> bool:
        if sections is self.sections:
            return False
        return self._apply_sections(normalize_sections(sections))

    # -------------------------------------------------
    # Sections
    # -------------------------------------------------
    def add_section(self, layout_name: str = "single", index: Optional[int] = None) -> str:
        section = layout.create_section(layout_name)
        self._apply_sections(layout.add_section(self.sections, section, index))
        return section["id"]

    def update_section(self, section_id: str, updates: Dict[str, Any]) -> bool:
        return self._apply_sections(layout.update_section(self.sections, section_id, updates))

    def delete_section(self, section_id: str) -> bool:
        changed = self._apply_sections(layout.delete_section(self.sections, section_id))
        if changed and self.selected_section_id == section_id:
            self.clear_selection()
        return changed

    def duplicate_section(self, section_id: str) -> Optional[str]:
        sections, copy_id = layout.duplicate_section(self.sections, section_id)
        self._apply_sections(sections)
        return copy_id or None

    def move_section(self, from_index: int, to_index: int) -> bool:
        return self._apply_sections(layout.move_section(self.sections, from_index, to_index))

    # -------------------------------------------------
    # Columns
    # -------------------------------------------------
    def update_column(self, section_id: str, column_id: str, updates: Dict[str, Any]) -> bool:
        return self._apply_sections(
            layout.update_column(self.sections, section_id, column_id, updates)
        )

    # -------------------------------------------------
    # Blocks
    # -------------------------------------------------
    def add_block(
        self,
        section_id: str,
        column_id: str,
        block_type: str,
        content: Optional[Dict[str, Any]] = None,
        index: Optional[int] = None,
        parent_id: Optional[str] = None,
    ) -> EditResult:
        """
        Create a block from the library and drop it into a column, or into a
        container of that column when `parent_id` is given (appended; `index`
        only applies at column level). Raises ValueError for an unknown type.
        """
        blocks = self._column_blocks(section_id, column_id)
        if blocks is None:
            return EditResult(False, f"Column {column_id} not found")

        block = create_block(
            block_type, content, block_id=new_id("block", layout.all_ids(self.sections))
        )

        if parent_id is None:
            verdict = can_add_child("column", block_type, [b["type"] for b in blocks])
            if not verdict.allowed:
                return self._refuse(verdict)

            self._apply_sections(
                layout.add_block(self.sections, section_id, column_id, block, index)
            )
            return EditResult(True, block_id=block["id"])

        parent, _, _ = tree.find_by_id(blocks, parent_id)
        if parent is None:
            return EditResult(False, f"Block {parent_id} not found")

        verdict = can_add_child(parent["type"], block_type, tree.child_types(parent))
        if not verdict.allowed:
            return self._refuse(verdict)

        self._apply_sections(
            layout.replace_column_blocks(
                self.sections,
                section_id,
                column_id,
                tree.insert_under_parent(blocks, parent_id, block),
            )
        )
        return EditResult(True, block_id=block["id"])

    def _check_children(self, parent_type: str, children: Any, taken: set) -> ChildVerdict:
        """Rule-check a replacement subtree; `taken` collects ids as it goes."""
        if not isinstance(children, list):
            return ChildVerdict(False, "Block children must be a list")

        accepted: List[str] = []
        for child in children:
            if not isinstance(child, dict) or not is_block_type(child.get("type")):
                return ChildVerdict(False, f"Invalid child block in {parent_type}")
            if not child.get("id") or child["id"] in taken:
                return ChildVerdict(False, f"Duplicate or missing block id: {child.get('id')}")
            taken.add(child["id"])

            verdict = can_add_child(parent_type, child["type"], accepted)
            if not verdict.allowed:
                return verdict
            accepted.append(child["type"])

            if "children" in child:
                verdict = self._check_children(child["type"], child["children"], taken)
                if not verdict.allowed:
                    return verdict

        return ChildVerdict(True)

    def _check_update(
        self, block: Block, parent: Optional[Block], blocks: tree.Forest, updates: Dict[str, Any]
    ) -> ChildVerdict:
        new_type = updates.get("type", block["type"])

        if new_type != block["type"]:
            if not is_block_type(new_type):
                return ChildVerdict(False, f"Unknown block type: {new_type}")

            if parent is None:
                siblings = [b["type"] for b in blocks if b["id"] != block["id"]]
                verdict = can_add_child("column", new_type, siblings)
            else:
                verdict = can_add_child(
                    parent["type"], new_type, tree.child_types(parent, exclude_id=block["id"])
                )
            if not verdict.allowed:
                return verdict

        if "children" in updates:
            taken = layout.all_ids(self.sections) - tree.collect_ids([block])
            taken.add(block["id"])
            return self._check_children(new_type, updates["children"], taken)

        if new_type != block["type"] and block.get("children"):
            return self._check_children(new_type, block["children"], set())

        return ChildVerdict(True)

    def update_block(
        self, section_id: str, column_id: str, block_id: str, updates: Dict[str, Any]
    ) -> EditResult:
        """Merge `updates` into a block; type and children changes go through the rule table."""
        blocks = self._column_blocks(section_id, column_id)
        if blocks is None:
            return EditResult(False, f"Column {column_id} not found")

        block, parent, _ = tree.find_by_id(blocks, block_id)
        if block is None:
            return EditResult(False, f"Block {block_id} not found")

        verdict = self._check_update(block, parent, blocks, updates)
        if not verdict.allowed:
            return self._refuse(verdict)

        self._apply_sections(
            layout.replace_column_blocks(
                self.sections, section_id, column_id, tree.update_by_id(blocks, block_id, updates)
            )
        )
        return EditResult(True, block_id=block_id)

    def delete_block(self, section_id: str, column_id: str, block_id: str) -> bool:
        blocks = self._column_blocks(section_id, column_id)
        if blocks is None:
            return False

        block, _, _ = tree.find_by_id(blocks, block_id)
        if block is None:
            return False

        removed_ids = tree.collect_ids([block])
        changed = self._apply_sections(
            layout.replace_column_blocks(
                self.sections, section_id, column_id, tree.delete_by_id(blocks, block_id)
            )
        )

        if changed and self.selected_block_id in removed_ids:
            self.selected_block_id = None
        if changed and self.dragged_block_id in removed_ids:
            self.dragged_block_id = None

        return changed

    def duplicate_block(self, section_id: str, column_id: str, block_id: str) -> EditResult:
        blocks = self._column_blocks(section_id, column_id)
        if blocks is None:
            return EditResult(False, f"Column {column_id} not found")

        block, parent, _ = tree.find_by_id(blocks, block_id)
        if block is None:
            return EditResult(False, f"Block {block_id} not found")

        if parent is None:
            sections, copy_id = layout.duplicate_block(self.sections, section_id, column_id, block_id)
            self._apply_sections(sections)
            return EditResult(True, block_id=copy_id)

        # The copy lands next to the original, so the parent must have room.
        verdict = can_add_child(parent["type"], block["type"], tree.child_types(parent))
        if not verdict.allowed:
            return self._refuse(verdict)

        forest, copy_id = tree.duplicate_block(blocks, block_id)
        self._apply_sections(
            layout.replace_column_blocks(self.sections, section_id, column_id, forest)
        )
        return EditResult(True, block_id=copy_id)

    def move_block(self, section_id: str, column_id: str, from_index: int, to_index: int) -> bool:
        return self._apply_sections(
            layout.move_block(self.sections, section_id, column_id, from_index, to_index)
        )

    def move_block_to(self, block_id: str, target_parent_id: str) -> EditResult:
        """Move a block under another container of the same column."""
        address = layout.locate_block(self.sections, block_id)
        if address is None:
            return EditResult(False, f"Block {block_id} not found")

        blocks = self._column_blocks(address.section_id, address.column_id)
        target, _, target_path = tree.find_by_id(blocks or [], target_parent_id)
        if target is None:
            return EditResult(False, f"Block {target_parent_id} not found")

        if block_id in target_path:
            return self._refuse(ChildVerdict(False, "A block cannot be moved inside itself"))

        verdict = can_add_child(
            target["type"],
            address.block["type"],
            tree.child_types(target, exclude_id=block_id),
        )
        if not verdict.allowed:
            return self._refuse(verdict)

        source_parent_id = address.parent["id"] if address.parent else None
        moved = tree.move_between_parents(blocks or [], block_id, source_parent_id, target_parent_id)

        changed = self._apply_sections(
            layout.replace_column_blocks(
                self.sections, address.section_id, address.column_id, moved
            )
        )
        return EditResult(changed, None if changed else "Block was not moved", block_id)

    # -------------------------------------------------
    # Selection
    # -------------------------------------------------
    def clear_selection(self) -> None:
        self.selected_section_id = None
        self.selected_column_id = None
        self.selected_block_id = None

    def select_section(self, section_id: Optional[str]) -> None:
        if section_id is not None and layout.find_section(self.sections, section_id) is None:
            return
        self.selected_section_id = section_id
        self.selected_column_id = None
        self.selected_block_id = None

    def select_column(self, column_id: Optional[str]) -> None:
        if column_id is None:
            self.selected_column_id = None
            self.selected_block_id = None
            return

        section = layout.find_column_of(self.sections, column_id)
        if section is None:
            return

        self.selected_section_id = section["id"]
        self.selected_column_id = column_id
        self.selected_block_id = None

    def select_block(self, block_id: Optional[str]) -> None:
        if block_id is None:
            self.selected_block_id = None
            return

        address = layout.locate_block(self.sections, block_id)
        if address is None:
            return

        self.selected_section_id = address.section_id
        self.selected_column_id = address.column_id
        self.selected_block_id = block_id

    @property
    def selected_section(self) -> Optional[layout.Section]:
        if self.selected_section_id is None:
            return None
        return layout.find_section(self.sections, self.selected_section_id)

    @property
    def selected_column(self) -> Optional[layout.Column]:
        if self.selected_section_id is None or self.selected_column_id is None:
            return None
        return layout.find_column(self.sections, self.selected_section_id, self.selected_column_id)

    @property
    def selected_block(self) -> Optional[Block]:
        if self.selected_block_id is None:
            return None
        address = layout.locate_block(self.sections, self.selected_block_id)
        return address.block if address else None

    def select_device(self, device: str) -> None:
        if device not in DEVICES:
            raise ValueError(f"Unknown device: {device}")
        self.selected_device = device

    def set_dragged_block(self, block_id: Optional[str]) -> None:
        self.dragged_block_id = block_id

    # -------------------------------------------------
    # History
    # -------------------------------------------------
    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def _restore(self, snapshot: Optional[Funnel]) -> bool:
        if snapshot is None:
            return False
        self.funnel = snapshot
        self.is_dirty = True
        self.clear_selection()
        return True

    def undo(self) -> bool:
        if self._edit_depth:
            raise RuntimeError("Cannot undo while an edit is open")
        return self._restore(self.history.undo())

    def redo(self) -> bool:
        if self._edit_depth:
            raise RuntimeError("Cannot redo while an edit is open")
        return self._restore(self.history.redo())

    # -------------------------------------------------
    # Notices
    # -------------------------------------------------
    def active_notice(self, now: Optional[float] = None) -> Optional[Notice]:
        if self.notice is None:
            return None

        now = self._clock() if now is None else now
        if now >= self.notice.expires_at:
            self.notice = None
            return None

        return self.notice

    # -------------------------------------------------
    # Queries
    # -------------------------------------------------
    def _all_blocks(self) -> Iterator[Block]:
        for section in self.sections:
            for column in section["columns"]:
                yield from tree.iter_blocks(column["blocks"])

    def get_block_type_count(self, block_type: str) -> int:
        return sum(1 for block in self._all_blocks() if block["type"] == block_type)

    def has_blocks_of_type(self, block_type: str) -> bool:
        return any(block["type"] == block_type for block in self._all_blocks())

    def validate(self) -> StructureReport:
        return audit_document(self.funnel)

    # -------------------------------------------------
    # Persistence
    # -------------------------------------------------
    def payload(self) -> Dict[str, Any]:
        return {
            "name": self.funnel.get("name", ""),
            "description": self.funnel.get("description", ""),
            "content": serialize_content(self.funnel),
            "settings": serialize_settings(self.funnel),
        }

    def mark_clean(self) -> None:
        self.is_dirty = False

    def mark_dirty(self) -> None:
        self.is_dirty = True

    def save(self, persist: Persist) -> bool:
        """
        Hand the document to `persist`. Skipped while another save is in
        flight. On failure the error is logged and the document stays dirty.
        """
        if self.is_saving:
            logger.debug("Save skipped, another save is in progress")
            return False

        snapshot = self.funnel
        self.is_saving = True
        try:
            persist(self.payload())
        except Exception:
            logger.exception("Failed to save funnel %s", self.funnel.get("id"))
            return False
        finally:
            self.is_saving = False

        # Edits made while persisting still need saving.
        if self.funnel is snapshot:
            self.is_dirty = False

        return True
