# funnel_builder/domain/rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, NamedTuple, Optional, Sequence

from .blocks import BLOCK_TYPES


@dataclass(frozen=True)
class ValidationRule:
    parent: str
    allowed_children: frozenset[str]
    description: str
    min_children: Optional[int] = None
    max_children: Optional[int] = None


class ChildVerdict(NamedTuple):
    allowed: bool
    reason: Optional[str] = None


class MinChildrenVerdict(NamedTuple):
    valid: bool
    reason: Optional[str] = None


class BlockSuggestion(NamedTuple):
    type: str
    priority: Literal["high", "medium", "low"]
    reason: str


def _rule(parent, allowed, description, *, min_children=None, max_children=None):
    return ValidationRule(
        parent=parent,
        allowed_children=frozenset(allowed),
        description=description,
        min_children=min_children,
        max_children=max_children,
    )


# Which block types each parent may directly contain.
# "section" and "column" are pseudo-parents; sections hold columns only.
VALIDATION_RULES: Dict[str, ValidationRule] = {
    rule.parent: rule
    for rule in (
        _rule("section", (), "Sections can only contain columns"),
        _rule(
            "column",
            BLOCK_TYPES,
            "Columns can contain most content blocks and layout containers",
        ),
        _rule(
            "container",
            ("text", "image", "button", "spacer", "social", "video", "audio"),
            "Containers can hold basic content blocks with a limit of 10 items",
            max_children=10,
        ),
        _rule(
            "grid",
            ("text", "image", "button", "ecommerce", "team", "testimonial"),
            "Grids are best for displaying structured content like products or team members",
            max_children=12,
        ),
        _rule(
            "tabs",
            ("text", "image", "video", "chart", "form", "code"),
            "Tabs can contain informational content with 1-8 tab panels",
            min_children=1,
            max_children=8,
        ),
        _rule(
            "accordion",
            ("text", "image", "video", "form"),
            "Accordions work well with collapsible content sections",
            min_children=1,
            max_children=10,
        ),
        _rule(
            "form",
            ("text", "button"),
            "Forms can contain explanatory text and one submit button",
            max_children=1,
        ),
        _rule(
            "team",
            ("text", "social"),
            "Team blocks can include additional text and social links",
            max_children=5,
        ),
        _rule(
            "testimonial",
            ("text", "social"),
            "Testimonials can include additional quotes and social proof",
            max_children=3,
        ),
        _rule(
            "calendar",
            ("text", "button"),
            "Calendars can have instructional text and action buttons",
            max_children=2,
        ),
        _rule(
            "chart",
            ("text",),
            "Charts can include a caption or description",
            max_children=1,
        ),
        _rule(
            "ecommerce",
            ("text", "button", "image"),
            "Product blocks can include additional images, descriptions, and action buttons",
            max_children=3,
        ),
    )
}

SUGGESTED_BLOCKS: Dict[str, List[BlockSuggestion]] = {
    "column": [
        BlockSuggestion("text", "high", "Most common content type"),
        BlockSuggestion("image", "high", "Visual content engages users"),
        BlockSuggestion("button", "medium", "Call-to-action elements"),
    ],
    "container": [
        BlockSuggestion("text", "high", "Perfect for grouped content"),
        BlockSuggestion("button", "medium", "Action buttons work well in containers"),
    ],
    "grid": [
        BlockSuggestion("ecommerce", "high", "Products display beautifully in grids"),
        BlockSuggestion("team", "high", "Team members work well in grid layout"),
        BlockSuggestion("testimonial", "medium", "Testimonials can be showcased in grids"),
    ],
    "tabs": [
        BlockSuggestion("text", "high", "Text content works well in tabs"),
        BlockSuggestion("chart", "medium", "Data visualization for different tab views"),
        BlockSuggestion("form", "medium", "Different forms for different purposes"),
    ],
    "accordion": [
        BlockSuggestion("text", "high", "Perfect for FAQ content"),
        BlockSuggestion("form", "medium", "Progressive forms in collapsible sections"),
    ],
}


def get_rule(parent_type: str) -> Optional[ValidationRule]:
    return VALIDATION_RULES.get(parent_type)


def get_allowed_children(parent_type: str) -> frozenset[str]:
    rule = get_rule(parent_type)
    return rule.allowed_children if rule else frozenset()


def can_add_child(
    parent_type: str,
    child_type: str,
    current_child_types: Sequence[str] = (),
) -> ChildVerdict:
    """
    Decide whether a block of `child_type` may be added under `parent_type`
    given the types of the children the parent already holds.

    Never raises; callers refuse the edit and surface `reason` on rejection.
    """
    rule = get_rule(parent_type)

    if rule is None:
        return ChildVerdict(
            False, f"No validation rule found for parent type: {parent_type}"
        )

    if child_type not in rule.allowed_children:
        return ChildVerdict(
            False,
            f"{child_type} blocks are not allowed in {parent_type}. {rule.description}",
        )

    # Forms keep a single submit button even when the cap would allow more.
    if parent_type == "form" and child_type == "button" and "button" in current_child_types:
        return ChildVerdict(False, "Forms can only have one button")

    if rule.max_children is not None and len(current_child_types) >= rule.max_children:
        return ChildVerdict(
            False, f"Maximum {rule.max_children} children allowed in {parent_type}"
        )

    return ChildVerdict(True)


def validate_min_children(
    parent_type: str, current_child_types: Sequence[str]
) -> MinChildrenVerdict:
    """Advisory check; an unmet minimum never blocks an edit."""
    rule = get_rule(parent_type)

    if rule is None or not rule.min_children:
        return MinChildrenVerdict(True)

    if len(current_child_types) < rule.min_children:
        return MinChildrenVerdict(
            False, f"{parent_type} requires at least {rule.min_children} children"
        )

    return MinChildrenVerdict(True)


def get_validation_summary(parent_type: str) -> Optional[Dict[str, object]]:
    rule = get_rule(parent_type)
    if rule is None:
        return None

    return {
        "allowed_children": sorted(rule.allowed_children),
        "max_children": rule.max_children,
        "min_children": rule.min_children,
        "description": rule.description,
    }


def get_suggested_blocks(parent_type: str) -> List[BlockSuggestion]:
    return list(SUGGESTED_BLOCKS.get(parent_type, []))
