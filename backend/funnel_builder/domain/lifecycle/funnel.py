from typing import Set

# Explicit allowed state transitions
ALLOWED_FUNNEL_TRANSITIONS: dict[str, Set[str]] = {
    "draft": {"published", "archived"},
    "published": {"draft", "archived"},
    "archived": {"draft"},  # archived funnels must be restored before publishing
}


def assert_funnel_transition(*, from_status: str, to_status: str) -> None:
    """
    Guards funnel lifecycle transitions.
    Single source of truth for status changes.
    """
    allowed = ALLOWED_FUNNEL_TRANSITIONS.get(from_status, set())

    if to_status not in allowed:
        raise ValueError(
            f"Illegal funnel transition: {from_status} → {to_status}"
        )
