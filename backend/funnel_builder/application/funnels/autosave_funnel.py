from flask import current_app
from funnel_builder.domain.invariants.exceptions import InvariantViolation
from funnel_builder.models.funnel import Funnel
from funnel_builder.utils.json_fields import parse_content
from funnel_builder.utils.transaction import transactional


def autosave_funnel(*, funnel: Funnel, content) -> Funnel:
    """
    Store the editor's latest content without touching anything else.

    Responsibilities:
    - accept content as a JSON string or object
    - leave status, name and settings alone
    - structure is checked on publish, not here
    """
    parsed = parse_content(content)
    if parsed is None:
        raise InvariantViolation("Autosave requires content.")

    with transactional():
        funnel.content = parsed

    current_app.logger.debug("funnel.autosave id=%s sections=%d", funnel.id, len(parsed["sections"]))
    return funnel
