from .structure import audit_document
from .exceptions import InvariantViolation

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000


def assert_funnel(funnel, publish=False):
    name = (funnel.get("name") or "").strip()

    if not name:
        raise InvariantViolation("Funnel name is required.")

    if len(name) > MAX_NAME_LENGTH:
        raise InvariantViolation(
            f"Funnel name must be at most {MAX_NAME_LENGTH} characters."
        )

    if len(funnel.get("description") or "") > MAX_DESCRIPTION_LENGTH:
        raise InvariantViolation(
            f"Funnel description must be at most {MAX_DESCRIPTION_LENGTH} characters."
        )

    if not publish:
        return

    sections = (funnel.get("content") or {}).get("sections") or []
    if not sections:
        raise InvariantViolation("Cannot publish funnel without sections.")

    report = audit_document(funnel)
    if not report.is_valid:
        raise InvariantViolation(
            "Cannot publish funnel with invalid structure: " + "; ".join(report.errors)
        )
