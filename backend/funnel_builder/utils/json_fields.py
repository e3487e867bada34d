# funnel_builder/utils/json_fields.py
import json
from funnel_builder.domain.document import migrate_legacy_content, normalize_sections
from funnel_builder.domain.invariants.exceptions import InvariantViolation


def _decode(value, field):
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value) if value.strip() else None
        except ValueError as exc:
            raise InvariantViolation(f"Funnel {field} must be valid JSON.") from exc
    return value


def parse_content(value):
    """
    Accept funnel content as a JSON string or an object.
    Legacy flat block lists are migrated to sections. None means "not sent".
    """
    value = _decode(value, "content")
    if value is None:
        return None

    if isinstance(value, list):
        return migrate_legacy_content(value)

    if isinstance(value, dict) and isinstance(value.get("sections"), list):
        return {"sections": normalize_sections(value["sections"], strict=True)}

    raise InvariantViolation("Funnel content must be an object with a sections list.")


def parse_settings(value):
    value = _decode(value, "settings")
    if value is None:
        return None

    if not isinstance(value, dict):
        raise InvariantViolation("Funnel settings must be an object.")

    return value
