# funnel_builder/application/funnels/update_funnel.py
from typing import Any, Dict
from flask import current_app
from funnel_builder.models.funnel import Funnel
from funnel_builder.domain.document import build_funnel
from funnel_builder.domain.invariants.exceptions import InvariantViolation
from funnel_builder.domain.invariants.funnel import assert_funnel
from funnel_builder.utils.json_fields import parse_content, parse_settings
from funnel_builder.utils.slug import slugify
from funnel_builder.utils.transaction import transactional
from .create_funnel import slug_taken


ALLOWED_UPDATE_FIELDS = ("name", "slug", "description", "content", "settings")


def update_funnel(
    *,
    funnel: Funnel,
    data: Dict[str, Any],
) -> Funnel:
    """
    Update mutable fields on a funnel.

    Design rules:
    - Only whitelisted fields are mutable
    - No silent no-op updates
    - Invariants always revalidated
    - Status only changes through publish / unpublish / archive / restore
    """
    incoming: Dict[str, Any] = {}

    if "name" in data:
        incoming["name"] = (data["name"] or "").strip()
    if "description" in data:
        incoming["description"] = data["description"] or ""
    if "slug" in data:
        incoming["slug"] = slugify(data["slug"] or "") or slugify(incoming.get("name", funnel.name))
    if data.get("content") is not None:
        incoming["content"] = parse_content(data["content"])
    if data.get("settings") is not None:
        incoming["settings"] = {**(funnel.settings or {}), **parse_settings(data["settings"])}

    if not incoming:
        raise InvariantViolation("No valid fields provided for update.")

    changed_fields: list[str] = []

    with transactional():
        for field in ALLOWED_UPDATE_FIELDS:
            if field in incoming and getattr(funnel, field) != incoming[field]:
                setattr(funnel, field, incoming[field])
                changed_fields.append(field)

        if "slug" in changed_fields and slug_taken(funnel.user_id, funnel.slug, exclude_id=funnel.id):
            raise ValueError("A funnel with this slug already exists")

        # 🔒 Domain invariant enforcement
        assert_funnel(build_funnel(funnel))

    current_app.logger.info("funnel.update id=%s fields=%s", funnel.id, changed_fields)
    return funnel
