# funnel_builder/application/funnels/create_funnel.py
from typing import Any, Dict
from flask import current_app
from sqlalchemy.exc import IntegrityError
from funnel_builder.extensions import db
from funnel_builder.models.funnel import Funnel
from funnel_builder.domain.document import DEFAULT_FUNNEL_SETTINGS, build_funnel, empty_content
from funnel_builder.domain.invariants.funnel import assert_funnel
from funnel_builder.utils.json_fields import parse_content, parse_settings
from funnel_builder.utils.slug import slugify, unique_slug
from funnel_builder.utils.transaction import transactional


def slug_taken(user_id: int, slug: str, exclude_id: int | None = None) -> bool:
    query = Funnel.query.filter_by(user_id=user_id, slug=slug)
    if exclude_id is not None:
        query = query.filter(Funnel.id != exclude_id)
    return query.first() is not None


def create_funnel(
    *,
    user_id: int,
    data: Dict[str, Any],
) -> Funnel:
    """
    Create a new funnel in DRAFT state.

    Edge cases handled:
    - Missing or oversized name / description
    - Content and settings sent as JSON strings
    - Slug derived from the name, suffixed until unique for the owner
    - Explicit slug already used by the owner
    """
    funnel = Funnel()
    funnel.user_id = user_id
    funnel.name = (data.get("name") or "").strip()
    funnel.description = data.get("description") or ""
    funnel.content = parse_content(data.get("content")) or empty_content()
    funnel.settings = {**DEFAULT_FUNNEL_SETTINGS, **(parse_settings(data.get("settings")) or {})}
    funnel.status = "draft"
    funnel.is_published = False
    funnel.views = 0
    funnel.conversions = 0
    funnel.conversion_rate = 0

    # 🔒 Domain invariants (single source of truth)
    assert_funnel(build_funnel(funnel))

    requested_slug = slugify(data.get("slug") or "")
    if requested_slug:
        if slug_taken(user_id, requested_slug):
            raise ValueError("A funnel with this slug already exists")
        funnel.slug = requested_slug
    else:
        funnel.slug = unique_slug(
            slugify(funnel.name),
            lambda candidate: slug_taken(user_id, candidate),
        )

    try:
        with transactional():
            db.session.add(funnel)
    except IntegrityError as exc:
        # Unique (user_id, slug) lost a race with another request
        raise ValueError("A funnel with this slug already exists") from exc

    current_app.logger.info("funnel.create id=%s user=%s slug=%s", funnel.id, user_id, funnel.slug)
    return funnel
