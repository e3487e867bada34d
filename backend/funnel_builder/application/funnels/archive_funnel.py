from flask import current_app
from funnel_builder.models.funnel import Funnel
from funnel_builder.domain.lifecycle.funnel import assert_funnel_transition
from funnel_builder.utils.transaction import transactional


def archive_funnel(*, funnel: Funnel) -> Funnel:
    with transactional():
        assert_funnel_transition(from_status=funnel.status, to_status="archived")
        funnel.status = "archived"
        funnel.is_published = False
        funnel.published_at = None

    current_app.logger.info("funnel.archive id=%s", funnel.id)
    return funnel


def restore_funnel(*, funnel: Funnel) -> Funnel:
    """Archived funnels come back as drafts."""
    with transactional():
        if funnel.status != "archived":
            raise ValueError(f"Only archived funnels can be restored, not {funnel.status}")
        assert_funnel_transition(from_status=funnel.status, to_status="draft")
        funnel.status = "draft"

    current_app.logger.info("funnel.restore id=%s", funnel.id)
    return funnel
