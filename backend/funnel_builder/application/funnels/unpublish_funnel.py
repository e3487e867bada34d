from flask import current_app
from funnel_builder.models.funnel import Funnel
from funnel_builder.domain.lifecycle.funnel import assert_funnel_transition
from funnel_builder.utils.transaction import transactional


def unpublish_funnel(*, funnel: Funnel) -> Funnel:
    """Take a published funnel back to draft. Archived funnels go through restore."""
    with transactional():
        if funnel.status != "published":
            raise ValueError(f"Only published funnels can be unpublished, not {funnel.status}")
        assert_funnel_transition(from_status=funnel.status, to_status="draft")
        funnel.unpublish()

    current_app.logger.info("funnel.unpublish id=%s", funnel.id)
    return funnel
