# funnel_builder/application/funnels/publish_funnel.py
from typing import Any, Dict
from flask import current_app
from funnel_builder.models.funnel import Funnel
from funnel_builder.domain.document import build_funnel
from funnel_builder.domain.invariants.funnel import assert_funnel
from funnel_builder.domain.lifecycle.funnel import assert_funnel_transition
from funnel_builder.utils.transaction import transactional


def publish_funnel(*, funnel: Funnel) -> Dict[str, Any]:
    """
    Publishes a funnel.

    Responsibilities:
    - transactional boundary
    - lifecycle enforcement
    - publish invariants (non-empty, structurally valid content)
    - keeps status and is_published in step
    """
    with transactional():
        # 1️⃣ Lifecycle transition enforcement
        assert_funnel_transition(from_status=funnel.status, to_status="published")

        # 2️⃣ Enforce publish-specific invariants before anything changes
        assert_funnel(build_funnel(funnel), publish=True)

        # 3️⃣ Apply state change
        funnel.publish()

    current_app.logger.info("funnel.publish id=%s", funnel.id)

    return {
        "funnel_id": funnel.id,
        "status": funnel.status,
        "published_at": funnel.published_at.isoformat() if funnel.published_at else None,
    }
