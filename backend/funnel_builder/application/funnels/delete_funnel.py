from flask import current_app
from funnel_builder.extensions import db
from funnel_builder.models.funnel import Funnel
from funnel_builder.utils.transaction import transactional


def delete_funnel(*, funnel: Funnel) -> None:
    """Hard delete; funnels have no trash."""
    funnel_id = funnel.id

    with transactional():
        db.session.delete(funnel)

    current_app.logger.info("funnel.delete id=%s", funnel_id)
