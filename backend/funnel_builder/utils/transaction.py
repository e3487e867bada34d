# funnel_builder/utils/transaction.py
from contextlib import contextmanager
from flask import current_app
from funnel_builder.extensions import db

@contextmanager
def transactional():
    """
    Commit the session when the block finishes, roll back and re-raise if
    it fails. Application services wrap every write in one of these.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.debug("Transaction rolled back: %r", exc)
        raise
