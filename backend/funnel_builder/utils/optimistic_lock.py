# funnel_builder/utils/optimistic_lock.py
from flask import request, abort
from datetime import timezone
from dateutil.parser import parse


def normalize_ts(ts):
    """
    Ensure datetime is timezone-aware.
    Defaults to UTC if naive.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def enforce_optimistic_lock(funnel):
    """
    Opt-in optimistic locking for funnel writes.

    Clients echo the `updated_at` they last read in If-Unmodified-Since.
    HTTP dates carry whole seconds only, so the server timestamp is compared
    at the precision the client sent. Aborts 400 on an unreadable header and
    409 when the funnel changed in between.
    """
    header = request.headers.get("If-Unmodified-Since")
    if not header:
        return  # last write wins

    try:
        client_ts = normalize_ts(parse(header))
    except (ValueError, OverflowError):
        abort(400, description="Invalid If-Unmodified-Since header")

    if funnel.updated_at is None:
        return

    server_ts = normalize_ts(funnel.updated_at)
    if client_ts.microsecond == 0:
        server_ts = server_ts.replace(microsecond=0)

    if server_ts > client_ts:
        abort(
            409,
            description="Conflict detected. Funnel has been modified."
        )
