from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from funnel_builder.extensions import db
from funnel_builder.models.funnel import Funnel
from funnel_builder.models.user import User
from funnel_builder.policies.funnel import FunnelPolicy

def user_required(fn):
    """Require a valid access token for an active user; sets g.current_user."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()

        identity = get_jwt_identity()
        try:
            user = db.session.get(User, int(identity))
        except (TypeError, ValueError):
            user = None

        if not user:
            return jsonify({"error": "Unknown user"}), 401

        if not user.is_active:
            return jsonify({"error": "User account disabled"}), 403

        g.current_user = user
        return fn(*args, **kwargs)
    return wrapper

def funnel_access(ability):
    """
    Load the funnel named by the `funnel_id` route argument into g.funnel
    and check FunnelPolicy for `ability`. Use below user_required.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            funnel = db.session.get(Funnel, kwargs["funnel_id"])
            if not funnel:
                return jsonify({"error": "Funnel not found"}), 404

            if not FunnelPolicy.allows(ability, g.current_user, funnel):
                return jsonify({"error": "Insufficient permissions"}), 403

            g.funnel = funnel
            return fn(*args, **kwargs)
        return wrapper
    return decorator
