# funnel_builder/api/v1/funnels.py
from flask import g, request, jsonify
from sqlalchemy import func
from funnel_builder.application.funnels.archive_funnel import archive_funnel, restore_funnel
from funnel_builder.application.funnels.autosave_funnel import autosave_funnel
from funnel_builder.application.funnels.create_funnel import create_funnel
from funnel_builder.application.funnels.delete_funnel import delete_funnel
from funnel_builder.application.funnels.publish_funnel import publish_funnel
from funnel_builder.application.funnels.track_funnel import record_conversion, record_view
from funnel_builder.application.funnels.unpublish_funnel import unpublish_funnel
from funnel_builder.application.funnels.update_funnel import update_funnel
from funnel_builder.domain.document import build_funnel
from funnel_builder.domain.invariants.structure import audit_document
from funnel_builder.domain.rules import VALIDATION_RULES, get_suggested_blocks, get_validation_summary
from funnel_builder.extensions import db
from funnel_builder.models.funnel import Funnel
from funnel_builder.normalizers.funnel import (
    normalize_funnel,
    normalize_funnel_summary,
    normalize_stats,
)
from funnel_builder.utils.decorators import funnel_access, user_required
from funnel_builder.utils.optimistic_lock import enforce_optimistic_lock
from . import v1_bp # import the versioned blueprint


def _body():
    return request.get_json(silent=True) or {}


# ------------------------
# Funnels
# ------------------------

@v1_bp.route("/funnels", methods=["GET"])
@user_required
def list_funnels():
    user = g.current_user

    funnels = (
        Funnel.query
        .filter_by(user_id=user.id)
        .order_by(Funnel.updated_at.desc())
        .all()
    )

    total, views, conversions, avg_rate = db.session.query(
        func.count(Funnel.id),
        func.coalesce(func.sum(Funnel.views), 0),
        func.coalesce(func.sum(Funnel.conversions), 0),
        func.coalesce(func.avg(Funnel.conversion_rate), 0),
    ).filter(Funnel.user_id == user.id).one()

    return jsonify({
        "funnels": [normalize_funnel_summary(f) for f in funnels],
        "stats": normalize_stats(total, views, conversions, avg_rate),
    }), 200


@v1_bp.route("/funnels", methods=["POST"])
@user_required
def store_funnel():
    funnel = create_funnel(user_id=g.current_user.id, data=_body())

    return jsonify({
        "id": funnel.id,
        "slug": funnel.slug,
        "message": "Funnel created successfully"
    }), 201


@v1_bp.route("/funnels/<int:funnel_id>", methods=["GET"])
@user_required
@funnel_access("view")
def show_funnel(funnel_id):
    funnel = record_view(funnel=g.funnel)
    return jsonify(normalize_funnel(funnel)), 200


@v1_bp.route("/funnels/<int:funnel_id>/edit", methods=["GET"])
@user_required
@funnel_access("update")
def edit_funnel(funnel_id):
    # Same document shape the editor session loads
    document = build_funnel(g.funnel)
    document["slug"] = g.funnel.slug
    document["updated_at"] = g.funnel.updated_at.isoformat() if g.funnel.updated_at else None

    return jsonify({"funnel": document}), 200


@v1_bp.route("/funnels/<int:funnel_id>", methods=["PUT", "PATCH"])
@user_required
@funnel_access("update")
def update_funnel_route(funnel_id):
    # -----------------------
    # Optimistic Locking Check
    # -----------------------
    enforce_optimistic_lock(g.funnel)

    funnel = update_funnel(funnel=g.funnel, data=_body())
    return jsonify(normalize_funnel(funnel)), 200


@v1_bp.route("/funnels/<int:funnel_id>", methods=["DELETE"])
@user_required
@funnel_access("delete")
def delete_funnel_route(funnel_id):
    delete_funnel(funnel=g.funnel)
    return jsonify({"message": "Funnel deleted successfully"}), 200


# ------------------------
# Lifecycle
# ------------------------

@v1_bp.route("/funnels/<int:funnel_id>/publish", methods=["POST"])
@user_required
@funnel_access("update")
def publish_funnel_route(funnel_id):
    result = publish_funnel(funnel=g.funnel)
    return jsonify({"message": "Funnel published successfully", **result}), 200


@v1_bp.route("/funnels/<int:funnel_id>/unpublish", methods=["POST"])
@user_required
@funnel_access("update")
def unpublish_funnel_route(funnel_id):
    funnel = unpublish_funnel(funnel=g.funnel)
    return jsonify({
        "message": "Funnel unpublished successfully",
        "status": funnel.status,
    }), 200


@v1_bp.route("/funnels/<int:funnel_id>/archive", methods=["POST"])
@user_required
@funnel_access("update")
def archive_funnel_route(funnel_id):
    funnel = archive_funnel(funnel=g.funnel)
    return jsonify({"message": "Funnel archived", "status": funnel.status}), 200


@v1_bp.route("/funnels/<int:funnel_id>/restore", methods=["POST"])
@user_required
@funnel_access("update")
def restore_funnel_route(funnel_id):
    funnel = restore_funnel(funnel=g.funnel)
    return jsonify({"message": "Funnel restored", "status": funnel.status}), 200


# ------------------------
# Editor support
# ------------------------

@v1_bp.route("/funnels/<int:funnel_id>/autosave", methods=["POST"])
@user_required
@funnel_access("update")
def autosave_funnel_route(funnel_id):
    enforce_optimistic_lock(g.funnel)

    funnel = autosave_funnel(funnel=g.funnel, content=_body().get("content"))
    return jsonify({
        "message": "Funnel autosaved",
        "updated_at": funnel.updated_at.isoformat() if funnel.updated_at else None,
    }), 200


@v1_bp.route("/funnels/<int:funnel_id>/validate", methods=["GET"])
@user_required
@funnel_access("view")
def validate_funnel(funnel_id):
    report = audit_document(build_funnel(g.funnel))
    return jsonify({
        "is_valid": report.is_valid,
        "errors": report.errors,
        "warnings": report.warnings,
    }), 200


@v1_bp.route("/funnels/<int:funnel_id>/conversions", methods=["POST"])
@user_required
@funnel_access("update")
def record_conversion_route(funnel_id):
    funnel = record_conversion(funnel=g.funnel)
    return jsonify(normalize_funnel_summary(funnel)), 200


@v1_bp.route("/blocks/rules", methods=["GET"])
@user_required
def block_rules():
    """Rule table and suggestions for the block library."""
    return jsonify({
        parent: {
            **get_validation_summary(parent),
            "suggestions": [s._asdict() for s in get_suggested_blocks(parent)],
        }
        for parent in VALIDATION_RULES
    }), 200
