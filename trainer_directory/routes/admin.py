"""
Administrative back office routes.

Admins moderate listings (tier, verification, soft delete) and operate
the featured placement queues: inspecting them, promoting the head of
a council's queue, cancelling placements and running the expiry sweep
that is normally triggered on a schedule. Every route requires a token
with the ``admin`` role.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt

from .. import db
from ..errors import ForbiddenError, NotFoundError, ValidationError, load_or_raise
from ..models import Business, FeaturedPlacement, Role, Tier
from ..schemas import (
    AdminListingSchema,
    BusinessSchema,
    CancelSchema,
    FeaturedPlacementSchema,
    PromoteSchema,
)
from ..services import (
    cancel_placement,
    expire_placements,
    promote_from_queue,
    queue_statistics,
    soft_delete_business,
)
from ..services.featured_queue_service import queued_placements


admin_bp = Blueprint("admin", __name__)


@admin_bp.before_request
@jwt_required()
def _require_admin():
    if get_jwt().get("role") != Role.ADMIN.value:
        raise ForbiddenError("Forbidden")


def _int_arg(name: str):
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError("Invalid request.", fields={name: ["Not a valid integer."]})


@admin_bp.route("/admin/businesses", methods=["GET"])
def list_businesses() -> tuple[list[dict], int]:
    """List listings, newest first.

    Filters: ``council_id``, ``tier`` and ``include_deleted`` (``true`` to
    include soft-deleted listings).
    """
    query = Business.query
    council_id = _int_arg("council_id")
    if council_id is not None:
        query = query.filter_by(council_id=council_id)
    tier = request.args.get("tier")
    if tier:
        try:
            query = query.filter_by(tier=Tier(tier))
        except ValueError:
            raise ValidationError("Invalid request.", fields={"tier": ["Must be one of: basic, pro."]})
    if request.args.get("include_deleted", "").lower() != "true":
        query = query.filter(Business.deleted_at.is_(None))
    businesses = query.order_by(Business.created_at.desc(), Business.id.desc()).all()
    return BusinessSchema(many=True).dump(businesses), 200


@admin_bp.route("/admin/businesses/<int:business_id>", methods=["PATCH"])
def update_business(business_id: int) -> tuple[dict, int]:
    """Change a listing's ``tier`` and/or ``verified`` flag."""
    business = Business.query.filter_by(id=business_id, deleted_at=None).first()
    if not business:
        raise NotFoundError("Business not found.")
    data = load_or_raise(AdminListingSchema(), request.get_json() or {})
    if "tier" in data:
        business.tier = data["tier"]
    if "verified" in data:
        business.verified = data["verified"]
    db.session.commit()
    return BusinessSchema().dump(business), 200


@admin_bp.route("/admin/businesses/<int:business_id>", methods=["DELETE"])
def delete_business(business_id: int) -> tuple[dict, int]:
    """Soft delete a listing."""
    business = Business.query.filter_by(id=business_id, deleted_at=None).first()
    if not business:
        raise NotFoundError("Business not found.")
    soft_delete_business(business, reason="Listing removed by admin")
    db.session.commit()
    return {"message": "Business deleted."}, 200


@admin_bp.route("/admin/featured/queue", methods=["GET"])
def featured_queue() -> tuple[list[dict], int]:
    """Queued placements of a council in queue order."""
    council_id = _int_arg("council_id")
    if council_id is None:
        raise ValidationError("Invalid request.", fields={"council_id": ["Missing data for required field."]})
    return FeaturedPlacementSchema(many=True).dump(queued_placements(council_id)), 200


@admin_bp.route("/admin/featured/stats", methods=["GET"])
def featured_stats() -> tuple[dict, int]:
    return queue_statistics(_int_arg("council_id")), 200


@admin_bp.route("/admin/featured/promote", methods=["POST"])
def promote() -> tuple[dict, int]:
    """Activate the head of a council's queue."""
    data = load_or_raise(PromoteSchema(), request.get_json() or {})
    placement = promote_from_queue(data["council_id"])
    if placement is None:
        raise NotFoundError("No queued placements for this council.")
    db.session.commit()
    return FeaturedPlacementSchema().dump(placement), 200


@admin_bp.route("/admin/featured/<int:placement_id>/cancel", methods=["POST"])
def cancel(placement_id: int) -> tuple[dict, int]:
    placement = db.session.get(FeaturedPlacement, placement_id)
    if placement is None:
        raise NotFoundError("Featured placement not found.")
    data = load_or_raise(CancelSchema(), request.get_json() or {})
    cancel_placement(placement, data["reason"])
    db.session.commit()
    return FeaturedPlacementSchema().dump(placement), 200


@admin_bp.route("/admin/featured/expire", methods=["POST"])
def expire() -> tuple[dict, int]:
    """Run the featured expiry sweep now."""
    result = expire_placements()
    db.session.commit()
    return result, 200
