"""
Trainer self-service portal.

Trainers manage their own listing, claim an unclaimed one and join
their council's featured queue here. Every route requires a bearer
token whose ``role`` claim is ``trainer`` (admins are allowed through as
well); the token identity is stored as the listing's ``owner_id``.
Tokens are issued elsewhere.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from .. import db
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError, load_or_raise
from ..models import Business, Role, Tier
from ..schemas import BusinessSchema, ClaimSchema, FeaturedJoinSchema, FeaturedPlacementSchema, ListingSchema
from ..services import SqlSearchStore, add_to_queue, queue_position, soft_delete_business
from ..services.featured_queue_service import open_placement_for
from ..services.search_service import resolve_suburb
from ..util.sanitization import clean_optional


trainer_bp = Blueprint("trainer", __name__)
logger = logging.getLogger(__name__)


def _is_admin() -> bool:
    return get_jwt().get("role") == Role.ADMIN.value


def _require_trainer() -> None:
    if get_jwt().get("role") not in (Role.TRAINER.value, Role.ADMIN.value):
        raise ForbiddenError("Only trainers can manage listings.")


def _owned_business(business_id: int) -> Business:
    """Return a live business the caller may manage, or raise."""
    business = Business.query.filter_by(id=business_id, deleted_at=None).first()
    if not business:
        raise NotFoundError("Business not found.")
    if not (_is_admin() or business.owner_id == str(get_jwt_identity())):
        raise ForbiddenError("You do not own this business.")
    return business


def _apply_listing_fields(business: Business, data: dict) -> None:
    for field in ("name", "phone", "email", "website", "service_type_primary", "resource_type"):
        if field in data:
            setattr(business, field, data[field])
    for field in ("address", "description"):
        if field in data:
            setattr(business, field, clean_optional(data[field]))
    for field in ("age_specialties", "behaviour_issues", "service_type_secondary"):
        if field in data:
            # keep first occurrence order, drop repeats
            setattr(business, field, list(dict.fromkeys(data[field] or [])))


@trainer_bp.route("/trainer/business", methods=["POST"])
@jwt_required()
def create_business() -> tuple[dict, int]:
    """Create the caller's business listing.

    The suburb is resolved by name and the listing inherits its council
    and region. A trainer may hold only one live listing.
    """
    _require_trainer()
    data = load_or_raise(ListingSchema(), request.get_json() or {})
    owner_id = str(get_jwt_identity())
    suburb = resolve_suburb(SqlSearchStore(db.session), data["suburb"])

    existing = Business.query.filter_by(owner_id=owner_id, deleted_at=None).first()
    if existing:
        raise ConflictError("Trainer already has a business listing.")

    now = datetime.utcnow()
    business = Business(
        owner_id=owner_id,
        suburb_id=suburb.id,
        council_id=suburb.council_id,
        region=suburb.region,
        tier=Tier.BASIC,
        claimed=True,
        claimed_at=now,
    )
    _apply_listing_fields(business, data)
    db.session.add(business)
    db.session.commit()
    return BusinessSchema().dump(business), 201


@trainer_bp.route("/trainer/business/claim", methods=["POST"])
@jwt_required()
def claim_business() -> tuple[dict, int]:
    """Take ownership of an existing, unclaimed listing.

    When the listing has a contact email it must match the ``email``
    claim of the caller's token.
    """
    _require_trainer()
    data = load_or_raise(ClaimSchema(), request.get_json() or {})
    owner_id = str(get_jwt_identity())
    business = Business.query.filter_by(id=data["business_id"], deleted_at=None).first()
    if not business:
        raise NotFoundError("Business not found.")
    if business.claimed or business.owner_id:
        raise ForbiddenError("Business is already claimed.")
    if business.email:
        email = (get_jwt().get("email") or "").strip().lower()
        if email != business.email.strip().lower():
            raise ValidationError(
                "Claim verification failed.", fields={"email": ["Does not match the listing."]}
            )
    if Business.query.filter_by(owner_id=owner_id, deleted_at=None).first():
        raise ConflictError("Trainer already has a business listing.")

    business.owner_id = owner_id
    business.claimed = True
    business.claimed_at = datetime.utcnow()
    db.session.commit()
    logger.info("Business %s claimed by %s", business.id, owner_id)
    return BusinessSchema().dump(business), 200


@trainer_bp.route("/trainer/business/<int:business_id>", methods=["GET"])
@jwt_required()
def get_business(business_id: int) -> tuple[dict, int]:
    """Return one of the caller's listings."""
    _require_trainer()
    return BusinessSchema().dump(_owned_business(business_id)), 200


@trainer_bp.route("/trainer/business/<int:business_id>", methods=["PATCH"])
@jwt_required()
def update_business(business_id: int) -> tuple[dict, int]:
    """Update listing details.

    Accepts any subset of the create fields except ``suburb``; the
    location of a listing is fixed once created.
    """
    _require_trainer()
    business = _owned_business(business_id)
    payload = request.get_json() or {}
    if "suburb" in payload:
        raise ValidationError("Invalid request.", fields={"suburb": ["Suburb cannot be changed."]})
    data = load_or_raise(ListingSchema(partial=True, exclude=("suburb",)), payload)
    _apply_listing_fields(business, data)
    db.session.commit()
    return BusinessSchema().dump(business), 200


@trainer_bp.route("/trainer/business/<int:business_id>", methods=["DELETE"])
@jwt_required()
def delete_business(business_id: int) -> tuple[dict, int]:
    """Soft delete the caller's listing and cancel its featured placements."""
    _require_trainer()
    business = _owned_business(business_id)
    soft_delete_business(business, reason="Listing deleted by owner")
    db.session.commit()
    return {"message": "Business deleted."}, 200


@trainer_bp.route("/trainer/featured", methods=["POST"])
@jwt_required()
def join_featured_queue() -> tuple[dict, int]:
    """Queue a featured placement for one of the caller's listings.

    Payment is handled outside this service; the placement joins the
    back of the listing's council queue.
    """
    _require_trainer()
    data = load_or_raise(FeaturedJoinSchema(), request.get_json() or {})
    business = _owned_business(data["business_id"])
    placement = add_to_queue(
        business,
        duration_days=current_app.config["FEATURED_DURATION_DAYS"],
        cap=current_app.config["FEATURED_CAP_PER_COUNCIL"],
    )
    db.session.commit()
    return FeaturedPlacementSchema().dump(placement), 201


@trainer_bp.route("/trainer/featured/status", methods=["GET"])
@jwt_required()
def featured_status() -> tuple[dict, int]:
    """Report the open placement of a listing and its place in the queue."""
    _require_trainer()
    try:
        business_id = int(request.args.get("business_id", ""))
    except ValueError:
        raise ValidationError("Invalid request.", fields={"business_id": ["Not a valid integer."]})
    business = _owned_business(business_id)
    placement = open_placement_for(business.id)
    position = queue_position(business.id)
    return {
        "placement": FeaturedPlacementSchema().dump(placement) if placement else None,
        "position": position["position"],
        "estimated_days": position["estimated_days"],
    }, 200
