"""Soft delete utilities.

To preserve historical data without permanently removing records,
listings are *soft deleted*: instead of deleting the row, a
``deleted_at`` timestamp is set. Queries that should only return live
listings must filter ``deleted_at IS NULL``.

Deleting a listing also cancels its queued or active featured
placements so a deleted business never holds a featured slot.
"""
from __future__ import annotations

from datetime import datetime

from .. import db
from ..models import Business, FeaturedPlacement
from .featured_queue_service import OPEN_STATUSES, cancel_placement


def soft_delete_business(business: Business, reason: str = "Listing deleted") -> None:
    """Soft delete a business and cancel its open placements.

    Changes are flushed to the database session but not committed,
    allowing the caller to decide when to commit.

    Parameters
    ----------
    business: Business
        The listing to be soft deleted.
    reason: str
        Recorded as the cancellation reason on open placements.
    """
    business.deleted_at = datetime.utcnow()
    open_placements = (
        FeaturedPlacement.query
        .filter(FeaturedPlacement.business_id == business.id, FeaturedPlacement.status.in_(OPEN_STATUSES))
        .order_by(FeaturedPlacement.id.asc())
        .all()
    )
    for placement in open_placements:
        cancel_placement(placement, reason)
    db.session.flush()
