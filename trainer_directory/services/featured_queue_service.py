"""FIFO queue management for featured placements.

Each council has its own queue. A purchased placement joins the back
of its council's queue with the next ``queue_position``; promotion takes
the lowest position, activates it and renumbers the rest from 1. The
expiry sweep retires active placements whose window has ended and
promotes one queued placement in the same council for each.

Like the soft delete helpers, these functions flush their changes to
the session but never commit, so the caller decides the transaction
boundary.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import ConflictError
from ..models import Business, Council, FeaturedPlacement, PlacementStatus

logger = logging.getLogger(__name__)

# Assumed length of one placement when estimating queue wait times.
DAYS_PER_QUEUE_SLOT = 7

OPEN_STATUSES = (PlacementStatus.QUEUED, PlacementStatus.ACTIVE)


def open_placement_for(business_id: int) -> Optional[FeaturedPlacement]:
    """Return the business's queued or active placement, if any."""
    return (
        FeaturedPlacement.query
        .filter(FeaturedPlacement.business_id == business_id, FeaturedPlacement.status.in_(OPEN_STATUSES))
        .order_by(FeaturedPlacement.created_at.desc(), FeaturedPlacement.id.desc())
        .first()
    )


def open_count(council_id: int) -> int:
    """Number of queued plus active placements in a council."""
    return (
        FeaturedPlacement.query
        .filter(FeaturedPlacement.council_id == council_id, FeaturedPlacement.status.in_(OPEN_STATUSES))
        .count()
    )


def queued_placements(council_id: int, limit: Optional[int] = None) -> List[FeaturedPlacement]:
    """Queued placements of a council in queue order."""
    query = (
        FeaturedPlacement.query
        .filter_by(council_id=council_id, status=PlacementStatus.QUEUED)
        .order_by(FeaturedPlacement.queue_position.asc(), FeaturedPlacement.id.asc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def add_to_queue(
    business: Business,
    duration_days: int,
    cap: Optional[int] = None,
    now: Optional[datetime] = None,
) -> FeaturedPlacement:
    """Queue a featured placement for ``business`` in its own council.

    The council row is locked for the rest of the transaction while the
    next position is taken, so concurrent joins in one council queue up
    behind each other.

    Raises
    ------
    ConflictError
        If the business already has a queued or active placement, or the
        council already holds ``cap`` open placements.
    """
    now = now or datetime.utcnow()
    db.session.query(Council).filter_by(id=business.council_id).with_for_update().one()
    if open_placement_for(business.id) is not None:
        raise ConflictError("Featured placement already active or queued.")
    if cap is not None and open_count(business.council_id) >= cap:
        raise ConflictError("Featured cap reached for this council.")

    last_position = (
        db.session.query(func.max(FeaturedPlacement.queue_position))
        .filter_by(council_id=business.council_id, status=PlacementStatus.QUEUED)
        .scalar()
    )
    placement = FeaturedPlacement(
        business_id=business.id,
        council_id=business.council_id,
        starts_at=now,
        ends_at=now + timedelta(days=duration_days),
        status=PlacementStatus.QUEUED,
        queue_position=(last_position or 0) + 1,
    )
    db.session.add(placement)
    db.session.flush()
    logger.info(
        "Queued placement %s for business %s in council %s at position %s",
        placement.id, business.id, business.council_id, placement.queue_position,
    )
    return placement


def renumber_queue(council_id: int) -> None:
    """Rewrite queue positions of a council's queued placements as 1..n."""
    for position, placement in enumerate(queued_placements(council_id), start=1):
        placement.queue_position = position
    db.session.flush()


def promote_from_queue(council_id: int, now: Optional[datetime] = None) -> Optional[FeaturedPlacement]:
    """Activate the head of a council's queue.

    The placement keeps its purchased duration, restarted from ``now``.
    Returns ``None`` when the queue is empty.
    """
    now = now or datetime.utcnow()
    head = queued_placements(council_id, limit=1)
    if not head:
        return None
    placement = head[0]
    duration = placement.ends_at - placement.starts_at
    placement.status = PlacementStatus.ACTIVE
    placement.queue_activated_at = now
    placement.starts_at = now
    placement.ends_at = now + duration
    placement.queue_position = None
    db.session.flush()
    renumber_queue(council_id)
    logger.info("Promoted placement %s in council %s", placement.id, council_id)
    return placement


def cancel_placement(placement: FeaturedPlacement, reason: str = "Cancelled by user") -> FeaturedPlacement:
    """Cancel a queued or active placement.

    Raises
    ------
    ConflictError
        If the placement has already expired or been cancelled.
    """
    if placement.status not in OPEN_STATUSES:
        raise ConflictError(f"Placement is already {placement.status.value}.")
    was_queued = placement.status == PlacementStatus.QUEUED
    placement.status = PlacementStatus.CANCELLED
    placement.cancel_reason = reason
    placement.queue_position = None
    db.session.flush()
    if was_queued:
        renumber_queue(placement.council_id)
    logger.info("Cancelled placement %s: %s", placement.id, reason)
    return placement


def expire_placements(now: Optional[datetime] = None) -> Dict[str, object]:
    """Expire ended active placements and backfill each from its council's queue.

    Returns a dictionary with ``expired_count``, ``promoted_count`` and a
    list of ``errors`` for placements that could not be processed.
    """
    now = now or datetime.utcnow()
    result: Dict[str, object] = {"expired_count": 0, "promoted_count": 0, "errors": []}
    ended = (
        FeaturedPlacement.query
        .filter(FeaturedPlacement.status == PlacementStatus.ACTIVE, FeaturedPlacement.ends_at <= now)
        .order_by(FeaturedPlacement.ends_at.asc(), FeaturedPlacement.id.asc())
        .all()
    )
    for placement in ended:
        placement_id, council_id = placement.id, placement.council_id
        try:
            # a failure rolls back this placement only
            with db.session.begin_nested():
                placement.status = PlacementStatus.EXPIRED
                db.session.flush()
                promoted = promote_from_queue(council_id, now=now)
        except SQLAlchemyError as exc:
            logger.exception("Failed to expire placement %s", placement_id)
            result["errors"].append(f"Error processing placement {placement_id}: {exc}")
            continue
        result["expired_count"] += 1
        if promoted is not None:
            result["promoted_count"] += 1
    logger.info(
        "Expiry sweep: expired=%s promoted=%s errors=%s",
        result["expired_count"], result["promoted_count"], len(result["errors"]),
    )
    return result


def queue_statistics(council_id: Optional[int] = None) -> Dict[str, object]:
    """Totals of queued and active placements, plus queued counts per council."""
    query = FeaturedPlacement.query.filter(FeaturedPlacement.status.in_(OPEN_STATUSES))
    if council_id is not None:
        query = query.filter_by(council_id=council_id)
    total_queued = 0
    total_active = 0
    breakdown: Dict[str, int] = {}
    for placement in query.all():
        if placement.status == PlacementStatus.QUEUED:
            total_queued += 1
            key = str(placement.council_id)
            breakdown[key] = breakdown.get(key, 0) + 1
        else:
            total_active += 1
    return {"total_queued": total_queued, "total_active": total_active, "council_breakdown": breakdown}


def queue_position(business_id: int, now: Optional[datetime] = None) -> Dict[str, Optional[int]]:
    """Queue position of a business and an estimate of days until activation.

    The estimate is the time until the council's last active placement
    ends plus a fixed allowance for every queued placement ahead.
    """
    now = now or datetime.utcnow()
    placement = (
        FeaturedPlacement.query
        .filter_by(business_id=business_id, status=PlacementStatus.QUEUED)
        .first()
    )
    if placement is None:
        return {"position": None, "estimated_days": None}

    last_end = (
        db.session.query(func.max(FeaturedPlacement.ends_at))
        .filter_by(council_id=placement.council_id, status=PlacementStatus.ACTIVE)
        .scalar()
    )
    estimated_days = 0
    if last_end is not None and last_end > now:
        remaining = last_end - now
        estimated_days = remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)
    if placement.queue_position:
        estimated_days += (placement.queue_position - 1) * DAYS_PER_QUEUE_SLOT
    return {"position": placement.queue_position, "estimated_days": max(estimated_days, 0)}
