"""Tests for the featured placement FIFO queue."""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from trainer_directory import db
from trainer_directory.errors import ConflictError
from trainer_directory.models import PlacementStatus, Tier
from trainer_directory.services import (
    add_to_queue,
    cancel_placement,
    expire_placements,
    promote_from_queue,
    queue_position,
    queue_statistics,
    soft_delete_business,
)
from trainer_directory.services import featured_queue_service
from trainer_directory.services.featured_queue_service import queued_placements

from helpers import make_business, make_council, make_placement, make_suburb


@pytest.fixture
def listings(app):
    council = make_council()
    suburb = make_suburb(council)
    return [make_business(suburb, f"T{i}", tier=Tier.PRO) for i in range(1, 5)]


def test_add_to_queue_assigns_increasing_positions(listings):
    first = add_to_queue(listings[0], duration_days=30)
    second = add_to_queue(listings[1], duration_days=30)
    assert first.status == PlacementStatus.QUEUED
    assert (first.queue_position, second.queue_position) == (1, 2)
    assert first.ends_at - first.starts_at == timedelta(days=30)


def test_add_to_queue_rejects_open_placement(listings):
    add_to_queue(listings[0], duration_days=30)
    with pytest.raises(ConflictError):
        add_to_queue(listings[0], duration_days=30)


def test_add_to_queue_enforces_council_cap(listings):
    make_placement(listings[0], status=PlacementStatus.ACTIVE)
    add_to_queue(listings[1], duration_days=30, cap=2)
    with pytest.raises(ConflictError):
        add_to_queue(listings[2], duration_days=30, cap=2)


def test_promote_activates_head_and_renumbers(listings):
    placements = [add_to_queue(b, duration_days=10) for b in listings[:3]]
    now = datetime.utcnow()
    promoted = promote_from_queue(listings[0].council_id, now=now)
    assert promoted.id == placements[0].id
    assert promoted.status == PlacementStatus.ACTIVE
    assert promoted.queue_activated_at == now
    assert promoted.ends_at == now + timedelta(days=10)
    assert [p.queue_position for p in queued_placements(listings[0].council_id)] == [1, 2]


def test_promote_from_empty_queue_returns_none(listings):
    assert promote_from_queue(listings[0].council_id) is None


def test_cancel_queued_placement_renumbers(listings):
    placements = [add_to_queue(b, duration_days=10) for b in listings[:3]]
    cancel_placement(placements[0], "Changed my mind")
    assert placements[0].status == PlacementStatus.CANCELLED
    assert placements[0].cancel_reason == "Changed my mind"
    remaining = queued_placements(listings[0].council_id)
    assert [(p.id, p.queue_position) for p in remaining] == [(placements[1].id, 1), (placements[2].id, 2)]
    with pytest.raises(ConflictError):
        cancel_placement(placements[0])


def test_expire_placements_backfills_from_queue(listings):
    ended = make_placement(listings[0], status=PlacementStatus.ACTIVE, ends_in=timedelta(hours=-1))
    still_running = make_placement(listings[1], status=PlacementStatus.ACTIVE)
    waiting = add_to_queue(listings[2], duration_days=30)
    result = expire_placements()
    assert result == {"expired_count": 1, "promoted_count": 1, "errors": []}
    assert ended.status == PlacementStatus.EXPIRED
    assert still_running.status == PlacementStatus.ACTIVE
    assert waiting.status == PlacementStatus.ACTIVE


def test_queue_statistics(listings):
    make_placement(listings[0], status=PlacementStatus.ACTIVE)
    add_to_queue(listings[1], duration_days=30)
    add_to_queue(listings[2], duration_days=30)
    council_key = str(listings[0].council_id)
    assert queue_statistics() == {
        "total_queued": 2,
        "total_active": 1,
        "council_breakdown": {council_key: 2},
    }


def test_queue_position_estimates_wait(listings):
    make_placement(listings[0], status=PlacementStatus.ACTIVE, ends_in=timedelta(days=3))
    add_to_queue(listings[1], duration_days=30)
    add_to_queue(listings[2], duration_days=30)
    now = datetime.utcnow()
    assert queue_position(listings[1].id, now=now) == {"position": 1, "estimated_days": 3}
    assert queue_position(listings[2].id, now=now) == {"position": 2, "estimated_days": 10}
    assert queue_position(listings[3].id, now=now) == {"position": None, "estimated_days": None}


def test_soft_delete_cancels_open_placements(listings):
    active = make_placement(listings[0], status=PlacementStatus.ACTIVE)
    soft_delete_business(listings[0])
    db.session.commit()
    assert listings[0].deleted_at is not None
    assert active.status == PlacementStatus.CANCELLED


def test_soft_delete_without_placements(listings):
    assert listings[0].placements == []
    soft_delete_business(listings[0])
    db.session.commit()
    assert listings[0].deleted_at is not None


def test_soft_delete_cancels_queued_placement_and_renumbers(listings):
    mine = add_to_queue(listings[0], duration_days=30)
    theirs = add_to_queue(listings[1], duration_days=30)
    old = make_placement(listings[0], status=PlacementStatus.EXPIRED)
    assert listings[0].placements == [mine, old]

    soft_delete_business(listings[0], reason="Closed down")
    db.session.commit()
    assert mine.status == PlacementStatus.CANCELLED
    assert mine.cancel_reason == "Closed down"
    assert old.status == PlacementStatus.EXPIRED
    assert theirs.queue_position == 1


def test_expire_placements_isolates_failures(listings, monkeypatch):
    other_council = make_council("City of Darebin")
    other = make_business(make_suburb(other_council, "Northcote"), "N1", tier=Tier.PRO)
    broken = make_placement(listings[0], status=PlacementStatus.ACTIVE, ends_in=timedelta(hours=-2))
    waiting = add_to_queue(listings[1], duration_days=30)
    healthy = make_placement(other, status=PlacementStatus.ACTIVE, ends_in=timedelta(hours=-1))
    broken_id, broken_council = broken.id, listings[0].council_id

    real_promote = featured_queue_service.promote_from_queue

    def promote_then_fail(council_id, now=None):
        promoted = real_promote(council_id, now=now)
        if council_id == broken_council:
            promoted.ends_at = None
            db.session.flush()
        return promoted

    monkeypatch.setattr(featured_queue_service, "promote_from_queue", promote_then_fail)
    result = expire_placements()

    assert result["expired_count"] == 1
    assert result["promoted_count"] == 0
    assert len(result["errors"]) == 1
    assert f"placement {broken_id}" in result["errors"][0]

    db.session.commit()
    assert healthy.status == PlacementStatus.EXPIRED
    assert broken.status == PlacementStatus.ACTIVE
    assert waiting.status == PlacementStatus.QUEUED
    assert waiting.queue_position == 1


def test_queue_positions_are_unique_per_council(listings):
    make_placement(listings[0], status=PlacementStatus.QUEUED, queue_position=1)
    with pytest.raises(IntegrityError):
        make_placement(listings[1], status=PlacementStatus.QUEUED, queue_position=1)
    db.session.rollback()
