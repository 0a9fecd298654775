"""Row builders shared by the database-backed tests."""
from __future__ import annotations

from datetime import datetime, timedelta

from trainer_directory import db
from trainer_directory.models import (
    Business,
    Council,
    FeaturedPlacement,
    PlacementStatus,
    Region,
    ResourceType,
    Suburb,
    Tier,
)


def make_council(name="City of Yarra", region=Region.INNER_CITY, **kwargs) -> Council:
    council = Council(name=name, region=region, **kwargs)
    db.session.add(council)
    db.session.flush()
    return council


def make_suburb(council, name="Richmond", latitude=-37.82, longitude=145.00, **kwargs) -> Suburb:
    kwargs.setdefault("region", council.region)
    suburb = Suburb(name=name, council_id=council.id, latitude=latitude, longitude=longitude, **kwargs)
    db.session.add(suburb)
    db.session.flush()
    return suburb


def make_business(
    suburb,
    name,
    tier=Tier.BASIC,
    ages=("puppy",),
    issues=(),
    created_at=None,
    resource_type=ResourceType.TRAINER,
    **kwargs,
) -> Business:
    business = Business(
        name=name,
        suburb_id=suburb.id,
        council_id=suburb.council_id,
        region=suburb.region,
        tier=tier,
        resource_type=resource_type,
        age_specialties=list(ages),
        behaviour_issues=list(issues),
        created_at=created_at or datetime.utcnow(),
        **kwargs,
    )
    db.session.add(business)
    db.session.flush()
    return business


def make_placement(
    business,
    status=PlacementStatus.ACTIVE,
    activated_at=None,
    ends_in=timedelta(days=10),
    queue_position=None,
) -> FeaturedPlacement:
    now = datetime.utcnow()
    placement = FeaturedPlacement(
        business_id=business.id,
        council_id=business.council_id,
        starts_at=now - timedelta(days=1),
        ends_at=now + ends_in,
        status=status,
        queue_position=queue_position,
        queue_activated_at=activated_at if activated_at is not None else (
            now - timedelta(hours=1) if status == PlacementStatus.ACTIVE else None
        ),
    )
    db.session.add(placement)
    db.session.flush()
    return placement
