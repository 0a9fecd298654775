"""Seed script for initial data.

Running this script will populate the database with a handful of
councils and suburbs (with coordinates) plus sample listings across the
``pro`` and ``basic`` tiers and one active featured placement, enough to
exercise the public search locally. Run it with
``python -m seed.seed`` from the repository root.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from trainer_directory import create_app, db
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

logger = logging.getLogger(__name__)


def run_seeds() -> None:
    """Insert reference data and demo listings into the database."""
    app = create_app()
    with app.app_context():
        db.create_all()
        yarra = Council(name="City of Yarra", region=Region.INNER_CITY)
        darebin = Council(name="City of Darebin", region=Region.NORTHERN)
        casey = Council(name="City of Casey", region=Region.SOUTH_EASTERN)
        db.session.add_all([yarra, darebin, casey])
        db.session.flush()

        suburbs = {
            "Richmond": Suburb(name="Richmond", council_id=yarra.id, region=Region.INNER_CITY,
                               postcode="3121", latitude=-37.8182, longitude=145.0018),
            "Fitzroy": Suburb(name="Fitzroy", council_id=yarra.id, region=Region.INNER_CITY,
                              postcode="3065", latitude=-37.7984, longitude=144.9783),
            "Northcote": Suburb(name="Northcote", council_id=darebin.id, region=Region.NORTHERN,
                                postcode="3070", latitude=-37.7699, longitude=144.9990),
            "Cranbourne": Suburb(name="Cranbourne", council_id=casey.id, region=Region.SOUTH_EASTERN,
                                 postcode="3977", latitude=-38.0996, longitude=145.2834),
        }
        db.session.add_all(suburbs.values())
        db.session.flush()

        def listing(name, suburb, tier, ages, issues=(), resource_type=ResourceType.TRAINER):
            return Business(
                name=name,
                resource_type=resource_type,
                suburb_id=suburb.id,
                council_id=suburb.council_id,
                region=suburb.region,
                tier=tier,
                age_specialties=list(ages),
                behaviour_issues=list(issues),
                service_type_primary="private_training",
                claimed=True,
            )

        businesses = [
            listing("Richmond Puppy School", suburbs["Richmond"], Tier.PRO, ["puppy", "adolescent"],
                    ["jumping_up", "mouthing_nipping_biting"]),
            listing("Fitzroy Canine Coaching", suburbs["Fitzroy"], Tier.BASIC, ["adult", "senior"],
                    ["leash_reactivity", "recall_issues"]),
            listing("Yarra Behaviour Clinic", suburbs["Fitzroy"], Tier.PRO, ["adolescent", "adult", "rescue"],
                    ["anxiety", "dog_aggression"], ResourceType.BEHAVIOUR_CONSULTANT),
            listing("Northside Obedience", suburbs["Northcote"], Tier.BASIC, ["puppy", "adult"]),
            listing("Casey Dog Academy", suburbs["Cranbourne"], Tier.PRO, ["puppy", "adolescent", "adult"],
                    ["pulling_on_lead", "excessive_barking"]),
        ]
        db.session.add_all(businesses)
        db.session.flush()

        now = datetime.utcnow()
        db.session.add(FeaturedPlacement(
            business_id=businesses[1].id,
            council_id=yarra.id,
            starts_at=now,
            ends_at=now + timedelta(days=30),
            status=PlacementStatus.ACTIVE,
            queue_activated_at=now,
        ))
        db.session.commit()
        logger.info("Seed data inserted successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seeds()
