"""Pytest fixtures for the Dog Trainers Directory.

Each test gets a fresh application bound to an in-memory SQLite
database. The application context stays pushed for the whole test so
rows created through the helpers and rows written by requests share
one session.
"""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from trainer_directory import create_app, db
from trainer_directory.models import PlacementStatus, Tier

from helpers import make_business, make_council, make_placement, make_suburb


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
        "FEATURED_CAP_PER_COUNCIL": 3,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(app):
    """Build an ``Authorization`` header for the given identity and role."""
    def make(identity: str = "trainer-1", role: str = "trainer", **claims) -> dict:
        token = create_access_token(identity=identity, additional_claims={"role": role, **claims})
        return {"Authorization": f"Bearer {token}"}
    return make


@pytest.fixture
def richmond(app):
    """Council C1 with Richmond, one featured, two pro and one basic listing.

    B4 sits in a suburb of the same council about 50 km south of Richmond.
    B1 is a ``basic`` listing that is also featured.
    """
    now = datetime.utcnow()
    council = make_council("City of Yarra")
    suburb = make_suburb(council, "Richmond", latitude=-37.82, longitude=145.00, postcode="3121")
    far = make_suburb(council, "Far Away", latitude=-38.27, longitude=145.00)
    b1 = make_business(suburb, "B1", tier=Tier.BASIC, created_at=now - timedelta(days=5))
    b2 = make_business(suburb, "B2", tier=Tier.PRO, created_at=now - timedelta(days=4))
    b3 = make_business(suburb, "B3", tier=Tier.PRO, created_at=now - timedelta(days=3))
    b4 = make_business(far, "B4", tier=Tier.BASIC, created_at=now - timedelta(days=2))
    placement = make_placement(b1, status=PlacementStatus.ACTIVE)
    db.session.commit()
    return {
        "council": council,
        "suburb": suburb,
        "far": far,
        "b1": b1,
        "b2": b2,
        "b3": b3,
        "b4": b4,
        "placement": placement,
    }
