"""
Database models for the Dog Trainers Directory.

This module defines the relational schema using SQLAlchemy models.
Councils group suburbs; every business listing belongs to exactly one
suburb and one council (the council and region are denormalised onto
the business so search can scope by council without a join). Paid
featured placements queue up per council and, once active, lift a
business to the top of search results for their validity window.

Listings are never removed. Setting ``deleted_at`` soft-deletes a row
and every query that serves live data filters ``deleted_at IS NULL``.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional, List

from sqlalchemy.orm import Mapped

from . import db


class Region(enum.Enum):
    """Metropolitan regions used to group councils."""
    INNER_CITY = "Inner City"
    NORTHERN = "Northern"
    EASTERN = "Eastern"
    SOUTH_EASTERN = "South Eastern"
    WESTERN = "Western"


class ResourceType(enum.Enum):
    TRAINER = "trainer"
    BEHAVIOUR_CONSULTANT = "behaviour_consultant"
    EMERGENCY_VET = "emergency_vet"
    URGENT_CARE = "urgent_care"
    EMERGENCY_SHELTER = "emergency_shelter"


# Resource types surfaced by the public trainer search.
TRAINER_RESOURCE_TYPES = (ResourceType.TRAINER, ResourceType.BEHAVIOUR_CONSULTANT)


class Tier(enum.Enum):
    """Subscription level of a listing."""
    BASIC = "basic"
    PRO = "pro"


class PlacementStatus(enum.Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Role(enum.Enum):
    """Roles carried in the ``role`` claim of access tokens."""
    TRAINER = "trainer"
    ADMIN = "admin"


AGE_STAGES = ("puppy", "adolescent", "adult", "senior", "rescue")

BEHAVIOUR_ISSUES = (
    "pulling_on_lead",
    "separation_anxiety",
    "excessive_barking",
    "dog_aggression",
    "leash_reactivity",
    "jumping_up",
    "destructive_behaviour",
    "recall_issues",
    "anxiety",
    "resource_guarding",
    "mouthing_nipping_biting",
    "rescue_dog_support",
    "socialisation",
)

SERVICE_TYPES = (
    "puppy_training",
    "obedience_training",
    "behaviour_consultations",
    "group_classes",
    "private_training",
)


class Council(db.Model):
    __allow_unmapped__ = True  # allow unmapped type annotations for SQLAlchemy 2.0
    """A local government area. Reference data owning zero or more suburbs."""
    __tablename__ = "councils"

    id: int = db.Column(db.Integer, primary_key=True)
    name: str = db.Column(db.String(255), nullable=False)
    region: Region = db.Column(db.Enum(Region), nullable=False)
    shire: bool = db.Column(db.Boolean, nullable=False, default=False)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # collections must be annotated with Mapped[] to load as lists
    suburbs: Mapped[List[Suburb]] = db.relationship("Suburb", back_populates="council")

    def __repr__(self) -> str:
        return f"<Council {self.name}>"


class Suburb(db.Model):
    __allow_unmapped__ = True
    """A suburb (locality) inside a council.

    Coordinates are optional; suburbs without them are excluded from
    radius-bounded searches.
    """
    __tablename__ = "suburbs"

    id: int = db.Column(db.Integer, primary_key=True)
    name: str = db.Column(db.String(255), nullable=False, index=True)
    council_id: int = db.Column(db.Integer, db.ForeignKey("councils.id"), nullable=False)
    region: Region = db.Column(db.Enum(Region), nullable=False)
    postcode: Optional[str] = db.Column(db.String(4))
    latitude: Optional[float] = db.Column(db.Float)
    longitude: Optional[float] = db.Column(db.Float)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    council: Council = db.relationship("Council", back_populates="suburbs")

    def __repr__(self) -> str:
        return f"<Suburb {self.name}>"


class Business(db.Model):
    __allow_unmapped__ = True
    """A trainer, behaviour consultant or emergency service listing.

    ``owner_id`` is the identity of the trainer account that created or
    claimed the listing. Tag sets are stored as JSON lists.
    """
    __tablename__ = "businesses"

    id: int = db.Column(db.Integer, primary_key=True)
    owner_id: Optional[str] = db.Column(db.String(64), index=True)
    name: str = db.Column(db.String(200), nullable=False)
    resource_type: ResourceType = db.Column(db.Enum(ResourceType), nullable=False, default=ResourceType.TRAINER)
    suburb_id: int = db.Column(db.Integer, db.ForeignKey("suburbs.id"), nullable=False)
    council_id: int = db.Column(db.Integer, db.ForeignKey("councils.id"), nullable=False, index=True)
    region: Region = db.Column(db.Enum(Region), nullable=False)
    address: Optional[str] = db.Column(db.String(255))
    phone: Optional[str] = db.Column(db.String(20))
    email: Optional[str] = db.Column(db.String(255))
    website: Optional[str] = db.Column(db.String(255))
    description: Optional[str] = db.Column(db.Text)
    age_specialties: list = db.Column(db.JSON, nullable=False, default=list)
    behaviour_issues: list = db.Column(db.JSON, nullable=False, default=list)
    service_type_primary: Optional[str] = db.Column(db.String(100))
    service_type_secondary: list = db.Column(db.JSON, nullable=False, default=list)
    tier: Tier = db.Column(db.Enum(Tier), nullable=False, default=Tier.BASIC, index=True)
    verified: bool = db.Column(db.Boolean, nullable=False, default=False)
    claimed: bool = db.Column(db.Boolean, nullable=False, default=False)
    claimed_at: Optional[datetime] = db.Column(db.DateTime)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Soft delete timestamp; when set, this record is considered deleted
    deleted_at = db.Column(db.DateTime, nullable=True)

    suburb: Suburb = db.relationship("Suburb")
    council: Council = db.relationship("Council")
    placements: Mapped[List[FeaturedPlacement]] = db.relationship(
        "FeaturedPlacement", back_populates="business", order_by="FeaturedPlacement.id"
    )

    def __repr__(self) -> str:
        return f"<Business {self.name} ({self.tier.value})>"


class FeaturedPlacement(db.Model):
    __allow_unmapped__ = True
    """A paid, time-boxed promotion of a business within its council.

    Placements start ``queued`` with a FIFO ``queue_position``. Promotion
    makes them ``active`` and stamps ``queue_activated_at``; search orders
    featured results by that timestamp.
    """
    __tablename__ = "featured_placements"
    __table_args__ = (
        db.Index("uq_featured_queue_position", "council_id", "queue_position", unique=True),
    )

    id: int = db.Column(db.Integer, primary_key=True)
    business_id: int = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    council_id: int = db.Column(db.Integer, db.ForeignKey("councils.id"), nullable=False, index=True)
    starts_at: datetime = db.Column(db.DateTime, nullable=False)
    ends_at: datetime = db.Column(db.DateTime, nullable=False)
    status: PlacementStatus = db.Column(
        db.Enum(PlacementStatus), nullable=False, default=PlacementStatus.QUEUED, index=True
    )
    queue_position: Optional[int] = db.Column(db.Integer)
    queue_activated_at: Optional[datetime] = db.Column(db.DateTime)
    cancel_reason: Optional[str] = db.Column(db.String(255))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    business: Business = db.relationship("Business", back_populates="placements")

    def __repr__(self) -> str:
        return f"<FeaturedPlacement business={self.business_id} status={self.status.value}>"
