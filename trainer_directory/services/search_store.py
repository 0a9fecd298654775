"""Data-store handle used by the public search pipeline.

The search pipeline never touches ``db.session`` itself. It is given a
``SearchStore`` and works on the immutable records defined here, which
are built from ORM rows at the store boundary. The SQLAlchemy-backed
store narrows rows in SQL where it is cheap to do so; the pipeline still
applies the full eligibility rules to whatever it receives, so a store
that returns a superset (such as the in-memory store used in tests)
produces the same results.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..errors import UpstreamError
from ..models import (
    Business,
    FeaturedPlacement,
    PlacementStatus,
    Region,
    ResourceType,
    Suburb,
    Tier,
    TRAINER_RESOURCE_TYPES,
)


@dataclass(frozen=True)
class CouncilRecord:
    id: int
    name: str
    region: Region
    shire: bool = False


@dataclass(frozen=True)
class SuburbRecord:
    id: int
    name: str
    council_id: int
    region: Region
    postcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class BusinessRecord:
    id: int
    name: str
    resource_type: ResourceType
    suburb_id: int
    council_id: int
    region: Region
    tier: Tier
    created_at: datetime
    age_specialties: Tuple[str, ...] = ()
    behaviour_issues: Tuple[str, ...] = ()
    service_type_primary: Optional[str] = None
    service_type_secondary: Tuple[str, ...] = ()
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    verified: bool = False
    claimed: bool = False
    deleted: bool = False
    suburb: Optional[SuburbRecord] = field(default=None, compare=False)
    council: Optional[CouncilRecord] = field(default=None, compare=False)


@dataclass(frozen=True)
class PlacementRecord:
    id: int
    business_id: int
    council_id: int
    starts_at: datetime
    ends_at: datetime
    status: PlacementStatus
    queue_position: Optional[int] = None
    queue_activated_at: Optional[datetime] = None


def suburb_record(suburb: Suburb) -> SuburbRecord:
    return SuburbRecord(
        id=suburb.id,
        name=suburb.name,
        council_id=suburb.council_id,
        region=suburb.region,
        postcode=suburb.postcode,
        latitude=suburb.latitude,
        longitude=suburb.longitude,
    )


def business_record(business: Business) -> BusinessRecord:
    council = business.council
    return BusinessRecord(
        id=business.id,
        name=business.name,
        resource_type=business.resource_type,
        suburb_id=business.suburb_id,
        council_id=business.council_id,
        region=business.region,
        tier=business.tier,
        created_at=business.created_at,
        age_specialties=tuple(business.age_specialties or ()),
        behaviour_issues=tuple(business.behaviour_issues or ()),
        service_type_primary=business.service_type_primary,
        service_type_secondary=tuple(business.service_type_secondary or ()),
        phone=business.phone,
        email=business.email,
        website=business.website,
        description=business.description,
        verified=bool(business.verified),
        claimed=bool(business.claimed),
        deleted=business.deleted_at is not None,
        suburb=suburb_record(business.suburb) if business.suburb is not None else None,
        council=CouncilRecord(council.id, council.name, council.region, bool(council.shire)) if council else None,
    )


def placement_record(placement: FeaturedPlacement) -> PlacementRecord:
    return PlacementRecord(
        id=placement.id,
        business_id=placement.business_id,
        council_id=placement.council_id,
        starts_at=placement.starts_at,
        ends_at=placement.ends_at,
        status=placement.status,
        queue_position=placement.queue_position,
        queue_activated_at=placement.queue_activated_at,
    )


class SearchStore(Protocol):
    """Read-only queries the search pipeline needs from the data store."""

    def find_suburb(self, name: str) -> Optional[SuburbRecord]:
        """Return the first suburb whose name matches ``name`` case-insensitively."""
        ...

    def council_placements(self, council_id: int, now: datetime) -> List[PlacementRecord]:
        """Return featured placements of a council that may be live at ``now``."""
        ...

    def businesses_by_ids(self, ids: Iterable[int]) -> List[BusinessRecord]:
        ...

    def businesses_in_council(self, council_id: int, tier: Tier) -> List[BusinessRecord]:
        ...


class SqlSearchStore(SearchStore):
    """``SearchStore`` over a SQLAlchemy session.

    Each query runs inside its own savepoint, so a failed read is rolled
    back on its own and later reads in the same transaction still work.
    Every query error is raised as :class:`UpstreamError`; whether that
    aborts the search or only empties a tier is decided by the pipeline.
    """

    def __init__(self, session) -> None:
        self.session = session

    @contextmanager
    def _guard(self, message: str) -> Iterator[None]:
        try:
            with self.session.begin_nested():
                yield
        except SQLAlchemyError as err:
            raise UpstreamError(message) from err

    def find_suburb(self, name: str) -> Optional[SuburbRecord]:
        with self._guard("Failed to resolve suburb."):
            suburb = (
                self.session.query(Suburb)
                .filter(func.lower(Suburb.name) == name.lower())
                .order_by(Suburb.created_at.asc(), Suburb.id.asc())
                .first()
            )
        return suburb_record(suburb) if suburb else None

    def council_placements(self, council_id: int, now: datetime) -> List[PlacementRecord]:
        with self._guard("Failed to load featured placements."):
            placements = (
                self.session.query(FeaturedPlacement)
                .filter(
                    FeaturedPlacement.council_id == council_id,
                    FeaturedPlacement.status == PlacementStatus.ACTIVE,
                    FeaturedPlacement.ends_at > now,
                )
                .order_by(FeaturedPlacement.queue_activated_at.asc(), FeaturedPlacement.id.asc())
                .all()
            )
        return [placement_record(p) for p in placements]

    def businesses_by_ids(self, ids: Iterable[int]) -> List[BusinessRecord]:
        ids = list(ids)
        if not ids:
            return []
        with self._guard("Failed to load featured businesses."):
            rows = (
                self.session.query(Business)
                .options(joinedload(Business.suburb), joinedload(Business.council))
                .filter(
                    Business.id.in_(ids),
                    Business.deleted_at.is_(None),
                    Business.resource_type.in_(TRAINER_RESOURCE_TYPES),
                )
                .all()
            )
        return [business_record(b) for b in rows]

    def businesses_in_council(self, council_id: int, tier: Tier) -> List[BusinessRecord]:
        with self._guard(f"Failed to load {tier.value} businesses."):
            rows = (
                self.session.query(Business)
                .options(joinedload(Business.suburb), joinedload(Business.council))
                .filter(
                    Business.council_id == council_id,
                    Business.tier == tier,
                    Business.deleted_at.is_(None),
                    Business.resource_type.in_(TRAINER_RESOURCE_TYPES),
                )
                .order_by(Business.created_at.desc(), Business.id.desc())
                .all()
            )
        return [business_record(b) for b in rows]
