"""Public trainer search.

Search is suburb-first and age-first: the requested suburb is resolved
to its council, and three tiers of candidates are read for that council.

1. Featured businesses, from active placements whose window has not
   ended, in the order their placements were activated.
2. ``pro`` businesses, newest first.
3. ``basic`` businesses, newest first.

Each tier is narrowed to trainers and behaviour consultants whose age
specialties (and behaviour issues, when one was requested) contain the
requested values. The tiers are merged in that priority order with
featured businesses removed from the lower tiers, optionally restricted
to a radius around the resolved suburb, and finally paginated.

Every step is a plain function over records from
:mod:`~trainer_directory.services.search_store`, and
:func:`run_public_search` composes them against an explicit store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..errors import NotFoundError, UpstreamError, ValidationError
from ..models import PlacementStatus, Tier, TRAINER_RESOURCE_TYPES
from ..util.geo import haversine_km
from .search_store import BusinessRecord, PlacementRecord, SearchStore, SuburbRecord

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


@dataclass(frozen=True)
class SearchQuery:
    suburb: str
    age_stage: str
    behaviour_issue: Optional[str] = None
    radius_km: Optional[float] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


@dataclass(frozen=True)
class Page:
    items: List[BusinessRecord]
    total: int
    page: int
    limit: int
    has_more: bool


@dataclass(frozen=True)
class SearchResult:
    results: List[BusinessRecord]
    total: int
    page: int
    limit: int
    has_more: bool
    meta: dict


def resolve_suburb(store: SearchStore, name: str) -> SuburbRecord:
    """Map a free-text suburb name to a suburb record.

    Raises
    ------
    ValidationError
        If ``name`` is empty after trimming.
    NotFoundError
        If no suburb matches.
    UpstreamError
        If the lookup itself fails.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Suburb is required.", fields={"suburb": ["Suburb is required."]})
    suburb = store.find_suburb(name)
    if suburb is None:
        raise NotFoundError("Suburb not found.")
    return suburb


def is_compatible(business: BusinessRecord, age_stage: str, behaviour_issue: Optional[str] = None) -> bool:
    """Return True when the business serves the requested age stage and issue.

    Matching is exact set membership. A business with no age specialties
    never matches because an age stage is always requested.
    """
    if age_stage not in business.age_specialties:
        return False
    if behaviour_issue and behaviour_issue not in business.behaviour_issues:
        return False
    return True


def _is_listable(business: BusinessRecord) -> bool:
    return not business.deleted and business.resource_type in TRAINER_RESOURCE_TYPES


def _is_live(placement: PlacementRecord, council_id: int, now: datetime) -> bool:
    return (
        placement.council_id == council_id
        and placement.status == PlacementStatus.ACTIVE
        and placement.ends_at > now
    )


def _activation_key(placement: PlacementRecord):
    # Placements never activated sort last.
    activated = placement.queue_activated_at
    return (activated is None, activated or datetime.min, placement.id)


def fetch_featured(
    store: SearchStore,
    council_id: int,
    age_stage: str,
    behaviour_issue: Optional[str],
    now: datetime,
) -> List[BusinessRecord]:
    """Featured businesses for a council in placement activation order.

    A placement whose business is deleted or no longer compatible is
    dropped. A business with several live placements appears once, at
    its earliest placement.
    """
    placements = sorted(
        (p for p in store.council_placements(council_id, now) if _is_live(p, council_id, now)),
        key=_activation_key,
    )
    ordered_ids: List[int] = []
    for placement in placements:
        if placement.business_id not in ordered_ids:
            ordered_ids.append(placement.business_id)
    if not ordered_ids:
        return []

    by_id = {
        business.id: business
        for business in store.businesses_by_ids(ordered_ids)
        if _is_listable(business) and is_compatible(business, age_stage, behaviour_issue)
    }
    return [by_id[business_id] for business_id in ordered_ids if business_id in by_id]


def fetch_tier(
    store: SearchStore,
    council_id: int,
    tier: Tier,
    age_stage: str,
    behaviour_issue: Optional[str],
) -> List[BusinessRecord]:
    """Compatible businesses of one tier in a council, newest first."""
    candidates = [
        business
        for business in store.businesses_in_council(council_id, tier)
        if business.council_id == council_id
        and business.tier == tier
        and _is_listable(business)
        and is_compatible(business, age_stage, behaviour_issue)
    ]
    candidates.sort(key=lambda b: (b.created_at, b.id), reverse=True)
    return candidates


def merge_tiers(
    featured: Sequence[BusinessRecord],
    pro: Sequence[BusinessRecord],
    basic: Sequence[BusinessRecord],
) -> List[BusinessRecord]:
    """Concatenate featured, pro and basic, dropping featured ids from the latter two."""
    featured_ids = {business.id for business in featured}
    merged = list(featured)
    merged.extend(business for business in pro if business.id not in featured_ids)
    merged.extend(business for business in basic if business.id not in featured_ids)
    return merged


def filter_by_distance(
    businesses: Sequence[BusinessRecord],
    origin: SuburbRecord,
    radius_km: Optional[float],
) -> List[BusinessRecord]:
    """Keep businesses whose suburb lies within ``radius_km`` of ``origin``.

    Pass-through when no radius is given or the origin has no
    coordinates. Otherwise businesses whose suburb has no coordinates are
    excluded, and the boundary is inclusive.
    """
    if radius_km is None or not origin.has_coordinates:
        return list(businesses)

    kept = []
    for business in businesses:
        suburb = business.suburb
        if suburb is None or not suburb.has_coordinates:
            continue
        distance = haversine_km(origin.latitude, origin.longitude, suburb.latitude, suburb.longitude)
        if distance <= radius_km:
            kept.append(business)
    return kept


def paginate(items: Sequence[BusinessRecord], page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Page:
    """Slice a 1-based page out of ``items``.

    Pages before the first or past the last are empty rather than errors.
    """
    total = len(items)
    start = (page - 1) * limit
    window = list(items[start:start + limit]) if page >= 1 else []
    return Page(items=window, total=total, page=page, limit=limit, has_more=start + limit < total)


def _degrade(tier_name: str, read: Callable[[], List[BusinessRecord]]) -> List[BusinessRecord]:
    """Run one tier read, treating a data-store failure as an empty tier."""
    try:
        return read()
    except UpstreamError as err:
        logger.warning("Search %s tier unavailable, continuing without it: %s", tier_name, err.message)
        return []


def run_public_search(store: SearchStore, query: SearchQuery, now: Optional[datetime] = None) -> SearchResult:
    """Run the full search pipeline for ``query`` against ``store``.

    Suburb resolution errors propagate. A failing tier read is logged and
    the search carries on without that tier.
    """
    now = now or datetime.utcnow()
    age_stage = (query.age_stage or "").strip()
    if not age_stage:
        raise ValidationError("Age stage is required.", fields={"age_stage": ["Age stage is required."]})
    behaviour_issue = (query.behaviour_issue or "").strip() or None

    suburb = resolve_suburb(store, query.suburb)
    council_id = suburb.council_id

    featured = _degrade(
        "featured", lambda: fetch_featured(store, council_id, age_stage, behaviour_issue, now)
    )
    pro = _degrade("pro", lambda: fetch_tier(store, council_id, Tier.PRO, age_stage, behaviour_issue))
    basic = _degrade("basic", lambda: fetch_tier(store, council_id, Tier.BASIC, age_stage, behaviour_issue))
    logger.debug(
        "Search in council %s: featured=%d pro=%d basic=%d", council_id, len(featured), len(pro), len(basic)
    )

    merged = merge_tiers(featured, pro, basic)
    filtered = filter_by_distance(merged, suburb, query.radius_km)
    page = paginate(filtered, query.page, query.limit)

    return SearchResult(
        results=page.items,
        total=page.total,
        page=page.page,
        limit=page.limit,
        has_more=page.has_more,
        meta={
            "applied_filters": {
                "suburb": suburb.name,
                "age_stage": age_stage,
                "behaviour_issue": behaviour_issue,
                "radius_km": query.radius_km,
            },
            "council": council_id,
            "region": suburb.region.value,
        },
    )
