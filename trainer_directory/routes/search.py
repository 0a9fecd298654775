"""
Public search route.

``GET /api/public/search`` is the one unauthenticated listing surface:
it validates the query string, runs the search pipeline against the
SQLAlchemy session and wraps the result in the public response
envelope. Errors raised by the pipeline are rendered by the handlers
in ``trainer_directory.errors``.
"""

from __future__ import annotations

from flask import Blueprint, current_app, request

from .. import db, limiter
from ..errors import ValidationError, load_or_raise
from ..schemas import BusinessRecordSchema, SearchQuerySchema
from ..services import SearchQuery, SqlSearchStore, run_public_search


search_bp = Blueprint("search", __name__)


def _public_search_limit() -> str:
    return current_app.config["PUBLIC_SEARCH_RATE_LIMIT"]


@search_bp.route("/public/search", methods=["GET"])
@limiter.limit(_public_search_limit)
def public_search() -> tuple[dict, int]:
    """Search trainers around a suburb.

    Requires ``suburb`` and ``age_stage``. Optional ``behaviour_issue``,
    ``radius_km``, ``page`` (default 1) and ``limit`` (default from
    ``SEARCH_DEFAULT_LIMIT``, at most ``SEARCH_MAX_LIMIT``). Requests are
    rate limited per client address by ``PUBLIC_SEARCH_RATE_LIMIT``.
    """
    params = load_or_raise(SearchQuerySchema(), request.args.to_dict())
    limit = params["limit"] or current_app.config["SEARCH_DEFAULT_LIMIT"]
    max_limit = current_app.config["SEARCH_MAX_LIMIT"]
    if limit > max_limit:
        raise ValidationError("Invalid request.", fields={"limit": [f"Must be at most {max_limit}."]})

    query = SearchQuery(
        suburb=params["suburb"],
        age_stage=params["age_stage"],
        behaviour_issue=params["behaviour_issue"],
        radius_km=params["radius_km"],
        page=params["page"],
        limit=limit,
    )
    result = run_public_search(SqlSearchStore(db.session), query)

    return {
        "success": True,
        "data": {
            "results": BusinessRecordSchema(many=True).dump(result.results),
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
            "has_more": result.has_more,
        },
        "meta": result.meta,
    }, 200
