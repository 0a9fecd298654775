"""Routes for browsing reference data.

Councils and suburbs are loaded by administrators and are read-only
through the API. Both listings are public, ordered by name and
paginated with ``page`` and ``limit``.
"""
from __future__ import annotations

from flask import Blueprint, request

from ..errors import load_or_raise
from ..models import Council, Suburb
from ..schemas import CouncilQuerySchema, CouncilSchema, SuburbQuerySchema, SuburbSchema

reference_bp = Blueprint("reference", __name__)


def _page(query, page: int, limit: int, schema) -> dict:
    total = query.count()
    offset = (page - 1) * limit
    items = query.limit(limit).offset(offset).all()
    return {
        "items": schema.dump(items),
        "total": total,
        "page": page,
        "limit": limit,
        "has_more": offset + limit < total,
    }


@reference_bp.route("/councils", methods=["GET"])
def list_councils() -> tuple[dict, int]:
    """List councils, optionally filtered by ``region``."""
    params = load_or_raise(CouncilQuerySchema(), request.args.to_dict())
    query = Council.query
    if params["region"] is not None:
        query = query.filter_by(region=params["region"])
    query = query.order_by(Council.name.asc(), Council.id.asc())
    return _page(query, params["page"], params["limit"], CouncilSchema(many=True)), 200


@reference_bp.route("/suburbs", methods=["GET"])
def list_suburbs() -> tuple[dict, int]:
    """List suburbs filtered by ``council_id``, ``region`` or ``postcode``."""
    params = load_or_raise(SuburbQuerySchema(), request.args.to_dict())
    query = Suburb.query
    if params["council_id"] is not None:
        query = query.filter_by(council_id=params["council_id"])
    if params["region"] is not None:
        query = query.filter_by(region=params["region"])
    if params["postcode"] is not None:
        query = query.filter_by(postcode=params["postcode"])
    query = query.order_by(Suburb.name.asc(), Suburb.id.asc())
    return _page(query, params["page"], params["limit"], SuburbSchema(many=True)), 200
