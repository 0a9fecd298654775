"""Service layer for the Dog Trainers Directory.

This package contains business logic that sits between the
Flask route handlers and the database models. Separating
services into their own modules keeps the routes thin and makes
the search pipeline and the featured queue easy to unit test.

Nothing in this package should perform any HTTP handling.
Instead, services return simple Python data structures or
database objects, and raise exceptions defined in
``trainer_directory.errors`` when something goes wrong.
"""

from .search_service import SearchQuery, SearchResult, run_public_search
from .search_store import SearchStore, SqlSearchStore
from .featured_queue_service import (
    add_to_queue,
    cancel_placement,
    expire_placements,
    promote_from_queue,
    queue_position,
    queue_statistics,
)
from .soft_delete_service import soft_delete_business

__all__ = [
    "SearchQuery",
    "SearchResult",
    "run_public_search",
    "SearchStore",
    "SqlSearchStore",
    "add_to_queue",
    "cancel_placement",
    "expire_placements",
    "promote_from_queue",
    "queue_position",
    "queue_statistics",
    "soft_delete_business",
]
