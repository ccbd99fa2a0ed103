"""Database storage for listings."""

from estate_listings.db.search_queries import SearchQueryService, build_search_predicates
from estate_listings.db.storage import PropertyStorage

__all__ = ["PropertyStorage", "SearchQueryService", "build_search_predicates"]
