"""Search query service: criteria -> predicates -> page, stats and pagination."""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING

from estate_listings.db.predicates import AnyOf, Contains, Equals, Predicate, Range
from estate_listings.logging import get_logger
from estate_listings.models import (
    FilterCriteria,
    FilterOptions,
    FilterStats,
    Pagination,
    PriceBucket,
    Property,
    SearchResult,
)
from estate_listings.utils.currency import format_inr

if TYPE_CHECKING:
    from estate_listings.db.storage import PropertyStorage

logger = get_logger(__name__)


def build_search_predicates(criteria: FilterCriteria) -> list[Predicate]:
    """Translate search criteria into storage predicates.

    Free text matches name, address, description or location. A location
    filter joins that same OR-group rather than narrowing it, so a listing in
    the requested location matches even when the free text does not.

    Args:
        criteria: Validated search criteria.

    Returns:
        Predicates to AND together.
    """
    predicates: list[Predicate] = []

    text_group: list[Predicate] = []
    if criteria.search:
        text_group.extend(
            Contains(column, criteria.search)
            for column in ("name", "address", "description", "location")
        )
    if criteria.location:
        text_group.append(Contains("location", criteria.location))
    if text_group:
        predicates.append(AnyOf(tuple(text_group)))

    if criteria.type is not None:
        predicates.append(Equals("type", criteria.type.value))
    if criteria.min_price is not None or criteria.max_price is not None:
        predicates.append(Range("price", criteria.min_price, criteria.max_price))
    if criteria.min_size is not None or criteria.max_size is not None:
        predicates.append(Range("size", criteria.min_size, criteria.max_size))
    if criteria.bhk is not None:
        predicates.append(Equals("bhk", criteria.bhk))

    return predicates


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` rows (0 when there are none)."""
    return math.ceil(total / limit) if total > 0 else 0


def build_price_buckets(min_price: float, max_price: float) -> list[PriceBucket]:
    """Four landing-page price ranges derived from the collection's price bounds."""
    low = min_price * 2
    mid = max_price / 2
    return [
        PriceBucket(label=f"{format_inr(0)} - {format_inr(low)}", min_price=0, max_price=low),
        PriceBucket(label=f"{format_inr(low)} - {format_inr(mid)}", min_price=low, max_price=mid),
        PriceBucket(
            label=f"{format_inr(mid)} - {format_inr(max_price)}",
            min_price=mid,
            max_price=max_price,
        ),
        PriceBucket(label=f"{format_inr(max_price)}+", min_price=max_price),
    ]


class SearchQueryService:
    """Read-only queries behind the listing pages."""

    def __init__(self, storage: PropertyStorage) -> None:
        self._storage = storage

    async def search(self, criteria: FilterCriteria) -> SearchResult:
        """Run a paginated search and compute collection-wide stats.

        The page, count, bounds and both distinct lookups are issued together
        and joined; if any of them fails the exception propagates and no
        partial result is returned.

        Args:
            criteria: Validated search criteria.

        Returns:
            Items for the requested page, stats and pagination.
        """
        predicates = build_search_predicates(criteria)

        items, total, bounds, types, bhks = await asyncio.gather(
            self._storage.find_many(predicates, skip=criteria.skip, take=criteria.limit),
            self._storage.count(predicates),
            self._storage.aggregate_bounds(),
            self._storage.find_distinct("type"),
            self._storage.find_distinct("bhk"),
        )

        stats = FilterStats(
            min_price=bounds["min_price"] or 0,
            max_price=bounds["max_price"] or 0,
            min_size=bounds["min_size"] or 0,
            max_size=bounds["max_size"] or 0,
            types=sorted(str(t) for t in types),
            bhks=sorted(int(b) for b in bhks),
        )
        pagination = Pagination(
            total=total,
            total_pages=total_pages(total, criteria.limit),
            current_page=criteria.page,
            limit=criteria.limit,
        )

        logger.debug(
            "search_complete",
            predicates=len(predicates),
            page=criteria.page,
            returned=len(items),
            total=total,
        )
        return SearchResult(items=items, stats=stats, pagination=pagination)

    async def get_filter_options(self) -> FilterOptions:
        """Locations, types and price buckets for the landing-page search box."""
        locations, types, bounds = await asyncio.gather(
            self._storage.find_distinct("location"),
            self._storage.find_distinct("type"),
            self._storage.aggregate_bounds(),
        )
        min_price, max_price = bounds["min_price"], bounds["max_price"]
        buckets = (
            build_price_buckets(min_price, max_price)
            if min_price is not None and max_price is not None
            else []
        )
        return FilterOptions(
            locations=[str(loc) for loc in locations],
            types=[str(t) for t in types],
            price_ranges=buckets,
        )

    async def get_recommended(self, limit: int) -> list[Property]:
        """Recommended listings, newest first."""
        return await self._storage.find_many([Equals("is_recommended", 1)], take=limit)
