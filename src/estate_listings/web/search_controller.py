"""Drives the listing page: filter panel + pagination + listing service."""

from __future__ import annotations

import itertools

from estate_listings.listings import ListingService
from estate_listings.logging import get_logger
from estate_listings.models import FilterCriteria, FilterStats, SearchResult
from estate_listings.results import Ok
from estate_listings.web.filters import ChipKey, FilterPanelState
from estate_listings.web.pagination import PaginationController, SearchDebouncer

logger = get_logger(__name__)


class SearchController:
    """Issues searches for the current panel state and page.

    Requests are numbered as they are issued. A response is applied only if
    no newer request has been issued since, so a slow stale response can
    never overwrite a newer one.
    """

    def __init__(
        self,
        service: ListingService,
        panel: FilterPanelState | None = None,
        pagination: PaginationController | None = None,
        *,
        debounce_seconds: float = 0.3,
    ) -> None:
        self._service = service
        self.panel = panel or FilterPanelState()
        self.pagination = pagination or PaginationController()
        self.debouncer = SearchDebouncer(debounce_seconds, self._on_search_settled)
        self._sequence = itertools.count(1)
        self._latest_request = 0
        self.result: SearchResult | None = None
        self.error: str | None = None
        self.last_criteria: FilterCriteria | None = None

    @property
    def stats(self) -> FilterStats:
        return self.result.stats if self.result else FilterStats()

    def current_criteria(self) -> FilterCriteria:
        return self.panel.to_criteria(page=self.pagination.page, limit=self.pagination.limit)

    async def _fetch(self, criteria: FilterCriteria) -> bool:
        request_id = next(self._sequence)
        self._latest_request = request_id
        self.last_criteria = criteria
        outcome = await self._service.search(criteria)

        if request_id != self._latest_request:
            logger.debug(
                "stale_search_response_dropped",
                request_id=request_id,
                latest=self._latest_request,
            )
            return False

        if isinstance(outcome, Ok):
            self.result = outcome.value
            self.error = None
            self.pagination.apply(outcome.value.pagination)
        else:
            self.error = outcome.message
        return True

    async def refresh(self) -> bool:
        """Re-run the search for the current page.

        Returns:
            False if the response was superseded by a newer request.
        """
        return await self._fetch(self.current_criteria())

    async def apply_filters(self) -> bool:
        """Search again from page 1 after any filter change."""
        self.debouncer.cancel()
        self.pagination.reset()
        return await self.refresh()

    async def go_to_page(self, page: int) -> bool:
        """Fetch another page. Raises ValueError for out-of-range pages."""
        self.pagination.set_page(page)
        return await self.refresh()

    async def remove_filter(self, key: ChipKey) -> bool:
        """Drop one active filter chip and search again from page 1."""
        self.debouncer.cancel()
        self.pagination.reset()
        criteria = self.panel.remove_filter(key)
        return await self._fetch(criteria.model_copy(update={"limit": self.pagination.limit}))

    def open_panel(self) -> None:
        """Open the filter panel, seeding its ranges from the latest stats."""
        self.panel.open(self.stats)

    async def reset_filters(self) -> bool:
        self.panel.reset(self.stats)
        return await self.apply_filters()

    def type_search(self, text: str) -> None:
        """Record a keystroke in the search box; the search runs once typing settles."""
        self.panel.set_search(text)
        self.debouncer.push(text)

    async def _on_search_settled(self, text: str) -> None:
        self.pagination.reset()
        await self.refresh()
