"""Tests for SearchController sequencing, paging and debounced search."""

import asyncio

import pytest

from estate_listings.models import FilterCriteria, FilterStats, Pagination, SearchResult
from estate_listings.results import ErrorKind, Failure, Ok, Result
from estate_listings.web.filters import FilterPanelState
from estate_listings.web.pagination import PaginationController
from estate_listings.web.search_controller import SearchController

STATS = FilterStats(min_price=100, max_price=1000, min_size=10, max_size=90)


def _result(criteria: FilterCriteria, total: int = 30) -> SearchResult:
    return SearchResult(
        items=[],
        stats=STATS,
        pagination=Pagination(
            total=total,
            total_pages=-(-total // criteria.limit),
            current_page=criteria.page,
            limit=criteria.limit,
        ),
    )


class FakeListingService:
    """Records criteria; a gate per call lets tests control completion order."""

    def __init__(self) -> None:
        self.calls: list[FilterCriteria] = []
        self.gates: list[asyncio.Event] = []
        self.hold = False
        self.fail = False

    async def search(self, criteria: FilterCriteria) -> Result[SearchResult]:
        self.calls.append(criteria)
        gate = asyncio.Event()
        self.gates.append(gate)
        if self.hold:
            await gate.wait()
        if self.fail:
            return Failure(ErrorKind.UPSTREAM_FAILURE, "Failed to fetch properties")
        return Ok(_result(criteria))


@pytest.fixture
def service() -> FakeListingService:
    return FakeListingService()


@pytest.fixture
def controller(service: FakeListingService) -> SearchController:
    return SearchController(
        service,  # type: ignore[arg-type]
        FilterPanelState(),
        PaginationController(limit=10),
        debounce_seconds=0.01,
    )


class TestSearchController:
    @pytest.mark.asyncio
    async def test_refresh_applies_response(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        assert await controller.refresh() is True
        assert controller.result is not None
        assert controller.pagination.total_pages == 3
        assert controller.stats == STATS
        assert service.calls[0].page == 1

    @pytest.mark.asyncio
    async def test_stale_response_dropped(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        service.hold = True
        slow = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)

        controller.panel.set_bhk(3)
        fast = asyncio.create_task(controller.apply_filters())
        await asyncio.sleep(0)
        service.gates[1].set()
        assert await fast is True
        applied = controller.last_criteria

        service.gates[0].set()
        assert await slow is False
        assert controller.last_criteria == applied
        assert applied is not None and applied.bhk == 3

    @pytest.mark.asyncio
    async def test_failure_sets_error(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        service.fail = True
        await controller.refresh()
        assert controller.error == "Failed to fetch properties"
        assert controller.result is None

    @pytest.mark.asyncio
    async def test_go_to_page(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        await controller.refresh()
        await controller.go_to_page(2)
        assert service.calls[-1].page == 2
        assert service.calls[-1].skip == 10

    @pytest.mark.asyncio
    async def test_go_to_invalid_page(self, controller: SearchController) -> None:
        await controller.refresh()
        with pytest.raises(ValueError):
            await controller.go_to_page(9)
        assert controller.pagination.page == 1

    @pytest.mark.asyncio
    async def test_filter_change_resets_page(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        await controller.refresh()
        await controller.go_to_page(3)
        controller.panel.set_bhk(2)
        await controller.apply_filters()
        assert service.calls[-1].page == 1
        assert service.calls[-1].bhk == 2

    @pytest.mark.asyncio
    async def test_remove_filter(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        controller.panel.set_bhk(2)
        controller.panel.set_search("lake")
        await controller.refresh()
        await controller.go_to_page(2)

        await controller.remove_filter("bhk")

        last = service.calls[-1]
        assert last.page == 1
        assert last.bhk is None
        assert last.search == "lake"
        assert last.limit == 10

    @pytest.mark.asyncio
    async def test_open_panel_uses_latest_stats(self, controller: SearchController) -> None:
        await controller.refresh()
        controller.open_panel()
        assert controller.panel.price_range.min == 100
        assert controller.panel.price_range.max == 1000

    @pytest.mark.asyncio
    async def test_reset_filters(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        await controller.refresh()
        controller.panel.set_price_range(200, 300)
        await controller.reset_filters()
        last = service.calls[-1]
        assert last.min_price is None
        assert last.max_price is None

    @pytest.mark.asyncio
    async def test_typing_debounced_into_one_search(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        await controller.refresh()
        await controller.go_to_page(2)
        before = len(service.calls)

        for text in ("p", "pu", "pun", "pune"):
            controller.type_search(text)
        await controller.debouncer.wait()

        assert len(service.calls) == before + 1
        assert service.calls[-1].search == "pune"
        assert service.calls[-1].page == 1

    @pytest.mark.asyncio
    async def test_apply_filters_cancels_pending_search(
        self, controller: SearchController, service: FakeListingService
    ) -> None:
        controller.type_search("pune")
        await controller.apply_filters()
        await asyncio.sleep(0.03)

        assert len(service.calls) == 1
        assert service.calls[0].search == "pune"
