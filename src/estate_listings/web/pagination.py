"""Pagination state and page-control layout."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from estate_listings.logging import get_logger
from estate_listings.models import DEFAULT_PAGE_LIMIT, Pagination

logger = get_logger(__name__)


def page_items(current: int, total_pages: int, window: int = 1) -> list[int | None]:
    """Page numbers to show in the page controls.

    The first and last pages are always shown, plus ``window`` pages either
    side of the current one. Each gap collapses into a single ``None``
    (rendered as an ellipsis).

    E.g. current=6, total_pages=12 -> [1, None, 5, 6, 7, None, 12]
    """
    if total_pages <= 0:
        return []
    current = max(1, min(current, total_pages))
    shown = {1, total_pages}
    shown.update(
        range(max(1, current - window), min(total_pages, current + window) + 1)
    )

    items: list[int | None] = []
    previous = 0
    for page in sorted(shown):
        if page - previous > 1:
            items.append(None)
        items.append(page)
        previous = page
    return items


@dataclass
class PaginationController:
    """Tracks ``{page, limit, total, total_pages}`` for the listing grid."""

    limit: int = DEFAULT_PAGE_LIMIT
    page: int = 1
    total: int = 0
    total_pages: int = 0

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def can_go_to(self, page: int) -> bool:
        return 1 <= page <= self.total_pages

    def set_page(self, page: int) -> int:
        """Move to ``page``.

        Raises:
            ValueError: If ``page`` is outside ``1..total_pages``; state is unchanged.
        """
        if not self.can_go_to(page):
            raise ValueError(f"Page {page} out of range 1..{self.total_pages}")
        self.page = page
        return page

    def reset(self) -> None:
        """Back to the first page (after any search or filter change)."""
        self.page = 1

    def apply(self, pagination: Pagination) -> None:
        """Record the pagination block of a search response."""
        self.total = pagination.total
        self.total_pages = pagination.total_pages
        self.limit = pagination.limit
        if self.total_pages and self.page > self.total_pages:
            logger.debug("page_out_of_range", page=self.page, total_pages=self.total_pages)
            self.page = 1

    def page_items(self, window: int = 1) -> list[int | None]:
        return page_items(self.page, self.total_pages, window)


class SearchDebouncer:
    """Run a callback once typing has paused for ``delay`` seconds.

    Each ``push`` cancels the pending call and restarts the timer, so a burst
    of keystrokes produces a single call with the final text.
    """

    def __init__(self, delay: float, callback: Callable[[str], Awaitable[None]]) -> None:
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def push(self, text: str) -> None:
        """Register a keystroke; must be called from a running event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire_after_delay(text))

    async def _fire_after_delay(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        await self._callback(text)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the pending call, if any, to finish."""
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
