"""
Pagination Engine - Lazy, cancellable page sequences.

A PageCursor pulls one page per next() call from a caller-supplied
fetch function, so no upstream request happens until a page is asked
for. The sequence ends on an empty page, a short page, a page flagged
as last, the max_pages limit, an error, or close().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

from src.flight_analytics.exceptions import PaginationClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of results.

    Attributes:
        records: Items on this page, in source order.
        offset: Offset this page was requested at.
        next_offset: Offset of the following page, when the source says so.
        is_last: Source reports there is nothing after this page.
        fetched: Items the source returned, counted before any were
            dropped as unreadable; None means len(records).
        malformed: Items dropped from this page as unreadable.
    """

    records: Tuple[T, ...]
    offset: int
    next_offset: Optional[int] = None
    is_last: bool = False
    fetched: Optional[int] = None
    malformed: int = 0

    def __len__(self) -> int:
        return len(self.records)

    @property
    def source_size(self) -> int:
        """Number of items the source returned for this page."""
        return self.fetched if self.fetched is not None else len(self.records)


# (offset, limit) -> Page
FetchPage = Callable[[int, int], Awaitable[Page[T]]]


class PageCursor(Generic[T]):
    """
    Explicit cursor over a paginated source.

    Usage:
        >>> async with paginate(fetch_page, page_size=50) as cursor:
        ...     async for page in cursor:
        ...         handle(page.records)

    Attributes:
        calls_made: Upstream fetches started so far.
        pages_yielded: Pages handed to the consumer so far.
        malformed_skipped: Unreadable items dropped across all fetched pages.
    """

    def __init__(
        self,
        fetch_page: FetchPage[T],
        page_size: int,
        start_offset: int = 0,
        max_pages: Optional[int] = None,
    ) -> None:
        self._fetch_page = fetch_page
        self._page_size = page_size
        self._offset = start_offset
        self._max_pages = max_pages
        self._task: Optional["asyncio.Future[Page[T]]"] = None
        self._exhausted = False
        self._closed = False
        self.calls_made = 0
        self.pages_yielded = 0
        self.malformed_skipped = 0

    @property
    def offset(self) -> int:
        """Offset the next page will be requested at."""
        return self._offset

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def exhausted(self) -> bool:
        """True once the sequence has ended for any reason."""
        return self._exhausted or self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self) -> Optional[Page[T]]:
        """
        Fetch and return the next page.

        Returns:
            The next page, or None once the sequence has ended.

        Raises:
            PaginationClosedError: If the cursor was closed before the call.
            Exception: Whatever the fetch function raised; the sequence
                ends and later calls return None.
        """
        if self._closed:
            raise PaginationClosedError()
        if self._exhausted:
            return None
        if self._max_pages is not None and self.calls_made >= self._max_pages:
            logger.debug("Page limit %d reached at offset %d", self._max_pages, self._offset)
            self._exhausted = True
            return None

        offset = self._offset
        logger.debug("Fetching page at offset %d (limit %d)", offset, self._page_size)
        self.calls_made += 1
        self._task = asyncio.ensure_future(self._fetch_page(offset, self._page_size))
        try:
            page = await self._task
        except asyncio.CancelledError:
            self._exhausted = True
            if self._closed:
                return None
            raise
        except Exception:
            self._exhausted = True
            raise
        finally:
            self._task = None

        self.malformed_skipped += page.malformed
        size = page.source_size
        if size == 0:
            self._exhausted = True
            return None

        self.pages_yielded += 1
        if page.is_last or size < self._page_size:
            self._exhausted = True
        else:
            self._offset = page.next_offset if page.next_offset is not None else offset + size
        return page

    async def close(self) -> None:
        """
        End the sequence; no upstream call happens afterwards.

        A fetch still in flight is cancelled. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        task = self._task
        if task is not None and not task.done():
            logger.debug("Cancelling in-flight page fetch at offset %d", self._offset)
            task.cancel()
            await asyncio.wait([task])

    def __aiter__(self) -> "PageCursor[T]":
        return self

    async def __anext__(self) -> Page[T]:
        if self._closed:
            raise StopAsyncIteration
        page = await self.next()
        if page is None:
            raise StopAsyncIteration
        return page

    async def __aenter__(self) -> "PageCursor[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def paginate(
    fetch_page: FetchPage[T],
    page_size: int,
    start_offset: int = 0,
    max_pages: Optional[int] = None,
) -> PageCursor[T]:
    """
    Create a lazy cursor over a paginated source.

    Args:
        fetch_page: Coroutine function (offset, limit) -> Page.
        page_size: Records requested per page.
        start_offset: Offset of the first page.
        max_pages: Stop after this many upstream calls (None = unlimited).

    Returns:
        PageCursor; nothing is fetched until the first next().

    Raises:
        ValueError: On a non-positive page_size or negative offset/limit.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be > 0, got {page_size}")
    if start_offset < 0:
        raise ValueError(f"start_offset must be >= 0, got {start_offset}")
    if max_pages is not None and max_pages < 0:
        raise ValueError(f"max_pages must be >= 0, got {max_pages}")
    return PageCursor(fetch_page, page_size, start_offset=start_offset, max_pages=max_pages)


async def collect_records(cursor: PageCursor[T]) -> List[T]:
    """Drain a cursor and return every record, in page order."""
    records: List[T] = []
    async for page in cursor:
        records.extend(page.records)
    return records
