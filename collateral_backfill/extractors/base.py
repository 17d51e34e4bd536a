"""Paged collection of remote records."""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
import logging

from ..exceptions import PaginationError
from ..models.record import Record

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page returned by a fetch function."""
    records: List[Record] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[Any] = None


# (cursor, filter params) -> Page. The first call receives cursor=None.
FetchPage = Callable[[Optional[Any], Dict[str, Any]], Awaitable[Page]]


class PagedCollector:
    """
    Collects every record of a paginated remote collection.

    The fetch function decides what a cursor is (page number, continuation
    token...) and how big a page is. The collector only follows
    ``next_cursor`` while ``has_more`` is set.

    There is no retry here: a failing fetch propagates to the caller. This
    runs before any mutation, so nothing is left half-migrated.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        filters: Optional[Dict[str, Any]] = None,
        label: str = ""
    ):
        """
        Initialize the collector.

        Args:
            fetch_page: Async function returning one Page per call
            filters: Filter parameters passed unchanged to every fetch
            label: Name used in log messages
        """
        self.fetch_page = fetch_page
        self.filters = dict(filters or {})
        self.label = label or "records"

    async def stream(self) -> AsyncIterator[List[Record]]:
        """
        Yield records page by page.

        Yields:
            Lists of records, in the order the backend returned them
        """
        cursor: Optional[Any] = None
        pages = 0

        while True:
            page = await self.fetch_page(cursor, dict(self.filters))
            pages += 1

            if page.records:
                yield page.records

            if not page.has_more:
                break

            if page.next_cursor is None or page.next_cursor == cursor:
                raise PaginationError(
                    f"{self.label}: page {pages} reports more results "
                    f"but no new cursor (cursor={cursor!r})"
                )
            cursor = page.next_cursor

        logger.debug(f"Fetched {pages} page(s) of {self.label}")

    async def collect(self) -> List[Record]:
        """
        Collect the complete result set into memory.

        Returns:
            All matching records, in page order (empty when there are none)
        """
        records: List[Record] = []
        async for batch in self.stream():
            records.extend(batch)

        logger.info(f"Collected {len(records)} {self.label}")
        return records
