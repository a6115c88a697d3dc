"""
Cursor-chasing aggregation over Lever list endpoints.

Lever list endpoints answer ``{"data": [...], "hasNext": bool, "next": "<cursor>"}``
and accept the cursor back as the ``offset`` query parameter. ``PageAggregator``
drives the executor across those cursors until one of these stop conditions holds:

- NO_MORE_PAGES: the upstream reported no further page
- MISSING_CURSOR: the upstream reported more pages but sent no cursor to reach them
- MAX_ITEMS: the caller's requested number of items was collected
- MAX_CALLS: the upstream call ceiling was reached
- TIMEOUT: the wall-clock budget for the whole collection ran out

The reason is always reported back, so a partial list is labelled as such instead
of being presented as exhaustive.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from lever.errors import MalformedResponseError
from lever.executor import RequestDescriptor, RequestExecutor

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
DEFAULT_PAGE_DELAY_SECONDS = 0.2
DEFAULT_MAX_CALLS = 45
DEFAULT_TIMEOUT_SECONDS = 25.0

ItemPredicate = Callable[[Dict[str, Any]], bool]


class ExhaustedReason(str, Enum):
    """Why an aggregation stopped."""

    NONE = "NONE"
    MAX_ITEMS = "MAX_ITEMS"
    MAX_CALLS = "MAX_CALLS"
    TIMEOUT = "TIMEOUT"
    NO_MORE_PAGES = "NO_MORE_PAGES"
    MISSING_CURSOR = "MISSING_CURSOR"


@dataclass(frozen=True)
class PageQuery:
    """
    A list query and the cursor it is positioned at.

    The path, the filter parameters and the cursor travel together: a cursor is
    only meaningful for the exact parameters it was issued under, so the only way
    to move to another page is ``at(cursor)`` on the same query.
    """

    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    cursor: Optional[str] = None

    def at(self, cursor: Optional[str]) -> "PageQuery":
        return replace(self, cursor=cursor)

    def page(self, limit: int = PAGE_SIZE) -> RequestDescriptor:
        """Descriptor for the page this query is positioned at."""
        params: Dict[str, Any] = dict(self.params)
        params["limit"] = limit
        if self.cursor:
            params["offset"] = self.cursor
        return RequestDescriptor(method="GET", path=self.path, params=params)


@dataclass
class Page:
    """
    One decoded list response.

    ``upstream_has_next`` is Lever's own ``hasNext``; it can be true while
    ``next_cursor`` is None when the cursor is missing from the body.
    """

    items: List[Dict[str, Any]]
    next_cursor: Optional[str]
    upstream_has_next: bool = False

    @property
    def has_next(self) -> bool:
        return self.next_cursor is not None


def parse_page(body: Any, path: str) -> Page:
    """
    Decode a list response body.

    Raises:
        MalformedResponseError: If ``data`` is present but not a list
    """
    if not isinstance(body, dict):
        raise MalformedResponseError(
            f"Expected a JSON object from Lever list endpoint {path}, got {type(body).__name__}",
            path=path,
        )

    data = body.get("data")
    if data is None:
        data = []
    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Expected 'data' to be a list from Lever list endpoint {path}, got {type(data).__name__}",
            path=path,
        )

    cursor = body.get("next") or None
    has_next = bool(body.get("hasNext", cursor is not None))
    if has_next and cursor is None:
        logger.warning(f"Lever list endpoint {path} reported hasNext without a cursor")
    return Page(items=data, next_cursor=cursor if has_next else None, upstream_has_next=has_next)


@dataclass
class AggregationResult:
    """
    Outcome of one aggregation.

    Attributes:
        items: Collected items, in upstream order, after filtering
        api_calls_made: Upstream page calls issued
        items_examined: Items looked at before filtering
        exhausted_reason: Why collection stopped
        next_cursor: Cursor to resume from under the same query. When MAX_ITEMS cut a
            page short this is the cursor of that page, so resuming re-reads it
            (None when exhausted)
        elapsed_seconds: Wall-clock duration of the collection
    """

    items: List[Dict[str, Any]] = field(default_factory=list)
    api_calls_made: int = 0
    items_examined: int = 0
    exhausted_reason: ExhaustedReason = ExhaustedReason.NONE
    next_cursor: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def may_be_incomplete(self) -> bool:
        return self.exhausted_reason != ExhaustedReason.NO_MORE_PAGES


class PageAggregator:
    """
    Collects items across pages of one query.

    Args:
        executor: Executor every page request goes through
        page_size: Items requested per page (Lever allows at most 100)
        page_delay: Extra pause before every page after the first, in seconds
        max_calls: Default ceiling on upstream page calls per collection
        timeout: Default wall-clock budget per collection, in seconds
        clock: Monotonic time source; injectable for tests
        sleep: Coroutine used for the inter-page pause; injectable for tests
    """

    def __init__(
        self,
        executor: RequestExecutor,
        page_size: int = PAGE_SIZE,
        page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
        max_calls: int = DEFAULT_MAX_CALLS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if page_size < 1 or page_size > PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {PAGE_SIZE}, got {page_size}")
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        self.executor = executor
        self.page_size = page_size
        self.page_delay = page_delay
        self.max_calls = max_calls
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    async def fetch_page(self, query: PageQuery, limit: Optional[int] = None) -> Page:
        """Fetch the single page ``query`` is positioned at."""
        descriptor = query.page(limit or self.page_size)
        body = await self.executor.execute(descriptor)
        return parse_page(body, query.path)

    async def collect(
        self,
        query: PageQuery,
        max_items: Optional[int] = None,
        predicate: Optional[ItemPredicate] = None,
        max_calls: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AggregationResult:
        """
        Follow cursors from ``query`` until a stop condition holds.

        Args:
            query: Query to collect, optionally positioned at a starting cursor
            max_items: Stop once this many items survived the predicate (None = no limit)
            predicate: In-memory filter applied to every item examined
            max_calls: Override for the call ceiling of this collection
            timeout: Override for the wall-clock budget of this collection

        Returns:
            AggregationResult with items and stop reason
        """
        max_calls = max_calls if max_calls is not None else self.max_calls
        timeout = timeout if timeout is not None else self.timeout

        result = AggregationResult()
        started = self._clock()
        current = query

        if max_items is not None and max_items <= 0:
            result.exhausted_reason = ExhaustedReason.MAX_ITEMS
            result.next_cursor = query.cursor
            return result

        while True:
            if result.api_calls_made > 0:
                if self.page_delay > 0:
                    await self._sleep(self.page_delay)
                if self._clock() - started >= timeout:
                    result.exhausted_reason = ExhaustedReason.TIMEOUT
                    break

            page = await self.fetch_page(current)
            result.api_calls_made += 1

            truncated = False
            for index, item in enumerate(page.items):
                result.items_examined += 1
                if predicate is None or predicate(item):
                    result.items.append(item)
                if max_items is not None and len(result.items) >= max_items:
                    truncated = index < len(page.items) - 1
                    break

            result.next_cursor = current.cursor if truncated else page.next_cursor
            elapsed = self._clock() - started

            logger.debug(
                f"Page {result.api_calls_made} of {query.path}: {len(page.items)} items, "
                f"{len(result.items)} kept, has_next={page.has_next}"
            )

            if not page.has_next and not truncated:
                if page.upstream_has_next:
                    result.exhausted_reason = ExhaustedReason.MISSING_CURSOR
                else:
                    result.exhausted_reason = ExhaustedReason.NO_MORE_PAGES
                break
            if max_items is not None and len(result.items) >= max_items:
                result.exhausted_reason = ExhaustedReason.MAX_ITEMS
                break
            if result.api_calls_made >= max_calls:
                result.exhausted_reason = ExhaustedReason.MAX_CALLS
                break
            if elapsed >= timeout:
                result.exhausted_reason = ExhaustedReason.TIMEOUT
                break

            current = current.at(page.next_cursor)

        result.elapsed_seconds = self._clock() - started
        if result.may_be_incomplete:
            logger.info(
                f"Aggregation of {query.path} stopped early ({result.exhausted_reason.value}) "
                f"after {result.api_calls_made} calls with {len(result.items)} items"
            )
        return result
