"""
Typed facade over the Lever REST API.

``LeverClient`` owns one token bucket, one request queue and one httpx client.
Its methods only build paths, parameters and bodies: every call goes through
``RequestExecutor`` (single requests) or ``PageAggregator`` (collections), so no
resource method carries its own retry, throttling or pagination logic.

Single-resource reads pass through ``classify_resource``, the one place that
decides whether a body really is a resource. A ``{"data": {}}`` or
``{"data": null}`` answer is a miss reported as an empty success and raises
``EmptyResourceError``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from lever.errors import EmptyResourceError, LeverConfigError, MalformedResponseError
from lever.executor import RequestDescriptor, RequestExecutor, RetryPolicy
from lever.filters import OpportunityFilter, PostingFilter, RequisitionFilter
from lever.pagination import (
    DEFAULT_MAX_CALLS,
    DEFAULT_PAGE_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PAGE_SIZE,
    AggregationResult,
    ItemPredicate,
    PageAggregator,
    PageQuery,
)
from lever.rate_limiter import DEFAULT_CAPACITY, DEFAULT_REFILL_PER_SECOND, TokenBucket
from lever.request_queue import RequestQueue

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.lever.co/v1"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0


class ResourceStatus(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    MALFORMED = "MALFORMED"


@dataclass
class ResourceResult:
    """Classification of a single-resource response body."""

    status: ResourceStatus
    data: Optional[Dict[str, Any]] = None
    detail: str = ""


def classify_resource(body: Any) -> ResourceResult:
    """
    Decide whether a single-resource body carries an identifiable resource.

    - ``OK``: ``data`` is an object with an ``id``
    - ``NOT_FOUND``: ``data`` is missing, null, empty, or has no ``id``
    - ``MALFORMED``: the body or ``data`` is not an object
    """
    if not isinstance(body, dict):
        return ResourceResult(ResourceStatus.MALFORMED, detail=f"body is {type(body).__name__}")

    data = body.get("data")
    if data is None or data == {}:
        return ResourceResult(ResourceStatus.NOT_FOUND, detail="empty data")
    if not isinstance(data, dict):
        return ResourceResult(ResourceStatus.MALFORMED, detail=f"data is {type(data).__name__}")
    if not data.get("id"):
        return ResourceResult(ResourceStatus.NOT_FOUND, detail="data has no id")
    return ResourceResult(ResourceStatus.OK, data=data)


def _segment(value: str) -> str:
    """Quote a caller-supplied id for use as one path segment."""
    return quote(str(value), safe="")


def _perform_as(perform_as: Optional[str]) -> Optional[Dict[str, Any]]:
    return {"perform_as": perform_as} if perform_as else None


class LeverClient:
    """
    Lever API client.

    One instance per API credential. All requests made through one instance share
    its rate limit and are issued strictly in submission order.

    Args:
        api_key: Lever API key, sent as a bearer token
        base_url: API root
        capacity: Token bucket burst size
        refill_rate: Token bucket refill, tokens per second
        retry_policy: Retry ceilings and backoff shape
        http_timeout: Per-attempt HTTP timeout in seconds
        page_delay: Extra pause between pages of one aggregation
        max_calls: Default page-call ceiling per aggregation
        aggregation_timeout: Default wall-clock budget per aggregation
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        clock: Monotonic clock shared by the limiter and the aggregator
        sleep: Sleep coroutine shared by the limiter, the executor and the aggregator
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        capacity: int = DEFAULT_CAPACITY,
        refill_rate: float = DEFAULT_REFILL_PER_SECOND,
        retry_policy: Optional[RetryPolicy] = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
        max_calls: int = DEFAULT_MAX_CALLS,
        aggregation_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not api_key:
            raise LeverConfigError("A Lever API key is required")

        self.base_url = base_url.rstrip("/")
        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=http_timeout,
            transport=transport,
            follow_redirects=True,
        )
        self.limiter = TokenBucket(capacity, refill_rate, clock=clock, sleep=sleep)
        self.queue = RequestQueue()
        self.executor = RequestExecutor(
            self.http, self.limiter, self.queue, policy=retry_policy, sleep=sleep
        )
        self.aggregator = PageAggregator(
            self.executor,
            page_delay=page_delay,
            max_calls=max_calls,
            timeout=aggregation_timeout,
            clock=clock,
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, cfg: Any, **overrides: Any) -> "LeverClient":
        """Build a client from a ``config.Config`` instance."""
        if not cfg.lever_api_key:
            raise LeverConfigError("LEVER_API_KEY is not set")
        kwargs: Dict[str, Any] = dict(
            api_key=cfg.lever_api_key,
            base_url=cfg.lever_api_base_url,
            capacity=cfg.rate_limit_capacity,
            refill_rate=cfg.rate_limit_refill_per_second,
            retry_policy=RetryPolicy(jitter=cfg.retry_jitter),
            http_timeout=cfg.http_timeout_seconds,
            page_delay=cfg.page_delay_seconds,
            max_calls=cfg.max_api_calls,
            aggregation_timeout=cfg.aggregation_timeout_seconds,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    async def aclose(self) -> None:
        """Stop the queue worker and close the HTTP connection pool."""
        await self.queue.close()
        await self.http.aclose()

    # Plumbing

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        return await self.executor.execute(
            RequestDescriptor(method=method, path=path, params=params, json_body=body)
        )

    async def _get_resource(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        body = await self._request("GET", path, params)
        result = classify_resource(body)
        if result.status == ResourceStatus.NOT_FOUND:
            logger.error(f"Lever API returned an empty resource for {path} ({result.detail})")
            raise EmptyResourceError(
                f"Resource not found at {path}: Lever API returned an empty response",
                status_code=200,
                path=path,
            )
        if result.status == ResourceStatus.MALFORMED:
            raise MalformedResponseError(
                f"Unexpected response shape from {path}: {result.detail}",
                status_code=200,
                path=path,
            )
        return {"data": result.data}

    async def _get_page(self, query: PageQuery, limit: int = PAGE_SIZE) -> Dict[str, Any]:
        page = await self.aggregator.fetch_page(query, limit=min(max(limit, 1), PAGE_SIZE))
        return {"data": page.items, "hasNext": page.upstream_has_next, "next": page.next_cursor}

    async def _collect(
        self,
        query: PageQuery,
        max_items: Optional[int] = None,
        predicate: Optional[ItemPredicate] = None,
        max_calls: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AggregationResult:
        return await self.aggregator.collect(
            query, max_items=max_items, predicate=predicate, max_calls=max_calls, timeout=timeout
        )

    # Opportunities (candidates)

    async def get_opportunity(
        self, opportunity_id: str, expand: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        params = {"expand": expand} if expand else None
        return await self._get_resource(f"/opportunities/{_segment(opportunity_id)}", params)

    async def get_opportunities_page(
        self,
        filters: Optional[OpportunityFilter] = None,
        limit: int = PAGE_SIZE,
        offset: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = (filters or OpportunityFilter()).to_params()
        return await self._get_page(PageQuery("/opportunities", params, offset), limit)

    async def list_opportunities(
        self,
        filters: Optional[OpportunityFilter] = None,
        max_items: Optional[int] = None,
        predicate: Optional[ItemPredicate] = None,
        offset: Optional[str] = None,
        max_calls: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AggregationResult:
        params = (filters or OpportunityFilter()).to_params()
        return await self._collect(
            PageQuery("/opportunities", params, offset),
            max_items=max_items,
            predicate=predicate,
            max_calls=max_calls,
            timeout=timeout,
        )

    async def add_note(
        self,
        opportunity_id: str,
        note: str,
        author: Optional[str] = None,
        perform_as: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"value": note}
        if author:
            body["author"] = author
        return await self._request(
            "POST", f"/opportunities/{_segment(opportunity_id)}/notes", _perform_as(perform_as), body
        )

    async def update_opportunity_stage(
        self, opportunity_id: str, stage_id: str, perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/opportunities/{_segment(opportunity_id)}/stage",
            _perform_as(perform_as),
            {"stage": stage_id},
        )

    async def archive_opportunity(
        self,
        opportunity_id: str,
        reason_id: str,
        perform_as: Optional[str] = None,
        clean_interviews: Optional[bool] = None,
        requisition_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"reason": reason_id}
        if clean_interviews is not None:
            body["cleanInterviews"] = clean_interviews
        if requisition_id:
            body["requisitionId"] = requisition_id
        return await self._request(
            "PUT",
            f"/opportunities/{_segment(opportunity_id)}/archived",
            _perform_as(perform_as),
            body,
        )

    async def add_tags(
        self, opportunity_id: str, tags: List[str], perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/opportunities/{_segment(opportunity_id)}/addTags",
            _perform_as(perform_as),
            {"tags": tags},
        )

    async def remove_tags(
        self, opportunity_id: str, tags: List[str], perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/opportunities/{_segment(opportunity_id)}/removeTags",
            _perform_as(perform_as),
            {"tags": tags},
        )

    async def get_applications(self, opportunity_id: str) -> Dict[str, Any]:
        query = PageQuery(f"/opportunities/{_segment(opportunity_id)}/applications")
        return await self._get_page(query)

    async def get_application(self, opportunity_id: str, application_id: str) -> Dict[str, Any]:
        return await self._get_resource(
            f"/opportunities/{_segment(opportunity_id)}/applications/{_segment(application_id)}"
        )

    async def get_files(self, opportunity_id: str) -> Dict[str, Any]:
        return await self._get_page(PageQuery(f"/opportunities/{_segment(opportunity_id)}/files"))

    async def get_resumes(self, opportunity_id: str) -> Dict[str, Any]:
        return await self._get_page(PageQuery(f"/opportunities/{_segment(opportunity_id)}/resumes"))

    # Postings

    async def get_postings_page(
        self,
        filters: Optional[PostingFilter] = None,
        limit: int = PAGE_SIZE,
        offset: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = (filters or PostingFilter()).to_params()
        return await self._get_page(PageQuery("/postings", params, offset), limit)

    async def list_postings(
        self,
        filters: Optional[PostingFilter] = None,
        max_items: Optional[int] = None,
        predicate: Optional[ItemPredicate] = None,
        max_calls: Optional[int] = None,
    ) -> AggregationResult:
        params = (filters or PostingFilter()).to_params()
        return await self._collect(
            PageQuery("/postings", params), max_items=max_items, predicate=predicate, max_calls=max_calls
        )

    async def get_posting(self, posting_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
        params = {"expand": expand} if expand else None
        return await self._get_resource(f"/postings/{_segment(posting_id)}", params)

    # Reference data

    async def get_stages(self) -> AggregationResult:
        return await self._collect(PageQuery("/stages"))

    async def get_archive_reasons(self) -> AggregationResult:
        return await self._collect(PageQuery("/archive_reasons"))

    # Requisitions

    async def get_requisitions_page(
        self,
        filters: Optional[RequisitionFilter] = None,
        limit: int = PAGE_SIZE,
        offset: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = (filters or RequisitionFilter()).to_params()
        return await self._get_page(PageQuery("/requisitions", params, offset), limit)

    async def list_requisitions(
        self,
        filters: Optional[RequisitionFilter] = None,
        max_items: Optional[int] = None,
        predicate: Optional[ItemPredicate] = None,
    ) -> AggregationResult:
        params = (filters or RequisitionFilter()).to_params()
        return await self._collect(
            PageQuery("/requisitions", params), max_items=max_items, predicate=predicate
        )

    async def get_requisition(self, requisition_id: str) -> Dict[str, Any]:
        return await self._get_resource(f"/requisitions/{_segment(requisition_id)}")

    async def get_requisition_by_code(self, requisition_code: str) -> Dict[str, Any]:
        page = await self.get_requisitions_page(
            RequisitionFilter(requisition_code=requisition_code), limit=1
        )
        if not page["data"]:
            raise EmptyResourceError(
                f"Requisition with code '{requisition_code}' not found", path="/requisitions"
            )
        return {"data": page["data"][0]}

    async def create_requisition(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/requisitions", body=data)

    async def update_requisition(self, requisition_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/requisitions/{_segment(requisition_id)}", body=data)

    async def delete_requisition(self, requisition_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/requisitions/{_segment(requisition_id)}")

    # Interviews and panels

    async def get_interviews(self, opportunity_id: str) -> AggregationResult:
        return await self._collect(PageQuery(f"/opportunities/{_segment(opportunity_id)}/interviews"))

    async def get_interview(self, opportunity_id: str, interview_id: str) -> Dict[str, Any]:
        return await self._get_resource(
            f"/opportunities/{_segment(opportunity_id)}/interviews/{_segment(interview_id)}"
        )

    async def get_panels(self, opportunity_id: str) -> AggregationResult:
        return await self._collect(PageQuery(f"/opportunities/{_segment(opportunity_id)}/panels"))

    async def get_panel(self, opportunity_id: str, panel_id: str) -> Dict[str, Any]:
        return await self._get_resource(
            f"/opportunities/{_segment(opportunity_id)}/panels/{_segment(panel_id)}"
        )

    async def create_panel(
        self, opportunity_id: str, panel: Dict[str, Any], perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/opportunities/{_segment(opportunity_id)}/panels",
            _perform_as(perform_as),
            panel,
        )

    async def update_panel(
        self,
        opportunity_id: str,
        panel_id: str,
        panel: Dict[str, Any],
        perform_as: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/opportunities/{_segment(opportunity_id)}/panels/{_segment(panel_id)}",
            _perform_as(perform_as),
            panel,
        )

    async def delete_panel(
        self, opportunity_id: str, panel_id: str, perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "DELETE",
            f"/opportunities/{_segment(opportunity_id)}/panels/{_segment(panel_id)}",
            _perform_as(perform_as),
        )

    async def update_interview(
        self,
        opportunity_id: str,
        interview_id: str,
        interview: Dict[str, Any],
        perform_as: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/opportunities/{_segment(opportunity_id)}/interviews/{_segment(interview_id)}",
            _perform_as(perform_as),
            interview,
        )

    async def delete_interview(
        self, opportunity_id: str, interview_id: str, perform_as: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "DELETE",
            f"/opportunities/{_segment(opportunity_id)}/interviews/{_segment(interview_id)}",
            _perform_as(perform_as),
        )


# Process-wide client used by the tool handlers
_client: Optional[LeverClient] = None


def get_lever_client() -> LeverClient:
    """
    Get the shared client, building it from configuration on first use.

    Raises:
        LeverConfigError: If no API key is configured
    """
    global _client
    if _client is None:
        from config import get_config

        _client = LeverClient.from_config(get_config())
    return _client


def set_lever_client(client: Optional[LeverClient]) -> None:
    """Replace the shared client (``None`` resets it to be rebuilt from config)."""
    global _client
    _client = client
