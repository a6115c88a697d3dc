"""
Resilient request executor for the Lever API.

Each logical request is described by an immutable ``RequestDescriptor`` and runs
as one unit on the client's request queue: every attempt first takes a token from
the bucket, then the response is classified:

- 2xx: decoded JSON body is returned (``{}`` for an empty body).
- 429: retried after ``Retry-After`` (or exponential backoff), 3 attempts in total.
- 5xx: retried with exponential backoff, 2 attempts in total.
- other 4xx: never retried.
- transport failure: retried with exponential backoff, 2 attempts in total.
"""

import asyncio
import logging
import random
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple

import httpx

from lever.errors import (
    ClientRequestError,
    MalformedResponseError,
    NetworkError,
    RateLimitExceededError,
    TransientServerError,
    truncate_body,
)
from lever.rate_limiter import TokenBucket
from lever.request_queue import RequestQueue

logger = logging.getLogger(__name__)


def build_query_params(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """
    Flatten query parameters the way the Lever API expects them.

    ``None`` values are dropped, lists become repeated keys and booleans are
    sent lowercase.

    Args:
        params: Mapping of parameter names to values (may be None)

    Returns:
        Ordered list of (key, value) string pairs
    """
    if not params:
        return []

    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                continue
            if isinstance(item, bool):
                pairs.append((key, "true" if item else "false"))
            else:
                pairs.append((key, str(item)))
    return pairs


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical upstream call. Only ``attempt`` changes between retries."""

    method: str
    path: str
    params: Optional[Mapping[str, Any]] = None
    json_body: Optional[Any] = None
    attempt: int = 0

    @property
    def attempt_number(self) -> int:
        """1-based attempt number for logs and error reports."""
        return self.attempt + 1

    def next_attempt(self) -> "RequestDescriptor":
        return replace(self, attempt=self.attempt + 1)


@dataclass
class RetryPolicy:
    """
    Retry ceilings and backoff shape.

    Attempt ceilings count every attempt, including the first one.

    Attributes:
        rate_limit_attempts: Total attempts when the upstream answers 429
        server_error_attempts: Total attempts when the upstream answers 5xx
        network_error_attempts: Total attempts on transport failures
        base_delay: Backoff for the first retry, in seconds
        max_delay: Ceiling for any computed backoff, in seconds
        exponential_base: Growth factor between retries
        jitter: Extra random delay as a fraction of the computed backoff (0 disables)
    """

    rate_limit_attempts: int = 3
    server_error_attempts: int = 2
    network_error_attempts: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: float = 0.1
    _random: Callable[[], float] = field(default=random.random, repr=False)

    def calculate_delay(self, retry_index: int) -> float:
        """
        Backoff before retry number ``retry_index`` (0 for the first retry).

        ``min(base_delay * exponential_base ** retry_index, max_delay)``, plus jitter,
        never above ``max_delay``.
        """
        delay = min(self.base_delay * (self.exponential_base**retry_index), self.max_delay)
        if self.jitter > 0:
            delay += delay * self.jitter * self._random()
        return min(delay, self.max_delay)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds (``"2"``, ``"1.5"``) or an HTTP-date. Returns None when
    the header is missing or unparseable so the caller can fall back to backoff.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def new_trace_id() -> str:
    """Per-call trace identifier: ``api-<epoch ms>-<6 hex>``."""
    return f"api-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class RequestExecutor:
    """
    Runs request descriptors through the queue, the token bucket and the retry policy.

    Args:
        http_client: httpx client with ``base_url`` and auth headers already set
        limiter: Token bucket shared by every request of this client
        queue: Request queue shared by every request of this client
        policy: Retry ceilings and backoff shape
        sleep: Coroutine used for backoff waits; injectable for tests
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket,
        queue: RequestQueue,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.limiter = limiter
        self.queue = queue
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.attempts_made = 0

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """
        Run one logical request to a terminal outcome.

        Returns:
            Decoded JSON body

        Raises:
            RateLimitExceededError, TransientServerError, ClientRequestError,
            NetworkError, MalformedResponseError
        """
        return await self.queue.submit(lambda: self._run(descriptor))

    async def _run(self, descriptor: RequestDescriptor) -> Any:
        trace_id = new_trace_id()
        started = time.perf_counter()
        current = descriptor

        while True:
            await self.limiter.acquire()
            self.attempts_made += 1
            logger.info(f"[API-TRACE {trace_id}] START {current.method} {current.path}")
            attempt_started = time.perf_counter()

            try:
                response = await self.http_client.request(
                    current.method,
                    current.path,
                    params=build_query_params(current.params),
                    json=current.json_body,
                )
            except httpx.TransportError as e:
                duration_ms = _elapsed_ms(attempt_started)
                if current.attempt_number < self.policy.network_error_attempts:
                    delay = self.policy.calculate_delay(current.attempt)
                    logger.warning(
                        f"[API-TRACE {trace_id}] Network error after {duration_ms}ms "
                        f"(attempt {current.attempt_number}/{self.policy.network_error_attempts}): "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s"
                    )
                    await self._sleep(delay)
                    current = current.next_attempt()
                    continue
                logger.error(
                    f"[API-TRACE {trace_id}] Network error on {current.method} {current.path} "
                    f"after {current.attempt_number} attempts: {type(e).__name__}: {e}"
                )
                raise NetworkError(
                    f"Network error calling Lever API {current.path}: {type(e).__name__}: {e}",
                    attempts=current.attempt_number,
                    path=current.path,
                ) from e

            status = response.status_code
            logger.info(
                f"[API-TRACE {trace_id}] Response: {status} | "
                f"Duration: {_elapsed_ms(attempt_started)}ms | Attempt: {current.attempt_number}"
            )

            if response.is_success:
                body = self._decode(response, current)
                logger.info(
                    f"[API-TRACE {trace_id}] SUCCESS | Total duration: {_elapsed_ms(started)}ms"
                )
                return body

            error_text = response.text

            if status == 429:
                if current.attempt_number < self.policy.rate_limit_attempts:
                    wait = parse_retry_after(response.headers.get("Retry-After"))
                    if wait is None:
                        wait = self.policy.calculate_delay(current.attempt)
                    logger.warning(
                        f"[API-TRACE {trace_id}] Rate limited (429). Waiting {wait:.2f}s before retry "
                        f"(attempt {current.attempt_number}/{self.policy.rate_limit_attempts})"
                    )
                    await self._sleep(wait)
                    current = current.next_attempt()
                    continue
                logger.error(
                    f"[API-TRACE {trace_id}] Rate limit exceeded after {current.attempt_number} attempts"
                )
                raise RateLimitExceededError(
                    f"Rate limit exceeded after {current.attempt_number} attempts",
                    status_code=status,
                    body=error_text,
                    attempts=current.attempt_number,
                    path=current.path,
                )

            if status >= 500:
                if current.attempt_number < self.policy.server_error_attempts:
                    delay = self.policy.calculate_delay(current.attempt)
                    logger.warning(
                        f"[API-TRACE {trace_id}] Lever API error {status}, retrying in {delay:.2f}s "
                        f"(attempt {current.attempt_number}/{self.policy.server_error_attempts})"
                    )
                    await self._sleep(delay)
                    current = current.next_attempt()
                    continue
                logger.error(
                    f"[API-TRACE {trace_id}] Lever API error {status} after "
                    f"{current.attempt_number} attempts"
                )
                raise TransientServerError(
                    f"Lever API error: {status} - {truncate_body(error_text)}",
                    status_code=status,
                    body=error_text,
                    attempts=current.attempt_number,
                    path=current.path,
                )

            if not 400 <= status < 500:
                # 1xx/3xx left over after redirects were followed
                logger.error(f"[API-TRACE {trace_id}] Unexpected Lever API status {status}")
                raise MalformedResponseError(
                    f"Unexpected Lever API status {status} for {current.path}",
                    status_code=status,
                    body=error_text,
                    attempts=current.attempt_number,
                    path=current.path,
                )

            if status == 404:
                logger.error(f"Lever API 404: Resource not found at {current.path}")
            else:
                logger.warning(f"[API-TRACE {trace_id}] Lever API client error {status}")

            raise ClientRequestError(
                f"Lever API error: {status} - {truncate_body(error_text)}",
                status_code=status,
                body=error_text,
                attempts=current.attempt_number,
                path=current.path,
            )

    def _decode(self, response: httpx.Response, descriptor: RequestDescriptor) -> Any:
        if not response.content or not response.content.strip():
            logger.warning(f"Empty response from Lever API for {descriptor.path}")
            return {}

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Lever API returned a non-JSON body for {descriptor.path}: "
                f"{truncate_body(response.text, 200)}",
                status_code=response.status_code,
                body=response.text,
                attempts=descriptor.attempt_number,
                path=descriptor.path,
            ) from e

        if not body:
            logger.warning(f"Empty response from Lever API for {descriptor.path}")
        return body


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
