"""
Shared fixtures for Lever client and tool tests.

Time is simulated: the token bucket, the executor backoff and the aggregator's
inter-page delay all sleep through ``FakeClock.sleep``, which advances the clock
instead of waiting. HTTP goes through ``httpx.MockTransport`` backed by
``FakeLever``, a scripted stand-in for the Lever API.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from lever.client import LeverClient, set_lever_client
from lever.executor import RetryPolicy

API_PREFIX = "/v1"


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)
        await asyncio.sleep(0)


Responder = Callable[[httpx.Request], httpx.Response]


def reply(
    status: int = 200,
    json: Any = None,
    headers: Optional[Dict[str, str]] = None,
    content: Optional[bytes] = None,
) -> Responder:
    """A responder returning a fresh response with the given status and body."""

    def responder(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status, headers=headers, content=content)
        if json is None:
            return httpx.Response(status, headers=headers)
        return httpx.Response(status, headers=headers, json=json)

    return responder


def paged(items: List[Dict[str, Any]]) -> Responder:
    """
    A cursor-paginated list endpoint over ``items``.

    Cursors are opaque strings ``"cursor-<index>"``; the page size is taken from
    the request's ``limit`` parameter.
    """

    def responder(request: httpx.Request) -> httpx.Response:
        offset = request.url.params.get("offset")
        start = int(offset.split("-")[1]) if offset else 0
        limit = int(request.url.params.get("limit", "100"))
        chunk = items[start : start + limit]
        end = start + len(chunk)
        body: Dict[str, Any] = {"data": chunk, "hasNext": end < len(items)}
        if end < len(items):
            body["next"] = f"cursor-{end}"
        return httpx.Response(200, json=body)

    return responder


class FakeLever:
    """
    Scripted Lever API.

    Responders are registered per (method, path). Several responders for one
    route are used in order; the last one keeps answering once the others are
    used up. Unregistered routes answer 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responders: Responder) -> "FakeLever":
        self.routes.setdefault((method.upper(), path), []).extend(responders)
        return self

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and _path(r) == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, _path(request)))
        if not queue:
            return httpx.Response(404, json={"code": "ResourceNotFound"})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        return responder(request)


def _path(request: httpx.Request) -> str:
    path = request.url.path
    return path[len(API_PREFIX) :] if path.startswith(API_PREFIX) else path


def opportunity(index: int, **fields: Any) -> Dict[str, Any]:
    """A minimal Lever opportunity."""
    data: Dict[str, Any] = {
        "id": f"opp-{index}",
        "name": f"Candidate {index}",
        "emails": [f"candidate{index}@example.com"],
        "headline": "",
        "location": "",
        "tags": [],
        "stage": {"id": "stage-new", "text": "New Lead"},
        "createdAt": 1700000000000 + index,
    }
    data.update(fields)
    return data


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_lever() -> FakeLever:
    return FakeLever()


@pytest_asyncio.fixture
async def make_client(clock):
    """
    Factory for clients wired to a ``FakeLever`` and the fake clock.

    The newest client is also installed as the shared client used by the tool
    handlers. Every client is closed at teardown.
    """
    created: List[LeverClient] = []

    def factory(api: Callable[[httpx.Request], httpx.Response], **overrides: Any) -> LeverClient:
        kwargs: Dict[str, Any] = dict(
            api_key="test-key",
            transport=httpx.MockTransport(api),
            retry_policy=RetryPolicy(jitter=0),
            clock=clock,
            sleep=clock.sleep,
        )
        kwargs.update(overrides)
        client = LeverClient(**kwargs)
        created.append(client)
        set_lever_client(client)
        return client

    yield factory

    set_lever_client(None)
    for client in created:
        await client.aclose()


@pytest_asyncio.fixture
async def lever_api(make_client, fake_lever) -> FakeLever:
    """A ``FakeLever`` installed behind the shared client used by the tools."""
    make_client(fake_lever)
    return fake_lever
