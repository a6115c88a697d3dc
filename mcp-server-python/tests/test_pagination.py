"""
Unit tests for cursor-chasing aggregation over Lever list endpoints.

Tests stop conditions, cursor handling and page decoding.
"""

import pytest

from lever.errors import MalformedResponseError
from lever.pagination import (
    DEFAULT_MAX_CALLS,
    DEFAULT_PAGE_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PAGE_SIZE,
    ExhaustedReason,
    PageAggregator,
    PageQuery,
    parse_page,
)
from conftest import paged, reply


def items(count):
    return [{"id": f"item-{i}", "name": f"Item {i}"} for i in range(count)]


class TestDefaults:
    """Tests for aggregation defaults."""

    def test_default_limits(self):
        """Test page size 100, 0.2s page delay, 45 calls and 25s budget."""
        assert PAGE_SIZE == 100
        assert DEFAULT_PAGE_DELAY_SECONDS == 0.2
        assert DEFAULT_MAX_CALLS == 45
        assert DEFAULT_TIMEOUT_SECONDS == 25.0


class TestParsePage:
    """Tests for parse_page."""

    def test_page_with_cursor(self):
        """Test that hasNext with a cursor exposes the cursor."""
        page = parse_page({"data": [{"id": "a"}], "hasNext": True, "next": "abc"}, "/x")
        assert page.items == [{"id": "a"}]
        assert page.next_cursor == "abc"
        assert page.has_next

    def test_last_page(self):
        """Test that hasNext false ends the chain even if a cursor is present."""
        page = parse_page({"data": [], "hasNext": False, "next": "abc"}, "/x")
        assert page.next_cursor is None
        assert not page.has_next

    def test_missing_data_is_empty(self):
        """Test that a body without data is an empty page."""
        assert parse_page({}, "/x").items == []

    def test_has_next_without_cursor_keeps_upstream_flag(self):
        """Test that hasNext without a cursor cannot continue but is remembered."""
        page = parse_page({"data": [], "hasNext": True}, "/x")
        assert not page.has_next
        assert page.upstream_has_next

    def test_non_list_data_is_malformed(self):
        """Test that data of the wrong type raises MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            parse_page({"data": {"id": "a"}}, "/x")

    def test_non_object_body_is_malformed(self):
        """Test that a non-object body raises MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            parse_page([1, 2], "/x")


class TestPageQuery:
    """Tests for PageQuery descriptors."""

    def test_first_page_has_no_offset(self):
        """Test that the initial query sends limit but no offset."""
        descriptor = PageQuery("/opportunities", {"posting_id": "p"}).page()
        assert descriptor.params == {"posting_id": "p", "limit": 100}

    def test_cursor_travels_with_params(self):
        """Test that moving to a cursor keeps the filter parameters."""
        query = PageQuery("/opportunities", {"posting_id": "p"}).at("c1")
        descriptor = query.page(50)
        assert descriptor.params == {"posting_id": "p", "limit": 50, "offset": "c1"}
        assert descriptor.path == "/opportunities"


class TestAggregatorConstruction:
    """Tests for PageAggregator argument checks."""

    def test_rejects_page_size_above_lever_maximum(self):
        """Test that page sizes above 100 are rejected."""
        with pytest.raises(ValueError, match="page_size"):
            PageAggregator(executor=None, page_size=101)

    def test_rejects_zero_max_calls(self):
        """Test that max_calls must be at least 1."""
        with pytest.raises(ValueError, match="max_calls"):
            PageAggregator(executor=None, max_calls=0)


class TestCollect:
    """Tests for PageAggregator.collect stop conditions."""

    @pytest.mark.asyncio
    async def test_collects_all_pages(self, make_client, fake_lever):
        """Test that 250 items over three pages end with NO_MORE_PAGES."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"), max_items=1000)

        assert len(result.items) == 250
        assert result.api_calls_made == 3
        assert result.exhausted_reason == ExhaustedReason.NO_MORE_PAGES
        assert not result.may_be_incomplete
        assert result.next_cursor is None

    @pytest.mark.asyncio
    async def test_max_calls_stops_early(self, make_client, fake_lever):
        """Test that a call ceiling of 2 yields 200 items and MAX_CALLS."""
        fake_lever.add("GET", "/opportunities", paged(items(1000)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(
            PageQuery("/opportunities"), max_items=1000, max_calls=2
        )

        assert len(result.items) == 200
        assert result.api_calls_made == 2
        assert result.exhausted_reason == ExhaustedReason.MAX_CALLS
        assert result.may_be_incomplete
        assert result.next_cursor == "cursor-200"

    @pytest.mark.asyncio
    async def test_single_short_page(self, make_client, fake_lever):
        """Test that 50 items on one page take one call."""
        fake_lever.add("GET", "/opportunities", paged(items(50)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"))

        assert len(result.items) == 50
        assert result.api_calls_made == 1
        assert result.exhausted_reason == ExhaustedReason.NO_MORE_PAGES

    @pytest.mark.asyncio
    async def test_max_items_mid_page(self, make_client, fake_lever):
        """Test that reaching max_items inside a page stops with MAX_ITEMS."""
        fake_lever.add("GET", "/opportunities", paged(items(50)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"), max_items=10)

        assert [i["id"] for i in result.items] == [f"item-{i}" for i in range(10)]
        assert result.items_examined == 10
        assert result.exhausted_reason == ExhaustedReason.MAX_ITEMS
        assert result.may_be_incomplete

    @pytest.mark.asyncio
    async def test_max_items_exactly_at_last_item(self, make_client, fake_lever):
        """Test that filling max_items with the last upstream item is NO_MORE_PAGES."""
        fake_lever.add("GET", "/opportunities", paged(items(50)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"), max_items=50)

        assert len(result.items) == 50
        assert result.exhausted_reason == ExhaustedReason.NO_MORE_PAGES

    @pytest.mark.asyncio
    async def test_zero_max_items_makes_no_call(self, make_client, fake_lever):
        """Test that max_items=0 returns immediately."""
        fake_lever.add("GET", "/opportunities", paged(items(50)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"), max_items=0)

        assert result.api_calls_made == 0
        assert fake_lever.requests == []
        assert result.exhausted_reason == ExhaustedReason.MAX_ITEMS

    @pytest.mark.asyncio
    async def test_timeout_stops_between_pages(self, make_client, fake_lever):
        """Test that the wall-clock budget stops the chain before the next call."""
        fake_lever.add("GET", "/opportunities", paged(items(1000)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"), timeout=0.5)

        # Calls at t=0, 0.2, 0.4; the check at t=0.6 is over budget
        assert result.api_calls_made == 3
        assert len(result.items) == 300
        assert result.exhausted_reason == ExhaustedReason.TIMEOUT
        assert result.may_be_incomplete

    @pytest.mark.asyncio
    async def test_slow_pages_time_out_with_partial_items(self, make_client, fake_lever, clock):
        """Test that pages taking 0.5s each stop a 1.2s budget after the second page."""
        upstream = paged(items(10000))

        def slow_page(request):
            clock.now += 0.5
            return upstream(request)

        fake_lever.add("GET", "/opportunities", slow_page)
        client = make_client(fake_lever)

        result = await client.aggregator.collect(
            PageQuery("/opportunities"), max_items=10000, timeout=1.2
        )

        # Page 1 ends at t=0.5, delay to 0.7, page 2 ends at t=1.2
        assert result.api_calls_made == 2
        assert len(result.items) == 200
        assert result.exhausted_reason == ExhaustedReason.TIMEOUT
        assert result.may_be_incomplete
        assert result.next_cursor == "cursor-200"

    @pytest.mark.asyncio
    async def test_has_next_without_cursor_is_incomplete(self, make_client, fake_lever):
        """Test that a page claiming more results but lacking a cursor is not reported complete."""
        fake_lever.add("GET", "/opportunities", reply(200, {"data": [{"id": "a"}], "hasNext": True}))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities"))

        assert [i["id"] for i in result.items] == ["a"]
        assert result.api_calls_made == 1
        assert result.exhausted_reason == ExhaustedReason.MISSING_CURSOR
        assert result.may_be_incomplete
        assert result.next_cursor is None

    @pytest.mark.asyncio
    async def test_resume_after_mid_page_stop_loses_nothing(self, make_client, fake_lever):
        """Test that resuming from a mid-page stop re-reads that page instead of skipping it."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)
        query = PageQuery("/opportunities")

        first = await client.aggregator.collect(query.at("cursor-100"), max_items=50)
        resumed = await client.aggregator.collect(query.at(first.next_cursor), max_items=100)

        assert first.items[-1]["id"] == "item-149"
        assert first.next_cursor == "cursor-100"
        seen = {i["id"] for i in first.items} | {i["id"] for i in resumed.items}
        assert {f"item-{i}" for i in range(100, 200)} <= seen

    @pytest.mark.asyncio
    async def test_predicate_filters_and_counts_examined(self, make_client, fake_lever):
        """Test that predicate rejects still count as examined."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(
            PageQuery("/opportunities"), predicate=lambda item: item["id"].endswith("7")
        )

        assert len(result.items) == 25
        assert result.items_examined == 250

    @pytest.mark.asyncio
    async def test_cursor_and_filters_sent_together(self, make_client, fake_lever):
        """Test that every page repeats the filters alongside the cursor."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)

        await client.aggregator.collect(PageQuery("/opportunities", {"posting_id": "p-1"}))

        sent = [(r.url.params.get("posting_id"), r.url.params.get("offset")) for r in fake_lever.requests]
        assert sent == [("p-1", None), ("p-1", "cursor-100"), ("p-1", "cursor-200")]

    @pytest.mark.asyncio
    async def test_page_delay_between_pages(self, make_client, fake_lever, clock):
        """Test that the inter-page delay is slept before every page after the first."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)

        await client.aggregator.collect(PageQuery("/opportunities"))

        assert clock.sleeps == [0.2, 0.2]

    @pytest.mark.asyncio
    async def test_starting_cursor_resumes(self, make_client, fake_lever):
        """Test that a query positioned at a cursor starts there."""
        fake_lever.add("GET", "/opportunities", paged(items(250)))
        client = make_client(fake_lever)

        result = await client.aggregator.collect(PageQuery("/opportunities").at("cursor-200"))

        assert len(result.items) == 50
        assert result.items[0]["id"] == "item-200"

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, make_client, fake_lever):
        """Test that a failing page aborts the aggregation with the classified error."""
        fake_lever.add(
            "GET",
            "/opportunities",
            paged(items(250)),
            reply(200, {"data": "not-a-list"}),
        )
        client = make_client(fake_lever)

        with pytest.raises(MalformedResponseError):
            await client.aggregator.collect(PageQuery("/opportunities"))
