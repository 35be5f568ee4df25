"""Tests for the scheduling decision (in-memory or mocked-HTTP index, frozen clock)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from url_scheduler.engine import DecisionEngine
from url_scheduler.index_client import HttpResourceIndex
from url_scheduler.models import Decision
from url_scheduler.policy import RefreshPolicy
from url_scheduler.urls import fingerprint

DELAY = timedelta(hours=24)


def _engine(index, clock: datetime, policy: RefreshPolicy | None = None) -> DecisionEngine:
    return DecisionEngine(index, policy or RefreshPolicy.disabled(), now=lambda: clock)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    [
        "http://example.com/page",
        "https://example.onion.com/",
        "ftp://files.example.org/pub",
    ],
)
async def test_non_hidden_service_is_invalid_without_query(index, clock: datetime, url: str) -> None:
    decision = await _engine(index, clock).decide(url)
    assert decision is Decision.INVALID
    assert index.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["", "::::", "not a url", "http://[::1", "http://x.onion:70000/"])
async def test_unparsable_url_is_invalid_without_error(index, clock: datetime, url: str) -> None:
    decision = await _engine(index, clock).decide(url)
    assert decision is Decision.INVALID
    assert index.calls == []


@pytest.mark.asyncio
async def test_disabled_policy_no_record_schedules(index, clock: datetime) -> None:
    decision = await _engine(index, clock).decide("http://example.onion/page")
    assert decision is Decision.SCHEDULE


@pytest.mark.asyncio
async def test_disabled_policy_any_record_skips(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - timedelta(days=3650))
    decision = await _engine(index, clock).decide("http://example.onion/page")
    assert decision is Decision.SKIP


@pytest.mark.asyncio
async def test_disabled_policy_queries_without_time_bounds(index, clock: datetime) -> None:
    await _engine(index, clock).decide("http://example.onion/page")
    assert index.calls == [
        {
            "url": fingerprint("http://example.onion/page"),
            "keyword": "",
            "start_date": None,
            "end_date": None,
            "page": 1,
            "page_size": 1,
        }
    ]


@pytest.mark.asyncio
async def test_refresh_stale_record_schedules(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - DELAY - timedelta(seconds=1))
    engine = _engine(index, clock, RefreshPolicy(delay=DELAY))
    assert await engine.decide("http://example.onion/page") is Decision.SCHEDULE


@pytest.mark.asyncio
async def test_refresh_fresh_record_skips(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - timedelta(seconds=1))
    engine = _engine(index, clock, RefreshPolicy(delay=DELAY))
    assert await engine.decide("http://example.onion/page") is Decision.SKIP


@pytest.mark.asyncio
async def test_refresh_record_exactly_at_cutoff_schedules(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - DELAY)
    engine = _engine(index, clock, RefreshPolicy(delay=DELAY))
    assert await engine.decide("http://example.onion/page") is Decision.SCHEDULE


@pytest.mark.asyncio
async def test_refresh_queries_from_cutoff(index, clock: datetime) -> None:
    engine = _engine(index, clock, RefreshPolicy(delay=DELAY))
    await engine.decide("http://example.onion/page")
    assert index.calls[0]["start_date"] == clock - DELAY + timedelta(microseconds=1)
    assert index.calls[0]["end_date"] is None


@pytest.mark.asyncio
async def test_stale_record_in_cutoff_second_does_not_hide_fresh_one(index) -> None:
    clock = datetime(2025, 1, 15, 12, 0, 0, 700000, tzinfo=UTC)
    delay = timedelta(hours=1)
    index.oldest_first = True
    index.add("http://example.onion/page", clock - delay - timedelta(milliseconds=300))
    index.add("http://example.onion/page", clock - timedelta(seconds=1))
    engine = _engine(index, clock, RefreshPolicy(delay=delay))
    assert await engine.decide("http://example.onion/page") is Decision.SKIP


@pytest.mark.asyncio
async def test_http_index_oldest_first_with_sub_second_cutoff_skips() -> None:
    clock = datetime(2025, 1, 15, 12, 0, 0, 700000, tzinfo=UTC)
    delay = timedelta(hours=1)
    indexed = [clock - delay - timedelta(milliseconds=300), clock - timedelta(seconds=1)]
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raw_start = request.url.params["start-date"]
        seen.append(raw_start)
        start = datetime.fromisoformat(raw_start)
        hits = [t for t in indexed if t >= start]
        body = [{"url": "http://example.onion/page", "time": t.isoformat()} for t in hits[:1]]
        return httpx.Response(200, json=body, headers={"X-Pagination-Count": str(len(hits))})

    index = HttpResourceIndex("http://index.test", transport=httpx.MockTransport(handler))
    engine = DecisionEngine(index, RefreshPolicy(delay=delay), now=lambda: clock)
    decision = await engine.decide("http://example.onion/page")
    await index.close()
    assert decision is Decision.SKIP
    assert seen == ["2025-01-15T11:00:00.700001Z"]


@pytest.mark.asyncio
async def test_huge_refresh_delay_does_not_break_decisions(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - timedelta(days=1))
    engine = _engine(index, clock, RefreshPolicy.from_string("200000w"))
    assert await engine.decide("http://example.onion/page") is Decision.SKIP


@pytest.mark.asyncio
async def test_per_call_policy_overrides_bound_policy(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock - DELAY - timedelta(hours=1))
    engine = _engine(index, clock)
    assert await engine.decide("http://example.onion/page") is Decision.SKIP
    assert await engine.decide("http://example.onion/page", RefreshPolicy(delay=DELAY)) is Decision.SCHEDULE


@pytest.mark.asyncio
async def test_lookup_uses_normalized_fingerprint(index, clock: datetime) -> None:
    index.add("http://example.onion/page", clock)
    decision = await _engine(index, clock).decide("HTTP://Example.onion:80/page#top")
    assert decision is Decision.SKIP


@pytest.mark.asyncio
async def test_query_failure_reported(index, clock: datetime) -> None:
    index.fail = True
    decision = await _engine(index, clock).decide("http://example.onion/page")
    assert decision is Decision.QUERY_FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize("indexed", [False, True])
async def test_decide_is_idempotent(index, clock: datetime, indexed: bool) -> None:
    if indexed:
        index.add("http://example.onion/page", clock - timedelta(minutes=5))
    engine = _engine(index, clock, RefreshPolicy(delay=DELAY))
    first = await engine.decide("http://example.onion/page")
    second = await engine.decide("http://example.onion/page")
    assert first is second
    assert len(index.calls) == 2
