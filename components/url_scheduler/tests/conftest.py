"""In-memory stand-ins for the resource index and the Kafka producer."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from url_scheduler.models import IndexQueryError, ResourceMatch
from url_scheduler.urls import fingerprint

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)


class FakeResourceIndex:
    """Index keyed by fingerprint; bounds are inclusive like the real API.

    Results come newest first unless ``oldest_first`` is set; the API does
    not promise an order.
    """

    def __init__(self) -> None:
        self.records: dict[str, list[datetime]] = {}
        self.calls: list[dict[str, object]] = []
        self.fail = False
        self.oldest_first = False

    def add(self, normalized_url: str, indexed_at: datetime) -> None:
        self.records.setdefault(fingerprint(normalized_url), []).append(indexed_at)

    async def search_resources(
        self,
        url: str,
        keyword: str,
        start_date: datetime | None,
        end_date: datetime | None,
        page: int,
        page_size: int,
    ) -> tuple[list[ResourceMatch], int]:
        self.calls.append(
            {
                "url": url,
                "keyword": keyword,
                "start_date": start_date,
                "end_date": end_date,
                "page": page,
                "page_size": page_size,
            }
        )
        if self.fail:
            raise IndexQueryError("ConnectError: connection refused")
        hits = sorted(
            (
                t
                for t in self.records.get(url, [])
                if (start_date is None or t >= start_date) and (end_date is None or t <= end_date)
            ),
            reverse=not self.oldest_first,
        )
        offset = (page - 1) * page_size
        return [ResourceMatch(url=url, time=t) for t in hits[offset : offset + page_size]], len(hits)


class FakeProducer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, bytes, bytes | None]] = []
        self.fail = False

    async def send(self, topic: str, value: bytes, key: bytes | None = None) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.sent.append((topic, value, key))

    async def close(self) -> None:
        return None


@pytest.fixture
def index() -> FakeResourceIndex:
    return FakeResourceIndex()


@pytest.fixture
def producer() -> FakeProducer:
    return FakeProducer()


@pytest.fixture
def clock() -> datetime:
    return NOW
