"""Client for the resource index search API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

import httpx

from url_scheduler.models import IndexQueryError, ResourceMatch

PAGINATION_PAGE_HEADER = "X-Pagination-Page"
PAGINATION_SIZE_HEADER = "X-Pagination-Size"
PAGINATION_COUNT_HEADER = "X-Pagination-Count"


@runtime_checkable
class ResourceIndex(Protocol):
    """Search over previously crawled resources. Implementation-agnostic (async)."""

    async def search_resources(
        self,
        url: str,
        keyword: str,
        start_date: datetime | None,
        end_date: datetime | None,
        page: int,
        page_size: int,
    ) -> tuple[list[ResourceMatch], int]:
        """
        Return one page of matching resources and the total match count.

        - ``url`` is the fingerprint of the resource (exact match); "" for any.
        - ``start_date`` / ``end_date`` bound the indexing time; None leaves the
          side open.
        - Raises IndexQueryError when the index cannot answer.
        """
        ...


def _format_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    # RFC 3339 at microsecond precision; isoformat zero-pads years below 1000.
    return value.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


class HttpResourceIndex:
    """``GET {base_url}/v1/resources`` with pagination passed in headers."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def search_resources(
        self,
        url: str,
        keyword: str,
        start_date: datetime | None,
        end_date: datetime | None,
        page: int,
        page_size: int,
    ) -> tuple[list[ResourceMatch], int]:
        params: dict[str, str] = {}
        if url:
            params["url"] = url
        if keyword:
            params["keyword"] = keyword
        if start_date is not None:
            params["start-date"] = _format_date(start_date)
        if end_date is not None:
            params["end-date"] = _format_date(end_date)
        headers = {
            PAGINATION_PAGE_HEADER: str(page),
            PAGINATION_SIZE_HEADER: str(page_size),
        }

        try:
            resp = await self._client.get("/v1/resources", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise IndexQueryError(f"{type(e).__name__}: {e}") from e
        if resp.status_code >= 400:
            raise IndexQueryError(f"HTTP {resp.status_code} {resp.reason_phrase or ''}".rstrip())

        try:
            body = resp.json()
            matches = [ResourceMatch.model_validate(item) for item in body or []]
            total = int(resp.headers.get(PAGINATION_COUNT_HEADER, len(matches)))
        except (ValueError, TypeError) as e:
            raise IndexQueryError(f"Invalid index response: {e}") from e
        return matches, total

    async def close(self) -> None:
        await self._client.aclose()
