"""Decision engine: should a discovered URL be (re-)scheduled for crawling?

A URL is scheduled when it is a valid hidden-service URL and the resource
index holds no *fresh* record for it. With refresh disabled any record at
all is fresh. With a refresh delay ``d`` a record is fresh when it was
indexed strictly after ``now - d``; a record exactly at the cutoff is stale
and the URL is scheduled again.

The decision keeps no local state. It is recomputed against the index on
every delivery, so concurrent workers and redeliveries need no coordination;
at worst a URL is scheduled twice before the index catches up.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pipeline_core import get_logger

from url_scheduler.index_client import ResourceIndex
from url_scheduler.metrics import decisions_total, index_query_duration_seconds
from url_scheduler.models import Decision, IndexQueryError
from url_scheduler.policy import RefreshPolicy
from url_scheduler.urls import (
    HIDDEN_SERVICE_SUFFIX,
    fingerprint,
    is_hidden_service,
    normalize_url,
    parse_url,
)

_logger = get_logger(__name__)

# Smallest step datetime can represent.
_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DecisionEngine:
    def __init__(
        self,
        index: ResourceIndex,
        policy: RefreshPolicy,
        *,
        suffix: str = HIDDEN_SERVICE_SUFFIX,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._index = index
        self._policy = policy
        self._suffix = suffix
        self._now = now

    @property
    def policy(self) -> RefreshPolicy:
        return self._policy

    async def decide(self, url: str, policy: RefreshPolicy | None = None) -> Decision:
        """Return SCHEDULE, SKIP, INVALID or QUERY_FAILED for ``url``. Never raises on bad input."""
        decision = await self._decide(url, policy if policy is not None else self._policy)
        decisions_total.labels(decision=decision.value).inc()
        return decision

    async def _decide(self, url: str, policy: RefreshPolicy) -> Decision:
        parts = parse_url(url)
        if parts is None:
            _logger.info("Unparsable URL", extra={"url": url})
            return Decision.INVALID
        if not is_hidden_service(parts, self._suffix):
            _logger.debug("URL is not a valid hidden service", extra={"url": url})
            return Decision.INVALID

        cutoff = policy.cutoff(self._now())
        # Start one tick after the cutoff: every record the index returns is
        # then fresh, whatever order it returns them in.
        start_date = cutoff + _TICK if cutoff is not None else None
        key = fingerprint(normalize_url(parts))
        start = time.perf_counter()
        try:
            matches, _total = await self._index.search_resources(
                key,
                "",
                start_date,
                None,
                1,
                1,
            )
        except IndexQueryError as e:
            _logger.warning("Error while searching URL", extra={"url": url, "error": str(e)})
            return Decision.QUERY_FAILED
        finally:
            index_query_duration_seconds.observe(time.perf_counter() - start)

        if matches:
            _logger.debug("URL should not be scheduled", extra={"url": url})
            return Decision.SKIP
        _logger.debug(
            "URL should be scheduled",
            extra={"url": url, "cutoff": cutoff.isoformat() if cutoff else None},
        )
        return Decision.SCHEDULE
