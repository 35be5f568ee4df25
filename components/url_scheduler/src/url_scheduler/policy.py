"""Refresh policy: how old an indexed resource must be before it is crawled again."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
    "w": 604800.0,
}

# Longest units first so "ms" is not read as "m" followed by garbage.
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d|w)")


def parse_duration(value: str) -> timedelta | None:
    """Parse ``"1h30m"``, ``"2d"``, ``"1w2d"``, ``"1.5h"`` into a timedelta.

    Returns None when the string is empty, too large for a timedelta, or
    does not match the grammar completely. A leading sign is not accepted.
    """
    text = value.strip()
    if not text:
        return None
    total = 0.0
    pos = 0
    for match in _COMPONENT.finditer(text):
        if match.start() != pos:
            return None
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        return None
    try:
        return timedelta(seconds=total)
    except OverflowError:
        return None


@dataclass(frozen=True)
class RefreshPolicy:
    """Minimum age before an indexed URL may be scheduled again.

    ``delay is None`` means refresh is disabled: once a URL is in the index it
    is never scheduled again.
    """

    delay: timedelta | None = None

    @classmethod
    def disabled(cls) -> RefreshPolicy:
        return cls(delay=None)

    @classmethod
    def from_string(cls, value: str | None) -> RefreshPolicy:
        """Build from a duration string; empty, unparsable or non-positive disables refresh."""
        if value is None:
            return cls.disabled()
        delay = parse_duration(value)
        if delay is None or delay <= timedelta(0):
            return cls.disabled()
        return cls(delay=delay)

    @property
    def enabled(self) -> bool:
        return self.delay is not None

    def cutoff(self, now: datetime) -> datetime | None:
        """Records indexed after the returned instant are fresh; None matches any record."""
        if self.delay is None:
            return None
        try:
            return now - self.delay
        except OverflowError:
            # Delay reaches back past year 1; clamp to the earliest instant.
            return datetime.min.replace(tzinfo=now.tzinfo)
