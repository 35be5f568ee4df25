"""Wire events, scheduling decisions and errors."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class URLFoundEvent(BaseModel):
    """Consumed from the discovered-URL topic: a URL seen by a crawler or extractor."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(description="URL as discovered, not normalized")


class URLTodoEvent(BaseModel):
    """Published to the scheduled-URL topic: crawl workers should fetch this URL."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(description="URL exactly as it was discovered")


class ResourceMatch(BaseModel):
    """A record returned by the resource index search."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(default="", description="Indexed resource URL")
    time: datetime | None = Field(default=None, description="When the resource was indexed")


class Decision(str, Enum):
    SCHEDULE = "schedule"
    SKIP = "skip"
    INVALID = "invalid"
    QUERY_FAILED = "query_failed"


class SchedulerError(Exception):
    """Base class for infrastructure failures worth a redelivery."""


class IndexQueryError(SchedulerError):
    """The resource index could not be queried (transport or service error)."""


class EmitError(SchedulerError):
    """The schedule request could not be published."""
