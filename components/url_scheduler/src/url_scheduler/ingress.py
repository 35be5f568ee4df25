"""Ingress adapter: one discovered-URL delivery in, one ack/nack/reject out."""

from __future__ import annotations

from pipeline_core import Outcome, get_logger
from pydantic import ValidationError

from url_scheduler.emitter import ScheduleEmitter
from url_scheduler.engine import DecisionEngine
from url_scheduler.metrics import (
    events_nacked_total,
    events_received_total,
    events_rejected_total,
)
from url_scheduler.models import Decision, EmitError, URLFoundEvent

_logger = get_logger(__name__)


class URLFoundHandler:
    """Bus callback for the discovered-URL topic.

    - Malformed payload: reject (redelivering it cannot help).
    - Invalid URL or fresh index record: ack, nothing published.
    - Index or publish failure: nack, the bus delivers it again.

    Holds only references to the engine and emitter, so concurrent calls
    share no mutable state.
    """

    def __init__(self, engine: DecisionEngine, emitter: ScheduleEmitter) -> None:
        self._engine = engine
        self._emitter = emitter

    async def __call__(self, raw: bytes) -> Outcome:
        return await self.on_event(raw)

    async def on_event(self, raw: bytes) -> Outcome:
        events_received_total.inc()
        try:
            event = URLFoundEvent.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            events_rejected_total.inc()
            _logger.warning(
                "Malformed URL event",
                extra={"error": str(e), "payload_size": len(raw)},
            )
            return "reject"

        _logger.debug("Processing URL", extra={"url": event.url})

        decision = await self._engine.decide(event.url)
        match decision:
            case Decision.QUERY_FAILED:
                events_nacked_total.inc()
                return "nack"
            case Decision.SCHEDULE:
                try:
                    await self._emitter.schedule(event.url)
                except EmitError as e:
                    events_nacked_total.inc()
                    _logger.warning("Error while publishing URL", extra={"url": event.url, "error": str(e)})
                    return "nack"
                return "ack"
            case Decision.SKIP | Decision.INVALID:
                return "ack"
