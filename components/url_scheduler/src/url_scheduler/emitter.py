"""Publishes crawl requests for URLs the engine decided to schedule."""

from __future__ import annotations

from pipeline_core import KafkaProducer, get_logger

from url_scheduler.metrics import urls_scheduled_total
from url_scheduler.models import EmitError, URLTodoEvent

_logger = get_logger(__name__)


class ScheduleEmitter:
    def __init__(self, producer: KafkaProducer, topic: str) -> None:
        self._producer = producer
        self._topic = topic

    async def schedule(self, url: str) -> None:
        """Publish ``url`` unchanged to the crawl topic. Raises EmitError on failure."""
        payload = URLTodoEvent(url=url).model_dump_json().encode("utf-8")
        try:
            await self._producer.send(self._topic, payload, key=url.encode("utf-8"))
        except Exception as e:  # noqa: BLE001
            raise EmitError(f"error while publishing URL: {e}") from e
        urls_scheduled_total.inc()
        _logger.debug("URL scheduled", extra={"url": url, "topic": self._topic})
