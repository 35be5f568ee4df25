"""Kafka plumbing (async): a producer and a queue-group subscriber.

The subscriber gives handlers competing-consumer semantics: every worker is a
member of the same consumer group, so each message goes to exactly one
worker across all running processes. Handlers settle each message with an
:data:`Outcome`:

- ``"ack"``: commit past the message.
- ``"nack"``: seek back to the message so it is delivered again.
- ``"reject"``: the message can never succeed; forward it to the dead-letter
  topic (if any) and commit past it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol, runtime_checkable

from pipeline_core.logging import get_logger

Outcome = Literal["ack", "nack", "reject"]
MessageHandler = Callable[[bytes], Awaitable[Outcome]]

_logger = get_logger(__name__)


@runtime_checkable
class KafkaProducer(Protocol):
    """Async Kafka producer. Implementation-agnostic."""

    async def send(
        self,
        topic: str,
        value: bytes,
        key: bytes | None = None,
    ) -> None:
        """Send a message and wait for the broker to acknowledge it."""
        ...

    async def close(self) -> None:
        """Flush pending sends and release the connection."""
        ...


class AIOKafkaProducer:
    """aiokafka producer; ``start()`` connects, or the first ``send()`` does."""

    def __init__(self, bootstrap_servers: str) -> None:
        from aiokafka import AIOKafkaProducer as _AIOKafkaProducer

        self._bootstrap_servers = bootstrap_servers
        self._producer: _AIOKafkaProducer | None = None

    async def start(self) -> None:
        from aiokafka import AIOKafkaProducer as _AIOKafkaProducer

        if self._producer is not None:
            return
        producer = _AIOKafkaProducer(bootstrap_servers=self._bootstrap_servers)
        await producer.start()
        self._producer = producer
        _logger.debug("Kafka producer started", extra={"bootstrap_servers": self._bootstrap_servers})

    async def send(
        self,
        topic: str,
        value: bytes,
        key: bytes | None = None,
    ) -> None:
        await self.start()
        if self._producer is None:
            raise RuntimeError("Kafka producer failed to start")
        await self._producer.send_and_wait(topic, value=value, key=key)

    async def close(self) -> None:
        if self._producer is None:
            return
        producer, self._producer = self._producer, None
        await producer.stop()


class QueueGroupSubscriber:
    """Runs ``workers`` consumers of ``topic`` inside consumer group ``group``.

    Offsets are committed manually, one message at a time, once the handler
    has settled it. A nack pauses the worker for ``redelivery_delay_seconds``
    before the record comes back. On shutdown each worker lets its in-flight
    handler finish and settle before closing its consumer, so no ack/nack is
    lost. A commit or seek the broker refuses is logged and consumption goes
    on; the partition's next owner resumes from the last committed offset.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        group: str,
        *,
        workers: int = 1,
        dead_letter_producer: KafkaProducer | None = None,
        dead_letter_topic: str | None = None,
        poll_timeout_ms: int = 1000,
        redelivery_delay_seconds: float = 1.0,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._redelivery_delay_seconds = redelivery_delay_seconds
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._group = group
        self._workers = workers
        self._dead_letter_producer = dead_letter_producer
        self._dead_letter_topic = dead_letter_topic or None
        self._poll_timeout_ms = poll_timeout_ms

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def group(self) -> str:
        return self._group

    async def run(self, handler: MessageHandler, stop: asyncio.Event) -> None:
        """Consume until ``stop`` is set, then drain and close every worker.

        If one worker fails, ``stop`` is set so the others settle their
        in-flight message and close before the error is re-raised.
        """
        _logger.info(
            "Queue subscription starting",
            extra={"topic": self._topic, "group": self._group, "workers": self._workers},
        )
        tasks = [
            asyncio.create_task(self._worker(worker_id, handler, stop))
            for worker_id in range(self._workers)
        ]
        try:
            done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        failed = next(
            (task for task in done if not task.cancelled() and task.exception() is not None),
            None,
        )
        if failed is not None:
            stop.set()
            _logger.error(
                "Queue subscription worker failed, stopping the others",
                extra={"topic": self._topic},
            )
            await asyncio.gather(*tasks, return_exceptions=True)
            raise failed.exception()  # type: ignore[misc]
        _logger.info("Queue subscription stopped", extra={"topic": self._topic})

    def _new_consumer(self) -> Any:
        from aiokafka import AIOKafkaConsumer

        return AIOKafkaConsumer(
            self._topic,
            bootstrap_servers=self._bootstrap_servers,
            group_id=self._group,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
        )

    async def _worker(
        self,
        worker_id: int,
        handler: MessageHandler,
        stop: asyncio.Event,
    ) -> None:
        consumer = self._new_consumer()
        await consumer.start()
        _logger.debug("Consumer started", extra={"worker_id": worker_id, "topic": self._topic})
        try:
            while not stop.is_set():
                batch = await consumer.getmany(
                    timeout_ms=self._poll_timeout_ms,
                    max_records=1,
                )
                for messages in batch.values():
                    for message in messages:
                        outcome = await self.handle_message(consumer, message, handler)
                        if outcome == "nack" and self._redelivery_delay_seconds > 0:
                            await asyncio.sleep(self._redelivery_delay_seconds)
        finally:
            await consumer.stop()
            _logger.debug("Consumer stopped", extra={"worker_id": worker_id})

    async def handle_message(
        self,
        consumer: Any,
        message: Any,
        handler: MessageHandler,
    ) -> Outcome:
        """Run ``handler`` on one record and settle it on ``consumer``.

        Exceptions escaping the handler are logged and turned into a nack.
        """
        from aiokafka.errors import KafkaError
        from aiokafka.structs import TopicPartition

        tp = TopicPartition(message.topic, message.partition)
        try:
            outcome = await handler(message.value)
        except Exception:  # noqa: BLE001
            _logger.exception(
                "Handler raised, message will be redelivered",
                extra={"topic": message.topic, "partition": message.partition, "offset": message.offset},
            )
            outcome = "nack"

        if outcome == "reject" and not await self._dead_letter(message):
            outcome = "nack"

        # A rebalance can take the partition away mid-handler; its new owner
        # resumes from the last committed offset, so the record is not lost.
        try:
            if outcome == "nack":
                consumer.seek(tp, message.offset)
            else:
                await consumer.commit({tp: message.offset + 1})
        except KafkaError as e:
            _logger.warning(
                "Could not settle message, partition will redeliver it",
                extra={
                    "topic": message.topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "outcome": outcome,
                    "error": f"{type(e).__name__}: {e}",
                },
            )
        return outcome

    async def _dead_letter(self, message: Any) -> bool:
        """Forward a rejected record. Returns False when forwarding failed."""
        if self._dead_letter_producer is None or self._dead_letter_topic is None:
            _logger.warning(
                "Rejected message dropped",
                extra={"topic": message.topic, "offset": message.offset},
            )
            return True
        try:
            await self._dead_letter_producer.send(
                self._dead_letter_topic,
                message.value,
                key=message.key,
            )
        except Exception:  # noqa: BLE001
            _logger.exception(
                "Dead-letter publish failed",
                extra={"dead_letter_topic": self._dead_letter_topic, "offset": message.offset},
            )
            return False
        _logger.warning(
            "Rejected message sent to dead-letter topic",
            extra={"dead_letter_topic": self._dead_letter_topic, "offset": message.offset},
        )
        return True
