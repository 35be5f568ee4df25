"""URL scheduler: consumes discovered URLs, publishes the ones worth crawling."""

from __future__ import annotations

import asyncio
import signal

from pipeline_core import AIOKafkaProducer, QueueGroupSubscriber, configure_logging, get_logger

from url_scheduler import __version__
from url_scheduler.config import SchedulerConfig
from url_scheduler.emitter import ScheduleEmitter
from url_scheduler.engine import DecisionEngine
from url_scheduler.index_client import HttpResourceIndex
from url_scheduler.ingress import URLFoundHandler

COMPONENT = "url_scheduler"
_logger = get_logger(COMPONENT)


async def _run(config: SchedulerConfig) -> None:
    policy = config.refresh_policy()
    if policy.enabled:
        _logger.info(
            "Existing resources will be crawled again",
            extra={"refresh_delay_seconds": policy.delay.total_seconds() if policy.delay else None},
        )
    else:
        _logger.info("Existing resources will NOT be crawled again")

    index = HttpResourceIndex(config.api_url, timeout_seconds=config.index_timeout_seconds)
    producer = AIOKafkaProducer(config.kafka_bootstrap_servers)
    await producer.start()
    subscriber = QueueGroupSubscriber(
        config.kafka_bootstrap_servers,
        config.input_topic,
        config.consumer_group,
        workers=config.concurrency,
        dead_letter_producer=producer,
        dead_letter_topic=config.dlq_topic,
        redelivery_delay_seconds=config.redelivery_delay_seconds,
    )
    engine = DecisionEngine(index, policy, suffix=config.hidden_service_suffix)
    handler = URLFoundHandler(engine, ScheduleEmitter(producer, config.output_topic))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    _logger.info(
        "Scheduler initialised, waiting for URLs",
        extra={
            "kafka_bootstrap_servers": config.kafka_bootstrap_servers,
            "api_url": config.api_url,
            "input_topic": config.input_topic,
            "output_topic": config.output_topic,
            "consumer_group": config.consumer_group,
            "concurrency": config.concurrency,
        },
    )

    try:
        await subscriber.run(handler, stop)
    finally:
        await producer.close()
        await index.close()
    _logger.info("Shutting down")


def main() -> None:
    config = SchedulerConfig()
    configure_logging(config.log_level)
    _logger.info("Starting url_scheduler", extra={"version": __version__})
    asyncio.run(_run(config))


if __name__ == "__main__":
    main()
