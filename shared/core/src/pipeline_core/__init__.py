"""Shared pipeline plumbing: Kafka producer/subscriber and JSON logging."""

from pipeline_core.kafka import (
    AIOKafkaProducer,
    KafkaProducer,
    MessageHandler,
    Outcome,
    QueueGroupSubscriber,
)
from pipeline_core.logging import (
    LogSink,
    PrintSink,
    configure_logging,
    get_logger,
    parse_log_level,
)

__all__ = [
    "KafkaProducer",
    "AIOKafkaProducer",
    "QueueGroupSubscriber",
    "MessageHandler",
    "Outcome",
    "LogSink",
    "PrintSink",
    "configure_logging",
    "get_logger",
    "parse_log_level",
]
