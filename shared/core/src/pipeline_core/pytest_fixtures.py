"""Shared pytest fixtures (Kafka container, bootstrap servers, unique topics)."""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from testcontainers.kafka import KafkaContainer


@pytest.fixture(scope="session")
def kafka_container() -> Generator[KafkaContainer, None, None]:
    """Start a Kafka broker for the test session. Skips if Docker is unavailable."""
    try:
        container = KafkaContainer("confluentinc/cp-kafka:7.6.0")
        with container:
            yield container
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"Docker not available: {e}")


@pytest.fixture
def kafka_bootstrap_servers(kafka_container: KafkaContainer) -> str:
    """Bootstrap address of the session broker (for AIOKafkaProducer, etc.)."""
    return str(kafka_container.get_bootstrap_server())


@pytest.fixture
def topic_name() -> str:
    """Unique topic per test so tests never see each other's records."""
    return f"test_topic_{uuid.uuid4().hex}"
