"""Configuration for the URL scheduler (environment-driven)."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from url_scheduler.policy import RefreshPolicy


class SchedulerConfig(BaseSettings):
    """Environment-driven scheduler settings (``URL_SCHEDULER_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="URL_SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    kafka_bootstrap_servers: str = Field(default="localhost:9092", description="Kafka bootstrap servers")
    api_url: str = Field(default="http://localhost:8080", description="Base URL of the resource index API")
    refresh_delay: str | None = Field(
        default=None,
        description="Age before an indexed URL is crawled again (e.g. 12h, 2d); unset = never",
    )

    # Topics
    input_topic: str = Field(default="url_found", description="Topic of discovered URLs")
    output_topic: str = Field(default="url_todo", description="Topic of URLs to crawl")
    dlq_topic: str = Field(default="url_scheduler_dlq", description="Topic for malformed events; empty disables")
    consumer_group: str = Field(default="schedulers", description="Consumer group shared by all scheduler workers")

    concurrency: int = Field(default=1, ge=1, description="Consumers per process")
    redelivery_delay_seconds: float = Field(default=1.0, ge=0, description="Pause after a nack before redelivery")
    hidden_service_suffix: str = Field(default=".onion", description="Host suffix a URL must carry")
    index_timeout_seconds: float = Field(default=10.0, gt=0, description="Index API request timeout")
    log_level: str = Field(default="info", description="trace, debug, info, warning or error")

    def refresh_policy(self) -> RefreshPolicy:
        return RefreshPolicy.from_string(self.refresh_delay)
