"""Prometheus metrics for the URL scheduler."""

from prometheus_client import Counter, Histogram

events_received_total = Counter(
    "url_scheduler_events_received_total",
    "Discovered-URL events delivered to the scheduler (redeliveries included)",
)
decisions_total = Counter(
    "url_scheduler_decisions_total",
    "Scheduling decisions by outcome",
    ["decision"],  # schedule | skip | invalid | query_failed
)
urls_scheduled_total = Counter(
    "url_scheduler_urls_scheduled_total",
    "Schedule requests published to the crawl topic",
)
events_rejected_total = Counter(
    "url_scheduler_events_rejected_total",
    "Events with a malformed payload (never redelivered)",
)
events_nacked_total = Counter(
    "url_scheduler_events_nacked_total",
    "Events handed back to the bus for redelivery",
)
index_query_duration_seconds = Histogram(
    "url_scheduler_index_query_duration_seconds",
    "Resource index search round-trip in seconds",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
