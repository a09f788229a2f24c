"""
Prometheus metrics for the alerting engine.

Defines and exposes metrics for:
- Events produced by the device state machines
- Notification outcomes per channel
- Delivery latency
- Devices per status

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
from collections import Counter as _Tally
from typing import Iterable

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from freezewatch.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for delivery latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0)

DEVICE_STATUSES = ("normal", "alert", "fault", "offline")


class MetricsCollector:
    """
    Prometheus metrics collector for freezewatch.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_event("alert")
        metrics.record_notification("discord", "delivered")
    """

    def __init__(self):
        self.events_emitted = Counter(
            "freezewatch_events_total",
            "Alert events produced by device state machines",
            ["kind"],
        )

        self.notifications = Counter(
            "freezewatch_notifications_total",
            "Notification outcomes per channel",
            ["channel", "result"],  # result: delivered, skipped, failed
        )

        self.delivery_latency = Histogram(
            "freezewatch_delivery_latency_seconds",
            "Time spent on a single delivery attempt",
            ["channel"],
            buckets=LATENCY_BUCKETS,
        )

        self.devices = Gauge(
            "freezewatch_devices",
            "Known devices per status",
            ["status"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        port = port or get_settings().metrics_port
        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started on port %d", port)

    def record_event(self, kind: str) -> None:
        self.events_emitted.labels(kind=kind).inc()

    def record_notification(self, channel: str, result: str) -> None:
        self.notifications.labels(channel=channel, result=result).inc()

    def record_delivery_latency(self, channel: str, latency: float) -> None:
        self.delivery_latency.labels(channel=channel).observe(latency)

    def set_device_statuses(self, statuses: Iterable[str]) -> None:
        """
        Set the per-status device gauge from the current statuses.

        Args:
            statuses: One status per known device
        """
        counts = _Tally(statuses)
        for status in DEVICE_STATUSES:
            self.devices.labels(status=status).set(counts.get(status, 0))


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
