"""Observability layer - logging and metrics."""

from freezewatch.observability.logging import setup_logging
from freezewatch.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
