"""Freezer telemetry alerting: per-device state machine and notification fan-out."""

__version__ = "0.1.0"
