"""Pytest fixtures for freezewatch tests."""

import pytest

from freezewatch.alerts.config import AlertConfig
from freezewatch.alerts.schemas import AlertEvent
from tests.helpers import T0, RecordingDispatcher


@pytest.fixture
def alert_config() -> AlertConfig:
    """Thresholds matching the deployed defaults."""
    return AlertConfig(
        heartbeat_sec=300,
        offline_multiplier=2,
        alert_cooldown_sec=900,
        spike_c=1.5,
        lower_bound_c=-90,
        upper_bound_c=-70,
    )


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def alert_event() -> AlertEvent:
    return AlertEvent(
        kind="alert",
        device_id="freezer-01",
        lower_bound=-90.0,
        upper_bound=-70.0,
        timestamp_ms=T0,
        temperature=-65.5,
        fault_code=0,
    )
