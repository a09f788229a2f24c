"""Alert engine for freezer telemetry.

Components:
- AlertEvent / DeviceSnapshot / Bounds: event and status models
- AlertConfig: Pydantic settings for heartbeat, cooldown and spike thresholds
- DeviceState / classify: per-device state machine and cooldown ledger
- AlertManager: facade owning the device store and forwarding events
- HeartbeatScheduler: periodic offline sweep
- VALID_EVENT_KINDS / VALID_STATUSES: Frozensets for runtime validation
"""

from freezewatch.alerts.config import AlertConfig
from freezewatch.alerts.manager import AlertManager, EventDispatcher
from freezewatch.alerts.scheduler import HeartbeatScheduler
from freezewatch.alerts.schemas import (
    VALID_EVENT_KINDS,
    VALID_STATUSES,
    AlertEvent,
    Bounds,
    DeviceSnapshot,
    DeviceStatus,
    EventKind,
)
from freezewatch.alerts.state import DeviceState, classify

__all__ = [
    "AlertConfig",
    "AlertEvent",
    "AlertManager",
    "Bounds",
    "DeviceSnapshot",
    "DeviceState",
    "DeviceStatus",
    "EventDispatcher",
    "EventKind",
    "HeartbeatScheduler",
    "VALID_EVENT_KINDS",
    "VALID_STATUSES",
    "classify",
]
