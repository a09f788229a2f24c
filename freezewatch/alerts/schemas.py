"""Schema definitions for alert events and device snapshots.

Events are ephemeral: they are built by the device state machine, handed
to the notification dispatcher and then dropped. Nothing here is
persisted by the alert engine itself.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Literal, Mapping

EventKind = Literal["alert", "recover", "fault", "offline", "online", "heartbeat"]

VALID_EVENT_KINDS: frozenset[str] = frozenset({
    "alert",
    "recover",
    "fault",
    "offline",
    "online",
    "heartbeat",
})

DeviceStatus = Literal["normal", "alert", "fault", "offline"]

VALID_STATUSES: frozenset[str] = frozenset({
    "normal",
    "alert",
    "fault",
    "offline",
})

# Cooldown buckets share their names with the event kinds they gate.
COOLDOWN_BUCKETS: frozenset[str] = frozenset({
    "alert",
    "fault",
    "offline",
    "online",
    "recover",
})


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class Bounds:
    """Inclusive temperature range considered healthy."""

    lower: float
    upper: float

    def contains(self, temperature: float) -> bool:
        return not (temperature < self.lower or temperature > self.upper)

    @classmethod
    def resolve(
        cls,
        lower: float | None,
        upper: float | None,
        default: "Bounds",
    ) -> "Bounds":
        """Fill missing or non-finite values from ``default``.

        Ordering (``lower < upper``) is the configuration layer's job and is
        not checked here.
        """

        def _pick(value: float | None, fallback: float) -> float:
            if value is None:
                return fallback
            try:
                value = float(value)
            except (TypeError, ValueError):
                return fallback
            return value if math.isfinite(value) else fallback

        return cls(lower=_pick(lower, default.lower), upper=_pick(upper, default.upper))


@dataclass(frozen=True)
class AlertEvent:
    """A normalized notification decision for one device.

    Attributes:
        kind: What happened (alert, recover, fault, offline, online, heartbeat).
        device_id: Device the event is about.
        lower_bound: Lower bound in effect when the event was generated.
        upper_bound: Upper bound in effect when the event was generated.
        timestamp_ms: Epoch milliseconds of the triggering reading or sweep.
        temperature: Reading temperature, if the event came from a reading.
        fault_code: Status register value, if the event came from a reading.
    """

    kind: EventKind
    device_id: str
    lower_bound: float
    upper_bound: float
    timestamp_ms: int
    temperature: float | None = None
    fault_code: int | None = None

    def __post_init__(self) -> None:
        if self.kind not in VALID_EVENT_KINDS:
            raise ValueError(
                f"Invalid kind {self.kind!r}. "
                f"Must be one of: {sorted(VALID_EVENT_KINDS)}"
            )

    @property
    def when(self) -> datetime:
        return ms_to_datetime(self.timestamp_ms)

    @property
    def bounds(self) -> Bounds:
        return Bounds(lower=self.lower_bound, upper=self.upper_bound)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "kind": self.kind,
            "device_id": self.device_id,
            "temperature": self.temperature,
            "fault_code": self.fault_code,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
            "timestamp_ms": self.timestamp_ms,
            "when": self.when.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertEvent":
        """Create an AlertEvent from a dictionary produced by ``to_dict``."""
        return cls(
            kind=data["kind"],
            device_id=data["device_id"],
            lower_bound=data["lower_bound"],
            upper_bound=data["upper_bound"],
            timestamp_ms=data["timestamp_ms"],
            temperature=data.get("temperature"),
            fault_code=data.get("fault_code"),
        )


@dataclass(frozen=True)
class DeviceSnapshot:
    """Read-only view of one device's state for status reporting."""

    device_id: str
    status: DeviceStatus
    last_temperature: float | None
    last_reading_at: int | None
    last_fault_code: int
    cooldowns: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict[str, Any]:
        last_seen = (
            ms_to_datetime(self.last_reading_at).isoformat()
            if self.last_reading_at is not None
            else None
        )
        return {
            "id": self.device_id,
            "status": self.status,
            "last_temperature": self.last_temperature,
            "last_seen": last_seen,
            "last_fault_code": self.last_fault_code,
        }
