"""Per-device alert state machine.

Each ``DeviceState`` classifies the readings of one device, keeps the
cooldown ledger that throttles repeated notifications, and returns the
events a transition produces. No I/O happens here: the caller decides
what to do with the events.

Statuses: ``normal``, ``alert``, ``fault`` come from the latest reading
(fault wins over the bounds check, a faulty sensor's temperature is not
trusted). ``offline`` is set only by the heartbeat sweep and cleared only
by the next reading.
"""

import threading
from types import MappingProxyType

from freezewatch.alerts.schemas import (
    COOLDOWN_BUCKETS,
    AlertEvent,
    Bounds,
    DeviceSnapshot,
    DeviceStatus,
    EventKind,
)


def classify(temperature: float, fault_code: int, bounds: Bounds) -> DeviceStatus:
    """Classify a single reading.

    Args:
        temperature: Reported temperature.
        fault_code: Sensor status register, 0 when healthy.
        bounds: Bounds in effect for this reading.

    Returns:
        ``fault``, ``alert`` or ``normal``.
    """
    if fault_code != 0:
        return "fault"
    if not bounds.contains(temperature):
        return "alert"
    return "normal"


class DeviceState:
    """Status, last reading and cooldown ledger for one device.

    All mutating operations hold a per-device lock, so the cooldown
    test-and-set is atomic and the heartbeat sweep always inspects a
    consistent ``last_reading_at``/``status`` pair.
    """

    def __init__(
        self,
        device_id: str,
        cooldown_ms: int,
        spike_threshold: float,
    ) -> None:
        self.device_id = device_id
        self.status: DeviceStatus = "normal"
        self.last_temperature: float | None = None
        self.last_reading_at: int | None = None
        self.last_fault_code = 0
        self.last_bounds: Bounds | None = None
        self._cooldown_ms = cooldown_ms
        self._spike_threshold = spike_threshold
        self._cooldowns: dict[str, int] = {}
        self._lock = threading.Lock()

    def should_suppress(self, bucket: str, now: int, override: bool = False) -> bool:
        """Cooldown gate with test-and-set semantics.

        Returns True if ``bucket`` fired within the cooldown window and no
        override applies. Otherwise the bucket is stamped with ``now`` and
        False is returned, so a given decision must call this exactly once.

        Args:
            bucket: Cooldown bucket name.
            now: Current time in epoch milliseconds.
            override: Let the event through even inside the window
                (fresh transition or spike). The bucket is still stamped.
        """
        if bucket not in COOLDOWN_BUCKETS:
            raise ValueError(f"Unknown cooldown bucket {bucket!r}")

        last = self._cooldowns.get(bucket)
        within_window = last is not None and now - last < self._cooldown_ms
        if within_window and not override:
            return True
        self._cooldowns[bucket] = now
        return False

    def on_reading(
        self,
        temperature: float,
        fault_code: int,
        bounds: Bounds,
        now: int,
    ) -> list[AlertEvent]:
        """Apply one reading and return the events it triggers.

        Events are decided from the pre-reading state; the new reading is
        committed afterwards.
        """
        with self._lock:
            was_status = self.status
            status_now = classify(temperature, fault_code, bounds)
            events: list[AlertEvent] = []

            def _event(kind: EventKind) -> AlertEvent:
                return AlertEvent(
                    kind=kind,
                    device_id=self.device_id,
                    lower_bound=bounds.lower,
                    upper_bound=bounds.upper,
                    timestamp_ms=now,
                    temperature=temperature,
                    fault_code=fault_code,
                )

            # One-shot "back online" notice, independent of the classification
            if was_status == "offline" and not self.should_suppress("online", now):
                events.append(_event("online"))

            if status_now == "fault":
                if not self.should_suppress(
                    "fault", now, override=was_status != "fault"
                ):
                    events.append(_event("fault"))
            elif status_now == "alert":
                spike = (
                    self.last_temperature is not None
                    and abs(temperature - self.last_temperature) >= self._spike_threshold
                )
                if not self.should_suppress(
                    "alert", now, override=spike or was_status != "alert"
                ):
                    events.append(_event("alert"))
            elif was_status == "alert" and not self.should_suppress("recover", now):
                events.append(_event("recover"))

            self.last_temperature = temperature
            self.last_fault_code = fault_code
            self.last_reading_at = now
            self.last_bounds = bounds
            self.status = status_now
            return events

    def on_heartbeat_sweep(
        self,
        now: int,
        offline_after_ms: int,
        default_bounds: Bounds,
    ) -> list[AlertEvent]:
        """Mark the device offline if it has been silent for ``offline_after_ms``.

        The offline event is stamped with the bounds of the last reading,
        or ``default_bounds`` if the device never reported any.
        """
        with self._lock:
            if self.status == "offline":
                return []
            since = now - (self.last_reading_at or 0)
            if since < offline_after_ms:
                return []

            events: list[AlertEvent] = []
            if not self.should_suppress("offline", now):
                bounds = self.last_bounds or default_bounds
                events.append(
                    AlertEvent(
                        kind="offline",
                        device_id=self.device_id,
                        lower_bound=bounds.lower,
                        upper_bound=bounds.upper,
                        timestamp_ms=now,
                    )
                )
            self.status = "offline"
            return events

    def snapshot(self) -> DeviceSnapshot:
        """Immutable copy of the current state."""
        with self._lock:
            return DeviceSnapshot(
                device_id=self.device_id,
                status=self.status,
                last_temperature=self.last_temperature,
                last_reading_at=self.last_reading_at,
                last_fault_code=self.last_fault_code,
                cooldowns=MappingProxyType(dict(self._cooldowns)),
            )
