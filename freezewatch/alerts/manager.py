"""Alert manager: the facade over all device state machines.

Owns the device-state store, resolves bounds once per reading, runs the
heartbeat sweep and forwards every produced event to the dispatcher.

Classification is synchronous and guarded per device; only dispatch
suspends. Events of one device are dispatched in the order their readings
were processed, different devices dispatch in parallel.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Protocol

from freezewatch.alerts.config import AlertConfig
from freezewatch.alerts.schemas import AlertEvent, Bounds, DeviceSnapshot
from freezewatch.alerts.state import DeviceState
from freezewatch.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class EventDispatcher(Protocol):
    """Anything that can deliver an event (see ``NotificationDispatcher``)."""

    async def dispatch(self, event: AlertEvent) -> Any:
        ...


class AlertManager:
    """Tracks per-device state and turns readings into notifications.

    Args:
        config: Thresholds and default bounds.
        dispatcher: Receives every event. Without one, events are only
            returned to the caller.
        bounds_provider: Returns the process-wide default bounds at the
            moment of each reading (defaults to the config's bounds).
        clock: Epoch-milliseconds clock used when callers omit timestamps.
    """

    def __init__(
        self,
        config: AlertConfig | None = None,
        dispatcher: EventDispatcher | None = None,
        bounds_provider: Callable[[], Bounds] | None = None,
        clock: Callable[[], int] = _now_ms,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config or AlertConfig()
        self._dispatcher = dispatcher
        self._bounds_provider = bounds_provider or (lambda: self._config.default_bounds)
        self._clock = clock
        self._metrics = metrics or get_metrics()

        self._devices: dict[str, DeviceState] = {}
        self._dispatch_locks: dict[str, asyncio.Lock] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> AlertConfig:
        return self._config

    @property
    def dispatcher(self) -> EventDispatcher | None:
        return self._dispatcher

    def set_dispatcher(self, dispatcher: EventDispatcher | None) -> None:
        """Swap the dispatcher without touching device state."""
        self._dispatcher = dispatcher

    def _get_or_create(self, device_id: str) -> DeviceState:
        with self._lock:
            state = self._devices.get(device_id)
            if state is None:
                state = DeviceState(
                    device_id,
                    cooldown_ms=self._config.cooldown_ms,
                    spike_threshold=self._config.spike_c,
                )
                self._devices[device_id] = state
                self._dispatch_locks[device_id] = asyncio.Lock()
                logger.info("Tracking new device %s", device_id)
            return state

    def evict(self, device_id: str) -> bool:
        """Forget a device. Returns False if it was not tracked."""
        with self._lock:
            self._dispatch_locks.pop(device_id, None)
            return self._devices.pop(device_id, None) is not None

    async def update_reading(
        self,
        device_id: str,
        temperature: float,
        fault_code: int = 0,
        timestamp_ms: int | None = None,
        lower_bound: float | None = None,
        upper_bound: float | None = None,
    ) -> list[AlertEvent]:
        """Classify one reading and dispatch the events it produces.

        Args:
            device_id: Reporting device.
            temperature: Validated, finite temperature.
            fault_code: Sensor status register (0 = healthy).
            timestamp_ms: Reading time; defaults to now.
            lower_bound: Lower bound for this reading (default bounds if None).
            upper_bound: Upper bound for this reading (default bounds if None).

        Returns:
            Events produced by this reading, after dispatch.
        """
        now = self._clock() if timestamp_ms is None else int(timestamp_ms)
        bounds = Bounds.resolve(lower_bound, upper_bound, self._bounds_provider())

        state = self._get_or_create(device_id)
        events = state.on_reading(temperature, int(fault_code) & 0xFFFFFFFF, bounds, now)
        await self._dispatch(device_id, events)
        return events

    async def check_heartbeats(self, now_ms: int | None = None) -> list[AlertEvent]:
        """Sweep all devices for staleness and dispatch offline events."""
        now = self._clock() if now_ms is None else int(now_ms)
        offline_after = self._config.offline_after_ms
        default_bounds = self._bounds_provider()

        with self._lock:
            devices = list(self._devices.values())

        per_device = await asyncio.gather(
            *(self._sweep_device(state, now, offline_after, default_bounds) for state in devices)
        )
        self._metrics.set_device_statuses(s.status for s in devices)
        return [event for events in per_device for event in events]

    def get_states(self) -> tuple[DeviceSnapshot, ...]:
        """Immutable snapshot of every tracked device, sorted by id."""
        with self._lock:
            devices = sorted(self._devices.values(), key=lambda s: s.device_id)
        return tuple(state.snapshot() for state in devices)

    def _dispatch_lock(self, device_id: str) -> asyncio.Lock:
        with self._lock:
            lock = self._dispatch_locks.get(device_id)
        return lock if lock is not None else asyncio.Lock()

    async def _sweep_device(
        self,
        state: DeviceState,
        now: int,
        offline_after: int,
        default_bounds: Bounds,
    ) -> list[AlertEvent]:
        # The offline decision is taken under the dispatch lock, so a reading
        # processed after it always dispatches after the offline event.
        async with self._dispatch_lock(state.device_id):
            events = state.on_heartbeat_sweep(now, offline_after, default_bounds)
            if events:
                logger.info("Device %s went offline", state.device_id)
                await self._forward(events)
        return events

    async def _dispatch(self, device_id: str, events: list[AlertEvent]) -> None:
        """Forward events in order behind the device's earlier dispatches."""
        if not events:
            return
        # FIFO lock: a later reading of the same device waits for this one.
        async with self._dispatch_lock(device_id):
            await self._forward(events)

    async def _forward(self, events: list[AlertEvent]) -> None:
        """Hand events to the dispatcher. Delivery problems never propagate."""
        for event in events:
            self._metrics.record_event(event.kind)

        if self._dispatcher is None:
            logger.debug("No dispatcher set, dropping %d event(s)", len(events))
            return

        for event in events:
            try:
                await self._dispatcher.dispatch(event)
            except Exception as e:
                logger.error(
                    "Notification dispatch failed for %s/%s: %s",
                    event.device_id, event.kind, e,
                )
