"""
Heartbeat scheduler - runs the offline sweep on a fixed period.

The period must stay below the offline threshold so a silent device is
detected at most one tick late.
"""

import asyncio

import structlog

from freezewatch.alerts.manager import AlertManager

logger = structlog.get_logger(__name__)


class HeartbeatScheduler:
    """
    Periodically calls ``AlertManager.check_heartbeats``.

    A failing sweep is logged and the loop carries on with the next tick.

    Usage:
        scheduler = HeartbeatScheduler(manager)
        task = asyncio.create_task(scheduler.start())
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        manager: AlertManager,
        interval_seconds: float | None = None,
    ) -> None:
        self._manager = manager
        self._interval = interval_seconds or manager.config.heartbeat_check_interval_sec
        self._running = False
        self._stopped = asyncio.Event()
        self._sweeps = 0

        offline_after_sec = manager.config.offline_after_ms / 1000
        if self._interval >= offline_after_sec:
            logger.warning(
                "Heartbeat interval not below offline threshold",
                interval_seconds=self._interval,
                offline_after_seconds=offline_after_sec,
            )

    @property
    def sweeps(self) -> int:
        """Number of completed sweeps."""
        return self._sweeps

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_once(self) -> int:
        """Run a single sweep. Returns the number of events produced."""
        try:
            events = await self._manager.check_heartbeats()
        except Exception as e:
            logger.error("Heartbeat sweep failed", error=str(e))
            return 0
        finally:
            self._sweeps += 1
        if events:
            logger.info(
                "Heartbeat sweep produced events",
                offline=[event.device_id for event in events],
            )
        return len(events)

    async def start(self) -> None:
        """Run sweeps until stop() is called."""
        self._running = True
        self._stopped.clear()
        logger.info("Starting heartbeat scheduler", interval_seconds=self._interval)

        try:
            while self._running:
                await self.run_once()
                try:
                    await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("Heartbeat scheduler cancelled")
            raise
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the loop after the current sweep."""
        logger.info("Stopping heartbeat scheduler")
        self._running = False
        self._stopped.set()
