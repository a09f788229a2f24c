"""Notification dispatcher orchestrating event delivery across channels.

Handles the disabled-channel short-circuit, per-channel flood control,
bounded retries and per-attempt timeouts. Channels are attempted
concurrently and every failure ends here as a ``DeliveryOutcome``:
``dispatch`` never raises into the alert engine.

Pattern: Orchestrator, delegates rendering to channels and I/O to
single-attempt transports.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import replace
from typing import Awaitable, Callable

from freezewatch.alerts.schemas import AlertEvent
from freezewatch.notifications.channels import NotificationChannel, default_channels
from freezewatch.notifications.config import (
    ConfigProvider,
    NotificationConfig,
    StaticConfigProvider,
)
from freezewatch.notifications.rate_limit import MinIntervalLimiter
from freezewatch.notifications.retry import RetryPolicy
from freezewatch.notifications.schemas import DeliveryOutcome, DispatchReport
from freezewatch.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fans one event out to every enabled channel.

    Args:
        channels: Channels to deliver on (defaults to email, Discord, webhook).
        config_provider: Consulted on every dispatch for the live config.
        retry_policy: Fixed policy; when omitted one is built from the
            config's ``notify_retry_*`` settings on every dispatch.
        sleep: Awaitable sleep used for backoff and rate limiting.
        metrics: Metrics collector (defaults to the global one).
    """

    def __init__(
        self,
        channels: list[NotificationChannel] | None = None,
        config_provider: ConfigProvider | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._channels = list(channels) if channels is not None else default_channels()
        self._config_provider = config_provider or StaticConfigProvider()
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._metrics = metrics or get_metrics()
        self._limiters: dict[str, MinIntervalLimiter] = defaultdict(
            lambda: MinIntervalLimiter(sleep=self._sleep)
        )

    @property
    def channels(self) -> list[NotificationChannel]:
        """Configured channels (for inspection/testing)."""
        return self._channels

    def _policy_for(self, config: NotificationConfig) -> RetryPolicy:
        if self._retry_policy is not None:
            return self._retry_policy
        return RetryPolicy(
            max_attempts=config.notify_retry_attempts,
            base_delay=config.notify_retry_base_delay_sec,
        )

    async def dispatch(self, event: AlertEvent) -> DispatchReport:
        """Send an event to all channels.

        Args:
            event: Event to deliver.

        Returns:
            Report with one outcome per channel, in channel order.
        """
        config = self._config_provider.get_config()

        if not config.alerts_enabled:
            logger.debug("Alerts disabled, skipping %s for %s", event.kind, event.device_id)
            outcomes = tuple(
                DeliveryOutcome.skip("alerts disabled in config", channel=ch.name)
                for ch in self._channels
            )
        else:
            results = await asyncio.gather(
                *(self._deliver(ch, event, config) for ch in self._channels),
                return_exceptions=True,
            )
            outcomes = tuple(
                self._as_outcome(ch, result)
                for ch, result in zip(self._channels, results)
            )

        report = DispatchReport(event=event, outcomes=outcomes)
        self._record_delivery(report)
        return report

    async def dispatch_batch(self, events: list[AlertEvent]) -> list[DispatchReport]:
        """Dispatch events one after another, preserving their order."""
        return [await self.dispatch(event) for event in events]

    def _as_outcome(
        self,
        channel: NotificationChannel,
        result: DeliveryOutcome | BaseException,
    ) -> DeliveryOutcome:
        if isinstance(result, DeliveryOutcome):
            return result
        logger.error("Unexpected error delivering on %s: %r", channel.name, result)
        return replace(
            DeliveryOutcome.failure(detail=f"{type(result).__name__}: {result}", retryable=False),
            channel=channel.name,
        )

    async def _deliver(
        self,
        channel: NotificationChannel,
        event: AlertEvent,
        config: NotificationConfig,
    ) -> DeliveryOutcome:
        """Deliver on one channel with rate limiting, timeout and retry."""
        target = channel.resolve_target(config)
        if target.skip_reason is not None:
            logger.debug(
                "Channel %s skipped for %s/%s: %s",
                channel.name, event.device_id, event.kind, target.skip_reason,
            )
            return DeliveryOutcome.skip(target.skip_reason, channel=channel.name)

        payload = channel.render(event, target)
        transport = channel.transport_for(config)
        limiter = self._limiters[channel.name]
        policy = self._policy_for(config)
        timeout = config.notify_timeout_sec

        outcome = DeliveryOutcome.failure(detail="not attempted", retryable=False)
        for attempt in range(policy.max_attempts):
            await limiter.acquire(target.min_interval_seconds)

            started = time.monotonic()
            try:
                outcome = await asyncio.wait_for(transport.send(payload, target), timeout)
            except asyncio.TimeoutError:
                outcome = DeliveryOutcome.failure(
                    detail=f"timed out after {timeout:g}s",
                    retryable=transport.retry_on_timeout,
                )
            except Exception as e:
                logger.warning(
                    "Channel %s send error (attempt %d): %s",
                    channel.name, attempt + 1, e,
                )
                outcome = DeliveryOutcome.failure(
                    detail=f"{type(e).__name__}: {e}", retryable=True,
                )
            self._metrics.record_delivery_latency(channel.name, time.monotonic() - started)
            outcome = replace(outcome, channel=channel.name, attempts=attempt + 1)

            if outcome.delivered or outcome.skipped:
                if attempt > 0:
                    logger.info(
                        "Event %s/%s delivered to %s on attempt %d",
                        event.device_id, event.kind, channel.name, attempt + 1,
                    )
                return outcome

            if not outcome.retryable:
                logger.error(
                    "Permanent failure delivering %s/%s on %s: %s",
                    event.device_id, event.kind, channel.name, outcome.detail,
                )
                return outcome

            if attempt < policy.max_attempts - 1:
                delay = policy.delay_for(attempt, outcome.retry_after)
                logger.info(
                    "Retrying %s on %s in %.2fs (%s)",
                    event.kind, channel.name, delay, outcome.detail,
                )
                await self._sleep(delay)

        logger.warning(
            "All %d attempts exhausted for %s/%s on channel %s: %s",
            policy.max_attempts, event.device_id, event.kind, channel.name, outcome.detail,
        )
        return outcome

    def _record_delivery(self, report: DispatchReport) -> None:
        """Log delivery results and update metrics.

        Args:
            report: Per-channel delivery outcomes.
        """
        for outcome in report.outcomes:
            self._metrics.record_notification(outcome.channel, outcome.result)

        event = report.event
        successes = report.delivered_channels
        failures = report.failed_channels

        if failures and not successes:
            logger.error(
                "Event %s/%s failed ALL attempted channels: %s",
                event.device_id, event.kind, failures,
            )
        elif failures:
            logger.warning(
                "Event %s/%s partial delivery: ok=%s failed=%s",
                event.device_id, event.kind, successes, failures,
            )
        else:
            logger.debug(
                "Event %s/%s delivered=%s skipped=%s",
                event.device_id, event.kind, successes, report.skipped_channels,
            )
