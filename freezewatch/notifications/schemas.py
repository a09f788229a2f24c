"""Delivery targets and outcomes exchanged between dispatcher, channels and transports."""

from dataclasses import dataclass, field
from typing import Any

from freezewatch.alerts.schemas import AlertEvent


@dataclass(frozen=True)
class ChannelTarget:
    """Where and how a channel delivers, resolved from the current config.

    Attributes:
        destination: Recipient addresses or a webhook URL. Empty when the
            channel is not configured.
        min_interval_seconds: Minimum gap between two posts (0 = no limit).
        options: Channel-specific extras (sender address, thread id, ...).
        skip_reason: Set when the channel must not deliver at all.
    """

    destination: str | tuple[str, ...] = ""
    min_interval_seconds: float = 0.0
    options: dict[str, Any] = field(default_factory=dict)
    skip_reason: str | None = None

    @classmethod
    def skipped(cls, reason: str) -> "ChannelTarget":
        return cls(skip_reason=reason)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of delivering one event on one channel.

    Transports fill in a single attempt; the dispatcher stamps the channel
    name and the number of attempts made.
    """

    delivered: bool
    skipped: bool = False
    retryable: bool = False
    detail: str = ""
    status_code: int | None = None
    retry_after: float | None = None
    channel: str = ""
    attempts: int = 0

    @classmethod
    def success(cls, detail: str = "", status_code: int | None = None) -> "DeliveryOutcome":
        return cls(delivered=True, detail=detail, status_code=status_code)

    @classmethod
    def skip(cls, detail: str, channel: str = "") -> "DeliveryOutcome":
        return cls(delivered=False, skipped=True, detail=detail, channel=channel)

    @classmethod
    def failure(
        cls,
        detail: str,
        retryable: bool,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> "DeliveryOutcome":
        return cls(
            delivered=False,
            retryable=retryable,
            detail=detail,
            status_code=status_code,
            retry_after=retry_after,
        )

    @property
    def result(self) -> str:
        """Short label used for logs and metrics."""
        if self.delivered:
            return "delivered"
        if self.skipped:
            return "skipped"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "delivered": self.delivered,
            "skipped": self.skipped,
            "retryable": self.retryable,
            "detail": self.detail,
            "status_code": self.status_code,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class DispatchReport:
    """Per-channel outcomes for one dispatched event."""

    event: AlertEvent
    outcomes: tuple[DeliveryOutcome, ...] = ()

    def outcome_for(self, channel: str) -> DeliveryOutcome | None:
        for outcome in self.outcomes:
            if outcome.channel == channel:
                return outcome
        return None

    @property
    def delivered_channels(self) -> list[str]:
        return [o.channel for o in self.outcomes if o.delivered]

    @property
    def skipped_channels(self) -> list[str]:
        return [o.channel for o in self.outcomes if o.skipped]

    @property
    def failed_channels(self) -> list[str]:
        return [o.channel for o in self.outcomes if o.result == "failed"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event.to_dict(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
