"""Notification fan-out for alert events.

Components:
- NotificationConfig / ConfigProvider: live channel configuration
- NotificationChannel / EmailChannel / DiscordChannel / WebhookChannel: targets and rendering
- ChannelTransport and its implementations: single-attempt delivery
- RetryPolicy / MinIntervalLimiter: retry and flood control
- NotificationDispatcher: concurrent per-channel delivery
- DeliveryOutcome / DispatchReport: results
"""

from freezewatch.notifications.channels import (
    DiscordChannel,
    EmailChannel,
    NotificationChannel,
    WebhookChannel,
    default_channels,
)
from freezewatch.notifications.config import (
    ConfigProvider,
    EnvConfigProvider,
    NotificationConfig,
    StaticConfigProvider,
)
from freezewatch.notifications.dispatcher import NotificationDispatcher
from freezewatch.notifications.rate_limit import MinIntervalLimiter
from freezewatch.notifications.retry import RetryPolicy
from freezewatch.notifications.schemas import (
    ChannelTarget,
    DeliveryOutcome,
    DispatchReport,
)
from freezewatch.notifications.transports import (
    ChannelTransport,
    DiscordWebhookTransport,
    JsonWebhookTransport,
    ResendTransport,
    SendGridTransport,
    SmtpTransport,
)

__all__ = [
    "ChannelTarget",
    "ChannelTransport",
    "ConfigProvider",
    "DeliveryOutcome",
    "DiscordChannel",
    "DiscordWebhookTransport",
    "DispatchReport",
    "EmailChannel",
    "EnvConfigProvider",
    "JsonWebhookTransport",
    "MinIntervalLimiter",
    "NotificationChannel",
    "NotificationConfig",
    "NotificationDispatcher",
    "ResendTransport",
    "RetryPolicy",
    "SendGridTransport",
    "SmtpTransport",
    "StaticConfigProvider",
    "WebhookChannel",
    "default_channels",
]
