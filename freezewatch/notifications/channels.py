"""Notification channel implementations for alert delivery.

A channel knows three things: whether it is configured (``resolve_target``),
how an event looks on it (``render``), and which transport carries it
(``transport_for``). All three are derived from the ``NotificationConfig``
current at dispatch time, so channels themselves hold no configuration.

A transport passed to the constructor replaces the config-derived one,
which is how tests plug in a fake.
"""

from abc import ABC, abstractmethod
from typing import Any

from freezewatch.alerts.schemas import AlertEvent
from freezewatch.notifications.config import KNOWN_EMAIL_PROVIDERS, NotificationConfig
from freezewatch.notifications.rendering import (
    render_discord,
    render_email,
    render_webhook,
)
from freezewatch.notifications.schemas import ChannelTarget
from freezewatch.notifications.transports import (
    ChannelTransport,
    DiscordWebhookTransport,
    JsonWebhookTransport,
    ResendTransport,
    SendGridTransport,
    SmtpTransport,
)


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    def __init__(self, transport: ChannelTransport | None = None) -> None:
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'email', 'discord')."""

    @abstractmethod
    def resolve_target(self, config: NotificationConfig) -> ChannelTarget:
        """Destination and options, or a skipped target when not configured."""

    @abstractmethod
    def render(self, event: AlertEvent, target: ChannelTarget) -> dict[str, Any]:
        """Build the channel payload. Must not perform I/O."""

    @abstractmethod
    def _default_transport(self, config: NotificationConfig) -> ChannelTransport:
        """Transport built from the current config."""

    def transport_for(self, config: NotificationConfig) -> ChannelTransport:
        if self._transport is not None:
            return self._transport
        return self._default_transport(config)


class EmailChannel(NotificationChannel):
    """Plain-text email via SMTP, Resend or SendGrid."""

    @property
    def name(self) -> str:
        return "email"

    def resolve_target(self, config: NotificationConfig) -> ChannelTarget:
        if not config.email_enabled:
            return ChannelTarget.skipped("email disabled in config")

        recipients = config.recipients
        if not recipients:
            return ChannelTarget.skipped("no recipients configured")

        # An injected transport does not need provider credentials
        if self._transport is None:
            provider = config.email_provider
            if provider not in KNOWN_EMAIL_PROVIDERS:
                return ChannelTarget.skipped(f"unknown provider {provider}")
            if provider == "resend" and not config.resend_api_key:
                return ChannelTarget.skipped("missing RESEND_API_KEY")
            if provider == "sendgrid" and not config.sendgrid_api_key:
                return ChannelTarget.skipped("missing SENDGRID_API_KEY")
            if provider == "smtp" and not config.smtp_configured:
                return ChannelTarget.skipped("SMTP_* env missing")

        return ChannelTarget(
            destination=tuple(recipients),
            min_interval_seconds=config.email_min_seconds_between_posts,
            options={"from_addr": config.from_address},
        )

    def render(self, event: AlertEvent, target: ChannelTarget) -> dict[str, Any]:
        return render_email(event)

    def _default_transport(self, config: NotificationConfig) -> ChannelTransport:
        timeout = config.notify_timeout_sec
        if config.email_provider == "resend":
            return ResendTransport(api_key=config.resend_api_key or "", timeout=timeout)
        if config.email_provider == "sendgrid":
            return SendGridTransport(api_key=config.sendgrid_api_key or "", timeout=timeout)
        return SmtpTransport(
            host=config.smtp_host or "",
            port=config.smtp_port,
            username=config.smtp_user,
            password=config.smtp_pass,
            secure=config.smtp_secure,
            timeout=timeout,
        )


class DiscordChannel(NotificationChannel):
    """Discord incoming webhook with embeds and optional thread routing."""

    @property
    def name(self) -> str:
        return "discord"

    def resolve_target(self, config: NotificationConfig) -> ChannelTarget:
        if not config.discord_enabled:
            return ChannelTarget.skipped("discord disabled in config")
        if not config.discord_webhook_url:
            return ChannelTarget.skipped("DISCORD_WEBHOOK_URL missing")
        return ChannelTarget(
            destination=config.discord_webhook_url,
            min_interval_seconds=config.discord_min_seconds_between_posts,
            options={
                "username": config.discord_username or None,
                "avatar_url": config.discord_avatar_url or None,
                "thread_id": config.discord_thread_id or None,
            },
        )

    def render(self, event: AlertEvent, target: ChannelTarget) -> dict[str, Any]:
        return render_discord(
            event,
            username=target.options.get("username"),
            avatar_url=target.options.get("avatar_url"),
        )

    def _default_transport(self, config: NotificationConfig) -> ChannelTransport:
        return DiscordWebhookTransport(timeout=config.notify_timeout_sec)


class WebhookChannel(NotificationChannel):
    """Delivers events as JSON POST to an arbitrary HTTP endpoint."""

    @property
    def name(self) -> str:
        return "webhook"

    def resolve_target(self, config: NotificationConfig) -> ChannelTarget:
        if not config.webhook_enabled:
            return ChannelTarget.skipped("webhook disabled in config")
        if not config.alert_webhook_url:
            return ChannelTarget.skipped("ALERT_WEBHOOK_URL missing")
        return ChannelTarget(
            destination=config.alert_webhook_url,
            min_interval_seconds=config.webhook_min_seconds_between_posts,
            options={"headers": dict(config.alert_webhook_headers)},
        )

    def render(self, event: AlertEvent, target: ChannelTarget) -> dict[str, Any]:
        return render_webhook(event)

    def _default_transport(self, config: NotificationConfig) -> ChannelTransport:
        return JsonWebhookTransport(timeout=config.notify_timeout_sec)


def default_channels() -> list[NotificationChannel]:
    """Every channel the monitor knows; unconfigured ones are skipped at dispatch."""
    return [EmailChannel(), DiscordChannel(), WebhookChannel()]
