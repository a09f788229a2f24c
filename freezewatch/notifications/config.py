"""Notification channel configuration.

Controls which channels are enabled, where they deliver, how fast they may
post and how delivery is retried. Settings use the plain environment names
of the deployed monitor (``ALERT_TO_EMAIL``, ``SMTP_HOST``,
``DISCORD_WEBHOOK_URL``, ...).

The dispatcher never holds on to a ``NotificationConfig``: it asks a
``ConfigProvider`` for the current one on every dispatch, so a change made
at runtime (for example by the chat bot) applies to the very next event.
"""

import re
import threading
from typing import Any, Protocol

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_EMAIL_PROVIDERS: frozenset[str] = frozenset({"smtp", "resend", "sendgrid"})

DEFAULT_FROM_ADDRESS = "alerts@example.com"

_RECIPIENT_SPLIT = re.compile(r"[,\s;]+")


def parse_recipients(value: str | None) -> list[str]:
    """Split a comma/semicolon/whitespace separated address list."""
    if not value:
        return []
    return [part.strip() for part in _RECIPIENT_SPLIT.split(str(value)) if part.strip()]


class NotificationConfig(BaseSettings):
    """Configuration for notification dispatch."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Master switches
    alerts_enabled: bool = Field(default=True, description="Global notification switch")
    email_enabled: bool = True
    discord_enabled: bool = True
    webhook_enabled: bool = True

    # Email
    email_provider: str = Field(
        default="smtp",
        description="Email backend: smtp, resend or sendgrid",
    )
    alert_to_email: str = Field(
        default="",
        description="Recipients, separated by commas, semicolons or spaces",
    )
    alert_from_email: str = ""
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_secure: bool = Field(
        default=False,
        description="Implicit TLS (port 465); STARTTLS is used otherwise when offered",
    )
    resend_api_key: str | None = None
    sendgrid_api_key: str | None = None
    email_min_seconds_between_posts: float = Field(default=0.0, ge=0.0)

    # Discord
    discord_webhook_url: str | None = None
    discord_username: str = "Freezer Monitor"
    discord_avatar_url: str | None = None
    discord_thread_id: str | None = None
    discord_min_seconds_between_posts: float = Field(default=0.0, ge=0.0)

    # Generic JSON webhook
    alert_webhook_url: str | None = None
    alert_webhook_headers: dict[str, str] = Field(default_factory=dict)
    webhook_min_seconds_between_posts: float = Field(default=0.0, ge=0.0)

    # Delivery policy
    notify_timeout_sec: float = Field(
        default=20.0,
        gt=0,
        le=120.0,
        description="Upper bound for a single delivery attempt",
    )
    notify_retry_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Maximum send attempts per channel per event",
    )
    notify_retry_base_delay_sec: float = Field(
        default=0.6,
        ge=0.0,
        description="Base delay of the exponential backoff between attempts",
    )

    @field_validator("email_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def recipients(self) -> list[str]:
        return parse_recipients(self.alert_to_email)

    @property
    def from_address(self) -> str:
        """Sender address: explicit setting, then the SMTP user, then a placeholder."""
        if self.alert_from_email and self.alert_from_email.strip():
            return self.alert_from_email.strip()
        return self.smtp_user or DEFAULT_FROM_ADDRESS

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)


class ConfigProvider(Protocol):
    """Pull-based access to the current notification configuration."""

    def get_config(self) -> NotificationConfig:
        ...


class StaticConfigProvider:
    """Holds one configuration that can be replaced or patched at runtime."""

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self._config = config or NotificationConfig()
        self._lock = threading.Lock()

    def get_config(self) -> NotificationConfig:
        with self._lock:
            return self._config

    def set_config(self, config: NotificationConfig) -> None:
        with self._lock:
            self._config = config

    def update(self, **changes: Any) -> NotificationConfig:
        """Apply field changes and return the new configuration."""
        with self._lock:
            self._config = self._config.model_copy(update=changes)
            return self._config


class EnvConfigProvider:
    """Re-reads the environment (and ``.env``) on every call."""

    def get_config(self) -> NotificationConfig:
        return NotificationConfig()
