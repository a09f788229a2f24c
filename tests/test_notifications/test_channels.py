"""Tests for channel target resolution and transport selection."""

import pytest

from freezewatch.notifications.channels import (
    DiscordChannel,
    EmailChannel,
    WebhookChannel,
    default_channels,
)
from freezewatch.notifications.config import NotificationConfig
from freezewatch.notifications.transports import (
    DiscordWebhookTransport,
    JsonWebhookTransport,
    ResendTransport,
    SendGridTransport,
    SmtpTransport,
)
from tests.helpers import FakeTransport

SMTP = {"smtp_host": "mail.test", "smtp_user": "bot@x.io", "smtp_pass": "secret"}


class TestEmailChannel:

    def test_disabled(self):
        target = EmailChannel().resolve_target(
            NotificationConfig(email_enabled=False, alert_to_email="a@x.io", **SMTP)
        )
        assert target.skip_reason == "email disabled in config"

    def test_no_recipients(self):
        target = EmailChannel().resolve_target(NotificationConfig(**SMTP))
        assert target.skip_reason == "no recipients configured"

    def test_smtp_env_missing(self):
        target = EmailChannel().resolve_target(NotificationConfig(alert_to_email="a@x.io"))
        assert target.skip_reason == "SMTP_* env missing"

    def test_missing_resend_key(self):
        target = EmailChannel().resolve_target(
            NotificationConfig(email_provider="resend", alert_to_email="a@x.io")
        )
        assert target.skip_reason == "missing RESEND_API_KEY"

    def test_missing_sendgrid_key(self):
        target = EmailChannel().resolve_target(
            NotificationConfig(email_provider="sendgrid", alert_to_email="a@x.io")
        )
        assert target.skip_reason == "missing SENDGRID_API_KEY"

    def test_unknown_provider(self):
        target = EmailChannel().resolve_target(
            NotificationConfig(email_provider="pigeon", alert_to_email="a@x.io")
        )
        assert target.skip_reason == "unknown provider pigeon"

    def test_configured_target(self):
        config = NotificationConfig(
            alert_to_email="a@x.io; b@x.io",
            email_min_seconds_between_posts=2.0,
            **SMTP,
        )
        target = EmailChannel().resolve_target(config)

        assert target.skip_reason is None
        assert target.destination == ("a@x.io", "b@x.io")
        assert target.options["from_addr"] == "bot@x.io"
        assert target.min_interval_seconds == 2.0

    def test_injected_transport_skips_credential_check(self):
        channel = EmailChannel(transport=FakeTransport())
        target = channel.resolve_target(NotificationConfig(alert_to_email="a@x.io"))
        assert target.skip_reason is None

    @pytest.mark.parametrize(
        "provider,extra,expected",
        [
            ("smtp", SMTP, SmtpTransport),
            ("resend", {"resend_api_key": "re_123"}, ResendTransport),
            ("sendgrid", {"sendgrid_api_key": "SG.123"}, SendGridTransport),
        ],
    )
    def test_transport_follows_provider(self, provider, extra, expected):
        config = NotificationConfig(email_provider=provider, **extra)
        assert isinstance(EmailChannel().transport_for(config), expected)

    def test_render_is_email_payload(self, alert_event):
        channel = EmailChannel()
        payload = channel.render(alert_event, channel.resolve_target(NotificationConfig()))
        assert set(payload) == {"subject", "text"}


class TestDiscordChannel:

    def test_missing_webhook(self):
        target = DiscordChannel().resolve_target(NotificationConfig())
        assert target.skip_reason == "DISCORD_WEBHOOK_URL missing"

    def test_disabled(self):
        target = DiscordChannel().resolve_target(
            NotificationConfig(discord_enabled=False, discord_webhook_url="https://d.test/h")
        )
        assert target.skip_reason == "discord disabled in config"

    def test_options(self):
        config = NotificationConfig(
            discord_webhook_url="https://d.test/h",
            discord_thread_id="123",
            discord_avatar_url="https://d.test/a.png",
            discord_min_seconds_between_posts=3,
        )
        target = DiscordChannel().resolve_target(config)

        assert target.destination == "https://d.test/h"
        assert target.options == {
            "username": "Freezer Monitor",
            "avatar_url": "https://d.test/a.png",
            "thread_id": "123",
        }
        assert target.min_interval_seconds == 3

    def test_render_uses_target_options(self, alert_event):
        channel = DiscordChannel()
        target = channel.resolve_target(NotificationConfig(discord_webhook_url="https://d.test/h"))
        assert channel.render(alert_event, target)["username"] == "Freezer Monitor"

    def test_default_transport(self):
        assert isinstance(DiscordChannel().transport_for(NotificationConfig()), DiscordWebhookTransport)


class TestWebhookChannel:

    def test_missing_url(self):
        target = WebhookChannel().resolve_target(NotificationConfig())
        assert target.skip_reason == "ALERT_WEBHOOK_URL missing"

    def test_headers_passed_through(self):
        config = NotificationConfig(
            alert_webhook_url="https://hooks.test/in",
            alert_webhook_headers={"Authorization": "Bearer t"},
        )
        target = WebhookChannel().resolve_target(config)
        assert target.options["headers"] == {"Authorization": "Bearer t"}

    def test_default_transport(self):
        assert isinstance(WebhookChannel().transport_for(NotificationConfig()), JsonWebhookTransport)


def test_default_channels():
    assert [ch.name for ch in default_channels()] == ["email", "discord", "webhook"]
