"""
Command-line interface for freezewatch.

Usage:
    freezewatch check-config          # Show channel readiness and thresholds
    freezewatch test-alert            # Push one out-of-range reading through the channels
    freezewatch replay readings.jsonl # Feed recorded readings through the alert engine
"""

import asyncio
import json
from typing import Any, TextIO

import click

from freezewatch.alerts.config import AlertConfig
from freezewatch.alerts.manager import AlertManager
from freezewatch.config.settings import get_settings
from freezewatch.notifications.config import EnvConfigProvider, NotificationConfig
from freezewatch.notifications.dispatcher import NotificationDispatcher
from freezewatch.observability.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)
from freezewatch.observability.metrics import get_metrics

logger = get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Freezewatch - freezer telemetry alerting."""
    setup_logging("DEBUG" if debug else None)

    settings = get_settings()
    if settings.metrics_enabled:
        get_metrics().start_server()


def _channel_status(config: NotificationConfig) -> dict[str, Any]:
    email_ready = {
        "smtp": config.smtp_configured,
        "resend": bool(config.resend_api_key),
        "sendgrid": bool(config.sendgrid_api_key),
    }.get(config.email_provider, False)
    return {
        "alerts_enabled": config.alerts_enabled,
        "email": {
            "enabled": config.email_enabled and email_ready and bool(config.recipients),
            "provider": config.email_provider,
            "to": config.recipients,
            "from": config.from_address,
        },
        "discord": {
            "enabled": config.discord_enabled and bool(config.discord_webhook_url),
            "thread": config.discord_thread_id,
            "min_gap_sec": config.discord_min_seconds_between_posts,
        },
        "webhook": {
            "enabled": config.webhook_enabled and bool(config.alert_webhook_url),
        },
    }


@main.command("check-config")
def check_config() -> None:
    """Print channel readiness, thresholds and default bounds."""
    alert_config = AlertConfig()
    status = _channel_status(NotificationConfig())
    status["thresholds"] = {
        "heartbeat_sec": alert_config.heartbeat_sec,
        "offline_after_sec": alert_config.offline_after_ms / 1000,
        "cooldown_sec": alert_config.alert_cooldown_sec,
        "spike_c": alert_config.spike_c,
        "sweep_interval_sec": alert_config.heartbeat_check_interval_sec,
    }
    status["bounds"] = {
        "lower": alert_config.lower_bound_c,
        "upper": alert_config.upper_bound_c,
    }
    click.echo(json.dumps(status, indent=2))


@main.command("test-alert")
@click.option("--device-id", default="test-device", help="Device id to report as")
@click.option("--temp", type=float, default=None, help="Temperature (default: upper bound + 1)")
def test_alert(device_id: str, temp: float | None) -> None:
    """Send an out-of-range reading through every configured channel."""
    alert_config = AlertConfig()
    temperature = temp if temp is not None else alert_config.upper_bound_c + 1

    async def run() -> list[dict[str, Any]]:
        manager = AlertManager(config=alert_config)
        dispatcher = NotificationDispatcher(config_provider=EnvConfigProvider())
        events = await manager.update_reading(device_id, temperature)
        reports = [await dispatcher.dispatch(event) for event in events]
        return [report.to_dict() for report in reports]

    reports = asyncio.run(run())
    if not reports:
        click.echo(f"No event for {device_id} at {temperature}°C (within bounds?)")
        return
    click.echo(json.dumps(reports, indent=2, ensure_ascii=False))


def _read_readings(source: TextIO) -> list[dict[str, Any]]:
    readings = []
    for lineno, line in enumerate(source, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            readings.append({
                "device_id": str(data["device_id"]),
                "temperature": float(data["temp_c"]),
                "fault_code": int(data.get("sr") or 0),
                "timestamp_ms": data.get("ts"),
                "lower_bound": data.get("lower"),
                "upper_bound": data.get("upper"),
            })
        except (ValueError, KeyError, TypeError) as e:
            raise click.ClickException(f"line {lineno}: invalid reading ({e})") from e
    return readings


@main.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option("--dispatch/--dry-run", default=False, help="Deliver events on configured channels")
def replay(source: TextIO, dispatch: bool) -> None:
    """Feed JSON-lines readings through the alert engine.

    Each line: {"device_id": ..., "temp_c": ..., "sr": 0, "ts": <epoch ms>}.
    A heartbeat sweep runs at each reading's timestamp, so gaps in the
    recording show up as offline/online events.
    """
    readings = _read_readings(source)

    async def run() -> list[dict[str, Any]]:
        dispatcher = NotificationDispatcher(config_provider=EnvConfigProvider()) if dispatch else None
        manager = AlertManager(dispatcher=dispatcher)
        emitted: list[dict[str, Any]] = []

        for reading in readings:
            bind_context(device_id=reading["device_id"])
            try:
                if reading["timestamp_ms"] is not None:
                    for event in await manager.check_heartbeats(reading["timestamp_ms"]):
                        emitted.append(event.to_dict())
                for event in await manager.update_reading(**reading):
                    emitted.append(event.to_dict())
            finally:
                clear_context()

        logger.info("Replay finished", readings=len(readings), events=len(emitted))
        for event in emitted:
            click.echo(json.dumps(event, ensure_ascii=False))
        return [snapshot.to_dict() for snapshot in manager.get_states()]

    states = asyncio.run(run())
    click.echo(json.dumps({"devices": states}, indent=2))


if __name__ == "__main__":
    main()
