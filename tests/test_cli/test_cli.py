"""Tests for the freezewatch command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from freezewatch.cli import main
from tests.helpers import T0

# Unset every variable the commands read so the host environment cannot leak in
CLEAN_ENV = {
    name: None
    for name in (
        "ALERTS_ENABLED", "EMAIL_ENABLED", "DISCORD_ENABLED", "WEBHOOK_ENABLED",
        "EMAIL_PROVIDER", "ALERT_TO_EMAIL", "ALERT_FROM_EMAIL",
        "SMTP_HOST", "SMTP_USER", "SMTP_PASS", "RESEND_API_KEY", "SENDGRID_API_KEY",
        "DISCORD_WEBHOOK_URL", "DISCORD_THREAD_ID", "ALERT_WEBHOOK_URL",
        "HEARTBEAT_SEC", "KEEPALIVE_MS", "OFFLINE_MULTIPLIER", "ALERT_COOLDOWN_SEC", "SPIKE_C",
        "LOWER_BOUND_C", "UPPER_BOUND_C",
    )
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("freezewatch.cli.setup_logging"):
        yield


def event_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith('{"kind"')]


class TestCheckConfig:

    def test_reports_channels_and_thresholds(self, runner: CliRunner) -> None:
        env = dict(CLEAN_ENV, DISCORD_WEBHOOK_URL="https://discord.test/h", SPIKE_C="2.5")

        result = runner.invoke(main, ["check-config"], env=env)

        assert result.exit_code == 0, result.output
        status = json.loads(result.output)
        assert status["alerts_enabled"] is True
        assert status["discord"]["enabled"] is True
        assert status["email"]["enabled"] is False
        assert status["webhook"]["enabled"] is False
        assert status["thresholds"]["spike_c"] == 2.5
        assert status["thresholds"]["offline_after_sec"] == 600
        assert status["bounds"] == {"lower": -90.0, "upper": -70.0}


class TestTestAlert:

    def test_unconfigured_channels_are_skipped(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["test-alert", "--device-id", "bench-1"], env=CLEAN_ENV)

        assert result.exit_code == 0, result.output
        reports = json.loads(result.output)
        assert len(reports) == 1
        assert reports[0]["event"]["kind"] == "alert"
        assert reports[0]["event"]["temperature"] == -69.0
        assert all(o["skipped"] for o in reports[0]["outcomes"])

    def test_in_range_temperature_sends_nothing(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["test-alert", "--temp", "-80"], env=CLEAN_ENV)

        assert result.exit_code == 0, result.output
        assert "No event" in result.output


class TestReplay:

    def test_dry_run_replays_events(self, runner: CliRunner, tmp_path) -> None:
        readings = [
            {"device_id": "freezer-01", "temp_c": -80.0, "ts": T0},
            {"device_id": "freezer-01", "temp_c": -65.0, "ts": T0 + 60_000},
            # Silent for longer than the offline threshold
            {"device_id": "freezer-01", "temp_c": -80.0, "ts": T0 + 760_000},
        ]
        source = tmp_path / "readings.jsonl"
        source.write_text("\n".join(json.dumps(r) for r in readings) + "\n\n")

        result = runner.invoke(main, ["replay", str(source)], env=CLEAN_ENV)

        assert result.exit_code == 0, result.output
        assert [e["kind"] for e in event_lines(result.output)] == ["alert", "offline", "online"]
        assert '"status": "normal"' in result.output

    def test_invalid_line_fails(self, runner: CliRunner, tmp_path) -> None:
        source = tmp_path / "bad.jsonl"
        source.write_text('{"device_id": "x"}\n')

        result = runner.invoke(main, ["replay", str(source)], env=CLEAN_ENV)

        assert result.exit_code != 0
        assert "line 1" in result.output
