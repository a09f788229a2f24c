"""Tests for structlog setup and context binding."""

import logging

import pytest
import structlog

from freezewatch.observability.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    clear_context()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:

    def test_level_override(self, restore_logging):
        setup_logging("debug")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_stdlib_records_carry_bound_context(self, restore_logging, capsys):
        setup_logging("INFO")
        bind_context(device_id="freezer-01")

        logging.getLogger("freezewatch.alerts.manager").info("Tracking new device %s", "freezer-01")

        out = capsys.readouterr().out
        assert "Tracking new device freezer-01" in out
        assert "device_id" in out

    def test_structlog_logger_renders_fields(self, restore_logging, capsys):
        setup_logging("INFO")

        get_logger("freezewatch.cli").info("Replay finished", readings=3)

        out = capsys.readouterr().out
        assert "Replay finished" in out
        assert "readings" in out

    def test_clear_context(self, restore_logging, capsys):
        setup_logging("INFO")
        bind_context(device_id="freezer-01")
        clear_context()

        logging.getLogger("freezewatch.test").info("after clear")

        assert "freezer-01" not in capsys.readouterr().out
