"""Tests for structlog configuration."""

import json
import logging

import pytest
import structlog

from clamm.log_config import LOG_LEVEL_ENV, configure_logging, resolve_log_level


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestResolveLogLevel:
    def test_default_is_info(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        assert resolve_log_level() == logging.INFO

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")
        assert resolve_log_level() == logging.DEBUG

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "DEBUG")
        assert resolve_log_level("warning") == logging.WARNING
        assert resolve_log_level(logging.ERROR) == logging.ERROR

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            resolve_log_level("chatty")


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging("INFO", json_output=True)
        structlog.get_logger().info("pool_created", fee=3000)

        line = json.loads(capsys.readouterr().out.strip())
        assert line["event"] == "pool_created"
        assert line["fee"] == 3000
        assert line["level"] == "info"
        assert "timestamp" in line

    def test_filters_below_level(self, capsys):
        configure_logging("WARNING", json_output=True)
        logger = structlog.get_logger()
        logger.info("hidden")
        logger.warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out
