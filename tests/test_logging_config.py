# tests/test_logging_config.py
"""Tests for configure_logging."""
import logging

import pytest

from tradex_risk.config.settings import LoggingSettings
from tradex_risk.exceptions import ConfigurationError
from tradex_risk.logging_config import configure_logging


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture
    def captured(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        return calls

    def test_applies_settings(self, captured):
        configure_logging(LoggingSettings(level="debug", datefmt="%H:%M"))

        assert captured == [
            {
                "level": logging.DEBUG,
                "format": "[%(asctime)s] %(levelname)s: %(message)s",
                "datefmt": "%H:%M",
            }
        ]

    def test_reads_environment_by_default(self, captured, monkeypatch):
        monkeypatch.setenv("TRADEX_LOG_LEVEL", "WARNING")

        configure_logging()

        assert captured[0]["level"] == logging.WARNING

    def test_unknown_level_raises(self, captured):
        with pytest.raises(ConfigurationError):
            configure_logging(LoggingSettings(level="VERBOSE"))

        assert captured == []
