"""
Unit tests for settings and logging setup.
"""

import logging

import json_log_formatter
import pytest

from revisium_sdk import ClientSettings, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestClientSettings:
    """Tests for ClientSettings."""

    def test_defaults(self, monkeypatch):
        """Defaults apply without environment overrides."""
        for name in ("BASE_URL", "DEFAULT_BRANCH", "DEFAULT_PAGE_SIZE", "LOG_FORMAT"):
            monkeypatch.delenv(f"REVISIUM_{name}", raising=False)

        settings = ClientSettings()

        assert settings.base_url == "http://localhost:8080"
        assert settings.api_url == "http://localhost:8080/api"
        assert settings.default_branch == "master"
        assert settings.default_page_size == 100
        assert settings.log_format == "text"

    def test_environment_prefix(self, monkeypatch):
        """REVISIUM_ variables override defaults."""
        monkeypatch.setenv("REVISIUM_BASE_URL", "https://cloud.revisium.io/")
        monkeypatch.setenv("REVISIUM_DEFAULT_PAGE_SIZE", "25")
        monkeypatch.setenv("REVISIUM_TIMEOUT", "5")

        settings = ClientSettings()

        assert settings.base_url == "https://cloud.revisium.io"
        assert settings.default_page_size == 25
        assert settings.timeout == 5.0


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_text_format(self, restore_root_logger):
        """Text format installs a plain formatter."""
        setup_logging(ClientSettings(log_level="debug", log_format="text"))

        (handler,) = restore_root_logger.handlers
        assert not isinstance(handler.formatter, json_log_formatter.JSONFormatter)
        assert restore_root_logger.level == logging.DEBUG

    def test_json_format(self, restore_root_logger):
        """JSON format installs JSONFormatter."""
        setup_logging(ClientSettings(log_format="json"))

        (handler,) = restore_root_logger.handlers
        assert isinstance(handler.formatter, json_log_formatter.JSONFormatter)
        assert restore_root_logger.level == logging.INFO

    def test_http_libraries_quieted(self, restore_root_logger):
        """httpx and httpcore are raised to WARNING."""
        setup_logging(ClientSettings())

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
