"""Tests for configuration validation and logger setup."""

import logging

import pytest

from hookgram import settings
from hookgram import logger as logger_module
from hookgram.logger import get_logger


REQUIRED = (
    "TELEGRAM_TOKEN",
    "PUBLIC_URL",
    "GITHUB_WEBHOOK_SECRET",
    "GITHUB_CLIENT_ID",
    "GITHUB_CLIENT_SECRET",
    "ENCRYPTION_KEY",
)


@pytest.fixture
def configured(monkeypatch):
    for name in REQUIRED:
        monkeypatch.setattr(settings, name, "set")
    return monkeypatch


class TestValidateSettings:
    def test_complete(self, configured):
        settings.validate_settings()

    def test_lists_every_missing_variable(self, configured):
        configured.setattr(settings, "TELEGRAM_TOKEN", None)
        configured.setattr(settings, "ENCRYPTION_KEY", "")

        with pytest.raises(RuntimeError) as exc_info:
            settings.validate_settings()

        message = str(exc_info.value)
        assert "TELEGRAM_TOKEN" in message
        assert "ENCRYPTION_KEY" in message
        assert "PUBLIC_URL" not in message


class TestGetLogger:
    def test_single_handler(self):
        first = get_logger("hookgram.test")
        second = get_logger("hookgram.test")

        assert first is second
        assert len(first.handlers) == 1
        assert first.level == logging.INFO
        assert first.propagate is False

    def test_configured_level(self, monkeypatch):
        monkeypatch.setattr(logger_module, "LOG_LEVEL", "debug")

        log = get_logger("hookgram.test.debug")

        assert log.level == logging.DEBUG
        assert log.handlers[0].level == logging.DEBUG

    def test_unknown_level_means_info(self, monkeypatch):
        monkeypatch.setattr(logger_module, "LOG_LEVEL", "chatty")

        assert get_logger("hookgram.test.chatty").level == logging.INFO
