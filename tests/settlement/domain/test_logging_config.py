"""Tests for logging configuration."""

import logging
import logging.handlers

import structlog

from settlement.utils.logging import _stamp_service, add_context, clear_context, configure_logging, get_log_level


def test_log_level_follows_environment(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("PROTEAN_ENV", "production")
    assert get_log_level() == "INFO"

    monkeypatch.setenv("PROTEAN_ENV", "development")
    assert get_log_level() == "DEBUG"


def test_explicit_log_level_wins(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    assert get_log_level() == "ERROR"


def test_rotating_files_only_with_a_log_dir(monkeypatch, tmp_path):
    monkeypatch.delenv("SETTLEMENT_LOG_DIR", raising=False)
    configure_logging()
    assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logging.getLogger().handlers)

    configure_logging(log_dir=str(tmp_path))
    file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(file_handlers) == 2
    assert (tmp_path / "settlement.log").exists()

    for handler in file_handlers:
        handler.close()
    configure_logging()


def test_context_binding():
    clear_context()
    add_context(correlation_id="corr-1")
    assert structlog.contextvars.get_contextvars() == {"correlation_id": "corr-1"}

    clear_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_events_are_stamped_with_service(monkeypatch):
    monkeypatch.setenv("PROTEAN_ENV", "test")
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    event = _stamp_service(None, "info", {"event": "order_placed"})
    assert event["service"] == "settlement"
    assert event["environment"] == "test"
