"""
test_logging_config.py — Tests for rfq_tracker/logging_config.py

Verifies Loguru setup, stdlib logging interception, and request
context binding. Uses loguru's sink capture for assertions.

Called by: pytest
Depends on: rfq_tracker/logging_config.py
"""

import logging
import os
from unittest.mock import patch

import pytest
from loguru import logger

from rfq_tracker.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    """Remove all handlers before/after each test for isolation."""
    logger.remove()
    yield
    logger.remove()


def test_setup_logging_adds_handler():
    """setup_logging() should add at least one Loguru handler."""
    assert len(logger._core.handlers) == 0
    setup_logging()
    assert len(logger._core.handlers) > 0


def test_stdlib_logging_intercepted():
    """Service modules log through stdlib; those records reach Loguru."""
    setup_logging()

    # Add test sink AFTER setup (setup calls logger.remove() internally)
    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")

    logging.getLogger("rfq_tracker.rfq").warning("intercepted message")

    assert any("intercepted message" in m for m in messages)


def test_log_level_from_env():
    """LOG_LEVEL env var controls minimum log level."""
    with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
        setup_logging()

    messages = []
    logger.add(lambda m: messages.append(str(m)), level="WARNING", format="{message}")

    logger.debug("should be filtered")
    logger.warning("should appear")

    assert any("should appear" in m for m in messages)
    assert not any("should be filtered" in m for m in messages)


def test_context_binding():
    """logger.contextualize() adds the request id to log records."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc123"):
        logger.info("request log")

    assert records[-1]["extra"].get("request_id") == "abc123"


def test_context_not_leaked():
    """Context fields should not persist after contextualize block exits."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc123"):
        logger.info("inside")
    logger.info("outside")

    assert "request_id" not in records[-1]["extra"]


def test_production_mode_uses_serialize():
    """ENVIRONMENT=production switches to JSON lines."""
    with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    serialize_calls = [c for c in mock_add.call_args_list if c.kwargs.get("serialize") is True]
    assert len(serialize_calls) == 1


def test_development_mode_is_colorized():
    with patch.dict(os.environ, {"ENVIRONMENT": "development"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert all(not c.kwargs.get("serialize") for c in mock_add.call_args_list)
    assert any(c.kwargs.get("colorize") for c in mock_add.call_args_list)


def test_request_logs_carry_request_id(client):
    """The request middleware binds request_id to every log line it emits."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    resp = client.get("/health")

    matching = [r for r in records if r["message"].startswith("GET /health")]
    assert matching
    assert matching[-1]["extra"]["request_id"] == resp.headers["X-Request-ID"]


def test_dev_format_shows_request_id_only_inside_requests():
    from rfq_tracker.logging_config import _dev_format

    assert "{extra[request_id]}" in _dev_format({"extra": {"request_id": "abc123"}})
    assert "request_id" not in _dev_format({"extra": {}})
