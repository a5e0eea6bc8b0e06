"""Tests for sensitive data filtering and request correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def log_stream():
    logger = logging.getLogger("test_rate_limit_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream
    logger.handlers.clear()


def test_client_addresses_are_redacted(log_stream):
    logger, stream = log_stream

    logger.info(
        "rate_limit.exceeded",
        extra={
            "identity": "203.0.113.7",
            "x-forwarded-for": "203.0.113.7, 10.0.0.1",
            "key_hash": "abcdef0123456789",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "abcdef0123456789" in output


def test_nested_headers_are_redacted(log_stream):
    logger, stream = log_stream

    logger.info(
        "nested_event",
        extra={"headers": {"X-Real-IP": "198.51.100.4", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "198.51.100.4" not in output
    assert "pytest" in output


def test_quota_fields_pass_through(log_stream):
    logger, stream = log_stream

    logger.info("rate_limit.allowed", extra={"limit": 10, "remaining": 7, "window_ms": 60000})

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.allowed"
    assert payload["level"] == "info"
    assert payload["limit"] == 10
    assert payload["remaining"] == 7
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(log_stream):
    logger, stream = log_stream

    set_request_id("req-42")
    try:
        logger.info("http.request")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-42"
