"""Tests for log redaction, formatting and request correlation."""

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
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired like configure_logging, writing JSON to a buffer."""
    logger = logging.getLogger("test_capture")
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
    clear_request_id()


def test_redacts_credentials(capture):
    logger, stream = capture

    logger.info(
        "auth.login",
        extra={
            "password": "hunter2",
            "authorization": "Bearer eyJhbGciOi",
            "redis_url": "redis://:s3cret@cache:6379/0",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "hunter2" not in output
    assert "eyJhbGciOi" not in output
    assert "s3cret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "request.headers",
        extra={"headers": {"Authorization": "Bearer abc", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "Bearer abc" not in output
    assert "pytest" in output


def test_rate_limit_fields_pass_through(capture):
    logger, stream = capture

    logger.warning(
        "rate_limit.exceeded",
        extra={"key_hash": "abc123", "limit": 100, "retry_after_ms": 45000},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.exceeded"
    assert record["level"] == "warning"
    assert record["limit"] == 100
    assert record["retry_after_ms"] == 45000


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture
    set_request_id("req-123")

    logger.info("app.event")

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_hash_identifier_is_stable_and_short():
    assert hash_identifier("ip:10.0.0.1") == hash_identifier("ip:10.0.0.1")
    assert hash_identifier("ip:10.0.0.1") != hash_identifier("ip:10.0.0.2")
    assert len(hash_identifier("ip:10.0.0.1")) == 16
