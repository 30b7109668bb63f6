"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
import sys
from io import StringIO

import pytest

from sealbox.core.config import LogSettings
from sealbox.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    configure_logging,
    redact,
    set_request_id,
)


@pytest.fixture
def capture_logger():
    def _build(name: str) -> tuple[logging.Logger, StringIO]:
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.handlers.clear()
        logger.propagate = False

        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.addFilter(RequestIdFilter())
        handler.addFilter(SensitiveDataFilter())
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        return logger, stream

    return _build


def test_redacts_payloads(capture_logger):
    logger, stream = capture_logger("test_payload_redaction")

    logger.info(
        "feedback_event",
        extra={
            "encrypted_message": "-----BEGIN PGP MESSAGE-----secret",
            "payload": "another-secret",
            "char_count": 120,
        },
    )

    output = stream.getvalue()
    assert "secret" not in output
    assert "[REDACTED]" in output
    assert "char_count" in output


def test_redacts_client_identifiers(capture_logger):
    logger, stream = capture_logger("test_client_redaction")

    logger.info(
        "request_event",
        extra={
            "client_ip": "203.0.113.9",
            "user_agent": "Mozilla/5.0 Example",
            "meta": {"x-forwarded-for": "198.51.100.7", "route": "/api/feedback"},
        },
    )

    output = stream.getvalue()
    assert "203.0.113.9" not in output
    assert "198.51.100.7" not in output
    assert "Mozilla" not in output
    assert "/api/feedback" in output


def test_safe_fields_pass_through(capture_logger):
    logger, stream = capture_logger("test_safe_fields")

    logger.info(
        "safe_event",
        extra={"status_code": 507, "error_code": "storage_full", "entry_date": "2024-05-17"},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "safe_event"
    assert record["status_code"] == 507
    assert record["error_code"] == "storage_full"
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_is_attached_from_context(capture_logger):
    logger, stream = capture_logger("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("with_request_id")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_redact_masks_nested_keys_case_insensitively():
    value = {"outer": [{"User-Agent": "curl/8"}, {"route": "/"}], "Payload": "x"}

    assert redact(value) == {
        "outer": [{"User-Agent": "[REDACTED]"}, {"route": "/"}],
        "Payload": "[REDACTED]",
    }


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    access = logging.getLogger("uvicorn.access")
    access_state = (access.disabled, access.propagate)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    access.disabled, access.propagate = access_state


@pytest.mark.usefixtures("restore_root_logger")
class TestConfigureLogging:
    def test_json_to_stdout_with_filters(self):
        handler = configure_logging(LogSettings(level="DEBUG", format="json"))

        assert logging.getLogger().handlers == [handler]
        assert logging.getLogger().level == logging.DEBUG
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stdout
        assert isinstance(handler.formatter, JsonFormatter)
        assert {type(f) for f in handler.filters} == {RequestIdFilter, SensitiveDataFilter}

    def test_plain_format(self):
        handler = configure_logging(LogSettings(level="WARNING", format="plain"))

        assert not isinstance(handler.formatter, JsonFormatter)
        assert logging.getLogger().level == logging.WARNING

    def test_access_log_is_disabled(self):
        configure_logging(LogSettings())

        assert logging.getLogger("uvicorn.access").disabled is True
