"""Logging setup for an anonymous intake service.

Log lines go to stdout, either as JSON or as plain text. Every record passes
two filters on the way out: one stamps the current request id, the other
replaces anything that could identify a submitter (addresses, user agents,
forwarded headers) or carry their message with ``[REDACTED]``.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from typing import Any, Iterable, Mapping

from sealbox.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Values that would tie a log line to a person
_IDENTIFYING_KEYS = frozenset(
    {
        "client",
        "client_host",
        "client_ip",
        "ip",
        "remote_addr",
        "user-agent",
        "user_agent",
        "x-forwarded-for",
        "x-real-ip",
        "forwarded",
        "headers",
        "cookie",
        "set-cookie",
    }
)

# Submitted content and key material
_CONTENT_KEYS = frozenset(
    {
        "encrypted_message",
        "encryptedmessage",
        "payload",
        "body",
        "public_key",
        "authorization",
        "token",
        "secret",
        "password",
    }
)

SENSITIVE_KEYS_DEFAULT: frozenset[str] = _IDENTIFYING_KEYS | _CONTENT_KEYS

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def redact(value: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Return ``value`` with sensitive mapping entries masked, at any depth."""
    keys = sensitive_keys if isinstance(sensitive_keys, frozenset) else frozenset(sensitive_keys)

    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in keys else redact(v, keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, keys) for v in value)
    return value


def record_extras(record: LogRecord) -> dict[str, Any]:
    """Fields attached to ``record`` through ``extra=``, unredacted."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Stamp records with the request id of the task that emitted them."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask sensitive extras in place so no formatter can print them."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(sensitive_keys or SENSITIVE_KEYS_DEFAULT)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        masked = redact(record_extras(record), self.sensitive_keys)
        for key, value in masked.items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            data["request_id"] = request_id

        data.update(redact(record_extras(record), self.sensitive_keys))

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str, ensure_ascii=self.ensure_ascii)


def configure_logging(log_settings: LogSettings | None = None) -> logging.Handler:
    """Route all logging to stdout through the request id and redaction filters.

    Args:
        log_settings: Level and format; the global settings when omitted.

    Returns:
        The handler installed on the root logger.
    """
    cfg = log_settings or settings.log

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Access logs carry client addresses; keep them out entirely
    logging.getLogger("uvicorn").propagate = False
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.propagate = False
    access_logger.disabled = True

    return handler
