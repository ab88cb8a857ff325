# apps/backend/app/crosscutting/logger.py
"""
===============================================================================
MODULE: Structured (JSON) logger with request context
===============================================================================

Goal
----
Log lines that are:
- Parseable (JSON)
- Correlatable (request_id / correlation_id / organization_id / user_id)
- Safe (secret redaction, bounded sizes)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  JSONFormatter + setup_logger()

Responsibilities:
  - Format records as JSON
  - Enrich with the ambient context from app/context.py
  - Redact sensitive fields and truncate large values

Collaborators:
  - app/context.py (ContextVars)
  - crosscutting/config.py (log level and format)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

# LogRecord attributes that are never copied as "extra".
_INTERNAL_LOGRECORD_KEYS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


class _Redactor:
    """
    Redacts sensitive keys, truncates huge strings and keeps every value
    JSON serializable.
    """

    SENSITIVE_KEYS = {
        "password",
        "password_hash",
        "secret",
        "token",
        "authorization",
        "access_token",
        "refresh_token",
        "jwt_secret",
        "database_url",
        "conninfo",
        "credential",
    }

    def __init__(self, max_str: int = 8_000, max_depth: int = 4):
        self._max_str = max_str
        self._max_depth = max_depth

    def sanitize(self, value: Any, *, depth: int = 0, key: str | None = None) -> Any:
        if key and key.lower() in self.SENSITIVE_KEYS:
            return "***REDACTED***"

        if depth > self._max_depth:
            return "***TRUNCATED***"

        if isinstance(value, str):
            if len(value) <= self._max_str:
                return value
            return value[: self._max_str] + "…(truncated)"

        if isinstance(value, (bytes, bytearray)):
            return f"<bytes {len(value)}B>"

        if isinstance(value, dict):
            return {
                str(k): self.sanitize(v, depth=depth + 1, key=str(k))
                for k, v in value.items()
            }

        if isinstance(value, (list, tuple)):
            return [self.sanitize(v, depth=depth + 1, key=key) for v in value]

        try:
            json.dumps(value, default=str)
            return value
        except (TypeError, ValueError):
            return str(value)


class JSONFormatter(logging.Formatter):
    """
    LogRecord -> one JSON line, enriched with the request context and a
    serializable stacktrace when the record carries an exception.
    """

    def __init__(self):
        super().__init__()
        self._redactor = _Redactor()

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": os.getpid(),
        }

        from ..context import get_context_dict

        payload.update(get_context_dict())

        for k, v in record.__dict__.items():
            if k in _INTERNAL_LOGRECORD_KEYS:
                continue
            payload[k] = self._redactor.sanitize(v, key=k)

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            exc_msg = str(record.exc_info[1]) if record.exc_info[1] else None
            payload["exception"] = {
                "type": exc_type,
                "message": exc_msg,
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(
            payload, ensure_ascii=False, default=str, separators=(",", ":")
        )


def _logging_options(settings) -> tuple[str, bool]:
    if settings is None:
        from pydantic import ValidationError

        from .config import get_settings

        try:
            settings = get_settings()
        except ValidationError:
            # No DATABASE_URL yet (scripts, test collection): defaults until
            # the Container calls setup_logger(settings=...).
            return "INFO", True
    return (settings.log_level or "INFO").upper(), bool(settings.log_json)


def setup_logger(name: str = "event-log", settings=None) -> logging.Logger:
    """
    Create and configure the global logger.

    - No duplicated handlers on re-import
    - Honors log_level / log_json from Settings (given, or get_settings())
    - Calling it again re-applies level and format to the existing handler
    """
    log = logging.getLogger(name)

    level, use_json = _logging_options(settings)
    log.setLevel(getattr(logging, level, logging.INFO))

    if not log.handlers:
        log.addHandler(logging.StreamHandler(sys.stdout))

    formatter = (
        JSONFormatter()
        if use_json
        else logging.Formatter("%(levelname)s %(name)s %(message)s")
    )
    for handler in log.handlers:
        handler.setFormatter(formatter)

    return log


# Import-friendly global instance
logger = setup_logger()
