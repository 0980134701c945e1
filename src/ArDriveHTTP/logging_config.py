"""
Logging setup and diagnostic message layout

This module centralizes logging setup for the HTTP client. It provides
helpers for masking sensitive fields, emitting JSON log records, and the
message layout used for retry and terminal-error diagnostics so both the
in-process path and the isolated worker print identical lines.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Optional, TextIO

LOGGER_NAME = "ArDriveHTTP"

_SENSITIVE_KEYS = {"authorization", "api_key", "apikey", "token", "secret", "password", "cookie"}

_RESERVED_RECORD_KEYS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain credentials.

    Returns:
        Copy of the payload where common secret fields are replaced with
        `***masked***`.

    Examples:
        >>> mask_sensitive_data({"token": "secret", "status": "ok"})
        {'token': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value
    return masked


def _log_message(url: str, status_code: int, status_message: str, retry_attempts: int) -> str:
    return (
        f"uri: {url}\n"
        f"  response: Http status error [{status_code}]: {status_message}\n"
        f"  retryAttempts: {retry_attempts}"
    )


def format_retry_message(url: str, status_code: int, status_message: str, retry_attempts: int) -> str:
    """Render the diagnostic emitted before each retry.

    Examples:
        >>> print(format_retry_message("http://x/429", 429, "Too Many Requests", 1))
        Network Request Retry
        uri: http://x/429
          response: Http status error [429]: Too Many Requests
          retryAttempts: 1
    """
    return "Network Request Retry\n" + _log_message(url, status_code, status_message, retry_attempts)


def format_error_message(url: str, status_code: int, status_message: str, retry_attempts: int) -> str:
    """Render the diagnostic emitted when a request finally fails."""
    return "Network Request Error\n" + _log_message(url, status_code, status_message, retry_attempts)


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Fields passed through ``extra=`` are merged into the top-level object.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith("_"):
                log_obj[key] = value
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def setup_logging(
    level: str = "INFO",
    *,
    json_logs: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the package logger with a single managed handler.

    Calling this repeatedly replaces the previously installed handler rather
    than stacking duplicates.

    Args:
        level: Logging level name.
        json_logs: Emit one JSON object per line instead of plain text.
        stream: Destination stream (defaults to ``sys.stderr``).

    Returns:
        The configured ``ArDriveHTTP`` logger.

    Examples:
        >>> logger = setup_logging("DEBUG")
        >>> logger.name
        'ArDriveHTTP'
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_ardrive_managed", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handler._ardrive_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = True
    return logger


__all__ = [
    "LOGGER_NAME",
    "JSONFormatter",
    "mask_sensitive_data",
    "format_retry_message",
    "format_error_message",
    "setup_logging",
]
