"""Tests for structured logging helpers."""

from __future__ import annotations

import io
import json
import logging

from ArDriveHTTP.logging_config import (
    LOGGER_NAME,
    JSONFormatter,
    format_error_message,
    format_retry_message,
    mask_sensitive_data,
    setup_logging,
)
from ArDriveHTTP.network.instrumentation import redact_url


def test_retry_message_layout() -> None:
    assert format_retry_message("http://x/503", 503, "Service Unavailable", 2) == (
        "Network Request Retry\n"
        "uri: http://x/503\n"
        "  response: Http status error [503]: Service Unavailable\n"
        "  retryAttempts: 2"
    )


def test_error_message_layout() -> None:
    assert format_error_message("http://x/", 0, "", 8).splitlines() == [
        "Network Request Error",
        "uri: http://x/",
        "  response: Http status error [0]: ",
        "  retryAttempts: 8",
    ]


def test_mask_sensitive_data_is_recursive() -> None:
    masked = mask_sensitive_data({"Authorization": "Bearer x", "nested": {"token": "t", "ok": 1}})
    assert masked == {"Authorization": "***masked***", "nested": {"token": "***masked***", "ok": 1}}


def test_json_formatter_merges_extra_fields() -> None:
    record = logging.makeLogRecord(
        {"msg": "retry", "levelname": "WARNING", "name": "ArDriveHTTP", "url": "http://x/", "token": "s"}
    )
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "retry"
    assert payload["url"] == "http://x/"
    assert payload["token"] == "***masked***"
    assert payload["timestamp"].endswith("Z")


def test_setup_logging_replaces_managed_handler() -> None:
    logger = logging.getLogger(LOGGER_NAME)
    try:
        setup_logging("INFO")
        stream = io.StringIO()
        setup_logging("WARNING", json_logs=True, stream=stream)
        managed = [h for h in logger.handlers if getattr(h, "_ardrive_managed", False)]
        assert len(managed) == 1
        logging.getLogger("ArDriveHTTP.network.retry").warning("hello", extra={"retry_attempts": 1})
        line = json.loads(stream.getvalue().splitlines()[-1])
        assert line["message"] == "hello"
        assert line["retry_attempts"] == 1
    finally:
        for handler in list(logger.handlers):
            if getattr(handler, "_ardrive_managed", False):
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_redact_url_strips_query() -> None:
    assert redact_url("https://example.org/a?token=secret#frag") == "https://example.org/a"
