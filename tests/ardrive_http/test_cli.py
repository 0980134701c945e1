"""Tests for the ``ardrive-http`` command line."""

from __future__ import annotations

import json
import logging
from typing import Iterator

import pytest
from typer.testing import CliRunner

from ArDriveHTTP.cli import app
from ArDriveHTTP.logging_config import LOGGER_NAME
from ArDriveHTTP.settings import reset_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_ardrive_managed", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_get_text(local_server) -> None:
    result = runner.invoke(app, ["get", local_server.url("/getText"), "--no-logs"])
    assert result.exit_code == 0, result.output
    assert "ok" in result.output
    assert "retryAttempts=0" in result.output


def test_get_json(local_server) -> None:
    result = runner.invoke(app, ["get", local_server.url("/getJson"), "-t", "json", "--no-logs"])
    assert result.exit_code == 0, result.output
    assert '"message": "ok"' in result.output


def test_get_with_header(local_server) -> None:
    result = runner.invoke(
        app, ["get", local_server.url("/headerCheck"), "-H", "test: ok", "--no-logs"]
    )
    assert result.exit_code == 0, result.output


def test_malformed_header_is_usage_error(local_server) -> None:
    result = runner.invoke(app, ["get", local_server.url("/getText"), "-H", "no-colon"])
    assert result.exit_code == 2


def test_terminal_status_exits_one(local_server) -> None:
    result = runner.invoke(app, ["get", local_server.url("/404"), "--no-logs"])
    assert result.exit_code == 1
    assert "terminal: status=404" in result.output
    assert local_server.hits("/404") == 1


def test_retry_budget_from_options(local_server) -> None:
    result = runner.invoke(
        app,
        ["get", local_server.url("/429"), "--retries", "2", "--retry-delay-ms", "0", "--no-logs"],
    )
    assert result.exit_code == 1
    assert "retry_exhausted" in result.output
    assert "retryAttempts=2" in result.output
    assert local_server.hits("/429") == 3


def test_invalid_configuration_exits_two(local_server) -> None:
    result = runner.invoke(app, ["get", local_server.url("/getText"), "--retries", "-1"])
    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


def test_post_text(local_server) -> None:
    result = runner.invoke(
        app, ["post", local_server.url("/echoBytes"), "--data", "hello", "--no-logs"]
    )
    assert result.exit_code == 0, result.output
    assert "hello" in result.output


def test_post_file_as_bytes(local_server, tmp_path) -> None:
    blob = tmp_path / "blob.bin"
    blob.write_bytes(b"payload")
    result = runner.invoke(
        app,
        ["post", local_server.url("/echoBytes"), "--data-file", str(blob), "-t", "bytes", "--no-logs"],
    )
    assert result.exit_code == 0, result.output
    assert local_server.handler.bodies[-1] == b"payload"


def test_post_requires_exactly_one_body(local_server) -> None:
    result = runner.invoke(app, ["post", local_server.url("/echoBytes")])
    assert result.exit_code == 2


def test_settings_reflect_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "3")
    result = runner.invoke(app, ["settings"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["retries"] == 3


def test_settings_shows_cached_process_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    first = runner.invoke(app, ["settings"])
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "5")
    cached = runner.invoke(app, ["settings"])
    assert json.loads(cached.output) == json.loads(first.output)
    reset_settings()
    refreshed = runner.invoke(app, ["settings"])
    assert json.loads(refreshed.output)["retries"] == 5


def test_settings_rejects_invalid_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "many")
    result = runner.invoke(app, ["settings"])
    assert result.exit_code == 2
