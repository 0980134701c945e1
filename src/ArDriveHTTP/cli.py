# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.cli",
#   "purpose": "Typer command line for issuing retried GET/POST requests.",
#   "sections": [
#     {"id": "get", "name": "get", "anchor": "function-get", "kind": "function"},
#     {"id": "post", "name": "post", "anchor": "function-post", "kind": "function"},
#     {"id": "settings", "name": "settings", "anchor": "function-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line for issuing retried GET/POST requests.

Example:
    $ ardrive-http get https://example.org/status --response-type json
    $ ardrive-http post https://example.org/upload --data-file blob.bin --retries 3
    $ ardrive-http settings
"""

import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ArDriveHTTP.client import ArDriveHTTP
from ArDriveHTTP.errors import ArDriveHTTPException, ConfigurationError
from ArDriveHTTP.logging_config import setup_logging
from ArDriveHTTP.models import ArDriveHTTPResponse, ContentType, ResponseType
from ArDriveHTTP.settings import build_settings, get_settings

app = typer.Typer(
    name="ardrive-http",
    help="HTTP requests with transparent retry and backoff",
    no_args_is_help=True,
)


class CliResponseType(str, Enum):
    plain = "plain"
    json = "json"
    bytes = "bytes"


class CliContentType(str, Enum):
    text = "text"
    json = "json"
    binary = "binary"


_CONTENT_TYPES = {
    CliContentType.text: ContentType.TEXT,
    CliContentType.json: ContentType.JSON,
    CliContentType.binary: ContentType.BINARY,
}

RETRIES_OPTION = typer.Option(None, "--retries", "-r", help="Maximum retries (default 8)")
DELAY_OPTION = typer.Option(None, "--retry-delay-ms", help="Base backoff delay in ms (default 200)")
NO_LOGS_OPTION = typer.Option(False, "--no-logs", help="Suppress retry diagnostics")
HEADER_OPTION = typer.Option(None, "--header", "-H", help="Request header as 'Name: value'")
ISOLATED_OPTION = typer.Option(False, "--isolated", help="Serve from an isolated worker process")
JSON_LOGS_OPTION = typer.Option(False, "--json-logs", help="Emit JSON log lines on stderr")


def _parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"header must look like 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def _build_client(
    retries: Optional[int],
    retry_delay_ms: Optional[int],
    no_logs: bool,
    isolated: bool,
    json_logs: bool,
) -> ArDriveHTTP:
    setup_logging("WARNING", json_logs=json_logs)
    try:
        settings = build_settings(
            retries=retries,
            retry_delay_ms=retry_delay_ms,
            no_logs=no_logs or None,
            isolated_execution=isolated or None,
        )
    except ConfigurationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    return ArDriveHTTP(settings=settings)


def _emit(response: ArDriveHTTPResponse) -> None:
    data: Any = response.data
    if isinstance(data, bytes):
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
    elif isinstance(data, str):
        typer.echo(data)
    else:
        typer.echo(json.dumps(data, indent=2))
    typer.echo(
        f"status={response.status_code} retryAttempts={response.retry_attempts}",
        err=True,
    )


def _fail(exc: ArDriveHTTPException) -> None:
    typer.echo(
        f"{exc.kind.value}: status={exc.status_code} "
        f"message={exc.status_message} retryAttempts={exc.retry_attempts}",
        err=True,
    )
    raise typer.Exit(code=1)


@app.command()
def get(
    url: str = typer.Argument(..., help="Request URL"),
    response_type: CliResponseType = typer.Option(CliResponseType.plain, "--response-type", "-t"),
    retries: Optional[int] = RETRIES_OPTION,
    retry_delay_ms: Optional[int] = DELAY_OPTION,
    no_logs: bool = NO_LOGS_OPTION,
    header: Optional[List[str]] = HEADER_OPTION,
    isolated: bool = ISOLATED_OPTION,
    json_logs: bool = JSON_LOGS_OPTION,
) -> None:
    """Issue a GET request and print the body."""
    headers = _parse_headers(header)
    with _build_client(retries, retry_delay_ms, no_logs, isolated, json_logs) as client:
        try:
            response = client.get(url, ResponseType(response_type.value), headers=headers)
        except ArDriveHTTPException as exc:
            _fail(exc)
        else:
            _emit(response)


@app.command()
def post(
    url: str = typer.Argument(..., help="Request URL"),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Request body as text"),
    data_file: Optional[Path] = typer.Option(
        None, "--data-file", exists=True, dir_okay=False, help="Read the request body from a file"
    ),
    content_type: CliContentType = typer.Option(CliContentType.text, "--content-type", "-c"),
    response_type: CliResponseType = typer.Option(CliResponseType.plain, "--response-type", "-t"),
    retries: Optional[int] = RETRIES_OPTION,
    retry_delay_ms: Optional[int] = DELAY_OPTION,
    no_logs: bool = NO_LOGS_OPTION,
    header: Optional[List[str]] = HEADER_OPTION,
    isolated: bool = ISOLATED_OPTION,
    json_logs: bool = JSON_LOGS_OPTION,
) -> None:
    """Issue a POST request and print the body."""
    if (data is None) == (data_file is None):
        raise typer.BadParameter("pass exactly one of --data or --data-file")
    body: Any = data if data is not None else data_file.read_bytes()  # type: ignore[union-attr]
    if data_file is not None and content_type is CliContentType.text:
        content_type = CliContentType.binary
    headers = _parse_headers(header)
    with _build_client(retries, retry_delay_ms, no_logs, isolated, json_logs) as client:
        try:
            response = client.post(
                url,
                body,
                _CONTENT_TYPES[content_type],
                ResponseType(response_type.value),
                headers=headers,
            )
        except ArDriveHTTPException as exc:
            _fail(exc)
        else:
            _emit(response)


@app.command("settings")
def show_settings() -> None:
    """Print the process-wide default settings (keyword defaults plus ARDRIVE_HTTP_* env)."""
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(json.dumps(settings.model_dump(), indent=2))


def main() -> None:  # pragma: no cover - console script entry
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
