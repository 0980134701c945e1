# === NAVMAP v1 ===
# {
#   "module": "tests.ardrive_http.conftest",
#   "purpose": "Shared fixtures: threaded loopback HTTP server and MockTransport clients.",
#   "sections": [
#     {"id": "server", "name": "local_server", "anchor": "SRV", "kind": "fixture"},
#     {"id": "mock", "name": "mock_http", "anchor": "MCK", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""Shared fixtures for the ArDriveHTTP test suite.

``local_server`` runs a small routing HTTP server on a loopback port:

- ``/getText`` → ``ok``
- ``/getJson`` → ``{"message": "ok"}``
- ``/headerCheck`` → 200 only when the ``test: ok`` header is present
- ``/slow`` → ``ok`` after a one second pause
- ``/redirectLoop`` → 302 back to itself, forever
- ``/userAgent`` → the request's ``User-Agent`` header
- ``/<status>`` → empty response with that status (``/404``, ``/429``…)
- ``POST /postJson`` → ``{"message": "ok"}``
- ``POST /echoBytes`` → the request body, verbatim

``mock_http`` builds clients over :class:`httpx.MockTransport` so retry
behaviour can be exercised without sockets.
"""

from __future__ import annotations

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, Iterator, List
from urllib.parse import urlsplit

import httpx
import pytest

from ArDriveHTTP import ArDriveHTTP
from ArDriveHTTP.network.isolated import reset_worker_pool
from ArDriveHTTP.settings import reset_settings


class _RoutingHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    hits: Dict[str, int] = {}
    bodies: List[bytes] = []
    lock = threading.Lock()

    def _record(self, path: str) -> None:
        with self.__class__.lock:
            self.__class__.hits[path] = self.__class__.hits.get(path, 0) + 1

    def _read_body(self) -> bytes:
        if self.headers.get("Transfer-Encoding", "").lower() == "chunked":
            parts = []
            while True:
                size = int(self.rfile.readline().strip().split(b";")[0], 16)
                if size == 0:
                    self.rfile.readline()
                    break
                parts.append(self.rfile.read(size))
                self.rfile.readline()
            return b"".join(parts)
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(self, status: int, body: bytes = b"", content_type: str = "text/plain") -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def _route(self, path: str, body: bytes) -> None:
        if path == "/getText":
            self._send(200, b"ok")
        elif path in {"/getJson", "/postJson"}:
            self._send(200, json.dumps({"message": "ok"}).encode(), "application/json")
        elif path == "/headerCheck":
            status = 200 if self.headers.get("test") == "ok" else 400
            self._send(status, b"ok" if status == 200 else b"missing header")
        elif path == "/slow":
            time.sleep(1.0)
            self._send(200, b"ok")
        elif path == "/redirectLoop":
            self.send_response(302)
            self.send_header("Location", "/redirectLoop")
            self.send_header("Content-Length", "0")
            self.end_headers()
        elif path == "/userAgent":
            self._send(200, self.headers.get("User-Agent", "").encode())
        elif path == "/echoBytes":
            self._send(200, body, "application/octet-stream")
        elif path.lstrip("/").isdigit():
            self._send(int(path.lstrip("/")))
        else:
            self._send(404)

    def do_GET(self) -> None:  # noqa: D401 - HTTP handler signature
        path = urlsplit(self.path).path
        self._record(path)
        self._route(path, b"")

    def do_POST(self) -> None:  # noqa: D401 - HTTP handler signature
        path = urlsplit(self.path).path
        body = self._read_body()
        self._record(path)
        with self.__class__.lock:
            self.__class__.bodies.append(body)
        self._route(path, body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: D401
        return


class LocalServer:
    def __init__(self, handler: type, base_url: str) -> None:
        self.handler = handler
        self.base_url = base_url

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def hits(self, path: str) -> int:
        return self.handler.hits.get(path, 0)


@pytest.fixture
def local_server() -> Iterator[LocalServer]:
    handler = _RoutingHandler
    handler.hits = {}
    handler.bodies = []
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield LocalServer(handler, f"http://127.0.0.1:{server.server_address[1]}")
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1)


class CountingHandler:
    """MockTransport handler returning queued responses and counting calls."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self._respond = respond
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._respond(request)


@pytest.fixture
def mock_http() -> Iterator[Callable[..., tuple]]:
    """Return a factory ``(respond, **client_kwargs) -> (client, handler)``."""

    clients: List[ArDriveHTTP] = []

    def _factory(respond: Callable[[httpx.Request], httpx.Response], **kwargs) -> tuple:
        kwargs.setdefault("retry_delay_ms", 0)
        kwargs.setdefault("no_logs", True)
        handler = CountingHandler(respond)
        client = ArDriveHTTP(transport=httpx.MockTransport(handler), **kwargs)
        clients.append(client)
        return client, handler

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in (
        "ARDRIVE_HTTP_RETRIES",
        "ARDRIVE_HTTP_RETRY_DELAY_MS",
        "ARDRIVE_HTTP_NO_LOGS",
        "ARDRIVE_HTTP_ISOLATED_EXECUTION",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
    reset_worker_pool()
