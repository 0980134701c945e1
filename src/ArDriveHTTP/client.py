# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.client",
#   "purpose": "Public HTTP client with transparent retries across execution contexts",
#   "sections": [
#     {"id": "client", "name": "ArDriveHTTP", "anchor": "class-ardrivehttp", "kind": "class"},
#     {"id": "get", "name": "GET helpers", "anchor": "GET", "kind": "api"},
#     {"id": "post", "name": "POST helpers", "anchor": "PST", "kind": "api"},
#     {"id": "async", "name": "Async entry points", "anchor": "ASY", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Public HTTP client.

:class:`ArDriveHTTP` wraps every request in transparent retry-with-backoff and
returns one response shape (:class:`~ArDriveHTTP.models.ArDriveHTTPResponse`)
or raises one exception shape (:class:`~ArDriveHTTP.errors.ArDriveHTTPException`)
regardless of whether the request was served in-process or by an isolated
worker process.

Example:
    >>> http = ArDriveHTTP(retries=4, retry_delay_ms=0, no_logs=True)
    >>> response = http.get_json("https://example.org/status")  # doctest: +SKIP
    >>> response.data["message"], response.retry_attempts  # doctest: +SKIP
    ('ok', 0)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping, Optional, Union

import httpx

from ArDriveHTTP.cancellation import CancellationToken
from ArDriveHTTP.concurrency import create_executor
from ArDriveHTTP.models import (
    ArDriveHTTPResponse,
    ContentType,
    ProgressCallback,
    RequestSpec,
    ResponseType,
)
from ArDriveHTTP.network.isolated import IsolatedWorkerChannel, isolation_supported
from ArDriveHTTP.network.router import ExecutionRouter, IsolatedTransport, LocalTransport
from ArDriveHTTP.network.transport import HttpxTransportAdapter, create_http_client
from ArDriveHTTP.settings import ClientSettings, build_settings

logger = logging.getLogger(__name__)

Headers = Optional[Mapping[str, str]]


class ArDriveHTTP:
    """HTTP client with retries, dual execution contexts, and unified errors.

    Args:
        retries: Maximum retries per request (default 8).
        retry_delay_ms: Base backoff delay in milliseconds (default 200).
        no_logs: Suppress retry/error diagnostics (default False).
        settings: Full settings object; explicit keyword values override it.
        transport: HTTPX transport for the in-process path (tests inject
            ``httpx.MockTransport``).
        channel: Isolated worker channel; defaults to the shared process pool
            when ``settings.isolated_execution`` is enabled.

    The instance holds only immutable configuration and shared connection
    resources, so one client can serve concurrent calls from many threads.
    """

    def __init__(
        self,
        retries: Optional[int] = None,
        retry_delay_ms: Optional[int] = None,
        no_logs: Optional[bool] = None,
        *,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        channel: Optional[IsolatedWorkerChannel] = None,
    ) -> None:
        overrides = {"retries": retries, "retry_delay_ms": retry_delay_ms, "no_logs": no_logs}
        explicit = {key: value for key, value in overrides.items() if value is not None}
        if settings is None:
            settings = build_settings(**explicit)
        elif explicit:
            settings = build_settings(**{**settings.model_dump(), **explicit})
        self._settings = settings

        self._adapter = HttpxTransportAdapter(create_http_client(settings, transport=transport))
        isolated = None
        if settings.isolated_execution:
            isolated = IsolatedTransport(
                channel or IsolatedWorkerChannel(),
                follow_redirects=settings.follow_redirects,
                user_agent=settings.user_agent,
            )
        self._offload_executor = create_executor("io", settings.offload_workers)
        self._router = ExecutionRouter(
            LocalTransport(self._adapter),
            isolated,
            isolation_supported=settings.isolated_execution and isolation_supported(),
            offload_executor=self._offload_executor,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def retries(self) -> int:
        return self._settings.retries

    @property
    def retry_delay_ms(self) -> int:
        return self._settings.retry_delay_ms

    @property
    def no_logs(self) -> bool:
        return self._settings.no_logs

    @property
    def router(self) -> ExecutionRouter:
        return self._router

    def _spec(self, method: str, url: str, **kwargs: Any) -> RequestSpec:
        headers = kwargs.pop("headers", None) or {}
        return RequestSpec(
            method=method,
            url=url,
            headers=headers,
            connect_timeout=self._settings.connect_timeout_s,
            receive_timeout=self._settings.receive_timeout_s,
            **kwargs,
        )

    def request(self, spec: RequestSpec) -> ArDriveHTTPResponse:
        """Execute a prepared :class:`RequestSpec`."""
        return self._router.execute(
            spec,
            self._settings.retries,
            self._settings.retry_delay_ms,
            self._settings.no_logs,
        )

    async def request_async(self, spec: RequestSpec) -> ArDriveHTTPResponse:
        return await self._router.execute_async(
            spec,
            self._settings.retries,
            self._settings.retry_delay_ms,
            self._settings.no_logs,
        )

    # ------------------------------------------------------------------
    # GET
    # ------------------------------------------------------------------

    def get(
        self,
        url: str,
        response_type: ResponseType = ResponseType.PLAIN,
        *,
        headers: Headers = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        return self.request(
            self._spec(
                "GET", url, headers=headers, response_type=response_type, cancel_token=cancel_token
            )
        )

    def get_json(self, url: str, *, headers: Headers = None) -> ArDriveHTTPResponse:
        return self.get(url, ResponseType.JSON, headers=headers)

    def get_as_bytes(self, url: str, *, headers: Headers = None) -> ArDriveHTTPResponse:
        return self.get(url, ResponseType.BYTES, headers=headers)

    def get_as_byte_stream(
        self,
        url: str,
        cancel_token: Optional[CancellationToken] = None,
        *,
        headers: Headers = None,
    ) -> ArDriveHTTPResponse:
        """GET whose ``data`` is a lazy, single-pass iterator of ``bytes`` chunks.

        Firing ``cancel_token`` mid-stream closes the connection and ends the
        iterator early; no retry follows a cancellation.
        """
        return self.get(url, ResponseType.STREAM, headers=headers, cancel_token=cancel_token)

    # ------------------------------------------------------------------
    # POST
    # ------------------------------------------------------------------

    def post(
        self,
        url: str,
        data: Union[None, str, bytes, Iterable[bytes]],
        content_type: Union[ContentType, str],
        response_type: ResponseType = ResponseType.PLAIN,
        *,
        headers: Headers = None,
        on_send_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        """POST ``data``.

        A progress callback or an iterable body keeps the request in-process,
        since neither can be copied into an isolated worker.
        """
        return self.request(
            self._spec(
                "POST",
                url,
                headers=headers,
                body=data,
                content_type=str(content_type),
                response_type=response_type,
                on_send_progress=on_send_progress,
                cancel_token=cancel_token,
            )
        )

    def post_json(
        self,
        url: str,
        data: Any,
        response_type: ResponseType = ResponseType.JSON,
        *,
        headers: Headers = None,
    ) -> ArDriveHTTPResponse:
        """POST a JSON document; non-string ``data`` is serialized first."""
        body = data if isinstance(data, str) else json.dumps(data)
        return self.post(url, body, ContentType.JSON, response_type, headers=headers)

    def post_bytes(
        self,
        url: str,
        data: bytes,
        response_type: ResponseType = ResponseType.JSON,
        *,
        headers: Headers = None,
        on_send_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        return self.post(
            url,
            bytes(data),
            ContentType.BINARY,
            response_type,
            headers=headers,
            on_send_progress=on_send_progress,
            cancel_token=cancel_token,
        )

    def post_byte_stream(
        self,
        url: str,
        chunks: Iterable[bytes],
        response_type: ResponseType = ResponseType.JSON,
        *,
        headers: Headers = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        """POST an iterable of chunks; the body is single-use, so one attempt is made."""
        return self.post(
            url,
            chunks,
            ContentType.BINARY,
            response_type,
            headers=headers,
            cancel_token=cancel_token,
        )

    # ------------------------------------------------------------------
    # Async
    # ------------------------------------------------------------------

    async def get_async(
        self,
        url: str,
        response_type: ResponseType = ResponseType.PLAIN,
        *,
        headers: Headers = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        return await self.request_async(
            self._spec(
                "GET", url, headers=headers, response_type=response_type, cancel_token=cancel_token
            )
        )

    async def post_async(
        self,
        url: str,
        data: Union[None, str, bytes, Iterable[bytes]],
        content_type: Union[ContentType, str],
        response_type: ResponseType = ResponseType.PLAIN,
        *,
        headers: Headers = None,
        on_send_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArDriveHTTPResponse:
        return await self.request_async(
            self._spec(
                "POST",
                url,
                headers=headers,
                body=data,
                content_type=str(content_type),
                response_type=response_type,
                on_send_progress=on_send_progress,
                cancel_token=cancel_token,
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the connection pool and the offload threads."""
        self._adapter.close()
        self._offload_executor.shutdown(wait=False)

    def __enter__(self) -> "ArDriveHTTP":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["ArDriveHTTP"]
