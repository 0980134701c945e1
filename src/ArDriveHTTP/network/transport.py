# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.network.transport",
#   "purpose": "HTTPX client factory and the in-process transport adapter.",
#   "sections": [
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "httpxtransportadapter",
#       "name": "HttpxTransportAdapter",
#       "anchor": "class-httpxtransportadapter",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory and the in-process transport adapter.

:class:`HttpxTransportAdapter` performs exactly one HTTP round trip per
``send`` call and reports the result as an :class:`~ArDriveHTTP.models.Outcome`
value instead of raising:

- 2xx responses become :class:`~ArDriveHTTP.models.Success`
- other statuses become :class:`~ArDriveHTTP.models.Failure` with the status,
  reason phrase, and body
- transport faults (connect/read errors, timeouts) become a ``Failure``
  without a status code

Only faults that are not network conditions at all (malformed URL,
unsupported scheme, local protocol misuse) and cancellation escape as
exceptions, so the retry engine never sees them.

Bodies are always read in chunks with the cancellation token checked between
chunks; a fired token also closes the live response from the cancelling
thread so blocked reads return.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

import httpx

from ArDriveHTTP.cancellation import CancellationToken, RequestCancelled
from ArDriveHTTP.models import BodyKind, Failure, Outcome, RequestSpec, Success
from ArDriveHTTP.network.instrumentation import create_http_event_hooks, redact_url
from ArDriveHTTP.network.policy import UPLOAD_CHUNK_SIZE
from ArDriveHTTP.settings import ClientSettings

logger = logging.getLogger(__name__)

_NON_NETWORK_ERRORS = (httpx.UnsupportedProtocol, httpx.LocalProtocolError)
_READ_ERRORS = (httpx.TransportError, httpx.StreamError)


# ============================================================================
# Client Factory
# ============================================================================


def create_http_client(
    settings: ClientSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTPX client shared by all calls of one ``ArDriveHTTP``.

    Configuration:
    - Timeouts: per attempt (connect, then read/write/pool on the receive budget)
    - Redirects: followed unless disabled in settings
    - Hooks: request/response logging unless ``no_logs``

    Args:
        settings: Frozen client settings.
        transport: Optional HTTPX transport (tests pass ``httpx.MockTransport``).

    Returns:
        Configured httpx.Client
    """
    client = httpx.Client(
        transport=transport,
        timeout=httpx.Timeout(
            connect=settings.connect_timeout_s,
            read=settings.receive_timeout_s,
            write=settings.receive_timeout_s,
            pool=settings.receive_timeout_s,
        ),
        follow_redirects=settings.follow_redirects,
        headers={"User-Agent": settings.user_agent},
        event_hooks=None if settings.no_logs else create_http_event_hooks(),
    )
    logger.debug(
        "HTTPX client created",
        extra={
            "connect_timeout_s": settings.connect_timeout_s,
            "receive_timeout_s": settings.receive_timeout_s,
            "follow_redirects": settings.follow_redirects,
        },
    )
    return client


# ============================================================================
# Transport Adapter
# ============================================================================


class HttpxTransportAdapter:
    """Perform single HTTP round trips over a shared ``httpx.Client``."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    @property
    def client(self) -> httpx.Client:
        return self._client

    def send(self, spec: RequestSpec) -> Outcome:
        """Send ``spec`` once.

        Raises:
            RequestCancelled: If the request's token fired before or during the call.
            httpx.InvalidURL: If the URL cannot be parsed.
            httpx.UnsupportedProtocol: If the URL scheme is not HTTP(S).
        """
        token = spec.cancel_token
        if token is not None:
            token.raise_if_cancelled()

        request = self._client.build_request(
            spec.method,
            spec.url,
            headers=dict(spec.headers),
            content=_request_content(spec),
            timeout=httpx.Timeout(
                connect=spec.connect_timeout,
                read=spec.receive_timeout,
                write=spec.receive_timeout,
                pool=spec.receive_timeout,
            ),
        )

        try:
            response = self._client.send(request, stream=True)
        except _NON_NETWORK_ERRORS:
            raise
        except httpx.TransportError as exc:
            _raise_if_cancelled(token)
            return Failure(error=exc)

        abort = _abort_callback(response, spec.url)
        if token is not None:
            token.add_callback(abort)

        if spec.is_streaming and response.is_success:
            return Success(
                status_code=response.status_code,
                status_message=response.reason_phrase,
                body=_stream_chunks(response, token, abort),
                headers=dict(response.headers),
            )

        try:
            body = _read_body(response, token)
        except _READ_ERRORS as exc:
            _raise_if_cancelled(token)
            return Failure(error=exc)
        finally:
            if token is not None:
                token.remove_callback(abort)
            response.close()

        if response.is_success:
            return Success(
                status_code=response.status_code,
                status_message=response.reason_phrase,
                body=body,
                headers=dict(response.headers),
            )
        return Failure(
            error=httpx.HTTPStatusError(
                f"Http status error [{response.status_code}]",
                request=request,
                response=response,
            ),
            status_code=response.status_code,
            status_message=response.reason_phrase,
            data=body,
        )

    def close(self) -> None:
        self._client.close()


# ============================================================================
# Helpers
# ============================================================================


def _raise_if_cancelled(token: Optional[CancellationToken]) -> None:
    if token is not None:
        token.raise_if_cancelled()


def _abort_callback(response: httpx.Response, url: str) -> Any:
    def _abort(reason: Any) -> None:
        logger.debug(
            "Cancelling request",
            extra={"url": redact_url(url), "reason": str(reason)},
        )
        response.close()

    return _abort


def _request_content(spec: RequestSpec) -> Any:
    kind = spec.body_kind
    if kind is BodyKind.NONE:
        return None
    if kind is BodyKind.STREAM:
        return _guarded_chunks(spec.body, spec.cancel_token)  # type: ignore[arg-type]

    data = spec.body.encode("utf-8") if kind is BodyKind.TEXT else bytes(spec.body)  # type: ignore[union-attr,arg-type]
    if spec.on_send_progress is None:
        return data
    return _UploadWithProgress(data, spec)


class _UploadWithProgress:
    """Re-iterable upload body reporting ``(sent, total)`` after each chunk."""

    def __init__(self, data: bytes, spec: RequestSpec) -> None:
        self._data = data
        self._callback = spec.on_send_progress
        self._token = spec.cancel_token

    def __iter__(self) -> Iterator[bytes]:
        total = len(self._data)
        sent = 0
        for offset in range(0, total, UPLOAD_CHUNK_SIZE):
            _raise_if_cancelled(self._token)
            chunk = self._data[offset : offset + UPLOAD_CHUNK_SIZE]
            yield chunk
            sent += len(chunk)
            self._callback(sent, total)  # type: ignore[misc]
        if total == 0:
            self._callback(0, 0)  # type: ignore[misc]


def _guarded_chunks(chunks: Iterable[bytes], token: Optional[CancellationToken]) -> Iterator[bytes]:
    for chunk in chunks:
        _raise_if_cancelled(token)
        yield bytes(chunk)


def _read_body(response: httpx.Response, token: Optional[CancellationToken]) -> bytes:
    parts = []
    for chunk in response.iter_bytes():
        _raise_if_cancelled(token)
        parts.append(chunk)
    return b"".join(parts)


def _stream_chunks(
    response: httpx.Response,
    token: Optional[CancellationToken],
    abort: Any,
) -> Iterator[bytes]:
    """Yield body chunks lazily; a fired token truncates the stream."""
    try:
        for chunk in response.iter_bytes():
            if token is not None and token.is_cancelled():
                return
            yield chunk
    except _READ_ERRORS:
        if token is not None and token.is_cancelled():
            return
        raise
    finally:
        if token is not None:
            token.remove_callback(abort)
        response.close()


__all__ = [
    "create_http_client",
    "HttpxTransportAdapter",
]
