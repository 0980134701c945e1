# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.normalize",
#   "purpose": "Convert transport outcomes and worker results into canonical responses/exceptions",
#   "sections": [
#     {"id": "decode", "name": "decode_body", "anchor": "function-decode-body", "kind": "function"},
#     {"id": "success", "name": "to_response", "anchor": "function-to-response", "kind": "function"},
#     {"id": "failure", "name": "to_exception", "anchor": "function-to-exception", "kind": "function"},
#     {"id": "channel", "name": "from_channel_result", "anchor": "function-from-channel-result", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Response/error normalization.

Every request path funnels through this module on its way back to the
caller: local ``Success``/``Failure`` outcomes, flat result maps returned by
the isolated worker, cancellation signals, and arbitrary unexpected
exceptions. The result is always an :class:`~ArDriveHTTP.models.ArDriveHTTPResponse`
or an :class:`~ArDriveHTTP.errors.ArDriveHTTPException` subclass.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Mapping, Optional

import httpx

from ArDriveHTTP.errors import (
    ArDriveHTTPException,
    RequestCancelledError,
    ResponseDecodeError,
    RetryExhaustedError,
    TerminalResponseError,
    UnexpectedError,
)
from ArDriveHTTP.logging_config import format_error_message
from ArDriveHTTP.models import ArDriveHTTPResponse, Failure, ResponseType, Success
from ArDriveHTTP.network.isolated import from_transferable
from ArDriveHTTP.network.retry import is_retryable_status

logger = logging.getLogger(__name__)


def decode_body(raw: bytes, response_type: ResponseType, encoding: Optional[str] = None) -> Any:
    """Decode ``raw`` into the declared response type.

    Raises:
        ValueError: If the body is not valid text/JSON (``UnicodeDecodeError``
            and ``json.JSONDecodeError`` are both ``ValueError`` subclasses).
    """
    response_type = ResponseType(response_type)
    if response_type is ResponseType.BYTES:
        return bytes(raw)
    if response_type is ResponseType.JSON:
        if not raw.strip():
            return None
        return json.loads(raw.decode(encoding or "utf-8"))
    return raw.decode(encoding or "utf-8")


def _charset(headers: Mapping[str, str]) -> Optional[str]:
    content_type = {key.lower(): value for key, value in headers.items()}.get("content-type", "")
    for part in content_type.split(";")[1:]:
        name, _, value = part.strip().partition("=")
        if name.lower() == "charset" and value:
            return value.strip("\"'")
    return None


def to_response(
    outcome: Success,
    *,
    response_type: ResponseType,
    retry_attempts: int,
    url: str = "",
    no_logs: bool = False,
) -> ArDriveHTTPResponse:
    """Build the canonical response for a terminal ``Success``.

    A body that cannot be decoded is logged like any other terminal failure
    and raised as :class:`ResponseDecodeError`.
    """
    if ResponseType(response_type) is ResponseType.STREAM:
        data: Any = _guard_stream(outcome.body, retry_attempts)  # type: ignore[arg-type]
    else:
        try:
            data = decode_body(outcome.body, response_type, _charset(outcome.headers))  # type: ignore[arg-type]
        except (ValueError, LookupError) as exc:
            if not no_logs:
                logger.error(
                    format_error_message(
                        url, outcome.status_code or 0, outcome.status_message or "", retry_attempts
                    ),
                    extra={"url": url, "status": outcome.status_code, "retry_attempts": retry_attempts},
                )
            raise ResponseDecodeError(retry_attempts=retry_attempts, cause=exc, data=outcome.body) from exc
    return ArDriveHTTPResponse(
        data=data,
        status_code=outcome.status_code,
        status_message=outcome.status_message,
        retry_attempts=retry_attempts,
        headers=outcome.headers,
    )


def to_exception(
    outcome: Failure,
    *,
    url: str,
    retry_attempts: int,
    no_logs: bool = False,
) -> ArDriveHTTPException:
    """Build the canonical exception for a terminal ``Failure``."""
    if is_retryable_status(outcome.status_code):
        error_cls: type = RetryExhaustedError
    else:
        error_cls = TerminalResponseError
    if not no_logs:
        logger.error(
            format_error_message(
                url, outcome.status_code or 0, outcome.status_message or "", retry_attempts
            ),
            extra={"url": url, "status": outcome.status_code, "retry_attempts": retry_attempts},
        )
    return error_cls(
        retry_attempts=retry_attempts,
        cause=outcome.error,
        status_code=outcome.status_code,
        status_message=outcome.status_message,
        data=outcome.data,
    )


def cancelled(reason: Any, *, retry_attempts: int) -> RequestCancelledError:
    return RequestCancelledError(retry_attempts=retry_attempts, cause=reason)


def unexpected(exc: BaseException, *, retry_attempts: int) -> ArDriveHTTPException:
    """Wrap an arbitrary exception; canonical exceptions pass through unchanged."""
    if isinstance(exc, ArDriveHTTPException):
        return exc
    return UnexpectedError(retry_attempts=retry_attempts, cause=exc)


def reconcile_attempts(reported: Any, retries: int) -> int:
    """Trust the worker's attempt counter, clamped to ``[0, retries]``."""
    try:
        attempts = int(reported)
    except (TypeError, ValueError):
        logger.warning("Worker reported no usable retry count", extra={"reported": reported})
        return 0
    clamped = min(max(attempts, 0), max(retries, 0))
    if clamped != attempts:
        logger.warning(
            "Worker retry count outside configured budget; clamping",
            extra={"reported": attempts, "retries": retries},
        )
    return clamped


def from_channel_result(
    result: Mapping[str, Any],
    *,
    url: str,
    response_type: ResponseType,
    retries: int,
    no_logs: bool = False,
) -> ArDriveHTTPResponse:
    """Convert a flat worker result map into a response, or raise.

    Raises:
        ArDriveHTTPException: When the map carries an ``error`` or the body
            cannot be decoded.
    """
    attempts = reconcile_attempts(result.get("retryAttempts", 0), retries)
    status_code = result.get("statusCode")
    status_message = result.get("statusMessage")
    data = from_transferable(result.get("data"))

    error = result.get("error")
    if error is not None:
        if result.get("errorType") == "unexpected":
            raise UnexpectedError(
                retry_attempts=attempts,
                cause=error,
                status_code=status_code,
                status_message=status_message,
                data=data,
            )
        raise to_exception(
            Failure(
                error=error,
                status_code=status_code,
                status_message=status_message,
                data=data,
            ),
            url=url,
            retry_attempts=attempts,
            no_logs=no_logs,
        )

    return to_response(
        Success(
            status_code=status_code,
            status_message=status_message,
            body=data if data is not None else b"",
            headers=from_transferable(result.get("headers")) or {},
        ),
        response_type=response_type,
        retry_attempts=attempts,
        url=url,
        no_logs=no_logs,
    )


def _guard_stream(chunks: Iterator[bytes], retry_attempts: int) -> Iterator[bytes]:
    """Re-raise mid-stream transport faults as canonical exceptions."""
    try:
        yield from chunks
    except (httpx.TransportError, httpx.StreamError) as exc:
        raise UnexpectedError(retry_attempts=retry_attempts, cause=exc) from exc


__all__ = [
    "decode_body",
    "to_response",
    "to_exception",
    "cancelled",
    "unexpected",
    "reconcile_attempts",
    "from_channel_result",
]
