# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.models",
#   "purpose": "Request, outcome, decision, and response data models",
#   "sections": [
#     {"id": "enums", "name": "ResponseType & ContentType", "anchor": "ENU", "kind": "api"},
#     {"id": "request", "name": "RequestSpec", "anchor": "REQ", "kind": "api"},
#     {"id": "outcome", "name": "Success / Failure", "anchor": "OUT", "kind": "api"},
#     {"id": "decision", "name": "RetryDecision & AttemptState", "anchor": "DEC", "kind": "api"},
#     {"id": "response", "name": "ArDriveHTTPResponse", "anchor": "RSP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Data models passed between the router, transports, and normalizer.

``RequestSpec`` is immutable once dispatched. ``Success``/``Failure`` are the
raw outcome of one physical attempt. ``AttemptState`` is the only mutable
piece and lives for exactly one logical call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from ArDriveHTTP.cancellation import CancellationToken
from ArDriveHTTP.network.policy import HTTP_CONNECT_TIMEOUT, HTTP_RECEIVE_TIMEOUT

__all__ = [
    "ResponseType",
    "ContentType",
    "BodyKind",
    "RequestSpec",
    "Success",
    "Failure",
    "Outcome",
    "RetryDecision",
    "AttemptState",
    "ArDriveHTTPResponse",
    "ProgressCallback",
    "normalize_response_type",
]

#: ``callback(bytes_sent, total_bytes)`` invoked while uploading
ProgressCallback = Callable[[int, int], None]


# ============================================================================
# Enumerations
# ============================================================================


class ResponseType(str, Enum):
    """How the response body is delivered to the caller."""

    PLAIN = "plain"
    JSON = "json"
    BYTES = "bytes"
    STREAM = "stream"


class ContentType(str, Enum):
    """Content-Type header values for request bodies."""

    TEXT = "text/plain; charset=utf-8"
    JSON = "application/json; charset=utf-8"
    BINARY = "application/octet-stream"

    def __str__(self) -> str:
        return self.value


class BodyKind(str, Enum):
    NONE = "none"
    TEXT = "text"
    BINARY = "binary"
    STREAM = "stream"


_WIRE_RESPONSE_TYPES = {
    ResponseType.PLAIN: "text",
    ResponseType.JSON: "json",
    ResponseType.BYTES: "bytes",
    ResponseType.STREAM: "stream",
}


def normalize_response_type(response_type: ResponseType) -> str:
    """Map a :class:`ResponseType` to the name used across the worker boundary."""
    return _WIRE_RESPONSE_TYPES[ResponseType(response_type)]


# ============================================================================
# Request
# ============================================================================


@dataclass(frozen=True)
class RequestSpec:
    """Everything needed to perform one logical request.

    Attributes:
        method: HTTP method, upper-cased.
        url: Absolute request URL.
        headers: Request headers; keys are stored lower-cased.
        body: ``None``, ``str``, ``bytes``, or an iterable of ``bytes`` chunks.
        response_type: Declared delivery form of the response body.
        content_type: Content-Type to send with the body, if any.
        connect_timeout: Per-attempt connect timeout in seconds.
        receive_timeout: Per-attempt read/write timeout in seconds.
        on_send_progress: Optional upload progress callback.
        cancel_token: Optional cooperative cancellation token.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Union[None, str, bytes, Iterable[bytes]] = None
    response_type: ResponseType = ResponseType.PLAIN
    content_type: Optional[str] = None
    connect_timeout: float = HTTP_CONNECT_TIMEOUT
    receive_timeout: float = HTTP_RECEIVE_TIMEOUT
    on_send_progress: Optional[ProgressCallback] = None
    cancel_token: Optional[CancellationToken] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "response_type", ResponseType(self.response_type))
        headers = {str(key).lower(): str(value) for key, value in dict(self.headers).items()}
        if self.content_type is not None:
            headers.setdefault("content-type", str(self.content_type))
        object.__setattr__(self, "headers", MappingProxyType(headers))
        if isinstance(self.body, bytearray):
            object.__setattr__(self, "body", bytes(self.body))

    @property
    def body_kind(self) -> BodyKind:
        if self.body is None:
            return BodyKind.NONE
        if isinstance(self.body, str):
            return BodyKind.TEXT
        if isinstance(self.body, (bytes, memoryview)):
            return BodyKind.BINARY
        return BodyKind.STREAM

    @property
    def is_streaming(self) -> bool:
        return self.response_type is ResponseType.STREAM

    @property
    def replayable(self) -> bool:
        """Whether the body can be sent again on a retry."""
        return self.body_kind is not BodyKind.STREAM


# ============================================================================
# Outcome of one physical attempt
# ============================================================================


@dataclass(frozen=True)
class Success:
    status_code: int
    status_message: Optional[str]
    body: Union[bytes, Iterator[bytes]]
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Failure:
    """A failed attempt; ``status_code`` is ``None`` for network-level faults."""

    error: Any
    status_code: Optional[int] = None
    status_message: Optional[str] = None
    data: Optional[bytes] = None


Outcome = Union[Success, Failure]


# ============================================================================
# Retry bookkeeping
# ============================================================================


@dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay_ms: float = 0.0

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0


@dataclass
class AttemptState:
    """Retry counter owned by a single logical call."""

    attempts_used: int = 0

    def record_retry(self) -> int:
        self.attempts_used += 1
        return self.attempts_used


# ============================================================================
# Canonical response
# ============================================================================


@dataclass
class ArDriveHTTPResponse:
    """The only success shape returned to callers.

    For ``ResponseType.STREAM`` requests ``data`` is a single-pass iterator of
    ``bytes`` chunks; otherwise it is ``str``, decoded JSON, or ``bytes``.
    """

    data: Any
    retry_attempts: int
    status_code: Optional[int] = None
    status_message: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
