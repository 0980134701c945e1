# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.errors",
#   "purpose": "Define the single exception shape raised to callers and its taxonomy",
#   "sections": [
#     {"id": "kind", "name": "ErrorKind", "anchor": "KND", "kind": "api"},
#     {"id": "base", "name": "ArDriveHTTPException", "anchor": "BAS", "kind": "api"},
#     {"id": "taxonomy", "name": "Failure Categories", "anchor": "TAX", "kind": "api"},
#     {"id": "configuration", "name": "ConfigurationError", "anchor": "CFG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared by every request path.

Whether a request was served in-process or inside an isolated worker, callers
only ever observe :class:`ArDriveHTTPException`. Subclasses mark the failure
category (retry exhaustion, terminal status, decode failure, cancellation,
unexpected fault) so caller code can branch on them, while every instance
carries the same fields: the number of retries consumed, the underlying
cause, and the HTTP status/body when the server produced one.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

__all__ = [
    "ErrorKind",
    "ArDriveHTTPException",
    "RetryExhaustedError",
    "TerminalResponseError",
    "ResponseDecodeError",
    "RequestCancelledError",
    "UnexpectedError",
    "ConfigurationError",
]


class ErrorKind(str, Enum):
    """Failure categories surfaced on :attr:`ArDriveHTTPException.kind`."""

    RETRY_EXHAUSTED = "retry_exhausted"
    TERMINAL = "terminal"
    DECODE = "decode"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class ArDriveHTTPException(RuntimeError):
    """Canonical failure raised for any unsuccessful logical request.

    Attributes:
        retry_attempts: Retries approved by the retry policy before giving up.
        cause: Underlying error object (or cancellation reason).
        status_code: HTTP status of the final response, if any.
        status_message: HTTP reason phrase of the final response, if any.
        data: Partial body delivered with the failing response, if any.
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        *,
        retry_attempts: int,
        cause: Any,
        status_code: Optional[int] = None,
        status_message: Optional[str] = None,
        data: Any = None,
    ) -> None:
        super().__init__(cause)
        self.retry_attempts = retry_attempts
        self.cause = cause
        self.status_code = status_code
        self.status_message = status_message
        self.data = data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArDriveHTTPException):
            return NotImplemented
        return self.retry_attempts == other.retry_attempts

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.retry_attempts))

    def __str__(self) -> str:
        return (
            f"{type(self).__name__}: {self.retry_attempts}, "
            f"{self.status_code}, {self.status_message}, {self.cause}"
        )


class RetryExhaustedError(ArDriveHTTPException):
    """A transient failure persisted after the configured retry budget."""

    kind = ErrorKind.RETRY_EXHAUSTED


class TerminalResponseError(ArDriveHTTPException):
    """The server answered with a status outside the retryable set."""

    kind = ErrorKind.TERMINAL


class ResponseDecodeError(ArDriveHTTPException):
    """The body could not be decoded into the declared response type."""

    kind = ErrorKind.DECODE


class RequestCancelledError(ArDriveHTTPException):
    """The caller cancelled the request; ``cause`` holds the supplied reason."""

    kind = ErrorKind.CANCELLED


class UnexpectedError(ArDriveHTTPException):
    """A non-HTTP fault (invalid URL, worker crash, programming error)."""

    kind = ErrorKind.UNEXPECTED


class ConfigurationError(ValueError):
    """Raised when client settings fail validation."""
