"""ArDriveHTTP: HTTP requests with transparent retries across execution contexts.

Requests run either in-process over HTTPX or inside an isolated worker
process; in both cases transient failures (retryable statuses and
network-level faults) are retried with geometric backoff, and callers see a
single response type and a single exception type.

Example:
    >>> from ArDriveHTTP import ArDriveHTTP, ArDriveHTTPException
    >>> http = ArDriveHTTP(retries=4, retry_delay_ms=0, no_logs=True)
    >>> try:  # doctest: +SKIP
    ...     http.get("http://127.0.0.1:8080/429")
    ... except ArDriveHTTPException as exc:
    ...     exc.retry_attempts
    4
"""

__version__ = "1.0.0"

from ArDriveHTTP.cancellation import CancellationToken
from ArDriveHTTP.client import ArDriveHTTP
from ArDriveHTTP.errors import (
    ArDriveHTTPException,
    ConfigurationError,
    ErrorKind,
    RequestCancelledError,
    ResponseDecodeError,
    RetryExhaustedError,
    TerminalResponseError,
    UnexpectedError,
)
from ArDriveHTTP.models import (
    ArDriveHTTPResponse,
    ContentType,
    RequestSpec,
    ResponseType,
    normalize_response_type,
)
from ArDriveHTTP.network.policy import RETRY_STATUS_CODES
from ArDriveHTTP.settings import ClientSettings

__all__ = [
    "__version__",
    "ArDriveHTTP",
    "ArDriveHTTPResponse",
    "ArDriveHTTPException",
    "RetryExhaustedError",
    "TerminalResponseError",
    "ResponseDecodeError",
    "RequestCancelledError",
    "UnexpectedError",
    "ConfigurationError",
    "ErrorKind",
    "CancellationToken",
    "ClientSettings",
    "ContentType",
    "RequestSpec",
    "ResponseType",
    "RETRY_STATUS_CODES",
    "normalize_response_type",
]
