# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.network.instrumentation",
#   "purpose": "HTTPX event hooks acting as request/response logging interceptors.",
#   "sections": [
#     {
#       "id": "create-http-event-hooks",
#       "name": "create_http_event_hooks",
#       "anchor": "function-create-http-event-hooks",
#       "kind": "function"
#     },
#     {
#       "id": "redact-url",
#       "name": "redact_url",
#       "anchor": "function-redact-url",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX event hooks acting as request/response logging interceptors.

Logs one DEBUG line when a request is sent and one when its response headers
arrive, with the query string stripped from the URL.
"""

import logging
import time
from typing import Any, Dict, List
from urllib.parse import urlparse, urlunparse

logger = logging.getLogger(__name__)


def create_http_event_hooks() -> Dict[str, List[Any]]:
    """Create HTTPX event hooks for request/response logging.

    Returns:
        Dict with 'request' and 'response' hooks for an HTTPX client

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.Client(event_hooks=hooks)
    """
    request_start_time: Dict[int, float] = {}

    def on_request(request: Any) -> None:
        request_start_time[id(request)] = time.perf_counter()
        logger.debug(
            "http request",
            extra={"method": request.method, "url": redact_url(str(request.url))},
        )

    def on_response(response: Any) -> None:
        start_time = request_start_time.pop(id(response.request), None)
        elapsed_ms = None if start_time is None else (time.perf_counter() - start_time) * 1000
        logger.debug(
            "http response",
            extra={
                "method": response.request.method,
                "url": redact_url(str(response.request.url)),
                "status": response.status_code,
                "elapsed_ms": elapsed_ms,
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


def redact_url(url: str) -> str:
    """Strip query string and fragment, keeping scheme + host + path.

    Examples:
        >>> redact_url("https://example.org/a?token=secret#frag")
        'https://example.org/a'
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "[URL_REDACTION_FAILED]"
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


__all__ = [
    "create_http_event_hooks",
    "redact_url",
]
