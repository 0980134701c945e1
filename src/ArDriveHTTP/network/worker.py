"""Functions executed inside the isolated worker process.

Each function receives only primitives and binary buffers, performs the
whole request including its retry loop (the same Tenacity controller the
in-process path uses), and returns a flat result map:

    {"error", "errorType", "statusCode", "statusMessage", "headers",
     "data", "retryAttempts"}

``data`` is always the raw body; decoding into text/JSON/bytes happens back
in the caller so decode failures are reported the same way on both paths.
The module keeps one HTTPX client per redirect/user-agent configuration in
each worker process.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from ArDriveHTTP.models import AttemptState, Failure, RequestSpec, ResponseType
from ArDriveHTTP.network.policy import HTTP_CONNECT_TIMEOUT, HTTP_RECEIVE_TIMEOUT
from ArDriveHTTP.network.router import run_attempts
from ArDriveHTTP.network.transport import HttpxTransportAdapter, create_http_client
from ArDriveHTTP.settings import build_settings

logger = logging.getLogger(__name__)

_WIRE_TO_RESPONSE_TYPE = {
    "text": ResponseType.PLAIN,
    "json": ResponseType.JSON,
    "bytes": ResponseType.BYTES,
}

_adapters: Dict[Tuple[bool, Optional[str]], HttpxTransportAdapter] = {}
_adapter_lock = threading.Lock()


def _get_adapter(
    follow_redirects: bool = True,
    user_agent: Optional[str] = None,
) -> HttpxTransportAdapter:
    key = (follow_redirects, user_agent)
    with _adapter_lock:
        adapter = _adapters.get(key)
        if adapter is None:
            # Request hooks stay off in the worker; retry diagnostics follow no_logs.
            adapter = HttpxTransportAdapter(
                create_http_client(
                    build_settings(
                        no_logs=True,
                        follow_redirects=follow_redirects,
                        user_agent=user_agent,
                    )
                )
            )
            _adapters[key] = adapter
        return adapter


def _perform(
    spec: RequestSpec,
    retries: int,
    retry_delay_ms: int,
    no_logs: bool,
    follow_redirects: bool = True,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    state = AttemptState()
    try:
        outcome = run_attempts(
            _get_adapter(follow_redirects, user_agent).send,
            spec,
            retries=retries,
            base_delay_ms=retry_delay_ms,
            suppress_logs=no_logs,
            state=state,
        )
    except Exception as exc:
        logger.debug("Worker request failed unexpectedly", extra={"url": spec.url, "error": repr(exc)})
        return {
            "error": repr(exc),
            "errorType": "unexpected",
            "statusCode": None,
            "statusMessage": None,
            "data": None,
            "retryAttempts": state.attempts_used,
        }

    if isinstance(outcome, Failure):
        return {
            "error": str(outcome.error),
            "errorType": "network" if outcome.status_code is None else "http",
            "statusCode": outcome.status_code,
            "statusMessage": outcome.status_message,
            "data": outcome.data,
            "retryAttempts": state.attempts_used,
        }
    return {
        "error": None,
        "statusCode": outcome.status_code,
        "statusMessage": outcome.status_message,
        "headers": dict(outcome.headers),
        "data": outcome.body,
        "retryAttempts": state.attempts_used,
    }


def get(
    url: str,
    response_type: str,
    retries: int,
    retry_delay_ms: int,
    no_logs: bool = False,
    headers: Optional[Dict[str, str]] = None,
    connect_timeout: float = HTTP_CONNECT_TIMEOUT,
    receive_timeout: float = HTTP_RECEIVE_TIMEOUT,
    follow_redirects: bool = True,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    """Perform a GET with retries inside the worker."""
    spec = RequestSpec(
        method="GET",
        url=url,
        headers=headers or {},
        response_type=_WIRE_TO_RESPONSE_TYPE[response_type],
        connect_timeout=connect_timeout,
        receive_timeout=receive_timeout,
    )
    return _perform(spec, retries, retry_delay_ms, no_logs, follow_redirects, user_agent)


def post(
    url: str,
    data: Any,
    content_type: str,
    response_type: str,
    retries: int,
    retry_delay_ms: int,
    no_logs: bool = False,
    headers: Optional[Dict[str, str]] = None,
    connect_timeout: float = HTTP_CONNECT_TIMEOUT,
    receive_timeout: float = HTTP_RECEIVE_TIMEOUT,
    follow_redirects: bool = True,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    """Perform a POST with retries inside the worker."""
    spec = RequestSpec(
        method="POST",
        url=url,
        headers=headers or {},
        body=data,
        content_type=content_type,
        response_type=_WIRE_TO_RESPONSE_TYPE[response_type],
        connect_timeout=connect_timeout,
        receive_timeout=receive_timeout,
    )
    return _perform(spec, retries, retry_delay_ms, no_logs, follow_redirects, user_agent)


__all__ = ["get", "post"]
