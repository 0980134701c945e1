# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.network.router",
#   "purpose": "Choose the execution context per request and own the local retry loop.",
#   "sections": [
#     {"id": "run-attempts", "name": "run_attempts", "anchor": "function-run-attempts", "kind": "function"},
#     {"id": "can-isolate", "name": "can_isolate", "anchor": "function-can-isolate", "kind": "function"},
#     {"id": "localtransport", "name": "LocalTransport", "anchor": "class-localtransport", "kind": "class"},
#     {"id": "isolatedtransport", "name": "IsolatedTransport", "anchor": "class-isolatedtransport", "kind": "class"},
#     {"id": "executionrouter", "name": "ExecutionRouter", "anchor": "class-executionrouter", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Execution routing.

Two :class:`Transport` variants serve a request:

- :class:`LocalTransport` runs in the calling thread; the router's retry loop
  (:func:`run_attempts`) wraps :class:`~ArDriveHTTP.network.transport.HttpxTransportAdapter`.
- :class:`IsolatedTransport` hands the whole request, retry loop included, to
  the :class:`~ArDriveHTTP.network.isolated.IsolatedWorkerChannel` and only
  normalizes what comes back.

:func:`can_isolate` is the single predicate choosing between them. A request
may cross the isolation boundary only when the environment supports it, the
worker module has loaded, and nothing in the request is tied to the calling
process: no streamed upload body, no progress callback, no streamed
response, no cancellation token.

Retry bookkeeping (:class:`~ArDriveHTTP.models.AttemptState`) is created per
call inside :meth:`LocalTransport.execute`; the router and client hold only
immutable configuration and can serve concurrent calls.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Tuple

import tenacity

from ArDriveHTTP import normalize
from ArDriveHTTP.cancellation import RequestCancelled
from ArDriveHTTP.models import (
    ArDriveHTTPResponse,
    AttemptState,
    BodyKind,
    Failure,
    Outcome,
    RequestSpec,
    normalize_response_type,
)
from ArDriveHTTP.network.isolated import IsolatedWorkerChannel
from ArDriveHTTP.network.retry import create_retry_policy
from ArDriveHTTP.network.transport import HttpxTransportAdapter

logger = logging.getLogger(__name__)

#: Methods the worker exposes
ISOLATED_METHODS = frozenset({"GET", "POST"})


class Transport(Protocol):
    def execute(
        self,
        spec: RequestSpec,
        *,
        retries: int,
        base_delay_ms: float,
        suppress_logs: bool,
    ) -> ArDriveHTTPResponse: ...


# ============================================================================
# Retry loop
# ============================================================================


def run_attempts(
    send: Callable[[RequestSpec], Outcome],
    spec: RequestSpec,
    *,
    retries: int,
    base_delay_ms: float,
    suppress_logs: bool,
    state: AttemptState,
) -> Outcome:
    """Invoke ``send`` until the retry engine stops approving retries.

    With ``retries <= 0``, or a one-shot streamed body that cannot be
    replayed, exactly one attempt is made and the engine is not consulted.
    Backoff sleeps wait on the cancellation token, so firing it ends the
    loop without another attempt.

    Raises:
        RequestCancelled: When the request's token fires.
    """
    token = spec.cancel_token

    def _attempt(request: RequestSpec) -> Outcome:
        outcome = send(request)
        if token is not None:
            token.raise_if_cancelled()
        return outcome

    if retries <= 0 or not spec.replayable:
        if retries > 0:
            logger.debug("Streamed request body is single-use; retries disabled", extra={"url": spec.url})
        return _attempt(spec)

    policy = create_retry_policy(
        url=spec.url,
        retries=retries,
        base_delay_ms=base_delay_ms,
        attempt_state=state,
        no_logs=suppress_logs,
        sleep=token.wait if token is not None else time.sleep,
    )
    try:
        return policy(_attempt, spec)
    except tenacity.RetryError as exc:
        return exc.last_attempt.result()


# ============================================================================
# Capability predicate
# ============================================================================


@dataclass(frozen=True)
class ExecutionEnvironment:
    """What the current process can do; ``worker_loaded`` is called lazily."""

    isolation_supported: bool
    worker_loaded: Callable[[], bool]


def request_can_cross_boundary(spec: RequestSpec) -> bool:
    """Whether everything ``spec`` carries survives a by-value copy."""
    return (
        spec.method in ISOLATED_METHODS
        and spec.body_kind is not BodyKind.STREAM
        and spec.on_send_progress is None
        and not spec.is_streaming
        and spec.cancel_token is None
    )


def can_isolate(spec: RequestSpec, environment: ExecutionEnvironment) -> bool:
    return (
        environment.isolation_supported
        and request_can_cross_boundary(spec)
        and environment.worker_loaded()
    )


def can_offload(spec: RequestSpec) -> bool:
    """Whether the local path may run on a worker thread for async callers."""
    return spec.body_kind is not BodyKind.STREAM and spec.on_send_progress is None


# ============================================================================
# Transports
# ============================================================================


class LocalTransport:
    """Serve requests in-process with the router-owned retry loop."""

    def __init__(self, adapter: HttpxTransportAdapter) -> None:
        self._adapter = adapter

    @property
    def adapter(self) -> HttpxTransportAdapter:
        return self._adapter

    def execute(
        self,
        spec: RequestSpec,
        *,
        retries: int,
        base_delay_ms: float,
        suppress_logs: bool,
    ) -> ArDriveHTTPResponse:
        state = AttemptState()
        try:
            outcome = run_attempts(
                self._adapter.send,
                spec,
                retries=retries,
                base_delay_ms=base_delay_ms,
                suppress_logs=suppress_logs,
                state=state,
            )
        except RequestCancelled as exc:
            raise normalize.cancelled(exc.reason, retry_attempts=state.attempts_used) from None
        except Exception as exc:
            raise normalize.unexpected(exc, retry_attempts=state.attempts_used) from exc

        if isinstance(outcome, Failure):
            raise normalize.to_exception(
                outcome,
                url=spec.url,
                retry_attempts=state.attempts_used,
                no_logs=suppress_logs,
            )
        return normalize.to_response(
            outcome,
            response_type=spec.response_type,
            retry_attempts=state.attempts_used,
            url=spec.url,
            no_logs=suppress_logs,
        )


class IsolatedTransport:
    """Serve requests through the isolated worker channel.

    ``follow_redirects`` and ``user_agent`` configure the worker's HTTPX
    client so both paths send the same requests.
    """

    def __init__(
        self,
        channel: IsolatedWorkerChannel,
        *,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
    ) -> None:
        self._channel = channel
        self._follow_redirects = follow_redirects
        self._user_agent = user_agent

    @property
    def channel(self) -> IsolatedWorkerChannel:
        return self._channel

    def worker_loaded(self) -> bool:
        return self._channel.import_scripts()

    def execute(
        self,
        spec: RequestSpec,
        *,
        retries: int,
        base_delay_ms: float,
        suppress_logs: bool,
    ) -> ArDriveHTTPResponse:
        function_name, args = channel_call(
            spec,
            retries=retries,
            base_delay_ms=base_delay_ms,
            suppress_logs=suppress_logs,
            follow_redirects=self._follow_redirects,
            user_agent=self._user_agent,
        )
        try:
            result = self._channel.run(function_name, args)
        except Exception as exc:
            raise normalize.unexpected(exc, retry_attempts=0) from exc
        return normalize.from_channel_result(
            result,
            url=spec.url,
            response_type=spec.response_type,
            retries=retries,
            no_logs=suppress_logs,
        )


def channel_call(
    spec: RequestSpec,
    *,
    retries: int,
    base_delay_ms: float,
    suppress_logs: bool,
    follow_redirects: bool = True,
    user_agent: Optional[str] = None,
) -> Tuple[str, List[Any]]:
    """Flatten ``spec`` into the worker function name and positional args.

    The trailing arguments are identical for both functions: headers,
    per-attempt timeouts, then the worker client's redirect and user-agent
    configuration.
    """
    wire_type = normalize_response_type(spec.response_type)
    headers = {key: value for key, value in spec.headers.items() if key != "content-type"}
    delay = int(base_delay_ms)
    tail = [
        suppress_logs,
        headers,
        spec.connect_timeout,
        spec.receive_timeout,
        follow_redirects,
        user_agent,
    ]
    if spec.method == "GET":
        return "get", [spec.url, wire_type, retries, delay, *tail]
    return "post", [
        spec.url,
        spec.body,
        spec.headers.get("content-type", ""),
        wire_type,
        retries,
        delay,
        *tail,
    ]


# ============================================================================
# Router
# ============================================================================


class ExecutionRouter:
    """Pick a transport per request and run it.

    Args:
        local: In-process transport (always available).
        isolated: Worker-process transport, if configured.
        isolation_supported: Whether the environment allows the isolated path.
        offload_executor: Thread pool used by :meth:`execute_async`.
    """

    def __init__(
        self,
        local: LocalTransport,
        isolated: Optional[IsolatedTransport] = None,
        *,
        isolation_supported: bool = False,
        offload_executor: Optional[Executor] = None,
    ) -> None:
        self._local = local
        self._isolated = isolated
        self._environment = ExecutionEnvironment(
            isolation_supported=isolation_supported and isolated is not None,
            worker_loaded=isolated.worker_loaded if isolated is not None else (lambda: False),
        )
        self._offload_executor = offload_executor

    @property
    def environment(self) -> ExecutionEnvironment:
        return self._environment

    def select_transport(self, spec: RequestSpec) -> Transport:
        if self._isolated is not None and can_isolate(spec, self._environment):
            return self._isolated
        return self._local

    def execute(
        self,
        spec: RequestSpec,
        retries: int,
        base_delay_ms: float,
        suppress_logs: bool,
    ) -> ArDriveHTTPResponse:
        """Run ``spec`` to completion on the selected transport.

        Raises:
            ArDriveHTTPException: For every kind of failure.
        """
        try:
            transport = self.select_transport(spec)
        except Exception as exc:
            raise normalize.unexpected(exc, retry_attempts=0) from exc
        logger.debug(
            "Dispatching request",
            extra={
                "method": spec.method,
                "url": spec.url,
                "transport": type(transport).__name__,
            },
        )
        return transport.execute(
            spec,
            retries=retries,
            base_delay_ms=base_delay_ms,
            suppress_logs=suppress_logs,
        )

    async def execute_async(
        self,
        spec: RequestSpec,
        retries: int,
        base_delay_ms: float,
        suppress_logs: bool,
    ) -> ArDriveHTTPResponse:
        """Like :meth:`execute`, keeping blocking I/O off the event loop when allowed."""
        call = functools.partial(self.execute, spec, retries, base_delay_ms, suppress_logs)
        if self._offload_executor is None or not can_offload(spec):
            return call()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._offload_executor, call)


__all__ = [
    "Transport",
    "run_attempts",
    "ExecutionEnvironment",
    "request_can_cross_boundary",
    "can_isolate",
    "can_offload",
    "LocalTransport",
    "IsolatedTransport",
    "channel_call",
    "ExecutionRouter",
]
