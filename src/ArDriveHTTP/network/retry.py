"""Retry decision engine and the Tenacity controller built on it.

``decide`` is the single source of truth for retry behaviour: an attempt is
retried only when it failed with a status in
:data:`~ArDriveHTTP.network.policy.RETRY_STATUS_CODES` or failed without any
status at all (connection reset, DNS failure, timeout), and only while the
retry budget lasts. Delays grow geometrically with no jitter:

    delay_ms = base_delay_ms * 1.5 ** attempt

where ``attempt`` is the number of retries already consumed (zero-based).

:func:`create_retry_policy` wires ``decide`` into a :class:`tenacity.Retrying`
controller so the router can drive a sequential loop around the transport.
The isolated worker builds the same controller, so both execution paths
share one policy.

Example:
    >>> from ArDriveHTTP.models import Failure
    >>> decide(Failure(error="boom", status_code=429), attempt=1, max_retries=8, base_delay_ms=200)
    RetryDecision(should_retry=True, delay_ms=300.0)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from tenacity import RetryCallState, Retrying, stop_after_attempt
from tenacity.retry import retry_base
from tenacity.wait import wait_base

from ArDriveHTTP.logging_config import format_retry_message
from ArDriveHTTP.models import AttemptState, Failure, Outcome, RetryDecision
from ArDriveHTTP.network.policy import BACKOFF_FACTOR, RETRY_STATUS_CODES

logger = logging.getLogger(__name__)


# ============================================================================
# Decision Engine
# ============================================================================


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Return True for missing statuses (network faults) and the retryable set."""
    return status_code is None or status_code in RETRY_STATUS_CODES


def is_retryable_outcome(outcome: Outcome) -> bool:
    return isinstance(outcome, Failure) and is_retryable_status(outcome.status_code)


def retry_delay_ms(attempt: int, base_delay_ms: float) -> float:
    """Backoff before the retry that follows ``attempt`` consumed retries."""
    return base_delay_ms * BACKOFF_FACTOR**attempt


def decide(
    outcome: Outcome,
    attempt: int,
    max_retries: int,
    base_delay_ms: float,
) -> RetryDecision:
    """Decide whether to retry after ``outcome``.

    Args:
        outcome: Result of the physical attempt that just finished.
        attempt: Retries already consumed for this logical call.
        max_retries: Retry budget for the call.
        base_delay_ms: Base delay in milliseconds.

    Returns:
        RetryDecision with the delay to wait before the next attempt.
    """
    if attempt < max_retries and is_retryable_outcome(outcome):
        return RetryDecision(should_retry=True, delay_ms=retry_delay_ms(attempt, base_delay_ms))
    return RetryDecision(should_retry=False)


def log_retry(url: str, outcome: Outcome, retry_attempts: int) -> None:
    """Emit the diagnostic line for one approved retry."""
    status_code = getattr(outcome, "status_code", None)
    status_message = getattr(outcome, "status_message", None) or ""
    logger.warning(
        format_retry_message(url, status_code or 0, status_message, retry_attempts),
        extra={
            "url": url,
            "status": status_code,
            "status_message": status_message,
            "retry_attempts": retry_attempts,
        },
    )


# ============================================================================
# Tenacity Controller
# ============================================================================


class _RetryOnTransientOutcome(retry_base):
    """Tenacity retry predicate delegating to :func:`decide`.

    Raised exceptions are never retried; transports report HTTP and network
    failures as :class:`~ArDriveHTTP.models.Failure` values instead.
    """

    def __init__(self, max_retries: int, base_delay_ms: float) -> None:
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms

    def __call__(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or outcome.failed:
            return False
        decision = decide(
            outcome.result(),
            attempt=retry_state.attempt_number - 1,
            max_retries=self._max_retries,
            base_delay_ms=self._base_delay_ms,
        )
        return decision.should_retry


class _WaitGeometricBackoff(wait_base):
    """Wait ``base * 1.5 ** attempt`` milliseconds, expressed in seconds."""

    def __init__(self, base_delay_ms: float) -> None:
        self._base_delay_ms = base_delay_ms

    def __call__(self, retry_state: RetryCallState) -> float:
        return retry_delay_ms(retry_state.attempt_number - 1, self._base_delay_ms) / 1000.0


def create_retry_policy(
    *,
    url: str,
    retries: int,
    base_delay_ms: float,
    attempt_state: AttemptState,
    no_logs: bool = False,
    sleep: Callable[[float], Any] = time.sleep,
) -> Retrying:
    """Create the Tenacity controller for one logical call.

    Args:
        url: Request URL, used for diagnostics.
        retries: Retry budget (must be positive; callers skip the controller
            entirely when no retries are configured).
        base_delay_ms: Base backoff delay in milliseconds.
        attempt_state: Counter incremented once per approved retry.
        no_logs: Suppress the per-retry diagnostic line.
        sleep: Sleep function; cancellation-aware callers pass
            ``CancellationToken.wait``.

    Returns:
        Configured :class:`tenacity.Retrying`; call it with the attempt
        function, e.g. ``policy(adapter.send, spec)``.
    """

    def _before_sleep(retry_state: RetryCallState) -> None:
        attempts = attempt_state.record_retry()
        if not no_logs and retry_state.outcome is not None:
            log_retry(url, retry_state.outcome.result(), attempts)

    return Retrying(
        retry=_RetryOnTransientOutcome(retries, base_delay_ms),
        wait=_WaitGeometricBackoff(base_delay_ms),
        # decide() already bounds the loop; this is the hard ceiling
        stop=stop_after_attempt(retries + 1),
        sleep=sleep,
        before_sleep=_before_sleep,
        reraise=True,
    )


__all__ = [
    "is_retryable_status",
    "is_retryable_outcome",
    "retry_delay_ms",
    "decide",
    "log_retry",
    "create_retry_policy",
]
