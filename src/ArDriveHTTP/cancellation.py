"""Cooperative cancellation primitives for in-flight requests.

A :class:`CancellationToken` is handed to a request by the caller and fired
from any thread. The transport observes it between body chunks and between
retry attempts, and abort callbacks registered on the token close the live
HTTP response so a blocked read returns promptly. Interruption is never
forced; the request path checks the token and unwinds on its own.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

__all__ = ["CancellationToken", "RequestCancelled"]


class RequestCancelled(Exception):
    """Internal signal raised inside the transport when a token fires."""

    def __init__(self, reason: Any) -> None:
        super().__init__(reason)
        self.reason = reason


class CancellationToken:
    """Thread-safe cancellation token carrying an application-supplied reason.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel("user navigated away")
        >>> token.reason
        'user navigated away'
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Any = None
        self._callbacks: List[Callable[[Any], None]] = []

    def cancel(self, reason: Any = "cancelled") -> None:
        """Fire the token; only the first reason is kept."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._run_callback(callback, reason)

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        return self._reason

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled(self._reason)

    def add_callback(self, callback: Callable[[Any], None]) -> None:
        """Register an abort hook.

        Runs once with the reason when the token fires, or immediately if the
        token has already been cancelled.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
            reason = self._reason
        self._run_callback(callback, reason)

    def remove_callback(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                # Already fired or never registered.
                pass

    @staticmethod
    def _run_callback(callback: Callable[[Any], None], reason: Any) -> None:
        try:
            callback(reason)
        except Exception:  # pragma: no cover - abort hooks are best effort
            logger.debug("Cancellation callback failed", exc_info=True)
