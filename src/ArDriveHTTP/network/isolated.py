# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.network.isolated",
#   "purpose": "Isolated worker-process channel and its by-value boundary codec.",
#   "sections": [
#     {
#       "id": "isolation-supported",
#       "name": "isolation_supported",
#       "anchor": "function-isolation-supported",
#       "kind": "function"
#     },
#     {
#       "id": "get-worker-pool",
#       "name": "get_worker_pool",
#       "anchor": "function-get-worker-pool",
#       "kind": "function"
#     },
#     {
#       "id": "to-transferable",
#       "name": "to_transferable",
#       "anchor": "function-to-transferable",
#       "kind": "function"
#     },
#     {
#       "id": "isolatedworkerchannel",
#       "name": "IsolatedWorkerChannel",
#       "anchor": "class-isolatedworkerchannel",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Isolated worker-process channel.

Requests served through this channel run inside a spawn-context worker
process that shares no memory with the caller. Everything crossing the
boundary is converted to flat maps/lists of primitives and ``bytearray``
buffers by :func:`to_transferable` before it is handed to the pool, and
binary buffers are turned back into ``bytes`` by :func:`from_transferable` on
the way out. Callbacks, open streams, and cancellation tokens are rejected at
the boundary, which is why the router never sends such requests here.

Key design:
- **Lazy pool**: the process pool is created on first use, not at import.
- **PID-aware**: a forked child discards the inherited pool and builds its own.
- **Loader cache**: ``import_scripts`` verifies the worker module once per
  process and remembers the answer, success or failure.

Example:
    >>> channel = IsolatedWorkerChannel()
    >>> if channel.import_scripts():
    ...     result = channel.run("get", ["https://example.org", "text", 8, 200, True, {}])
"""

from __future__ import annotations

import importlib
import logging
import os
import sys
import threading
from concurrent.futures import Executor
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from ArDriveHTTP.concurrency import create_executor

logger = logging.getLogger(__name__)

#: Module whose functions the worker executes (``get`` / ``post``)
WORKER_MODULE = "ArDriveHTTP.network.worker"

#: Size of the shared worker-process pool
WORKER_POOL_SIZE = 2

_PRIMITIVES = (str, int, float, bool, type(None))


# ============================================================================
# Boundary Codec
# ============================================================================


def to_transferable(value: Any) -> Any:
    """Copy ``value`` into a form that may cross the isolation boundary.

    ``bytes``/``memoryview`` become ``bytearray``; mappings and sequences are
    copied recursively; primitives pass through.

    Raises:
        TypeError: For anything else (callables, iterators, tokens, objects).

    Examples:
        >>> to_transferable({"data": b"ok", "n": 1})
        {'data': bytearray(b'ok'), 'n': 1}
    """
    if isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytearray(value)
    if isinstance(value, dict):
        return {str(key): to_transferable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_transferable(item) for item in value]
    raise TypeError(f"{type(value).__name__} cannot cross the isolation boundary")


def from_transferable(value: Any) -> Any:
    """Re-materialize binary buffers received from the worker as ``bytes``."""
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, dict):
        return {key: from_transferable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_transferable(item) for item in value]
    return value


# ============================================================================
# Worker Pool
# ============================================================================

_pool: Optional[Executor] = None
_pool_pid: Optional[int] = None
_pool_lock = threading.Lock()

_loaded: Dict[Tuple[str, ...], bool] = {}
_loaded_lock = threading.Lock()


def isolation_supported() -> bool:
    """Whether this interpreter can spawn isolated worker processes."""
    if sys.platform in {"emscripten", "wasi"}:
        return False
    try:
        import multiprocessing.synchronize  # noqa: F401  (needs sem_open)
    except ImportError:
        return False
    return True


def get_worker_pool() -> Executor:
    """Get or create the shared worker-process pool."""
    global _pool, _pool_pid

    if _pool is not None and _pool_pid == os.getpid():
        return _pool

    with _pool_lock:
        if _pool is not None and _pool_pid == os.getpid():
            return _pool
        if _pool is not None:
            logger.debug("Process forked; discarding inherited worker pool.")
            with _loaded_lock:
                _loaded.clear()
        _pool = create_executor("isolated", WORKER_POOL_SIZE)
        _pool_pid = os.getpid()
        logger.debug("Worker pool created", extra={"workers": WORKER_POOL_SIZE, "pid": _pool_pid})
        return _pool


def close_worker_pool() -> None:
    """Shut the worker pool down; safe to call when none exists."""
    global _pool, _pool_pid

    with _pool_lock:
        if _pool is not None and _pool_pid == os.getpid():
            _pool.shutdown(wait=True, cancel_futures=True)
            logger.debug("Worker pool closed")
        _pool = None
        _pool_pid = None


def reset_worker_pool() -> None:
    """Close the pool and forget loader results (primarily for tests)."""
    close_worker_pool()
    with _loaded_lock:
        _loaded.clear()


# ============================================================================
# Worker-side entry points
# ============================================================================


def _load_modules(modules: Sequence[str]) -> bool:
    for name in modules:
        importlib.import_module(name)
    return True


def _dispatch(module: str, function_name: str, args: list) -> Dict[str, Any]:
    function = getattr(importlib.import_module(module), function_name)
    return to_transferable(function(*args))


# ============================================================================
# Channel
# ============================================================================


class IsolatedWorkerChannel:
    """Run worker functions by name with by-value arguments and results.

    Args:
        executor: Executor to run on; defaults to the shared process pool.
        module: Module exposing the worker functions.
        timeout: Optional ceiling in seconds for one ``run`` call.
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        *,
        module: str = WORKER_MODULE,
        timeout: Optional[float] = None,
    ) -> None:
        self._executor = executor
        self._module = module
        self._timeout = timeout

    def _pool(self) -> Executor:
        return self._executor if self._executor is not None else get_worker_pool()

    def import_scripts(self, modules: Optional[Iterable[str]] = None) -> bool:
        """Load ``modules`` in the worker once per process; return success.

        The answer is cached, so repeated calls never spawn work again.
        """
        key = tuple(modules) if modules is not None else (self._module,)
        with _loaded_lock:
            if key in _loaded:
                return _loaded[key]

        try:
            loaded = bool(self._pool().submit(_load_modules, list(key)).result(self._timeout))
        except Exception as exc:
            logger.warning(
                "Isolated worker unavailable; requests will run in-process",
                extra={"modules": list(key), "error": repr(exc)},
            )
            loaded = False

        with _loaded_lock:
            _loaded.setdefault(key, loaded)
            return _loaded[key]

    def run(self, function_name: str, args: Sequence[Any]) -> Dict[str, Any]:
        """Execute ``function_name(*args)`` in the worker and return its result map.

        Raises:
            TypeError: If an argument cannot cross the boundary.
            concurrent.futures.TimeoutError: If ``timeout`` elapses.
            BrokenProcessPool: If the worker process died.
        """
        payload = to_transferable(list(args))
        future = self._pool().submit(_dispatch, self._module, function_name, payload)
        return future.result(self._timeout)


__all__ = [
    "WORKER_MODULE",
    "to_transferable",
    "from_transferable",
    "isolation_supported",
    "get_worker_pool",
    "close_worker_pool",
    "reset_worker_pool",
    "IsolatedWorkerChannel",
]
