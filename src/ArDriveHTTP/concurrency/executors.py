"""Executor factory used by the async offload pool and the isolated channel."""

from __future__ import annotations

from concurrent import futures
from multiprocessing import get_context

Executor = futures.Executor


def create_executor(policy: str, workers: int) -> Executor:
    """
    Return an executor configured for the given policy.

    Args:
        policy: Execution policy; ``"isolated"`` selects a spawn-context
            process pool whose workers share no memory with the caller,
            anything else defaults to a thread pool for IO-bound offloading.
        workers: Desired concurrency level (at least one worker is created).

    Returns:
        The executor. Callers own it and must shut it down.
    """
    normalized = (policy or "io").lower()
    workers = max(1, int(workers))
    if normalized == "isolated":
        mp_ctx = get_context("spawn")
        return futures.ProcessPoolExecutor(max_workers=workers, mp_context=mp_ctx)
    return futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ardrive-http")
