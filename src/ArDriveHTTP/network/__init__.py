"""Network subsystem: transports, retry policy, and execution routing.

This package provides the request path behind :class:`ArDriveHTTP.ArDriveHTTP`:
- HTTPX: in-process HTTP round trips (``transport``)
- Tenacity: retry loop driven by the pure decision engine (``retry``)
- concurrent.futures: isolated worker processes (``isolated`` / ``worker``)

Modules:
- policy: retryable status set, backoff factor, timeout budgets
- retry: ``decide`` plus the Tenacity controller built on it
- instrumentation: HTTPX event hooks for request/response logging
- transport: HTTPX client factory and ``HttpxTransportAdapter``
- isolated: ``IsolatedWorkerChannel`` and the worker-process pool
- worker: functions executed inside the isolated worker
- router: ``ExecutionRouter`` with ``LocalTransport``/``IsolatedTransport``

Submodules are imported directly (``from ArDriveHTTP.network.retry import
decide``) so that the data models can depend on ``policy`` without import
cycles.
"""
