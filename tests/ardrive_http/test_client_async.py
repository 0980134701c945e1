"""Tests for the async entry points."""

from __future__ import annotations

import asyncio
import threading
from typing import List

import httpx
import pytest

from ArDriveHTTP import ContentType, ResponseType, RetryExhaustedError
from ArDriveHTTP.models import RequestSpec
from ArDriveHTTP.network.router import can_offload


def test_get_async_runs_off_the_event_loop(mock_http) -> None:
    threads: List[str] = []

    def respond(request: httpx.Request) -> httpx.Response:
        threads.append(threading.current_thread().name)
        return httpx.Response(200, content=b"ok")

    http, _ = mock_http(respond)
    response = asyncio.run(http.get_async("http://example.test/getText"))
    assert response.data == "ok"
    assert threads[0].startswith("ardrive-http")


def test_async_retries_are_counted(mock_http) -> None:
    http, handler = mock_http(lambda request: httpx.Response(503), retries=2)
    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(http.get_async("http://example.test/503"))
    assert excinfo.value.retry_attempts == 2
    assert handler.calls == 3


def test_concurrent_async_calls(mock_http) -> None:
    http, handler = mock_http(lambda request: httpx.Response(200, content=b'{"n": 1}'))

    async def _gather():
        return await asyncio.gather(
            *(http.get_async("http://example.test/j", ResponseType.JSON) for _ in range(6))
        )

    responses = asyncio.run(_gather())
    assert [r.data for r in responses] == [{"n": 1}] * 6
    assert handler.calls == 6


def test_post_async_with_progress_stays_on_caller_thread(mock_http) -> None:
    threads: List[str] = []

    def respond(request: httpx.Request) -> httpx.Response:
        threads.append(threading.current_thread().name)
        return httpx.Response(200, content=request.content)

    http, _ = mock_http(respond)
    caller = threading.current_thread().name
    response = asyncio.run(
        http.post_async(
            "http://example.test/echo",
            b"abc",
            ContentType.BINARY,
            ResponseType.BYTES,
            on_send_progress=lambda sent, total: None,
        )
    )
    assert response.data == b"abc"
    assert threads == [caller]


def test_can_offload() -> None:
    assert can_offload(RequestSpec(method="GET", url="http://x/"))
    assert not can_offload(RequestSpec(method="POST", url="http://x/", body=iter([b"a"])))
    assert not can_offload(
        RequestSpec(method="POST", url="http://x/", body=b"a", on_send_progress=lambda s, t: None)
    )
