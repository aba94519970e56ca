from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.dispatcher import ResilientDispatcher, is_accepted_status
from adapters.http_client import EndpointPool, HttpSession
from core.domain.errors import AllEndpointsExhausted
from core.interfaces.dispatcher import RequestSpec

from conftest import RPC_URLS, SleepRecorder


def _dispatch(handler, *, attempts=2, session=None, builder=None, sleeper=None):
    sleeper = sleeper or SleepRecorder()
    builder = builder or (lambda: RequestSpec(method="POST", path="/", json={"ping": True}))

    async def go():
        pool = EndpointPool.from_urls(
            RPC_URLS,
            session=session or HttpSession(),
            transport=httpx.MockTransport(handler),
        )
        async with pool:
            dispatcher = ResilientDispatcher(pool, attempts=attempts, backoff_base_seconds=0.5, sleep=sleeper)
            return await dispatcher.dispatch(builder)

    return asyncio.run(go())


def test_accepted_status_range() -> None:
    assert is_accepted_status(200)
    assert is_accepted_status(404)
    assert is_accepted_status(499)
    assert not is_accepted_status(500)
    assert not is_accepted_status(503)
    assert not is_accepted_status(199)


def test_falls_back_until_last_endpoint_succeeds() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "rpc-c.test":
            return httpx.Response(200, json={"result": "ok"})
        return httpx.Response(503, text="busy")

    sleeper = SleepRecorder()
    response = _dispatch(handler, sleeper=sleeper)

    assert response.json() == {"result": "ok"}
    assert seen == ["rpc-a.test", "rpc-a.test", "rpc-b.test", "rpc-b.test", "rpc-c.test"]
    assert sleeper.delays == [0.5, 0.5]


def test_client_error_is_authoritative() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(404, json={"error": {"message": "account does not exist"}})

    response = _dispatch(handler)

    assert response.status_code == 404
    assert seen == ["rpc-a.test"]


def test_transport_errors_trigger_retry_then_fallback() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "rpc-a.test":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"result": {}})

    response = _dispatch(handler)

    assert response.status_code == 200
    assert seen == ["rpc-a.test", "rpc-a.test", "rpc-b.test"]


def test_retry_on_same_endpoint_recovers() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"result": {}})

    sleeper = SleepRecorder()
    response = _dispatch(handler, sleeper=sleeper)

    assert response.status_code == 200
    assert calls["n"] == 2
    assert sleeper.delays == [0.5]


def test_all_endpoints_exhausted_carries_last_error() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(502, text=f"bad gateway from {request.url.host}")

    sleeper = SleepRecorder()
    with pytest.raises(AllEndpointsExhausted) as excinfo:
        _dispatch(handler, attempts=3, sleeper=sleeper)

    err = excinfo.value
    assert len(seen) == 9
    assert err.endpoints == tuple(RPC_URLS)
    assert err.last_error.status_code == 502
    assert err.last_error.endpoint == "https://rpc-c.test"
    assert err.body == "bad gateway from rpc-c.test"
    # exponential backoff per endpoint: 0.5s then 1.0s
    assert sleeper.delays == [0.5, 1.0] * 3


def test_request_is_rebuilt_for_every_attempt() -> None:
    ids: list[int] = []
    counter = {"n": 0}

    def builder() -> RequestSpec:
        counter["n"] += 1
        return RequestSpec(method="POST", path="/", json={"id": counter["n"]})

    def handler(request: httpx.Request) -> httpx.Response:
        ids.append(json.loads(request.content)["id"])
        if len(ids) < 3:
            return httpx.Response(500)
        return httpx.Response(200, json={})

    _dispatch(handler, builder=builder)

    assert ids == [1, 2, 3]


def test_cookie_jar_is_shared_across_calls() -> None:
    session = HttpSession()
    cookies_sent: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        cookies_sent.append(request.headers.get("cookie"))
        return httpx.Response(200, json={}, headers={"set-cookie": "sid=abc; Path=/"})

    _dispatch(handler, session=session)
    _dispatch(handler, session=session)

    assert cookies_sent == [None, "sid=abc"]
    assert [c.name for c in session.cookies] == ["sid"]


def test_attempts_must_be_positive() -> None:
    pool = EndpointPool.from_urls(RPC_URLS)
    with pytest.raises(ValueError):
        ResilientDispatcher(pool, attempts=0)
    asyncio.run(pool.aclose())
