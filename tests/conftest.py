from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable

import httpx
import pytest

from core.config import AppSettings
from core.domain.models import Keypair

RPC_URLS = ["https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"]
RELAYER_URL = "https://relayer.test"


def rpc_unknown_account(account_id: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "error": {
            "name": "HANDLER_ERROR",
            "cause": {"name": "UNKNOWN_ACCOUNT", "info": {"requested_account_id": account_id}},
            "code": -32000,
            "message": "Server error",
            "data": f"account {account_id} does not exist while viewing",
        },
    }


def rpc_account(account_id: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "amount": "1000000000000000000000",
            "locked": "0",
            "code_hash": "11111111111111111111111111111111",
            "storage_usage": 182,
            "block_height": 120000000,
        },
    }


@dataclass
class FakeNetwork:
    """RPC endpoints + relayer behind one `httpx.MockTransport` handler."""

    taken: set[str] = field(default_factory=set)
    all_taken: bool = False
    on_chain: set[str] = field(default_factory=set)
    failing_registrations: set[str] = field(default_factory=set)
    failing_rpc_hosts: set[str] = field(default_factory=set)
    settle_on_register: bool = False
    token: str = "tok123"
    requests: list[httpx.Request] = field(default_factory=list)
    registrations: list[str] = field(default_factory=list)
    redemptions: list[tuple[str, str]] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content.decode("utf-8")) if request.content else None

        if request.url.host == "relayer.test":
            if request.url.path == "/api/relayer/account":
                handle = body["id"]
                self.registrations.append(handle)
                if handle in self.failing_registrations:
                    return httpx.Response(500, text="relayer exploded")
                if self.settle_on_register:
                    self.on_chain.add(handle)
                return httpx.Response(201, text=f"  {self.token}\n")
            if request.url.path == "/api/referral/redeem":
                self.redemptions.append((body["redeemedCode"], body["address"]))
                return httpx.Response(201, json={"redeemed": True})
            return httpx.Response(404, text="not found")

        if request.url.host in self.failing_rpc_hosts:
            return httpx.Response(503, text="unavailable")
        account_id = body["params"]["account_id"]
        if self.all_taken or account_id in self.taken or account_id in self.on_chain:
            return httpx.Response(200, json=rpc_account(account_id))
        return httpx.Response(200, json=rpc_unknown_account(account_id))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


class SequenceGenerator:
    """Stands in for `HandleGenerator`, yielding a fixed list of names."""

    def __init__(self, names: Iterable[str]) -> None:
        self._names = iter(names)
        self.calls: list[str] = []

    def generate(self, prefix: str) -> str:
        self.calls.append(prefix)
        return next(self._names)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def fixed_keypair() -> Keypair:
    return Keypair(public_key="ed25519:PUB", secret_key="SECRET")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        rpc_endpoints=list(RPC_URLS),
        relayer_base_url=RELAYER_URL,
        max_handle_attempts=3,
    )


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
