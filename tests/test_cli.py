from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from cli import doctor
from cli import main as cli_main
from core.config import AppSettings
from core.services import provisioning_pipeline

from conftest import RELAYER_URL, RPC_URLS, FakeNetwork, SleepRecorder, fixed_keypair

runner = CliRunner()


@pytest.fixture
def fake_network(monkeypatch: pytest.MonkeyPatch) -> FakeNetwork:
    network = FakeNetwork()
    monkeypatch.setenv("NEAR_PROVISION_RPC_ENDPOINTS", f'["{RPC_URLS[0]}"]')
    monkeypatch.setenv("NEAR_PROVISION_RELAYER_BASE_URL", RELAYER_URL)

    @asynccontextmanager
    async def fake_open_context(settings):
        async with provisioning_pipeline.open_context(
            settings, transport=network.transport, keygen=fixed_keypair, sleep=SleepRecorder()
        ) as ctx:
            yield ctx

    monkeypatch.setattr(cli_main, "open_context", fake_open_context)
    return network


def test_create_single_account(fake_network: FakeNetwork, tmp_path: Path) -> None:
    out = tmp_path / "accounts.json"

    result = runner.invoke(
        cli_main.app, ["create", "--handle", "ylcoolcat42.near", "--ref", "E9418U", "--output", str(out)]
    )

    assert result.exit_code == 0, result.output
    assert "ylcoolcat42.near" in result.output
    assert out.exists()
    assert fake_network.registrations == ["ylcoolcat42.near"]


def test_create_reports_taken_handle(fake_network: FakeNetwork, tmp_path: Path) -> None:
    fake_network.taken.add("ylcoolcat42.near")

    result = runner.invoke(
        cli_main.app, ["create", "--handle", "ylcoolcat42.near", "--output", str(tmp_path / "a.json")]
    )

    assert result.exit_code == 1
    assert "not available" in result.output


def test_create_bulk(fake_network: FakeNetwork, tmp_path: Path) -> None:
    out = tmp_path / "bulk.json"

    result = runner.invoke(cli_main.app, ["create", "--bulk", "2", "--delay", "0", "--output", str(out)])

    assert result.exit_code == 0, result.output
    assert len(fake_network.registrations) == 2
    assert "Successfully created: 2" in result.output


def test_create_rejects_bad_prefix(fake_network: FakeNetwork, tmp_path: Path) -> None:
    result = runner.invoke(cli_main.app, ["create", "--prefix", "bad-prefix", "--output", str(tmp_path / "a.json")])

    assert result.exit_code == 2
    assert fake_network.requests == []


def test_check_rpc_reports_chain_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "result": {"chain_id": "mainnet"}})

    ok, detail = asyncio.run(
        doctor.check_rpc(RPC_URLS[0], AppSettings(_env_file=None), transport=httpx.MockTransport(handler))
    )

    assert ok is True
    assert "chain_id=mainnet" in detail


def test_check_rpc_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    ok, detail = asyncio.run(
        doctor.check_rpc(RPC_URLS[0], AppSettings(_env_file=None), transport=httpx.MockTransport(handler))
    )

    assert ok is False
    assert "refused" in detail


@pytest.mark.parametrize(("status", "expected"), [(404, True), (502, False)])
def test_check_relayer(status: int, expected: bool) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status)

    ok, detail = asyncio.run(
        doctor.check_relayer(RELAYER_URL, AppSettings(_env_file=None), transport=httpx.MockTransport(handler))
    )

    assert ok is expected
    assert detail == f"HTTP {status}"
