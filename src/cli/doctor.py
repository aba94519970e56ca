"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings

app = typer.Typer(no_args_is_help=False, help="Environment diagnostics and configuration checks.")

_console = Console()

_STATUS_REQUEST = {"jsonrpc": "2.0", "id": "doctor", "method": "status", "params": []}


async def check_rpc(
    url: str,
    settings: AppSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bool, str]:
    try:
        async with build_async_client(settings, base_url=url, transport=transport) as client:
            response = await client.post("/", json=_STATUS_REQUEST)
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__
    if response.status_code != 200:
        return False, f"HTTP {response.status_code}"
    try:
        chain_id = response.json().get("result", {}).get("chain_id")
    except (ValueError, AttributeError):
        return False, "HTTP 200 (not a JSON-RPC answer)"
    return True, f"HTTP 200 chain_id={chain_id}" if chain_id else "HTTP 200"


async def check_relayer(
    url: str,
    settings: AppSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bool, str]:
    try:
        async with build_async_client(settings, base_url=url, transport=transport) as client:
            response = await client.get("/")
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__
    # Any answer below 500 means the relayer is reachable.
    return response.status_code < 500, f"HTTP {response.status_code}"


async def _run_checks(settings: AppSettings) -> list[tuple[str, bool, str]]:
    rows: list[tuple[str, bool, str]] = []
    for url in settings.rpc_endpoints:
        ok, detail = await check_rpc(url, settings)
        rows.append((f"RPC {url}", ok, detail))
    ok, detail = await check_relayer(settings.relayer_base_url, settings)
    rows.append((f"Relayer {settings.relayer_base_url}", ok, detail))
    return rows


@app.callback(invoke_without_command=True)
def run() -> None:
    """Show effective settings and check connectivity to every endpoint."""

    settings = AppSettings()

    table = Table(title="NEAR Provision Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Default referral", "OK", settings.default_referral or "-")
    table.add_row("Retry policy", "OK", f"{settings.request_attempts} attempt(s), {settings.backoff_base_seconds}s base")
    table.add_row("Handle attempts", "OK", str(settings.max_handle_attempts))

    failures = 0
    for name, ok, detail in asyncio.run(_run_checks(settings)):
        table.add_row(name, "OK" if ok else "FAIL", detail)
        failures += 0 if ok else 1

    _console.print(table)

    if failures == len(settings.rpc_endpoints) + 1:
        _console.print("\n[red]No endpoint is reachable.[/red] Check your network or proxy settings.")
        raise typer.Exit(code=1)
    if failures:
        _console.print(
            "\n[yellow]Note:[/yellow] unreachable RPC endpoints are skipped automatically; "
            "account creation needs the relayer."
        )
