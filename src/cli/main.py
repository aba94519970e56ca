"""Typer application: `near-provision create` and `near-provision doctor`.

The CLI only resolves a `RunConfig` (flags or prompts), renders progress and
results, and maps errors to exit codes. All provisioning logic lives in
`core.services.provisioning_pipeline`.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeRemainingColumn

from cli import doctor
from cli.ui_components import (
    build_account_panel,
    build_config_table,
    build_created_table,
    build_failed_table,
    build_summary_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.errors import ProvisioningError
from core.domain.models import AccountRecord, ProvisionedAccount, RunConfig
from core.services.provisioning_pipeline import RunHooks, RunOutcome, open_context, run_many, run_single

app = typer.Typer(
    no_args_is_help=True,
    help="Create NEAR accounts through the relayer and redeem a referral code.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str, *, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _prompt_config(settings: AppSettings) -> dict[str, object]:
    def ask(label: str, default: object, check, message: str, value_type=str):
        while True:
            value = typer.prompt(label, default=default, type=value_type)
            if check(value):
                return value
            _console.print(f"[red]{message}[/red]")

    prefix = ask(
        "Username prefix",
        settings.default_prefix,
        lambda v: len(v) >= 2 and v.isalnum(),
        "Prefix must be at least 2 characters and only contain letters and numbers",
    )
    referral = ask(
        "Referral code",
        settings.default_referral,
        lambda v: len(v) >= 3,
        "Referral code must be at least 3 characters",
    )
    bulk = ask(
        "How many accounts to create",
        5,
        lambda v: 1 <= v <= 100,
        "Please enter a number between 1 and 100",
        int,
    )
    delay = ask(
        "Delay between accounts (ms)",
        settings.default_delay_ms,
        lambda v: v >= 500,
        "Delay must be at least 500ms",
        int,
    )
    output = typer.prompt("Output file name", default=str(settings.default_output_path))

    handle = None
    if bulk == 1 and typer.confirm("Use a custom handle?", default=False):
        suffix = f".{settings.account_domain}"
        handle = ask(
            "Custom handle",
            None,
            lambda v: v.endswith(suffix) and len(v) >= 6,
            f"Handle must end with {suffix} and be at least 6 characters",
        )

    return {
        "handle": handle,
        "prefix": prefix,
        "referral_code": referral,
        "bulk_count": bulk,
        "delay_ms": delay,
        "output_path": Path(output),
    }


def _render_outcome(outcome: RunOutcome, config: RunConfig) -> None:
    for message in outcome.warnings:
        _console.print(f"[yellow]Warning:[/yellow] {message}")

    if config.bulk_count == 1 and outcome.created:
        _console.print(
            build_account_panel(outcome.created[0], output_path=outcome.output_path, persisted=outcome.persisted)
        )
        return

    _console.print(build_summary_panel(outcome, requested=config.bulk_count))
    if outcome.created:
        _console.print(build_created_table(outcome.created))
    if outcome.failed:
        _console.print(build_failed_table(outcome.failed))


async def _run_bulk(settings: AppSettings, config: RunConfig) -> RunOutcome:
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        TextColumn("{task.fields[current]}", style="cyan"),
        console=_console,
    ) as progress:
        task = progress.add_task("Creating accounts", total=config.bulk_count, current="Starting...")

        def finished(index: int, record: AccountRecord) -> None:
            label = record.identifier if isinstance(record, ProvisionedAccount) else f"attempt {index} failed"
            progress.update(task, completed=index, current=label)

        hooks = RunHooks(
            candidate_found=lambda _index, handle: progress.update(task, current=handle),
            attempt_finished=finished,
        )
        async with open_context(settings) as ctx:
            return await run_many(ctx, config, hooks=hooks)


async def _run_one(settings: AppSettings, config: RunConfig) -> RunOutcome:
    hooks = RunHooks(
        candidate_found=lambda _index, handle: _console.print(f"[cyan]Target handle:[/cyan] {handle}"),
    )
    async with open_context(settings) as ctx:
        with _console.status("Creating account..."):
            return await run_single(ctx, config, hooks=hooks)


@app.command()
def create(
    handle: Optional[str] = typer.Option(None, "--handle", help="Explicit account id (single account only)."),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix for generated handles."),
    ref: Optional[str] = typer.Option(None, "--ref", help="Referral code to redeem."),
    bulk: int = typer.Option(1, "--bulk", min=1, help="Number of accounts to create."),
    delay: Optional[int] = typer.Option(None, "--delay", min=0, help="Delay between accounts (ms)."),
    output: Optional[Path] = typer.Option(None, "--output", help="Result document (JSON)."),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Prompt for every setting."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Create one or more accounts and merge the results into the output file."""

    settings = AppSettings()
    configure_logging(settings.log_level, verbose=verbose)
    print_banner(_console)

    if interactive:
        values = _prompt_config(settings)
    else:
        values = {
            "handle": handle,
            "prefix": prefix or settings.default_prefix,
            "referral_code": settings.default_referral if ref is None else ref,
            "bulk_count": bulk,
            "delay_ms": settings.default_delay_ms if delay is None else delay,
            "output_path": output or settings.default_output_path,
        }
    try:
        config = RunConfig.model_validate(values)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    _console.print(build_config_table(config))

    try:
        if config.bulk_count > 1:
            outcome = asyncio.run(_run_bulk(settings, config))
        else:
            outcome = asyncio.run(_run_one(settings, config))
    except ProvisioningError as exc:
        _console.print(f"[red]Error:[/red] {exc}")
        body = getattr(exc, "body", None)
        if body:
            _console.print("[red]Response:[/red]")
            _console.print(body, markup=False)
        raise typer.Exit(code=1) from exc

    _render_outcome(outcome, config)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
