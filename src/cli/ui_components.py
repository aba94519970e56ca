"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets single and bulk runs reuse the same tables/panels.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import AccountStatus, FailedAttempt, ProvisionedAccount, RunConfig
from core.services.provisioning_pipeline import RunOutcome


def print_banner(console: Console) -> None:
    title = Text("NEAR PROVISION", style="bold cyan")
    subtitle = Text("Account creator • Referral redeemer", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_config_table(config: RunConfig) -> Table:
    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Prefix", config.prefix)
    table.add_row("Referral", config.referral_code or "-")
    table.add_row("Bulk count", str(config.bulk_count))
    table.add_row("Delay", f"{config.delay_ms}ms")
    table.add_row("Output", str(config.output_path))
    table.add_row("Custom handle", config.handle or "Auto-generate")
    return table


def status_text(account: ProvisionedAccount) -> Text:
    if account.status is AccountStatus.VERIFIED:
        return Text("VERIFIED", style="green")
    return Text("PENDING", style="yellow")


def build_created_table(accounts: list[ProvisionedAccount]) -> Table:
    table = Table(title="Created accounts")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Account", style="cyan")
    table.add_column("Status")
    table.add_column("Referral", style="magenta")
    for position, account in enumerate(accounts, start=1):
        table.add_row(str(position), account.identifier, status_text(account), account.referral_code or "-")
    return table


def build_failed_table(failures: list[FailedAttempt]) -> Table:
    table = Table(title="Failed attempts")
    table.add_column("Attempt", style="dim", no_wrap=True)
    table.add_column("Error", style="red")
    for failure in failures:
        table.add_row(str(failure.index), failure.error)
    return table


def build_summary_panel(outcome: RunOutcome, *, requested: int) -> Panel:
    created = len(outcome.created)
    failed = len(outcome.failed)
    body = Text()
    body.append("Total requested: ")
    body.append(f"{requested}\n", style="cyan")
    body.append("Successfully created: ")
    body.append(f"{created}\n", style="green")
    body.append("Failed: ")
    body.append(f"{failed}\n", style="red")
    body.append("Output file: ")
    if outcome.persisted:
        body.append(outcome.output_path, style="cyan")
    else:
        body.append(f"{outcome.output_path} (not saved)", style="red")
    return Panel(body, title="Run summary", border_style="green" if failed == 0 else "yellow")


def build_account_panel(account: ProvisionedAccount, *, output_path: str, persisted: bool = True) -> Panel:
    body = Text()
    body.append("Account: ")
    body.append(f"{account.identifier}\n", style="cyan")
    body.append("Status: ")
    body.append_text(status_text(account))
    body.append("\nReferral: ")
    body.append(f"{account.referral_code or '-'}\n", style="cyan")
    body.append("Output: ")
    if persisted:
        body.append(output_path, style="cyan")
    else:
        body.append(f"{output_path} (not saved)", style="red")
    return Panel(
        body,
        title="Account created",
        border_style="green" if account.verified else "yellow",
    )
