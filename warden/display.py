"""Rich console rendering shared by the CLI and the interactive menu"""

from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from warden.errors import DependencyMissingError, WardenError
from warden.models import Report, ReportStatus, RunState, Session, TestRun

console = Console()

STATE_COLORS = {
    RunState.COMPLETED: "green",
    RunState.TIMED_OUT: "yellow",
    RunState.FAILED: "red",
    RunState.RUNNING: "blue",
    RunState.PENDING: "white",
}

STATUS_COLORS = {
    ReportStatus.COMPLETED: "green",
    ReportStatus.COMPLETED_TIMED_OUT: "yellow",
    ReportStatus.NOT_COMPLETED: "red",
    ReportStatus.NOT_RUN: "dim",
}

INSTALL_HINTS = {
    "nmap": "Ubuntu/Debian: sudo apt-get install nmap | macOS: brew install nmap",
    "sqlcmd": "Install mssql-tools (Microsoft SQL Server command line tools)",
    "az": "Install the Azure CLI: https://learn.microsoft.com/cli/azure/install-azure-cli",
}


def banner():
    console.print(Panel.fit(
        "[bold cyan]Warden[/bold cyan] - Defender for SQL alert validation\n"
        "[dim]Only run against SQL Managed Instances you own or are authorized to test[/dim]",
        border_style="cyan"
    ))


def show_error(error: Exception):
    console.print(f"[red]Error: {error}[/red]")
    if isinstance(error, DependencyMissingError):
        for tool in error.tools:
            hint = INSTALL_HINTS.get(tool.split(":")[0])
            if hint:
                console.print(f"[yellow]{tool}: {hint}[/yellow]")
    elif not isinstance(error, WardenError):
        console.print("[yellow]Run with --help for usage[/yellow]")


def show_session(session: Session):
    target = session.target
    console.print(Panel(
        f"[bold]Session:[/bold] {session.session_id}\n"
        f"[bold]Target:[/bold] {target.address}\n"
        f"[bold]Username:[/bold] {target.username}\n"
        f"[bold]Password:[/bold] {'configured' if target.has_credentials else '[yellow]not set - authenticated probes will be skipped[/yellow]'}",
        title="Target",
        border_style="cyan"
    ))


def show_runs(runs: List[TestRun]):
    """Display finished runs in a table"""
    if not runs:
        console.print("[yellow]No tests were run[/yellow]")
        return

    table = Table(title=f"Test Runs ({len(runs)})")
    table.add_column("Category", style="cyan")
    table.add_column("Tier", style="magenta")
    table.add_column("Outcome")
    table.add_column("Probes", justify="right")
    table.add_column("Artifact", style="blue")

    for run in runs:
        color = STATE_COLORS.get(run.state, "white")
        table.add_row(
            run.category.title,
            run.tier.value,
            f"[{color}]{run.state.value.upper()}[/{color}]",
            str(len(run.steps)),
            run.artifact or "-",
        )

    console.print(table)

    for run in runs:
        if run.error:
            console.print(f"[red]{run.category.title}: {run.error}[/red]")
        for found in run.credentials_found:
            console.print(f"[bold red]SECURITY ALERT - {run.category.title}: {found}[/bold red]")


def show_report(report: Report):
    table = Table(title=f"Test Results Summary - {report.session_id or 'all sessions'}")
    table.add_column("Test Category", style="cyan")
    table.add_column("Status")
    table.add_column("Expected Alerts", style="magenta")

    for entry in report.entries:
        color = STATUS_COLORS[entry.status]
        table.add_row(
            entry.category.title,
            f"[{color}]{entry.status.value}[/{color}]",
            ", ".join(entry.expected_alerts) if entry.status != ReportStatus.NOT_RUN else "-",
        )

    console.print(table)
    console.print(f"[bold]Completion Rate:[/bold] {report.completed}/{report.total} tests completed")
