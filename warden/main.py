"""Warden CLI - Main entry point"""

import asyncio
import contextlib
import logging
import os
from typing import List, Optional

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from warden.config import settings
from warden.discovery import discover as discover_instance
from warden.errors import InvalidTargetError, WardenError
from warden.display import banner, console, show_error, show_report, show_runs, show_session
from warden.models import RunState, Session, TestCategory, TestRun, Tier
from warden.orchestrator import TestOrchestrator, resolve_tier
from warden.report import ReportAggregator, write_reports
from warden.session import SessionStore, configure as configure_session

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Typer app
app = typer.Typer(
    name="warden",
    help="Defender for SQL alert validation suite",
    add_completion=False,
)

ALL_TESTS = "all"


def version_callback(value: bool):
    """Show version and exit"""
    if value:
        from warden import __version__
        console.print(f"Warden v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version",
        callback=version_callback,
        is_eager=True
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o",
        help="Output directory (logs, results, wordlists, reports)"
    ),
):
    """Warden - generate traffic that Defender for SQL should alert on"""
    if output:
        settings.output_dir = output


@app.command()
def configure(
    host: Optional[str] = typer.Option(None, "--host", "-H", help="SQL MI hostname (public endpoint)"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="SQL MI port (default 3342)"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="SQL login to target"),
    password: Optional[str] = typer.Option(None, "--password", "-P", help="Password for authenticated tests"),
    auto_discover: bool = typer.Option(False, "--auto-discover", help="Resolve the host with the Azure CLI"),
    resource_group: Optional[str] = typer.Option(None, "--resource-group", "-g", help="Resource group to search"),
):
    """Configure the target and start a new session"""
    try:
        if auto_discover and not host:
            instance = asyncio.run(discover_instance(resource_group))
            console.print(f"[green]Discovered {instance.name}[/green] ({instance.private_fqdn})")
            host = instance.public_fqdn

        session = configure_session(
            host or "",
            port if port is not None else settings.default_port,
            username or settings.default_username,
            password,
        )
        path = SessionStore().save(session)
    except WardenError as e:
        show_error(e)
        raise typer.Exit(1)

    show_session(session)
    console.print(f"[dim]Session saved to {path}[/dim]")


@app.command()
def run(
    test: Optional[str] = typer.Option(None, "--test", "-t", help=f"Category to run ({', '.join(c.value for c in TestCategory)}, all)"),
    tier: str = typer.Option(Tier.STANDARD.value, "--tier", help="quick | standard | comprehensive | stealth | custom"),
    threads: Optional[str] = typer.Option(None, "--threads", help="Override brute force threads"),
    delay: Optional[str] = typer.Option(None, "--delay", help="Override brute force delay (seconds)"),
    wordlist: Optional[str] = typer.Option(None, "--wordlist", "-w", help="Override wordlist size: small | medium | large"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose scanner output"),
    host: Optional[str] = typer.Option(None, "--host", "-H", help="Target host (starts a new session)"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Target port"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Target SQL login"),
    password: Optional[str] = typer.Option(None, "--password", "-P", help="Password for authenticated tests"),
):
    """Run one test category, or all of them"""
    try:
        categories = _parse_tests(test)
        overrides = _parse_overrides(threads, delay, wordlist)
        tier_value = _parse_tier(tier)
        # Validate overrides before any traffic is sent
        resolve_tier(tier_value, overrides)
        session = _resolve_session(host, port, username, password)
    except (WardenError, ValueError) as e:
        show_error(e)
        raise typer.Exit(1)

    banner()
    show_session(session)

    orchestrator = TestOrchestrator(session, verbose=verbose)
    try:
        with _session_log(session):
            runs = asyncio.run(_run_tests(orchestrator, categories, tier_value, overrides))
    except KeyboardInterrupt:
        console.print("\n[yellow]Testing interrupted by user[/yellow]")
        raise typer.Exit(130)
    except WardenError as e:
        show_error(e)
        raise typer.Exit(1)

    show_runs(runs)
    console.print("\n[green]Check Microsoft Defender for Cloud for alerts in 5-15 minutes[/green]")
    console.print("[dim]Generate a summary with: warden report[/dim]")

    if any(r.state == RunState.FAILED for r in runs):
        raise typer.Exit(2)


@app.command()
def report(
    session_id: Optional[str] = typer.Option(None, "--session", "-s", help="Session id (defaults to the current session)"),
):
    """Summarize test results and write Markdown/HTML/JSON reports"""
    try:
        session = SessionStore().load()
    except WardenError as e:
        show_error(e)
        raise typer.Exit(1)

    if session_id and session is not None and session.session_id != session_id:
        session = None

    settings.setup_directories()
    result = ReportAggregator().aggregate(session=session, session_id=session_id)
    show_report(result)

    paths = write_reports(result)
    for kind, path in paths.items():
        console.print(f"[green]{kind.title()} report saved to:[/green] {path}")


@app.command()
def discover(
    resource_group: Optional[str] = typer.Option(None, "--resource-group", "-g", help="Resource group to search"),
):
    """Look up the SQL Managed Instance endpoint with the Azure CLI"""
    try:
        instance = asyncio.run(discover_instance(resource_group))
    except WardenError as e:
        show_error(e)
        raise typer.Exit(1)

    console.print("[green]SQL Managed Instance Details:[/green]")
    console.print(f"   Name: {instance.name}")
    console.print(f"   FQDN: {instance.private_fqdn}")
    console.print(f"   Public FQDN: {instance.public_fqdn}")
    console.print(f"   Subscription: {instance.subscription_id}")
    console.print(f"\n[dim]Configure it with: warden configure --host {instance.public_fqdn}[/dim]")


@app.command()
def menu():
    """Interactive menu"""
    from warden.menu import InteractiveMenu

    try:
        InteractiveMenu().loop()
    except WardenError as e:
        show_error(e)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(130)


def _parse_tests(test: Optional[str]) -> Optional[List[TestCategory]]:
    """None means the full run"""
    valid = ", ".join([c.value for c in TestCategory] + [ALL_TESTS])
    if not test:
        raise InvalidTargetError(f"--test is required. Valid tests: {valid}")
    if test == ALL_TESTS:
        return None
    try:
        return [TestCategory(test)]
    except ValueError:
        raise InvalidTargetError(f"Unknown test '{test}'. Valid tests: {valid}")


def _parse_tier(tier: str) -> Tier:
    try:
        return Tier(tier)
    except ValueError:
        raise InvalidTargetError(f"Unknown tier '{tier}'. Valid tiers: {', '.join(t.value for t in Tier)}")


def _parse_overrides(threads: Optional[str], delay: Optional[str], wordlist: Optional[str]) -> dict:
    """Tier overrides from raw option strings; None leaves the preset value"""
    overrides = {"threads": None, "delay": None, "wordlist": wordlist}
    try:
        if threads is not None:
            overrides["threads"] = int(threads)
        if delay is not None:
            overrides["delay"] = float(delay)
    except ValueError:
        raise InvalidTargetError(f"Invalid override: threads={threads!r}, delay={delay!r}")
    return overrides


def _resolve_session(
    host: Optional[str],
    port: Optional[str],
    username: Optional[str],
    password: Optional[str],
) -> Session:
    """A new session when a host is given, otherwise the stored one"""
    store = SessionStore()

    if host:
        session = configure_session(
            host,
            port if port is not None else settings.default_port,
            username or settings.default_username,
            password,
        )
        store.save(session)
        return session

    session = store.load()
    if session is None:
        raise InvalidTargetError("No target configured. Run 'warden configure --host ...' or pass --host")
    return session


@contextlib.contextmanager
def _session_log(session: Session):
    """Mirror log records into logs/session_<id>.log for the duration of a run"""
    settings.setup_directories()
    path = os.path.join(settings.logs_dir, f"session_{session.session_id}.log")
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    try:
        yield path
    finally:
        root.removeHandler(handler)
        handler.close()


async def _run_tests(
    orchestrator: TestOrchestrator,
    categories: Optional[List[TestCategory]],
    tier: Tier,
    overrides: dict,
) -> List[TestRun]:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console
    ) as progress:
        if categories is None:
            progress.add_task("Running all tests (this takes a while)...", total=None)
            return await orchestrator.run_all(tier, overrides)

        runs = []
        for category in categories:
            task = progress.add_task(f"Running {category.title}...", total=None)
            runs.append(await orchestrator.run(category, tier, overrides))
            progress.update(task, description=f"{category.title}: {runs[-1].state.value}")
        return runs


if __name__ == "__main__":
    app()
