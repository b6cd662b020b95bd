"""Interactive menu for Warden"""

import asyncio
import glob
import logging
import os
from typing import Optional

from rich.prompt import Confirm, Prompt
from rich.table import Table

from warden.config import Settings, settings
from warden.display import banner, console, show_error, show_report, show_runs, show_session
from warden.errors import WardenError
from warden.models import Session, TestCategory, Tier
from warden.orchestrator import TestOrchestrator
from warden.report import ReportAggregator, write_reports
from warden.session import SessionStore, configure

logger = logging.getLogger(__name__)


class InteractiveMenu:
    """Prompt-driven front end over the same operations as the CLI"""

    CATEGORY_KEYS = {str(i): c for i, c in enumerate(TestCategory, 1)}

    def __init__(self, config: Optional[Settings] = None, store: Optional[SessionStore] = None):
        self.config = config or settings
        self.store = store or SessionStore(self.config)
        self.session: Optional[Session] = self.store.load()

    def loop(self):
        banner()
        while True:
            self._show_menu()
            choice = Prompt.ask(
                "Select an option",
                choices=list(self.CATEGORY_KEYS) + ["c", "a", "l", "r", "q"],
                default="q",
            )
            if choice == "q":
                console.print("[dim]Goodbye[/dim]")
                return

            try:
                self._dispatch(choice)
            except WardenError as e:
                show_error(e)

    def _show_menu(self):
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="bold cyan")
        table.add_column("Action")

        target = self.session.target.address if self.session else "[yellow]not configured[/yellow]"
        table.add_row("c", f"Configure target ({target})")
        for key, category in self.CATEGORY_KEYS.items():
            table.add_row(key, category.title)
        table.add_row("a", "Run all tests")
        table.add_row("l", "List result artifacts")
        table.add_row("r", "Generate report")
        table.add_row("q", "Quit")
        console.print(table)

    def _dispatch(self, choice: str):
        if choice == "c":
            self._configure()
        elif choice == "l":
            self._list_artifacts()
        elif choice == "r":
            self._report()
        elif choice == "a":
            self._run(None)
        else:
            self._run(self.CATEGORY_KEYS[choice])

    def _configure(self):
        current = self.session.target if self.session else None
        host = Prompt.ask("SQL MI hostname", default=current.host if current else None)
        port = Prompt.ask("Port", default=str(current.port if current else self.config.default_port))
        username = Prompt.ask("Username", default=current.username if current else self.config.default_username)
        password = Prompt.ask("Password (leave empty to skip authenticated tests)", password=True, default="")

        self.session = configure(host or "", port, username, password or None)
        self.store.save(self.session)
        show_session(self.session)

    def _run(self, category: Optional[TestCategory]):
        if self.session is None:
            console.print("[yellow]Configure a target first[/yellow]")
            return

        tier = Tier(Prompt.ask("Tier", choices=[t.value for t in Tier], default=Tier.STANDARD.value))
        what = category.title if category else "all tests"
        if not Confirm.ask(f"Run {what} against {self.session.target.address}?"):
            return

        logger.info(f"Menu: running {what} at tier {tier.value}")
        orchestrator = TestOrchestrator(self.session, self.config)
        if category is None:
            runs = asyncio.run(orchestrator.run_all(tier))
        else:
            runs = [asyncio.run(orchestrator.run(category, tier))]
        show_runs(runs)

    def _list_artifacts(self):
        files = sorted(glob.glob(os.path.join(self.config.results_dir, "*.txt")), key=os.path.getmtime)
        if not files:
            console.print("[yellow]No result artifacts yet[/yellow]")
            return

        table = Table(title=f"Result Artifacts ({len(files)})")
        table.add_column("File", style="cyan")
        table.add_column("Size", justify="right")
        for path in files:
            table.add_row(os.path.basename(path), f"{os.path.getsize(path)} B")
        console.print(table)

    def _report(self):
        self.config.setup_directories()
        report = ReportAggregator(self.config).aggregate(session=self.session)
        show_report(report)
        for kind, path in write_reports(report, self.config).items():
            console.print(f"[green]{kind.title()} report saved to:[/green] {path}")
