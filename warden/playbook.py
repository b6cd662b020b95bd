"""Per-category probe plans for Warden"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from warden.config import Settings, settings
from warden.models import SizeClass, Target, TestCategory, TierPreset
from warden.payloads import (
    AGENT_JOBS_QUERY,
    BATCH_QUERY,
    INJECTION_CONTEXTS,
    RAPID_QUERY,
    SHELL_COMMANDS,
    SYSTEM_QUERIES,
)
from warden.probes.commands import BRUTE_SCRIPT, ProbeOptions, Tool
from warden.wordlists import WordlistGenerator

logger = logging.getLogger(__name__)


@dataclass
class Plan:
    steps: List[ProbeOptions] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


class Playbook:
    """Decides which probes each test category sends"""

    RAPID_QUERIES = 20
    BATCH_QUERIES = 5

    # Categories with sqlcmd probes that need a password
    AUTHENTICATED_CATEGORIES = {
        TestCategory.SQL_INJECTION,
        TestCategory.SUSPICIOUS_QUERIES,
        TestCategory.ENUMERATION,
        TestCategory.SHELL_COMMANDS,
    }

    def __init__(self, wordlists: WordlistGenerator, config: Optional[Settings] = None):
        self.config = config or settings
        self.wordlists = wordlists

    def plan(
        self,
        category: TestCategory,
        target: Target,
        preset: TierPreset,
        client_available: bool = False,
        verbose: bool = False,
    ) -> Plan:
        """Build the probe sequence for one category"""
        authenticated = client_available and target.has_credentials
        builders = {
            TestCategory.PASSWORD_BRUTE: lambda: self._password_brute(target, preset, verbose),
            TestCategory.USERNAME_BRUTE: lambda: self._username_brute(preset, verbose),
            TestCategory.COMPREHENSIVE_BRUTE: lambda: self._comprehensive_brute(target, preset, verbose),
            TestCategory.SQL_INJECTION: lambda: self._sql_injection(authenticated),
            TestCategory.HARMFUL_APPLICATION: self._harmful_application,
            TestCategory.SUSPICIOUS_QUERIES: lambda: self._suspicious_queries(authenticated),
            TestCategory.ENUMERATION: lambda: self._enumeration(authenticated),
            TestCategory.SHELL_COMMANDS: lambda: self._shell_commands(authenticated),
        }
        plan = builders[category]()
        for step in plan.steps:
            if step.tool == Tool.SCANNER:
                step.check = True

        if not authenticated and category in self.AUTHENTICATED_CATEGORIES:
            reason = "sqlcmd not available" if not client_available else "no password configured"
            plan.notes.append(f"Authenticated probes skipped ({reason})")

        logger.debug(f"[{category.value}] planned {len(plan.steps)} probe(s)")
        return plan

    def _password_brute(self, target: Target, preset: TierPreset, verbose: bool) -> Plan:
        user_file = self.wordlists.single_user(target.username)
        passwords = self.wordlists.ensure(preset.wordlist, "passwords")

        return Plan(
            steps=[ProbeOptions(
                tool=Tool.SCANNER,
                label=f"password sweep ({len(passwords)} passwords, {preset.wordlist.value})",
                scripts=[BRUTE_SCRIPT],
                script_args={"userdb": user_file, "passdb": passwords.path},
                timeout=self.config.password_brute_timeout,
                verbose=verbose,
            )],
            notes=[f"Wordlist: {preset.wordlist.value} ({len(passwords)} passwords)"],
        )

    def _username_brute(self, preset: TierPreset, verbose: bool) -> Plan:
        usernames = self.wordlists.ensure(preset.wordlist, "usernames")
        passwords = self.wordlists.ensure(SizeClass.SMALL, "enum_passwords")
        combinations = len(usernames) * len(passwords)

        return Plan(
            steps=[ProbeOptions(
                tool=Tool.SCANNER,
                label=f"username sweep ({combinations} combinations)",
                scripts=[BRUTE_SCRIPT],
                script_args={"userdb": usernames.path, "passdb": passwords.path},
                timeout=self.config.username_brute_timeout,
                verbose=verbose,
            )],
            notes=[
                f"Usernames: {preset.wordlist.value} ({len(usernames)})",
                f"Passwords: small ({len(passwords)})",
                f"Total combinations: {combinations}",
            ],
        )

    def _comprehensive_brute(self, target: Target, preset: TierPreset, verbose: bool) -> Plan:
        first = self._password_brute(target, preset, verbose)
        second = self._username_brute(preset, verbose)

        first.steps[-1].label = "phase 1: " + first.steps[-1].label
        first.steps[-1].pause_after = self.config.phase_delay
        second.steps[0].label = "phase 2: " + second.steps[0].label

        return Plan(steps=first.steps + second.steps, notes=first.notes + second.notes)

    def _sql_injection(self, authenticated: bool) -> Plan:
        payloads = self.wordlists.static("sql_injection_payloads")
        admin_file = self.wordlists.single_user("admin")

        steps = [
            ProbeOptions(
                tool=Tool.SCANNER,
                label="injection payloads as credentials",
                scripts=[BRUTE_SCRIPT],
                script_args={"userdb": admin_file, "passdb": payloads.path},
            ),
            ProbeOptions(
                tool=Tool.SCANNER,
                label="server info",
                scripts=["ms-sql-info"],
                script_args={"mssql.timeout": "10s"},
            ),
        ]

        if authenticated:
            for number, payload in enumerate(payloads.entries, 1):
                for context, template in INJECTION_CONTEXTS:
                    time_based = context == "time-based"
                    steps.append(ProbeOptions(
                        tool=Tool.CLIENT,
                        label=f"payload #{number} {context}: {payload}",
                        query=template.format(p=payload),
                        timeout=15 if time_based else self.config.query_timeout,
                        pause_after=1 if time_based else 0,
                    ))

        return Plan(steps=steps, notes=[f"Payloads: {len(payloads)}"])

    def _harmful_application(self) -> Plan:
        apps = self.wordlists.static("harmful_applications")
        steps = [
            ProbeOptions(
                tool=Tool.SCANNER,
                label=f"connection as {app}",
                scripts=["ms-sql-info"],
                script_args={"mssql.timeout": "5s"},
                timeout=30,
                pause_after=2,
                application=app,
            )
            for app in apps.entries
        ]
        return Plan(steps=steps, notes=[
            f"Applications: {len(apps)}",
            "Each application is simulated by an ms-sql-info connection recorded under its name",
        ])

    def _suspicious_queries(self, authenticated: bool) -> Plan:
        if not authenticated:
            return Plan(steps=[ProbeOptions(
                tool=Tool.SCANNER,
                label="unauthenticated reconnaissance",
                scripts=["ms-sql-info", "ms-sql-config"],
                timeout=60,
            )])

        queries = self.wordlists.static("enumeration_queries")
        steps = [
            ProbeOptions(tool=Tool.CLIENT, label=f"query: {q}", query=q, pause_after=2)
            for q in queries.entries
        ]
        steps.extend(
            ProbeOptions(tool=Tool.CLIENT, label=f"rapid query #{i}", query=RAPID_QUERY, timeout=5, pause_after=0.5)
            for i in range(1, self.RAPID_QUERIES + 1)
        )
        steps.extend(
            ProbeOptions(tool=Tool.CLIENT, label=f"batch query #{i}", query=BATCH_QUERY, pause_after=3)
            for i in range(1, self.BATCH_QUERIES + 1)
        )
        return Plan(steps=steps)

    def _enumeration(self, authenticated: bool) -> Plan:
        steps = [
            ProbeOptions(
                tool=Tool.SCANNER,
                label="service discovery",
                service_scan=True,
                timeout=self.config.service_scan_timeout,
            ),
            ProbeOptions(
                tool=Tool.SCANNER,
                label="SQL Server enumeration",
                scripts=["ms-sql-info", "ms-sql-config", "ms-sql-dump-hashes", "ms-sql-hasdbaccess"],
                timeout=self.config.scanner_timeout,
            ),
        ]
        if authenticated:
            steps.extend(
                ProbeOptions(tool=Tool.CLIENT, label=f"query: {q}", query=q, pause_after=2)
                for q in SYSTEM_QUERIES
            )
        return Plan(steps=steps)

    def _shell_commands(self, authenticated: bool) -> Plan:
        if not authenticated:
            return Plan()

        steps = [
            ProbeOptions(tool=Tool.CLIENT, label=f"command: {cmd}", query=cmd, pause_after=2)
            for cmd in SHELL_COMMANDS
        ]
        steps.append(ProbeOptions(tool=Tool.CLIENT, label="agent jobs", query=AGENT_JOBS_QUERY))
        return Plan(steps=steps, notes=["Azure SQL MI has limited command execution capabilities"])
