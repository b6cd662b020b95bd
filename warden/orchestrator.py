"""Test orchestration for Warden"""

import asyncio
import logging
import os
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Union

from warden.config import TIER_PRESETS, Settings, settings
from warden.errors import (
    DependencyMissingError,
    GenerationError,
    InvalidTargetError,
    ProbeExecutionError,
)
from warden.models import (
    RUN_ALL_ORDER,
    RawOutput,
    RunState,
    Session,
    SizeClass,
    TestCategory,
    TestRun,
    Tier,
    TierPreset,
)
from warden.playbook import Playbook
from warden.probes.commands import BRUTE_SCRIPT, Tool
from warden.probes.invoker import ProbeInvoker
from warden.wordlists import WordlistGenerator

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

# Errors that fail a single category without stopping a full run
RUN_ERRORS = (DependencyMissingError, GenerationError, InvalidTargetError, ProbeExecutionError)

CREDENTIALS_MARKER = "Valid credentials"


def resolve_tier(tier: Union[Tier, str], overrides: Optional[Dict] = None) -> TierPreset:
    """Preset for a tier; custom (or any tier) fields can be overridden individually"""
    tier = Tier(tier)
    preset = TIER_PRESETS[tier]
    changes = {k: v for k, v in (overrides or {}).items() if v is not None}
    if not changes:
        return preset
    if "wordlist" in changes:
        changes["wordlist"] = SizeClass(changes["wordlist"])
    return TierPreset(**{**preset.model_dump(), **changes})


class TestOrchestrator:
    """
    Runs test categories against a session's target.

    Categories always execute one after another. A full run waits
    `inter_test_delay` seconds between categories so the combined traffic
    does not trip unrelated rate limiting on the target. Per-category errors
    are recorded on the TestRun; only a missing required dependency at
    preflight stops everything.
    """

    __test__ = False

    REQUIRED_TOOLS = [Tool.SCANNER]
    OPTIONAL_TOOLS = [Tool.CLIENT]
    REQUIRED_SCRIPTS = [BRUTE_SCRIPT]

    def __init__(
        self,
        session: Session,
        config: Optional[Settings] = None,
        invoker: Optional[ProbeInvoker] = None,
        wordlists: Optional[WordlistGenerator] = None,
        sleeper: Sleeper = asyncio.sleep,
        verbose: bool = False,
    ):
        self.session = session
        self.config = config or settings
        self.invoker = invoker or ProbeInvoker(self.config)
        self.wordlists = wordlists or WordlistGenerator(self.config)
        self.playbook = Playbook(self.wordlists, self.config)
        self.sleeper = sleeper
        self.verbose = verbose

        self.runs: List[TestRun] = []
        self.client_available = False
        self._ready = False

    async def preflight(self):
        """Check dependencies once, before any traffic is sent"""
        if self._ready:
            return

        logger.info("Checking dependencies...")
        missing = self.invoker.check_dependencies(self.REQUIRED_TOOLS, self.OPTIONAL_TOOLS)
        self.client_available = Tool.CLIENT not in missing
        await self.invoker.check_scripts(self.REQUIRED_SCRIPTS)

        self.config.setup_directories()
        self._ready = True
        logger.info("Dependencies check passed")

    async def run(
        self,
        category: Union[TestCategory, str],
        tier: Union[Tier, str] = Tier.STANDARD,
        overrides: Optional[Dict] = None,
    ) -> TestRun:
        """Execute one category and return its finished TestRun"""
        await self.preflight()

        category = TestCategory(category)
        tier = Tier(tier)
        target = self.session.target

        run = TestRun(session_id=self.session.session_id, category=category, tier=tier)
        self.runs.append(run)
        logger.info(f"[{category.value}] Starting {category.title} against {target.address}")

        try:
            preset = resolve_tier(tier, overrides)
            plan = self.playbook.plan(
                category, target, preset,
                client_available=self.client_available,
                verbose=self.verbose,
            )
        except (GenerationError, InvalidTargetError, ValueError) as e:
            logger.error(f"[{category.value}] Could not prepare test: {e}")
            run.error = str(e)
            run.transition(RunState.FAILED)
            run.artifact = self._artifact_path(run)
            self._write_header(run, None)
            self._finish(run)
            return run

        run.notes.extend(plan.notes)
        run.transition(RunState.RUNNING)
        run.artifact = self._artifact_path(run)
        self._write_header(run, preset)
        self._save_sidecar(run)

        try:
            for index, step in enumerate(plan.steps, 1):
                output = await self.invoker.run(category, target, preset, step)
                run.steps.append(output)
                self._append_step(run, index, output)

                if step.pause_after and index < len(plan.steps):
                    await self.sleeper(step.pause_after)
        except RUN_ERRORS as e:
            if isinstance(e, ProbeExecutionError) and e.output is not None:
                run.steps.append(e.output)
                self._append_step(run, len(run.steps), e.output)
            logger.error(f"[{category.value}] {category.title} failed: {e}")
            run.error = str(e)
            # a timed-out step outranks a later failure
            run.transition(RunState.TIMED_OUT if run.timed_out else RunState.FAILED)
        else:
            run.transition(RunState.TIMED_OUT if run.timed_out else RunState.COMPLETED)

        if any(step.is_brute_force for step in plan.steps):
            self._check_credentials(run)

        self._finish(run)
        return run

    async def run_all(
        self,
        tier: Union[Tier, str] = Tier.STANDARD,
        overrides: Optional[Dict] = None,
    ) -> List[TestRun]:
        """Run every category in the fixed order, one at a time"""
        await self.preflight()

        runs = []
        total = len(RUN_ALL_ORDER)
        for number, category in enumerate(RUN_ALL_ORDER, 1):
            logger.info(f"[{number}/{total}] Running: {category.title}")
            run = await self.run(category, tier, overrides)
            runs.append(run)

            if number < total:
                logger.info(f"Waiting {self.config.inter_test_delay:g} seconds before next test...")
                await self.sleeper(self.config.inter_test_delay)

        self._write_suite_log(runs)
        return runs

    @property
    def failed(self) -> List[TestRun]:
        return [r for r in self.runs if r.state == RunState.FAILED]

    def _check_credentials(self, run: TestRun):
        for line in run.raw_output.splitlines():
            if CREDENTIALS_MARKER in line:
                run.credentials_found.append(line.strip(" |"))

        if run.credentials_found:
            logger.warning(f"SECURITY ALERT: valid credentials found in {run.category.value}! Check results immediately.")
        else:
            logger.info("No valid credentials found (expected for security test)")

    # Artifacts

    def _artifact_path(self, run: TestRun) -> str:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        name = f"{run.category.slug}_{run.session_id}_{stamp}_{run.run_id}.txt"
        return os.path.join(self.config.results_dir, name)

    def _sidecar_path(self, run: TestRun) -> str:
        return os.path.splitext(run.artifact)[0] + ".json"

    def _write_header(self, run: TestRun, preset: Optional[TierPreset]):
        target = self.session.target
        lines = [
            f"=== {run.category.title} Test Report ===",
            f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Target: {target.address}",
            f"Username: {target.username}",
            f"Session: {run.session_id}",
            f"Expected Alerts: {', '.join(run.category.expected_alerts)}",
        ]
        if preset is not None and run.category.is_brute_force:
            lines.append(
                f"Tier: {run.tier.value} (threads {preset.threads}, "
                f"delay {preset.delay:g}s, wordlist {preset.wordlist.value})"
            )
        lines.extend(run.notes)
        lines.extend(["=" * 45, ""])

        os.makedirs(os.path.dirname(run.artifact), exist_ok=True)
        with open(run.artifact, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def _append_step(self, run: TestRun, index: int, output: RawOutput):
        lines = [
            f"--- [{index}] {output.label} ---",
            f"Command: {' '.join(output.command)}",
        ]
        if output.application:
            lines.append(f"Application: {output.application} (simulated)")
        lines.append(output.text.rstrip())
        if output.timed_out:
            lines.append("[timed out]")
        elif output.exit_code not in (0, None):
            lines.append(f"[exit code {output.exit_code}]")
        lines.append("")

        with open(run.artifact, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def _finish(self, run: TestRun):
        lines = ["=== Summary ===", f"Outcome: {run.state.value}"]
        if run.error:
            lines.append(f"Error: {run.error}")
        for found in run.credentials_found:
            lines.append(f"Valid credentials: {found}")
        lines.append(f"End time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        with open(run.artifact, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        self._save_sidecar(run)

        logger.info(f"[{run.category.value}] {run.state.value}: {run.artifact}")

    def _save_sidecar(self, run: TestRun):
        data = run.model_dump_json(
            indent=2,
            exclude={"steps": {"__all__": {"stdout", "stderr"}}},
        )
        with open(self._sidecar_path(run), "w", encoding="utf-8") as f:
            f.write(data)

    def _write_suite_log(self, runs: List[TestRun]):
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = os.path.join(self.config.logs_dir, f"all_tests_{self.session.session_id}_{stamp}.log")

        lines = [
            "=== Comprehensive Test Suite Execution ===",
            f"Target: {self.session.target.address}",
            f"Session: {self.session.session_id}",
            "",
        ]
        for number, run in enumerate(runs, 1):
            lines.append(f"[{number}/{len(runs)}] {run.category.title}: {run.state.value.upper()}")
        lines.append("")
        lines.append(f"End time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        os.makedirs(self.config.logs_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        logger.info(f"Suite log written to {path}")
