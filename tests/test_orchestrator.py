import asyncio
import glob
import json
import os

import pytest

from conftest import FakeRunner, fake_which, no_sleep, read
from warden.errors import DependencyMissingError
from warden.models import RUN_ALL_ORDER, RunState, SizeClass, TestCategory, Tier
from warden.orchestrator import TestOrchestrator, resolve_tier
from warden.payloads import HARMFUL_APPLICATIONS
from warden.probes.invoker import ProbeInvoker, ProcessResult


def script_help_or(respond):
    """Answer preflight script checks, delegate everything else"""
    def handler(cmd):
        if "--script-help" in cmd:
            return ProcessResult(stdout=cmd[-1], returncode=0)
        return respond(cmd)
    return handler


def make_orchestrator(config, session, runner=None, missing=(), sleeps=None):
    runner = runner or FakeRunner()
    invoker = ProbeInvoker(config, runner=runner, which=fake_which(missing))

    sleeper = no_sleep
    if sleeps is not None:
        async def sleeper(seconds):
            sleeps.append(seconds)

    return TestOrchestrator(session, config, invoker=invoker, sleeper=sleeper)


def test_resolve_tier_overrides():
    preset = resolve_tier(Tier.CUSTOM, {"threads": 2, "delay": None, "wordlist": "large"})
    assert preset.threads == 2
    assert preset.delay == 2
    assert preset.wordlist == SizeClass.LARGE

    assert resolve_tier("quick").threads == 12

    with pytest.raises(ValueError):
        resolve_tier(Tier.CUSTOM, {"threads": 0})


def test_password_brute_quick_scenario(config, session):
    runner = FakeRunner(ProcessResult(
        stdout="Nmap scan report for db.example.internal\n3342/tcp open ms-sql-s\n", returncode=0
    ))
    orchestrator = make_orchestrator(config, session, runner)

    run = asyncio.run(orchestrator.run(TestCategory.PASSWORD_BRUTE, Tier.QUICK))

    assert run.state in (RunState.COMPLETED, RunState.TIMED_OUT)
    assert run.outcome == RunState.COMPLETED
    assert len(orchestrator.runs) == 1

    artifact = read(run.artifact)
    assert "db.example.internal:3342" in artifact
    assert "brute.threads=12" in artifact
    assert "Outcome: completed" in artifact

    sidecar = os.path.splitext(run.artifact)[0] + ".json"
    data = json.loads(read(sidecar))
    assert data["state"] == "completed"
    assert "stdout" not in data["steps"][0]


def test_timeout_yields_timed_out(config, session):
    runner = FakeRunner(ProcessResult(stdout="partial", timed_out=True))
    run = asyncio.run(make_orchestrator(config, session, runner).run(TestCategory.PASSWORD_BRUTE, Tier.QUICK))

    assert run.state == RunState.TIMED_OUT
    assert run.error is None
    assert "[timed out]" in read(run.artifact)


def test_scanner_failure_fails_run(config, session):
    runner = FakeRunner(ProcessResult(stderr="Failed to resolve", returncode=1))
    run = asyncio.run(make_orchestrator(config, session, runner).run(TestCategory.ENUMERATION))

    assert run.state == RunState.FAILED
    assert "exited with code 1" in run.error
    assert len(run.steps) == 1
    assert "Failed to resolve" in read(run.artifact)


def test_credentials_detected(config, session):
    runner = FakeRunner(ProcessResult(
        stdout="| ms-sql-brute:\n|   tester:Password1 => Valid credentials\n", returncode=0
    ))
    run = asyncio.run(make_orchestrator(config, session, runner).run(TestCategory.PASSWORD_BRUTE, Tier.QUICK))
    assert run.credentials_found == ["tester:Password1 => Valid credentials"]


def test_steps_are_paced(config, session):
    sleeps = []
    orchestrator = make_orchestrator(config, session, sleeps=sleeps)
    run = asyncio.run(orchestrator.run(TestCategory.HARMFUL_APPLICATION))

    assert run.state == RunState.COMPLETED
    # no pause after the final probe
    assert sleeps == [2] * (len(run.steps) - 1)


def test_missing_nmap_stops_before_any_run(config, session):
    runner = FakeRunner()
    orchestrator = make_orchestrator(config, session, runner, missing={"nmap"})

    with pytest.raises(DependencyMissingError):
        asyncio.run(orchestrator.run_all(Tier.QUICK))

    assert orchestrator.runs == []
    assert runner.calls == []
    assert glob.glob(os.path.join(config.results_dir, "*")) == []


def test_missing_sqlcmd_is_tolerated(config, auth_session):
    runner = FakeRunner()
    orchestrator = make_orchestrator(config, auth_session, runner, missing={"sqlcmd"})
    run = asyncio.run(orchestrator.run(TestCategory.SHELL_COMMANDS))

    assert run.state == RunState.COMPLETED
    assert run.steps == []
    assert any("sqlcmd not available" in note for note in run.notes)


def test_run_all_order_and_pacing(config, session):
    sleeps = []
    orchestrator = make_orchestrator(config, session, sleeps=sleeps)
    runs = asyncio.run(orchestrator.run_all(Tier.QUICK))

    assert [r.category for r in runs] == RUN_ALL_ORDER
    assert sleeps.count(config.inter_test_delay) == len(RUN_ALL_ORDER) - 1
    assert len(glob.glob(os.path.join(config.logs_dir, "all_tests_*.log"))) == 1


def test_run_all_continues_after_failure(config, session):
    def respond(cmd):
        if "--script-help" in cmd:
            return ProcessResult(stdout=cmd[-1], returncode=0)
        if "-sV" in cmd:
            return ProcessResult(stderr="boom", returncode=2)
        return ProcessResult(stdout="ok", returncode=0)

    orchestrator = make_orchestrator(config, session, FakeRunner(respond=respond))
    runs = asyncio.run(orchestrator.run_all(Tier.QUICK))

    states = {r.category: r.state for r in runs}
    assert states[TestCategory.ENUMERATION] == RunState.FAILED
    assert states[TestCategory.SHELL_COMMANDS] == RunState.COMPLETED
    assert orchestrator.failed == [r for r in runs if r.category == TestCategory.ENUMERATION]


def test_illegal_transition(session):
    from warden.models import TestRun

    run = TestRun(session_id=session.session_id, category=TestCategory.ENUMERATION)
    run.transition(RunState.RUNNING)
    run.transition(RunState.COMPLETED)
    with pytest.raises(ValueError):
        run.transition(RunState.RUNNING)



def test_timeout_then_failure_stays_timed_out(config, session):
    results = iter([
        ProcessResult(stdout="partial", timed_out=True),
        ProcessResult(stderr="NSE: failed", returncode=1),
    ])
    runner = FakeRunner(respond=script_help_or(lambda cmd: next(results)))
    run = asyncio.run(make_orchestrator(config, session, runner).run(TestCategory.COMPREHENSIVE_BRUTE, Tier.QUICK))

    assert run.state == RunState.TIMED_OUT
    assert "exited with code 1" in run.error
    assert len(run.steps) == 2
    assert json.loads(read(os.path.splitext(run.artifact)[0] + ".json"))["state"] == "timed_out"


def test_unstartable_binary_fails_only_its_category(config, session):
    def respond(cmd):
        if "-sV" in cmd:
            raise PermissionError(13, "Permission denied", cmd[0])
        return ProcessResult(stdout="ok", returncode=0)

    orchestrator = make_orchestrator(config, session, FakeRunner(respond=script_help_or(respond)))
    runs = asyncio.run(orchestrator.run_all(Tier.QUICK))

    states = {r.category: r.state for r in runs}
    assert states[TestCategory.ENUMERATION] == RunState.FAILED
    assert states[TestCategory.SHELL_COMMANDS] == RunState.COMPLETED
    assert [r.category for r in runs] == RUN_ALL_ORDER

    enumeration = next(r for r in runs if r.category == TestCategory.ENUMERATION)
    assert "Permission denied" in enumeration.error
    sidecar = os.path.splitext(enumeration.artifact)[0] + ".json"
    assert json.loads(read(sidecar))["state"] == "failed"


def test_injection_sweep_reports_found_credentials(config, session):
    def respond(cmd):
        if "ms-sql-brute" in cmd:
            return ProcessResult(stdout="| ms-sql-brute:\n|   admin:' OR 1=1 -- => Valid credentials\n", returncode=0)
        return ProcessResult(stdout="ms-sql-info: ok\n", returncode=0)

    runner = FakeRunner(respond=script_help_or(respond))
    run = asyncio.run(make_orchestrator(config, session, runner).run(TestCategory.SQL_INJECTION))

    assert run.credentials_found == ["admin:' OR 1=1 -- => Valid credentials"]
    assert "Valid credentials: admin" in read(run.artifact)


def test_harmful_application_names_recorded(config, session):
    run = asyncio.run(make_orchestrator(config, session).run(TestCategory.HARMFUL_APPLICATION))

    artifact = read(run.artifact)
    assert [step.application for step in run.steps] == HARMFUL_APPLICATIONS
    assert f"Application: {HARMFUL_APPLICATIONS[0]} (simulated)" in artifact


def test_cancelled_run_is_left_running(config, session):
    started = []

    async def hanging(cmd, timeout):
        if "--script-help" in cmd:
            return ProcessResult(stdout=cmd[-1], returncode=0)
        started.append(cmd)
        await asyncio.sleep(3600)

    orchestrator = make_orchestrator(config, session, runner=hanging)

    async def interrupt():
        task = asyncio.create_task(orchestrator.run(TestCategory.ENUMERATION))
        while not started:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(interrupt())

    run = orchestrator.runs[0]
    assert run.state == RunState.RUNNING
    sidecar = os.path.splitext(run.artifact)[0] + ".json"
    assert json.loads(read(sidecar))["state"] == "running"
    assert "Outcome:" not in read(run.artifact)
