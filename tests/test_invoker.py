import asyncio
import os
import sys

import pytest

from conftest import FakeRunner, fake_which
from warden.config import TIER_PRESETS
from warden.errors import DependencyMissingError, ProbeExecutionError
from warden.models import SizeClass, TestCategory, Tier, TierPreset
from warden.probes.commands import (
    MASK,
    ProbeOptions,
    Tool,
    brute_args,
    build_client_command,
    build_scanner_command,
    mask_command,
)
from warden.probes.invoker import ProbeInvoker, ProcessResult, run_process


def brute_step(**kwargs):
    return ProbeOptions(
        tool=Tool.SCANNER,
        label="sweep",
        scripts=["ms-sql-brute"],
        script_args={"userdb": "users.txt", "passdb": "passwords.txt"},
        **kwargs
    )


def test_scanner_command_layout(session):
    cmd = build_scanner_command(
        "nmap", session.target, ["ms-sql-info", "ms-sql-config"], {"mssql.timeout": "5s"}, verbose=True
    )
    assert cmd == [
        "nmap", "-p", "3342", "--script", "ms-sql-info,ms-sql-config",
        "--script-args=mssql.timeout=5s", "-v", "db.example.internal",
    ]


def test_service_scan_command(session):
    cmd = build_scanner_command("nmap", session.target, [], {}, service_scan=True)
    assert cmd == ["nmap", "-p", "3342", "-sV", "db.example.internal"]


def test_client_command_and_masking(auth_session):
    cmd = build_client_command("sqlcmd", auth_session.target, "SELECT 1")
    assert cmd == ["sqlcmd", "-S", "db.example.internal,3342", "-U", "tester", "-P", "S3cret!", "-Q", "SELECT 1"]

    masked = mask_command(cmd)
    assert "S3cret!" not in masked
    assert masked[masked.index("-P") + 1] == MASK
    assert cmd[6] == "S3cret!"


def test_brute_args_from_presets():
    assert brute_args(TIER_PRESETS[Tier.QUICK]) == {"brute.threads": "12", "brute.delay": "1s"}
    assert brute_args(TierPreset(threads=3, delay=0.5, wordlist=SizeClass.SMALL)) == {
        "brute.threads": "3", "brute.delay": "0.5s",
    }
    assert brute_args(TierPreset(threads=3, delay=0, wordlist=SizeClass.SMALL)) == {"brute.threads": "3"}


def test_build_command_adds_tier_args_for_brute_categories(invoker, session):
    cmd = invoker.build_command(TestCategory.PASSWORD_BRUTE, session.target, Tier.STEALTH, brute_step())
    assert "--script-args=userdb=users.txt,passdb=passwords.txt,brute.threads=4,brute.delay=5s" in cmd


def test_build_command_keeps_injection_sweep_untiered(invoker, session):
    cmd = invoker.build_command(TestCategory.SQL_INJECTION, session.target, Tier.QUICK, brute_step())
    assert not any("brute.threads" in part for part in cmd)


def test_run_captures_output(invoker, runner, session):
    runner.result = ProcessResult(stdout="3342/tcp open ms-sql-s\n", stderr="", returncode=0)
    output = asyncio.run(invoker.run(TestCategory.PASSWORD_BRUTE, session.target, Tier.QUICK, brute_step()))

    assert output.exit_code == 0
    assert not output.timed_out
    assert "3342/tcp" in output.stdout
    assert output.command[0] == "/usr/bin/nmap"
    assert runner.timeouts == [invoker.config.password_brute_timeout]


def test_username_sweep_uses_longer_timeout(invoker, runner, session):
    asyncio.run(invoker.run(TestCategory.USERNAME_BRUTE, session.target, Tier.QUICK, brute_step()))
    assert runner.timeouts == [invoker.config.username_brute_timeout]


def test_run_masks_password_in_recorded_command(invoker, runner, auth_session):
    step = ProbeOptions(tool=Tool.CLIENT, query="SELECT @@version")
    output = asyncio.run(invoker.run(TestCategory.ENUMERATION, auth_session.target, Tier.STANDARD, step))

    assert "S3cret!" in runner.calls[0]
    assert "S3cret!" not in output.command
    assert runner.timeouts == [invoker.config.query_timeout]


def test_timeout_is_an_outcome_not_an_error(invoker, runner, session):
    runner.result = ProcessResult(stdout="partial", returncode=None, timed_out=True)
    output = asyncio.run(invoker.run(TestCategory.PASSWORD_BRUTE, session.target, Tier.QUICK, brute_step(check=True)))
    assert output.timed_out
    assert output.stdout == "partial"


def test_nonzero_exit_raises_when_checked(invoker, runner, session):
    runner.result = ProcessResult(stderr="Failed to resolve host", returncode=1)
    with pytest.raises(ProbeExecutionError) as excinfo:
        asyncio.run(invoker.run(TestCategory.ENUMERATION, session.target, Tier.QUICK, brute_step(check=True)))
    assert excinfo.value.output.exit_code == 1


def test_nonzero_exit_tolerated_for_client_probes(invoker, runner, auth_session):
    runner.result = ProcessResult(stderr="Login failed", returncode=1)
    step = ProbeOptions(tool=Tool.CLIENT, query="SELECT 1")
    output = asyncio.run(invoker.run(TestCategory.SHELL_COMMANDS, auth_session.target, Tier.QUICK, step))
    assert output.exit_code == 1
    assert "Login failed" in output.text


def test_unstartable_binary(config, session):
    async def refuse(cmd, timeout):
        raise PermissionError(13, "Permission denied", cmd[0])

    invoker = ProbeInvoker(config, runner=refuse, which=fake_which())
    with pytest.raises(ProbeExecutionError) as excinfo:
        asyncio.run(invoker.run(TestCategory.ENUMERATION, session.target, Tier.QUICK, brute_step()))
    assert "Permission denied" in str(excinfo.value)


def test_missing_binary(config, session):
    invoker = ProbeInvoker(config, runner=FakeRunner(), which=fake_which(missing={"nmap"}))
    with pytest.raises(DependencyMissingError) as excinfo:
        asyncio.run(invoker.run(TestCategory.PASSWORD_BRUTE, session.target, Tier.QUICK, brute_step()))
    assert excinfo.value.tools == ["nmap"]


def test_check_dependencies(config):
    invoker = ProbeInvoker(config, runner=FakeRunner(), which=fake_which(missing={"sqlcmd"}))
    assert invoker.check_dependencies([Tool.SCANNER], [Tool.CLIENT]) == [Tool.CLIENT]

    invoker = ProbeInvoker(config, runner=FakeRunner(), which=fake_which(missing={"nmap", "sqlcmd"}))
    with pytest.raises(DependencyMissingError):
        invoker.check_dependencies([Tool.SCANNER], [Tool.CLIENT])


def test_check_scripts(config):
    ok = ProbeInvoker(config, runner=FakeRunner(), which=fake_which())
    asyncio.run(ok.check_scripts(["ms-sql-brute"]))

    missing = ProbeInvoker(
        config,
        runner=FakeRunner(respond=lambda cmd: ProcessResult(stdout="", returncode=0)),
        which=fake_which(),
    )
    with pytest.raises(DependencyMissingError):
        asyncio.run(missing.check_scripts(["ms-sql-brute"]))


def test_run_process_real_child():
    result = asyncio.run(run_process([sys.executable, "-c", "print('hello')"], 10))
    assert result.returncode == 0
    assert result.stdout.strip() == "hello"
    assert not result.timed_out


def test_run_process_kills_on_timeout():
    result = asyncio.run(run_process([sys.executable, "-c", "import time; time.sleep(30)"], 0.5))
    assert result.timed_out


def test_run_process_kills_child_on_cancel(tmp_path):
    pidfile = tmp_path / "child.pid"
    script = f"import os, time; open({str(pidfile)!r}, 'w').write(str(os.getpid())); time.sleep(30)"

    async def interrupt():
        task = asyncio.create_task(run_process([sys.executable, "-c", script], 60))
        for _ in range(200):
            if pidfile.exists() and pidfile.read_text():
                break
            await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return int(pidfile.read_text())

    pid = asyncio.run(interrupt())

    # killed and reaped, so the pid no longer exists
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
