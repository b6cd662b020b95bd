import glob
import json
import os
import sys

import pytest
from typer.testing import CliRunner

from conftest import FakeRunner
from warden import __version__
from warden.config import settings
from warden.main import app
from warden.probes import invoker as invoker_module
from warden.probes.invoker import ProcessResult

cli = CliRunner()


@pytest.fixture
def out(tmp_path, monkeypatch):
    output = str(tmp_path / "cli-out")
    monkeypatch.setattr(settings, "output_dir", output)
    monkeypatch.setattr(settings, "inter_test_delay", 0)
    monkeypatch.setattr(settings, "phase_delay", 0)
    monkeypatch.setattr(settings, "sqlcmd_path", "warden-test-no-such-sqlcmd")
    return output


@pytest.fixture
def fake_nmap(monkeypatch):
    runner = FakeRunner(ProcessResult(stdout="3342/tcp open ms-sql-s\n", returncode=0))
    monkeypatch.setattr(settings, "nmap_path", sys.executable)
    monkeypatch.setattr(invoker_module, "run_process", runner)
    return runner


def invoke(out, *args):
    return cli.invoke(app, ["--output", out, *args])


def test_version():
    result = cli.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_configure_saves_session(out):
    result = invoke(out, "configure", "--host", "db.example.internal", "--port", "3342", "--username", "tester")
    assert result.exit_code == 0, result.output

    with open(os.path.join(out, "session.json")) as f:
        data = json.load(f)
    assert data["target"]["host"] == "db.example.internal"
    assert data["target"]["port"] == 3342


def test_configure_rejects_bad_port(out):
    result = invoke(out, "configure", "--host", "db.example.internal", "--port", "99999")
    assert result.exit_code == 1
    assert not os.path.exists(os.path.join(out, "session.json"))


def test_run_without_target(out):
    result = invoke(out, "run", "--test", "enumeration")
    assert result.exit_code == 1


def test_run_unknown_test(out):
    result = invoke(out, "run", "--test", "bogus", "--host", "db.example.internal")
    assert result.exit_code == 1


def test_run_all_without_nmap(out, monkeypatch):
    monkeypatch.setattr(settings, "nmap_path", "warden-test-no-such-nmap")
    result = invoke(out, "run", "--test", "all", "--host", "db.example.internal", "--username", "tester")

    assert result.exit_code == 1
    assert glob.glob(os.path.join(out, "results", "*")) == []


def test_run_single_category(out, fake_nmap):
    result = invoke(
        out, "run", "--test", "password-brute", "--tier", "quick",
        "--host", "db.example.internal", "--port", "3342", "--username", "tester",
    )
    assert result.exit_code == 0, result.output

    artifacts = glob.glob(os.path.join(out, "results", "password_brute_*.txt"))
    assert len(artifacts) == 1
    assert glob.glob(os.path.join(out, "logs", "session_*.log"))
    assert any("brute.threads=12" in part for call in fake_nmap.calls for part in call)


def test_run_failure_exit_code(out, fake_nmap):
    fake_nmap.result = ProcessResult(stderr="boom", returncode=1)
    result = invoke(out, "run", "--test", "enumeration", "--host", "db.example.internal")
    assert result.exit_code == 2


def test_run_bad_override(out, fake_nmap):
    result = invoke(out, "run", "--test", "password-brute", "--tier", "custom", "--threads", "0",
                    "--host", "db.example.internal")
    assert result.exit_code == 1
    assert fake_nmap.calls == []


def test_run_requires_test(out, fake_nmap):
    result = invoke(out, "run", "--host", "db.example.internal")
    assert result.exit_code == 1
    assert fake_nmap.calls == []


def test_run_malformed_numbers(out, fake_nmap):
    for option, value in (("--threads", "x"), ("--delay", "soon")):
        result = invoke(out, "run", "--test", "all", option, value, "--host", "db.example.internal")
        assert result.exit_code == 1, option
    assert fake_nmap.calls == []


def test_report(out, fake_nmap):
    invoke(out, "run", "--test", "password-brute", "--tier", "quick", "--host", "db.example.internal")
    result = invoke(out, "report")

    assert result.exit_code == 0, result.output
    assert len(glob.glob(os.path.join(out, "reports", "report_*.md"))) == 1
    assert len(glob.glob(os.path.join(out, "reports", "report_*.html"))) == 1
    assert len(glob.glob(os.path.join(out, "reports", "report_*.json"))) == 1
