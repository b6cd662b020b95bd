import os
from datetime import datetime
from typing import Callable, List, Optional

import pytest

from warden.config import Settings
from warden.probes.invoker import ProbeInvoker, ProcessResult
from warden.session import configure
from warden.wordlists import WordlistGenerator


class FakeRunner:
    """Records every command instead of spawning a process"""

    def __init__(self, result: Optional[ProcessResult] = None, respond: Optional[Callable] = None):
        self.result = result or ProcessResult(stdout="", returncode=0)
        self.respond = respond
        self.calls: List[List[str]] = []
        self.timeouts: List[float] = []

    async def __call__(self, cmd, timeout):
        self.calls.append(list(cmd))
        self.timeouts.append(timeout)
        if self.respond is not None:
            return self.respond(cmd)
        if cmd[1:2] == ["--script-help"]:
            return ProcessResult(stdout=f"{cmd[2]}\nCategories: auth intrusive\n", returncode=0)
        return self.result


def fake_which(missing=()):
    def which(name):
        if name in missing:
            return None
        return f"/usr/bin/{name}"
    return which


async def no_sleep(seconds):
    return None


@pytest.fixture
def config(tmp_path):
    return Settings(output_dir=str(tmp_path / "out"), wordlist_seed=1234)


@pytest.fixture
def wordlists(config):
    return WordlistGenerator(config)


@pytest.fixture
def session():
    return configure("db.example.internal", 3342, "tester", "", now=datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
def auth_session():
    return configure("db.example.internal", 3342, "tester", "S3cret!", now=datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def invoker(config, runner):
    return ProbeInvoker(config, runner=runner, which=fake_which())


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


def listdir(path):
    return sorted(os.listdir(path)) if os.path.isdir(path) else []
