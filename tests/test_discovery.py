import asyncio

import pytest

from conftest import FakeRunner, fake_which
from warden.discovery import AzureDiscovery, public_fqdn
from warden.errors import DependencyMissingError, DiscoveryError
from warden.probes.invoker import ProcessResult

FQDN = "sqlmi-d4sql.abc123.database.windows.net"


def az_responses(cmd):
    if cmd[1:3] == ["account", "show"]:
        return ProcessResult(stdout="0000-sub\n", returncode=0)
    if "[0].name" in cmd:
        return ProcessResult(stdout="sqlmi-d4sql\n", returncode=0)
    if "[0].fullyQualifiedDomainName" in cmd:
        return ProcessResult(stdout=FQDN + "\n", returncode=0)
    return ProcessResult(returncode=0)


def test_public_fqdn():
    assert public_fqdn("sqlmi-d4sql", FQDN) == "sqlmi-d4sql.public.abc123.database.windows.net"
    with pytest.raises(DiscoveryError):
        public_fqdn("other", FQDN)


def test_discover_from_logged_in_account(config):
    runner = FakeRunner(respond=az_responses)
    discovery = AzureDiscovery(config, runner=runner, which=fake_which(), environ={})
    instance = asyncio.run(discovery.discover("rg-test"))

    assert instance.name == "sqlmi-d4sql"
    assert instance.private_fqdn == FQDN
    assert instance.public_fqdn == "sqlmi-d4sql.public.abc123.database.windows.net"
    assert instance.subscription_id == "0000-sub"
    assert all("rg-test" in call for call in runner.calls[1:])


def test_discover_uses_subscription_env(config):
    runner = FakeRunner(respond=az_responses)
    discovery = AzureDiscovery(config, runner=runner, which=fake_which(), environ={"AZURE_SUBSCRIPTION_ID": "env-sub"})
    instance = asyncio.run(discovery.discover())

    assert runner.calls[0][1:] == ["account", "set", "--subscription", "env-sub"]
    assert instance.subscription_id == "env-sub"
    assert config.resource_group in runner.calls[1]


def test_discover_no_instance(config):
    runner = FakeRunner(respond=lambda cmd: ProcessResult(stdout="sub" if "show" in cmd else "", returncode=0))
    discovery = AzureDiscovery(config, runner=runner, which=fake_which(), environ={})
    with pytest.raises(DiscoveryError):
        asyncio.run(discovery.discover())


def test_discover_cli_failure(config):
    runner = FakeRunner(ProcessResult(stderr="Please run 'az login'", returncode=1))
    discovery = AzureDiscovery(config, runner=runner, which=fake_which(), environ={})
    with pytest.raises(DiscoveryError):
        asyncio.run(discovery.discover())


def test_discover_without_az(config):
    discovery = AzureDiscovery(config, runner=FakeRunner(), which=fake_which(missing={"az"}), environ={})
    with pytest.raises(DependencyMissingError):
        asyncio.run(discovery.discover())
