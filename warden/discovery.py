"""SQL Managed Instance auto-discovery through the Azure CLI"""

import logging
import os
import shutil
from typing import Callable, List, Mapping, Optional

from pydantic import BaseModel

from warden.config import Settings, settings
from warden.errors import DependencyMissingError, DiscoveryError
from warden.probes.commands import Tool
from warden.probes.invoker import ProcessRunner, run_process

logger = logging.getLogger(__name__)


class DiscoveredInstance(BaseModel):
    name: str
    private_fqdn: str
    public_fqdn: str
    subscription_id: str


def public_fqdn(name: str, fqdn: str) -> str:
    """Public endpoint form: <name>.public.<rest of the private FQDN>"""
    prefix = f"{name}."
    if not fqdn.startswith(prefix):
        raise DiscoveryError(f"FQDN {fqdn} does not start with instance name {name}")
    return f"{name}.public.{fqdn[len(prefix):]}"


class AzureDiscovery:
    """Resolve the first SQL MI in a resource group"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        runner: Optional[ProcessRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config or settings
        self.runner = runner or run_process
        self.which = which
        self.environ = os.environ if environ is None else environ

    async def discover(self, resource_group: Optional[str] = None) -> DiscoveredInstance:
        resource_group = resource_group or self.config.resource_group
        az = self.which(self.config.az_path)
        if az is None:
            raise DependencyMissingError([Tool.CLOUD.value])

        logger.info(f"Retrieving SQL Managed Instance FQDN from resource group {resource_group}")

        subscription_id = self.environ.get("AZURE_SUBSCRIPTION_ID", "")
        if subscription_id:
            await self._az([az, "account", "set", "--subscription", subscription_id])
        else:
            subscription_id = await self._az([az, "account", "show", "--query", "id", "-o", "tsv"])
            if not subscription_id:
                raise DiscoveryError(
                    "Could not determine subscription ID. Set AZURE_SUBSCRIPTION_ID "
                    "or log in with the Azure CLI"
                )

        base = [az, "sql", "mi", "list", "--resource-group", resource_group]
        name = await self._az(base + ["--query", "[0].name", "-o", "tsv"])
        fqdn = await self._az(base + ["--query", "[0].fullyQualifiedDomainName", "-o", "tsv"])
        if not name or not fqdn:
            raise DiscoveryError(
                f"No SQL Managed Instance found in resource group {resource_group} "
                f"(subscription {subscription_id}). Make sure the deployment is complete."
            )

        instance = DiscoveredInstance(
            name=name,
            private_fqdn=fqdn,
            public_fqdn=public_fqdn(name, fqdn),
            subscription_id=subscription_id,
        )
        logger.info(f"Discovered {instance.name}: {instance.public_fqdn}")
        return instance

    async def _az(self, cmd: List[str]) -> str:
        try:
            result = await self.runner(cmd, self.config.scanner_timeout)
        except FileNotFoundError:
            raise DependencyMissingError([Tool.CLOUD.value])

        if result.timed_out:
            raise DiscoveryError(f"Azure CLI timed out: {' '.join(cmd[1:])}")
        if result.returncode != 0:
            raise DiscoveryError(f"Azure CLI failed ({result.returncode}): {result.stderr.strip()}")
        return result.stdout.strip()


async def discover(resource_group: Optional[str] = None, config: Optional[Settings] = None) -> DiscoveredInstance:
    """Convenience wrapper around AzureDiscovery"""
    return await AzureDiscovery(config).discover(resource_group)
