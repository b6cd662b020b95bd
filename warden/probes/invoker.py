"""External probe invocation for Warden"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from warden.config import TIER_PRESETS, Settings, settings
from warden.errors import DependencyMissingError, ProbeExecutionError
from warden.models import RawOutput, Target, TestCategory, Tier, TierPreset
from warden.probes.commands import (
    ProbeOptions,
    Tool,
    brute_args,
    build_client_command,
    build_scanner_command,
    mask_command,
)

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    timed_out: bool = False


ProcessRunner = Callable[[List[str], float], Awaitable[ProcessResult]]


def _decode(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


async def run_process(cmd: List[str], timeout: float) -> ProcessResult:
    """Run one child process, killing it on timeout or cancellation"""
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        stdout, stderr = await proc.communicate()
        return ProcessResult(_decode(stdout), _decode(stderr), proc.returncode, timed_out=True)
    except asyncio.CancelledError:
        # Operator interrupt: never leave a sweep running against the target
        proc.kill()
        await proc.wait()
        raise

    return ProcessResult(_decode(stdout), _decode(stderr), proc.returncode)


class ProbeInvoker:
    """Build and execute scanner/client command lines, one process per call"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        runner: Optional[ProcessRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.config = config or settings
        self.runner = runner or run_process
        self.which = which

    def tool_path(self, tool: Tool) -> str:
        paths = {
            Tool.SCANNER: self.config.nmap_path,
            Tool.CLIENT: self.config.sqlcmd_path,
            Tool.CLOUD: self.config.az_path,
        }
        return paths[tool]

    def available(self, tool: Tool) -> bool:
        return self.which(self.tool_path(tool)) is not None

    def resolve(self, tool: Tool) -> str:
        """Absolute path of the tool binary or DependencyMissingError"""
        path = self.which(self.tool_path(tool))
        if path is None:
            raise DependencyMissingError([tool.value])
        return path

    def check_dependencies(self, required: Iterable[Tool], optional: Iterable[Tool] = ()) -> List[Tool]:
        """Fail on missing required tools; return the optional ones that are missing"""
        missing = [t for t in required if not self.available(t)]
        if missing:
            raise DependencyMissingError([t.value for t in missing])

        missing_optional = [t for t in optional if not self.available(t)]
        for tool in missing_optional:
            logger.warning(f"{tool.value} not found in PATH - dependent tests will be limited")
        return missing_optional

    async def check_scripts(self, scripts: Iterable[str]) -> None:
        """Verify the scanner ships the NSE scripts we rely on"""
        nmap = self.resolve(Tool.SCANNER)
        for script in scripts:
            result = await self.runner([nmap, "--script-help", script], self.config.scanner_timeout)
            if result.timed_out or result.returncode != 0 or script not in result.stdout:
                raise DependencyMissingError(
                    [f"nmap:{script}"],
                    f"Nmap NSE script {script} is not available"
                )

    def default_timeout(self, category: TestCategory, options: ProbeOptions) -> float:
        if options.timeout is not None:
            return options.timeout
        if options.tool == Tool.CLIENT:
            return self.config.query_timeout
        if options.is_brute_force:
            if category == TestCategory.USERNAME_BRUTE:
                return self.config.username_brute_timeout
            if category.is_brute_force:
                return self.config.password_brute_timeout
        if options.service_scan:
            return self.config.service_scan_timeout
        return self.config.scanner_timeout

    def build_command(
        self,
        category: TestCategory,
        target: Target,
        tier: Union[Tier, TierPreset],
        options: ProbeOptions,
        binary: Optional[str] = None,
    ) -> List[str]:
        binary = binary or self.tool_path(options.tool)

        if options.tool == Tool.SCANNER:
            script_args = dict(options.script_args)
            if category.is_brute_force and options.is_brute_force:
                preset = TIER_PRESETS[tier] if isinstance(tier, Tier) else tier
                script_args.update(brute_args(preset))
            return build_scanner_command(
                binary, target, options.scripts, script_args,
                service_scan=options.service_scan,
                verbose=options.verbose,
            )

        if options.tool == Tool.CLIENT:
            if not options.query:
                raise ValueError("Client probes need a query")
            return build_client_command(binary, target, options.query, options.username, options.password)

        raise ValueError(f"Unsupported probe tool: {options.tool.value}")

    async def run(
        self,
        category: TestCategory,
        target: Target,
        tier: Union[Tier, TierPreset],
        options: ProbeOptions,
    ) -> RawOutput:
        """Execute one probe and capture its output verbatim"""
        binary = self.resolve(options.tool)
        cmd = self.build_command(category, target, tier, options, binary=binary)
        timeout = self.default_timeout(category, options)
        shown = mask_command(cmd)

        logger.info(f"[{category.value}] {options.label or options.tool.value}: {' '.join(shown)}")
        started = datetime.now()

        try:
            result = await self.runner(cmd, timeout)
        except FileNotFoundError:
            raise DependencyMissingError([options.tool.value])
        except OSError as e:
            raise ProbeExecutionError(f"{options.tool.value} could not be started: {e}")

        output = RawOutput(
            label=options.label,
            application=options.application,
            command=shown,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.returncode,
            timed_out=result.timed_out,
            started_at=started,
            finished_at=datetime.now(),
        )

        if result.timed_out:
            logger.warning(f"[{category.value}] {options.label or options.tool.value} timed out after {timeout:g}s")
            return output

        if result.returncode not in (0, None):
            logger.debug(f"[{category.value}] exit code {result.returncode}: {result.stderr.strip()[:200]}")
            if options.check:
                raise ProbeExecutionError(
                    f"{options.tool.value} exited with code {result.returncode}",
                    output=output
                )

        return output
