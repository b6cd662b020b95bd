"""Command-line builders for the external probe tools"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from warden.models import Target, TierPreset


class Tool(str, Enum):
    SCANNER = "nmap"
    CLIENT = "sqlcmd"
    CLOUD = "az"


BRUTE_SCRIPT = "ms-sql-brute"
MASK = "********"


@dataclass
class ProbeOptions:
    """What a single probe invocation should do"""
    tool: Tool
    label: str = ""

    # Scanner
    scripts: List[str] = field(default_factory=list)
    script_args: Dict[str, str] = field(default_factory=dict)
    service_scan: bool = False

    # Client
    query: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    timeout: Optional[float] = None
    check: bool = False
    verbose: bool = False

    # Seconds to wait after this probe before the next one
    pause_after: float = 0

    # Client application the probe stands in for
    application: Optional[str] = None

    @property
    def is_brute_force(self) -> bool:
        return self.tool == Tool.SCANNER and BRUTE_SCRIPT in self.scripts


def format_delay(seconds: float) -> str:
    """Format a delay for NSE script args, e.g. 2 -> '2s', 0.5 -> '0.5s'"""
    return f"{seconds:g}s"


def brute_args(preset: TierPreset) -> Dict[str, str]:
    """Parallelism and pacing script args for ms-sql-brute"""
    args = {"brute.threads": str(preset.threads)}
    if preset.delay > 0:
        args["brute.delay"] = format_delay(preset.delay)
    return args


def build_scanner_command(
    nmap_path: str,
    target: Target,
    scripts: List[str],
    script_args: Dict[str, str],
    service_scan: bool = False,
    verbose: bool = False,
) -> List[str]:
    """nmap -p PORT [-sV] [--script a,b] [--script-args k=v,...] [-v] HOST"""
    cmd = [nmap_path, "-p", str(target.port)]

    if service_scan:
        cmd.append("-sV")
    if scripts:
        cmd.extend(["--script", ",".join(scripts)])
    if script_args:
        cmd.append("--script-args=" + ",".join(f"{k}={v}" for k, v in script_args.items()))
    if verbose:
        cmd.append("-v")

    cmd.append(target.host)
    return cmd


def build_client_command(
    sqlcmd_path: str,
    target: Target,
    query: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> List[str]:
    """sqlcmd -S HOST,PORT -U USER -P PASSWORD -Q QUERY"""
    cmd = [sqlcmd_path, "-S", f"{target.host},{target.port}"]

    user = username or target.username
    secret = password if password is not None else target.password
    if user:
        cmd.extend(["-U", user])
    if secret:
        cmd.extend(["-P", secret])

    cmd.extend(["-Q", query])
    return cmd


def mask_command(cmd: List[str]) -> List[str]:
    """Hide the value following -P so passwords never reach logs or artifacts"""
    masked = list(cmd)
    for i, arg in enumerate(masked[:-1]):
        if arg == "-P":
            masked[i + 1] = MASK
    return masked
