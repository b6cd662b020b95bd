"""Warden external probe tooling"""

from .commands import ProbeOptions, Tool
from .invoker import ProbeInvoker, ProcessResult, run_process

__all__ = ["ProbeInvoker", "ProbeOptions", "ProcessResult", "Tool", "run_process"]
