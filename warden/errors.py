"""Error taxonomy for Warden"""

from typing import List, Optional


class WardenError(Exception):
    """Base class for all Warden errors"""


class InvalidTargetError(WardenError):
    """Malformed host, port or credentials"""


class DependencyMissingError(WardenError):
    """A required external binary is not installed"""

    def __init__(self, tools: List[str], message: Optional[str] = None):
        self.tools = list(tools)
        super().__init__(message or f"Missing required dependencies: {', '.join(self.tools)}")


class GenerationError(WardenError):
    """Wordlist could not be produced or cached"""


class ProbeExecutionError(WardenError):
    """External tool exited with an unexpected error (not a timeout)"""

    def __init__(self, message: str, output=None):
        self.output = output
        super().__init__(message)


class DiscoveryError(WardenError):
    """Cloud CLI could not resolve the instance address"""
