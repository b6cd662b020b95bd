"""Configuration management for Warden"""

import os
from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings

from warden.models import Tier, TierPreset, SizeClass


# Intensity presets for credential-guess categories (threads, delay, wordlist).
# Empirical defaults; "custom" starts from standard and overrides per field.
TIER_PRESETS: Dict[Tier, TierPreset] = {
    Tier.QUICK: TierPreset(threads=12, delay=1, wordlist=SizeClass.SMALL),
    Tier.STANDARD: TierPreset(threads=8, delay=2, wordlist=SizeClass.MEDIUM),
    Tier.COMPREHENSIVE: TierPreset(threads=6, delay=2, wordlist=SizeClass.LARGE),
    Tier.STEALTH: TierPreset(threads=4, delay=5, wordlist=SizeClass.MEDIUM),
    Tier.CUSTOM: TierPreset(threads=8, delay=2, wordlist=SizeClass.MEDIUM),
}


class Settings(BaseSettings):
    """Warden configuration"""
    model_config = {"env_file": ".env", "env_prefix": "WARDEN_"}

    # Tool Paths
    nmap_path: str = Field(default="nmap", description="Path to nmap binary")
    sqlcmd_path: str = Field(default="sqlcmd", description="Path to sqlcmd binary")
    az_path: str = Field(default="az", description="Path to Azure CLI binary")

    # Target defaults (SQL MI public endpoint)
    default_port: int = Field(default=3342, description="SQL MI public endpoint port")
    default_username: str = Field(default="d4sqlsim", description="Default SQL login")
    resource_group: str = Field(default="rg-d4sql-sims", description="Resource group for auto-discovery")

    # Timeouts (seconds)
    password_brute_timeout: float = Field(default=3600, description="Password sweep timeout")
    username_brute_timeout: float = Field(default=7200, description="Username sweep timeout")
    scanner_timeout: float = Field(default=300, description="Default nmap script timeout")
    service_scan_timeout: float = Field(default=120, description="nmap -sV timeout")
    query_timeout: float = Field(default=10, description="sqlcmd query timeout")

    # Pacing
    inter_test_delay: float = Field(default=60, description="Delay between categories in a full run")
    phase_delay: float = Field(default=30, description="Delay between comprehensive brute force phases")

    # Wordlists
    generate_passwords: bool = Field(default=True, description="Append generated passwords to seed lists")
    wordlist_seed: int = Field(default=0, description="Random seed for generated passwords (0 = unseeded)")

    # Output
    output_dir: str = Field(default="./warden-output", description="Output directory")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.output_dir, "logs")

    @property
    def results_dir(self) -> str:
        return os.path.join(self.output_dir, "results")

    @property
    def wordlist_dir(self) -> str:
        return os.path.join(self.output_dir, "wordlists")

    @property
    def reports_dir(self) -> str:
        return os.path.join(self.output_dir, "reports")

    @property
    def session_file(self) -> str:
        return os.path.join(self.output_dir, "session.json")

    def setup_directories(self):
        """Create the output tree (logs, results, wordlists, reports)"""
        for path in (self.logs_dir, self.results_dir, self.wordlist_dir, self.reports_dir):
            os.makedirs(path, exist_ok=True)


# Global settings instance
settings = Settings()
