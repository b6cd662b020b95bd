"""Warden - Defender for SQL alert validation suite"""

__version__ = "0.1.0"
