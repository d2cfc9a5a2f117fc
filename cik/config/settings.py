"""
CiK Client Configuration Settings

This module contains the connection defaults for the CiK client.
Every value can be overridden through environment variables or
through the arguments of CiKClient / CacheBackend.configure().
"""

import os
from dataclasses import dataclass
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("CIK_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("CIK_PORT", "5555"))

    # Connection settings
    CONNECT_TIMEOUT: float = float(os.environ.get("CIK_CONNECT_TIMEOUT", "2.5"))
    IO_TIMEOUT: Optional[float] = _optional_float("CIK_IO_TIMEOUT")  # None = block forever
    READ_CHUNK_SIZE: int = 65536

    # Logging settings
    DEBUG: bool = os.environ.get("CIK_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("CIK_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
