"""Configuration module for the CiK client."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
