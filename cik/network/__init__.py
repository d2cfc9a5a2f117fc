"""Network module for the CiK client."""

from .transport import Transport

__all__ = ["Transport"]
