"""Utility exports for the inspectix package."""

from .logger import get_logger, set_level
from .now import Now

__all__ = [
    "Now",
    "get_logger",
    "set_level",
]
