"""Utility modules for Raccoon."""

from raccoon.utils.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
