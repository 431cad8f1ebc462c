"""Core utilities for Certificate Studio.

This module exports commonly used utilities for easy importing:
    from core import get_logger
"""

from core.logger import (
    bind_contextvars,
    clear_contextvars,
    configure_logging,
    get_logger,
)

__all__ = [
    "bind_contextvars",
    "clear_contextvars",
    "configure_logging",
    "get_logger",
]
