"""
Preprocessing context logger.

Provides logging interface for preprocessing context with automatic [prep] prefix.
All preprocessing modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[prep]"


def _log_debug(message: str) -> None:
    """Log debug message with [prep] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [prep] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")
