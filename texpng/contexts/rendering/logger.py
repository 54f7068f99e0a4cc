"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from texpng.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[render]"


def setup_rendering_logger(
    log_dir: Optional[Path] = None,
    latex_path: Optional[Path] = None,
    dvipng_path: Optional[Path] = None,
    verbose: bool = False,
) -> Optional[Path]:
    """
    Setup logger for rendering context.

    Configures loguru with provenance tracking and the resolved toolchain.
    Library code never calls this; it is meant for entry points such as the CLI.

    Args:
        log_dir: Directory for the session log file (None for console only)
        latex_path: Resolved LaTeX compiler, recorded in the provenance header
        dvipng_path: Resolved DVI converter, recorded in the provenance header
        verbose: Show DEBUG messages on the console

    Returns:
        Path to log file, if any
    """
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance={"LaTeX compiler": latex_path, "DVI converter": dvipng_path},
        console_level="DEBUG" if verbose else "INFO",
    )


# Wrapper functions with automatic [render] prefix


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_render_start(formula: str, candidate_count: int, image_count: int) -> None:
    """Log start of a render with context."""
    preview = formula if len(formula) <= 60 else formula[:57] + "..."
    _log_debug(f"Rendering formula: {preview!r}")
    _log_debug(f"  Candidates: {candidate_count}, embedded images: {image_count}")


def log_cache_hit(output_file: Path) -> None:
    _log_debug(f"Cache hit: {output_file}")


def log_attempt_result(kind: str, result) -> None:
    """
    Log the outcome of one candidate attempt.

    Args:
        kind: Candidate kind ("direct" or "multiline")
        result: AttemptResult from the toolchain driver
    """
    if result.succeeded:
        _log_success(f"{kind} candidate rendered: {result.output_file}")
    else:
        stage = result.failed_at or result.state
        _log_warning(f"{kind} candidate failed at {stage.value}: {result.error.message}")
        # Use opt(raw=True) to keep multi-line compiler output readable
        if result.error.output:
            logger.opt(raw=True).debug(
                f"\n{'=' * 80}\nCOMPILER OUTPUT:\n{'=' * 80}\n{result.error.output}\n"
            )


def log_fallback(reason: str) -> None:
    _log_warning(f"Falling back to plain-text image: {reason}")
