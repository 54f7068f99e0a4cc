"""
Tool discovery and working directory resolution for the rendering context.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from texpng.contexts.rendering.exceptions import FileSystemError, ToolUnavailableError
from texpng.contexts.rendering.logger import _log_debug, _log_warning
from texpng.utils.hashing import sha256_hex

# Install locations checked before falling back to PATH lookup
TOOL_SEARCH_DIRS = [
    Path("/Library/TeX/texbin"),  # MacTeX
    Path("/usr/bin"),  # TeX Live from distribution packages
]


def resolve_tool(
    name: str,
    explicit_path: Optional[os.PathLike] = None,
    search_dirs: Optional[Sequence[Path]] = None,
) -> Path:
    """
    Resolve an external program path.

    An explicit path wins if it exists; otherwise known install locations are
    checked in order, then PATH.

    Args:
        name: Program name (e.g., "latex", "dvipng")
        explicit_path: Caller-supplied path, ignored if it does not exist
        search_dirs: Directories checked before PATH (TOOL_SEARCH_DIRS if None)

    Returns:
        Path to the program

    Raises:
        ToolUnavailableError: If the program cannot be found
    """
    if explicit_path and Path(explicit_path).exists():
        return Path(explicit_path)

    if explicit_path:
        _log_warning(f"{name} not found at {explicit_path}, searching default locations")

    if search_dirs is None:
        search_dirs = TOOL_SEARCH_DIRS

    for directory in search_dirs:
        candidate = directory / name
        if candidate.exists():
            return candidate

    found = shutil.which(name)
    if found:
        return Path(found)

    raise ToolUnavailableError(f"{name} not installed")


def _is_writable_dir(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK)


def _make_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _log_debug(f"Could not create {path}: {e}")


def resolve_writable_directory(requested: Optional[os.PathLike], role: str) -> Path:
    """
    Resolve a writable directory, falling back to the system temp directory.

    Resolution order:
    1. The requested directory (created if missing)
    2. <tmp>/<sha256 of requested path>/ when the requested path is unusable,
       so different configured paths never share a fallback location
    3. <tmp> itself

    Args:
        requested: Configured directory, or None to use the temp directory
        role: What the directory is for ("cache", "scratch"), used in messages

    Returns:
        Writable directory path

    Raises:
        FileSystemError: If not even the temp directory is writable
    """
    temp_dir = Path(tempfile.gettempdir())

    if not requested:
        result = temp_dir
    else:
        result = Path(requested)
        if not result.is_dir():
            _make_dir(result)

        if not _is_writable_dir(result):
            fallback = temp_dir / sha256_hex(str(requested).rstrip("/"))
            _log_warning(f"{role} directory {requested} is not writable, using {fallback}")
            _make_dir(fallback)
            result = fallback

    if not _is_writable_dir(result):
        result = temp_dir

    if not _is_writable_dir(result):
        raise FileSystemError(f"No writable {role} directory available", path=result)

    return result
