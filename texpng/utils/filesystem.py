"""
Filesystem helpers shared across contexts.

Scratch-file lifecycle tracking and small file predicates.
"""

import os
from pathlib import Path
from typing import Iterator, List, Optional, Union

from loguru import logger

PathLike = Union[str, os.PathLike]


def is_nonempty_file(path: Optional[PathLike]) -> bool:
    """True if path names an existing regular file with at least one byte."""
    if path is None:
        return False
    try:
        path = Path(path)
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


class ScratchFiles:
    """
    Registry of scratch files owned by one render attempt.

    Every file is registered at creation (or before the external tool that
    creates it runs). Leaving the ``with`` block removes all registered files,
    whatever the exit path. Individual deletion errors are logged and ignored.

    Example:
        with ScratchFiles() as scratch:
            tex_file = scratch.register(scratch_dir / "latex-abc.tex")
            tex_file.write_text(source)
            ...
        # tex_file no longer exists here
    """

    def __init__(self) -> None:
        self._paths: List[Path] = []

    def register(self, path: PathLike) -> Path:
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
        return path

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def cleanup(self) -> None:
        """Remove every registered file (best-effort) and forget them."""
        for path in self._paths:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.debug(f"Could not remove scratch file {path}: {e}")
        self._paths.clear()

    def __enter__(self) -> "ScratchFiles":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
