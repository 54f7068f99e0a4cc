"""Exceptions raised by the rendering pipeline."""

from pathlib import Path
from typing import List, Optional


class LatexToolsError(Exception):
    """
    Base exception for rendering failures.

    Attributes:
        message: Human-readable error description
        command: Command line of the external program involved, if any
        output: Captured program output, if any
        path: File or directory the failure relates to, if any
    """

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        output: Optional[str] = None,
        path: Optional[Path] = None,
    ):
        self.message = message
        self.command = command
        self.output = output
        self.path = path

        parts = [message]

        if path is not None:
            parts.append(f"Path: {path}")

        if command:
            parts.append(f"Command: {' '.join(str(arg) for arg in command)}")

        if output:
            # Keep the tail, where TeX reports the fatal error
            snippet = output if len(output) <= 500 else "..." + output[-500:]
            parts.append(f"\nOutput:\n{snippet}")

        super().__init__("\n".join(parts))


class ToolUnavailableError(LatexToolsError):
    """A required external program (latex, dvipng) could not be found."""

    pass


class ImageExtractionError(LatexToolsError):
    """An embedded image could not be decoded, written or probed."""

    pass


class CompileError(LatexToolsError):
    """The LaTeX compiler failed or produced no usable DVI file."""

    pass


class ConvertError(LatexToolsError):
    """The DVI to PNG converter failed or produced no usable image."""

    pass


class FallbackRenderError(LatexToolsError):
    """The plain-text bitmap could not be produced."""

    pass


class FileSystemError(LatexToolsError):
    """No writable directory could be found, even in the temp directory."""

    pass
