"""
Rendering Context

Responsibilities:
- Resolves the LaTeX toolchain and working directories
- Drives latex and dvipng over candidate documents
- Caches rendered PNGs by content
- Renders plain-text fallback images
- Removes every intermediate file

Owns: Toolchain invocation, cache layout, output validation
Never: Rewrites formula text (see preprocessing context)
"""

from texpng.contexts.rendering.config import RenderConfig, load_config_file, resolve_config
from texpng.contexts.rendering.exceptions import (
    CompileError,
    ConvertError,
    FallbackRenderError,
    FileSystemError,
    ImageExtractionError,
    LatexToolsError,
    ToolUnavailableError,
)
from texpng.contexts.rendering.renderer import LatexRenderer, RenderResponse

__all__ = [
    "CompileError",
    "ConvertError",
    "FallbackRenderError",
    "FileSystemError",
    "ImageExtractionError",
    "LatexRenderer",
    "LatexToolsError",
    "RenderConfig",
    "RenderResponse",
    "ToolUnavailableError",
    "load_config_file",
    "resolve_config",
]
