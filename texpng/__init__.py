"""
texpng - LaTeX formula to PNG rendering

Turns a single formula snippet into a PNG image using latex + dvipng, caching
results by content and falling back to a plain-text bitmap when typesetting
is unavailable.

Architecture:
- Preprocessing Context: embedded image extraction and candidate document assembly
- Rendering Context: toolchain driving, fallback rendering and output management
"""

from texpng.contexts.rendering import (
    LatexRenderer,
    LatexToolsError,
    RenderConfig,
    RenderResponse,
)

__version__ = "0.1.0"

__all__ = ["LatexRenderer", "LatexToolsError", "RenderConfig", "RenderResponse"]
