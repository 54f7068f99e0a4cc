"""
Fallback Bitmap Rendering

Draws a formula's plain text onto a transparent PNG when LaTeX rendering is
disabled or every candidate failed. Any failure here is final; there is no
further fallback.
"""

from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, features

from texpng.contexts.preprocessing.plaintext import formula_to_text, wrap_text
from texpng.contexts.rendering.config import FORMAT_FALLBACK, RenderConfig
from texpng.contexts.rendering.exceptions import FallbackRenderError
from texpng.contexts.rendering.logger import _log_debug, log_cache_hit
from texpng.utils.filesystem import is_nonempty_file
from texpng.utils.hashing import cache_file_name, cache_key

# Pixels added above and below the text bounding box
TOP_PADDING = 2
BOTTOM_PADDING = 4

TRANSPARENT = (0, 0, 0, 0)
BLACK = (0, 0, 0, 255)


def fallback_output_file(text: str, config: RenderConfig, cache_dir: Path) -> Path:
    """Output path for a fallback image: explicit override or fallback-tagged cache path."""
    if config.output_file is not None:
        return Path(config.output_file)
    digest = cache_key(text, config.cache_fields(FORMAT_FALLBACK))
    return cache_dir / cache_file_name(digest)


def load_font(font: str, size: int) -> ImageFont.FreeTypeFont:
    """
    Load a TrueType font by path or file name.

    Raises:
        FallbackRenderError: If FreeType support is missing or the font cannot be found
    """
    if not features.check("freetype2"):
        raise FallbackRenderError("FreeType support not available in Pillow")

    try:
        return ImageFont.truetype(font, size)
    except OSError as e:
        raise FallbackRenderError(f"Font {font} not found", path=Path(font)) from e


def measure_text(text: str, font: ImageFont.FreeTypeFont) -> Tuple[int, int, int, int]:
    """Bounding box (left, top, right, bottom) of multi-line text drawn at the origin."""
    scratch = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    return scratch.multiline_textbbox((0, 0), text, font=font)


def draw_text_image(text: str, font_name: str, font_size: int, output_file: Path) -> Path:
    """
    Draw text in solid black on a transparent canvas and save it as PNG.

    The canvas is the text bounding box plus fixed vertical padding.

    Raises:
        FallbackRenderError: On font, drawing or write failure
    """
    font = load_font(font_name, font_size)

    try:
        left, top, right, bottom = measure_text(text, font)
    except (OSError, ValueError) as e:
        raise FallbackRenderError(f"Can not measure text using font {font_name}") from e

    width = max(1, right - left)
    height = max(1, bottom - top + TOP_PADDING + BOTTOM_PADDING)

    image = Image.new("RGBA", (width, height), TRANSPARENT)
    try:
        draw = ImageDraw.Draw(image)
        try:
            draw.multiline_text((-left, TOP_PADDING - top), text, font=font, fill=BLACK)
        except (OSError, ValueError) as e:
            raise FallbackRenderError("Can not render formula using provided font") from e

        try:
            image.save(output_file, format="PNG")
        except OSError as e:
            raise FallbackRenderError("Can not save output image", path=output_file) from e
    finally:
        image.close()

    if not is_nonempty_file(output_file):
        raise FallbackRenderError("Can not save output image", path=output_file)

    return output_file


def render_fallback(formula: str, config: RenderConfig, cache_dir: Path, text: Optional[str] = None) -> Path:
    """
    Render a formula as a plain-text bitmap.

    The cache key covers the plain text and the configuration tagged as
    "fallback", so these images never collide with typeset ones.

    Args:
        formula: Original formula (markup is stripped here)
        config: Resolved render configuration
        cache_dir: Directory holding cached PNGs
        text: Precomputed plain text, if already derived from formula

    Returns:
        Path to a non-empty PNG file

    Raises:
        FallbackRenderError: If the image cannot be produced, or config is check-only
    """
    if config.check_only:
        raise FallbackRenderError("Check-only renders never produce a fallback image")

    if text is None:
        text = formula_to_text(formula)

    output_file = fallback_output_file(text, config, cache_dir)

    if is_nonempty_file(output_file):
        log_cache_hit(output_file)
        return output_file

    _log_debug(f"Drawing fallback image {output_file.name} ({config.fallback_font}, {config.fallback_font_size}pt)")
    return draw_text_image(wrap_text(text), config.fallback_font, config.fallback_font_size, output_file)
