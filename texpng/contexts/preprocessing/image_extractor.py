"""
Embedded Image Extraction

Lifts base64 data-URI images out of \\includegraphics directives into files in the
scratch directory, so latex can include them by path.

A directive whose payload cannot be decoded, written or opened as an image is
dropped from the formula; one bad image never fails the whole render.
"""

import base64
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from texpng.contexts.preprocessing.latex_patterns import ImagePatterns
from texpng.contexts.preprocessing.logger import _log_debug, _log_warning
from texpng.contexts.rendering.exceptions import ImageExtractionError
from texpng.utils.filesystem import ScratchFiles
from texpng.utils.hashing import sha256_hex

# Upper bound on scan iterations; directives beyond it are stripped
MAX_EMBEDDED_IMAGES = 64

# Raised by Pillow for undecodable, truncated or oversized images
PROBE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
    EOFError,
)

PATTERNS = ImagePatterns()
DIRECTIVE_REGEX = re.compile(PATTERNS.DATA_URI_DIRECTIVE, PATTERNS.FLAGS)


@dataclass
class EmbeddedImage:
    """
    One image lifted out of the formula.

    Attributes:
        image_type: Subtype from the data URI (e.g., "png")
        content: Decoded image bytes
        path: Scratch file holding the decoded bytes
        width: Pixel width read from the image
        height: Pixel height read from the image
    """

    image_type: str
    content: bytes
    path: Path
    width: int
    height: int

    @property
    def directive(self) -> str:
        """\\includegraphics directive referencing the extracted file."""
        return PATTERNS.SIZED_DIRECTIVE.format(
            width=self.width, height=self.height, path=self.path.as_posix()
        )


@dataclass
class ExtractionResult:
    """
    Formula with embedded images replaced by file references.

    Attributes:
        formula: Rewritten formula text
        images: Successfully extracted images, in order of discovery
        dropped: Number of directives removed because extraction failed
    """

    formula: str
    images: List[EmbeddedImage] = field(default_factory=list)
    dropped: int = 0

    @property
    def image_count(self) -> int:
        return len(self.images)


def decode_payload(payload: str) -> bytes:
    """Decode a base64 payload, tolerating embedded whitespace."""
    data = base64.b64decode(re.sub(r"\s+", "", payload))
    if not data:
        raise ValueError("Empty image payload")
    return data


def probe_dimensions(path: Path) -> Tuple[int, int]:
    """
    Open an image file and return (width, height).

    The image is fully decoded so truncated data is rejected here rather than
    by latex.
    """
    with Image.open(path) as image:
        image.load()
        return image.size


def _extract_one(image_type: str, payload: str, scratch_dir: Path, scratch: ScratchFiles) -> EmbeddedImage:
    # Name by digest of the encoded payload so identical images share a file
    file_path = scratch_dir / f"{sha256_hex(payload)}.{image_type.lower()}"

    try:
        content = decode_payload(payload)
    except ValueError as e:  # binascii.Error is a ValueError
        raise ImageExtractionError(f"Undecodable {image_type} payload: {e}") from e

    try:
        scratch.register(file_path)
        file_path.write_bytes(content)
    except OSError as e:
        raise ImageExtractionError(f"Cannot write embedded image: {e}", path=file_path) from e

    try:
        width, height = probe_dimensions(file_path)
    except PROBE_ERRORS as e:
        raise ImageExtractionError(f"Unreadable embedded image: {e}", path=file_path) from e

    return EmbeddedImage(
        image_type=image_type.lower(),
        content=content,
        path=file_path,
        width=width,
        height=height,
    )


def extract_images(
    formula: str,
    scratch_dir: Path,
    scratch: Optional[ScratchFiles] = None,
    max_images: int = MAX_EMBEDDED_IMAGES,
) -> ExtractionResult:
    """
    Replace data-URI \\includegraphics directives with references to scratch files.

    Each match is fully consumed (rewritten or removed) before the next scan, so
    the loop always terminates; max_images bounds it regardless.

    Args:
        formula: Raw formula text
        scratch_dir: Directory the decoded images are written to
        scratch: Registry that will own the written files (a new one if None)
        max_images: Maximum number of directives processed individually

    Returns:
        ExtractionResult with the rewritten formula and extracted images
    """
    if scratch is None:
        scratch = ScratchFiles()

    result = ExtractionResult(formula=formula)

    for _ in range(max_images):
        match = DIRECTIVE_REGEX.search(result.formula)
        if match is None:
            break

        image_type, payload = match.group(1), match.group(2)
        try:
            image = _extract_one(image_type, payload, scratch_dir, scratch)
        except ImageExtractionError as e:
            _log_debug(f"Dropping embedded {image_type} image: {e}")
            result.formula = result.formula.replace(match.group(0), "")
            result.dropped += 1
            continue

        result.formula = result.formula.replace(match.group(0), image.directive)
        result.images.append(image)
    else:
        remaining = len(DIRECTIVE_REGEX.findall(result.formula))
        if remaining:
            _log_warning(f"Embedded image limit ({max_images}) reached, dropping {remaining} more")
            result.formula = DIRECTIVE_REGEX.sub("", result.formula)
            result.dropped += remaining

    return result
