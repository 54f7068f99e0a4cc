"""
Preprocessing Context

Responsibilities:
- Extracts embedded base64 images into scratch files
- Normalizes formula text for the LaTeX toolchain
- Builds the ordered candidate documents for a formula
- Produces plain text for fallback rendering

Owns: Formula text transformations, candidate document layout
Never: Runs external programs
"""

from texpng.contexts.preprocessing.document_builder import (
    DIRECT,
    MULTILINE,
    CandidateDocument,
    build_candidates,
    escape_hashes,
    normalize_formula,
)
from texpng.contexts.preprocessing.image_extractor import (
    EmbeddedImage,
    ExtractionResult,
    extract_images,
)
from texpng.contexts.preprocessing.plaintext import formula_to_text, html_to_text, wrap_text

__all__ = [
    "DIRECT",
    "MULTILINE",
    "CandidateDocument",
    "EmbeddedImage",
    "ExtractionResult",
    "build_candidates",
    "extract_images",
    "formula_to_text",
    "html_to_text",
    "escape_hashes",
    "normalize_formula",
    "wrap_text",
]
