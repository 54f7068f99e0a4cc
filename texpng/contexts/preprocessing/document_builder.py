"""
Candidate Document Builder

Wraps a formula into complete LaTeX documents. Two variants exist:

- direct: the formula placed as-is in the document body
- multiline: the formula wrapped in a gather* environment

The direct variant is only built when fewer than two images are embedded, since
several \\includegraphics lines typeset correctly only inside gather*. Candidates
are returned in the order they should be attempted.
"""

import re
from dataclasses import dataclass
from typing import List

from texpng.contexts.preprocessing.latex_patterns import CleanupPatterns, DocumentPatterns

DIRECT = "direct"
MULTILINE = "multiline"

# Formulas with this many embedded images skip the direct candidate
MULTILINE_ONLY_IMAGE_COUNT = 2

CLEANUP = CleanupPatterns()
DOCUMENT = DocumentPatterns()


@dataclass(frozen=True)
class CandidateDocument:
    """
    One complete LaTeX source to attempt.

    Attributes:
        kind: "direct" or "multiline"
        source: Full document text handed to the compiler
    """

    kind: str
    source: str


def normalize_formula(formula: str) -> str:
    """
    Clean raw formula text before embedded images are extracted.

    - Drops characters outside latin-1 (inputenc cannot map them reliably)
    - Removes the editor image placeholder \\text{img_}
    - Repairs the mis-encoded acute accent used as an apostrophe

    Runs before extraction so the scratch paths written into the formula are
    never transcoded.

    Args:
        formula: Raw formula text

    Returns:
        Normalized formula text
    """
    result = formula.encode("latin-1", errors="ignore").decode("latin-1")
    result = result.replace(CLEANUP.IMAGE_PLACEHOLDER, "")
    result = result.replace(CLEANUP.BROKEN_APOSTROPHE, CLEANUP.APOSTROPHE)
    return result


def escape_hashes(formula: str) -> str:
    """
    Escape every '#' that TeX would read as a macro parameter.

    A '#' after an odd run of backslashes is already escaped; after an even run
    (e.g. the line break \\\\) it is not.
    """
    return re.sub(CLEANUP.UNESCAPED_HASH, r"\1\\#", formula)


def wrap_direct(formula: str) -> str:
    return DOCUMENT.PREAMBLE + "\n" + formula.strip() + "\n" + DOCUMENT.END_DOCUMENT


def wrap_multiline(formula: str) -> str:
    return (
        DOCUMENT.PREAMBLE
        + "\n"
        + DOCUMENT.BEGIN_MULTILINE
        + formula.strip()
        + "\n"
        + DOCUMENT.END_MULTILINE
        + DOCUMENT.END_DOCUMENT
    )


def build_candidates(formula: str, image_count: int = 0) -> List[CandidateDocument]:
    """
    Build the ordered list of candidate documents for a formula.

    Args:
        formula: Normalized formula text after embedded image extraction
        image_count: Number of successfully extracted images

    Returns:
        [direct, multiline] when image_count < 2, otherwise [multiline]

    Example:
        >>> [c.kind for c in build_candidates("x^2")]
        ['direct', 'multiline']
        >>> [c.kind for c in build_candidates("x^2", image_count=2)]
        ['multiline']
    """
    formula = escape_hashes(formula)

    candidates = []
    if image_count < MULTILINE_ONLY_IMAGE_COUNT:
        candidates.append(CandidateDocument(kind=DIRECT, source=wrap_direct(formula)))
    candidates.append(CandidateDocument(kind=MULTILINE, source=wrap_multiline(formula)))

    return candidates
