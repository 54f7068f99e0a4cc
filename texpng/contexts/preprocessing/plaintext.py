"""
Plain-text conversion for fallback rendering.

Formulas arriving from rich-text editors may carry HTML around the LaTeX. When
typesetting is not possible the formula is drawn as plain text, so markup is
stripped, entities decoded and LaTeX line breaks turned into real ones.
"""

import html
import re
import textwrap

from texpng.contexts.preprocessing.latex_patterns import TextPatterns

# Column width used when wrapping fallback text
WRAP_WIDTH = 60

TEXT = TextPatterns()

# (pattern, replacement) pairs applied in order
HTML_CLEANUP = [
    (r"<!DOCTYPE[^>]*?>", ""),
    (r"<head[^>]*?>.*?</head>", ""),
    (r"<style[^>]*?>.*?</style>", ""),
    (r"<script[^>]*?>.*?</script>", ""),
    (r"&nbsp;", " "),
    (r"<br[^>]*>\n+", "\n"),
    (r"<br[^>]*>", "\n"),
    (r"<!--.*?-->", " "),
    (r"<[A-Z][^>]*?>", ""),
    (r"</[A-Z][^>]*?>", ""),
    (r"^ +$", ""),
    (r"^ +", ""),
    (r"\n{3,}", "\n\n"),
]
HTML_FLAGS = re.IGNORECASE | re.DOTALL | re.MULTILINE


def html_to_text(markup: str) -> str:
    """
    Strip HTML markup, returning plain text.

    Example:
        >>> html_to_text("<p>a&nbsp;&lt;&nbsp;b<br>c</p>")
        'a < b\\nc'
    """
    result = markup.replace("\r\n", "\n").replace("\r", "\n")

    for pattern, replacement in HTML_CLEANUP:
        result = re.sub(pattern, replacement, result, flags=HTML_FLAGS)

    result = html.unescape(result)

    return result.strip()


def formula_to_text(formula: str) -> str:
    """
    Convert a formula to the text drawn by the fallback renderer.

    Markup is removed, escaped spaces become spaces and LaTeX line breaks
    become newlines.
    """
    result = html_to_text(formula)
    # \\ before "\ ", both contain a backslash followed by a space
    result = result.replace(TEXT.LINE_BREAK, "\n")
    result = result.replace(TEXT.ESCAPED_SPACE, " ")
    return result


def wrap_text(text: str, width: int = WRAP_WIDTH) -> str:
    """
    Word-wrap text to width columns.

    Existing line breaks are kept and words longer than width are never split.
    """
    lines = []
    for line in text.split("\n"):
        wrapped = textwrap.wrap(line, width=width, break_long_words=False, break_on_hyphens=False)
        lines.extend(wrapped or [""])
    return "\n".join(lines)
