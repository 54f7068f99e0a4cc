"""
LaTeX Pattern Constants

Centralized pattern strings used when preparing formulas for compilation.
Organized into frozen dataclasses by category for immutability and clear grouping.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentPatterns:
    """
    Document-level LaTeX used to wrap a formula into a compilable file.

    The preamble fixes a small zero-margin page so dvipng crops tightly.
    """
    PREAMBLE: str = (
        "\\documentclass{article}\n"
        "\\usepackage%\n"
        "[%\n"
        "left=0cm,\n"
        "right=0cm,\n"
        "top=0cm,\n"
        "bottom=0cm,\n"
        "a5paper\n"
        "]{geometry}\n"
        "\\usepackage[utf8]{inputenc}\n"
        "\\usepackage{amsmath}\n"
        "\\usepackage{amsfonts}\n"
        "\\usepackage{amsthm}\n"
        "\\usepackage{amssymb}\n"
        "\\usepackage{amstext}\n"
        "\\usepackage{color}\n"
        "\\usepackage{pst-plot}\n"
        "\\usepackage{graphicx}\n"
        "\\begin{document}\n"
        "\\pagestyle{empty}\n"
    )
    END_DOCUMENT: str = "\\end{document}\n"
    BEGIN_MULTILINE: str = "\\begin{gather*}\n"
    END_MULTILINE: str = "\\end{gather*}\n"


@dataclass(frozen=True)
class CleanupPatterns:
    """
    Literal fragments removed or repaired before compilation.
    """
    IMAGE_PLACEHOLDER: str = r"\text{img_}"  # Inserted by editors in front of pasted images
    BROKEN_APOSTROPHE: str = "\u00c2\u00b4"  # UTF-8 acute accent decoded as latin-1
    APOSTROPHE: str = "'"
    # '#' starts a macro parameter in TeX; escaped only after an even run of backslashes
    UNESCAPED_HASH: str = r"(?<!\\)((?:\\\\)*)#"


@dataclass(frozen=True)
class ImagePatterns:
    """
    Embedded image directive patterns.

    Matches \\includegraphics{data:image/<type>;base64,<payload>} with an optional
    [options] list. Groups: type, payload.
    """
    DATA_URI_DIRECTIVE: str = (
        r"\\includegraphics(?:\[[^\]]*\])?\{[^}]*?data:image/([a-z]+);base64,([^}]+?)\}"
    )
    FLAGS: int = re.IGNORECASE | re.DOTALL
    # Rewritten form, use with .format(width=, height=, path=)
    SIZED_DIRECTIVE: str = "\\includegraphics[natwidth={width},natheight={height}]{{{path}}}\\\\"


@dataclass(frozen=True)
class TextPatterns:
    """
    Markup fragments converted when producing plain text for fallback images.
    """
    ESCAPED_SPACE: str = "\\ "
    LINE_BREAK: str = "\\\\"
