"""
Shared fixtures: stand-in toolchain programs, sample images and fonts.

The stand-ins are small POSIX shell scripts that mimic latex and dvipng closely
enough for the pipeline (file names, exit codes, emergency stops) and record every
invocation, so tests can assert which commands ran.
"""

import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest
from loguru import logger
from PIL import ImageFont, features

from texpng.contexts.rendering import LatexRenderer, RenderConfig

from tests.helpers import png_bytes

# Fonts commonly present on Linux and macOS machines
SYSTEM_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/Library/Fonts/Arial.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
]

LATEX_HEADER = """#!/bin/sh
for last; do :; done
echo "latex $*" >> "__CALLS__"
cat "$last" >> "__SOURCES__"
echo "%%%%END%%%%" >> "__SOURCES__"
base="${last%.tex}"
"""

LATEX_OK = """printf 'aux' > "$base.aux"
printf 'log' > "$base.log"
printf 'dvi' > "$base.dvi"
echo "Output written on $base.dvi (1 page, 300 bytes)."
exit 0
"""

LATEX_BEHAVIORS = {
    "ok": LATEX_OK,
    "fail": """printf 'log' > "$base.log"
echo "! Undefined control sequence."
exit 1
""",
    "emergency": """printf 'log' > "$base.log"
printf 'dvi' > "$base.dvi"
echo "! Emergency stop."
exit 0
""",
    "nodvi": """printf 'log' > "$base.log"
echo "No pages of output."
exit 0
""",
    "emptydvi": """printf 'log' > "$base.log"
: > "$base.dvi"
exit 0
""",
    # Only documents using gather* compile
    "multiline_only": """if grep -q 'begin{gather\\*}' "$last"; then
""" + LATEX_OK + """fi
echo "! Missing $ inserted."
exit 1
""",
}

DVIPNG_HEADER = """#!/bin/sh
echo "dvipng $*" >> "__CALLS__"
out=""
while [ $# -gt 0 ]; do
  case "$1" in
    -o) out="$2"; shift ;;
  esac
  shift
done
"""

DVIPNG_BEHAVIORS = {
    "ok": """cp "__PNG__" "$out"
exit 0
""",
    "fail": """echo "dvipng: DVI file corrupted" >&2
exit 1
""",
    "empty": """: > "$out"
exit 0
""",
}

SOURCE_SEPARATOR = "%%%%END%%%%\n"


@dataclass
class FakeToolchain:
    """Paths of the stand-in programs and their invocation records."""

    root: Path
    latex: Path
    dvipng: Path
    calls_file: Path
    sources_file: Path

    @property
    def calls(self) -> List[str]:
        if not self.calls_file.exists():
            return []
        return self.calls_file.read_text().splitlines()

    def calls_to(self, program: str) -> List[str]:
        return [call for call in self.calls if call.startswith(program + " ")]

    @property
    def sources(self) -> List[str]:
        """Documents handed to latex, in invocation order."""
        if not self.sources_file.exists():
            return []
        text = self.sources_file.read_text(encoding="utf-8")
        return [s for s in text.split(SOURCE_SEPARATOR) if s.strip()]


def _write_script(path: Path, text: str) -> Path:
    path.write_text(text)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_toolchain(tmp_path):
    """
    Factory for stand-in latex/dvipng programs.

    Usage:
        toolchain = make_toolchain(latex="fail", dvipng="ok")
    """
    if sys.platform == "win32":
        pytest.skip("stand-in toolchain uses POSIX shell scripts")

    counter = {"n": 0}

    def _make(latex: str = "ok", dvipng: str = "ok") -> FakeToolchain:
        counter["n"] += 1
        root = tmp_path / f"toolchain{counter['n']}"
        root.mkdir()
        calls_file = root / "calls.txt"
        sources_file = root / "sources.txt"
        sample_png = root / "sample.png"
        sample_png.write_bytes(png_bytes(12, 8))

        def fill(text: str) -> str:
            return (
                text.replace("__CALLS__", str(calls_file))
                .replace("__SOURCES__", str(sources_file))
                .replace("__PNG__", str(sample_png))
            )

        latex_path = _write_script(root / "latex", fill(LATEX_HEADER + LATEX_BEHAVIORS[latex]))
        dvipng_path = _write_script(root / "dvipng", fill(DVIPNG_HEADER + DVIPNG_BEHAVIORS[dvipng]))
        return FakeToolchain(root, latex_path, dvipng_path, calls_file, sources_file)

    return _make


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def scratch_dir(tmp_path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def fallback_font(tmp_path) -> str:
    """Path to a TrueType font usable by Pillow, or skip."""
    if not features.check("freetype2"):
        pytest.skip("Pillow built without FreeType support")

    for candidate in SYSTEM_FONTS:
        if Path(candidate).exists():
            return candidate

    # Pillow >= 10.1 embeds a TrueType default font
    try:
        font = ImageFont.load_default(size=16)
    except TypeError:
        pytest.skip("No TrueType font available")
    font_bytes = getattr(font, "font_bytes", None)
    if not font_bytes:
        pytest.skip("No TrueType font available")

    path = tmp_path / "fallback.ttf"
    path.write_bytes(font_bytes)
    return str(path)


@pytest.fixture
def make_renderer(cache_dir, scratch_dir, make_toolchain):
    """
    Factory for a LatexRenderer wired to stand-in programs and tmp directories.

    Returns (renderer, toolchain).
    """

    def _make(latex: str = "ok", dvipng: str = "ok", **params):
        toolchain = make_toolchain(latex=latex, dvipng=dvipng)
        renderer = LatexRenderer(
            latex_path=toolchain.latex,
            dvipng_path=toolchain.dvipng,
            cache_path=cache_dir,
            temp_path=scratch_dir,
            defaults=RenderConfig(),
            **params,
        )
        return renderer, toolchain

    return _make


@pytest.fixture(autouse=True)
def _reset_logger():
    """Keep loguru sinks added by CLI runs from leaking between tests."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")
