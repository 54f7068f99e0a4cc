"""
LaTeX formula renderer.

Public entry point of the rendering pipeline:

    formula -> extract embedded images -> candidate documents
            -> latex + dvipng per candidate (cache consulted first)
            -> plain-text bitmap if every candidate failed and fallback is allowed

The cache and scratch directories may be shared between processes. There is no
locking: two processes rendering the same formula at once may both do the work
and both write the same output file, the last writer winning. Callers needing
single-flight behavior must coordinate outside this class.
"""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from texpng.contexts.preprocessing import build_candidates, extract_images, normalize_formula
from texpng.contexts.rendering.compiler import DriverResult, ToolchainDriver
from texpng.contexts.rendering.config import RenderConfig, config_from_env, resolve_config
from texpng.contexts.rendering.exceptions import CompileError, LatexToolsError, ToolUnavailableError
from texpng.contexts.rendering.fallback import render_fallback
from texpng.contexts.rendering.logger import _log_debug, log_fallback, log_render_start
from texpng.contexts.rendering.paths import resolve_tool, resolve_writable_directory
from texpng.utils.filesystem import ScratchFiles, is_nonempty_file

PNG_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class RenderResponse:
    """
    PNG payload ready to be sent by an HTTP layer.

    Attributes:
        content_type: Always "image/png"
        content_length: Size of body in bytes
        body: PNG bytes
        path: File the body was read from
    """

    content_type: str
    content_length: int
    body: bytes
    path: Path

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Type": self.content_type, "Content-Length": str(self.content_length)}


class LatexRenderer:
    """
    Render LaTeX formulas to PNG files.

    Args:
        latex_path: LaTeX compiler; default locations and PATH are searched if missing
        dvipng_path: DVI converter; default locations and PATH are searched if missing
        cache_path: Directory for rendered PNGs (temp directory if None)
        temp_path: Directory for scratch files (temp directory if None)
        defaults: Base configuration (environment defaults if None)
        debug_sink: Text stream for debug diagnostics (stdout if None)
        use_toolchain: When False, latex and dvipng are never looked up or run and
            every render produces a plain-text bitmap
        **params: Configuration defaults overriding ``defaults`` (density, fallback_enabled, ...)

    Raises:
        ToolUnavailableError: If latex or dvipng cannot be found

    Example:
        renderer = LatexRenderer(cache_path="/var/cache/formulas", density=200)
        png = renderer.render_into_file(r"\\frac{a}{b}")
        ok = renderer.is_valid_latex(r"\\frac{a}{")
    """

    def __init__(
        self,
        latex_path: Optional[os.PathLike] = None,
        dvipng_path: Optional[os.PathLike] = None,
        cache_path: Optional[os.PathLike] = None,
        temp_path: Optional[os.PathLike] = None,
        defaults: Optional[RenderConfig] = None,
        debug_sink: Optional[TextIO] = None,
        use_toolchain: bool = True,
        **params: Any,
    ):
        self.latex_path: Optional[Path] = None
        self.dvipng_path: Optional[Path] = None
        self.driver: Optional[ToolchainDriver] = None
        if use_toolchain:
            self.latex_path = resolve_tool("latex", latex_path or os.getenv("TEXPNG_LATEX"))
            self.dvipng_path = resolve_tool("dvipng", dvipng_path or os.getenv("TEXPNG_DVIPNG"))
            self.driver = ToolchainDriver(self.latex_path, self.dvipng_path, debug_sink=debug_sink)

        self.cache_path = cache_path or os.getenv("TEXPNG_CACHE_PATH") or None
        self.temp_path = temp_path or os.getenv("TEXPNG_TEMP_PATH") or None

        base = defaults if defaults is not None else config_from_env()
        self.defaults = resolve_config(base, params)

    @property
    def toolchain_enabled(self) -> bool:
        return self.driver is not None

    @property
    def cache_dir(self) -> Path:
        return resolve_writable_directory(self.cache_path, role="cache")

    @property
    def scratch_dir(self) -> Path:
        return resolve_writable_directory(self.temp_path, role="scratch")

    def resolve(self, **overrides: Any) -> RenderConfig:
        """Configuration for one call: overrides merged over instance defaults."""
        return resolve_config(self.defaults, overrides)

    def _render_fallback(self, formula: str, config: RenderConfig) -> Path:
        return render_fallback(formula, config, self.cache_dir)

    def _render(self, formula: str, config: RenderConfig) -> Path:
        if self.driver is None:
            if not config.fallback_enabled:
                raise ToolUnavailableError("LaTeX rendering is disabled and fallback is not allowed")
            log_fallback("LaTeX rendering is disabled")
            return self._render_fallback(formula, config)

        scratch_dir = self.scratch_dir
        cache_dir = self.cache_dir

        # Extracted images live until every candidate has been tried
        with ScratchFiles() as images_scratch:
            extraction = extract_images(normalize_formula(formula), scratch_dir, images_scratch)
            candidates = build_candidates(extraction.formula, extraction.image_count)
            log_render_start(formula, len(candidates), extraction.image_count)

            outcome: DriverResult = self.driver.run(candidates, config, cache_dir, scratch_dir)

        if outcome.succeeded:
            return outcome.output_file

        error = outcome.last_error or CompileError("Can not compile LaTeX formula")

        if config.fallback_enabled:
            log_fallback(error.message)
            return self._render_fallback(formula, config)

        raise error

    def render_into_file(self, formula: str, **params: Any) -> Path:
        """
        Render formula to a PNG file.

        Args:
            formula: LaTeX formula, possibly with data-URI \\includegraphics directives
            **params: Per-call overrides (density, fallback_enabled, fallback_font,
                fallback_font_size, check_only, debug, output_file)

        Returns:
            Path to a non-empty PNG file (cached or freshly rendered)

        Raises:
            LatexToolsError: If every candidate failed and no fallback image was produced

        Note:
            With debug=True the process exits after the first successful convert.
        """
        return self._render_checked(formula, self.resolve(**params))

    def _render_checked(self, formula: str, config: RenderConfig) -> Path:
        output_file = self._render(formula, config)

        if not is_nonempty_file(output_file):
            raise LatexToolsError("Rendered image is missing or empty", path=output_file)

        return output_file

    def render_into_response(self, formula: str, **params: Any) -> Optional[RenderResponse]:
        """
        Render formula and load the PNG for an HTTP response.

        Returns:
            RenderResponse, or None in debug mode (nothing is emitted)
        """
        config = self.resolve(**params)
        output_file = self._render_checked(formula, config)

        if config.debug:
            _log_debug(f"Debug render, response for {output_file} not emitted")
            return None

        body = output_file.read_bytes()
        return RenderResponse(
            content_type=PNG_CONTENT_TYPE,
            content_length=len(body),
            body=body,
            path=output_file,
        )

    def check(self, formula: str) -> Path:
        """
        Render formula without ever falling back to a bitmap.

        Raises:
            LatexToolsError: If the formula does not typeset
        """
        return self.render_into_file(formula, check_only=True)

    def is_valid_latex(self, formula: str) -> bool:
        """True if formula typesets; never raises."""
        try:
            self.check(formula)
            return True
        except Exception as e:
            _log_debug(f"Formula is not valid LaTeX: {e}")
            return False

    def with_defaults(self, **params: Any) -> "LatexRenderer":
        """Copy of this renderer with params merged into its defaults."""
        clone = copy.copy(self)
        clone.defaults = resolve_config(self.defaults, params)
        return clone
