"""
LaTeX Toolchain Driver

Runs latex then dvipng for each candidate document, in order, stopping at the
first candidate that yields a non-empty PNG.

Each attempt moves through PREPARE -> COMPILE -> CONVERT -> DONE. A failure in
COMPILE or CONVERT ends the attempt in FAILED and the driver moves on to the next
candidate; failures are returned as values, never raised across candidates.
Scratch files of an attempt (.tex, .aux, .log, .dvi) are removed when the attempt
ends, whatever the outcome.

Debug mode writes each document and command to a diagnostic sink and terminates
the process right after a successful convert. Debug runs are for inspecting
the toolchain by hand and never hand a result back to the caller.
"""

import json
import re
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from texpng.contexts.preprocessing.document_builder import CandidateDocument
from texpng.contexts.rendering.config import FORMAT_IMAGE, RenderConfig
from texpng.contexts.rendering.exceptions import CompileError, ConvertError, LatexToolsError
from texpng.contexts.rendering.logger import _log_debug, log_attempt_result, log_cache_hit
from texpng.utils.filesystem import ScratchFiles, is_nonempty_file
from texpng.utils.hashing import cache_file_name, cache_key

# LaTeX intermediate files created for each attempt
LATEX_ARTIFACTS = [".tex", ".aux", ".log", ".dvi"]

EMERGENCY_STOP = re.compile(r"Emergency stop", re.IGNORECASE)

DEBUG_BLOCK = "<pre>{}</pre>\n"


class AttemptState(Enum):
    PREPARE = "prepare"
    COMPILE = "compile"
    CONVERT = "convert"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AttemptResult:
    """
    Outcome of one candidate attempt.

    Attributes:
        kind: Candidate kind ("direct" or "multiline")
        state: DONE on success, FAILED otherwise
        failed_at: Stage that failed (COMPILE or CONVERT), None on success
        digest: Cache key of the candidate
        output_file: PNG path on success
        cache_hit: True when the output already existed and no tool ran
        error: Failure description when state is FAILED
        commands: Commands executed during the attempt
    """

    kind: str
    state: AttemptState
    digest: str
    failed_at: Optional[AttemptState] = None
    output_file: Optional[Path] = None
    cache_hit: bool = False
    error: Optional[LatexToolsError] = None
    commands: List[List[str]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is AttemptState.DONE


@dataclass
class DriverResult:
    """
    Outcome of running every candidate.

    Attributes:
        attempts: One AttemptResult per candidate tried, in order
    """

    attempts: List[AttemptResult] = field(default_factory=list)

    @property
    def output_file(self) -> Optional[Path]:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.output_file
        return None

    @property
    def succeeded(self) -> bool:
        return self.output_file is not None

    @property
    def last_error(self) -> Optional[LatexToolsError]:
        for attempt in reversed(self.attempts):
            if attempt.error is not None:
                return attempt.error
        return None


def _run(command: Sequence[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run a command to completion with combined stdout/stderr and no stdin."""
    return subprocess.run(
        [str(arg) for arg in command],
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",  # TeX output is not guaranteed to be UTF-8
    )


class ToolchainDriver:
    """
    Drives latex and dvipng over a list of candidate documents.

    Args:
        latex_path: Resolved LaTeX compiler (DVI output mode)
        dvipng_path: Resolved DVI to PNG converter
        debug_sink: Text stream receiving debug diagnostics
    """

    def __init__(self, latex_path: Path, dvipng_path: Path, debug_sink: Optional[TextIO] = None):
        self.latex_path = Path(latex_path)
        self.dvipng_path = Path(dvipng_path)
        self.debug_sink = debug_sink

    def _debug(self, config: RenderConfig, text: str) -> None:
        if config.debug:
            sink = self.debug_sink if self.debug_sink is not None else sys.stdout
            sink.write(DEBUG_BLOCK.format(text))
            sink.flush()

    def compile_command(self, tex_file: Path) -> List[str]:
        return [str(self.latex_path), "--interaction=nonstopmode", tex_file.name]

    def convert_command(self, dvi_file: Path, output_file: Path, density: int) -> List[str]:
        return [
            str(self.dvipng_path),
            "-q",
            "-D",
            str(density),
            "-T",
            "tight",
            "-bg",
            "Transparent",
            "-o",
            str(output_file),
            str(dvi_file),
        ]

    def compile(self, tex_file: Path, config: RenderConfig) -> Path:
        """
        Compile tex_file to DVI inside its own directory.

        Returns:
            Path to the DVI file

        Raises:
            CompileError: On non-zero exit, an emergency stop, or a missing/empty DVI
        """
        command = self.compile_command(tex_file)
        self._debug(config, " ".join(command))

        try:
            result = _run(command, cwd=tex_file.parent)
        except OSError as e:
            raise CompileError(f"Can not run latex: {e}", command=command) from e

        self._debug(config, json.dumps(result.stdout.splitlines(), indent=4))

        dvi_file = tex_file.with_suffix(".dvi")
        if result.returncode != 0:
            raise CompileError(
                f"latex exited with status {result.returncode}", command=command, output=result.stdout
            )
        if EMERGENCY_STOP.search(result.stdout):
            raise CompileError("latex reported an emergency stop", command=command, output=result.stdout)
        if not is_nonempty_file(dvi_file):
            raise CompileError("latex produced no DVI output", command=command, output=result.stdout, path=dvi_file)

        return dvi_file

    def convert(self, dvi_file: Path, output_file: Path, config: RenderConfig) -> Path:
        """
        Convert a DVI file to PNG.

        A non-empty output_file left by an earlier attempt counts as success even
        if this run fails, so a failed retry never discards a good image.

        Raises:
            ConvertError: If the converter fails and no usable output exists
        """
        command = self.convert_command(dvi_file, output_file, config.density)
        self._debug(config, " ".join(command))

        try:
            result = _run(command)
        except OSError as e:
            raise ConvertError(f"Can not run dvipng: {e}", command=command) from e

        if is_nonempty_file(output_file):
            if result.returncode != 0:
                _log_debug(f"dvipng exited with {result.returncode}, keeping existing {output_file}")
            return output_file

        raise ConvertError(
            "Can not convert DVI file to PNG", command=command, output=result.stdout, path=output_file
        )

    def attempt(
        self,
        candidate: CandidateDocument,
        config: RenderConfig,
        cache_dir: Path,
        scratch_dir: Path,
    ) -> AttemptResult:
        """
        Run one candidate through PREPARE -> COMPILE -> CONVERT.

        Args:
            candidate: Document to compile
            config: Resolved render configuration
            cache_dir: Directory holding cached PNGs
            scratch_dir: Directory for intermediate files

        Returns:
            AttemptResult in state DONE or FAILED
        """
        self._debug(config, candidate.source)

        # PREPARE
        digest = cache_key(candidate.source, config.cache_fields(FORMAT_IMAGE))
        if config.output_file is not None:
            output_file = Path(config.output_file)
        else:
            output_file = cache_dir / cache_file_name(digest)

        result = AttemptResult(kind=candidate.kind, state=AttemptState.PREPARE, digest=digest)

        if not config.debug and not config.check_only and is_nonempty_file(output_file):
            log_cache_hit(output_file)
            result.state = AttemptState.DONE
            result.output_file = output_file
            result.cache_hit = True
            return result

        with ScratchFiles() as scratch:
            paths = {ext: scratch.register(scratch_dir / cache_file_name(digest, ext)) for ext in LATEX_ARTIFACTS}
            tex_file = paths[".tex"]

            try:
                tex_file.write_text(candidate.source, encoding="utf-8")
            except OSError as e:
                result.state = AttemptState.FAILED
                result.failed_at = AttemptState.PREPARE
                result.error = CompileError("Can not create temporary formula file", path=tex_file, output=str(e))
                log_attempt_result(candidate.kind, result)
                return result

            # COMPILE
            result.state = AttemptState.COMPILE
            result.commands.append(self.compile_command(tex_file))
            try:
                dvi_file = self.compile(tex_file, config)
            except CompileError as e:
                result.failed_at = AttemptState.COMPILE
                result.state = AttemptState.FAILED
                result.error = e
                log_attempt_result(candidate.kind, result)
                return result

            # CONVERT
            result.state = AttemptState.CONVERT
            result.commands.append(self.convert_command(dvi_file, output_file, config.density))
            try:
                self.convert(dvi_file, output_file, config)
            except ConvertError as e:
                result.failed_at = AttemptState.CONVERT
                result.state = AttemptState.FAILED
                result.error = e
                log_attempt_result(candidate.kind, result)
                return result

            result.state = AttemptState.DONE
            result.output_file = output_file
            log_attempt_result(candidate.kind, result)

            if config.debug:
                # Terminal action of debug mode; scratch files are still removed on the way out
                sys.exit(0)

        return result

    def run(
        self,
        candidates: Sequence[CandidateDocument],
        config: RenderConfig,
        cache_dir: Path,
        scratch_dir: Path,
    ) -> DriverResult:
        """
        Attempt candidates in order until one succeeds.

        Returns:
            DriverResult listing every attempt made
        """
        outcome = DriverResult()
        for candidate in candidates:
            attempt = self.attempt(candidate, config, cache_dir, scratch_dir)
            outcome.attempts.append(attempt)
            if attempt.succeeded:
                break
        return outcome
