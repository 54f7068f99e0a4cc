"""Unit tests for the toolchain driver, using stand-in latex/dvipng programs."""

import dataclasses
import io

import pytest

from texpng.contexts.preprocessing.document_builder import build_candidates
from texpng.contexts.rendering.compiler import AttemptState, ToolchainDriver
from texpng.contexts.rendering.config import FORMAT_IMAGE, RenderConfig
from texpng.contexts.rendering.exceptions import CompileError, ConvertError
from texpng.utils.hashing import cache_key

ARTIFACT_SUFFIXES = {".tex", ".aux", ".log", ".dvi"}


def leftover_artifacts(scratch_dir):
    return [p.name for p in scratch_dir.iterdir() if p.suffix in ARTIFACT_SUFFIXES]


@pytest.fixture
def driver_for(make_toolchain):
    def _make(latex="ok", dvipng="ok", debug_sink=None):
        toolchain = make_toolchain(latex=latex, dvipng=dvipng)
        return ToolchainDriver(toolchain.latex, toolchain.dvipng, debug_sink=debug_sink), toolchain

    return _make


@pytest.mark.unit
def test_first_candidate_success(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for()
    candidates = build_candidates("x^2")
    config = RenderConfig()

    outcome = driver.run(candidates, config, cache_dir, scratch_dir)

    assert outcome.succeeded
    assert len(outcome.attempts) == 1
    attempt = outcome.attempts[0]
    assert attempt.kind == "direct"
    assert attempt.state is AttemptState.DONE
    assert attempt.digest == cache_key(candidates[0].source, config.cache_fields(FORMAT_IMAGE))
    assert outcome.output_file == cache_dir / f"latex-{attempt.digest}.png"
    assert outcome.output_file.stat().st_size > 0
    assert len(toolchain.calls_to("latex")) == 1
    assert len(toolchain.calls_to("dvipng")) == 1
    assert leftover_artifacts(scratch_dir) == []


@pytest.mark.unit
def test_commands(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for()
    config = RenderConfig(density=222)

    attempt = driver.attempt(build_candidates("x")[0], config, cache_dir, scratch_dir)

    compile_cmd, convert_cmd = attempt.commands
    assert compile_cmd == [str(toolchain.latex), "--interaction=nonstopmode", f"latex-{attempt.digest}.tex"]
    assert convert_cmd[:3] == [str(toolchain.dvipng), "-q", "-D"]
    assert "222" in convert_cmd
    assert convert_cmd[-2:] == [
        str(cache_dir / f"latex-{attempt.digest}.png"),
        str(scratch_dir / f"latex-{attempt.digest}.dvi"),
    ]


@pytest.mark.unit
def test_falls_through_to_multiline_candidate(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for(latex="multiline_only")

    outcome = driver.run(build_candidates("a \\\\ b"), RenderConfig(), cache_dir, scratch_dir)

    assert [a.kind for a in outcome.attempts] == ["direct", "multiline"]
    assert outcome.attempts[0].failed_at is AttemptState.COMPILE
    assert isinstance(outcome.attempts[0].error, CompileError)
    assert outcome.attempts[1].succeeded
    assert len(toolchain.calls_to("latex")) == 2
    assert len(toolchain.calls_to("dvipng")) == 1
    assert leftover_artifacts(scratch_dir) == []


@pytest.mark.unit
@pytest.mark.parametrize("behavior", ["fail", "emergency", "nodvi", "emptydvi"])
def test_compile_failures(driver_for, cache_dir, scratch_dir, behavior):
    driver, toolchain = driver_for(latex=behavior)

    outcome = driver.run(build_candidates("x"), RenderConfig(), cache_dir, scratch_dir)

    assert not outcome.succeeded
    assert [a.failed_at for a in outcome.attempts] == [AttemptState.COMPILE, AttemptState.COMPILE]
    assert isinstance(outcome.last_error, CompileError)
    assert toolchain.calls_to("dvipng") == []
    assert list(cache_dir.iterdir()) == []
    assert leftover_artifacts(scratch_dir) == []


@pytest.mark.unit
@pytest.mark.parametrize("behavior", ["fail", "empty"])
def test_convert_failures(driver_for, cache_dir, scratch_dir, behavior):
    driver, toolchain = driver_for(dvipng=behavior)

    outcome = driver.run(build_candidates("x"), RenderConfig(), cache_dir, scratch_dir)

    assert not outcome.succeeded
    assert [a.failed_at for a in outcome.attempts] == [AttemptState.CONVERT, AttemptState.CONVERT]
    assert isinstance(outcome.last_error, ConvertError)
    assert "Can not convert DVI file to PNG" in str(outcome.last_error)
    assert len(toolchain.calls_to("dvipng")) == 2
    assert leftover_artifacts(scratch_dir) == []


@pytest.mark.unit
def test_cache_hit_runs_no_tools(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for()
    candidates = build_candidates("x")
    config = RenderConfig()
    digest = cache_key(candidates[0].source, config.cache_fields(FORMAT_IMAGE))
    cached = cache_dir / f"latex-{digest}.png"
    cached.write_bytes(b"\x89PNG cached")

    outcome = driver.run(candidates, config, cache_dir, scratch_dir)

    assert outcome.output_file == cached
    assert outcome.attempts[0].cache_hit
    assert toolchain.calls == []
    assert list(scratch_dir.iterdir()) == []


@pytest.mark.unit
def test_empty_cached_file_is_not_a_hit(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for()
    candidates = build_candidates("x")
    config = RenderConfig()
    digest = cache_key(candidates[0].source, config.cache_fields(FORMAT_IMAGE))
    (cache_dir / f"latex-{digest}.png").write_bytes(b"")

    outcome = driver.run(candidates, config, cache_dir, scratch_dir)

    assert outcome.succeeded
    assert not outcome.attempts[0].cache_hit
    assert len(toolchain.calls_to("latex")) == 1
    assert outcome.output_file.stat().st_size > 0


@pytest.mark.unit
def test_check_only_skips_cache(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for()
    candidates = build_candidates("x")
    config = RenderConfig(check_only=True, fallback_enabled=False)
    digest = cache_key(candidates[0].source, config.cache_fields(FORMAT_IMAGE))
    (cache_dir / f"latex-{digest}.png").write_bytes(b"\x89PNG cached")

    outcome = driver.run(candidates, config, cache_dir, scratch_dir)

    assert outcome.succeeded
    assert not outcome.attempts[0].cache_hit
    assert len(toolchain.calls_to("latex")) == 1


@pytest.mark.unit
def test_failed_convert_keeps_existing_output(driver_for, cache_dir, scratch_dir, tmp_path):
    driver, toolchain = driver_for(dvipng="fail")
    output_file = tmp_path / "previous.png"
    output_file.write_bytes(b"\x89PNG from an earlier run")
    config = RenderConfig(check_only=True, fallback_enabled=False, output_file=output_file)

    outcome = driver.run(build_candidates("x"), config, cache_dir, scratch_dir)

    assert outcome.succeeded
    assert outcome.output_file == output_file
    assert output_file.read_bytes() == b"\x89PNG from an earlier run"
    assert len(toolchain.calls_to("dvipng")) == 1


@pytest.mark.unit
def test_output_file_override_bypasses_cache_path(driver_for, cache_dir, scratch_dir, tmp_path):
    driver, _ = driver_for()
    output_file = tmp_path / "out" / "formula.png"
    output_file.parent.mkdir()
    config = RenderConfig(output_file=output_file)

    outcome = driver.run(build_candidates("x"), config, cache_dir, scratch_dir)

    assert outcome.output_file == output_file
    assert output_file.stat().st_size > 0
    assert list(cache_dir.iterdir()) == []


@pytest.mark.unit
def test_debug_writes_diagnostics_and_exits(driver_for, cache_dir, scratch_dir):
    sink = io.StringIO()
    driver, toolchain = driver_for(debug_sink=sink)
    candidates = build_candidates("x^2")
    config = RenderConfig(debug=True)

    with pytest.raises(SystemExit) as exc_info:
        driver.run(candidates, config, cache_dir, scratch_dir)

    assert exc_info.value.code == 0
    diagnostics = sink.getvalue()
    assert "<pre>" + candidates[0].source + "</pre>" in diagnostics
    assert "--interaction=nonstopmode" in diagnostics
    assert str(toolchain.dvipng) in diagnostics
    assert leftover_artifacts(scratch_dir) == []


@pytest.mark.unit
def test_debug_ignores_cache_but_not_cache_identity(driver_for, cache_dir, scratch_dir):
    driver, toolchain = driver_for(debug_sink=io.StringIO())
    candidates = build_candidates("x")
    config = RenderConfig()
    digest = cache_key(candidates[0].source, config.cache_fields(FORMAT_IMAGE))
    cached = cache_dir / f"latex-{digest}.png"
    cached.write_bytes(b"\x89PNG cached")

    with pytest.raises(SystemExit):
        driver.run(candidates, dataclasses.replace(config, debug=True), cache_dir, scratch_dir)

    # Same digest, so the debug run overwrote the cached image in place
    assert len(toolchain.calls_to("latex")) == 1
    assert cached.read_bytes() != b"\x89PNG cached"
