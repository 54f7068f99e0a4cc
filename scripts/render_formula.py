#!/usr/bin/env python3
"""
Formula Rendering CLI

Renders LaTeX formulas to PNG and checks whether formulas typeset.

Commands:
    render - Render a formula to a PNG file and print its path
    check  - Exit 0 if a formula typesets, 1 otherwise

Examples:\n

    render_formula.py render 'x^2+y^2=z^2'                     # Render to the cache

    render_formula.py render 'e^{i\\pi}+1=0' -o euler.png      # Render to a given file

    render_formula.py render --file formula.tex --no-fallback  # Fail instead of falling back

    render_formula.py check '\\frac{a}{b'                       # Validate only
"""

from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from texpng.contexts.rendering import LatexRenderer, LatexToolsError, load_config_file
from texpng.contexts.rendering.logger import setup_rendering_logger

app = typer.Typer(
    help="Render LaTeX formulas to PNG images",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _read_formula(formula: Optional[str], formula_file: Optional[Path]) -> str:
    if formula_file is not None:
        return formula_file.read_text(encoding="utf-8")
    if formula is None:
        typer.secho("Error: provide a formula or --file\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return formula


def _build_renderer(
    latex: Optional[Path],
    dvipng: Optional[Path],
    cache_dir: Optional[Path],
    scratch_dir: Optional[Path],
    config_file: Optional[Path],
) -> LatexRenderer:
    defaults = load_config_file(config_file) if config_file is not None else None
    try:
        return LatexRenderer(
            latex_path=latex,
            dvipng_path=dvipng,
            cache_path=cache_dir,
            temp_path=scratch_dir,
            defaults=defaults,
        )
    except LatexToolsError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


FormulaArg = Annotated[Optional[str], typer.Argument(help="LaTeX formula")]
FileOpt = Annotated[
    Optional[Path],
    typer.Option("--file", "-f", help="Read the formula from a file", exists=True, dir_okay=False),
]
LatexOpt = Annotated[Optional[Path], typer.Option("--latex", help="Path to the latex program")]
DvipngOpt = Annotated[Optional[Path], typer.Option("--dvipng", help="Path to the dvipng program")]
CacheOpt = Annotated[Optional[Path], typer.Option("--cache-dir", help="Directory for rendered PNGs")]
ScratchOpt = Annotated[
    Optional[Path], typer.Option("--scratch-dir", help="Directory for intermediate files")
]
ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML file with render defaults", exists=True, dir_okay=False),
]
LogDirOpt = Annotated[Optional[Path], typer.Option("--log-dir", help="Write a session log here")]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug log messages")]


@app.command("render")
def render_command(
    formula: FormulaArg = None,
    formula_file: FileOpt = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the PNG here instead of the cache")
    ] = None,
    density: Annotated[
        Optional[int], typer.Option("--density", "-d", help="Resolution in DPI", min=10, max=2400)
    ] = None,
    no_fallback: Annotated[
        bool, typer.Option("--no-fallback", help="Fail instead of drawing a plain-text image")
    ] = False,
    font: Annotated[Optional[str], typer.Option("--font", help="Font file for fallback images")] = None,
    font_size: Annotated[
        Optional[int], typer.Option("--font-size", help="Font size for fallback images", min=1)
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Print documents and commands, then exit after the first convert"),
    ] = False,
    latex: LatexOpt = None,
    dvipng: DvipngOpt = None,
    cache_dir: CacheOpt = None,
    scratch_dir: ScratchOpt = None,
    config_file: ConfigOpt = None,
    log_dir: LogDirOpt = None,
    verbose: VerboseOpt = False,
):
    """
    Render a formula to PNG and print the output path.

    Examples:\n

        $ render_formula.py render 'x^2+y^2=z^2'

        $ render_formula.py render 'x^2' --density 300 -o x2.png
    """
    text = _read_formula(formula, formula_file)
    renderer = _build_renderer(latex, dvipng, cache_dir, scratch_dir, config_file)
    setup_rendering_logger(log_dir, renderer.latex_path, renderer.dvipng_path, verbose=verbose)

    try:
        output_file = renderer.render_into_file(
            text,
            output_file=output,
            density=density,
            fallback_enabled=False if no_fallback else None,
            fallback_font=font,
            fallback_font_size=font_size,
            debug=debug or None,
        )
    except LatexToolsError as e:
        typer.secho(f"✗ Rendering failed: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(str(output_file))


@app.command("check")
def check_command(
    formula: FormulaArg = None,
    formula_file: FileOpt = None,
    latex: LatexOpt = None,
    dvipng: DvipngOpt = None,
    cache_dir: CacheOpt = None,
    scratch_dir: ScratchOpt = None,
    config_file: ConfigOpt = None,
    log_dir: LogDirOpt = None,
    verbose: VerboseOpt = False,
):
    """
    Check whether a formula typesets. Never draws a fallback image.

    Examples:\n

        $ render_formula.py check '\\sqrt{2}'        # exit code 0

        $ render_formula.py check '\\frac{1}{'       # exit code 1
    """
    text = _read_formula(formula, formula_file)
    renderer = _build_renderer(latex, dvipng, cache_dir, scratch_dir, config_file)
    setup_rendering_logger(log_dir, renderer.latex_path, renderer.dvipng_path, verbose=verbose)

    if renderer.is_valid_latex(text):
        typer.secho("✓ Formula is valid", fg=typer.colors.GREEN, bold=True)
        return

    typer.secho("✗ Formula does not typeset", fg=typer.colors.RED, bold=True)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
