"""
x69asm - x69 Assembler Command-Line Interface
=============================================

This module implements the command-line interface for the x69 assembler.

Usage Examples
--------------
Basic assembly (writes program.o next to the source):
    $ x69asm program.asm

With output file:
    $ x69asm program.asm -o program.bin

Generate all output files:
    $ x69asm program.asm -o program.o -l program.lst -s program.sym

With include paths:
    $ x69asm -I ./lib -I ./vendor program.asm

Verbose mode:
    $ x69asm -v program.asm

Every diagnostic is printed to stderr. If any of them is an error, nothing
is written and the exit code is 1.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click

from x69 import __version__
from x69.assembler import Assembler
from x69.cli.errors import ExitCode, handle_cli_exception
from x69.errors import Diagnostic


SEVERITY_COLORS = {
    "WARNING": "yellow",
    "ERROR": "red",
}


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic with its severity label colored."""
    text = str(diagnostic)
    label = diagnostic.severity.label
    styled = click.style(label, fg=SEVERITY_COLORS[label], bold=True)
    return styled + text[len(label):]


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output binary file (default: input with .o suffix)",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate listing file",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "--color/--no-color",
    default=None,
    help="Force or disable colored diagnostics (default: auto-detect)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="x69asm")
def main(
    input_file: Path,
    output: Optional[Path],
    listing: Optional[Path],
    symbols: Optional[Path],
    include: tuple[Path, ...],
    color: Optional[bool],
    verbose: bool,
) -> None:
    """
    Assemble x69 source code into a flat binary image.

    INPUT_FILE is the assembly source file to assemble.

    \b
    Examples:
        x69asm boot.asm               # Outputs boot.o
        x69asm boot.asm -o boot.bin   # Specify output file
        x69asm -I lib/ boot.asm       # Add include path
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    output_file = output if output is not None else input_file.with_suffix(".o")

    asm = Assembler(verbose=verbose, include_paths=list(include))

    try:
        if verbose:
            click.echo(f"Assembling {input_file}...")

        asm.assemble_file(input_file)

        diagnostics = asm.get_diagnostics()
        if diagnostics:
            count = len(diagnostics)
            noun = "message" if count == 1 else "messages"
            click.echo(f"{count} {noun} generated:", err=True)
            for diagnostic in diagnostics:
                click.echo(format_diagnostic(diagnostic), err=True, color=color)

        if asm.has_errors():
            click.echo("Aborting due to previous errors...", err=True)
            sys.exit(ExitCode.BUILD_ERROR)

        try:
            asm.write_binary(output_file)
            if listing:
                asm.write_listing(listing)
            if symbols:
                asm.write_symbols(symbols)
        except OSError as e:
            click.echo(f"ERROR: {e.filename or output_file}: {e.strerror or e}", err=True)
            sys.exit(ExitCode.BUILD_ERROR)

        if verbose:
            code = asm.get_code()
            click.echo(f"Wrote {len(code)} bytes to {output_file}")
            if listing:
                click.echo(f"Wrote listing to {listing}")
            if symbols:
                click.echo(f"Wrote symbols to {symbols}")
            click.echo(f"Defined {len(asm.get_symbols())} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
