"""
x69dis - x69 Disassembler Command-Line Interface
================================================

This module implements the command-line interface for the x69 disassembler.

Usage Examples
--------------
Disassemble an image:
    $ x69dis program.o

With base address:
    $ x69dis code.bin --address 0x100

Limit number of instructions:
    $ x69dis code.bin --count 20

Annotate transfer targets with labels from the assembler:
    $ x69dis program.o --symbol-file program.sym

Output to file:
    $ x69dis program.o -o program.dis
"""

from pathlib import Path
from typing import Optional
import sys

import click

from x69 import __version__
from x69.cli.errors import ExitCode
from x69.disassembler import X69Disassembler, load_symbol_file


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
    help="Output file (default: stdout)",
)
@click.option(
    "-a", "--address",
    type=str,
    default="0",
    help="Base address for disassembly (hex with 0x prefix or decimal). Default: 0",
)
@click.option(
    "-c", "--count",
    type=int,
    default=None,
    help="Maximum number of instructions to disassemble (default: all)",
)
@click.option(
    "-S", "--symbol-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Symbol file written by x69asm -s, used to annotate targets",
)
@click.option(
    "--no-bytes",
    is_flag=True,
    help="Omit raw bytes from output (show only mnemonic and operands)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="x69dis")
def main(
    input_file: Path,
    output: Optional[Path],
    address: str,
    count: Optional[int],
    symbol_file: Optional[Path],
    no_bytes: bool,
    verbose: bool,
) -> None:
    """
    Disassemble an x69 binary image.

    INPUT_FILE is the binary file to disassemble.

    \b
    Examples:
        x69dis boot.o
        x69dis boot.o --count 20 -o boot.dis
        x69dis boot.o -S boot.sym
    """
    try:
        if address.lower().startswith("0x"):
            base_address = int(address, 16)
        else:
            base_address = int(address)
    except ValueError:
        click.echo(f"Error: Invalid address '{address}'", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    if not 0 <= base_address <= 0xFFFF:
        click.echo("Error: Address must be 0-65535 (0x0000-0xFFFF)", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    data = input_file.read_bytes()
    if len(data) == 0:
        click.echo(f"Error: {input_file} is empty", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    disasm = X69Disassembler()
    if symbol_file is not None:
        try:
            disasm.add_symbols(load_symbol_file(symbol_file.read_text(encoding="utf-8")))
        except ValueError as e:
            click.echo(f"Error: {symbol_file}: {e}", err=True)
            sys.exit(ExitCode.INVALID_ARGS)

    if verbose:
        click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)
        click.echo(f"Base address: 0x{base_address:04X}", err=True)

    output_lines = [
        f"// Disassembly of {input_file.name}",
        f"// Size: {len(data)} bytes",
        "",
    ]

    instructions = disasm.disassemble(data, start_address=base_address, count=count)
    for instr in instructions:
        if no_bytes:
            line = f"{instr.mnemonic} {instr.operand_str}".rstrip()
            if instr.comment:
                line = f"{line:<24} // {instr.comment}"
            output_lines.append(line)
        else:
            output_lines.append(str(instr))

    result = "\n".join(output_lines) + "\n"

    if output:
        try:
            output.write_text(result, encoding="utf-8")
        except OSError as e:
            click.echo(f"ERROR: {output}: {e.strerror or e}", err=True)
            sys.exit(ExitCode.BUILD_ERROR)
        if verbose:
            click.echo(f"Output written to: {output}", err=True)
    else:
        click.echo(result, nl=False)

    if verbose:
        click.echo(f"Instructions disassembled: {len(instructions)}", err=True)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
