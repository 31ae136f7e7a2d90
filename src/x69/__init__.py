"""
x69 - Assembler Toolchain for the x69 CPU
=========================================

This package provides a two-pass assembler and a disassembler for the x69,
a byte-oriented CPU with sixteen general registers and variable-length
2/3-byte instructions.

Main Components
---------------
- **assembler**: x69 assembler (x69asm)
    Converts assembly source files into a flat binary image

- **disassembler**: x69 disassembler (x69dis)
    Decodes binary images back into assembly text

- **cpu**: Instruction set definition
    Mnemonics, operand modes, register maps and the opcode table

Quick Start
-----------
Assemble a program:
    >>> from x69.assembler import Assembler
    >>> asm = Assembler()
    >>> code = asm.assemble_file("boot.asm")
    >>> if not asm.has_errors():
    ...     asm.write_binary("boot.o")

Or use the command-line tools:
    $ x69asm boot.asm -o boot.o -s boot.sym
    $ x69dis boot.o -S boot.sym
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from x69.assembler import Assembler, assemble, assemble_file
from x69.disassembler import X69Disassembler
from x69.errors import (
    X69Error,
    AssemblerError,
    AssemblySyntaxError,
    InvalidRegisterError,
    SourceLocation,
    Severity,
    Diagnostic,
    DiagnosticLog,
)

__all__ = [
    "__version__",
    "Assembler",
    "assemble",
    "assemble_file",
    "X69Disassembler",
    "X69Error",
    "AssemblerError",
    "AssemblySyntaxError",
    "InvalidRegisterError",
    "SourceLocation",
    "Severity",
    "Diagnostic",
    "DiagnosticLog",
]
