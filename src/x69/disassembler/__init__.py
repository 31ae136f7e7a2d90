"""
x69 Disassembler Module
=======================

This module turns x69 machine code back into assembly text. It shares the
opcode table with the assembler, which makes it a convenient check that
an image decodes to what was written.

Usage:
    from x69.disassembler import X69Disassembler

    disasm = X69Disassembler()
    print(disasm.disassemble_to_text(code))
"""

from .x69 import DisassembledInstruction, Shape, X69Disassembler, load_symbol_file

__all__ = [
    "X69Disassembler",
    "DisassembledInstruction",
    "Shape",
    "load_symbol_file",
]
