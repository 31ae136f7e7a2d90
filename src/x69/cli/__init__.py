"""
x69 Command-Line Interface
==========================

This package provides the command-line tools for the x69 toolchain:

- **x69asm**: Assembler
- **x69dis**: Disassembler

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["x69asm", "x69dis"]
