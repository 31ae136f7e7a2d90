"""
x69 Assembler
=============

This package provides a two-pass assembler for the x69 CPU. It converts
x69 assembly source into a flat binary image addressed from offset 0.

Main Components
---------------
- **Assembler**: Orchestrates parsing and code generation
- **Lexer**: Splits each source line into tokens
- **Parser**: Matches each line against its mnemonic's operand grammar
- **CodeGenerator**: Lays out bytes and resolves label references

Assembly Process
----------------
1. **Parsing (Lexer + Parser)**:
   - Tokenize each line
   - Parse it into a label, directive or instruction statement
   - Splice in `.include`d files

2. **Code Generation (CodeGenerator)**:
   - Layout pass: emit bytes, bind labels, record pending patches
   - Patch pass: overwrite placeholders with resolved addresses

Example Usage
-------------
>>> from x69.assembler import assemble
>>> assemble("add r15, r0, 123")
b'\\xa5\\xf0{'

Supported Features
------------------
- The full x69 instruction set
- Labels with forward references
- `.db` data, `.line` padding and `.include` files
- Decimal, hexadecimal (0x) and binary (0b) literals
- Listing file generation
- Symbol table output
"""

from x69.assembler.assembler import Assembler, assemble, assemble_file
from x69.assembler.lexer import Lexer, Token, TokenType
from x69.assembler.parser import (
    Parser,
    Statement,
    Instruction,
    LabelDef,
    LineDirective,
    DataDirective,
    parse_source,
)
from x69.assembler.codegen import CodeGenerator

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    # Parser
    "Parser",
    "Statement",
    "Instruction",
    "LabelDef",
    "LineDirective",
    "DataDirective",
    "parse_source",
    # Code generator
    "CodeGenerator",
]
