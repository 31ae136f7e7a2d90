"""
x69 Assembly Language Parser
============================

This module turns x69 assembly source into an ordered list of statements
that the code generator lays out. Parsing is line-oriented: each line is
tokenized on its own and matched against a small grammar chosen by the
line's first token.

Statement Types
---------------
1. **LabelDef**: Label declaration
   ```asm
   _loop:
   ```

2. **Instruction**: Mnemonic plus operands shaped by its operand mode
   ```asm
   add r1, r2          // two registers
   add r1, 0x10        // register and immediate
   add r1, r2, 5       // two registers and immediate
   jmp _loop           // label reference
   ```

3. **LineDirective**: Pad the output with zeros up to an absolute offset
   ```asm
   .line 0x100
   ```

4. **DataDirective**: Raw bytes, label addresses and strings
   ```asm
   .db 0 1 table "hi\n"
   ```

`.include "file"` does not produce a statement of its own: the included
file is parsed in place and its statements are spliced into the current
list, so inclusion is purely textual.

Operand Grammar
---------------
The operand mode of a mnemonic selects one grammar:

| Mode                            | Accepted forms                        |
|---------------------------------|---------------------------------------|
| NO_OPERANDS                     | (nothing)                             |
| ONE_REGISTER                    | rA                                    |
| ONE_OR_TWO_REGISTERS            | rA  /  rA, rB                         |
| ONE_REGISTER_IMMEDIATE          | rA, imm8                              |
| TWO_REGISTERS                   | rA, rB                                |
| TWO_REGISTERS_OR_IMMEDIATE      | rA, rB  /  rA, imm8  /  rA, rB, imm8  |
| TWO_REGISTERS_OR_LONG_IMMEDIATE | rA, rB  /  imm16  /  label            |

Error Recovery
--------------
A line that does not match its grammar raises AssemblySyntaxError inside
the line parser. The per-line loop records it as an ERROR diagnostic and
moves on, so one bad line never hides problems on the following lines.
Warnings (literal truncation, empty `.db`) are recorded as they are found.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import logging

from x69.errors import (
    AssemblySyntaxError,
    DiagnosticLog,
    InvalidRegisterError,
    SourceLocation,
)
from x69.assembler.lexer import Lexer, Token, TokenType
from x69.assembler.literals import encode_string, parse_literal, truncation_warning
from x69.cpu import Mnemonic, OperandMode, Register, get_instruction_info


logger = logging.getLogger(__name__)


# =============================================================================
# Operand Payloads
# =============================================================================

@dataclass(frozen=True)
class NoOperands:
    """Operands of a mnemonic that takes none."""
    pass


@dataclass(frozen=True)
class OneRegister:
    a: Register


@dataclass(frozen=True)
class TwoRegisters:
    a: Register
    b: Register


@dataclass(frozen=True)
class RegisterImmediate:
    """One register and an 8-bit immediate."""
    a: Register
    immediate: int


@dataclass(frozen=True)
class TwoRegistersImmediate:
    """Two registers and an 8-bit immediate."""
    a: Register
    b: Register
    immediate: int


@dataclass(frozen=True)
class LongImmediate:
    """A 16-bit immediate."""
    value: int


@dataclass(frozen=True)
class LabelReference:
    """A label whose address becomes the 16-bit immediate."""
    name: str


Operands = Union[
    NoOperands,
    OneRegister,
    TwoRegisters,
    RegisterImmediate,
    TwoRegistersImmediate,
    LongImmediate,
    LabelReference,
]


# =============================================================================
# Statement Data Classes
# =============================================================================

@dataclass
class Statement:
    """
    Base class for all parsed statements.

    Every statement has a source location for diagnostics and the text of
    the line it came from for listings.
    """
    location: SourceLocation
    source_line: str = field(default="", kw_only=True)


@dataclass
class LabelDef(Statement):
    """Label declaration. Names are case-sensitive."""
    name: str


@dataclass
class Instruction(Statement):
    """
    Machine instruction.

    Attributes:
        mnemonic: The resolved mnemonic
        operands: Payload matching one of the mnemonic's operand forms
    """
    mnemonic: Mnemonic
    operands: Operands


@dataclass
class LineDirective(Statement):
    """`.line offset`: pad with zeros up to an absolute offset."""
    offset: int


@dataclass(frozen=True)
class DataByte:
    value: int


@dataclass(frozen=True)
class DataLabel:
    """A label whose 16-bit address is emitted little-endian."""
    name: str


DataItem = Union[DataByte, DataLabel]


@dataclass
class DataDirective(Statement):
    """`.db item*`: raw bytes, label addresses and string bytes."""
    items: list[DataItem]


# =============================================================================
# Directives
# =============================================================================

DIRECTIVE_INCLUDE = "include"
DIRECTIVE_LINE = "line"
DIRECTIVE_DB = "db"

DIRECTIVES = frozenset({DIRECTIVE_INCLUDE, DIRECTIVE_LINE, DIRECTIVE_DB})


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Parses x69 assembly source into statements.

    Diagnostics are collected in `diagnostics` rather than raised. A
    Parser is meant to be used for a single run; included files are parsed
    by child parsers that share the same diagnostic log.

    Usage:
        parser = Parser("main.asm", include_paths=["lib"])
        statements = parser.parse(source)
        if parser.diagnostics.has_errors():
            ...
    """

    def __init__(
        self,
        filename: str = "<input>",
        include_paths: Optional[list[Union[str, Path]]] = None,
        diagnostics: Optional[DiagnosticLog] = None,
        include_stack: Optional[frozenset[Path]] = None,
    ):
        """
        Initialize the parser.

        Args:
            filename: Source filename for diagnostics and include lookup
            include_paths: Extra directories searched for included files
            diagnostics: Log to record into (a new one if None)
            include_stack: Files currently being included, outermost first
        """
        self._filename = filename
        self._include_paths = [Path(p) for p in (include_paths or [])]
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._include_stack = include_stack or frozenset()

        self._lexer = Lexer("", filename)
        self._tokens: list[Token] = []
        self._pos = 0
        self._statements: list[Statement] = []
        self._line_text = ""

    def parse(self, source: str) -> list[Statement]:
        """
        Parse source text.

        Args:
            source: Assembly source text

        Returns:
            Statements in source order, includes spliced in place
        """
        self._statements = []

        for line_number, text in enumerate(source.splitlines()):
            self._tokens = self._lexer.tokenize_line(text, line_number)
            self._pos = 0
            self._line_text = text

            try:
                self._parse_line()
            except AssemblySyntaxError as e:
                self.diagnostics.error(e.location, e.message)

        return self._statements

    def parse_file(self, path: Union[str, Path]) -> list[Statement]:
        """
        Read and parse a source file.

        A missing or unreadable file is recorded as an I/O error and yields
        no statements.
        """
        path = Path(path)
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.diagnostics.io_error(str(path), _system_message(e))
            return []

        self._include_stack = self._include_stack | {path.resolve()}
        return self.parse(source)

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token. The EOL token is returned past the end."""
        if self._pos >= len(self._tokens):
            return self._tokens[-1]
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current()
        if self._pos < len(self._tokens):
            self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Match and consume if current token is one of the types."""
        if self._check(*types):
            return self._advance()
        return None

    def _error(self, message: str, token: Optional[Token] = None) -> AssemblySyntaxError:
        token = token or self._current()
        return AssemblySyntaxError(message, token.location)

    def _location(self) -> SourceLocation:
        return self._current().location

    def _emit(self, statement: Statement) -> None:
        statement.source_line = self._line_text
        self._statements.append(statement)

    # =========================================================================
    # Line Parsing
    # =========================================================================

    def _parse_line(self) -> None:
        """
        Parse the current line.

        Raises:
            AssemblySyntaxError: If the line does not match its grammar
        """
        label = self._match(TokenType.LABEL)
        if label is not None:
            self._emit(LabelDef(label.location, label.value))

        token = self._current()

        if token.type == TokenType.EOL:
            return

        if token.type == TokenType.DIRECTIVE:
            self._parse_directive()
            return

        if token.type == TokenType.IDENTIFIER:
            self._parse_instruction()
            return

        raise self._error(f"unexpected token: {token.describe()}")

    # =========================================================================
    # Instructions
    # =========================================================================

    def _parse_instruction(self) -> None:
        name_token = self._advance()
        mnemonic = Mnemonic.from_name(name_token.value)
        if mnemonic is None:
            raise self._error(f"unknown instruction: {name_token.value}", name_token)

        mode = get_instruction_info(mnemonic).mode
        operands = self._MODE_PARSERS[mode](self, mnemonic)
        self._emit(Instruction(name_token.location, mnemonic, operands))

    def _parse_no_operands(self, mnemonic: Mnemonic) -> Operands:
        if not self._check(TokenType.EOL):
            raise self._error(f"{mnemonic} expects zero parameters, got: {self._current().describe()}")
        return NoOperands()

    def _parse_one_register(self, mnemonic: Mnemonic) -> Operands:
        a = self._expect_register(mnemonic)
        self._expect_eol(mnemonic)
        return OneRegister(a)

    def _parse_one_or_two_registers(self, mnemonic: Mnemonic) -> Operands:
        a = self._expect_register(mnemonic)
        if self._check(TokenType.EOL):
            return OneRegister(a)

        self._expect_comma(mnemonic)
        b = self._expect_register(mnemonic)
        self._expect_eol(mnemonic)
        return TwoRegisters(a, b)

    def _parse_one_register_immediate(self, mnemonic: Mnemonic) -> Operands:
        a = self._expect_register(mnemonic)
        self._expect_comma(mnemonic)
        immediate = self._expect_immediate(mnemonic, 8)
        self._expect_eol_after_immediate(mnemonic)
        return RegisterImmediate(a, immediate)

    def _parse_two_registers(self, mnemonic: Mnemonic) -> Operands:
        a = self._expect_register(mnemonic)
        self._expect_comma(mnemonic)
        b = self._expect_register(mnemonic)
        self._expect_eol(mnemonic)
        return TwoRegisters(a, b)

    def _parse_two_registers_or_immediate(self, mnemonic: Mnemonic) -> Operands:
        a = self._expect_register(mnemonic)
        self._expect_comma(mnemonic)

        token = self._current()
        if token.type == TokenType.NUMBER:
            self._advance()
            immediate = self._immediate(token, 8)
            self._expect_eol_after_immediate(mnemonic)
            return RegisterImmediate(a, immediate)

        if token.type != TokenType.REGISTER:
            raise self._error(
                f"{mnemonic} expects a register or an immediate, got: {token.describe()}")

        b = self._expect_register(mnemonic)
        if self._check(TokenType.EOL):
            return TwoRegisters(a, b)

        self._expect_comma(mnemonic)
        immediate = self._expect_immediate(mnemonic, 8)
        self._expect_eol_after_immediate(mnemonic)
        return TwoRegistersImmediate(a, b, immediate)

    def _parse_two_registers_or_long_immediate(self, mnemonic: Mnemonic) -> Operands:
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            value = self._immediate(token, 16)
            self._expect_eol_after_immediate(mnemonic)
            return LongImmediate(value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if not self._check(TokenType.EOL):
                raise self._error(
                    f"{mnemonic}: unexpected token after label: {self._current().describe()}")
            return LabelReference(token.value)

        if token.type != TokenType.REGISTER:
            raise self._error(
                f"{mnemonic} expects two registers, an immediate or a label, "
                f"got: {token.describe()}")

        a = self._expect_register(mnemonic)
        self._expect_comma(mnemonic)
        b = self._expect_register(mnemonic)
        self._expect_eol(mnemonic)
        return TwoRegisters(a, b)

    _MODE_PARSERS = {
        OperandMode.NO_OPERANDS: _parse_no_operands,
        OperandMode.ONE_REGISTER: _parse_one_register,
        OperandMode.ONE_OR_TWO_REGISTERS: _parse_one_or_two_registers,
        OperandMode.ONE_REGISTER_IMMEDIATE: _parse_one_register_immediate,
        OperandMode.TWO_REGISTERS: _parse_two_registers,
        OperandMode.TWO_REGISTERS_OR_IMMEDIATE: _parse_two_registers_or_immediate,
        OperandMode.TWO_REGISTERS_OR_LONG_IMMEDIATE: _parse_two_registers_or_long_immediate,
    }

    # =========================================================================
    # Operand Helpers
    # =========================================================================

    def _expect_register(self, mnemonic: Mnemonic) -> Register:
        token = self._current()
        if token.type != TokenType.REGISTER:
            raise self._error(f"{mnemonic} expects a register, got: {token.describe()}")
        self._advance()
        try:
            return Register(int(token.value))
        except InvalidRegisterError as e:
            raise self._error(str(e), token) from e

    def _expect_comma(self, mnemonic: Mnemonic) -> None:
        if self._match(TokenType.COMMA) is None:
            raise self._error(
                f"{mnemonic}: expected ',' after register, got: {self._current().describe()}")
        if self._check(TokenType.EOL):
            raise self._error(f"{mnemonic}: trailing ','s are not allowed")

    def _expect_immediate(self, mnemonic: Mnemonic, width: int) -> int:
        token = self._current()
        if token.type != TokenType.NUMBER:
            raise self._error(f"{mnemonic} expects an immediate, got: {token.describe()}")
        self._advance()
        return self._immediate(token, width)

    def _expect_eol(self, mnemonic: Mnemonic) -> None:
        if not self._check(TokenType.EOL):
            raise self._error(f"{mnemonic}: unexpected token: {self._current().describe()}")

    def _expect_eol_after_immediate(self, mnemonic: Mnemonic) -> None:
        if not self._check(TokenType.EOL):
            raise self._error(
                f"{mnemonic}: unexpected token after immediate: {self._current().describe()}")

    def _immediate(self, token: Token, width: int) -> int:
        """
        Interpret a NUMBER token at the given width.

        Truncation of hex/binary literals is recorded as a warning; invalid
        or oversized decimal literals raise.
        """
        try:
            literal = parse_literal(token.value, width)
        except ValueError as e:
            raise self._error(str(e), token) from e

        if literal.truncated:
            self.diagnostics.warning(token.location, truncation_warning(token.value, width))
        return literal.value

    # =========================================================================
    # Directives
    # =========================================================================

    def _parse_directive(self) -> None:
        token = self._advance()
        name = token.value.lower()

        if name == DIRECTIVE_LINE:
            self._parse_line_directive(token)
        elif name == DIRECTIVE_DB:
            self._parse_db_directive(token)
        elif name == DIRECTIVE_INCLUDE:
            self._parse_include_directive(token)
        else:
            raise self._error(f"unknown directive: .{token.value}", token)

    def _parse_line_directive(self, directive: Token) -> None:
        token = self._current()
        if token.type != TokenType.NUMBER:
            raise self._error(f"expected an immediate for line offset, got: {token.describe()}")
        self._advance()
        offset = self._immediate(token, 16)

        if not self._check(TokenType.EOL):
            raise self._error(f"unexpected token after line offset: {self._current().describe()}")
        self._emit(LineDirective(directive.location, offset))

    def _parse_db_directive(self, directive: Token) -> None:
        items: list[DataItem] = []

        while not self._check(TokenType.EOL):
            token = self._advance()
            if token.type == TokenType.NUMBER:
                items.append(DataByte(self._immediate(token, 8)))
            elif token.type == TokenType.IDENTIFIER:
                items.append(DataLabel(token.value))
            elif token.type == TokenType.STRING:
                items.extend(DataByte(b) for b in encode_string(token.value))
            else:
                raise self._error(f"unexpected token in db field: {token.describe()}", token)

        if not items:
            self.diagnostics.warning(directive.location, "empty db field")
        self._emit(DataDirective(directive.location, items))

    def _parse_include_directive(self, directive: Token) -> None:
        token = self._current()
        if token.type != TokenType.STRING:
            raise self._error(f"expected a string file path, got: {token.describe()}")
        self._advance()

        if not self._check(TokenType.EOL):
            raise self._error(f"unexpected token after include path: {self._current().describe()}")

        path = self._resolve_include(token.value)
        resolved = path.resolve()
        if resolved in self._include_stack:
            raise self._error(f"circular include of {token.value}", directive)

        logger.debug("including %s from %s", path, self._filename)

        child = Parser(
            str(path),
            include_paths=self._include_paths,
            diagnostics=self.diagnostics,
            include_stack=self._include_stack,
        )
        self._statements.extend(child.parse_file(path))

    def _resolve_include(self, name: str) -> Path:
        """
        Resolve an include path.

        The including file's directory is tried first, then each include
        path in order. If nothing exists, the first candidate is returned
        so the failure names a sensible path.
        """
        if self._filename != "<input>":
            candidates = [Path(self._filename).parent / name]
        else:
            candidates = [Path(name)]
        candidates.extend(directory / name for directory in self._include_paths)

        for candidate in candidates:
            if candidate.exists():
                return candidate
        return candidates[0]


def _system_message(error: Exception) -> str:
    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    return str(error)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(
    source: str,
    filename: str = "<input>",
    include_paths: Optional[list[Union[str, Path]]] = None
) -> tuple[list[Statement], DiagnosticLog]:
    """
    Convenience function to parse assembly source.

    Args:
        source: Assembly source text
        filename: Source filename for diagnostics
        include_paths: Directories to search for included files

    Returns:
        (statements, diagnostics)
    """
    parser = Parser(filename, include_paths=include_paths)
    statements = parser.parse(source)
    return statements, parser.diagnostics
