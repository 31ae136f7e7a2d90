"""
x69 Assembly Language Lexer
===========================

This module implements a line-oriented lexer for x69 assembly language.
Each source line is converted into a flat sequence of tokens terminated by
an EOL token. The lexer never fails: anything it cannot classify becomes an
UNKNOWN token and the parser reports it in context.

Token Types
-----------
- IDENTIFIER: Mnemonics and label references (`add`, `_loop`)
- LABEL: Label declaration, identifier immediately followed by ':' (`_loop:`)
- DIRECTIVE: Dot-prefixed directive name (`.db`, `.line`, `.include`)
- NUMBER: Numeric literal, kept as raw text (`123`, `0xFF`, `0b1010`)
- REGISTER: Register reference, value is the raw digit text (`r15` -> "15")
- STRING: Double-quoted string with escapes decoded
- COMMA: Operand separator
- UNKNOWN: Anything else, including an unterminated string
- EOL: End of line

Numbers are deliberately left as text: the radix, the target width and the
truncation rules depend on where the number appears, which only the parser
knows (see `x69.assembler.literals`). Likewise register digits are not
range-checked here.

Comments
--------
`//` starts a comment that runs to the end of the line.

Example
-------
>>> from x69.assembler.lexer import Lexer
>>> for token in Lexer("_start: add r1, 0x10 // bump").tokenize():
...     print(token)
Token(LABEL, '_start', 0:1)
Token(IDENTIFIER, 'add', 0:9)
Token(REGISTER, '1', 0:13)
Token(COMMA, ',', 0:15)
Token(NUMBER, '0x10', 0:17)
Token(EOL, 0:22)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from x69.errors import SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for x69 assembly language."""

    IDENTIFIER = auto()  # Mnemonic or label reference
    LABEL = auto()       # name: (declaration)
    DIRECTIVE = auto()   # .name
    NUMBER = auto()      # Numeric literal, raw text
    REGISTER = auto()    # rN, value holds the digits
    STRING = auto()      # "..."
    COMMA = auto()       # ,
    UNKNOWN = auto()     # Unclassifiable text
    EOL = auto()         # End of line


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from one source line.

    Attributes:
        type: The TokenType classification
        value: Token text (decoded text for strings, digits for registers)
        line: Line number in source (0-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: Optional[str]
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for diagnostics."""
        return SourceLocation(self.filename, self.line)

    def describe(self) -> str:
        """Short description used in parser error messages."""
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.value}'"
        if self.type == TokenType.LABEL:
            return f"label '{self.value}:'"
        if self.type == TokenType.DIRECTIVE:
            return f"directive '.{self.value}'"
        if self.type == TokenType.NUMBER:
            return f"immediate {self.value}"
        if self.type == TokenType.REGISTER:
            return f"register r{self.value}"
        if self.type == TokenType.STRING:
            return f"string {self.value!r}"
        if self.type == TokenType.COMMA:
            return "','"
        if self.type == TokenType.EOL:
            return "end of line"
        return f"unknown token '{self.value}'"


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes x69 assembly source one line at a time.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

        # or, for a single line
        tokens = lexer.tokenize_line("add r1, r2", 0)

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for diagnostics)
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters + "_"

    # Characters that can continue an identifier
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    # Escape sequences in strings
    ESCAPE_SEQUENCES = {
        "n": "\n",      # Newline
        "r": "\r",      # Carriage return
        "t": "\t",      # Tab
        "\\": "\\",     # Backslash
        '"': '"',       # Double quote
        "0": "\0",      # Null
    }

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        # Per-line scanning state
        self._text = ""
        self._pos = 0
        self._line = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens for every line of the source.

        Yields:
            Tokens line by line, each line closed by an EOL token
        """
        for line_number, text in enumerate(self.source.splitlines()):
            yield from self.tokenize_line(text, line_number)

    def tokenize_line(self, text: str, line_number: int) -> list[Token]:
        """
        Tokenize a single line.

        Args:
            text: The line text without its newline
            line_number: 0-based line number used in token locations

        Returns:
            The tokens of the line, always ending with an EOL token
        """
        self._text = text
        self._pos = 0
        self._line = line_number

        tokens = []
        while not self._at_end():
            if self._skip_whitespace():
                continue
            if self._skip_comment():
                break
            tokens.append(self._scan_token())

        tokens.append(self._make_token(TokenType.EOL, None, self._pos))
        return tokens

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self._text)

    def _peek(self, offset: int = 0) -> str:
        """
        Look at character at current position + offset without advancing.

        Returns empty string if past end of line.
        """
        pos = self._pos + offset
        if pos >= len(self._text):
            return ""
        return self._text[pos]

    def _advance(self) -> str:
        if self._at_end():
            return ""
        char = self._text[self._pos]
        self._pos += 1
        return char

    def _make_token(self, token_type: TokenType, value: Optional[str], start: int) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=self._line,
            column=start + 1,
            filename=self.filename,
        )

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace(self) -> bool:
        skipped = False
        # '' in ' \t' is True, so check for a character first
        while self._peek() and self._peek() in " \t\r\f\v":
            self._advance()
            skipped = True
        return skipped

    def _skip_comment(self) -> bool:
        """Return True if the rest of the line is a // comment."""
        return self._peek() == "/" and self._peek(1) == "/"

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start = self._pos
        char = self._peek()

        if char == ",":
            self._advance()
            return self._make_token(TokenType.COMMA, ",", start)

        if char == '"':
            return self._scan_string(start)

        if char == ".":
            return self._scan_directive(start)

        if char in self.IDENT_START:
            return self._scan_identifier(start)

        if char in string.digits:
            return self._scan_number(start)

        self._advance()
        return self._make_token(TokenType.UNKNOWN, char, start)

    def _scan_word(self) -> str:
        start = self._pos
        while self._peek() and self._peek() in self.IDENT_CHARS:
            self._advance()
        return self._text[start:self._pos]

    def _scan_identifier(self, start: int) -> Token:
        """
        Scan an identifier, label declaration or register.

        A word of the form r<digits> or R<digits> is a register; a word
        followed directly by ':' is a label declaration.
        """
        word = self._scan_word()

        if self._peek() == ":":
            self._advance()
            return self._make_token(TokenType.LABEL, word, start)

        if len(word) > 1 and word[0] in "rR" and word[1:].isdigit():
            return self._make_token(TokenType.REGISTER, word[1:], start)

        return self._make_token(TokenType.IDENTIFIER, word, start)

    def _scan_directive(self, start: int) -> Token:
        self._advance()  # consume '.'
        if not (self._peek() and self._peek() in self.IDENT_START):
            return self._make_token(TokenType.UNKNOWN, ".", start)
        name = self._scan_word()
        return self._make_token(TokenType.DIRECTIVE, name, start)

    def _scan_number(self, start: int) -> Token:
        """Scan a numeric literal as raw text; digits are validated later."""
        text = self._scan_word()
        return self._make_token(TokenType.NUMBER, text, start)

    def _scan_string(self, start: int) -> Token:
        """
        Scan a double-quoted string literal.

        Supports escape sequences: \\n, \\r, \\t, \\\\, \\", \\0, \\xNN.
        A string that is not closed before the end of the line becomes an
        UNKNOWN token holding the raw text.
        """
        self._advance()  # consume opening "

        chars = []
        while not self._at_end():
            char = self._advance()

            if char == '"':
                return self._make_token(TokenType.STRING, "".join(chars), start)

            if char == "\\":
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(char)

        return self._make_token(TokenType.UNKNOWN, self._text[start:], start)

    def _scan_escape_sequence(self) -> str:
        """
        Scan an escape sequence after backslash.

        Returns:
            The character represented by the escape sequence
        """
        if self._at_end():
            return "\\"

        char = self._advance()

        if char in self.ESCAPE_SEQUENCES:
            return self.ESCAPE_SEQUENCES[char]

        # Hex escape: \xNN
        if char == "x":
            hex_chars = []
            for _ in range(2):
                if self._peek() and self._peek() in string.hexdigits:
                    hex_chars.append(self._advance())
                else:
                    break
            if hex_chars:
                return chr(int("".join(hex_chars), 16))

        # Unknown escape - treat as literal
        return char
