"""
x69 Error Hierarchy and Diagnostics
===================================

This module defines the exception hierarchy for the x69 toolchain and the
diagnostic records the assembler collects while it works.

Exception Hierarchy
-------------------
X69Error (base)
├── AssemblerError - assembly failed (raised by the convenience helpers)
│   └── AssemblySyntaxError - a single source line could not be parsed
└── InvalidRegisterError - register number outside 0-15 (also a ValueError)

Diagnostics vs. Exceptions
--------------------------
Source problems are never thrown across component boundaries. The parser
and the code generator record them as `Diagnostic` values in a
`DiagnosticLog` and keep going; only the calling layer decides whether the
presence of an error means the output must be discarded.

`AssemblySyntaxError` is the one exception that travels inside the parser:
it aborts the remainder of the current line and is converted into an
ERROR diagnostic by the per-line loop.

Diagnostic text follows this shape (line numbers are stored 0-based and
printed 1-based):

    WARNING: program.asm:12: immediate 0xDEAD will be truncated to an 8-bit value
    ERROR: program.asm:40: unresolved symbol: _loop
    ERROR: missing.asm: No such file or directory
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class X69Error(Exception):
    """
    Base exception for all x69 toolchain errors.

    Callers can catch every toolchain-specific failure with one clause:

        try:
            code = assemble(source)
        except X69Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A line in a source file.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number, 0-based
    """
    filename: str
    line: int

    def __str__(self) -> str:
        """Format as 'filename:line' with a 1-based line number."""
        return f"{self.filename}:{self.line + 1}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(X69Error):
    """
    Base exception for assembler failures.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: error: {self.message}"
        return f"error: {self.message}"


class AssemblySyntaxError(AssemblerError):
    """
    A source line does not match the grammar of its mnemonic or directive.

    Examples:
        - Unknown mnemonic or directive
        - Register where an immediate was expected
        - Trailing tokens after the last operand
        - Register number out of range
    """
    pass


class InvalidRegisterError(X69Error, ValueError):
    """Register number outside the 0-15 range."""

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"register out of bounds: {value}")


# =============================================================================
# Diagnostics
# =============================================================================

class Severity(Enum):
    """Severity of a diagnostic."""
    WARNING = "WARNING"
    ERROR = "ERROR"
    IO_ERROR = "IO_ERROR"

    @property
    def label(self) -> str:
        """Prefix used when printing a diagnostic."""
        return "WARNING" if self is Severity.WARNING else "ERROR"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single warning or error produced while assembling.

    Attributes:
        severity: WARNING, ERROR or IO_ERROR
        message: Human-readable description
        filename: File the diagnostic refers to
        line: 0-based source line, None for I/O errors
    """
    severity: Severity
    message: str
    filename: str
    line: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """True for ERROR and IO_ERROR diagnostics."""
        return self.severity is not Severity.WARNING

    @property
    def location(self) -> Optional[SourceLocation]:
        if self.line is None:
            return None
        return SourceLocation(self.filename, self.line)

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.severity.label}: {self.filename}: {self.message}"
        return f"{self.severity.label}: {self.filename}:{self.line + 1}: {self.message}"


class DiagnosticLog:
    """
    Ordered collection of diagnostics.

    Both the parser and the code generator append to a log instead of
    raising, so that every problem in a program is reported in one run.

    Example:
        log = DiagnosticLog()
        log.warning(location, "odd padding breaks instruction alignment")
        log.error(location, "unresolved symbol: _loop")

        if log.has_errors():
            print(log.report())
    """

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        self._entries.append(diagnostic)

    def warning(self, location: SourceLocation, message: str) -> None:
        """Record a warning at a source location."""
        self.add(Diagnostic(Severity.WARNING, message, location.filename, location.line))

    def error(self, location: SourceLocation, message: str) -> None:
        """Record an error at a source location."""
        self.add(Diagnostic(Severity.ERROR, message, location.filename, location.line))

    def io_error(self, filename: str, message: str) -> None:
        """Record an I/O failure that is not tied to a source line."""
        self.add(Diagnostic(Severity.IO_ERROR, message, filename))

    def extend(self, diagnostics: "DiagnosticLog | list[Diagnostic]") -> None:
        """Append diagnostics from another log, preserving order."""
        self._entries.extend(diagnostics)

    def has_errors(self) -> bool:
        """Return True if any error-severity diagnostic was recorded."""
        return any(d.is_error for d in self._entries)

    def error_count(self) -> int:
        return sum(1 for d in self._entries if d.is_error)

    def warning_count(self) -> int:
        return sum(1 for d in self._entries if not d.is_error)

    def errors(self) -> list[Diagnostic]:
        return [d for d in self._entries if d.is_error]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._entries if not d.is_error]

    def report(self) -> str:
        """
        Format all diagnostics followed by a summary line.

        Returns:
            One diagnostic per line, then "N errors, M warnings"
        """
        lines = [str(d) for d in self._entries]

        errors = self.error_count()
        warnings = self.warning_count()
        error_word = "error" if errors == 1 else "errors"
        warning_word = "warning" if warnings == 1 else "warnings"
        lines.append(f"{errors} {error_word}, {warnings} {warning_word}")

        return "\n".join(lines)

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> Diagnostic:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DiagnosticLog):
            return self._entries == other._entries
        if isinstance(other, list):
            return self._entries == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"DiagnosticLog({self._entries!r})"
