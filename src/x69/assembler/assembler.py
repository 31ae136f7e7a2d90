"""
x69 Assembler - Main Interface
==============================

This module provides the Assembler class, the primary interface for
assembling x69 source. It runs the parser and the code generator and
gathers their diagnostics into one ordered list.

Example Usage
-------------
>>> from x69.assembler import Assembler
>>>
>>> asm = Assembler()
>>> code = asm.assemble_string('''
... _start:
...     set r1, 10
... _loop:
...     dec r1
...     bzc _loop
...     ret
... ''')
>>> asm.has_errors()
False
>>> asm.write_binary("loop.o")

The Assembler never raises for problems in the program. Diagnostics are
available through `get_diagnostics()` and `has_errors()` tells the caller
whether the image may be used. The module-level `assemble()` and
`assemble_file()` helpers raise AssemblerError instead.

Command-Line Usage
------------------
    $ x69asm program.asm -o program.o -l program.lst -s program.sym

Options:
    -o, --output FILE      Output binary (default: input with .o suffix)
    -l, --listing FILE     Generate listing file
    -s, --symbols FILE     Generate symbol file
    -I, --include PATH     Add include search path
    -v, --verbose          Verbose output
"""

from pathlib import Path
import logging

from x69.assembler.codegen import CodeGenerator
from x69.assembler.parser import Parser
from x69.errors import AssemblerError, Diagnostic, DiagnosticLog


logger = logging.getLogger(__name__)


class Assembler:
    """
    Main x69 assembler class.

    Each call to `assemble_string()` or `assemble_file()` starts from a
    clean state, so assembling the same source twice gives identical
    bytes and diagnostics.

    Attributes:
        verbose: If True, log progress at INFO level instead of DEBUG
    """

    def __init__(self, verbose: bool = False,
                 include_paths: list[str | Path] | None = None):
        """
        Initialize the assembler.

        Args:
            verbose: Enable verbose progress logging
            include_paths: Directories searched for included files after
                           the including file's own directory
        """
        self._verbose = verbose
        self._include_paths: list[Path] = []
        self._codegen = CodeGenerator()
        self._diagnostics = DiagnosticLog()
        self._code = b""

        for path in include_paths or []:
            self.add_include_path(path)

    def _log(self, message: str, *args) -> None:
        logger.log(logging.INFO if self._verbose else logging.DEBUG, message, *args)

    def add_include_path(self, path: str | Path) -> None:
        """
        Add a directory to search for include files.

        Args:
            path: Directory path to add
        """
        path = Path(path)
        if not path.is_dir():
            logger.warning("include path '%s' is not a directory", path)
        self._include_paths.append(path)

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Name used in diagnostics and for resolving includes

        Returns:
            Generated image (check has_errors() before using it)
        """
        self._log("assembling %s", filename)

        parser = Parser(filename, include_paths=self._include_paths)
        statements = parser.parse(source)
        return self._generate(statements, parser.diagnostics)

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        A missing or unreadable file is reported as an I/O diagnostic.

        Args:
            filepath: Path to assembly source file

        Returns:
            Generated image (check has_errors() before using it)
        """
        filepath = Path(filepath)
        self._log("assembling %s", filepath)

        parser = Parser(str(filepath), include_paths=self._include_paths)
        statements = parser.parse_file(filepath)
        return self._generate(statements, parser.diagnostics)

    def _generate(self, statements, parse_diagnostics: DiagnosticLog) -> bytes:
        self._log("parsed %d statements", len(statements))

        self._code = self._codegen.generate(statements)

        self._diagnostics = DiagnosticLog()
        self._diagnostics.extend(parse_diagnostics)
        self._diagnostics.extend(self._codegen.diagnostics)

        self._log(
            "generated %d bytes (%d errors, %d warnings)",
            len(self._code),
            self._diagnostics.error_count(),
            self._diagnostics.warning_count())
        return self._code

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_code(self) -> bytes:
        """Return the image from the last run."""
        return self._code

    def get_symbols(self) -> dict[str, int]:
        """Return label names mapped to offsets."""
        return self._codegen.get_symbols()

    def get_listing(self) -> str:
        return self._codegen.get_listing()

    def write_binary(self, filepath: str | Path) -> None:
        """
        Write the raw image.

        Args:
            filepath: Output file path
        """
        code = self.get_code()
        Path(filepath).write_bytes(code)
        self._log("wrote %d bytes to %s", len(code), filepath)

    def write_listing(self, filepath: str | Path) -> None:
        """
        Write assembly listing file.

        The listing file shows:
        - Addresses
        - Generated bytes
        - Source lines
        - Symbol table

        Args:
            filepath: Output file path
        """
        self._codegen.write_listing(filepath)
        self._log("wrote listing to %s", filepath)

    def write_symbols(self, filepath: str | Path) -> None:
        self._codegen.write_symbols(filepath)
        self._log("wrote symbols to %s", filepath)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def get_diagnostics(self) -> list[Diagnostic]:
        """Return parse and generation diagnostics, in order."""
        return list(self._diagnostics)

    def has_errors(self) -> bool:
        """
        Check if assembly produced errors.

        Returns:
            True if any error or I/O error was recorded
        """
        return self._diagnostics.has_errors()

    def get_error_report(self) -> str:
        return self._diagnostics.report()


# =============================================================================
# Convenience Functions
# =============================================================================

def _raise_on_errors(asm: Assembler) -> None:
    if asm.has_errors():
        raise AssemblerError(asm.get_error_report())


def assemble(source: str, filename: str = "<input>",
             include_paths: list[str | Path] | None = None) -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for diagnostics
        include_paths: Directories to search for included files

    Returns:
        Generated image

    Raises:
        AssemblerError: If any error was recorded
    """
    asm = Assembler(include_paths=include_paths)
    code = asm.assemble_string(source, filename)
    _raise_on_errors(asm)
    return code


def assemble_file(filepath: str | Path,
                  include_paths: list[str | Path] | None = None) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file
        include_paths: Directories to search for included files

    Returns:
        Generated image

    Raises:
        AssemblerError: If any error was recorded
    """
    asm = Assembler(include_paths=include_paths)
    code = asm.assemble_file(filepath)
    _raise_on_errors(asm)
    return code
