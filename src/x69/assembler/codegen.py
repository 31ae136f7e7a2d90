"""
x69 Code Generator
==================

This module lays out parsed statements as x69 machine code and resolves
label references.

Layout Pass
-----------
Statements are walked once, in order, appending to a growing byte buffer:

- Label declaration: the label is bound to the current buffer length.
- `.line offset`: zero bytes are appended until the buffer reaches offset.
- `.db`: literal bytes are appended verbatim; each label item appends a
  two-byte placeholder.
- Instruction: 2 or 3 bytes, see below.

Whenever a label is referenced, a two-byte placeholder (`00 00`) is written
and a pending patch records where it lives.

Patch Pass
----------
After the layout pass the symbol table is complete. Each pending patch is
looked up and its placeholder overwritten with the label's address,
little-endian. A label that was never declared is an "unresolved symbol"
error and its placeholder keeps the `00 00` sentinel.

Resolution is address-transparent: every reference, including the operand
of a relative transfer (BRA, RCL, ...), receives the label's offset exactly
as if that number had been written in the source. A label past 0xFFFF
cannot be encoded and is reported instead of being truncated.

Instruction Encoding
--------------------
```
register form     opcode           (a,b)->nibble
8-bit immediate   opcode | 0x80    (a,b)->nibble   imm8
16-bit immediate  opcode | 0x80    lo              hi
```

Output Formats
--------------
- Raw binary image (addressed from offset 0)
- Listing file with addresses, bytes and source
- Symbol table file
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from x69.errors import DiagnosticLog, SourceLocation
from x69.assembler.parser import (
    DataByte,
    DataDirective,
    DataLabel,
    Instruction,
    LabelDef,
    LabelReference,
    LineDirective,
    LongImmediate,
    NoOperands,
    OneRegister,
    RegisterImmediate,
    Statement,
    TwoRegisters,
    TwoRegistersImmediate,
)
from x69.cpu import (
    IMMEDIATE_FLAG,
    InstructionInfo,
    get_instruction_info,
    pack_nibbles,
)


logger = logging.getLogger(__name__)

PLACEHOLDER = b"\x00\x00"

MAX_ADDRESS = 0xFFFF


# =============================================================================
# Symbol Table Entry
# =============================================================================

@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Label name, case-sensitive
        value: Byte offset in the output image
        location: Where the label was declared
    """
    name: str
    value: int
    location: SourceLocation


@dataclass(frozen=True)
class PendingPatch:
    """
    A placeholder waiting for a label's address.

    Attributes:
        name: Referenced label
        offset: Position of the two placeholder bytes
        location: Source line that made the reference
    """
    name: str
    offset: int
    location: SourceLocation


@dataclass(frozen=True)
class ListingEntry:
    """Byte range emitted for one statement."""
    address: int
    size: int
    location: SourceLocation
    source_line: str


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Generates x69 machine code from parsed statements.

    The generator never raises for problems in the program: duplicate
    labels, backward `.line` offsets and unresolved symbols are recorded
    as diagnostics and generation continues. Callers must check
    `has_errors()` before trusting the output.

    Usage:
        codegen = CodeGenerator()
        code = codegen.generate(statements)
        if codegen.has_errors():
            print(codegen.get_error_report())
    """

    def __init__(self):
        self._code = bytearray()
        self._symbols: dict[str, Symbol] = {}
        self._patches: list[PendingPatch] = []
        self._listing: list[ListingEntry] = []
        self._diagnostics = DiagnosticLog()

    def _reset(self) -> None:
        self._code = bytearray()
        self._symbols = {}
        self._patches = []
        self._listing = []
        self._diagnostics = DiagnosticLog()

    # =========================================================================
    # Public Interface
    # =========================================================================

    def generate(self, statements: list[Statement]) -> bytes:
        """
        Lay out statements and resolve label references.

        Args:
            statements: Parsed statements in address order

        Returns:
            The generated image (check has_errors() before using it)
        """
        self._reset()

        for stmt in statements:
            start = len(self._code)
            self._generate_statement(stmt)
            self._listing.append(ListingEntry(
                start, len(self._code) - start, stmt.location, stmt.source_line))

        self._resolve_patches()

        logger.debug(
            "generated %d bytes, %d symbols, %d patches",
            len(self._code), len(self._symbols), len(self._patches))
        return bytes(self._code)

    def get_code(self) -> bytes:
        """Return the generated image."""
        return bytes(self._code)

    def get_symbols(self) -> dict[str, int]:
        """Return a dictionary of label names to offsets."""
        return {name: sym.value for name, sym in self._symbols.items()}

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._diagnostics

    def has_errors(self) -> bool:
        """Check if any errors occurred during generation."""
        return self._diagnostics.has_errors()

    def get_error_report(self) -> str:
        return self._diagnostics.report()

    # =========================================================================
    # Output Files
    # =========================================================================

    def get_listing(self) -> str:
        """
        Get the assembly listing as a string.

        Returns:
            The listing showing addresses, generated bytes, and source lines,
            followed by the symbol table.
        """
        lines = []
        lines.append("x69 Assembler Listing")
        lines.append("=" * 60)
        lines.append("")
        lines.append("Addr  Code              Line    Source")
        lines.append("-" * 60)

        for entry in self._listing:
            data = self._code[entry.address:entry.address + entry.size]
            code = " ".join(f"{b:02X}" for b in data[:5])
            if entry.size > 5:
                code += " .."
            lines.append(
                f"{entry.address:04X}  {code:16s}  {entry.location.line + 1:<6d}  "
                f"{entry.source_line.strip()}")

        lines.append("")
        lines.append("Symbol Table")
        lines.append("-" * 30)
        for name, sym in sorted(self._symbols.items()):
            lines.append(f"{name:20s} = ${sym.value:04X}")
        return "\n".join(lines)

    def write_listing(self, filepath: str | Path) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.get_listing())
            f.write("\n")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name $address (one per line, sorted by name)
        """
        with open(filepath, "w", encoding="utf-8") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by x69asm\n")
            for name, sym in sorted(self._symbols.items()):
                f.write(f"{name} ${sym.value:04X}\n")

    # =========================================================================
    # Layout
    # =========================================================================

    def _generate_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, LabelDef):
            self._define_label(stmt)
        elif isinstance(stmt, Instruction):
            self._generate_instruction(stmt)
        elif isinstance(stmt, LineDirective):
            self._pad_to(stmt)
        elif isinstance(stmt, DataDirective):
            self._emit_data(stmt)

    def _define_label(self, label: LabelDef) -> None:
        """Bind a label to the current offset; a redeclaration wins."""
        if label.name in self._symbols:
            self._diagnostics.error(
                label.location, f"label {label.name} declared multiple times")

        self._symbols[label.name] = Symbol(label.name, len(self._code), label.location)

    def _pad_to(self, directive: LineDirective) -> None:
        current = len(self._code)
        if directive.offset < current:
            self._diagnostics.error(
                directive.location,
                f"line offset 0x{directive.offset:04X} is behind the current "
                f"offset 0x{current:04X}")
            return

        padding = directive.offset - current
        if padding % 2:
            self._diagnostics.warning(
                directive.location,
                f"padding of {padding} bytes breaks instruction alignment")
        self._code.extend(bytes(padding))

    def _emit_data(self, directive: DataDirective) -> None:
        for item in directive.items:
            if isinstance(item, DataByte):
                self._emit_byte(item.value)
            elif isinstance(item, DataLabel):
                self._emit_placeholder(item.name, directive.location)

    def _generate_instruction(self, inst: Instruction) -> None:
        """Emit one instruction according to its operand payload."""
        info = get_instruction_info(inst.mnemonic)
        ops = inst.operands

        if isinstance(ops, NoOperands):
            self._emit_registers(info, 0, 0)
        elif isinstance(ops, OneRegister):
            self._emit_registers(info, ops.a.value, ops.a.value)
        elif isinstance(ops, TwoRegisters):
            self._emit_registers(info, ops.a.value, ops.b.value)
        elif isinstance(ops, RegisterImmediate):
            self._emit_registers(info, ops.a.value, ops.a.value, ops.immediate)
        elif isinstance(ops, TwoRegistersImmediate):
            self._emit_registers(info, ops.a.value, ops.b.value, ops.immediate)
        elif isinstance(ops, LongImmediate):
            self._emit_byte(info.opcode | IMMEDIATE_FLAG)
            self._emit_word(ops.value)
        elif isinstance(ops, LabelReference):
            self._emit_byte(info.opcode | IMMEDIATE_FLAG)
            self._emit_placeholder(ops.name, inst.location)

    def _emit_registers(
        self,
        info: InstructionInfo,
        a: int,
        b: int,
        immediate: Optional[int] = None
    ) -> None:
        low, high = info.register_map.apply(a, b)
        if immediate is None:
            self._emit_byte(info.opcode)
            self._emit_byte(pack_nibbles(low, high))
        else:
            self._emit_byte(info.opcode | IMMEDIATE_FLAG)
            self._emit_byte(pack_nibbles(low, high))
            self._emit_byte(immediate)

    def _emit_placeholder(self, name: str, location: SourceLocation) -> None:
        self._patches.append(PendingPatch(name, len(self._code), location))
        self._code.extend(PLACEHOLDER)

    def _emit_byte(self, value: int) -> None:
        """Emit a single byte to the output."""
        self._code.append(value & 0xFF)

    def _emit_word(self, value: int) -> None:
        """Emit a 16-bit word to the output (little-endian)."""
        self._code.append(value & 0xFF)
        self._code.append((value >> 8) & 0xFF)

    # =========================================================================
    # Symbol Resolution
    # =========================================================================

    def _resolve_patches(self) -> None:
        for patch in self._patches:
            symbol = self._symbols.get(patch.name)
            if symbol is None:
                self._diagnostics.error(patch.location, f"unresolved symbol: {patch.name}")
                continue

            value = symbol.value
            if value > MAX_ADDRESS:
                self._diagnostics.error(
                    patch.location,
                    f"address of {patch.name} (0x{value:X}) does not fit in 16 bits")
                continue

            logger.debug("patching %s at 0x%04X with 0x%04X", patch.name, patch.offset, value)
            self._code[patch.offset] = value & 0xFF
            self._code[patch.offset + 1] = (value >> 8) & 0xFF
