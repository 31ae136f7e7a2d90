"""
x69 Disassembler
================

Disassembles x69 machine code into assembly text the assembler accepts.
This is the inverse of the code generator's instruction encoding.

Decoding
--------
The first byte of an instruction identifies both the mnemonic and the
instruction's shape, because the immediate flag (bit 7) is part of it:

    flag clear   opcode  nibble              2 bytes
    flag set     opcode  nibble  imm8        3 bytes (8-bit immediate modes)
    flag set     opcode  lo      hi          3 bytes (16-bit immediate modes)

The nibble byte is split into (low, high) and the mnemonic's register map
is inverted to recover the operands in source order.

Usage:
    disasm = X69Disassembler()

    for instr in disasm.disassemble(code):
        print(instr)

    instr = disasm.disassemble_one(code, address=0x10, offset=0x10)
    print(instr.mnemonic, instr.operand_str)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from x69.cpu import (
    IMMEDIATE_FLAG,
    OPCODE_TABLE,
    REGISTER_ONLY_MODES,
    InstructionInfo,
    Mnemonic,
    OperandMode,
    unpack_nibbles,
)


class Shape(Enum):
    """Byte layout of an encoded instruction."""
    REGISTERS = auto()        # opcode nibble
    SHORT_IMMEDIATE = auto()  # opcode nibble imm8
    LONG_IMMEDIATE = auto()   # opcode lo hi

    @property
    def size(self) -> int:
        return 2 if self is Shape.REGISTERS else 3


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    A single disassembled x69 instruction.

    Attributes:
        address: Offset of the instruction in the image
        opcode: The first byte, immediate flag included
        mnemonic: Mnemonic name, or ".db" for an undecodable byte
        operand_str: Operands in assembler syntax
        size: Instruction size in bytes
        raw_bytes: All bytes comprising this instruction
        registers: Register operands in source order, if any
        immediate: 8- or 16-bit immediate, if any
        comment: Optional annotation (transfer targets, decode problems)
    """
    address: int
    opcode: int
    mnemonic: str
    operand_str: str
    size: int
    raw_bytes: bytes
    registers: Optional[Tuple[int, int]] = None
    immediate: Optional[int] = None
    comment: str = ""

    def __str__(self) -> str:
        """Format as listing line: ADDRESS: BYTES  MNEMONIC OPERANDS"""
        hex_bytes = " ".join(f"{b:02X}" for b in self.raw_bytes).ljust(8)

        if self.operand_str:
            asm = f"{self.mnemonic} {self.operand_str}"
        else:
            asm = self.mnemonic

        if self.comment:
            return f"{self.address:04X}: {hex_bytes}  {asm:<20} // {self.comment}"
        return f"{self.address:04X}: {hex_bytes}  {asm}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": self.address,
            "opcode": f"0x{self.opcode:02X}",
            "mnemonic": self.mnemonic,
            "operand": self.operand_str,
            "size": self.size,
            "bytes": [f"0x{b:02X}" for b in self.raw_bytes],
            "registers": list(self.registers) if self.registers else None,
            "immediate": self.immediate,
            "comment": self.comment,
        }


# =============================================================================
# x69 Disassembler
# =============================================================================

class X69Disassembler:
    """
    Disassembler for x69 machine code.

    A reverse table keyed by first byte is built from the shared opcode
    table, so the assembler and disassembler cannot disagree.

    Attributes:
        _reverse_table: Maps first byte to (mnemonic, info, shape)
        _symbol_table: Optional address -> name map for annotations
    """

    def __init__(self, symbol_table: Optional[Dict[int, str]] = None):
        """
        Initialize the disassembler.

        Args:
            symbol_table: Optional dict mapping addresses to label names,
                          used to annotate transfer targets.
        """
        self._symbol_table = symbol_table or {}
        self._reverse_table = self._build_reverse_table()

    @staticmethod
    def _build_reverse_table() -> Dict[int, Tuple[Mnemonic, InstructionInfo, Shape]]:
        """
        Build the first-byte lookup table.

        Modes without an immediate only occupy the plain opcode; modes that
        always carry an 8-bit immediate only occupy opcode|0x80; the mixed
        modes occupy both.
        """
        reverse = {}

        def add(byte: int, mnemonic: Mnemonic, info: InstructionInfo, shape: Shape) -> None:
            if byte in reverse:
                raise ValueError(
                    f"opcode 0x{byte:02X} is shared by {reverse[byte][0]} and {mnemonic}")
            reverse[byte] = (mnemonic, info, shape)

        for mnemonic, info in OPCODE_TABLE.items():
            flagged = info.opcode | IMMEDIATE_FLAG

            if info.mode in REGISTER_ONLY_MODES:
                add(info.opcode, mnemonic, info, Shape.REGISTERS)
            elif info.mode == OperandMode.ONE_REGISTER_IMMEDIATE:
                add(flagged, mnemonic, info, Shape.SHORT_IMMEDIATE)
            elif info.mode == OperandMode.TWO_REGISTERS_OR_IMMEDIATE:
                add(info.opcode, mnemonic, info, Shape.REGISTERS)
                add(flagged, mnemonic, info, Shape.SHORT_IMMEDIATE)
            elif info.mode == OperandMode.TWO_REGISTERS_OR_LONG_IMMEDIATE:
                add(info.opcode, mnemonic, info, Shape.REGISTERS)
                add(flagged, mnemonic, info, Shape.LONG_IMMEDIATE)

        return reverse

    def disassemble_one(
        self,
        data: bytes,
        address: int = 0,
        offset: int = 0
    ) -> DisassembledInstruction:
        """
        Disassemble a single instruction.

        Args:
            data: Byte buffer containing the instruction
            address: Address of the instruction (for display and targets)
            offset: Offset into data buffer where instruction starts

        Returns:
            DisassembledInstruction with decoded information

        Raises:
            ValueError: If offset is beyond the data
        """
        if offset >= len(data):
            raise ValueError(f"Offset {offset} beyond data length {len(data)}")

        opcode = data[offset]

        if opcode not in self._reverse_table:
            return DisassembledInstruction(
                address=address,
                opcode=opcode,
                mnemonic=".db",
                operand_str=f"0x{opcode:02X}",
                size=1,
                raw_bytes=bytes([opcode]),
                comment="unknown opcode",
            )

        mnemonic, info, shape = self._reverse_table[opcode]
        size = shape.size

        if offset + size > len(data):
            partial = bytes(data[offset:])
            return DisassembledInstruction(
                address=address,
                opcode=opcode,
                mnemonic=".db",
                operand_str=" ".join(f"0x{b:02X}" for b in partial),
                size=len(partial),
                raw_bytes=partial,
                comment=f"incomplete {mnemonic}",
            )

        raw = bytes(data[offset:offset + size])

        if shape is Shape.LONG_IMMEDIATE:
            value = raw[1] | (raw[2] << 8)
            return DisassembledInstruction(
                address=address,
                opcode=opcode,
                mnemonic=str(mnemonic),
                operand_str=f"0x{value:04X}",
                size=size,
                raw_bytes=raw,
                immediate=value,
                comment=self._target_comment(value),
            )

        low, high = unpack_nibbles(raw[1])
        a, b = info.register_map.invert(low, high)
        immediate = raw[2] if shape is Shape.SHORT_IMMEDIATE else None

        return DisassembledInstruction(
            address=address,
            opcode=opcode,
            mnemonic=str(mnemonic),
            operand_str=self._format_operands(info.mode, a, b, immediate),
            size=size,
            raw_bytes=raw,
            registers=None if info.mode == OperandMode.NO_OPERANDS else (a, b),
            immediate=immediate,
        )

    @staticmethod
    def _format_operands(mode: OperandMode, a: int, b: int, immediate: Optional[int]) -> str:
        """Format register/immediate operands in assembler syntax."""
        if mode == OperandMode.NO_OPERANDS:
            return ""
        if mode == OperandMode.ONE_REGISTER:
            return f"r{a}"
        if mode == OperandMode.ONE_REGISTER_IMMEDIATE:
            return f"r{a}, 0x{immediate:02X}"
        if immediate is None:
            return f"r{a}, r{b}"
        if a == b:
            return f"r{a}, 0x{immediate:02X}"
        return f"r{a}, r{b}, 0x{immediate:02X}"

    def _target_comment(self, value: int) -> str:
        """Name the label at a 16-bit operand, if the symbol table has one."""
        return self._symbol_table.get(value, "")

    def disassemble(
        self,
        data: bytes,
        start_address: int = 0,
        count: Optional[int] = None,
        max_bytes: Optional[int] = None
    ) -> List[DisassembledInstruction]:
        """
        Disassemble multiple instructions.

        Args:
            data: Byte buffer containing machine code
            start_address: Address of the first byte
            count: Maximum number of instructions to disassemble (None = all)
            max_bytes: Maximum number of bytes to process (None = all)

        Returns:
            List of DisassembledInstruction objects
        """
        result = []
        offset = 0
        address = start_address

        while offset < len(data):
            if count is not None and len(result) >= count:
                break
            if max_bytes is not None and offset >= max_bytes:
                break

            instr = self.disassemble_one(data, address, offset)
            result.append(instr)

            offset += instr.size
            address += instr.size

        return result

    def disassemble_to_text(
        self,
        data: bytes,
        start_address: int = 0,
        count: Optional[int] = None
    ) -> str:
        """
        Disassemble and return formatted text output.

        Args:
            data: Byte buffer containing machine code
            start_address: Address of the first byte
            count: Maximum number of instructions

        Returns:
            Multi-line string with disassembly listing
        """
        instructions = self.disassemble(data, start_address, count)
        return "\n".join(str(instr) for instr in instructions)

    def add_symbol(self, address: int, name: str) -> None:
        self._symbol_table[address] = name

    def add_symbols(self, symbols: Dict[int, str]) -> None:
        """
        Add multiple symbols to the symbol table.

        Args:
            symbols: Dictionary mapping addresses to names
        """
        self._symbol_table.update(symbols)


def load_symbol_file(text: str) -> Dict[int, str]:
    """
    Parse a symbol file written by the assembler.

    Lines have the form `name $XXXX`; lines starting with '#' are skipped.

    Returns:
        Dictionary mapping addresses to names
    """
    symbols = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != 2 or not parts[1].startswith("$"):
            raise ValueError(f"malformed symbol line: {line!r}")
        symbols[int(parts[1][1:], 16)] = parts[0]
    return symbols
