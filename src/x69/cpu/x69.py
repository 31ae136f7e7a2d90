"""
x69 Instruction Set Definition
==============================

This module defines the x69 instruction set: the register file, the closed
set of mnemonics, the operand grammar each mnemonic accepts and the base
opcode byte it assembles to.

The x69 is a byte-oriented CPU with sixteen 8-bit general registers
(r0-r15) and four 16-bit special registers (PC, LR, SP, AR).

Instruction Format
------------------
Every instruction is 2 or 3 bytes long:

    opcode  nibble              (register form, 2 bytes)
    opcode  nibble  imm8        (8-bit immediate form, 3 bytes)
    opcode  lo      hi          (16-bit immediate / address form, 3 bytes)

Bit 7 of the opcode is the immediate flag. It is never part of a table
entry; the code generator sets it when an immediate follows.

The nibble byte packs two registers: `(low & 0x0F) | (high << 4)`. Which
source operand lands in which half is decided by the mnemonic's register
map (see `RegisterMap`).

Opcode Classes
--------------
Bits 6..5 of the opcode select the class:

1. **Class 00** (`0b00xxxxxx`): ALU and data movement. Bit 4 selects the
   second member of a pair (AND/NND, ADD/ADC, ...), bits 3..0 select the
   operation.

2. **Class 01** (`0b01xxxxxx`): special registers and control transfer.

       bit  6   5 4 3   2   1 0
            1   cond    d   reg

   - cond `000`: plain special-register access. `d` is the direction
     (1 = load the special register, 0 = store it into a register pair).
   - cond `001`: return from call.
   - cond `011`: unconditional transfer.
   - cond `1FP`: gated transfer. F picks the flag (0 zero, 1 carry) and
     P the polarity (1 if set, 0 if clear).

   For transfers `d` marks the target as relative to the address of the
   instruction itself, and `reg` is PC for jumps or LR for calls (a call
   latches the return address into LR before loading PC).

The control-transfer mnemonics are composed from these fields by
`control_transfer()` once, at import time; the public table holds only
the resulting constants.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from types import MappingProxyType
from typing import Mapping, Optional

from x69.errors import InvalidRegisterError


# =============================================================================
# Registers
# =============================================================================

REGISTER_COUNT = 16

IMMEDIATE_FLAG = 0x80


@dataclass(frozen=True)
class Register:
    """
    A general-purpose register number.

    Construction validates the range, so an out-of-range register can never
    exist:

        >>> Register(3)
        Register(3)
        >>> Register(16)
        Traceback (most recent call last):
        ...
        x69.errors.InvalidRegisterError: register out of bounds: 16
    """
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value < REGISTER_COUNT:
            raise InvalidRegisterError(self.value)

    def __str__(self) -> str:
        return f"r{self.value}"

    def __repr__(self) -> str:
        return f"Register({self.value})"


class SpecialRegister(IntEnum):
    """Special register ids as encoded in bits 1..0 of class-01 opcodes."""
    PC = 0  # Program counter
    LR = 1  # Link register
    SP = 2  # Stack pointer
    AR = 3  # Address register


class StatusFlag(IntEnum):
    """Status flag selector for gated transfers."""
    ZERO = 0
    CARRY = 1


@dataclass(frozen=True)
class Gate:
    """Condition under which a gated transfer is taken."""
    flag: StatusFlag
    when_set: bool


# =============================================================================
# Operand Modes and Register Maps
# =============================================================================

class OperandMode(Enum):
    """
    Operand grammar accepted by a mnemonic.

    The mode decides which operand combinations are legal and therefore
    how many bytes the instruction occupies.
    """
    NO_OPERANDS = auto()                      # NOP
    ONE_REGISTER = auto()                     # CLR r1
    ONE_OR_TWO_REGISTERS = auto()             # NOT r1 / NOT r1, r2
    ONE_REGISTER_IMMEDIATE = auto()           # SET r1, 0x10
    TWO_REGISTERS = auto()                    # CMP r1, r2
    TWO_REGISTERS_OR_IMMEDIATE = auto()       # ADD r1, r2 / ADD r1, 5 / ADD r1, r2, 5
    TWO_REGISTERS_OR_LONG_IMMEDIATE = auto()  # JMP r1, r2 / JMP 0x1234 / JMP label

    def __str__(self) -> str:
        """Return human-readable name for error messages."""
        return {
            OperandMode.NO_OPERANDS: "no operands",
            OperandMode.ONE_REGISTER: "one register",
            OperandMode.ONE_OR_TWO_REGISTERS: "one or two registers",
            OperandMode.ONE_REGISTER_IMMEDIATE: "register and 8-bit immediate",
            OperandMode.TWO_REGISTERS: "two registers",
            OperandMode.TWO_REGISTERS_OR_IMMEDIATE: "two registers or immediate",
            OperandMode.TWO_REGISTERS_OR_LONG_IMMEDIATE: "two registers or 16-bit immediate",
        }[self]


class RegisterMap(Enum):
    """
    How the parsed (first, second) register pair is placed in the nibble byte.

    AA: first operand fills both nibbles
    AB: first operand low, second operand high
    BA: second operand low, first operand high
    """
    AA = auto()
    AB = auto()
    BA = auto()

    def apply(self, a: int, b: int) -> tuple[int, int]:
        """Reorder (first, second) into (low, high)."""
        if self is RegisterMap.AA:
            return a, a
        if self is RegisterMap.AB:
            return a, b
        return b, a

    def invert(self, low: int, high: int) -> tuple[int, int]:
        """Recover (first, second) from a decoded (low, high) pair."""
        if self is RegisterMap.AA:
            return low, low
        if self is RegisterMap.AB:
            return low, high
        return high, low


def pack_nibbles(low: int, high: int) -> int:
    """Pack two register numbers into one byte."""
    return (low & 0x0F) | ((high & 0x0F) << 4)


def unpack_nibbles(byte: int) -> tuple[int, int]:
    """Split a nibble byte into (low, high)."""
    return byte & 0x0F, (byte >> 4) & 0x0F


# =============================================================================
# Mnemonics
# =============================================================================

class Mnemonic(Enum):
    """The closed set of x69 mnemonics."""
    # ALU / data movement
    NOP = "NOP"
    CLR = "CLR"
    SER = "SER"
    NOT = "NOT"
    TWO = "TWO"
    AND = "AND"
    NND = "NND"
    ORR = "ORR"
    NOR = "NOR"
    XOR = "XOR"
    XNR = "XNR"
    ADD = "ADD"
    ADC = "ADC"
    SUB = "SUB"
    SBC = "SBC"
    INC = "INC"
    DEC = "DEC"
    MOV = "MOV"
    MVN = "MVN"
    SET = "SET"
    STN = "STN"
    CMP = "CMP"
    # Special register loads
    LPC = "LPC"
    LLR = "LLR"
    LSP = "LSP"
    LAR = "LAR"
    # Special register stores
    SPC = "SPC"
    SLR = "SLR"
    SSP = "SSP"
    SAR = "SAR"
    # Return
    RET = "RET"
    # Absolute jumps
    JMP = "JMP"
    JZS = "JZS"
    JZC = "JZC"
    JCS = "JCS"
    JCC = "JCC"
    # Relative jumps
    BRA = "BRA"
    BZS = "BZS"
    BZC = "BZC"
    BCS = "BCS"
    BCC = "BCC"
    # Absolute calls
    CAL = "CAL"
    CZS = "CZS"
    CZC = "CZC"
    CCS = "CCS"
    CCC = "CCC"
    # Relative calls
    RCL = "RCL"
    RZS = "RZS"
    RZC = "RZC"
    RCS = "RCS"
    RCC = "RCC"

    @classmethod
    def from_name(cls, name: str) -> Optional["Mnemonic"]:
        """Resolve a mnemonic case-insensitively, None if unknown."""
        return _MNEMONIC_NAMES.get(name.upper())

    def __str__(self) -> str:
        return self.value


_MNEMONIC_NAMES: dict[str, Mnemonic] = {m.value: m for m in Mnemonic}


# =============================================================================
# Instruction Information
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    Encoding information for one mnemonic.

    Attributes:
        opcode: Base opcode byte, immediate flag clear
        mode: Operand grammar
        register_map: Placement of register operands in the nibble byte
    """
    opcode: int
    mode: OperandMode
    register_map: RegisterMap

    def __repr__(self) -> str:
        return (
            f"InstructionInfo(opcode=0x{self.opcode:02X}, mode={self.mode.name}, "
            f"register_map={self.register_map.name})"
        )


# =============================================================================
# Class-01 Opcode Composition
# =============================================================================

_CLASS_SPECIAL = 0b01000000

_COND_ACCESS = 0b000
_COND_RETURN = 0b001
_COND_ALWAYS = 0b011
_COND_GATED = 0b100

_DIRECTION_BIT = 0b100


def special_access(register: SpecialRegister, write: bool) -> int:
    """
    Opcode for moving a special register to or from a register pair.

    Args:
        register: Special register being accessed
        write: True to load the special register, False to store it

    Returns:
        The base opcode byte
    """
    opcode = _CLASS_SPECIAL | (_COND_ACCESS << 3) | int(register)
    if write:
        opcode |= _DIRECTION_BIT
    return opcode


def control_transfer(
    target: SpecialRegister,
    relative: bool = False,
    gate: Optional[Gate] = None
) -> int:
    """
    Opcode for a jump (target PC) or call (target LR).

    Args:
        target: PC for a jump, LR for a call
        relative: True if the operand is an offset from this instruction
        gate: Condition for a gated transfer, None for unconditional

    Returns:
        The base opcode byte
    """
    if gate is None:
        cond = _COND_ALWAYS
    else:
        cond = _COND_GATED | (int(gate.flag) << 1) | int(gate.when_set)

    opcode = _CLASS_SPECIAL | (cond << 3) | int(target)
    if relative:
        opcode |= _DIRECTION_BIT
    return opcode


def return_opcode() -> int:
    return _CLASS_SPECIAL | (_COND_RETURN << 3)


def _build_table() -> dict[Mnemonic, InstructionInfo]:
    M = Mnemonic
    Mode = OperandMode
    Map = RegisterMap

    table = {
        M.NOP: InstructionInfo(0b00101001, Mode.NO_OPERANDS, Map.AB),
        M.CLR: InstructionInfo(0b00100000, Mode.ONE_REGISTER, Map.AA),
        M.SER: InstructionInfo(0b00110000, Mode.ONE_REGISTER, Map.AA),
        M.NOT: InstructionInfo(0b00100001, Mode.ONE_OR_TWO_REGISTERS, Map.BA),
        M.TWO: InstructionInfo(0b00110001, Mode.ONE_OR_TWO_REGISTERS, Map.BA),
        M.AND: InstructionInfo(0b00100010, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.NND: InstructionInfo(0b00110010, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.ORR: InstructionInfo(0b00100011, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.NOR: InstructionInfo(0b00110011, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.XOR: InstructionInfo(0b00100100, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.XNR: InstructionInfo(0b00110100, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.ADD: InstructionInfo(0b00100101, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.ADC: InstructionInfo(0b00110101, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.SUB: InstructionInfo(0b00100110, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.SBC: InstructionInfo(0b00110110, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.INC: InstructionInfo(0b00100111, Mode.ONE_OR_TWO_REGISTERS, Map.BA),
        M.DEC: InstructionInfo(0b00110111, Mode.ONE_OR_TWO_REGISTERS, Map.BA),
        M.MOV: InstructionInfo(0b00101000, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.MVN: InstructionInfo(0b00111000, Mode.TWO_REGISTERS_OR_IMMEDIATE, Map.BA),
        M.SET: InstructionInfo(0b00101001, Mode.ONE_REGISTER_IMMEDIATE, Map.AA),
        M.STN: InstructionInfo(0b00111001, Mode.ONE_REGISTER_IMMEDIATE, Map.AA),
        M.CMP: InstructionInfo(0b00101010, Mode.TWO_REGISTERS, Map.AB),
        M.RET: InstructionInfo(return_opcode(), Mode.NO_OPERANDS, Map.AB),
    }

    loads = {M.LPC: SpecialRegister.PC, M.LLR: SpecialRegister.LR,
             M.LSP: SpecialRegister.SP, M.LAR: SpecialRegister.AR}
    stores = {M.SPC: SpecialRegister.PC, M.SLR: SpecialRegister.LR,
              M.SSP: SpecialRegister.SP, M.SAR: SpecialRegister.AR}

    for mnemonic, register in loads.items():
        table[mnemonic] = InstructionInfo(
            special_access(register, write=True),
            Mode.TWO_REGISTERS_OR_LONG_IMMEDIATE, Map.AB)
    for mnemonic, register in stores.items():
        table[mnemonic] = InstructionInfo(
            special_access(register, write=False),
            Mode.TWO_REGISTERS, Map.AB)

    # (mnemonic, target, relative, gate)
    zero_set = Gate(StatusFlag.ZERO, True)
    zero_clear = Gate(StatusFlag.ZERO, False)
    carry_set = Gate(StatusFlag.CARRY, True)
    carry_clear = Gate(StatusFlag.CARRY, False)

    transfers = [
        (M.JMP, SpecialRegister.PC, False, None),
        (M.JZS, SpecialRegister.PC, False, zero_set),
        (M.JZC, SpecialRegister.PC, False, zero_clear),
        (M.JCS, SpecialRegister.PC, False, carry_set),
        (M.JCC, SpecialRegister.PC, False, carry_clear),
        (M.BRA, SpecialRegister.PC, True, None),
        (M.BZS, SpecialRegister.PC, True, zero_set),
        (M.BZC, SpecialRegister.PC, True, zero_clear),
        (M.BCS, SpecialRegister.PC, True, carry_set),
        (M.BCC, SpecialRegister.PC, True, carry_clear),
        (M.CAL, SpecialRegister.LR, False, None),
        (M.CZS, SpecialRegister.LR, False, zero_set),
        (M.CZC, SpecialRegister.LR, False, zero_clear),
        (M.CCS, SpecialRegister.LR, False, carry_set),
        (M.CCC, SpecialRegister.LR, False, carry_clear),
        (M.RCL, SpecialRegister.LR, True, None),
        (M.RZS, SpecialRegister.LR, True, zero_set),
        (M.RZC, SpecialRegister.LR, True, zero_clear),
        (M.RCS, SpecialRegister.LR, True, carry_set),
        (M.RCC, SpecialRegister.LR, True, carry_clear),
    ]
    for mnemonic, target, relative, gate in transfers:
        table[mnemonic] = InstructionInfo(
            control_transfer(target, relative, gate),
            Mode.TWO_REGISTERS_OR_LONG_IMMEDIATE, Map.AB)

    return table


# =============================================================================
# Opcode Table
# =============================================================================
# Built once at import time; read-only afterwards.
# =============================================================================

OPCODE_TABLE: Mapping[Mnemonic, InstructionInfo] = MappingProxyType(_build_table())

RELATIVE_TRANSFERS: frozenset[Mnemonic] = frozenset({
    Mnemonic.BRA, Mnemonic.BZS, Mnemonic.BZC, Mnemonic.BCS, Mnemonic.BCC,
    Mnemonic.RCL, Mnemonic.RZS, Mnemonic.RZC, Mnemonic.RCS, Mnemonic.RCC,
})

# Modes that can carry an 8-bit immediate
SHORT_IMMEDIATE_MODES: frozenset[OperandMode] = frozenset({
    OperandMode.ONE_REGISTER_IMMEDIATE,
    OperandMode.TWO_REGISTERS_OR_IMMEDIATE,
})

# Modes whose operand is always an 8-bit immediate
IMMEDIATE_ONLY_MODES: frozenset[OperandMode] = frozenset({
    OperandMode.ONE_REGISTER_IMMEDIATE,
})

# Modes that never carry an immediate
REGISTER_ONLY_MODES: frozenset[OperandMode] = frozenset({
    OperandMode.NO_OPERANDS,
    OperandMode.ONE_REGISTER,
    OperandMode.ONE_OR_TWO_REGISTERS,
    OperandMode.TWO_REGISTERS,
})


# =============================================================================
# Lookup Functions
# =============================================================================

def get_instruction_info(mnemonic: Mnemonic) -> InstructionInfo:
    """
    Look up the encoding triple for a mnemonic.

    Args:
        mnemonic: The mnemonic tag

    Returns:
        Its InstructionInfo (every mnemonic has exactly one)
    """
    return OPCODE_TABLE[mnemonic]


def lookup_mnemonic(name: str) -> Optional[InstructionInfo]:
    """Look up by name, case-insensitively. None for unknown names."""
    mnemonic = Mnemonic.from_name(name)
    if mnemonic is None:
        return None
    return OPCODE_TABLE[mnemonic]


def is_valid_instruction(name: str) -> bool:
    """
    Check if a name is an x69 mnemonic.

    Args:
        name: The mnemonic text to check

    Returns:
        True if valid, False otherwise
    """
    return Mnemonic.from_name(name) is not None


def is_relative_transfer(mnemonic: Mnemonic) -> bool:
    """True for jumps and calls whose operand is an offset from the instruction."""
    return mnemonic in RELATIVE_TRANSFERS
