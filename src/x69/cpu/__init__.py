"""
x69 CPU Package
===============

This package contains the x69 architecture definitions shared by the
assembler (which encodes instructions) and the disassembler (which decodes
them), so both tools agree on a single opcode table.

Modules:
    x69: Register file, mnemonics, operand modes, register maps and the
         read-only opcode table.

Usage:
    from x69.cpu import (
        Mnemonic,
        OperandMode,
        OPCODE_TABLE,
        get_instruction_info,
    )
"""

# =============================================================================
# Public API Exports
# =============================================================================

from x69.cpu.x69 import (
    # Core types
    Register,
    SpecialRegister,
    StatusFlag,
    Gate,
    Mnemonic,
    OperandMode,
    RegisterMap,
    InstructionInfo,
    # Constants
    REGISTER_COUNT,
    IMMEDIATE_FLAG,
    # Master instruction database
    OPCODE_TABLE,
    RELATIVE_TRANSFERS,
    SHORT_IMMEDIATE_MODES,
    IMMEDIATE_ONLY_MODES,
    REGISTER_ONLY_MODES,
    # Encoding helpers
    pack_nibbles,
    unpack_nibbles,
    special_access,
    control_transfer,
    return_opcode,
    # Lookup functions
    get_instruction_info,
    lookup_mnemonic,
    is_valid_instruction,
    is_relative_transfer,
)

__all__ = [
    "Register",
    "SpecialRegister",
    "StatusFlag",
    "Gate",
    "Mnemonic",
    "OperandMode",
    "RegisterMap",
    "InstructionInfo",
    "REGISTER_COUNT",
    "IMMEDIATE_FLAG",
    "OPCODE_TABLE",
    "RELATIVE_TRANSFERS",
    "SHORT_IMMEDIATE_MODES",
    "IMMEDIATE_ONLY_MODES",
    "REGISTER_ONLY_MODES",
    "pack_nibbles",
    "unpack_nibbles",
    "special_access",
    "control_transfer",
    "return_opcode",
    "get_instruction_info",
    "lookup_mnemonic",
    "is_valid_instruction",
    "is_relative_transfer",
]
