# =============================================================================
# test_disassembler.py - Disassembler Tests
# =============================================================================
# Tests for the x69 disassembler and the x69dis command.
#
# Test coverage includes:
#   - Decoding each instruction shape
#   - Register recovery for every register-form mnemonic
#   - Reassembling disassembler output
#   - Unknown and truncated opcodes
#   - Symbol annotations
#   - CLI behavior
# =============================================================================

import pytest

from x69.assembler import assemble
from x69.cpu import OPCODE_TABLE, Mnemonic, OperandMode
from x69.disassembler import (
    DisassembledInstruction,
    Shape,
    X69Disassembler,
    load_symbol_file,
)


def disasm_one(data: bytes, address: int = 0) -> DisassembledInstruction:
    return X69Disassembler().disassemble_one(data, address)


def register_source(mnemonic: Mnemonic) -> str:
    """A register-only source line for a mnemonic, using r3 and r12."""
    mode = OPCODE_TABLE[mnemonic].mode
    if mode == OperandMode.NO_OPERANDS:
        return str(mnemonic)
    if mode == OperandMode.ONE_REGISTER:
        return f"{mnemonic} r3"
    return f"{mnemonic} r3, r12"


REGISTER_MNEMONICS = [
    m for m, info in OPCODE_TABLE.items()
    if info.mode != OperandMode.ONE_REGISTER_IMMEDIATE
]


# =============================================================================
# Decoding Tests
# =============================================================================

class TestDecoding:
    """Test decoding of each instruction shape."""

    def test_no_operands(self):
        instr = disasm_one(b"\x29\x00")
        assert instr.mnemonic == "NOP"
        assert instr.operand_str == ""
        assert instr.size == 2
        assert instr.registers is None

    def test_two_registers(self):
        instr = disasm_one(b"\x25\x12")
        assert instr.mnemonic == "ADD"
        assert instr.operand_str == "r1, r2"
        assert instr.registers == (1, 2)

    def test_register_and_immediate(self):
        instr = disasm_one(b"\xa5\x11\x10")
        assert instr.operand_str == "r1, 0x10"
        assert instr.immediate == 0x10
        assert instr.size == 3

    def test_two_registers_and_immediate(self):
        instr = disasm_one(b"\xa5\xf0\x7b")
        assert instr.operand_str == "r15, r0, 0x7B"

    def test_one_register_immediate(self):
        instr = disasm_one(b"\xa9\x22\x07")
        assert instr.mnemonic == "SET"
        assert instr.operand_str == "r2, 0x07"

    def test_long_immediate(self):
        instr = disasm_one(b"\xd8\x34\x12")
        assert instr.mnemonic == "JMP"
        assert instr.operand_str == "0x1234"
        assert instr.immediate == 0x1234

    def test_nop_and_set_share_base(self):
        """NOP and SET differ only by the immediate flag."""
        assert disasm_one(b"\x29\x00").mnemonic == "NOP"
        assert disasm_one(b"\xa9\x00\x00").mnemonic == "SET"

    def test_unknown_opcode(self):
        instr = disasm_one(b"\xff\x00")
        assert instr.mnemonic == ".db"
        assert instr.operand_str == "0xFF"
        assert instr.size == 1
        assert instr.comment == "unknown opcode"

    def test_incomplete(self):
        instr = disasm_one(b"\xd8\x34")
        assert instr.mnemonic == ".db"
        assert instr.size == 2
        assert instr.comment == "incomplete JMP"

    def test_offset_beyond_data(self):
        with pytest.raises(ValueError):
            X69Disassembler().disassemble_one(b"\x29\x00", offset=2)

    def test_str(self):
        assert str(disasm_one(b"\x29\x00", 0x10)) == "0010: 29 00     NOP"

    def test_to_dict(self):
        data = disasm_one(b"\xd8\x34\x12").to_dict()
        assert data["mnemonic"] == "JMP"
        assert data["bytes"] == ["0xD8", "0x34", "0x12"]
        assert data["immediate"] == 0x1234


class TestReverseTable:

    def test_every_mnemonic_decodable(self):
        disasm = X69Disassembler()
        decoded = {entry[0] for entry in disasm._reverse_table.values()}
        assert decoded == set(Mnemonic)

    def test_shapes(self):
        table = X69Disassembler()._reverse_table
        assert table[0x25][2] is Shape.REGISTERS
        assert table[0xA5][2] is Shape.SHORT_IMMEDIATE
        assert table[0xD8][2] is Shape.LONG_IMMEDIATE
        assert 0x29 | 0x80 in table and table[0xA9][0] is Mnemonic.SET


# =============================================================================
# Round Trip Tests
# =============================================================================

class TestRoundTrip:
    """Disassembly recovers what the assembler encoded."""

    @pytest.mark.parametrize("mnemonic", REGISTER_MNEMONICS, ids=str)
    def test_registers_recovered(self, mnemonic):
        code = assemble(register_source(mnemonic))
        instr = disasm_one(code)
        mode = OPCODE_TABLE[mnemonic].mode

        assert instr.mnemonic == str(mnemonic)
        if mode == OperandMode.NO_OPERANDS:
            assert instr.registers is None
        elif mode == OperandMode.ONE_REGISTER:
            assert instr.registers == (3, 3)
        else:
            assert instr.registers == (3, 12)

    def test_reassemble_listing(self):
        source = "\n".join([
            "_start:",
            "set r1, 10",
            "add r2, r1, 3",
            "xor r4, 0x0F",
            "not r5, r6",
            "cmp r1, r2",
            "bzc _start",
            "cal 0x1234",
            "lar r7, r8",
            "ret",
        ])
        code = assemble(source)
        lines = [
            f"{i.mnemonic} {i.operand_str}"
            for i in X69Disassembler().disassemble(code)
        ]
        assert assemble("\n".join(lines)) == code


# =============================================================================
# Multi-Instruction Tests
# =============================================================================

class TestDisassemble:

    def test_addresses_advance(self):
        code = assemble("nop\nset r1, 1\nret")
        instrs = X69Disassembler().disassemble(code, start_address=0x100)
        assert [i.address for i in instrs] == [0x100, 0x102, 0x105]

    def test_count(self):
        code = assemble("nop\nnop\nnop")
        assert len(X69Disassembler().disassemble(code, count=2)) == 2

    def test_max_bytes(self):
        code = assemble("nop\nnop\nnop")
        assert len(X69Disassembler().disassemble(code, max_bytes=3)) == 2

    def test_to_text(self):
        text = X69Disassembler().disassemble_to_text(assemble("nop\nret"))
        assert text.splitlines() == ["0000: 29 00     NOP", "0002: 48 00     RET"]


# =============================================================================
# Symbol Tests
# =============================================================================

class TestSymbols:

    def test_unnamed_target_has_no_comment(self):
        code = assemble("nop\n_top:\nbra _top")
        instr = X69Disassembler().disassemble(code)[1]
        assert instr.operand_str == "0x0002"
        assert instr.comment == ""

    def test_relative_target_named_by_operand(self):
        code = assemble("nop\n_top:\nbra _top")
        instr = X69Disassembler({2: "_top"}).disassemble(code)[1]
        assert instr.comment == "_top"

    def test_absolute_target_named(self):
        disasm = X69Disassembler()
        disasm.add_symbol(0x1234, "_far")
        assert disasm.disassemble_one(b"\xd8\x34\x12").comment == "_far"

    def test_load_symbol_file(self):
        text = "# Symbol table\n# Generated by x69asm\n_a $0002\n_start $0000\n"
        assert load_symbol_file(text) == {2: "_a", 0: "_start"}

    def test_load_symbol_file_malformed(self):
        with pytest.raises(ValueError):
            load_symbol_file("_a 0002\n")


# =============================================================================
# CLI Tests
# =============================================================================

class TestCli:
    """Test the x69dis command."""

    def test_help(self):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Disassemble an x69 binary image" in result.output

    def test_disassemble_file(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "prog.o"
        binary.write_bytes(assemble("nop\nret"))

        result = CliRunner().invoke(main, [str(binary)])
        assert result.exit_code == 0
        assert "// Disassembly of prog.o" in result.output
        assert "0000: 29 00     NOP" in result.output
        assert "0002: 48 00     RET" in result.output

    def test_no_bytes(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "prog.o"
        binary.write_bytes(assemble("clr r1"))

        result = CliRunner().invoke(main, [str(binary), "--no-bytes"])
        assert result.exit_code == 0
        assert result.output.splitlines()[-1] == "CLR r1"

    def test_address_and_output(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "prog.o"
        binary.write_bytes(assemble("nop"))
        out = tmp_path / "prog.dis"

        result = CliRunner().invoke(main, [str(binary), "-a", "0x200", "-o", str(out)])
        assert result.exit_code == 0
        assert "0200: 29 00     NOP" in out.read_text()

    def test_symbol_file(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "prog.o"
        binary.write_bytes(assemble("_top:\nnop\nbra _top"))
        symbols = tmp_path / "prog.sym"
        symbols.write_text("_top $0000\n")

        result = CliRunner().invoke(main, [str(binary), "-S", str(symbols)])
        assert result.exit_code == 0
        assert "// _top" in result.output

    def test_invalid_address(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "prog.o"
        binary.write_bytes(b"\x29\x00")

        result = CliRunner().invoke(main, [str(binary), "-a", "0x10000"])
        assert result.exit_code == 2

    def test_empty_file(self, tmp_path):
        from click.testing import CliRunner
        from x69.cli.x69dis import main

        binary = tmp_path / "empty.o"
        binary.write_bytes(b"")

        result = CliRunner().invoke(main, [str(binary)])
        assert result.exit_code == 2
