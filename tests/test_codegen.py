# =============================================================================
# test_codegen.py - Code Generator Tests
# =============================================================================
# Tests for instruction encoding, layout and label resolution.
#
# Test coverage includes:
#   - Register, 8-bit immediate and 16-bit immediate encodings
#   - Forward and backward label references
#   - Relative transfers resolving to absolute offsets
#   - 16-bit address range
#   - .line padding and .db data
#   - Duplicate and unresolved symbols
#   - Listing and symbol file output
# =============================================================================

import pytest

from x69.assembler.codegen import CodeGenerator
from x69.assembler.parser import parse_source


def generate(source: str) -> tuple[bytes, CodeGenerator]:
    """Parse and generate, asserting the parse was clean."""
    statements, diagnostics = parse_source(source)
    assert not diagnostics.has_errors(), diagnostics.report()
    codegen = CodeGenerator()
    code = codegen.generate(statements)
    return code, codegen


def code_for(source: str) -> list[int]:
    code, codegen = generate(source)
    assert not codegen.has_errors(), codegen.get_error_report()
    return list(code)


# =============================================================================
# Instruction Encoding Tests
# =============================================================================

class TestEncoding:
    """Test the bytes emitted for each operand form."""

    @pytest.mark.parametrize("source,expected", [
        ("nop", [0x29, 0x00]),
        ("add r15, r0, 123", [0xA5, 0xF0, 123]),
        ("AdD r1, r2", [0x25, 0x12]),
        ("lpc r15, r0", [0x44, 0x0F]),
        ("clr r3", [0x20, 0x33]),
        ("set r2, 7", [0xA9, 0x22, 0x07]),
        ("cmp r1, r2", [0x2A, 0x21]),
        ("not r1", [0x21, 0x11]),
        ("not r1, r2", [0x21, 0x12]),
        ("add r1, 0x10", [0xA5, 0x11, 0x10]),
        ("spc r3, r4", [0x40, 0x43]),
        ("ret", [0x48, 0x00]),
        ("jmp 0x1234", [0xD8, 0x34, 0x12]),
        ("jmp r1, r2", [0x58, 0x21]),
        ("bra 0xFFFE", [0xDC, 0xFE, 0xFF]),
    ])
    def test_encoding(self, source, expected):
        assert code_for(source) == expected

    def test_truncated_immediate(self):
        """A truncated immediate still assembles, with its low byte."""
        statements, diagnostics = parse_source("add r1, 0xDEAD")
        code = CodeGenerator().generate(statements)
        assert list(code) == [0xA5, 0x11, 0xAD]
        assert diagnostics.warning_count() == 1
        assert not diagnostics.has_errors()

    def test_instruction_sizes(self):
        """Register forms take two bytes, immediate forms three."""
        assert len(code_for("mov r1, r2")) == 2
        assert len(code_for("mov r1, 5")) == 3
        assert len(code_for("cal 0")) == 3


# =============================================================================
# Label Resolution Tests
# =============================================================================

class TestLabels:
    """Test label binding and patching."""

    def test_forward_reference(self):
        assert code_for("jmp _end\nnop\n_end:") == [0xD8, 0x05, 0x00, 0x29, 0x00]

    def test_backward_reference_matches_number(self):
        """A label resolves to the same bytes as its numeric offset."""
        assert code_for("_loop:\nnop\njmp _loop") == code_for("nop\njmp 0")

    def test_label_symbols(self):
        _, codegen = generate("_a:\nnop\n_b: set r1, 1\n_c:")
        assert codegen.get_symbols() == {"_a": 0, "_b": 2, "_c": 5}

    def test_labels_case_sensitive(self):
        code, codegen = generate("_A:\njmp _a")
        assert [d.message for d in codegen.diagnostics.errors()] == ["unresolved symbol: _a"]
        assert list(code) == [0xD8, 0x00, 0x00]

    def test_unresolved_keeps_placeholder(self):
        code, codegen = generate("cal _missing\nnop")
        assert codegen.has_errors()
        assert list(code) == [0xD9, 0x00, 0x00, 0x29, 0x00]

    def test_unresolved_error_location(self):
        _, codegen = generate("nop\njmp _nowhere")
        error = codegen.diagnostics.errors()[0]
        assert error.line == 1

    def test_duplicate_label_last_wins(self):
        code, codegen = generate("_a:\nnop\n_a:\njmp _a")
        assert [d.message for d in codegen.diagnostics.errors()] == [
            "label _a declared multiple times"
        ]
        assert list(code[2:]) == [0xD8, 0x02, 0x00]

    def test_duplicate_label_reported_at_redeclaration(self):
        _, codegen = generate("_a:\nnop\n_a:")
        assert codegen.diagnostics.errors()[0].line == 2


# =============================================================================
# Relative Transfer Tests
# =============================================================================

class TestRelativeTransfers:
    """Labels resolve to their offset for every transfer kind."""

    def test_backward_matches_number(self):
        assert code_for("_loop:\nnop\nbra _loop") == code_for("nop\nbra 0")
        assert code_for("_loop:\nnop\nbra _loop") == [0x29, 0x00, 0xDC, 0x00, 0x00]

    def test_forward(self):
        assert code_for("bra _next\nnop\n_next:") == [0xDC, 0x05, 0x00, 0x29, 0x00]

    def test_self(self):
        assert code_for("nop\n_here: bzs _here") == [0x29, 0x00, 0xEC, 0x02, 0x00]

    @pytest.mark.parametrize("mnemonic", [
        "bra", "bzs", "bzc", "bcs", "bcc", "rcl", "rzs", "rzc", "rcs", "rcc",
    ])
    def test_label_matches_numeric_offset(self, mnemonic):
        labelled = code_for(f"nop\nnop\n{mnemonic} _f\n_f: ret")
        numeric = code_for(f"nop\nnop\n{mnemonic} 7\nret")
        assert labelled == numeric

    def test_relative_and_absolute_calls_share_operand(self):
        relative = code_for("nop\nnop\nrcl _f\n_f: ret")
        absolute = code_for("nop\nnop\ncal _f\n_f: ret")
        assert relative[4:7] == [0xDD, 0x07, 0x00]
        assert absolute[4:7] == [0xD9, 0x07, 0x00]


# =============================================================================
# Address Range Tests
# =============================================================================

class TestAddressRange:
    """Labels must fit in a 16-bit operand."""

    def test_label_past_sixteen_bits(self):
        code, codegen = generate(".line 0xFFFE\nnop\n_far:\njmp _far")
        assert [d.message for d in codegen.diagnostics.errors()] == [
            "address of _far (0x10000) does not fit in 16 bits"
        ]
        assert list(code[0x10000:]) == [0xD8, 0x00, 0x00]

    def test_label_at_top_of_range(self):
        code, codegen = generate(".line 0xFFFE\n_top:\nnop\njmp _top")
        assert not codegen.has_errors()
        assert list(code[0x10000:]) == [0xD8, 0xFE, 0xFF]

    def test_data_label_past_sixteen_bits(self):
        _, codegen = generate(".line 0xFFFE\n.db _end\n_end:")
        assert codegen.diagnostics.errors()[0].message == \
            "address of _end (0x10000) does not fit in 16 bits"


# =============================================================================
# Directive Tests
# =============================================================================

class TestLineDirective:
    """Test zero padding up to an absolute offset."""

    def test_line_then_label(self):
        code = bytes(code_for(".line 0x1234\n_here:\njmp _here"))
        assert len(code) == 0x1237
        assert code[:0x1234] == bytes(0x1234)
        assert code[0x1234] == 0xD8
        assert code[0x1235:0x1237] == b"\x34\x12"

    def test_line_at_current_offset(self):
        assert code_for("nop\n.line 2\nnop") == [0x29, 0x00, 0x29, 0x00]

    def test_backward_line_is_error(self):
        code, codegen = generate("nop\nnop\n.line 1")
        assert codegen.has_errors()
        assert "behind the current offset" in codegen.diagnostics.errors()[0].message
        assert len(code) == 4

    def test_odd_padding_warns(self):
        code, codegen = generate("nop\n.line 5")
        assert not codegen.has_errors()
        assert [d.message for d in codegen.diagnostics.warnings()] == [
            "padding of 3 bytes breaks instruction alignment"
        ]
        assert len(code) == 5


class TestDataDirective:
    """Test .db output."""

    def test_bytes_labels_and_strings(self):
        code = code_for('.db 0 1 array "hi"\narray:\nnop')
        assert code == [0x00, 0x01, 0x06, 0x00, 0x68, 0x69, 0x29, 0x00]

    def test_undeclared_label(self):
        code, codegen = generate('.db 0 1 array "hi"')
        errors = codegen.diagnostics.errors()
        assert [e.message for e in errors] == ["unresolved symbol: array"]
        assert list(code) == [0x00, 0x01, 0x00, 0x00, 0x68, 0x69]

    def test_empty_db_emits_nothing(self):
        statements, _ = parse_source(".db")
        assert CodeGenerator().generate(statements) == b""


# =============================================================================
# Generator State Tests
# =============================================================================

class TestGeneratorState:

    def test_generate_is_repeatable(self):
        statements, _ = parse_source("_a:\njmp _b\n_b: .db _a\nfoo:")
        codegen = CodeGenerator()
        first = codegen.generate(statements)
        first_diagnostics = list(codegen.diagnostics)
        second = codegen.generate(statements)
        assert first == second
        assert list(codegen.diagnostics) == first_diagnostics

    def test_get_code_matches_return(self):
        code, codegen = generate("nop")
        assert codegen.get_code() == code

    def test_error_report(self):
        _, codegen = generate("jmp _x")
        report = codegen.get_error_report()
        assert "ERROR: <input>:1: unresolved symbol: _x" in report
        assert report.endswith("1 error, 0 warnings")


# =============================================================================
# Output File Tests
# =============================================================================

class TestOutputFiles:

    def test_listing(self):
        _, codegen = generate("_start:\n    set r1, 10\n    jmp _start")
        listing = codegen.get_listing()
        assert "x69 Assembler Listing" in listing
        assert "0000  A9 11 0A" in listing
        assert "set r1, 10" in listing
        assert f"{'_start':20s} = $0000" in listing

    def test_write_listing(self, tmp_path):
        _, codegen = generate("nop")
        path = tmp_path / "out.lst"
        codegen.write_listing(path)
        assert path.read_text().startswith("x69 Assembler Listing")

    def test_write_symbols(self, tmp_path):
        _, codegen = generate("nop\n_b:\n_a:")
        path = tmp_path / "out.sym"
        codegen.write_symbols(path)
        assert path.read_text().splitlines() == [
            "# Symbol table",
            "# Generated by x69asm",
            "_a $0002",
            "_b $0002",
        ]
