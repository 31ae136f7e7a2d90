# =============================================================================
# test_cli.py - x69asm Command-Line Tests
# =============================================================================
# Tests for the x69asm command: output files, diagnostics printing, exit
# codes and error handling.
# =============================================================================

from click.testing import CliRunner

from x69 import __version__
from x69.cli.errors import ExitCode
from x69.cli.x69asm import main


def run(args):
    return CliRunner().invoke(main, [str(a) for a in args])


def write_source(tmp_path, text: str, name: str = "prog.asm"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# =============================================================================
# Success Path Tests
# =============================================================================

class TestAssembleCommand:
    """Test successful assembly runs."""

    def test_help(self):
        result = run(["--help"])
        assert result.exit_code == 0
        assert "Assemble x69 source code" in result.output

    def test_version(self):
        result = run(["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_default_output_name(self, tmp_path):
        source = write_source(tmp_path, "nop\n")
        result = run([source])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "prog.o").read_bytes() == b"\x29\x00"

    def test_explicit_output(self, tmp_path):
        source = write_source(tmp_path, "ret\n")
        out = tmp_path / "boot.bin"
        result = run([source, "-o", out])
        assert result.exit_code == 0
        assert out.read_bytes() == b"\x48\x00"
        assert not (tmp_path / "prog.o").exists()

    def test_clean_run_is_silent(self, tmp_path):
        source = write_source(tmp_path, "nop\n")
        result = run([source])
        assert result.output == ""

    def test_listing_and_symbols(self, tmp_path):
        source = write_source(tmp_path, "_start:\n    jmp _start\n")
        result = run([source, "-l", tmp_path / "prog.lst", "-s", tmp_path / "prog.sym"])
        assert result.exit_code == 0
        assert "jmp _start" in (tmp_path / "prog.lst").read_text()
        assert "_start $0000" in (tmp_path / "prog.sym").read_text()

    def test_include_path(self, tmp_path):
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "util.asm").write_text("_util: ret\n")
        source = write_source(tmp_path, '.include "util.asm"\ncal _util\n')
        result = run(["-I", lib, source])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "prog.o").read_bytes() == b"\x48\x00\xd9\x00\x00"

    def test_verbose(self, tmp_path):
        source = write_source(tmp_path, "nop\n")
        result = run(["-v", source])
        assert result.exit_code == 0
        assert "Wrote 2 bytes" in result.output


# =============================================================================
# Diagnostics Tests
# =============================================================================

class TestDiagnosticsOutput:
    """Test how warnings and errors are reported."""

    def test_warning_still_writes(self, tmp_path):
        source = write_source(tmp_path, "add r1, 0xDEAD\n")
        result = run([source, "--no-color"])
        assert result.exit_code == 0
        assert "1 message generated:" in result.output
        assert f"WARNING: {source}:1: immediate 0xDEAD will be truncated" in result.output
        assert (tmp_path / "prog.o").read_bytes() == b"\xa5\x11\xad"

    def test_error_aborts_without_output(self, tmp_path):
        source = write_source(tmp_path, "nop\nfoo r1\njmp _missing\n")
        result = run([source])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "2 messages generated:" in result.output
        assert f"ERROR: {source}:2: unknown instruction: foo" in result.output
        assert f"ERROR: {source}:3: unresolved symbol: _missing" in result.output
        assert "Aborting due to previous errors..." in result.output
        assert not (tmp_path / "prog.o").exists()

    def test_error_skips_listing_and_symbols(self, tmp_path):
        source = write_source(tmp_path, "foo\n")
        result = run([source, "-l", tmp_path / "p.lst", "-s", tmp_path / "p.sym"])
        assert result.exit_code == 1
        assert not (tmp_path / "p.lst").exists()
        assert not (tmp_path / "p.sym").exists()

    def test_missing_include_is_error(self, tmp_path):
        source = write_source(tmp_path, '.include "gone.asm"\n')
        result = run([source])
        assert result.exit_code == 1
        assert f"ERROR: {tmp_path / 'gone.asm'}: " in result.output

    def test_no_color(self, tmp_path):
        source = write_source(tmp_path, "foo\n")
        result = run([source, "--no-color"])
        assert "\x1b[" not in result.output

    def test_color(self, tmp_path):
        source = write_source(tmp_path, "foo\n")
        result = run([source, "--color"])
        assert "\x1b[" in result.output


# =============================================================================
# Argument and I/O Error Tests
# =============================================================================

class TestErrors:

    def test_missing_input(self, tmp_path):
        result = run([tmp_path / "nope.asm"])
        assert result.exit_code == 2

    def test_unwritable_output(self, tmp_path):
        source = write_source(tmp_path, "nop\n")
        out = tmp_path / "no_such_dir" / "prog.o"
        result = run([source, "-o", out])
        assert result.exit_code == 1
        assert f"ERROR: {out}: " in result.output
