# =============================================================================
# test_cli.py - Command-Line Interface Tests
# =============================================================================
# Tests for the turboass command: output file selection and naming, option
# parsing and exit codes.
# =============================================================================

import pytest
from click.testing import CliRunner

from turboass import __version__
from turboass.cli.turboass import main, output_base


# =============================================================================
# Helper Functions
# =============================================================================

PROGRAM = "  org 100h\nstart: ld a,5\n  ret\n"


@pytest.fixture
def runner():
    return CliRunner()


def write_source(directory, text: str = PROGRAM, name: str = "prog.asm"):
    """Create a source file and return its path."""
    path = directory / name
    path.write_text(text)
    return path


# =============================================================================
# Basic Command Tests
# =============================================================================

class TestBasics:
    """Test help, version and plain checking."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--binary" in result.output
        assert "--define" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_check_only(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, [str(source)])
        assert result.exit_code == 0
        assert sorted(p.name for p in tmp_path.iterdir()) == ["prog.asm"]

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "none.asm")])
        assert result.exit_code == 2


# =============================================================================
# Output File Tests
# =============================================================================

class TestOutputFiles:
    """Test the files written for each option."""

    def test_com_file(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, ["-b", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.com").read_bytes() == b"\x3E\x05\xC9"

    def test_bin_file(self, runner, tmp_path):
        source = write_source(tmp_path, "  ld a,5\n  ret\n")
        result = runner.invoke(main, ["-b", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.bin").read_bytes() == b"\x3E\x05\xC9"
        assert not (tmp_path / "prog.com").exists()

    def test_hex_c_and_listing(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, ["-i", "-c", "-l", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.hex").read_text() == ":030100003E05C9F0\n:00000001FF\n"
        assert "const uint16_t progAddr = 0x0100;" in (tmp_path / "prog.h").read_text()
        assert "Cross reference" in (tmp_path / "prog.lst").read_text()
        assert " Using memory range [0x0100...0x0102]" in result.output

    def test_z80_extension(self, runner, tmp_path):
        source = write_source(tmp_path, name="prog.z80")
        result = runner.invoke(main, ["-i", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.hex").exists()

    def test_upper_case_extension(self, runner, tmp_path):
        source = write_source(tmp_path, "  nop\n", name="PROG.ASM")
        result = runner.invoke(main, ["-b", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "PROG.bin").read_bytes() == b"\x00"

    def test_other_extension_writes_nothing(self, runner, tmp_path):
        source = write_source(tmp_path, name="prog.txt")
        result = runner.invoke(main, ["-b", "-i", "-c", str(source)])
        assert result.exit_code == 0
        assert sorted(p.name for p in tmp_path.iterdir()) == ["prog.txt"]


# =============================================================================
# Option Tests
# =============================================================================

class TestOptions:
    """Test fill, offset, define and strict options."""

    def test_fill_and_offset(self, runner, tmp_path):
        source = write_source(tmp_path, "  org 2\n  nop\n")
        result = runner.invoke(main, ["-b", "-f", "FF", "-o", "0", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.bin").read_bytes() == b"\xFF\xFF\x00"

    def test_offset_moves_com_start(self, runner, tmp_path):
        source = write_source(tmp_path, "  org 104h\n  nop\n")
        result = runner.invoke(main, ["-b", "-o", "$100", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.com").read_bytes() == b"\x00\x00\x00\x00\x00"

    def test_invalid_fill(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, ["-f", "ZZ", str(source)])
        assert result.exit_code == 2

    def test_define(self, runner, tmp_path):
        source = write_source(tmp_path, "  ld a,VAL\n  ld b,FLAG\n")
        result = runner.invoke(main, ["-b", "-D", "VAL=7", "-D", "FLAG", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.bin").read_bytes() == b"\x3E\x07\x06\x01"

    def test_define_hex_value(self, runner, tmp_path):
        source = write_source(tmp_path, "  ld a,VAL\n")
        result = runner.invoke(main, ["-b", "-D", "VAL=20h", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "prog.bin").read_bytes() == b"\x3E\x20"

    def test_invalid_define(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, ["-D", "=5", str(source)])
        assert result.exit_code == 2

    def test_strict(self, runner, tmp_path):
        source = write_source(tmp_path, "  jp missing\n")
        assert runner.invoke(main, [str(source)]).exit_code == 0
        result = runner.invoke(main, ["--strict", str(source)])
        assert result.exit_code == 1
        assert "undefined symbol 'missing'" in result.output

    def test_verbose_banner(self, runner, tmp_path):
        source = write_source(tmp_path)
        result = runner.invoke(main, ["-v", str(source)])
        assert result.exit_code == 0
        assert "TurboAss Z80" in result.output
        assert " Using memory range [0x0100...0x0102]" in result.output


# =============================================================================
# Error Exit Tests
# =============================================================================

class TestErrors:
    """Test error messages and exit codes."""

    def test_assembly_error(self, runner, tmp_path):
        source = write_source(tmp_path, "  nop\n  ld a,#5\n")
        result = runner.invoke(main, ["-b", str(source)])
        assert result.exit_code == 1
        assert "Error in line 2" in result.output
        assert not (tmp_path / "prog.bin").exists()

    def test_no_data(self, runner, tmp_path):
        source = write_source(tmp_path, "; empty\n")
        result = runner.invoke(main, ["-l", str(source)])
        assert result.exit_code == 1
        assert "No data created" in result.output

    def test_offset_above_data(self, runner, tmp_path):
        source = write_source(tmp_path, "  nop\n")
        result = runner.invoke(main, ["-b", "-o", "FFFF", str(source)])
        assert result.exit_code == 1

    def test_reservation_past_top(self, runner, tmp_path):
        source = write_source(tmp_path, "  org 0FFF0h\n  nop\n  defs 20h\n")
        result = runner.invoke(main, ["-l", str(source)])
        assert result.exit_code == 1
        assert "Error in line 3: address overflow at 0x10010" in result.output


class TestOutputBase:
    """Test output_base()."""

    def test_source_suffixes(self, tmp_path):
        assert output_base(tmp_path / "a.asm") == tmp_path / "a.asm"
        assert output_base(tmp_path / "a.Z80") == tmp_path / "a.Z80"

    def test_other_suffixes(self, tmp_path):
        assert output_base(tmp_path / "a.txt") is None
        assert output_base(tmp_path / "a") is None
