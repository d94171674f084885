"""
turboass - Z80 Assembler Command-Line Interface
===============================================

This module implements the `turboass` command. Output files are named after
the input file: the `.asm` or `.z80` extension (any case) is replaced by the
extension of each requested output. Input files with another extension are
assembled and checked, but no output files are written.

Usage Examples
--------------
Check a source file:
    $ turboass monitor.asm

Binary and listing (monitor.bin or monitor.com, monitor.lst):
    $ turboass -b -l monitor.asm

Intel HEX from address 0000h with unused bytes set to FFh:
    $ turboass -i -f FF -o 0 monitor.asm

C header with a predefined constant:
    $ turboass -c -D ROMSIZE=2000h monitor.asm
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from turboass import __version__
from turboass.assembler import Assembler
from turboass.assembler.expressions import evaluate_expression
from turboass.cli.errors import handle_cli_exception
from turboass.errors import ExpressionError, AssemblySyntaxError, NoDataError
from turboass.output import is_com_file


logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".asm", ".z80")


# =============================================================================
# Option Parsing Helpers
# =============================================================================

def _parse_hex(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[int]:
    """Parse a hexadecimal option value ("FF", "0xFF", "$FF")."""
    if value is None:
        return None
    text = value.strip()
    if text.startswith("$"):
        text = text[1:]
    try:
        return int(text, 16)
    except ValueError:
        raise click.BadParameter(f"needs a hexadecimal argument, got '{value}'")


def _parse_defines(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, int]:
    """Parse -D NAME=VALUE options; NAME alone defines 1."""
    defines: dict[str, int] = {}
    for defn in values:
        name, sep, value_str = defn.partition("=")
        name = name.strip()
        if not name:
            raise click.BadParameter(f"missing symbol name in '{defn}'")
        if not sep:
            defines[name] = 1
            continue
        try:
            defines[name] = evaluate_expression(value_str)
        except (ExpressionError, AssemblySyntaxError):
            raise click.BadParameter(f"invalid value in '{defn}'")
    return defines


def output_base(input_file: Path) -> Optional[Path]:
    """
    Return the input path if output names can be derived from it.

    Only `.asm` and `.z80` files (any case) with a non-empty stem qualify.
    """
    if input_file.suffix.lower() in SOURCE_SUFFIXES and input_file.stem:
        return input_file
    return None


def setup_logging(verbose: int) -> None:
    """Configure logging: WARNING by default, -v INFO, -vv DEBUG."""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose >= 2 else "%(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("turboass").setLevel(level)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("-b", "--binary", is_flag=True, help="Create binary output file (.bin, or .com if the code starts at 0100h)")
@click.option("-c", "--c-array", is_flag=True, help="Create C array output file (.h)")
@click.option("-i", "--hex", "intel_hex", is_flag=True, help="Create Intel HEX output file (.hex)")
@click.option("-l", "--listing", is_flag=True, help="Create listing file (.lst)")
@click.option(
    "-f", "--fill",
    callback=_parse_hex,
    metavar="XX",
    help="Fill unused memory with hex byte XX (default: 00)",
)
@click.option(
    "-o", "--offset",
    callback=_parse_hex,
    metavar="XXXX",
    help="Start address of the output files, 0000..FFFF (default: lowest used address)",
)
@click.option(
    "-D", "--define",
    multiple=True,
    callback=_parse_defines,
    help="Define constant (format: NAME=VALUE, can be repeated)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat symbols that are never defined as errors",
)
@click.option(
    "-v", "--verbose",
    count=True,
    help="Increase verbosity (-v progress, -vv trace)",
)
@click.version_option(version=__version__, prog_name="turboass")
def main(
    input_file: Path,
    binary: bool,
    c_array: bool,
    intel_hex: bool,
    listing: bool,
    fill: Optional[int],
    offset: Optional[int],
    define: dict[str, int],
    strict: bool,
    verbose: int,
) -> None:
    """
    Assemble Z80 source code.

    INPUT_FILE is the assembly source file (.asm or .z80).

    \b
    Examples:
        turboass -b hello.asm          # hello.bin (hello.com if ORG 100h)
        turboass -i -l hello.asm       # hello.hex and hello.lst
        turboass -c -o 0 hello.asm     # hello.h starting at 0000h
    """
    setup_logging(verbose)

    if verbose:
        click.echo("TurboAss Z80 - a small 1-pass assembler for Z80 code", err=True)

    asm = Assembler(
        fill=(fill or 0) & 0xFF,
        strict=strict,
    )
    for name, value in define.items():
        asm.define_symbol(name, value)

    try:
        asm.assemble_file(input_file)

        base = output_base(input_file)

        if listing and base is not None:
            asm.write_listing(base.with_suffix(".lst"))

        if listing or verbose:
            if not asm.memory.has_data():
                raise NoDataError("No data created")
            click.echo(f" Using memory range [0x{asm.min_pc:04X}...0x{asm.max_pc:04X}]")

        if base is None or not (binary or intel_hex or c_array):
            logger.info("No output files created")
            return

        start_offset = offset & 0xFFFF if offset is not None else None
        start = asm.get_start(start_offset)

        if binary:
            path = base.with_suffix(".com" if is_com_file(start) else ".bin")
            logger.info(f"Creating output file \"{path}\"")
            asm.write_binary(path, start_offset)

        if intel_hex:
            path = base.with_suffix(".hex")
            logger.info(f"Creating output file \"{path}\"")
            asm.write_hex(path, start_offset)

        if c_array:
            path = base.with_suffix(".h")
            logger.info(f"Creating output file \"{path}\"")
            asm.write_c_array(path, start_offset)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose > 0)


if __name__ == "__main__":
    main()
