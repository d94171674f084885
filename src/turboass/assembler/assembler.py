"""
Z80 Assembler - Main Interface
==============================

This module provides the Assembler class, the primary interface for
assembling Z80 source code. It reads the source once, line by line; each
line is tokenized, encoded into the 64K memory image and recorded for the
listing before the next line is read.

Example Usage
-------------
>>> from turboass.assembler import Assembler
>>>
>>> asm = Assembler()
>>> code = asm.assemble_string('''
...         org  100h
... start:  ld   a,5
...         jp   start
... ''')
>>> code.hex()
'3e05c30001'
>>> asm.write_hex("hello.hex")

Command-Line Usage
------------------
    $ turboass -b -l hello.asm      # writes hello.com and hello.lst

See `turboass.cli.turboass` for all options.
"""

import logging
from pathlib import Path
from typing import Optional

from turboass.errors import AssemblerError, UndefinedSymbolError
from turboass.assembler.codegen import InstructionEncoder
from turboass.assembler.context import CompilationContext
from turboass.assembler.listing import ListingFormatter
from turboass.assembler.memory import MemoryImage
from turboass.assembler.parser import parse_line
from turboass.assembler.symbols import SymbolKind, SymbolTable
from turboass.output import writers


logger = logging.getLogger(__name__)


class Assembler:
    """
    Main Z80 assembler class.

    The assembler supports:
    - Full documented Z80 instruction set plus SLL
    - Forward references to labels and constants (one pass, fixups)
    - Expressions with arithmetic, bitwise and HIGH/LOW operators
    - Data directives (DEFB, DEFM, DEFW, DEFS and their aliases)
    - Binary, Intel HEX, C header and listing output

    Attributes:
        fill: Byte value of memory not written by the program
        strict: If True, symbols still undefined at the end are an error
    """

    def __init__(self, fill: int = 0x00, strict: bool = False):
        """
        Initialize the assembler.

        Args:
            fill: Fill byte for unused memory (default 0x00)
            strict: Raise UndefinedSymbolError for symbols never defined
                instead of only flagging them in the listing
        """
        self.fill = fill & 0xFF
        self.strict = strict
        self._defines: dict[str, int] = {}
        self._reset("<input>")

    def _reset(self, filename: str) -> None:
        """Start a fresh compilation with the predefined symbols."""
        self._ctx = CompilationContext(self.fill, filename)
        self._encoder = InstructionEncoder(self._ctx)
        self._listing = ListingFormatter()
        self._line_number = 0
        for name, value in self._defines.items():
            self._ctx.define_symbol(name, value, SymbolKind.CONSTANT)

    def define_symbol(self, name: str, value: int) -> None:
        """
        Pre-define a constant (like -D on the command line).

        Takes effect for the next assemble_string() / assemble_file() call.

        Args:
            name: Symbol name
            value: Symbol value
        """
        self._defines[name] = value & 0xFFFF

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Name used in diagnostics

        Returns:
            The bytes from the lowest to the highest written address
            (empty if nothing was written)

        Raises:
            AssemblerError: On the first error in the source
        """
        self._reset(filename)

        for text in source.splitlines():
            self.compile_line(text)
            if self._ctx.reached_end:
                logger.debug(f"END in line {self._line_number}")
                break

        self._check_undefined()

        if not self._ctx.memory.has_data():
            logger.info("No data created")
            return b""
        logger.info(f"Using memory range [0x{self.min_pc:04X}...0x{self.max_pc:04X}]")
        return self.get_code()

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to assembly source file

        Returns:
            The assembled bytes (see assemble_string)

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        logger.info(f"Processing input file \"{filepath}\"")
        source = filepath.read_text(encoding="latin-1")
        return self.assemble_string(source, str(filepath))

    def compile_line(self, text: str) -> None:
        """
        Compile one source line at the current PC.

        Lines are numbered from 1 in the order they are passed in.

        Raises:
            AssemblerError: With the line number and text attached
        """
        self._line_number += 1
        ctx = self._ctx
        ctx.begin_line(self._line_number, text)

        try:
            line = parse_line(text, self._line_number, ctx.filename)
            if not line.is_empty:
                self._encoder.encode(line)
        except AssemblerError as e:
            raise e.attach(ctx.location, text)

        # ORG moves the PC without writing; list it as a text-only line
        first_pc = ctx.pc if line.mnemonic == "ORG" else ctx.line_pc
        self._listing.add_line(first_pc, ctx.pc, text)
        logger.debug(f"line {self._line_number}: [{ctx.line_pc:04X}..{ctx.pc:04X}] {text.strip()}")

    def _check_undefined(self) -> None:
        """Report symbols that were referenced but never defined."""
        undefined = [s.name for s in self._ctx.symbols.pending()]
        if not undefined:
            return

        if self.strict:
            raise UndefinedSymbolError(undefined)
        for name in undefined:
            logger.warning(f"symbol '{name}' is undefined")

    # =========================================================================
    # Results
    # =========================================================================

    @property
    def memory(self) -> MemoryImage:
        """The memory image of the last compilation."""
        return self._ctx.memory

    @property
    def symbols(self) -> SymbolTable:
        """The symbol table of the last compilation."""
        return self._ctx.symbols

    @property
    def min_pc(self) -> int:
        """Lowest written address (0x10000 if nothing was written)."""
        return self._ctx.memory.min_pc

    @property
    def max_pc(self) -> int:
        """Highest written address (0 if nothing was written)."""
        return self._ctx.memory.max_pc

    def get_symbols(self) -> dict[str, int]:
        """
        Get the defined symbols.

        Returns:
            Dictionary mapping symbol names to values
        """
        return self._ctx.symbols.defined_values()

    def get_undefined_symbols(self) -> list[str]:
        """Names of symbols referenced but never defined."""
        return [s.name for s in self._ctx.symbols.pending()]

    def get_listing(self) -> str:
        """
        Get the assembly listing with cross reference.

        Returns:
            Listing text with addresses, code bytes and source
        """
        return self._listing.render(self._ctx.memory, self._ctx.symbols)

    def get_code(self, offset: Optional[int] = None) -> bytes:
        """
        Get the assembled bytes from the start address to the highest
        written address.

        Args:
            offset: Start address, or None for the lowest written address

        Raises:
            NoDataError: If nothing was written or offset lies above the data
        """
        start, end = writers.output_range(self._ctx.memory, offset)
        return self._ctx.memory.slice(start, end)

    def get_start(self, offset: Optional[int] = None) -> int:
        """Start address of the output slice."""
        return writers.output_range(self._ctx.memory, offset)[0]

    # =========================================================================
    # Output Methods
    # =========================================================================

    def _output_slice(self, offset: Optional[int]) -> tuple[int, bytes]:
        start, end = writers.output_range(self._ctx.memory, offset)
        logger.info(f"Writing data range [0x{start:04X}...0x{end:04X}]")
        return start, self._ctx.memory.slice(start, end)

    def write_binary(self, filepath: str | Path, offset: Optional[int] = None) -> None:
        """Write the raw bytes of the output slice."""
        _, data = self._output_slice(offset)
        writers.write_binary(filepath, data)

    def write_hex(self, filepath: str | Path, offset: Optional[int] = None) -> None:
        """Write the output slice as Intel HEX."""
        start, data = self._output_slice(offset)
        writers.write_hex(filepath, data, start)

    def write_c_array(
        self,
        filepath: str | Path,
        offset: Optional[int] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Write the output slice as a C header.

        Args:
            filepath: Output path
            offset: Start address, or None for the lowest written address
            name: C identifier (default: file name without extension)
        """
        start, data = self._output_slice(offset)
        writers.write_c_array(filepath, data, start, name)

    def write_listing(self, filepath: str | Path) -> None:
        """
        Write the listing file.

        The listing shows addresses, generated bytes, source lines and the
        cross reference of labels and undefined symbols.
        """
        Path(filepath).write_text(self.get_listing(), encoding="latin-1", newline="\n")
        logger.info(f"Wrote listing to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>", fill: int = 0x00) -> bytes:
    """
    Convenience function to assemble source code.

    Returns:
        The assembled bytes from the lowest to the highest written address

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(fill=fill)
    return asm.assemble_string(source, filename)


def assemble_file(filepath: str | Path, fill: int = 0x00) -> bytes:
    """
    Convenience function to assemble a file.

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(fill=fill)
    return asm.assemble_file(filepath)
