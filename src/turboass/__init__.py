"""
TurboAss Z80 - A One-Pass Assembler for the Zilog Z80
=====================================================

This package assembles Z80 source files into a 64K memory image and writes
the used part of it as raw binary (or CP/M .com), Intel HEX or a C header,
together with an optional listing and cross reference.

Main Components
---------------
- **assembler**: Tokenizer, expression evaluator, symbol table with
  forward-reference fixups, instruction encoder, listing
- **cpu**: Z80 register, condition and opcode tables
- **output**: Binary, Intel HEX and C header writers
- **cli**: The `turboass` command

Quick Start
-----------
    >>> from turboass import Assembler
    >>> asm = Assembler()
    >>> code = asm.assemble_file("hello.asm")
    >>> asm.write_hex("hello.hex")
    >>> asm.write_listing("hello.lst")

Or from the command line:
    $ turboass -b -i -l hello.asm

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from turboass.assembler import Assembler, assemble, assemble_file
from turboass.errors import (
    TurboAssError,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    AddressingModeError,
    DuplicateSymbolError,
    AddressOverflowError,
    ExpressionError,
    BranchRangeError,
    DirectiveError,
    UndefinedSymbolError,
    OutputError,
    NoDataError,
)

__all__ = [
    "__version__",
    "Assembler",
    "assemble",
    "assemble_file",
    "TurboAssError",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "AddressingModeError",
    "DuplicateSymbolError",
    "AddressOverflowError",
    "ExpressionError",
    "BranchRangeError",
    "DirectiveError",
    "UndefinedSymbolError",
    "OutputError",
    "NoDataError",
]
