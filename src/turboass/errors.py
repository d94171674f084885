"""
TurboAss Error Hierarchy
========================

This module defines the exception hierarchy for the TurboAss Z80 assembler.
All exceptions inherit from TurboAssError, allowing callers to catch every
assembler-related error with a single except clause if desired.

Exception Hierarchy
-------------------
TurboAssError (base)
├── AssemblerError (compilation-related, always fatal to the run)
│   ├── AssemblySyntaxError - malformed token, unknown mnemonic/directive
│   │   └── AddressingModeError - operand shape not valid for instruction
│   ├── DuplicateSymbolError - symbol defined more than once
│   ├── AddressOverflowError - write at or beyond the 64K boundary
│   ├── ExpressionError - malformed expression, division by zero
│   ├── BranchRangeError - relative jump target too far
│   ├── DirectiveError - directive used incorrectly
│   └── UndefinedSymbolError - unresolved symbol (strict mode only)
└── OutputError (serialization of the memory image)
    └── NoDataError - nothing to write

Error Text
----------
Every fatal assembler error prints the line number, the message and the
trimmed text of the offending line:

    Error in line 12: duplicate symbol 'loop'
    loop:   djnz loop
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class TurboAssError(Exception):
    """
    Base exception for all TurboAss errors.

        try:
            asm.assemble_file("monitor.asm")
        except TurboAssError as e:
            print(e)
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 if unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line' or 'filename:line:column'."""
        if self.column:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(TurboAssError):
    """
    Base exception for all compilation errors.

    The tokenizer and encoder usually raise these without a source line;
    the driver fills in the line context with `attach()` before the error
    leaves the assembler, so the message always names the offending line.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The raw source text of the line (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def attach(self, location: SourceLocation, source_line: str) -> "AssemblerError":
        """
        Fill in missing line context and rebuild the message.

        Context already present (e.g. a fixup error that carries the line
        of the original reference) is kept.
        """
        if self.location is None:
            self.location = location
        if self.source_line is None:
            self.source_line = source_line
        self.args = (self._format_message(),)
        return self

    @property
    def line(self) -> Optional[int]:
        """Line number of the error, if known."""
        return self.location.line if self.location else None

    def _format_message(self) -> str:
        """
        Format the error message with line number, source text and hint.

        Example output:
            Error in line 15: unknown instruction 'jmp'
            jmp start
            hint: use JP for absolute jumps
        """
        if self.location:
            parts = [f"Error in line {self.location.line}: {self.message}"]
        else:
            parts = [f"Error: {self.message}"]

        if self.source_line is not None:
            parts.append(self.source_line.strip())

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in assembly source code.

    Examples:
        - Invalid character in source
        - Unterminated string literal
        - Invalid number format
        - Unknown mnemonic or directive
    """
    pass


class AddressingModeError(AssemblySyntaxError):
    """
    Operand combination not encodable for an instruction.

    Example:
        LD (BC),B   ; only A can be stored through (BC)
    """

    def __init__(
        self,
        mnemonic: str,
        operands: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        self.operands = operands

        super().__init__(
            f"invalid operands for {mnemonic}: '{operands}'",
            location=location,
            source_line=source_line,
        )


class DuplicateSymbolError(AssemblerError):
    """
    Symbol defined multiple times.

    Raised when a label or constant is defined after it has already been
    defined. Includes the line of the first definition when known.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_line: Optional[int] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_line = original_line

        hint = None
        if original_line:
            hint = f"'{symbol}' was first defined in line {original_line}"

        super().__init__(
            f"duplicate symbol '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class AddressOverflowError(AssemblerError):
    """
    Write attempted outside the 64K address space.

    No byte at or beyond the boundary ever lands in the memory image.
    """

    def __init__(self, address: int, location: Optional[SourceLocation] = None):
        self.address = address
        super().__init__(
            f"address overflow at 0x{address:X}",
            location=location,
        )


class ExpressionError(AssemblerError):
    """
    Error evaluating an expression.

    Raised for:
    - Division or modulo by zero
    - Unbalanced parentheses
    - Missing operands or stray tokens
    """
    pass


class BranchRangeError(AssemblerError):
    """
    Relative jump target is out of range.

    JR and DJNZ use a signed 8-bit offset relative to the address of the
    following instruction, limiting the reach to -128..+127 bytes.
    """

    def __init__(
        self,
        offset: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.offset = offset

        direction = "forward" if offset > 0 else "backward"
        hint = f"use JP for {direction} jumps beyond -128..+127 bytes"

        super().__init__(
            f"relative jump out of range (offset: {offset})",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DirectiveError(AssemblerError):
    """
    Error in an assembler directive.

    Examples:
        - ORG with an expression that is not yet resolvable
        - EQU without a symbol name
        - DEFS with a negative count
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Symbols still unresolved at the end of the source.

    Only raised when the assembler runs in strict mode; otherwise the
    condition is reported in the listing cross-reference.
    """

    def __init__(self, symbols: list[str], location: Optional[SourceLocation] = None):
        self.symbols = list(symbols)
        names = ", ".join(f"'{s}'" for s in self.symbols)
        word = "symbol" if len(self.symbols) == 1 else "symbols"
        super().__init__(f"undefined {word} {names}", location=location)


# =============================================================================
# Output Exceptions
# =============================================================================

class OutputError(TurboAssError):
    """Base exception for memory image serialization errors."""
    pass


class NoDataError(OutputError):
    """
    The requested memory slice is empty.

    Raised when nothing was written during compilation, or when an explicit
    start offset lies above the highest written address.
    """
    pass
