"""
Compilation Context
===================

All mutable state of a compilation run lives in one `CompilationContext`:
the memory image, the symbol table, the program counter and the line being
processed. The encoder and the driver receive the context explicitly, so
several assemblers can run side by side.

Value Emission
--------------
`emit_value()` is the single place where expression results reach memory:

1. The expression is evaluated with `$` bound to the start of the line.
2. Resolved: the value is range-checked and written.
3. Pending: placeholder bytes are written and one `Fixup` is registered
   against every pending symbol the expression names.

`define_symbol()` is the other half: it defines the symbol, takes the fixups
that were waiting for it, re-evaluates each one and patches memory. A fixup
whose expression still names another pending symbol is left alone; it is
also registered with that symbol and is applied when that one is defined.
"""

import logging
from typing import Optional

from turboass.errors import (
    AssemblerError,
    BranchRangeError,
    DirectiveError,
    ExpressionError,
    SourceLocation,
)
from turboass.assembler.expressions import EvalResult, ExpressionEvaluator
from turboass.assembler.lexer import Token, tokens_to_text
from turboass.assembler.memory import MemoryImage
from turboass.assembler.symbols import Fixup, FixupKind, SymbolKind, SymbolTable


logger = logging.getLogger(__name__)


class CompilationContext:
    """
    State of one compilation run.

    Attributes:
        memory: The 64K memory image
        symbols: The symbol table
        evaluator: Expression evaluator bound to `symbols`
        filename: Source name used in diagnostics
        pc: Current write address
        line_pc: Address at the start of the current line (value of `$`)
        line_number: Number of the line being processed (1-based)
        line_text: Raw text of the line being processed
        reached_end: Set by the END directive
    """

    def __init__(self, fill: int = 0x00, filename: str = "<input>"):
        self.memory = MemoryImage(fill)
        self.symbols = SymbolTable()
        self.evaluator = ExpressionEvaluator(self.symbols)
        self.filename = filename
        self.pc = 0x0000
        self.line_pc = 0x0000
        self.line_number = 0
        self.line_text = ""
        self.reached_end = False

    @property
    def location(self) -> SourceLocation:
        """Location of the line being processed."""
        return SourceLocation(self.filename, self.line_number)

    def begin_line(self, line_number: int, text: str) -> None:
        """Record the line about to be compiled."""
        self.line_number = line_number
        self.line_text = text
        self.line_pc = self.pc

    # =========================================================================
    # Raw Emission
    # =========================================================================

    def emit_byte(self, value: int) -> None:
        """Write one byte at PC and advance."""
        self.memory.write(self.pc, value)
        self.pc += 1

    def emit_bytes(self, *values: int) -> None:
        """Write several bytes at PC and advance."""
        for value in values:
            self.emit_byte(value)

    def emit_word(self, value: int) -> None:
        """Write a little-endian word at PC and advance."""
        self.emit_byte(value & 0xFF)
        self.emit_byte((value >> 8) & 0xFF)

    # =========================================================================
    # Expressions
    # =========================================================================

    def evaluate(self, tokens: list[Token]) -> EvalResult:
        """Evaluate an expression with `$` bound to the start of the line."""
        return self.evaluator.evaluate(tokens, self.line_pc)

    def resolve(self, tokens: list[Token], purpose: str) -> int:
        """
        Evaluate an expression that must be resolvable right now.

        Used by ORG, EQU and DEFS, whose effect on the PC or the symbol table
        cannot be patched later.

        Args:
            tokens: Expression tokens
            purpose: Name of the directive, for the error message

        Raises:
            DirectiveError: If the expression names a pending symbol
        """
        result = self.evaluate(tokens)
        if not result.resolved:
            names = ", ".join(f"'{name}'" for name in result.pending)
            raise DirectiveError(f"{purpose} needs a known value, {names} not defined yet")
        return result.value

    def emit_value(self, tokens: list[Token], kind: FixupKind) -> Optional[int]:
        """
        Evaluate an expression and write it at PC, registering fixups if needed.

        Args:
            tokens: Expression tokens
            kind: BYTE, WORD, DISPLACEMENT or RELATIVE (offset from the
                address after the byte)

        Returns:
            The value written, or None if a placeholder was written
        """
        address = self.pc
        result = self.evaluate(tokens)

        if result.resolved:
            self._store(address, kind, result.value)
            self.pc += 2 if kind == FixupKind.WORD else 1
            return result.value

        fixup = Fixup(
            address=address,
            kind=kind,
            tokens=list(tokens),
            pc=self.line_pc,
            line=self.line_number,
            text=self.line_text,
            base=address + 1,
        )
        for name in result.pending:
            self.symbols.add_fixup(name, fixup)
        logger.debug(
            f"line {self.line_number}: fixup at {address:04X} for "
            f"'{tokens_to_text(tokens)}' waiting on {', '.join(result.pending)}"
        )

        for _ in range(fixup.width):
            self.emit_byte(0)
        return None

    # =========================================================================
    # Symbol Definition
    # =========================================================================

    def define_symbol(self, name: str, value: int, kind: SymbolKind) -> None:
        """
        Define a symbol and apply the fixups that were waiting for it.

        Raises:
            DuplicateSymbolError: If the symbol is already defined
        """
        fixups = self.symbols.define(name, value & 0xFFFF, kind, self.line_number)
        logger.debug(f"define {name} = {value & 0xFFFF:04X} ({len(fixups)} fixups)")

        for fixup in fixups:
            self.apply_fixup(fixup)

    def apply_fixup(self, fixup: Fixup) -> bool:
        """
        Re-evaluate a fixup expression and patch memory if it is resolvable.

        Errors are reported against the line that contained the reference.

        Returns:
            True if memory was patched, False if still waiting
        """
        try:
            result = self.evaluator.evaluate(fixup.tokens, fixup.pc)
            if not result.resolved:
                return False
            self._store(fixup.address, fixup.kind, result.value, fixup.base)
        except AssemblerError as e:
            raise e.attach(SourceLocation(self.filename, fixup.line), fixup.text)

        logger.debug(f"fixup at {fixup.address:04X} from line {fixup.line} -> {result.value:04X}")
        return True

    # =========================================================================
    # Range-Checked Stores
    # =========================================================================

    def _store(self, address: int, kind: FixupKind, value: int, base: Optional[int] = None) -> None:
        """Write a value of the given kind to memory without moving the PC."""
        if kind == FixupKind.WORD:
            self.memory.write_word(address, value)
        elif kind == FixupKind.BYTE:
            self.memory.write(address, byte_value(value))
        elif kind == FixupKind.DISPLACEMENT:
            self.memory.write(address, displacement_value(value))
        else:
            if base is None:
                base = address + 1
            self.memory.write(address, relative_offset(value, base))


def byte_value(value: int) -> int:
    """
    Reduce a 16-bit expression value to a byte.

    Values 0xFF00..0xFFFF are negative numbers and are accepted.

    Raises:
        ExpressionError: If the value does not fit in a byte
    """
    if 0xFF < value < 0xFF00:
        raise ExpressionError(f"value 0x{value:04X} does not fit in a byte")
    return value & 0xFF


def displacement_value(value: int) -> int:
    """
    Reduce a 16-bit expression value to a signed index displacement byte.

    Raises:
        ExpressionError: If the value is outside -128..127
    """
    if 0x7F < value < 0xFF80:
        offset = value if value < 0x8000 else value - 0x10000
        raise ExpressionError(f"index displacement {offset} out of range (-128..127)")
    return value & 0xFF


def relative_offset(target: int, base: int) -> int:
    """
    Compute the offset byte of a relative jump.

    Args:
        target: Jump target address
        base: Address of the instruction following the jump

    Raises:
        BranchRangeError: If the offset is outside -128..+127
    """
    offset = target - base
    if offset < -128 or offset > 127:
        raise BranchRangeError(offset)
    return offset & 0xFF
