"""
Symbol Table with Forward-Reference Fixups
==========================================

The assembler reads the source only once. A symbol used before its
definition is entered into the table as *pending*; every place that needs
its value gets a placeholder byte and a `Fixup` describing how to recompute
the value later. When the definition arrives, the table hands the fixups
back to the compilation context, which re-evaluates and patches them before
the next line is read.

Symbol Lifecycle
----------------
```
  (unseen) --reference--> PENDING(fixups) --define--> DEFINED(value)
  (unseen) --define-----> DEFINED(value)
  DEFINED  --define-----> DuplicateSymbolError
```

Iteration follows insertion order (first reference or definition), which
is also the order of the cross-reference in the listing.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional

from turboass.errors import DuplicateSymbolError
from turboass.assembler.lexer import Token


# =============================================================================
# Symbol and Fixup Types
# =============================================================================

class SymbolKind(Enum):
    """What defined a symbol."""
    LABEL = auto()       # Address of a source line
    CONSTANT = auto()    # EQU / = definition or predefined value


class SymbolState(Enum):
    """Resolution state of a symbol."""
    PENDING = auto()     # Referenced, not yet defined
    DEFINED = auto()     # Value known


class FixupKind(Enum):
    """How a fixup writes its recomputed value."""
    BYTE = auto()        # 8-bit value
    WORD = auto()        # 16-bit value, little-endian
    RELATIVE = auto()    # 8-bit signed offset from `base` (JR, DJNZ)
    DISPLACEMENT = auto()  # 8-bit signed index offset, (IX+d) / (IY+d)


@dataclass
class Fixup:
    """
    Deferred patch for an expression that referenced a pending symbol.

    Attributes:
        address: Memory address of the first byte to patch
        kind: How the value is written
        tokens: The expression to re-evaluate
        pc: Program counter in effect when the expression was first seen
        line: Source line number of the referencing instruction
        text: Source text of the referencing line
        base: Address relative offsets are measured from (RELATIVE only)
    """
    address: int
    kind: FixupKind
    tokens: list[Token]
    pc: int
    line: int
    text: str = ""
    base: int = 0

    @property
    def width(self) -> int:
        """Number of bytes patched."""
        return 2 if self.kind == FixupKind.WORD else 1


@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Symbol name (case preserved)
        state: PENDING or DEFINED
        kind: LABEL or CONSTANT once defined, None while pending
        value: Resolved value (0 while pending)
        line: Line of the definition (0 for predefined symbols)
        fixups: Outstanding patches waiting for the definition
    """
    name: str
    state: SymbolState = SymbolState.PENDING
    kind: Optional[SymbolKind] = None
    value: int = 0
    line: int = 0
    fixups: list[Fixup] = field(default_factory=list)

    @property
    def is_defined(self) -> bool:
        return self.state == SymbolState.DEFINED

    @property
    def is_pending(self) -> bool:
        return self.state == SymbolState.PENDING


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Maps names to Symbol entries.

    Usage:
        table = SymbolTable()
        table.reference("start")               # pending
        table.add_fixup("start", fixup)
        fixups = table.define("start", 0x100, SymbolKind.LABEL, line=7)
        # caller re-evaluates and patches `fixups`
    """

    def __init__(self):
        self._symbols: dict[str, Symbol] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __iter__(self) -> Iterator[Symbol]:
        return iter(list(self._symbols.values()))

    def __len__(self) -> int:
        return len(self._symbols)

    def get(self, name: str) -> Optional[Symbol]:
        """Look up a symbol without creating it."""
        return self._symbols.get(name)

    def reference(self, name: str) -> Symbol:
        """
        Look up a symbol for use in an expression.

        Creates a pending entry if the name has not been seen.
        """
        symbol = self._symbols.get(name)
        if symbol is None:
            symbol = Symbol(name=name)
            self._symbols[name] = symbol
        return symbol

    def define(self, name: str, value: int, kind: SymbolKind, line: int = 0) -> list[Fixup]:
        """
        Define a symbol.

        Args:
            name: Symbol name
            value: Symbol value
            kind: LABEL or CONSTANT
            line: Source line of the definition

        Returns:
            The fixups that were waiting for this symbol, detached from it.
            The caller must re-evaluate and apply them before continuing.

        Raises:
            DuplicateSymbolError: If the symbol is already defined
        """
        symbol = self._symbols.get(name)
        if symbol is None:
            symbol = Symbol(name=name)
            self._symbols[name] = symbol
        elif symbol.is_defined:
            raise DuplicateSymbolError(name, original_line=symbol.line or None)

        symbol.state = SymbolState.DEFINED
        symbol.kind = kind
        symbol.value = value
        symbol.line = line

        fixups, symbol.fixups = symbol.fixups, []
        return fixups

    def add_fixup(self, name: str, fixup: Fixup) -> None:
        """Register a fixup against a pending symbol."""
        symbol = self.reference(name)
        if symbol.is_defined:
            raise ValueError(f"symbol '{name}' is already defined")
        symbol.fixups.append(fixup)

    def pending(self) -> list[Symbol]:
        """Symbols still unresolved, in table order."""
        return [s for s in self._symbols.values() if s.is_pending]

    def defined_values(self) -> dict[str, int]:
        """Mapping of every defined symbol name to its value."""
        return {s.name: s.value for s in self._symbols.values() if s.is_defined}
