"""
Assembly Listing and Cross Reference
====================================

The listing shows every source line next to the bytes it produced:

```
0000    3E 05           start:  ld   a,5
0002    C3 00 00                jp   start
                        ; comment lines are indented to the text column
0005    48 65 6C 6C     msg:    defm "Hello, world"
0009    6F 2C 20 77
000D    6F 72 6C 64
```

Layout of a line with bytes: the address of each row, then up to 4 bytes
per row. The source text follows the opcode bytes (the first 1-4 bytes of
the line) and starts in column 24.

Long data blocks are shortened: when a line produced more than 8 rows, only
the first 6 rows and the last 2 rows are shown, separated by a `...` row.

Lines are recorded while assembling and rendered at the end from the final
memory image, so bytes patched by forward references show their final
values.

The cross reference follows the listing and names every label with its
address, and every symbol that was never defined:

```
Cross reference

0000                   start
----    missing is undefined!
```
"""

from dataclasses import dataclass
from typing import Iterable

from turboass.assembler.memory import MemoryImage
from turboass.assembler.symbols import Symbol, SymbolKind


# Column where source text starts on listing lines
TEXT_COLUMN = 24

BYTES_PER_ROW = 4

# Lines with more rows than this are shortened to the first and last rows
MAX_ROWS = 8
HEAD_ROWS = MAX_ROWS - 2
TAIL_ROWS = 2


@dataclass(frozen=True)
class ListingLine:
    """
    One recorded source line.

    Attributes:
        first_pc: Address of the first byte produced
        last_pc: Address after the last byte produced
        text: Source text of the line
    """
    first_pc: int
    last_pc: int
    text: str

    @property
    def size(self) -> int:
        """Number of bytes the line produced."""
        return max(self.last_pc - self.first_pc, 0)


class ListingFormatter:
    """
    Collects source lines during assembly and renders the listing.

    Usage:
        listing = ListingFormatter()
        listing.add_line(0x0000, 0x0002, "  ld a,5")
        text = listing.render(memory, symbols)
    """

    def __init__(self):
        self.lines: list[ListingLine] = []

    def add_line(self, first_pc: int, last_pc: int, text: str) -> None:
        """Record a processed line and the address range it wrote."""
        self.lines.append(ListingLine(first_pc, last_pc, text))

    def render(self, memory: MemoryImage, symbols: Iterable[Symbol]) -> str:
        """
        Render the listing followed by the cross reference.

        Args:
            memory: Final memory image
            symbols: Symbol table entries in table order

        Returns:
            Complete listing text
        """
        out: list[str] = []
        for line in self.lines:
            out.extend(format_line(line, memory))
        out.extend(format_cross_reference(symbols))
        return "".join(out)


# =============================================================================
# Line Formatting
# =============================================================================

def format_line(line: ListingLine, memory: MemoryImage) -> list[str]:
    """
    Format one source line with its bytes.

    Returns:
        Listing text fragments, each row terminated by a newline
    """
    text = line.text
    size = line.size

    if size == 0:
        if text:
            return [" " * TEXT_COLUMN + text + "\n"]
        return ["\n"]

    first = line.first_pc
    last = line.last_pc
    # Address of the last opcode byte, after which the text is printed
    end_op = last - 1 if last < first + BYTES_PER_ROW else first + BYTES_PER_ROW - 1
    last_row = (size - 1) // BYTES_PER_ROW
    shorten = last_row >= MAX_ROWS

    out: list[str] = []
    for row in range(last_row + 1):
        if shorten and HEAD_ROWS <= row <= last_row - TAIL_ROWS:
            if row == HEAD_ROWS:
                out.append("...\n")
            continue

        row_start = first + row * BYTES_PER_ROW
        row_end = min(row_start + BYTES_PER_ROW, last)
        for adr in range(row_start, row_end):
            col = adr - row_start
            if col == 0:
                out.append(f"{adr:04X}   ")
            out.append(f" {memory.read(adr):02X}")
            if adr == end_op:
                # Pad to the text column: 3 characters per missing byte
                out.append(" " * (5 + 3 * (BYTES_PER_ROW - 1 - col)) + text + "\n")
            elif col == BYTES_PER_ROW - 1 or adr == last - 1:
                out.append("\n")

    return out


# =============================================================================
# Cross Reference
# =============================================================================

def format_cross_reference(symbols: Iterable[Symbol]) -> list[str]:
    """
    Format the cross reference of labels and undefined symbols.

    Constants are not listed.
    """
    out = ["\nCross reference\n\n"]
    for symbol in symbols:
        if symbol.is_pending:
            out.append(f"----    {symbol.name} is undefined!\n")
        elif symbol.kind == SymbolKind.LABEL:
            width = 20 + len(symbol.name)
            out.append(f"{symbol.value:04X}{symbol.name:>{width}}\n")
    return out
