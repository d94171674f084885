"""
Output File Writers
===================

Serializers for the assembled memory slice:

- Raw binary (`.bin`, or `.com` for CP/M programs starting at 0100h)
- Intel HEX text (`.hex`)
- C header with a byte array (`.h`)

All functions take the slice bytes and its start address; the slice itself
is chosen by `output_range()`.

C Header Layout
---------------
```c
#ifndef INCLUDE_hello_H
#define INCLUDE_hello_H

const uint16_t helloAddr = 0x0100;
const uint8_t hello[] = {
  0x3E, 0x05, ... 16 values per row
  0xC9
};

#endif
```
"""

import logging
from pathlib import Path
from typing import Optional

from turboass.errors import NoDataError
from turboass.assembler.memory import MemoryImage
from turboass.output.ihex import IntelHexWriter


logger = logging.getLogger(__name__)

# CP/M loads .com programs at this address
COM_START = 0x0100

C_ARRAY_COLUMNS = 16


# =============================================================================
# Memory Slice Selection
# =============================================================================

def output_range(memory: MemoryImage, offset: Optional[int] = None) -> tuple[int, int]:
    """
    Select the inclusive address range to write.

    Args:
        memory: The assembled memory image
        offset: Explicit start address, or None for the lowest written address

    Returns:
        (start, end) with end the highest written address

    Raises:
        NoDataError: If nothing was written, or offset is above the data
    """
    if not memory.has_data():
        raise NoDataError("No data created")

    start = memory.min_pc if offset is None else offset
    if start > memory.max_pc:
        raise NoDataError(
            f"start address 0x{start:04X} is above the last written address 0x{memory.max_pc:04X}"
        )
    return start, memory.max_pc


def is_com_file(start: int) -> bool:
    """True if a binary starting at `start` is a CP/M .com program."""
    return start == COM_START


# =============================================================================
# Encoders
# =============================================================================

def hex_records(data: bytes, start: int, line_length: int = 16) -> str:
    """Encode a memory slice as Intel HEX text."""
    lines: list[str] = []
    writer = IntelHexWriter(lines.append, line_length)
    writer.set_address(start)
    writer.write_bytes(data)
    writer.end()
    return "".join(lines)


def c_array(data: bytes, start: int, name: str) -> str:
    """
    Encode a memory slice as a C header with an address constant and array.

    Args:
        data: Slice bytes (at least one)
        start: Address of the first byte
        name: C identifier used for the guard, array and address constant
    """
    if not data:
        raise NoDataError("No data created")

    out = [
        f"#ifndef INCLUDE_{name}_H\n#define INCLUDE_{name}_H\n\n",
        f"const uint16_t {name}Addr = 0x{start:04X};\n",
        f"const uint8_t {name}[] = {{\n  ",
    ]
    last = len(data) - 1
    for i, byte in enumerate(data):
        out.append(f"0x{byte:02X}")
        if i == last:
            out.append("\n};\n\n#endif\n")
        elif i % C_ARRAY_COLUMNS == C_ARRAY_COLUMNS - 1:
            out.append(",\n  ")
        else:
            out.append(", ")
    return "".join(out)


# =============================================================================
# File Writers
# =============================================================================

def write_binary(filepath: str | Path, data: bytes) -> None:
    """Write the slice as a raw binary file."""
    Path(filepath).write_bytes(data)
    logger.info(f"Wrote {len(data)} bytes to {filepath}")


def write_hex(filepath: str | Path, data: bytes, start: int) -> None:
    """Write the slice as an Intel HEX file."""
    Path(filepath).write_text(hex_records(data, start), newline="\n")
    logger.info(f"Wrote Intel HEX to {filepath}")


def write_c_array(filepath: str | Path, data: bytes, start: int, name: Optional[str] = None) -> None:
    """
    Write the slice as a C header.

    Args:
        filepath: Output path (e.g. "hello.h")
        data: Slice bytes
        start: Address of the first byte
        name: C identifier; defaults to the file name without extension
    """
    filepath = Path(filepath)
    if name is None:
        name = filepath.stem
    filepath.write_text(c_array(data, start, name), newline="\n")
    logger.info(f"Wrote C array '{name}' to {filepath}")
