"""
Memory Image for the Z80 Address Space
=======================================

The assembler writes machine code into a 64K byte image of the target's
address space rather than into a growing output buffer. Code can therefore
be placed anywhere with ORG, and forward references are patched in place.

Every write goes through `check_pc()`, which rejects addresses outside the
64K range before anything lands and widens the tracked range of touched
addresses. The output encoders serialize the slice between the lowest and
highest written address.
"""

import logging

from turboass.errors import AddressOverflowError


logger = logging.getLogger(__name__)

MEMORY_SIZE = 0x10000


class MemoryImage:
    """
    64K byte memory image with touched-range tracking.

    Attributes:
        fill: Byte value the image was pre-filled with
        min_pc: Lowest address written so far (MEMORY_SIZE if none)
        max_pc: Highest address written so far (0 if none)
    """

    def __init__(self, fill: int = 0x00):
        """
        Initialize the image.

        Args:
            fill: Byte value for untouched memory (default 0x00)
        """
        self.fill = fill & 0xFF
        self._data = bytearray([self.fill]) * MEMORY_SIZE
        self.min_pc = MEMORY_SIZE
        self.max_pc = 0

    def check_pc(self, address: int) -> None:
        """
        Validate a write address and widen the touched range.

        Raises:
            AddressOverflowError: If address is outside 0x0000..0xFFFF
        """
        if address < 0 or address >= MEMORY_SIZE:
            raise AddressOverflowError(address)
        if address < self.min_pc:
            self.min_pc = address
        if address > self.max_pc:
            self.max_pc = address
        logger.debug(f"checkPC({address:04X}) [{self.min_pc:04X}..{self.max_pc:04X}]")

    def write(self, address: int, value: int) -> None:
        """Write one byte."""
        self.check_pc(address)
        self._data[address] = value & 0xFF

    def write_word(self, address: int, value: int) -> None:
        """Write a 16-bit value, little-endian."""
        self.write(address, value)
        self.write(address + 1, value >> 8)

    def read(self, address: int) -> int:
        """Read one byte (no range tracking)."""
        return self._data[address]

    def has_data(self) -> bool:
        """True if at least one byte has been written."""
        return self.min_pc <= self.max_pc

    def slice(self, start: int, end: int) -> bytes:
        """Return the bytes of the inclusive range [start, end]."""
        return bytes(self._data[start:end + 1])

    def __len__(self) -> int:
        return MEMORY_SIZE
