"""
Intel HEX Record Encoder
========================

Streams bytes into Intel HEX text records and hands each completed line to
a sink callable (e.g. `file.write` or `list.append`).

Record Format
-------------
```
:LLAAAATTDD...DDCC
 |  |   | |      +-- checksum: two's complement of the sum of all bytes
 |  |   | +--------- data bytes
 |  |   +----------- record type (00 data, 01 end, 04 extended address)
 |  +--------------- 16-bit load address
 +------------------ number of data bytes
```

Data records carry at most `line_length` bytes (16 by default). A type-04
record is emitted before the first data record whose upper address word is
not zero. Hex digits are uppercase, lines end with a newline.

Usage:
    lines = []
    writer = IntelHexWriter(lines.append)
    writer.set_address(0x0100)
    writer.write_bytes(b"\\x3E\\x05\\xC9")
    writer.end()
    # lines == [":030100003E05C9F0\\n", ":00000001FF\\n"]
"""

from typing import Callable


RECORD_DATA = 0x00
RECORD_END = 0x01
RECORD_EXTENDED_LINEAR = 0x04


def format_record(record_type: int, address: int, data: bytes = b"") -> str:
    """
    Format one Intel HEX record line.

    Args:
        record_type: Record type byte
        address: 16-bit load address field
        data: Record payload

    Returns:
        The record text including the trailing newline
    """
    address &= 0xFFFF
    checksum = len(data) + (address >> 8) + (address & 0xFF) + record_type + sum(data)
    payload = "".join(f"{b:02X}" for b in data)
    return f":{len(data):02X}{address:04X}{record_type:02X}{payload}{(-checksum) & 0xFF:02X}\n"


class IntelHexWriter:
    """
    Buffers bytes and emits Intel HEX records to a sink.

    Attributes:
        line_length: Maximum number of data bytes per record
    """

    def __init__(self, sink: Callable[[str], object], line_length: int = 16):
        if not 1 <= line_length <= 255:
            raise ValueError(f"line_length must be 1..255, got {line_length}")
        self.line_length = line_length
        self._sink = sink
        self._address = 0
        self._buffer = bytearray()
        self._segment = 0

    def set_address(self, address: int) -> None:
        """Start a new run of bytes at the given address."""
        self.flush()
        self._address = address

    def write_bytes(self, data: bytes) -> None:
        """Append bytes at the current address, emitting full records."""
        for byte in data:
            self._buffer.append(byte)
            if len(self._buffer) == self.line_length:
                self.flush()

    def flush(self) -> None:
        """Emit the buffered bytes as a data record."""
        if not self._buffer:
            return

        segment = self._address >> 16
        if segment != self._segment:
            self._segment = segment
            self._sink(format_record(RECORD_EXTENDED_LINEAR, 0, segment.to_bytes(2, "big")))

        self._sink(format_record(RECORD_DATA, self._address, bytes(self._buffer)))
        self._address += len(self._buffer)
        self._buffer.clear()

    def end(self) -> None:
        """Flush remaining bytes and write the end-of-file record."""
        self.flush()
        self._sink(format_record(RECORD_END, 0))
