"""
TurboAss Output Package
=======================

Serializers for the assembled memory image.

Modules:
    ihex: Intel HEX record encoder with a line sink interface.
    writers: Slice selection and binary / Intel HEX / C header writers.
"""

from turboass.output.ihex import IntelHexWriter, format_record
from turboass.output.writers import (
    COM_START,
    output_range,
    is_com_file,
    hex_records,
    c_array,
    write_binary,
    write_hex,
    write_c_array,
)

__all__ = [
    "IntelHexWriter",
    "format_record",
    "COM_START",
    "output_range",
    "is_com_file",
    "hex_records",
    "c_array",
    "write_binary",
    "write_hex",
    "write_c_array",
]
