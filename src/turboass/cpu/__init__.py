"""
TurboAss CPU Package
====================

CPU architecture definitions for the Zilog Z80, used by the tokenizer (to
recognize reserved words) and the encoder (to build opcodes).

Modules:
    z80: Register encodings, condition codes and opcode tables.

Usage:
    from turboass.cpu import REG8, ALU_OPS, is_mnemonic
"""

# =============================================================================
# Public API Exports
# =============================================================================

from turboass.cpu.z80 import (
    # Register encodings
    REG8,
    REG8_HL_INDIRECT,
    REG16_SP,
    REG16_AF,
    INDEX_PREFIX,
    REGISTERS,
    # Condition codes
    CONDITIONS,
    JR_CONDITIONS,
    # Opcode tables
    INHERENT,
    ALU_OPS,
    ROTATE_OPS,
    BIT_OPS,
    INTERRUPT_MODES,
    MNEMONICS,
    # Lookup functions
    is_mnemonic,
    is_register,
    is_condition,
)

__all__ = [
    "REG8",
    "REG8_HL_INDIRECT",
    "REG16_SP",
    "REG16_AF",
    "INDEX_PREFIX",
    "REGISTERS",
    "CONDITIONS",
    "JR_CONDITIONS",
    "INHERENT",
    "ALU_OPS",
    "ROTATE_OPS",
    "BIT_OPS",
    "INTERRUPT_MODES",
    "MNEMONICS",
    "is_mnemonic",
    "is_register",
    "is_condition",
]
