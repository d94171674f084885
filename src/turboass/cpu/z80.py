"""
Z80 Instruction Set Definitions
===============================

Register encodings, condition codes and opcode tables for the Zilog Z80.
The encoder in `turboass.assembler.codegen` combines these field values into
complete instructions; nothing here knows about operands or expressions.

Opcode Structure
----------------
Most Z80 opcodes are built from bit fields:

    LD r,r'     01 rrr sss      (r, s = 8-bit register code)
    ALU A,r     10 ooo sss      (o = ALU operation)
    LD dd,nn    00 dd0 001      (dd = 16-bit register pair)

Prefixes select further tables:

| Prefix | Table                                              |
|--------|----------------------------------------------------|
| CB     | rotates, shifts, BIT/SET/RES                       |
| ED     | block transfers, 16-bit ADC/SBC, IM, IN/OUT (C)    |
| DD     | IX replaces HL, (IX+d) replaces (HL)               |
| FD     | IY replaces HL, (IY+d) replaces (HL)               |

Indexed CB instructions place the displacement before the final opcode:
DD CB dd op.

Reference: Zilog Z80 CPU User Manual (UM0080).
"""

# =============================================================================
# Register Encodings
# =============================================================================

# 8-bit registers in the 3-bit "r" field. Code 6 is (HL) / (IX+d) / (IY+d).
REG8 = {
    "B": 0,
    "C": 1,
    "D": 2,
    "E": 3,
    "H": 4,
    "L": 5,
    "A": 7,
}
REG8_HL_INDIRECT = 6

# 16-bit pairs in the 2-bit "dd"/"ss" field (LD, INC, DEC, ADD HL)
REG16_SP = {
    "BC": 0,
    "DE": 1,
    "HL": 2,
    "SP": 3,
}

# 16-bit pairs in the "qq" field (PUSH, POP)
REG16_AF = {
    "BC": 0,
    "DE": 1,
    "HL": 2,
    "AF": 3,
}

# Index registers and their prefix bytes
INDEX_PREFIX = {
    "IX": 0xDD,
    "IY": 0xFD,
}

SPECIAL_REGISTERS = frozenset({"I", "R", "AF'"})

REGISTERS = frozenset(REG8) | frozenset(REG16_SP) | frozenset(REG16_AF) \
    | frozenset(INDEX_PREFIX) | SPECIAL_REGISTERS


# =============================================================================
# Condition Codes
# =============================================================================

CONDITIONS = {
    "NZ": 0,
    "Z": 1,
    "NC": 2,
    "C": 3,
    "PO": 4,
    "PE": 5,
    "P": 6,
    "M": 7,
}

# JR only tests the first four conditions
JR_CONDITIONS = frozenset({"NZ", "Z", "NC", "C"})


# =============================================================================
# Opcode Tables
# =============================================================================

# Instructions without operands -> complete byte sequence
INHERENT = {
    "NOP": (0x00,),
    "RLCA": (0x07,),
    "RRCA": (0x0F,),
    "RLA": (0x17,),
    "RRA": (0x1F,),
    "DAA": (0x27,),
    "CPL": (0x2F,),
    "SCF": (0x37,),
    "CCF": (0x3F,),
    "HALT": (0x76,),
    "EXX": (0xD9,),
    "DI": (0xF3,),
    "EI": (0xFB,),
    "NEG": (0xED, 0x44),
    "RETN": (0xED, 0x45),
    "RETI": (0xED, 0x4D),
    "RRD": (0xED, 0x67),
    "RLD": (0xED, 0x6F),
    "LDI": (0xED, 0xA0),
    "CPI": (0xED, 0xA1),
    "INI": (0xED, 0xA2),
    "OUTI": (0xED, 0xA3),
    "LDD": (0xED, 0xA8),
    "CPD": (0xED, 0xA9),
    "IND": (0xED, 0xAA),
    "OUTD": (0xED, 0xAB),
    "LDIR": (0xED, 0xB0),
    "CPIR": (0xED, 0xB1),
    "INIR": (0xED, 0xB2),
    "OTIR": (0xED, 0xB3),
    "LDDR": (0xED, 0xB8),
    "CPDR": (0xED, 0xB9),
    "INDR": (0xED, 0xBA),
    "OTDR": (0xED, 0xBB),
}

# 8-bit arithmetic/logic: operation code in bits 3-5
ALU_OPS = {
    "ADD": 0,
    "ADC": 1,
    "SUB": 2,
    "SBC": 3,
    "AND": 4,
    "XOR": 5,
    "OR": 6,
    "CP": 7,
}

# CB-prefixed rotates and shifts: operation code in bits 3-5
ROTATE_OPS = {
    "RLC": 0,
    "RRC": 1,
    "RL": 2,
    "RR": 3,
    "SLA": 4,
    "SRA": 5,
    "SLL": 6,   # undocumented, also known as SLI
    "SLI": 6,
    "SRL": 7,
}

# CB-prefixed bit operations: base opcode, bit number in bits 3-5
BIT_OPS = {
    "BIT": 0x40,
    "RES": 0x80,
    "SET": 0xC0,
}

# IM n -> ED xx
INTERRUPT_MODES = {
    0: 0x46,
    1: 0x56,
    2: 0x5E,
}

OTHER_MNEMONICS = frozenset({
    "LD", "PUSH", "POP", "EX", "INC", "DEC",
    "JP", "JR", "DJNZ", "CALL", "RET", "RST",
    "IN", "OUT", "IM",
})

MNEMONICS = frozenset(INHERENT) | frozenset(ALU_OPS) | frozenset(ROTATE_OPS) \
    | frozenset(BIT_OPS) | OTHER_MNEMONICS


# =============================================================================
# Lookup Functions
# =============================================================================

def is_mnemonic(name: str) -> bool:
    """Check if a (case-insensitive) name is a Z80 mnemonic."""
    return name.upper() in MNEMONICS


def is_register(name: str) -> bool:
    """Check if a (case-insensitive) name is a register name."""
    return name.upper() in REGISTERS


def is_condition(name: str) -> bool:
    """Check if a (case-insensitive) name is a condition code."""
    return name.upper() in CONDITIONS
