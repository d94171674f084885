"""
Z80 Code Generator
==================

This module encodes one parsed source line into the memory image of a
`CompilationContext`. The assembler is one-pass: every line is encoded as
soon as it is read, and operands that name symbols defined further down are
written as placeholders with fixups (see `CompilationContext.emit_value`).

Line Processing
---------------
1. A label on the line is defined at the PC before the line's bytes
   (`name EQU expr` / `name = expr` defines a constant instead).
2. Directives change the PC or emit data.
3. Instructions are dispatched by mnemonic to an encoding method, which
   classifies the operands by shape and assembles the opcode from the
   field tables in `turboass.cpu.z80`.

Directives
----------
| Directive              | Effect                                          |
|------------------------|-------------------------------------------------|
| ORG expr               | Set PC (value must be known)                    |
| name EQU expr          | Define constant (value must be known)           |
| DEFB/DB/BYTE list      | Bytes; strings emit their characters            |
| DEFM/DM list           | Same as DEFB                                    |
| DEFW/DW/WORD list      | 16-bit little-endian words                      |
| DEFS/DS count[,fill]   | Reserve bytes; with fill the bytes are written  |
| END                    | Stop reading the source                         |

Index Registers
---------------
IX and IY instructions are the HL instructions with a DD/FD prefix; (HL)
becomes (IX+d) with the displacement byte after the opcode. For CB-prefixed
instructions the displacement comes before the final opcode byte:

    RLC (IX+5)      DD CB 05 06
    BIT 3,(IY-1)    FD CB FF 5E
"""

import logging
from typing import Callable, Optional

from turboass.errors import (
    AddressOverflowError,
    AddressingModeError,
    AssemblySyntaxError,
    DirectiveError,
    ExpressionError,
)
from turboass.assembler.context import CompilationContext
from turboass.assembler.memory import MEMORY_SIZE
from turboass.assembler.lexer import Token, TokenType, tokens_to_text
from turboass.assembler.parser import (
    ParsedLine,
    Operand,
    OperandKind,
    classify_operand,
)
from turboass.assembler.symbols import FixupKind, SymbolKind
from turboass.cpu import (
    REG8,
    REG8_HL_INDIRECT,
    REG16_SP,
    REG16_AF,
    INDEX_PREFIX,
    CONDITIONS,
    JR_CONDITIONS,
    INHERENT,
    ALU_OPS,
    ROTATE_OPS,
    BIT_OPS,
    INTERRUPT_MODES,
)


logger = logging.getLogger(__name__)


# Operand that addresses an 8-bit location: (prefix, register code, displacement)
# prefix is None for plain registers and (HL); displacement is None unless
# prefix is set, and an empty list for (IX) without offset.
Reg8Operand = tuple[Optional[int], int, Optional[list[Token]]]


class InstructionEncoder:
    """
    Encodes parsed lines into a compilation context.

    Usage:
        ctx = CompilationContext()
        encoder = InstructionEncoder(ctx)
        ctx.begin_line(1, "  ld a,5")
        encoder.encode(parse_line("  ld a,5"))
    """

    def __init__(self, context: CompilationContext):
        self.ctx = context
        self._handlers: dict[str, Callable[[str, list[Operand]], None]] = {
            "LD": self._encode_ld,
            "PUSH": self._encode_push_pop,
            "POP": self._encode_push_pop,
            "EX": self._encode_ex,
            "INC": self._encode_inc_dec,
            "DEC": self._encode_inc_dec,
            "JP": self._encode_jp_call,
            "CALL": self._encode_jp_call,
            "JR": self._encode_jr,
            "DJNZ": self._encode_djnz,
            "RET": self._encode_ret,
            "RST": self._encode_rst,
            "IN": self._encode_in,
            "OUT": self._encode_out,
            "IM": self._encode_im,
        }
        for name in ALU_OPS:
            self._handlers[name] = self._encode_alu
        for name in ROTATE_OPS:
            self._handlers[name] = self._encode_rotate
        for name in BIT_OPS:
            self._handlers[name] = self._encode_bit

    # =========================================================================
    # Line Dispatch
    # =========================================================================

    def encode(self, line: ParsedLine) -> None:
        """
        Encode one parsed line at the current PC.

        Raises:
            AssemblerError: Any encoding error (without line context; the
                driver attaches it)
        """
        if line.label is not None and line.mnemonic != "EQU":
            self.ctx.define_symbol(line.label, self.ctx.pc, SymbolKind.LABEL)

        if line.mnemonic is None:
            return

        if line.is_directive:
            self._encode_directive(line)
            return

        mnemonic = line.mnemonic
        if mnemonic in INHERENT:
            if line.operands:
                raise self._invalid(mnemonic, line.operands)
            self.ctx.emit_bytes(*INHERENT[mnemonic])
            return

        handler = self._handlers.get(mnemonic)
        if handler is None:
            raise AssemblySyntaxError(f"unknown instruction '{line.mnemonic_token.value}'")

        operands = [classify_operand(tokens) for tokens in line.operands]
        handler(mnemonic, operands)

    def _invalid(self, mnemonic: str, operands: list) -> AddressingModeError:
        """Build the error for an operand combination that cannot be encoded."""
        texts = [op.text if isinstance(op, Operand) else tokens_to_text(op) for op in operands]
        return AddressingModeError(mnemonic, ",".join(texts))

    # =========================================================================
    # Directives
    # =========================================================================

    def _encode_directive(self, line: ParsedLine) -> None:
        name = line.mnemonic
        args = line.operands

        if name == "ORG":
            self._expect_args(name, args, 1)
            self.ctx.pc = self.ctx.resolve(args[0], name)
            logger.debug(f"line {self.ctx.line_number}: ORG {self.ctx.pc:04X}")

        elif name == "EQU":
            if line.label is None:
                raise DirectiveError("EQU without symbol name")
            self._expect_args(name, args, 1)
            value = self.ctx.resolve(args[0], name)
            self.ctx.define_symbol(line.label, value, SymbolKind.CONSTANT)

        elif name == "END":
            self.ctx.reached_end = True

        elif name in ("DEFB", "DB", "BYTE", "DEFM", "DM"):
            if not args:
                raise DirectiveError(f"{name} needs at least one value")
            for arg in args:
                if len(arg) == 1 and arg[0].type == TokenType.STRING:
                    for char in arg[0].value:
                        if ord(char) > 0xFF:
                            raise ExpressionError(f"character '{char}' does not fit in a byte")
                        self.ctx.emit_byte(ord(char))
                else:
                    self.ctx.emit_value(arg, FixupKind.BYTE)

        elif name in ("DEFW", "DW", "WORD"):
            if not args:
                raise DirectiveError(f"{name} needs at least one value")
            for arg in args:
                self.ctx.emit_value(arg, FixupKind.WORD)

        elif name in ("DEFS", "DS"):
            if len(args) not in (1, 2):
                raise DirectiveError(f"{name} expects a count and an optional fill value")
            count = self.ctx.resolve(args[0], name)
            if len(args) == 2:
                fill = self.ctx.resolve(args[1], name)
                for _ in range(count):
                    self.ctx.emit_byte(fill)
            else:
                end = self.ctx.pc + count
                if end > MEMORY_SIZE:
                    raise AddressOverflowError(end)
                self.ctx.pc = end

    @staticmethod
    def _expect_args(name: str, args: list, count: int) -> None:
        if len(args) != count:
            raise DirectiveError(f"{name} expects {count} operand, got {len(args)}")

    # =========================================================================
    # Operand Helpers
    # =========================================================================

    @staticmethod
    def _reg8(op: Operand) -> Optional[Reg8Operand]:
        """Decode r, (HL), (IX), (IX+d) operands; None for anything else."""
        if op.kind == OperandKind.REGISTER and op.name in REG8:
            return None, REG8[op.name], None
        if op.is_indirect("HL"):
            return None, REG8_HL_INDIRECT, None
        if op.is_indirect("IX", "IY"):
            return INDEX_PREFIX[op.name], REG8_HL_INDIRECT, []
        if op.kind == OperandKind.INDEXED:
            return INDEX_PREFIX[op.name], REG8_HL_INDIRECT, op.tokens
        return None

    @staticmethod
    def _condition(op: Operand) -> Optional[str]:
        """Condition name of an operand; the register C doubles as carry."""
        if op.kind == OperandKind.CONDITION:
            return op.name
        if op.is_register("C"):
            return "C"
        return None

    def _emit_displacement(self, tokens: list[Token]) -> None:
        """Emit the signed displacement byte of (IX+d)/(IY+d)."""
        if not tokens:
            self.ctx.emit_byte(0)
            return
        self.ctx.emit_value(tokens, FixupKind.DISPLACEMENT)

    def _emit_r_op(self, opcode: int, reg: Reg8Operand) -> None:
        """Emit [prefix] opcode [d] for an instruction with one r/(HL)/(IX+d) field."""
        prefix, _, displacement = reg
        if prefix is not None:
            self.ctx.emit_byte(prefix)
        self.ctx.emit_byte(opcode)
        if prefix is not None:
            self._emit_displacement(displacement)

    def _constant(self, op: Operand, mnemonic: str) -> int:
        """Evaluate an operand that must be known now (bit number, IM, RST)."""
        if op.kind != OperandKind.IMMEDIATE:
            raise AddressingModeError(mnemonic, op.text)
        result = self.ctx.evaluate(op.tokens)
        if not result.resolved:
            raise ExpressionError(f"{mnemonic} needs a known value, '{result.pending[0]}' not defined yet")
        return result.value

    # =========================================================================
    # Loads and Exchanges
    # =========================================================================

    def _encode_ld(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 2:
            raise self._invalid(mnemonic, ops)
        dst, src = ops
        ctx = self.ctx

        dst_r = self._reg8(dst)
        src_r = self._reg8(src)

        # LD r,r' / LD r,(HL) / LD (IX+d),r ...
        if dst_r is not None and src_r is not None:
            if dst_r[1] == REG8_HL_INDIRECT and src_r[1] == REG8_HL_INDIRECT:
                raise self._invalid(mnemonic, ops)
            indexed = dst_r if dst_r[0] is not None else src_r
            self._emit_r_op(0x40 | (dst_r[1] << 3) | src_r[1], indexed)
            return

        if dst.is_register("A"):
            if src.is_register("I"):
                ctx.emit_bytes(0xED, 0x57)
                return
            if src.is_register("R"):
                ctx.emit_bytes(0xED, 0x5F)
                return
            if src.is_indirect("BC"):
                ctx.emit_byte(0x0A)
                return
            if src.is_indirect("DE"):
                ctx.emit_byte(0x1A)
                return
            if src.kind == OperandKind.MEMORY:
                ctx.emit_byte(0x3A)
                ctx.emit_value(src.tokens, FixupKind.WORD)
                return

        # LD r,n / LD (HL),n / LD (IX+d),n
        if dst_r is not None and src.kind == OperandKind.IMMEDIATE:
            self._emit_r_op(0x06 | (dst_r[1] << 3), dst_r)
            ctx.emit_value(src.tokens, FixupKind.BYTE)
            return

        if src.is_register("A"):
            if dst.is_indirect("BC"):
                ctx.emit_byte(0x02)
                return
            if dst.is_indirect("DE"):
                ctx.emit_byte(0x12)
                return
            if dst.is_register("I"):
                ctx.emit_bytes(0xED, 0x47)
                return
            if dst.is_register("R"):
                ctx.emit_bytes(0xED, 0x4F)
                return
            if dst.kind == OperandKind.MEMORY:
                ctx.emit_byte(0x32)
                ctx.emit_value(dst.tokens, FixupKind.WORD)
                return

        # LD (nn),HL / LD (nn),dd / LD (nn),IX
        if dst.kind == OperandKind.MEMORY and src.kind == OperandKind.REGISTER:
            if src.name == "HL":
                ctx.emit_byte(0x22)
            elif src.name in REG16_SP:
                ctx.emit_bytes(0xED, 0x43 | (REG16_SP[src.name] << 4))
            elif src.name in INDEX_PREFIX:
                ctx.emit_bytes(INDEX_PREFIX[src.name], 0x22)
            else:
                raise self._invalid(mnemonic, ops)
            ctx.emit_value(dst.tokens, FixupKind.WORD)
            return

        # 16-bit register destinations
        if dst.is_register(*REG16_SP):
            pair = REG16_SP[dst.name]
            if src.kind == OperandKind.IMMEDIATE:
                ctx.emit_byte(0x01 | (pair << 4))
                ctx.emit_value(src.tokens, FixupKind.WORD)
                return
            if src.kind == OperandKind.MEMORY:
                if dst.name == "HL":
                    ctx.emit_byte(0x2A)
                else:
                    ctx.emit_bytes(0xED, 0x4B | (pair << 4))
                ctx.emit_value(src.tokens, FixupKind.WORD)
                return
            if dst.name == "SP" and src.is_register("HL"):
                ctx.emit_byte(0xF9)
                return
            if dst.name == "SP" and src.is_register(*INDEX_PREFIX):
                ctx.emit_bytes(INDEX_PREFIX[src.name], 0xF9)
                return

        if dst.is_register(*INDEX_PREFIX):
            prefix = INDEX_PREFIX[dst.name]
            if src.kind == OperandKind.IMMEDIATE:
                ctx.emit_bytes(prefix, 0x21)
                ctx.emit_value(src.tokens, FixupKind.WORD)
                return
            if src.kind == OperandKind.MEMORY:
                ctx.emit_bytes(prefix, 0x2A)
                ctx.emit_value(src.tokens, FixupKind.WORD)
                return

        raise self._invalid(mnemonic, ops)

    def _encode_push_pop(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 1:
            raise self._invalid(mnemonic, ops)
        op = ops[0]
        base = 0xC5 if mnemonic == "PUSH" else 0xC1

        if op.is_register(*REG16_AF):
            self.ctx.emit_byte(base | (REG16_AF[op.name] << 4))
        elif op.is_register(*INDEX_PREFIX):
            self.ctx.emit_bytes(INDEX_PREFIX[op.name], base | 0x20)
        else:
            raise self._invalid(mnemonic, ops)

    def _encode_ex(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 2:
            raise self._invalid(mnemonic, ops)
        first, second = ops

        if first.is_register("DE") and second.is_register("HL"):
            self.ctx.emit_byte(0xEB)
        elif first.is_register("AF") and second.is_register("AF'"):
            self.ctx.emit_byte(0x08)
        elif first.is_indirect("SP") and second.is_register("HL"):
            self.ctx.emit_byte(0xE3)
        elif first.is_indirect("SP") and second.is_register(*INDEX_PREFIX):
            self.ctx.emit_bytes(INDEX_PREFIX[second.name], 0xE3)
        else:
            raise self._invalid(mnemonic, ops)

    # =========================================================================
    # Arithmetic and Logic
    # =========================================================================

    def _encode_alu(self, mnemonic: str, ops: list[Operand]) -> None:
        op_code = ALU_OPS[mnemonic]

        # 16-bit forms: ADD HL,ss / ADD IX,pp / ADC HL,ss / SBC HL,ss
        if len(ops) == 2 and ops[0].is_register("HL", "IX", "IY"):
            self._encode_alu16(mnemonic, ops)
            return

        if len(ops) == 2:
            if not ops[0].is_register("A"):
                raise self._invalid(mnemonic, ops)
            src = ops[1]
        elif len(ops) == 1:
            src = ops[0]
        else:
            raise self._invalid(mnemonic, ops)

        reg = self._reg8(src)
        if reg is not None:
            self._emit_r_op(0x80 | (op_code << 3) | reg[1], reg)
        elif src.kind == OperandKind.IMMEDIATE:
            self.ctx.emit_byte(0xC6 | (op_code << 3))
            self.ctx.emit_value(src.tokens, FixupKind.BYTE)
        else:
            raise self._invalid(mnemonic, ops)

    def _encode_alu16(self, mnemonic: str, ops: list[Operand]) -> None:
        dst, src = ops

        if dst.name == "HL":
            if not src.is_register(*REG16_SP):
                raise self._invalid(mnemonic, ops)
            pair = REG16_SP[src.name]
            if mnemonic == "ADD":
                self.ctx.emit_byte(0x09 | (pair << 4))
            elif mnemonic == "ADC":
                self.ctx.emit_bytes(0xED, 0x4A | (pair << 4))
            elif mnemonic == "SBC":
                self.ctx.emit_bytes(0xED, 0x42 | (pair << 4))
            else:
                raise self._invalid(mnemonic, ops)
            return

        # ADD IX,BC/DE/IX/SP (the index register takes the place of HL)
        if mnemonic != "ADD":
            raise self._invalid(mnemonic, ops)
        if src.name == dst.name:
            pair = REG16_SP["HL"]
        elif src.is_register("BC", "DE", "SP"):
            pair = REG16_SP[src.name]
        else:
            raise self._invalid(mnemonic, ops)
        self.ctx.emit_bytes(INDEX_PREFIX[dst.name], 0x09 | (pair << 4))

    def _encode_inc_dec(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 1:
            raise self._invalid(mnemonic, ops)
        op = ops[0]
        dec = mnemonic == "DEC"

        reg = self._reg8(op)
        if reg is not None:
            self._emit_r_op((0x05 if dec else 0x04) | (reg[1] << 3), reg)
        elif op.is_register(*REG16_SP):
            self.ctx.emit_byte((0x0B if dec else 0x03) | (REG16_SP[op.name] << 4))
        elif op.is_register(*INDEX_PREFIX):
            self.ctx.emit_bytes(INDEX_PREFIX[op.name], 0x2B if dec else 0x23)
        else:
            raise self._invalid(mnemonic, ops)

    # =========================================================================
    # Rotates, Shifts and Bit Operations (CB prefix)
    # =========================================================================

    def _emit_cb(self, opcode: int, reg: Reg8Operand) -> None:
        prefix, _, displacement = reg
        if prefix is None:
            self.ctx.emit_bytes(0xCB, opcode)
        else:
            self.ctx.emit_bytes(prefix, 0xCB)
            self._emit_displacement(displacement)
            self.ctx.emit_byte(opcode)

    def _encode_rotate(self, mnemonic: str, ops: list[Operand]) -> None:
        reg = self._reg8(ops[0]) if len(ops) == 1 else None
        if reg is None:
            raise self._invalid(mnemonic, ops)
        self._emit_cb((ROTATE_OPS[mnemonic] << 3) | reg[1], reg)

    def _encode_bit(self, mnemonic: str, ops: list[Operand]) -> None:
        reg = self._reg8(ops[1]) if len(ops) == 2 else None
        if reg is None:
            raise self._invalid(mnemonic, ops)

        bit = self._constant(ops[0], mnemonic)
        if bit > 7:
            raise ExpressionError(f"bit number {bit} out of range (0..7)")
        self._emit_cb(BIT_OPS[mnemonic] | (bit << 3) | reg[1], reg)

    # =========================================================================
    # Jumps, Calls and Returns
    # =========================================================================

    def _encode_jp_call(self, mnemonic: str, ops: list[Operand]) -> None:
        ctx = self.ctx
        unconditional, conditional = (0xC3, 0xC2) if mnemonic == "JP" else (0xCD, 0xC4)

        if len(ops) == 1:
            target = ops[0]
            if mnemonic == "JP" and target.is_indirect("HL"):
                ctx.emit_byte(0xE9)
                return
            if mnemonic == "JP" and target.is_indirect(*INDEX_PREFIX):
                ctx.emit_bytes(INDEX_PREFIX[target.name], 0xE9)
                return
            if target.kind == OperandKind.IMMEDIATE:
                ctx.emit_byte(unconditional)
                ctx.emit_value(target.tokens, FixupKind.WORD)
                return

        elif len(ops) == 2:
            condition = self._condition(ops[0])
            if condition is not None and ops[1].kind == OperandKind.IMMEDIATE:
                ctx.emit_byte(conditional | (CONDITIONS[condition] << 3))
                ctx.emit_value(ops[1].tokens, FixupKind.WORD)
                return

        raise self._invalid(mnemonic, ops)

    def _encode_jr(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) == 1 and ops[0].kind == OperandKind.IMMEDIATE:
            self.ctx.emit_byte(0x18)
            self.ctx.emit_value(ops[0].tokens, FixupKind.RELATIVE)
            return

        if len(ops) == 2:
            condition = self._condition(ops[0])
            if condition in JR_CONDITIONS and ops[1].kind == OperandKind.IMMEDIATE:
                self.ctx.emit_byte(0x20 | (CONDITIONS[condition] << 3))
                self.ctx.emit_value(ops[1].tokens, FixupKind.RELATIVE)
                return

        raise self._invalid(mnemonic, ops)

    def _encode_djnz(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 1 or ops[0].kind != OperandKind.IMMEDIATE:
            raise self._invalid(mnemonic, ops)
        self.ctx.emit_byte(0x10)
        self.ctx.emit_value(ops[0].tokens, FixupKind.RELATIVE)

    def _encode_ret(self, mnemonic: str, ops: list[Operand]) -> None:
        if not ops:
            self.ctx.emit_byte(0xC9)
            return

        condition = self._condition(ops[0]) if len(ops) == 1 else None
        if condition is None:
            raise self._invalid(mnemonic, ops)
        self.ctx.emit_byte(0xC0 | (CONDITIONS[condition] << 3))

    def _encode_rst(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 1:
            raise self._invalid(mnemonic, ops)

        vector = self._constant(ops[0], mnemonic)
        if vector > 0x38 or vector % 8:
            raise ExpressionError(
                f"invalid restart vector 0x{vector:02X}",
                hint="use one of 00h, 08h, 10h, 18h, 20h, 28h, 30h, 38h",
            )
        self.ctx.emit_byte(0xC7 | vector)

    # =========================================================================
    # Input/Output and Interrupt Mode
    # =========================================================================

    def _encode_in(self, mnemonic: str, ops: list[Operand]) -> None:
        ctx = self.ctx

        if len(ops) == 1 and ops[0].is_indirect("C"):
            ctx.emit_bytes(0xED, 0x70)
            return

        if len(ops) == 2:
            dst, src = ops
            if dst.is_register("A") and src.kind == OperandKind.MEMORY:
                ctx.emit_byte(0xDB)
                ctx.emit_value(src.tokens, FixupKind.BYTE)
                return
            if dst.is_register(*REG8) and src.is_indirect("C"):
                ctx.emit_bytes(0xED, 0x40 | (REG8[dst.name] << 3))
                return

        raise self._invalid(mnemonic, ops)

    def _encode_out(self, mnemonic: str, ops: list[Operand]) -> None:
        ctx = self.ctx
        if len(ops) != 2:
            raise self._invalid(mnemonic, ops)
        dst, src = ops

        if dst.kind == OperandKind.MEMORY and src.is_register("A"):
            ctx.emit_byte(0xD3)
            ctx.emit_value(dst.tokens, FixupKind.BYTE)
            return

        if dst.is_indirect("C"):
            if src.is_register(*REG8):
                ctx.emit_bytes(0xED, 0x41 | (REG8[src.name] << 3))
                return
            if src.kind == OperandKind.IMMEDIATE and self._constant(src, mnemonic) == 0:
                ctx.emit_bytes(0xED, 0x71)
                return

        raise self._invalid(mnemonic, ops)

    def _encode_im(self, mnemonic: str, ops: list[Operand]) -> None:
        if len(ops) != 1:
            raise self._invalid(mnemonic, ops)

        mode = self._constant(ops[0], mnemonic)
        if mode not in INTERRUPT_MODES:
            raise ExpressionError(f"invalid interrupt mode {mode} (0, 1 or 2)")
        self.ctx.emit_bytes(0xED, INTERRUPT_MODES[mode])
