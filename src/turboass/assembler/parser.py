"""
Z80 Assembly Line Parser
========================

This module turns the tokens of one source line into a `ParsedLine`:
an optional label, an optional mnemonic or directive, and the list of
operands (each a token list, split on top-level commas).

Line Layout
-----------
```asm
label:  ld   a,(ix+5)   ; label with colon, may be indented
label   ld   a,b        ; label without colon must start in column 1
        jp   start      ; no label
X       =    5          ; constant definition
Y       EQU  X*2        ; constant definition
```

An identifier without a colon is only taken as a label when it is not a
reserved word (mnemonic, directive, register or condition) and either starts
in column 1 or is followed by a mnemonic, a directive or `=`.

Operand Classification
----------------------
Instruction operands are classified by shape with `classify_operand()`:

| Syntax      | Kind       | Example          |
|-------------|------------|------------------|
| register    | REGISTER   | A, HL, IX, AF'   |
| condition   | CONDITION  | NZ, PO, M        |
| (register)  | INDIRECT   | (HL), (C), (IX)  |
| (IX+d)      | INDEXED    | (IX+5), (IY-2)   |
| (expr)      | MEMORY     | (1234h), (buf+1) |
| expr        | IMMEDIATE  | 42, label+1      |

`C` is always classified as a register; instructions that take conditions
accept the register C as the carry condition.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from turboass.errors import AssemblySyntaxError, SourceLocation
from turboass.assembler.lexer import Token, TokenType, Lexer, tokens_to_text
from turboass.cpu import (
    CONDITIONS,
    INDEX_PREFIX,
    MNEMONICS,
    REGISTERS,
    is_condition,
    is_mnemonic,
    is_register,
)


# =============================================================================
# Directive Names
# =============================================================================

# Directives that emit data
DATA_DIRECTIVES = frozenset({
    "DEFB", "DB", "BYTE",      # Define byte(s) and strings
    "DEFM", "DM",              # Define message (string)
    "DEFW", "DW", "WORD",      # Define word(s)
    "DEFS", "DS",              # Reserve space
})

# Directives that affect assembly state
CONTROL_DIRECTIVES = frozenset({
    "ORG",                     # Set origin
    "EQU",                     # Define constant
    "END",                     # End of source
})

ALL_DIRECTIVES = DATA_DIRECTIVES | CONTROL_DIRECTIVES

RESERVED_WORDS = MNEMONICS | ALL_DIRECTIVES | REGISTERS | frozenset(CONDITIONS)

# Registers that may appear inside parentheses as a plain indirect operand
INDIRECT_REGISTERS = frozenset({"HL", "BC", "DE", "SP", "C", "IX", "IY"})


# =============================================================================
# Parsed Line Data Classes
# =============================================================================

@dataclass
class ParsedLine:
    """
    One tokenized source line.

    Attributes:
        location: Source location of the line (column 0)
        text: The raw source line
        label: Label or constant name defined on this line
        mnemonic: Upper-cased mnemonic or directive, or None
        operands: Operand token lists, split on top-level commas
        mnemonic_token: Token of the mnemonic (for error locations)
    """
    location: SourceLocation
    text: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operands: list[list[Token]] = field(default_factory=list)
    mnemonic_token: Optional[Token] = None

    @property
    def is_directive(self) -> bool:
        return self.mnemonic in ALL_DIRECTIVES

    @property
    def is_empty(self) -> bool:
        """True for blank and comment-only lines."""
        return self.label is None and self.mnemonic is None


class OperandKind(Enum):
    """Shape of an instruction operand."""
    REGISTER = auto()    # A, HL, IX, AF', I, R ...
    CONDITION = auto()   # NZ, Z, NC, PO, PE, P, M
    INDIRECT = auto()    # (HL), (BC), (DE), (SP), (C), (IX), (IY)
    INDEXED = auto()     # (IX+d), (IY+d)
    MEMORY = auto()      # (nn)
    IMMEDIATE = auto()   # nn


@dataclass
class Operand:
    """
    Classified instruction operand.

    Attributes:
        kind: The operand shape
        name: Upper-cased register/condition name (REGISTER, CONDITION,
              INDIRECT, INDEXED)
        tokens: Expression tokens (INDEXED displacement, MEMORY address,
                IMMEDIATE value)
        text: Source-like spelling for diagnostics
    """
    kind: OperandKind
    name: Optional[str] = None
    tokens: list[Token] = field(default_factory=list)
    text: str = ""

    def is_register(self, *names: str) -> bool:
        """Check for a register operand, optionally one of the given names."""
        return self.kind == OperandKind.REGISTER and (not names or self.name in names)

    def is_indirect(self, *names: str) -> bool:
        """Check for an indirect register operand, optionally one of the given names."""
        return self.kind == OperandKind.INDIRECT and (not names or self.name in names)


# =============================================================================
# Line Parsing
# =============================================================================

def parse_line(text: str, line_number: int = 1, filename: str = "<input>") -> ParsedLine:
    """
    Tokenize and parse one source line.

    Args:
        text: The source line (without line terminator)
        line_number: Line number for diagnostics
        filename: Source file name for diagnostics

    Returns:
        ParsedLine with label, mnemonic and operand token lists

    Raises:
        AssemblySyntaxError: If the line is malformed
    """
    tokens = list(Lexer(text, filename, line_number).tokenize())
    result = ParsedLine(location=SourceLocation(filename, line_number), text=text)

    pos = 0

    def current() -> Token:
        return tokens[pos]

    def peek(offset: int = 1) -> Token:
        return tokens[min(pos + offset, len(tokens) - 1)]

    # Label detection
    first = current()
    if first.type == TokenType.IDENTIFIER:
        if peek().type == TokenType.COLON:
            result.label = first.value
            pos += 2
        elif first.value.upper() not in RESERVED_WORDS and _starts_label(first, peek()):
            result.label = first.value
            pos += 1

    # Mnemonic or directive
    tok = current()
    if tok.type == TokenType.EOF:
        return result

    if tok.type == TokenType.EQUALS:
        if result.label is None:
            raise AssemblySyntaxError("'=' without symbol name", tok.location, source_line=text)
        result.mnemonic = "EQU"
        result.mnemonic_token = tok
        pos += 1
    elif tok.type == TokenType.IDENTIFIER:
        result.mnemonic = tok.value.upper()
        result.mnemonic_token = tok
        pos += 1
    else:
        raise AssemblySyntaxError(
            f"expected instruction, got '{tok.text}'",
            tok.location,
            source_line=text,
        )

    result.operands = _split_operands(tokens[pos:], text)
    return result


def _starts_label(first: Token, following: Token) -> bool:
    """Decide whether an identifier without colon is a label."""
    if following.type == TokenType.EQUALS:
        return True
    if following.type == TokenType.IDENTIFIER:
        name = following.value.upper()
        if is_mnemonic(name) or name in ALL_DIRECTIVES:
            return True
    return first.column == 1


def _split_operands(tokens: list[Token], text: str) -> list[list[Token]]:
    """Split operand tokens on commas outside parentheses."""
    operands: list[list[Token]] = []
    current_arg: list[Token] = []
    paren_depth = 0

    for tok in tokens:
        if tok.type == TokenType.EOF:
            break

        if tok.type == TokenType.COMMA and paren_depth == 0:
            if not current_arg:
                raise AssemblySyntaxError("missing operand before ','", tok.location, source_line=text)
            operands.append(current_arg)
            current_arg = []
            continue

        if tok.type == TokenType.LPAREN:
            paren_depth += 1
        elif tok.type == TokenType.RPAREN:
            paren_depth -= 1

        current_arg.append(tok)

    if current_arg:
        operands.append(current_arg)
    elif operands:
        # Trailing comma
        raise AssemblySyntaxError("missing operand after ','", tokens[-1].location, source_line=text)

    return operands


# =============================================================================
# Operand Classification
# =============================================================================

def classify_operand(tokens: list[Token]) -> Operand:
    """
    Classify an instruction operand by its shape.

    Args:
        tokens: Token list of one operand (no top-level commas)

    Returns:
        Classified Operand
    """
    text = tokens_to_text(tokens)

    if len(tokens) == 1 and tokens[0].type == TokenType.IDENTIFIER:
        name = tokens[0].value.upper()
        if is_register(name):
            return Operand(OperandKind.REGISTER, name=name, text=text)
        if is_condition(name):
            return Operand(OperandKind.CONDITION, name=name, text=text)

    if _is_parenthesized(tokens):
        inner = tokens[1:-1]
        head = inner[0] if inner else None

        if head is not None and head.type == TokenType.IDENTIFIER:
            name = head.value.upper()
            if len(inner) == 1 and name in INDIRECT_REGISTERS:
                return Operand(OperandKind.INDIRECT, name=name, text=text)
            if (name in INDEX_PREFIX and len(inner) > 1
                    and inner[1].type in (TokenType.PLUS, TokenType.MINUS)):
                # Keep the sign: "+5" and "-2" are valid unary expressions
                return Operand(OperandKind.INDEXED, name=name, tokens=inner[1:], text=text)

        return Operand(OperandKind.MEMORY, tokens=inner, text=text)

    return Operand(OperandKind.IMMEDIATE, tokens=list(tokens), text=text)


def _is_parenthesized(tokens: list[Token]) -> bool:
    """True if the first '(' is closed by the last token, e.g. (a+b) but not (a)+(b)."""
    if len(tokens) < 2 or tokens[0].type != TokenType.LPAREN or tokens[-1].type != TokenType.RPAREN:
        return False

    depth = 0
    for i, tok in enumerate(tokens):
        if tok.type == TokenType.LPAREN:
            depth += 1
        elif tok.type == TokenType.RPAREN:
            depth -= 1
            if depth == 0 and i != len(tokens) - 1:
                return False
    return depth == 0
