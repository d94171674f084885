"""
Assembly Expression Evaluator
=============================

This module evaluates the arithmetic expressions that appear in operands
and directive arguments.

Supported Operations
--------------------
**Arithmetic:** + - * / %
**Bitwise:** & | ^ ~ << >>
**Functions:** HIGH(expr), LOW(expr)
**Special:** $ - current program counter; 'c' - character code

Precedence (lowest to highest):

1. Bitwise OR: |
2. Bitwise XOR: ^
3. Bitwise AND: &
4. Shift: << >>
5. Addition/Subtraction: + -
6. Multiplication/Division: * / %
7. Unary: + - ~
8. Primary: number, character, $, symbol, function call, (expression)

Results are 16-bit: every intermediate value is masked to 0..0xFFFF, so
`-1` evaluates to 0xFFFF.

Forward References
------------------
The assembler is one-pass, so an expression may name a symbol whose
definition comes later. Such a reference does not fail: the symbol is
entered into the table as pending, the expression yields the placeholder
value 0, and the names of all pending symbols are returned with the result.
The caller writes the placeholder and registers a fixup against each name.

Example Usage
-------------
>>> from turboass.assembler.expressions import evaluate_expression
>>> evaluate_expression("HIGH(1234h) + 1")
19
"""

from dataclasses import dataclass
from typing import Optional

from turboass.errors import ExpressionError, SourceLocation
from turboass.assembler.lexer import Lexer, Token, TokenType
from turboass.assembler.symbols import SymbolTable, SymbolKind
from turboass.cpu import REGISTERS


# =============================================================================
# Evaluation Result
# =============================================================================

@dataclass(frozen=True)
class EvalResult:
    """
    Result of evaluating an expression.

    Attributes:
        value: The 16-bit value, or the placeholder 0 if unresolved
        pending: Names of referenced symbols that are still pending
    """
    value: int
    pending: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return not self.pending


PLACEHOLDER = 0


# =============================================================================
# Expression Evaluator
# =============================================================================

class ExpressionEvaluator:
    """
    Evaluates assembly expressions against a symbol table.

    The parser evaluates while it parses; each parse method returns the
    integer value of its sub-expression.

    Attributes:
        symbols: The symbol table used to resolve names
    """

    FUNCTIONS = {"HIGH", "LOW"}

    def __init__(self, symbols: SymbolTable):
        self.symbols = symbols
        self._tokens: list[Token] = []
        self._pos = 0
        self._pc = 0
        self._location: Optional[SourceLocation] = None
        self._pending: list[str] = []

    # =========================================================================
    # Main Evaluation Interface
    # =========================================================================

    def evaluate(
        self,
        tokens: list[Token],
        pc: int = 0,
        location: Optional[SourceLocation] = None,
    ) -> EvalResult:
        """
        Evaluate an expression from a list of tokens.

        Args:
            tokens: Token list representing the expression
            pc: Value of the current program counter ($)
            location: Source location for error reporting

        Returns:
            EvalResult with the value and the names of pending symbols

        Raises:
            ExpressionError: If the expression is malformed or divides by zero
        """
        self._tokens = [t for t in tokens if t.type != TokenType.EOF]
        self._pos = 0
        self._pc = pc & 0xFFFF
        self._location = location
        self._pending = []

        if not self._tokens:
            raise ExpressionError("empty expression", location)

        value = self._parse_or()

        if self._pos < len(self._tokens):
            tok = self._current()
            raise ExpressionError(
                f"unexpected '{tok.text}' in expression",
                self._location or tok.location,
            )

        if self._pending:
            # Keep first-seen order, drop repeats
            return EvalResult(PLACEHOLDER, tuple(dict.fromkeys(self._pending)))
        return EvalResult(value & 0xFFFF)

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self._pos >= len(self._tokens):
            last = self._tokens[-1]
            return Token(TokenType.EOF, None, last.line, last.column + 1, last.filename)
        return self._tokens[self._pos]

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self._tokens):
            return self._current()
        return self._tokens[pos]

    def _advance(self) -> Token:
        token = self._current()
        self._pos += 1
        return token

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._current().type in types:
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if self._current().type != token_type:
            raise ExpressionError(message, self._location or self._current().location)
        return self._advance()

    # =========================================================================
    # Recursive Descent Parser with Evaluation
    # =========================================================================

    def _parse_or(self) -> int:
        left = self._parse_xor()
        while self._match(TokenType.PIPE):
            left = left | self._parse_xor()
        return left

    def _parse_xor(self) -> int:
        left = self._parse_and()
        while self._match(TokenType.CARET):
            left = left ^ self._parse_and()
        return left

    def _parse_and(self) -> int:
        left = self._parse_shift()
        while self._match(TokenType.AMPERSAND):
            left = left & self._parse_shift()
        return left

    def _parse_shift(self) -> int:
        left = self._parse_additive()

        while True:
            if self._match(TokenType.LSHIFT):
                right = self._parse_additive()
                left = (left << min(right, 16)) & 0xFFFF
            elif self._match(TokenType.RSHIFT):
                right = self._parse_additive()
                left = left >> min(right, 16)
            else:
                break

        return left

    def _parse_additive(self) -> int:
        left = self._parse_multiplicative()

        while True:
            if self._match(TokenType.PLUS):
                left = (left + self._parse_multiplicative()) & 0xFFFF
            elif self._match(TokenType.MINUS):
                left = (left - self._parse_multiplicative()) & 0xFFFF
            else:
                break

        return left

    def _parse_multiplicative(self) -> int:
        left = self._parse_unary()

        while True:
            if self._match(TokenType.STAR):
                left = (left * self._parse_unary()) & 0xFFFF
            elif self._match(TokenType.SLASH):
                left = self._divide(left, "division")
            elif self._match(TokenType.PERCENT):
                left = self._divide(left, "modulo")
            else:
                break

        return left

    def _divide(self, left: int, operation: str) -> int:
        """
        Parse the right operand of / or % and apply it.

        A divisor that is only a placeholder for a pending symbol is not
        checked; the whole expression is a placeholder anyway.
        """
        pending_before = len(self._pending)
        right = self._parse_unary()

        if len(self._pending) > pending_before:
            return PLACEHOLDER
        if right == 0:
            raise ExpressionError(f"{operation} by zero", self._location)
        if operation == "division":
            return left // right
        return left % right

    def _parse_unary(self) -> int:
        if self._match(TokenType.PLUS):
            return self._parse_unary()
        if self._match(TokenType.MINUS):
            return (-self._parse_unary()) & 0xFFFF
        if self._match(TokenType.TILDE):
            return (~self._parse_unary()) & 0xFFFF
        return self._parse_primary()

    def _parse_primary(self) -> int:
        tok = self._current()

        if tok.type == TokenType.NUMBER:
            self._advance()
            return tok.value & 0xFFFF

        # Character literal
        if tok.type == TokenType.STRING:
            self._advance()
            if len(tok.value) != 1:
                raise ExpressionError(
                    f"string {tok.text} used as a value (only single characters allowed)",
                    self._location or tok.location,
                )
            return ord(tok.value) & 0xFF

        if tok.type == TokenType.DOLLAR:
            self._advance()
            return self._pc

        if tok.type == TokenType.LPAREN:
            self._advance()
            result = self._parse_or()
            self._expect(TokenType.RPAREN, "expected ')' to close expression")
            return result

        if tok.type == TokenType.IDENTIFIER:
            name = tok.value.upper()

            if name in self.FUNCTIONS and self._peek(1).type == TokenType.LPAREN:
                return self._parse_function_call(name)

            if name in REGISTERS:
                raise ExpressionError(
                    f"register '{tok.value}' used in expression",
                    self._location or tok.location,
                )

            self._advance()
            return self._resolve_symbol(tok.value)

        if tok.type == TokenType.EOF:
            raise ExpressionError("unexpected end of expression", self._location or tok.location)

        raise ExpressionError(
            f"expected value, got '{tok.text}'",
            self._location or tok.location,
        )

    def _parse_function_call(self, func_name: str) -> int:
        """Parse HIGH(expr) or LOW(expr)."""
        self._advance()  # consume function name
        self._expect(TokenType.LPAREN, f"expected '(' after {func_name}")
        arg = self._parse_or()
        self._expect(TokenType.RPAREN, f"expected ')' after {func_name} argument")

        if func_name == "HIGH":
            return (arg >> 8) & 0xFF
        return arg & 0xFF

    def _resolve_symbol(self, name: str) -> int:
        """
        Resolve a symbol reference (case-sensitive).

        Unknown and pending symbols are recorded and yield the placeholder.
        """
        symbol = self.symbols.reference(name)
        if symbol.is_defined:
            return symbol.value & 0xFFFF

        self._pending.append(name)
        return PLACEHOLDER


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate_expression(
    text: str,
    symbols: Optional[dict[str, int]] = None,
    pc: int = 0,
) -> int:
    """
    Evaluate an expression given as text.

    Args:
        text: Expression source, e.g. "HIGH(buf) + 1"
        symbols: Optional symbol values
        pc: Value of $

    Returns:
        Expression result as 16-bit integer

    Raises:
        ExpressionError: If the expression is malformed or names an
            unknown symbol
    """
    table = SymbolTable()
    for name, value in (symbols or {}).items():
        table.define(name, value, SymbolKind.CONSTANT)

    tokens = list(Lexer(text).tokenize())
    result = ExpressionEvaluator(table).evaluate(tokens, pc)
    if not result.resolved:
        raise ExpressionError(f"undefined symbol '{result.pending[0]}' in '{text}'")
    return result.value
