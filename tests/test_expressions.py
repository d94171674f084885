# =============================================================================
# test_expressions.py - Expression Evaluator Unit Tests
# =============================================================================
# Tests for the Z80 assembler expression evaluator.
#
# Test coverage includes:
#   - Simple values and character literals
#   - Operator precedence
#   - Bitwise operations and 16-bit wraparound
#   - HIGH() and LOW() functions
#   - Current address ($)
#   - Pending (forward) symbol references
#   - Error conditions
# =============================================================================

import pytest
from turboass.assembler.expressions import ExpressionEvaluator, evaluate_expression
from turboass.assembler.lexer import Lexer
from turboass.assembler.symbols import SymbolTable, SymbolKind
from turboass.errors import ExpressionError


# =============================================================================
# Helper Functions
# =============================================================================

def evaluate(expr_str: str, symbols: dict = None, pc: int = 0) -> int:
    """Evaluate an expression that must be fully resolvable."""
    return evaluate_expression(expr_str, symbols, pc)


def evaluate_with_table(expr_str: str, table: SymbolTable, pc: int = 0):
    """Evaluate against a given symbol table and return the EvalResult."""
    tokens = list(Lexer(expr_str).tokenize())
    return ExpressionEvaluator(table).evaluate(tokens, pc)


# =============================================================================
# Simple Value Tests
# =============================================================================

class TestSimpleValues:
    """Test evaluation of simple values."""

    def test_decimal_number(self):
        assert evaluate("42") == 42

    def test_hex_number(self):
        assert evaluate("0FFh") == 255

    def test_character(self):
        assert evaluate("'A'") == 65

    def test_symbol(self):
        assert evaluate("count", {"count": 12}) == 12

    def test_current_address(self):
        assert evaluate("$", pc=0x1234) == 0x1234
        assert evaluate("$+2", pc=0x100) == 0x102


# =============================================================================
# Operator Tests
# =============================================================================

class TestOperators:
    """Test arithmetic and bitwise operators."""

    def test_arithmetic(self):
        assert evaluate("7+3") == 10
        assert evaluate("7-3") == 4
        assert evaluate("7*3") == 21
        assert evaluate("7/3") == 2
        assert evaluate("7%3") == 1

    def test_bitwise(self):
        assert evaluate("0F0h | 0Fh") == 0xFF
        assert evaluate("0FFh & 0Fh") == 0x0F
        assert evaluate("6 ^ 3") == 5
        assert evaluate("1 << 4") == 16
        assert evaluate("100h >> 4") == 0x10

    def test_unary(self):
        assert evaluate("-1") == 0xFFFF
        assert evaluate("~0") == 0xFFFF
        assert evaluate("+5") == 5
        assert evaluate("--5") == 5

    def test_wraparound(self):
        """Results are 16-bit."""
        assert evaluate("0FFFFh+2") == 1
        assert evaluate("0-1") == 0xFFFF
        assert evaluate("100h*100h") == 0

    def test_high_low(self):
        assert evaluate("HIGH(1234h)") == 0x12
        assert evaluate("LOW(1234h)") == 0x34
        assert evaluate("high(buf)+1", {"buf": 0x8000}) == 0x81


class TestPrecedence:
    """Test operator precedence (lowest: |, highest: unary)."""

    def test_multiplication_before_addition(self):
        assert evaluate("2+3*4") == 14

    def test_parentheses(self):
        assert evaluate("(2+3)*4") == 20

    def test_shift_below_addition(self):
        assert evaluate("1+1<<2") == 8

    def test_and_before_or(self):
        assert evaluate("1|2&3") == 3

    def test_xor_between_and_and_or(self):
        assert evaluate("1|6^3") == 5 | 1

    def test_unary_binds_tightest(self):
        assert evaluate("-2*3") == (-6) & 0xFFFF


# =============================================================================
# Pending Symbol Tests
# =============================================================================

class TestPendingSymbols:
    """Test references to symbols that are not defined yet."""

    def test_unknown_symbol_is_pending(self):
        table = SymbolTable()
        result = evaluate_with_table("later+1", table)
        assert not result.resolved
        assert result.value == 0
        assert result.pending == ("later",)
        assert table.get("later").is_pending

    def test_pending_names_deduplicated(self):
        table = SymbolTable()
        result = evaluate_with_table("a1+b1+a1", table)
        assert result.pending == ("a1", "b1")

    def test_defined_symbol_resolves(self):
        table = SymbolTable()
        table.define("start", 0x100, SymbolKind.LABEL)
        result = evaluate_with_table("start+2", table)
        assert result.resolved
        assert result.value == 0x102

    def test_symbols_are_case_sensitive(self):
        table = SymbolTable()
        table.define("Loop", 5, SymbolKind.LABEL)
        result = evaluate_with_table("loop", table)
        assert result.pending == ("loop",)

    def test_division_by_pending_symbol(self):
        """A placeholder divisor is not a division by zero."""
        table = SymbolTable()
        result = evaluate_with_table("10/n", table)
        assert result.pending == ("n",)

    def test_evaluate_expression_rejects_unknown(self):
        with pytest.raises(ExpressionError):
            evaluate("nothing")


# =============================================================================
# Error Tests
# =============================================================================

class TestErrors:
    """Test malformed expressions."""

    def test_division_by_zero(self):
        with pytest.raises(ExpressionError) as exc_info:
            evaluate("1/0")
        assert "division by zero" in str(exc_info.value)

    def test_modulo_by_zero(self):
        with pytest.raises(ExpressionError):
            evaluate("1%0")

    def test_missing_operand(self):
        with pytest.raises(ExpressionError):
            evaluate("1+")

    def test_unbalanced_parenthesis(self):
        with pytest.raises(ExpressionError):
            evaluate("(1+2")

    def test_stray_token(self):
        with pytest.raises(ExpressionError):
            evaluate("1 2")

    def test_multi_character_string(self):
        with pytest.raises(ExpressionError):
            evaluate('"AB"')

    def test_register_in_expression(self):
        with pytest.raises(ExpressionError):
            evaluate("hl+1")

    def test_empty_expression(self):
        with pytest.raises(ExpressionError):
            evaluate_with_table("", SymbolTable())
