# =============================================================================
# test_parser.py - Line Parser Unit Tests
# =============================================================================
# Tests for splitting a source line into label, mnemonic and operands, and
# for classifying instruction operands by shape.
#
# Test coverage includes:
#   - Label forms (colon, column 1, EQU and = definitions)
#   - Operand splitting on top-level commas
#   - Operand classification (register, condition, indirect, indexed,
#     memory, immediate)
#   - Syntax errors
# =============================================================================

import pytest
from turboass.assembler.lexer import Lexer, TokenType
from turboass.assembler.parser import parse_line, classify_operand, OperandKind
from turboass.errors import AssemblySyntaxError


# =============================================================================
# Helper Functions
# =============================================================================

def operand(text: str):
    """Classify an operand given as text."""
    tokens = [t for t in Lexer(text).tokenize() if t.type != TokenType.EOF]
    return classify_operand(tokens)


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Test label detection."""

    def test_label_with_colon(self):
        line = parse_line("loop: djnz loop")
        assert line.label == "loop"
        assert line.mnemonic == "DJNZ"
        assert len(line.operands) == 1

    def test_indented_label_with_colon(self):
        line = parse_line("    loop:   nop")
        assert line.label == "loop"
        assert line.mnemonic == "NOP"

    def test_label_in_column_one(self):
        line = parse_line("start ld a,b")
        assert line.label == "start"
        assert line.mnemonic == "LD"

    def test_label_alone(self):
        line = parse_line("start")
        assert line.label == "start"
        assert line.mnemonic is None

    def test_mnemonic_in_column_one(self):
        """Reserved words are never labels."""
        line = parse_line("nop")
        assert line.label is None
        assert line.mnemonic == "NOP"

    def test_indented_identifier_is_mnemonic(self):
        line = parse_line("    foo")
        assert line.label is None
        assert line.mnemonic == "FOO"

    def test_equals_definition(self):
        line = parse_line("X = 5")
        assert line.label == "X"
        assert line.mnemonic == "EQU"
        assert len(line.operands) == 1

    def test_equ_definition_indented(self):
        line = parse_line("    size equ 10h")
        assert line.label == "size"
        assert line.mnemonic == "EQU"

    def test_mnemonic_uppercased(self):
        line = parse_line("  Ld A,b")
        assert line.mnemonic == "LD"
        assert line.mnemonic_token.value == "Ld"


class TestEmptyLines:
    """Test blank and comment lines."""

    def test_blank(self):
        assert parse_line("").is_empty

    def test_whitespace(self):
        assert parse_line("   \t").is_empty

    def test_comment(self):
        assert parse_line("; comment").is_empty

    def test_text_and_location_kept(self):
        line = parse_line("  nop ; x", line_number=9, filename="a.asm")
        assert line.text == "  nop ; x"
        assert line.location.line == 9
        assert line.location.filename == "a.asm"


# =============================================================================
# Operand Splitting Tests
# =============================================================================

class TestOperandSplitting:
    """Test splitting operands on commas."""

    def test_two_operands(self):
        line = parse_line("  ld a,(ix+5)")
        assert len(line.operands) == 2

    def test_comma_inside_parentheses(self):
        """Commas nested in parentheses do not split."""
        line = parse_line("  defb (1,2),3")
        assert len(line.operands) == 2

    def test_string_with_comma(self):
        line = parse_line('  defm "a,b",0')
        assert len(line.operands) == 2
        assert line.operands[0][0].value == "a,b"

    def test_directive_flag(self):
        assert parse_line("  org 100h").is_directive
        assert not parse_line("  nop").is_directive


class TestSyntaxErrors:
    """Test malformed lines."""

    def test_missing_operand_between_commas(self):
        with pytest.raises(AssemblySyntaxError):
            parse_line("  ld a,,b")

    def test_trailing_comma(self):
        with pytest.raises(AssemblySyntaxError):
            parse_line("  ld a,")

    def test_equals_without_name(self):
        with pytest.raises(AssemblySyntaxError):
            parse_line("  = 5")

    def test_number_as_mnemonic(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_line("  5", line_number=2)
        assert "Error in line 2" in str(exc_info.value)


# =============================================================================
# Operand Classification Tests
# =============================================================================

class TestOperandClassification:
    """Test classify_operand()."""

    def test_register(self):
        op = operand("hl")
        assert op.kind == OperandKind.REGISTER
        assert op.name == "HL"

    def test_alternate_af(self):
        op = operand("af'")
        assert op.is_register("AF'")

    def test_c_is_register(self):
        """C is classified as register; jumps accept it as carry."""
        assert operand("c").kind == OperandKind.REGISTER

    def test_condition(self):
        op = operand("nz")
        assert op.kind == OperandKind.CONDITION
        assert op.name == "NZ"

    def test_indirect(self):
        assert operand("(hl)").is_indirect("HL")
        assert operand("(c)").is_indirect("C")
        assert operand("(ix)").is_indirect("IX")

    def test_indexed(self):
        op = operand("(iy-2)")
        assert op.kind == OperandKind.INDEXED
        assert op.name == "IY"
        assert [t.type for t in op.tokens] == [TokenType.MINUS, TokenType.NUMBER]

    def test_memory(self):
        op = operand("(1234h)")
        assert op.kind == OperandKind.MEMORY
        assert op.tokens[0].value == 0x1234

    def test_memory_expression(self):
        assert operand("(buf+1)").kind == OperandKind.MEMORY

    def test_immediate(self):
        op = operand("label+1")
        assert op.kind == OperandKind.IMMEDIATE
        assert len(op.tokens) == 3

    def test_two_parenthesized_terms_are_immediate(self):
        """(1)+(2) is an expression, not a memory reference."""
        assert operand("(1)+(2)").kind == OperandKind.IMMEDIATE
