# =============================================================================
# test_lexer.py - Lexer Unit Tests
# =============================================================================
# Tests for the Z80 assembler lexer/tokenizer.
#
# Test coverage includes:
#   - Number formats: decimal, hexadecimal, binary, octal
#   - $ as number prefix and as current PC
#   - String literals and escape sequences
#   - The AF' register token
#   - Comments
#   - Error conditions
# =============================================================================

import pytest
from turboass.assembler.lexer import Lexer, TokenType, Token, tokens_to_text
from turboass.errors import AssemblySyntaxError


# =============================================================================
# Helper Function
# =============================================================================

def tokenize(source: str, line_number: int = 1) -> list:
    """Tokenize one line and drop the EOF token."""
    lexer = Lexer(source, "<test>", line_number=line_number)
    return [t for t in lexer.tokenize() if t.type != TokenType.EOF]


def number(source: str) -> int:
    """Tokenize a single number and return its value."""
    tokens = tokenize(source)
    assert len(tokens) == 1
    assert tokens[0].type == TokenType.NUMBER
    return tokens[0].value


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_line(self):
        """Empty lines produce only EOF."""
        tokens = list(Lexer("").tokenize())
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_instruction(self):
        """A label, mnemonic and operands."""
        tokens = tokenize("loop: ld a,(hl)")
        types = [t.type for t in tokens]
        assert types == [
            TokenType.IDENTIFIER, TokenType.COLON, TokenType.IDENTIFIER,
            TokenType.IDENTIFIER, TokenType.COMMA, TokenType.LPAREN,
            TokenType.IDENTIFIER, TokenType.RPAREN,
        ]

    def test_identifier_case_preserved(self):
        """Identifiers keep their spelling."""
        tokens = tokenize("MyLabel")
        assert tokens[0].value == "MyLabel"

    def test_identifier_with_underscore_and_digits(self):
        """Identifiers may contain underscores and digits."""
        tokens = tokenize("_buf_2")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "_buf_2"

    def test_operators(self):
        """All operator tokens."""
        tokens = tokenize("+ - * / % & | ^ ~ << >> =")
        assert [t.type for t in tokens] == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.PERCENT, TokenType.AMPERSAND, TokenType.PIPE, TokenType.CARET,
            TokenType.TILDE, TokenType.LSHIFT, TokenType.RSHIFT, TokenType.EQUALS,
        ]

    def test_columns(self):
        """Tokens carry 1-based columns and the line number."""
        tokens = tokenize("  nop", line_number=7)
        assert tokens[0].column == 3
        assert tokens[0].line == 7


# =============================================================================
# Number Format Tests
# =============================================================================

class TestNumbers:
    """Test the supported number formats."""

    def test_decimal(self):
        assert number("123") == 123
        assert number("123d") == 123

    def test_hex_dollar_prefix(self):
        assert number("$1F") == 0x1F

    def test_hex_0x_prefix(self):
        assert number("0x1F") == 0x1F

    def test_hex_h_suffix(self):
        assert number("1Fh") == 0x1F
        assert number("0FFH") == 0xFF

    def test_binary_percent_prefix(self):
        assert number("%1010") == 10

    def test_binary_0b_prefix(self):
        assert number("0b1010") == 10

    def test_binary_b_suffix(self):
        assert number("1010b") == 10

    def test_octal_suffix(self):
        assert number("17o") == 15
        assert number("17q") == 15

    def test_hex_suffix_needs_leading_digit(self):
        """FFh starts with a letter and is an identifier."""
        tokens = tokenize("FFh")
        assert tokens[0].type == TokenType.IDENTIFIER

    def test_dollar_alone_is_pc(self):
        """$ not followed by a hex digit is the current PC."""
        tokens = tokenize("$+2")
        assert tokens[0].type == TokenType.DOLLAR
        assert tokens[1].type == TokenType.PLUS

    def test_percent_alone_is_modulo(self):
        """% not followed by a binary digit is the modulo operator."""
        tokens = tokenize("10 % 3")
        assert tokens[1].type == TokenType.PERCENT

    def test_invalid_decimal(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("12x")

    def test_invalid_binary(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("102b")

    def test_invalid_hex_prefix(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("$1G")


# =============================================================================
# String Tests
# =============================================================================

class TestStrings:
    """Test string and character literals."""

    def test_double_quoted(self):
        tokens = tokenize('"Hello"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "Hello"

    def test_single_quoted(self):
        tokens = tokenize("'A'")
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "A"

    def test_doubled_single_quote(self):
        """'' inside a single-quoted string is one quote."""
        tokens = tokenize("'it''s'")
        assert tokens[0].value == "it's"

    def test_escape_sequences(self):
        tokens = tokenize(r'"a\nb\x41\\"')
        assert tokens[0].value == "a\nbA\\"

    def test_semicolon_inside_string(self):
        """A semicolon in a string does not start a comment."""
        tokens = tokenize('defm "a;b" ; comment')
        assert tokens[1].value == "a;b"
        assert len(tokens) == 2

    def test_unterminated_string(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            tokenize('defm "abc')
        assert "unterminated" in str(exc_info.value)


# =============================================================================
# Register Token Tests
# =============================================================================

class TestRegisterTokens:
    """Test the alternate register pair token."""

    def test_af_prime(self):
        tokens = tokenize("ex af,af'")
        assert tokens[-1].type == TokenType.IDENTIFIER
        assert tokens[-1].value == "af'"

    def test_quote_after_other_identifier_is_string(self):
        """Only AF takes a trailing quote."""
        tokens = tokenize("ld a,'x'")
        assert tokens[-1].type == TokenType.STRING


# =============================================================================
# Comment and Error Tests
# =============================================================================

class TestComments:
    """Test comment handling."""

    def test_comment_only(self):
        assert tokenize("; just a comment") == []

    def test_trailing_comment(self):
        tokens = tokenize("nop ; do nothing")
        assert len(tokens) == 1


class TestErrors:
    """Test error reporting."""

    def test_unexpected_character(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            tokenize("ld a,#5", line_number=4)
        error = exc_info.value
        assert error.line == 4
        assert str(error).startswith("Error in line 4: unexpected character '#'")
        assert "ld a,#5" in str(error)

    def test_single_angle_bracket(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("1 < 2")


class TestTokenText:
    """Test the diagnostic text helpers."""

    def test_tokens_to_text(self):
        tokens = list(Lexer("ix + 5").tokenize())
        assert tokens_to_text(tokens) == "ix + 5"

    def test_token_location(self):
        token = tokenize("  nop", line_number=3)[0]
        assert token.location.line == 3
        assert token.location.column == 3
        assert isinstance(token, Token)
