"""
Z80 Assembly Language Lexer
===========================

This module implements the lexer (tokenizer) for Z80 assembly language.
The assembler is line oriented, so the lexer works on one source line at a
time and always ends the token stream with an EOF token.

Token Types
-----------
- IDENTIFIER: Labels, mnemonics, directives, registers, symbol names
- NUMBER: Numeric literals in any supported base
- STRING: Quoted text ("hello" or 'hello'); one character doubles as a
  character literal inside expressions
- Operators: +, -, *, /, %, &, |, ^, ~, <<, >>
- Delimiters: , : ( ) = and $ (current program counter)
- EOF: End of line

Number Formats
--------------
| Format      | Forms                 | Value |
|-------------|-----------------------|-------|
| Decimal     | 123, 123d             | 123   |
| Hexadecimal | $7F, 0x7F, 7Fh, 0FFh  | 127   |
| Binary      | %1010, 0b1010, 1010b  | 10    |
| Octal       | 177o, 177q            | 127   |

A hexadecimal number written with an `h` suffix must start with a digit,
otherwise it is an identifier (`FFh` is a symbol, `0FFh` a number).

Comments
--------
A semicolon starts a comment that runs to the end of the line.

Example
-------
>>> from turboass.assembler.lexer import Lexer
>>> for token in Lexer("loop: djnz loop ; wait").tokenize():
...     print(token)
Token(IDENTIFIER, 'loop', 1:1)
Token(COLON, ':', 1:5)
Token(IDENTIFIER, 'djnz', 1:7)
Token(IDENTIFIER, 'loop', 1:12)
Token(EOF, 1:17)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from turboass.errors import AssemblySyntaxError, SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the Z80 assembly language."""

    EOF = auto()         # End of line

    # Values
    IDENTIFIER = auto()  # Labels, mnemonics, registers, symbols
    NUMBER = auto()      # Numeric literals (all formats)
    STRING = auto()      # Quoted string or character

    # Arithmetic operators
    PLUS = auto()        # +
    MINUS = auto()       # -
    STAR = auto()        # *
    SLASH = auto()       # /
    PERCENT = auto()     # %

    # Bitwise operators
    AMPERSAND = auto()   # &
    PIPE = auto()        # |
    CARET = auto()       # ^
    TILDE = auto()       # ~
    LSHIFT = auto()      # <<
    RSHIFT = auto()      # >>

    # Delimiters
    COMMA = auto()       # ,
    COLON = auto()       # :
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    DOLLAR = auto()      # $ (alone, means current PC)
    EQUALS = auto()      # = (constant definition)


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from a source line.

    Attributes:
        type: The TokenType classification
        value: The token value (string for identifiers/strings, int for numbers)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str | int | None
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        if self.value is not None:
            if isinstance(self.value, int):
                return f"Token({self.type.name}, ${self.value:X}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    @property
    def text(self) -> str:
        """Source-like spelling of the token, used in error messages."""
        if self.type == TokenType.STRING:
            return f'"{self.value}"'
        if self.type == TokenType.NUMBER:
            return str(self.value)
        if self.type == TokenType.EOF:
            return "end of line"
        return str(self.value)


def tokens_to_text(tokens: list[Token]) -> str:
    """Rebuild a compact source-like string from tokens (for diagnostics)."""
    return " ".join(tok.text for tok in tokens if tok.type != TokenType.EOF)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes one line of Z80 assembly source code.

    Usage:
        lexer = Lexer(line_text, filename, line_number)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The line being tokenized (without line terminator)
        filename: Name of the source file (for error reporting)
        line_number: Line number of this line (for error reporting)
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters + "_"

    # Characters that can continue an identifier
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    # Single-character operators and delimiters
    SINGLE_CHAR_TOKENS = {
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.STAR,
        "/": TokenType.SLASH,
        "&": TokenType.AMPERSAND,
        "|": TokenType.PIPE,
        "^": TokenType.CARET,
        "~": TokenType.TILDE,
        ",": TokenType.COMMA,
        ":": TokenType.COLON,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "=": TokenType.EQUALS,
    }

    # Escape sequences in double-quoted strings
    ESCAPE_SEQUENCES = {
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "\\": "\\",
        '"': '"',
        "'": "'",
        "0": "\0",
    }

    def __init__(self, source: str, filename: str = "<input>", line_number: int = 1):
        """
        Initialize the lexer with one line of source.

        Args:
            source: The source line (trailing newline already removed)
            filename: Name of the source file (for error messages)
            line_number: Line number of this line
        """
        self.source = source.rstrip("\r\n")
        self.filename = filename
        self.line_number = line_number
        self._pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens for the line.

        Yields:
            Token objects, ending with an EOF token

        Raises:
            AssemblySyntaxError: If a malformed token is encountered
        """
        while not self._at_end():
            char = self._peek()

            # Whitespace
            if char in " \t\f\v":
                self._advance()
                continue

            # Comment runs to end of line
            if char == ";":
                break

            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None, self._pos + 1)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Character at current position + offset, or "" past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        char = self._peek()
        self._pos += 1
        return char

    def _match(self, expected: str) -> bool:
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(self, token_type: TokenType, value: str | int | None, column: int) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=self.line_number,
            column=column,
            filename=self.filename,
        )

    def _error(self, message: str, column: Optional[int] = None) -> AssemblySyntaxError:
        """Create a syntax error pointing into this line."""
        location = SourceLocation(self.filename, self.line_number, column or self._pos + 1)
        return AssemblySyntaxError(message, location, source_line=self.source)

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        column = self._pos + 1
        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(column)

        if char.isdigit():
            return self._scan_number(column)

        # $ followed by hex digits is a number, alone it is the current PC
        # Note: Must check the next char is non-empty because '' in string.hexdigits is True
        if char == "$":
            self._advance()
            next_char = self._peek()
            if next_char and next_char in string.hexdigits:
                return self._scan_digits(column, string.hexdigits, 16, "hexadecimal")
            return self._make_token(TokenType.DOLLAR, "$", column)

        # % followed by binary digits is a number, otherwise modulo
        if char == "%":
            self._advance()
            next_char = self._peek()
            if next_char and next_char in "01":
                return self._scan_digits(column, "01", 2, "binary")
            return self._make_token(TokenType.PERCENT, "%", column)

        if char in "\"'":
            return self._scan_string(column)

        if char == "<":
            self._advance()
            if self._match("<"):
                return self._make_token(TokenType.LSHIFT, "<<", column)
            raise self._error("unexpected character '<'", column)

        if char == ">":
            self._advance()
            if self._match(">"):
                return self._make_token(TokenType.RSHIFT, ">>", column)
            raise self._error("unexpected character '>'", column)

        if char in self.SINGLE_CHAR_TOKENS:
            self._advance()
            return self._make_token(self.SINGLE_CHAR_TOKENS[char], char, column)

        raise self._error(f"unexpected character '{char}'", column)

    def _scan_identifier(self, column: int) -> Token:
        """
        Scan an identifier (label, mnemonic, directive, register or symbol).

        The alternate accumulator pair is written AF' and is returned as a
        single identifier.
        """
        chars = []
        # Note: Must check for non-empty string first because '' in 'string' is True in Python
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)
        if name.upper() == "AF" and self._peek() == "'":
            self._advance()
            name += "'"

        return self._make_token(TokenType.IDENTIFIER, name, column)

    def _scan_digits(self, column: int, digits: str, base: int, kind: str) -> Token:
        """Scan digits after a $ or % prefix."""
        chars = []
        while self._peek() and self._peek() in string.ascii_letters + string.digits:
            chars.append(self._advance())

        text = "".join(chars)
        if not text or any(c not in digits for c in text):
            raise self._error(f"invalid {kind} number '{text}'", column)

        return self._make_token(TokenType.NUMBER, int(text, base), column)

    def _scan_number(self, column: int) -> Token:
        """
        Scan a number starting with a decimal digit.

        The base is decided by a 0x/0b prefix or an h/b/o/q/d suffix.
        """
        chars = []
        while self._peek() and self._peek() in string.ascii_letters + string.digits:
            chars.append(self._advance())

        text = "".join(chars)
        value = self._convert_number(text)
        if value is None:
            raise self._error(f"invalid number '{text}'", column)

        return self._make_token(TokenType.NUMBER, value, column)

    @staticmethod
    def _convert_number(text: str) -> Optional[int]:
        """Convert number text to its value, or None if malformed."""
        lower = text.lower()

        candidates = []
        if lower.startswith("0x"):
            candidates.append((lower[2:], 16))
        elif lower.endswith("h"):
            candidates.append((lower[:-1], 16))
        else:
            if lower.startswith("0b"):
                candidates.append((lower[2:], 2))
            if lower.endswith("b"):
                candidates.append((lower[:-1], 2))
            if lower.endswith(("o", "q")):
                candidates.append((lower[:-1], 8))
            if lower.endswith("d"):
                candidates.append((lower[:-1], 10))
            candidates.append((lower, 10))

        for digits, base in candidates:
            if not digits:
                continue
            try:
                return int(digits, base)
            except ValueError:
                continue

        return None

    def _scan_string(self, column: int) -> Token:
        """
        Scan a quoted string.

        Double-quoted strings support the escape sequences \\n, \\r, \\t,
        \\\\, \\", \\', \\0 and \\xNN. In single-quoted strings a doubled
        quote stands for one quote character and backslashes are literal.
        """
        quote = self._advance()

        chars = []
        while not self._at_end():
            char = self._advance()

            if char == quote:
                if quote == "'" and self._peek() == "'":
                    self._advance()
                    chars.append("'")
                    continue
                return self._make_token(TokenType.STRING, "".join(chars), column)

            if char == "\\" and quote == '"':
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(char)

        raise self._error("unterminated string literal", column)

    def _scan_escape_sequence(self) -> str:
        """Scan an escape sequence after a backslash."""
        if self._at_end():
            raise self._error("unexpected end of line in escape sequence")

        char = self._advance()

        if char in self.ESCAPE_SEQUENCES:
            return self.ESCAPE_SEQUENCES[char]

        # Hex escape: \xNN
        if char == "x":
            hex_chars = []
            for _ in range(2):
                if self._peek() and self._peek() in string.hexdigits:
                    hex_chars.append(self._advance())
                else:
                    break

            if not hex_chars:
                raise self._error("expected hexadecimal digits after \\x")

            return chr(int("".join(hex_chars), 16))

        # Unknown escape - treat as literal
        return char
