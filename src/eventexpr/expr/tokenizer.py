"""
Tokenizer (lexer) for the expression language.

Converts expression strings into a stream of tokens for the parser.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import TokenizerError
from .limits import ExpressionLimits, enforce_limit


class TokenType(Enum):
    """Token types produced by the tokenizer."""

    # Literals
    STRING = "STRING"
    NUMBER = "NUMBER"
    TRUE = "TRUE"
    FALSE = "FALSE"
    NULL = "NULL"

    IDENTIFIER = "IDENTIFIER"

    # Operators
    PLUS = "PLUS"
    MINUS = "MINUS"
    STAR = "STAR"
    SLASH = "SLASH"
    PERCENT = "PERCENT"
    LT = "LT"
    LE = "LE"
    GT = "GT"
    GE = "GE"
    EQ = "EQ"
    NE = "NE"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    IN = "IN"
    NOT_IN = "NOT_IN"
    QUESTION = "QUESTION"
    COLON = "COLON"

    # Delimiters
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    DOT = "DOT"
    COMMA = "COMMA"

    EOF = "EOF"


@dataclass
class Token:
    """A token produced by the tokenizer."""

    type: TokenType
    value: str
    position: int


# Keywords are case-sensitive.
KEYWORDS: Dict[str, TokenType] = {
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
    "in": TokenType.IN,
    "not": TokenType.NOT,
}

_SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ".": TokenType.DOT,
    ",": TokenType.COMMA,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
}

# first char -> (second char, two-char token, one-char token or None)
_PAIRED_TOKENS: Dict[str, tuple] = {
    "<": ("=", TokenType.LE, TokenType.LT),
    ">": ("=", TokenType.GE, TokenType.GT),
    "!": ("=", TokenType.NE, TokenType.NOT),
    "=": ("=", TokenType.EQ, None),
    "&": ("&", TokenType.AND, None),
    "|": ("|", TokenType.OR, None),
}

_ESCAPES: Dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_identifier_start(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def _is_identifier_part(ch: str) -> bool:
    return _is_identifier_start(ch) or _is_digit(ch)


def _is_whitespace(ch: str) -> bool:
    return ch in (" ", "\t", "\n", "\r")


def is_identifier(name: str) -> bool:
    """True if `name` would tokenize as a single non-keyword identifier."""
    return (
        bool(name)
        and _is_identifier_start(name[0])
        and all(_is_identifier_part(ch) for ch in name)
        and name not in KEYWORDS
    )


class Tokenizer:
    """Tokenizer for expression strings."""

    def __init__(self, source: str, limits: Optional[ExpressionLimits] = None):
        self._source = source
        self._limits = limits
        self._position = 0
        self._tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenizes the source expression and returns all tokens."""
        enforce_limit("max_expression_length", len(self._source), self._limits)

        while not self._is_at_end():
            self._scan_token()

        self._tokens.append(Token(TokenType.EOF, "", self._position))
        return self._tokens

    def _is_at_end(self) -> bool:
        return self._position >= len(self._source)

    def _peek(self, offset: int = 0) -> str:
        index = self._position + offset
        if index >= len(self._source):
            return "\0"
        return self._source[index]

    def _advance(self) -> str:
        ch = self._source[self._position]
        self._position += 1
        return ch

    def _error(self, message: str, position: int) -> TokenizerError:
        return TokenizerError(message, position, self._source)

    def _scan_token(self) -> None:
        start = self._position
        ch = self._advance()

        if _is_whitespace(ch):
            return

        if ch in _SINGLE_CHAR_TOKENS:
            self._tokens.append(Token(_SINGLE_CHAR_TOKENS[ch], ch, start))
            return

        if ch in _PAIRED_TOKENS:
            second, paired, single = _PAIRED_TOKENS[ch]
            if self._peek() == second:
                self._advance()
                self._tokens.append(Token(paired, ch + second, start))
            elif single is not None:
                self._tokens.append(Token(single, ch, start))
            else:
                raise self._error(
                    f"Unexpected '{ch}'. Did you mean '{ch}{second}'?", start
                )
            return

        if ch in ('"', "'"):
            self._scan_string(ch, start)
        elif _is_digit(ch):
            self._scan_number(start)
        elif _is_identifier_start(ch):
            self._scan_identifier(start)
        else:
            raise self._error(f"Unexpected character: '{ch}'", start)

    def _scan_string(self, quote: str, start: int) -> None:
        chars: List[str] = []

        while not self._is_at_end() and self._peek() != quote:
            ch = self._advance()
            if ch in ("\n", "\r"):
                raise self._error(
                    "Unterminated string (newline in string literal)", start
                )
            if ch != "\\":
                chars.append(ch)
                continue

            if self._is_at_end():
                raise self._error("Unterminated string", start)
            escaped = self._advance()
            if escaped in _ESCAPES:
                chars.append(_ESCAPES[escaped])
            elif escaped == "u":
                chars.append(self._scan_unicode_escape())
            else:
                raise self._error(
                    f"Invalid escape sequence: \\{escaped}", self._position - 2
                )

        if self._is_at_end():
            raise self._error("Unterminated string", start)

        self._advance()  # closing quote
        self._tokens.append(Token(TokenType.STRING, "".join(chars), start))

    def _scan_unicode_escape(self) -> str:
        escape_start = self._position - 2
        digits = self._source[self._position : self._position + 4]
        if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise self._error("Invalid unicode escape: expected 4 hex digits", escape_start)
        self._position += 4
        return chr(int(digits, 16))

    def _scan_number(self, start: int) -> None:
        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()

        if self._peek() in ("e", "E"):
            self._advance()
            if self._peek() in ("+", "-"):
                self._advance()
            if not _is_digit(self._peek()):
                raise self._error("Invalid number: expected exponent digits", start)
            while _is_digit(self._peek()):
                self._advance()

        self._tokens.append(
            Token(TokenType.NUMBER, self._source[start : self._position], start)
        )

    def _scan_identifier(self, start: int) -> None:
        while _is_identifier_part(self._peek()):
            self._advance()
        value = self._source[start : self._position]

        if value == "not" and self._match_following_in():
            self._tokens.append(Token(TokenType.NOT_IN, "not in", start))
            return

        self._tokens.append(
            Token(KEYWORDS.get(value, TokenType.IDENTIFIER), value, start)
        )

    def _match_following_in(self) -> bool:
        """Consumes whitespace + `in` after `not`, restoring on mismatch."""
        saved = self._position
        while _is_whitespace(self._peek()):
            self._advance()
        if (
            self._position > saved
            and self._peek() == "i"
            and self._peek(1) == "n"
            and not _is_identifier_part(self._peek(2))
        ):
            self._position += 2
            return True
        self._position = saved
        return False


def tokenize(source: str, limits: Optional[ExpressionLimits] = None) -> List[Token]:
    """
    Tokenizes an expression string into tokens.

    Raises:
        TokenizerError: If the expression contains invalid tokens
        LimitExceededError: If the expression is too long
    """
    return Tokenizer(source, limits).tokenize()
