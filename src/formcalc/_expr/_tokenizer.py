"""Tokenizer for the expression language.

Converts an expression string into a sequence of typed tokens.
"""

import re
from dataclasses import dataclass
from enum import StrEnum, auto

from ._errors import ExpressionParseError


class TokenKind(StrEnum):
    """Token types of the expression language."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    IDENT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    EQ = auto()
    NE = auto()
    LT = auto()
    GT = auto()
    LE = auto()
    GE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    QUESTION = auto()
    COLON = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    DOT = auto()

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    """A single token and its character offset in the source."""

    kind: TokenKind
    value: str
    pos: int


_KEYWORDS: dict[str, TokenKind] = {
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "null": TokenKind.NULL,
}

# Longest operators first so that "===" wins over "==" and "=".
_OPERATORS: tuple[tuple[str, TokenKind], ...] = (
    ("===", TokenKind.EQ),
    ("!==", TokenKind.NE),
    ("==", TokenKind.EQ),
    ("!=", TokenKind.NE),
    ("<=", TokenKind.LE),
    (">=", TokenKind.GE),
    ("&&", TokenKind.AND),
    ("||", TokenKind.OR),
    ("+", TokenKind.PLUS),
    ("-", TokenKind.MINUS),
    ("*", TokenKind.STAR),
    ("/", TokenKind.SLASH),
    ("%", TokenKind.PERCENT),
    ("<", TokenKind.LT),
    (">", TokenKind.GT),
    ("!", TokenKind.NOT),
    ("?", TokenKind.QUESTION),
    (":", TokenKind.COLON),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    (",", TokenKind.COMMA),
    (".", TokenKind.DOT),
)

_NUMBER_RE = re.compile(r"(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")


def tokenize(source: str) -> list[Token]:
    """Tokenize an expression string into a list of tokens ending with EOF.

    Raises:
        ExpressionParseError: On an unexpected character or an unterminated string.

    """
    tokens: list[Token] = []
    i = 0
    n = len(source)

    while i < n:
        c = source[i]

        if c.isspace():
            i += 1
            continue

        if c in ('"', "'"):
            i, tok = _read_string(source, i)
            tokens.append(tok)
            continue

        # A dot directly after an identifier or ")" is member access, not a number.
        starts_number = c.isdigit() or (
            c == "." and i + 1 < n and source[i + 1].isdigit() and not _ends_operand(tokens)
        )
        m = _NUMBER_RE.match(source, i) if starts_number else None
        if m is not None:
            tokens.append(Token(TokenKind.NUMBER, m.group(0), i))
            i = m.end()
            continue

        m = _IDENT_RE.match(source, i)
        if m is not None:
            word = m.group(0)
            tokens.append(Token(_KEYWORDS.get(word, TokenKind.IDENT), word, i))
            i = m.end()
            continue

        for text, kind in _OPERATORS:
            if source.startswith(text, i):
                tokens.append(Token(kind, text, i))
                i += len(text)
                break
        else:
            msg = f"Unexpected character {c!r} at position {i}"
            raise ExpressionParseError(msg, i, c)

    tokens.append(Token(TokenKind.EOF, "", n))
    return tokens


def _ends_operand(tokens: list[Token]) -> bool:
    return bool(tokens) and tokens[-1].kind in (TokenKind.IDENT, TokenKind.RPAREN)


def _read_string(source: str, start: int) -> tuple[int, Token]:
    """Read a quoted string literal, honouring backslash escapes."""
    quote = source[start]
    escapes = {"n": "\n", "t": "\t", "r": "\r"}
    i = start + 1
    n = len(source)
    chars: list[str] = []

    while i < n:
        c = source[i]
        if c == "\\":
            if i + 1 < n:
                nxt = source[i + 1]
                chars.append(escapes.get(nxt, nxt))
                i += 2
                continue
            msg = f"Unterminated escape sequence at position {i}"
            raise ExpressionParseError(msg, i, c)
        if c == quote:
            return i + 1, Token(TokenKind.STRING, "".join(chars), start)
        chars.append(c)
        i += 1

    msg = f"Unterminated string literal at position {start}"
    raise ExpressionParseError(msg, start, quote)
