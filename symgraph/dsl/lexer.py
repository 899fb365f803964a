"""
Tokenizer for the symgraph DSL.

Converts source text into a flat token stream. Statements are separated by
line breaks or ``;``; line breaks inside parentheses do not end a statement.
Comments run from ``#`` or ``//`` to the end of the line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

from symgraph.errors import ParseError


class TokenType(Enum):
    # Literals
    NUMBER = auto()
    IDENTIFIER = auto()
    # Keywords
    FN = auto()
    LET = auto()
    # Operators
    PLUS = auto()  # +
    MINUS = auto()  # -
    STAR = auto()  # *
    SLASH = auto()  # /
    CARET = auto()  # ^
    EQUALS = auto()  # =
    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    # Statement separators (newline or ;)
    NEWLINE = auto()
    # Sentinel
    EOF = auto()


KEYWORDS = {"fn": TokenType.FN, "let": TokenType.LET}


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


# Token patterns: ordered list of (TokenType, regex) pairs
_TOKEN_PATTERNS = [
    (TokenType.NUMBER, r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"),
    (TokenType.IDENTIFIER, r"[A-Za-z_][A-Za-z0-9_]*"),
    (TokenType.PLUS, r"\+"),
    (TokenType.MINUS, r"-"),
    (TokenType.STAR, r"\*"),
    (TokenType.SLASH, r"/"),
    (TokenType.CARET, r"\^"),
    (TokenType.EQUALS, r"="),
    (TokenType.LPAREN, r"\("),
    (TokenType.RPAREN, r"\)"),
    (TokenType.COMMA, r","),
]

_MASTER_RE = re.compile(
    "|".join(f"(?P<T{i}>{pattern})" for i, (_, pattern) in enumerate(_TOKEN_PATTERNS)),
    re.ASCII,
)

_WHITESPACE_RE = re.compile(r"[ \t\r\f\v]+")
_COMMENT_RE = re.compile(r"(?:#|//)[^\n]*")

_OPERATOR_CHARS = set("!$%&*+-./:<=>?@\\^`|~")


def tokenize(source: str) -> list[Token]:
    """
    Convert DSL source into a list of Tokens ending with EOF.

    Raises ParseError on characters that start no token.
    """
    tokens: list[Token] = []
    line = 1
    line_start = 0
    pos = 0
    depth = 0
    length = len(source)

    while pos < length:
        m = _WHITESPACE_RE.match(source, pos)
        if m:
            pos = m.end()
            continue

        m = _COMMENT_RE.match(source, pos)
        if m:
            pos = m.end()
            continue

        ch = source[pos]
        column = pos - line_start + 1

        if ch == "\n" or ch == ";":
            if depth == 0 or ch == ";":
                tokens.append(Token(TokenType.NEWLINE, ch, line, column))
            if ch == "\n":
                line += 1
                line_start = pos + 1
            pos += 1
            continue

        m = _MASTER_RE.match(source, pos)
        if not m:
            if ch in _OPERATOR_CHARS:
                raise ParseError(f"Unknown operator {ch!r}", line, column)
            raise ParseError(f"Unexpected character {ch!r}", line, column)

        raw = m.group(0)
        tok_type = _TOKEN_PATTERNS[int(m.lastgroup[1:])][0]
        if tok_type == TokenType.IDENTIFIER:
            tok_type = KEYWORDS.get(raw, TokenType.IDENTIFIER)
        elif tok_type == TokenType.LPAREN:
            depth += 1
        elif tok_type == TokenType.RPAREN:
            depth = max(depth - 1, 0)

        tokens.append(Token(tok_type, raw, line, column))
        pos = m.end()

    tokens.append(Token(TokenType.EOF, "", line, pos - line_start + 1))
    return tokens
