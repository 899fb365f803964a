"""Tests for the DSL tokenizer (symgraph.dsl.lexer)."""

import pytest

from symgraph.dsl import TokenType, tokenize
from symgraph.errors import ParseError


def _types(source: str) -> list[TokenType]:
    return [t.type for t in tokenize(source)]


class TestTokens:
    def test_expression(self):
        assert _types("x + 1") == [
            TokenType.IDENTIFIER,
            TokenType.PLUS,
            TokenType.NUMBER,
            TokenType.EOF,
        ]

    def test_all_operators(self):
        assert _types("+-*/^=(),") == [
            TokenType.PLUS,
            TokenType.MINUS,
            TokenType.STAR,
            TokenType.SLASH,
            TokenType.CARET,
            TokenType.EQUALS,
            TokenType.LPAREN,
            TokenType.RPAREN,
            TokenType.COMMA,
            TokenType.EOF,
        ]

    @pytest.mark.parametrize("text", ["12", "1.5", ".5", "2e-3", "3.E+2", "7."])
    def test_number_forms(self, text):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == text
        assert tokens[1].type == TokenType.EOF

    def test_keywords(self):
        assert _types("fn let fnx") == [
            TokenType.FN,
            TokenType.LET,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_identifiers_with_underscores_and_digits(self):
        tok = tokenize("_x2")[0]
        assert tok.type == TokenType.IDENTIFIER
        assert tok.value == "_x2"


class TestSeparators:
    def test_newline_and_semicolon(self):
        assert _types("a\nb;c") == [
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_newline_inside_parentheses_is_skipped(self):
        assert TokenType.NEWLINE not in _types("(a\n+ b)")

    def test_hash_comment(self):
        assert _types("x # the x\ny") == [
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_slash_slash_comment(self):
        assert _types("x // note") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_single_slash_is_division(self):
        assert _types("a / b")[1] == TokenType.SLASH


class TestPositions:
    def test_line_and_column(self):
        tokens = tokenize("a\n  b")
        b = tokens[2]
        assert (b.line, b.column) == (2, 3)

    def test_columns_are_one_based(self):
        assert tokenize("x")[0].column == 1


class TestErrors:
    def test_unknown_operator(self):
        with pytest.raises(ParseError, match="Unknown operator '@'") as exc_info:
            tokenize("x @ 1")
        assert (exc_info.value.line, exc_info.value.column) == (1, 3)

    def test_unexpected_character(self):
        with pytest.raises(ParseError, match="Unexpected character"):
            tokenize("x + £")

    def test_error_on_later_line(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize("a = 1\nb = 2 % 3")
        assert exc_info.value.line == 2
        assert exc_info.value.column == 7
        assert str(exc_info.value).startswith("[ParseError] Line 2, column 7")
