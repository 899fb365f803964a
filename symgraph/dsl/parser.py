"""
Recursive descent parser for the symgraph DSL.

Grammar::

    program    := { [statement] (NEWLINE | ";") } EOF
    statement  := "fn" IDENT "(" [params] ")" ["(" "recursive" ")"] "=" expr
                | ["let"] IDENT "=" expr
                | expr
    expr       := term { ("+" | "-") term }
    term       := unary { ("*" | "/") unary }
    unary      := "-" unary | power
    power      := primary [ "^" unary ]
    primary    := NUMBER | IDENT [ "(" [expr {"," expr}] ")" ] | "(" expr ")"

Subtraction, division and negation are desugared while parsing, so the
resulting trees only hold Constant, Var, Add, Mul, Pow and Call nodes. Chains
of ``+``/``-`` and ``*``/``/`` produce a single multi-input node.
"""

from __future__ import annotations

from typing import Optional

from beartype import beartype

from symgraph.dsl.lexer import Token, TokenType, tokenize
from symgraph.errors import ParseError
from symgraph.ir.expr import Add, Call, Constant, Expr, Mul, Pow, Var, map_children
from symgraph.ir.statement import (
    Assignment,
    BareExpr,
    FunctionDef,
    FunctionDefinition,
    Statement,
)

RECURSIVE_MARKER = "recursive"

_DESCRIBE = {
    TokenType.EOF: "end of input",
    TokenType.NEWLINE: "end of statement",
}


def _describe(tok: Token) -> str:
    if tok.type in _DESCRIBE:
        return _DESCRIBE[tok.type]
    return repr(tok.value)


def _negate(expr: Expr) -> Expr:
    if isinstance(expr, Constant):
        return Constant(-expr.value)
    return Mul((Constant(-1.0), expr))


def _reciprocal(expr: Expr) -> Expr:
    return Pow(expr, Constant(-1.0))


class Parser:
    def __init__(self, tokens: list[Token]):
        self._tokens = tokens
        self._pos = 0

    # ------------------------------------------------------------------ helpers

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _peek2(self) -> Optional[Token]:
        if self._pos + 1 < len(self._tokens):
            return self._tokens[self._pos + 1]
        return None

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOF:
            self._pos += 1
        return tok

    def _match(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _error(self, reason: str, tok: Optional[Token] = None) -> ParseError:
        tok = tok or self._peek()
        return ParseError(reason, tok.line, tok.column)

    def _expect(self, ttype: TokenType, what: str) -> Token:
        tok = self._peek()
        if tok.type != ttype:
            raise self._error(f"Expected {what} but found {_describe(tok)}", tok)
        return self._advance()

    def _skip_separators(self) -> None:
        while self._match(TokenType.NEWLINE):
            self._advance()

    # ------------------------------------------------------------------ public

    def parse_program(self) -> list[Statement]:
        statements: list[Statement] = []
        self._skip_separators()
        while not self._match(TokenType.EOF):
            statements.append(self._parse_statement())
            self._end_of_statement()
            self._skip_separators()
        return _mark_recursive_calls(statements)

    def parse_single_expression(self) -> Expr:
        self._skip_separators()
        expr = self._parse_expression()
        self._end_of_statement()
        self._skip_separators()
        if not self._match(TokenType.EOF):
            raise self._error(f"Expected a single expression but found {_describe(self._peek())}")
        return expr

    def _end_of_statement(self) -> None:
        tok = self._peek()
        if tok.type in (TokenType.NEWLINE, TokenType.EOF):
            return
        if tok.type == TokenType.RPAREN:
            raise self._error("Mismatched parentheses: unmatched ')'", tok)
        if tok.type == TokenType.EQUALS:
            raise self._error(
                "Equalities with expressions on both sides are not supported", tok
            )
        if tok.type in (TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.LPAREN):
            raise self._error(f"Missing operator before {_describe(tok)}", tok)
        raise self._error(f"Unexpected {_describe(tok)}", tok)

    # ------------------------------------------------------------------ statements

    def _parse_statement(self) -> Statement:
        tok = self._peek()

        if tok.type == TokenType.FN:
            return self._parse_function_def()

        if tok.type == TokenType.LET:
            self._advance()
            name_tok = self._expect(TokenType.IDENTIFIER, "a variable name after 'let'")
            self._expect(TokenType.EQUALS, "'='")
            return Assignment(name_tok.value, self._parse_expression(), name_tok.line)

        nxt = self._peek2()
        if tok.type == TokenType.IDENTIFIER and nxt is not None and nxt.type == TokenType.EQUALS:
            self._advance()
            self._advance()
            return Assignment(tok.value, self._parse_expression(), tok.line)

        return BareExpr(self._parse_expression(), tok.line)

    def _parse_function_def(self) -> FunctionDef:
        fn_tok = self._advance()  # consume 'fn'
        name_tok = self._expect(TokenType.IDENTIFIER, "a function name after 'fn'")
        self._expect(TokenType.LPAREN, "'(' after the function name")

        params: list[str] = []
        if not self._match(TokenType.RPAREN):
            while True:
                p_tok = self._expect(TokenType.IDENTIFIER, "a parameter name")
                if p_tok.value in params:
                    raise self._error(f"Duplicate parameter {p_tok.value!r}", p_tok)
                params.append(p_tok.value)
                if not self._match(TokenType.COMMA):
                    break
                self._advance()
        self._expect(TokenType.RPAREN, "')' to close the parameter list")

        recursive = False
        if self._match(TokenType.LPAREN):
            marker = self._peek2()
            if marker is None or marker.type != TokenType.IDENTIFIER or marker.value != RECURSIVE_MARKER:
                raise self._error("Expected '(recursive)' or '=' after the parameter list")
            self._advance()
            self._advance()
            self._expect(TokenType.RPAREN, "')' to close '(recursive'")
            recursive = True

        self._expect(TokenType.EQUALS, "'=' before the function body")
        body = self._parse_expression()
        definition = FunctionDefinition(name_tok.value, tuple(params), body, recursive)
        return FunctionDef(definition, fn_tok.line)

    # ------------------------------------------------------------------ expressions

    def _parse_expression(self) -> Expr:
        terms = [self._parse_term()]
        while self._match(TokenType.PLUS, TokenType.MINUS):
            op = self._advance()
            term = self._parse_term()
            terms.append(_negate(term) if op.type == TokenType.MINUS else term)
        if len(terms) == 1:
            return terms[0]
        return Add(tuple(terms))

    def _parse_term(self) -> Expr:
        factors = [self._parse_unary()]
        while self._match(TokenType.STAR, TokenType.SLASH):
            op = self._advance()
            factor = self._parse_unary()
            factors.append(_reciprocal(factor) if op.type == TokenType.SLASH else factor)
        if len(factors) == 1:
            return factors[0]
        return Mul(tuple(factors))

    def _parse_unary(self) -> Expr:
        if self._match(TokenType.MINUS):
            self._advance()
            return _negate(self._parse_unary())
        return self._parse_power()

    def _parse_power(self) -> Expr:
        base = self._parse_primary()
        if self._match(TokenType.CARET):
            self._advance()
            # Right associative: 2^3^2 == 2^(3^2); the exponent may be negated
            return Pow(base, self._parse_unary())
        return base

    def _parse_primary(self) -> Expr:
        tok = self._peek()

        if tok.type == TokenType.NUMBER:
            self._advance()
            return Constant(float(tok.value))

        if tok.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.LPAREN):
                return Call(tok.value, self._parse_arguments())
            return Var(tok.value)

        if tok.type == TokenType.LPAREN:
            self._advance()
            inner = self._parse_expression()
            if not self._match(TokenType.RPAREN):
                raise self._error(
                    f"Mismatched parentheses: expected ')' but found {_describe(self._peek())}"
                )
            self._advance()
            return inner

        if tok.type == TokenType.RPAREN:
            raise self._error("Mismatched parentheses: unmatched ')'", tok)
        if tok.type in (TokenType.EOF, TokenType.NEWLINE):
            raise self._error("Unterminated expression: expected an operand", tok)
        if tok.type in (TokenType.FN, TokenType.LET):
            raise self._error(f"Unexpected keyword {tok.value!r} inside an expression", tok)
        raise self._error(f"Expected an operand but found {_describe(tok)}", tok)

    def _parse_arguments(self) -> tuple[Expr, ...]:
        self._advance()  # consume '('
        args: list[Expr] = []
        if not self._match(TokenType.RPAREN):
            while True:
                args.append(self._parse_expression())
                if not self._match(TokenType.COMMA):
                    break
                self._advance()
                if self._match(TokenType.RPAREN):
                    raise self._error("Expected an argument after ','")
        if not self._match(TokenType.RPAREN):
            raise self._error(
                f"Mismatched parentheses: expected ')' to close the argument list "
                f"but found {_describe(self._peek())}"
            )
        self._advance()
        return tuple(args)


# =============================================================================
# Post-processing
# =============================================================================


def _mark_calls(expr: Expr, recursive_names: frozenset[str]) -> Expr:
    if isinstance(expr, Call):
        args = tuple(_mark_calls(a, recursive_names) for a in expr.args)
        return Call(expr.name, args, expr.recursive or expr.name in recursive_names)
    return map_children(expr, lambda c: _mark_calls(c, recursive_names))


def _mark_recursive_calls(statements: list[Statement]) -> list[Statement]:
    """Set ``recursive`` on calls to functions defined with ``(recursive)``."""
    flags: dict[str, bool] = {}
    for stmt in statements:
        if isinstance(stmt, FunctionDef):
            flags[stmt.definition.name] = stmt.definition.recursive
    names = frozenset(name for name, rec in flags.items() if rec)
    if not names:
        return statements

    marked: list[Statement] = []
    for stmt in statements:
        if isinstance(stmt, Assignment):
            marked.append(Assignment(stmt.variable, _mark_calls(stmt.expr, names), stmt.line))
        elif isinstance(stmt, FunctionDef):
            d = stmt.definition
            body = _mark_calls(d.body, names)
            marked.append(FunctionDef(FunctionDefinition(d.name, d.params, body, d.recursive), stmt.line))
        else:
            marked.append(BareExpr(_mark_calls(stmt.expr, names), stmt.line))
    return marked


@beartype
def parse(source: str) -> list[Statement]:
    """
    Parse DSL source into statements.

    Raises:
        ParseError: on malformed input, with the 1-based line and column
    """
    return Parser(tokenize(source)).parse_program()


@beartype
def parse_expr(text: str) -> Expr:
    """Parse a single expression (no statements)."""
    return Parser(tokenize(text)).parse_single_expression()
