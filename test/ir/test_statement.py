"""Tests for statements and function definitions (symgraph.ir.statement)."""

import pytest

from symgraph.ir import (
    Assignment,
    BareExpr,
    Call,
    Constant,
    FunctionDef,
    FunctionDefinition,
    Mul,
    Var,
)


def _square() -> FunctionDefinition:
    return FunctionDefinition("sq", ("t",), Mul((Var("t"), Var("t"))))


class TestFunctionDefinition:
    def test_arity(self):
        assert _square().arity == 1
        assert FunctionDefinition("k", (), Constant(1)).arity == 0

    def test_params_coerced_to_tuple(self):
        f = FunctionDefinition("add", ["a", "b"], Var("a") + Var("b"))
        assert f.params == ("a", "b")

    def test_duplicate_parameters_rejected(self):
        with pytest.raises(ValueError, match="Duplicate parameter 'a'"):
            FunctionDefinition("f", ("a", "a"), Var("a"))

    def test_str(self):
        assert str(_square()) == "fn sq(t) = (t * t)"

    def test_str_marks_recursive(self):
        f = FunctionDefinition("f", ("n",), Call("f", (Var("n"),), True), recursive=True)
        assert str(f) == "fn f(n) (recursive) = f(n)"

    def test_equality(self):
        assert _square() == _square()
        assert _square() != FunctionDefinition("sq", ("t",), Var("t"))


class TestStatements:
    def test_assignment(self):
        stmt = Assignment("y", Var("x") + 1, line=3)
        assert stmt.variable == "y"
        assert stmt.line == 3
        assert str(stmt) == "y = (x + 1)"

    def test_function_def(self):
        stmt = FunctionDef(_square())
        assert stmt.definition.name == "sq"
        assert str(stmt) == "fn sq(t) = (t * t)"

    def test_bare_expr(self):
        assert str(BareExpr(Constant(4))) == "4"
        assert BareExpr(Constant(4)).line == 0
