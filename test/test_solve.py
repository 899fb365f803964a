"""Tests for isolating a variable (symgraph.solve)."""

from __future__ import annotations

import math

import pytest

from symgraph import (
    Context,
    MultipleSolutions,
    NonLinear,
    SolveError,
    Unsolvable,
    parse_expr,
    simplify,
    solve_for,
)
from symgraph.ir import Call, Constant, Pow


def _solve(text: str, variable: str = "x", **kwargs):
    return solve_for(parse_expr(text), variable, **kwargs)


def _value(expr, **bindings) -> float:
    ctx = Context()
    for name, value in bindings.items():
        ctx.set_var(name, value)
    return ctx.evaluate(expr)


# ---------------------------------------------------------------------------
# Linear equations
# ---------------------------------------------------------------------------


class TestLinear:
    def test_numeric(self):
        assert _solve("2 * x + 4") == Constant(-2)

    def test_symbolic(self):
        assert _solve("a * x + b") == simplify(parse_expr("-b / a"), "x")

    def test_nested(self):
        assert _solve("3 * (x + 1) - 9") == Constant(2)

    def test_other_variable(self):
        assert _solve("2 * x + y - 4", "y") == simplify(parse_expr("4 - 2 * x"), "y")

    def test_simplification_removes_dependence(self):
        assert _solve("x + 0 * sin(x)") == Constant(0)

    def test_round_trip(self):
        solution = _solve("a * x + b")
        x = _value(solution, a=2, b=3)
        assert x == -1.5
        assert _value(parse_expr("a * x + b"), a=2, b=3, x=x) == 0.0


# ---------------------------------------------------------------------------
# Inverse operations
# ---------------------------------------------------------------------------


class TestInverses:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("exp(x) - 5", math.log(5)),
            ("ln(x) - 2", math.exp(2)),
            ("sqrt(x) - 3", 9.0),
            ("x ^ 3 - 8", 2.0),
            ("x ^ 3 + 8", -2.0),
            ("2 ^ x - 8", 3.0),
            ("log(2, x) - 3", 8.0),
            ("log(x) - 2", 100.0),
            ("1 / x - 4", 0.25),
            ("asinh(x) - 1", math.sinh(1)),
            ("cbrt(x) + 2", -8.0),
            ("acos(x) - 1", math.cos(1)),
            ("tanh(x) - 0.5", math.atanh(0.5)),
        ],
    )
    def test_solution_value(self, text: str, expected: float):
        assert _value(_solve(text)) == pytest.approx(expected)

    def test_power_equal_to_zero(self):
        assert _solve("x ^ 2") == Constant(0)

    def test_odd_root_of_negative_uses_root(self):
        solution = _solve("x ^ 3 + c")
        assert isinstance(solution, Call)
        assert solution.name == "root"

    def test_shadowed_root_falls_back_to_power(self):
        solution = _solve("x ^ 3 + 8", user_functions={"root"})
        assert isinstance(solution, Pow)
        assert solution.base == Constant(-8)
        assert solution.exponent.value == pytest.approx(1 / 3)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.parametrize("text", ["y + 1", "x - x", "0 * x + 2"])
    def test_unsolvable(self, text: str):
        with pytest.raises(Unsolvable) as exc_info:
            _solve(text)
        assert exc_info.value.variable == "x"

    @pytest.mark.parametrize(
        "text",
        [
            "sqrt(x) + 1",
            "x ^ 0.5 + 1",
            "x ^ 2 + 4",
            "1 / x",
            "2 ^ x + 3",
            "exp(x) + 1",
            "acosh(x) + 1",
            "tanh(x) - 1",
            "asin(x) - 2",
            "acos(x) - 5",
            "atan(x) - 2",
        ],
    )
    def test_no_real_solution(self, text: str):
        with pytest.raises(Unsolvable, match="No real value of 'x'") as exc_info:
            _solve(text)
        assert exc_info.value.variable == "x"
        assert exc_info.value.reason

    def test_range_check_needs_a_constant(self):
        # a could be negative or not; the solver leaves that to evaluation
        solution = _solve("sqrt(x) - a")
        assert _value(solution, a=3) == pytest.approx(9.0)

    @pytest.mark.parametrize(
        "text",
        ["x * sin(x)", "x ^ x", "x + sin(x)", "min(x, 1) - 2", "log(x, 8) - 3"],
    )
    def test_non_linear(self, text: str):
        with pytest.raises(NonLinear):
            _solve(text)

    def test_user_function_is_opaque(self):
        with pytest.raises(NonLinear, match="user function 'f'"):
            _solve("f(x) - 1", user_functions={"f"})

    def test_user_function_shadowing_a_builtin_is_opaque(self):
        with pytest.raises(NonLinear):
            _solve("exp(x) - 1", user_functions={"exp"})

    @pytest.mark.parametrize("text", ["x ^ 2 - 4", "sin(x) - 0.5", "abs(x) - 1", "x ^ -2 - 4"])
    def test_multiple_solutions(self, text: str):
        with pytest.raises(MultipleSolutions):
            _solve(text)

    def test_errors_share_a_base_class(self):
        with pytest.raises(SolveError):
            _solve("y")
