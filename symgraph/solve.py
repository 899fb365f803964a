"""
Isolating a variable in an equation ``expr == 0``.

The equation is first simplified with respect to the variable, then inverse
operations are applied to both sides until the variable stands alone:

    Add:   move independent terms to the right by negation
    Mul:   move independent factors to the right by reciprocal
    Pow:   take a root (variable in the base) or a logarithm (in the exponent)
    Call:  apply the inverse of an injective built-in function

Each step replaces the left side with a strict sub-tree of itself, so the
loop always terminates.
"""

from __future__ import annotations

from collections.abc import Collection

from beartype import beartype

from symgraph.builtins import INVERSES, NON_INJECTIVE, RANGES
from symgraph.config import DEFAULT_MAX_SIMPLIFY_PASSES
from symgraph.errors import MultipleSolutions, NonLinear, Unsolvable
from symgraph.ir.expr import (
    Add,
    Call,
    Constant,
    Expr,
    Mul,
    Pow,
    Var,
    contains_var,
    inv,
    is_integer_constant,
    neg,
)
from symgraph.simplify import simplify


def _is_even_integer(expr: Expr) -> bool:
    return isinstance(expr, Constant) and expr.value.is_integer() and int(expr.value) % 2 == 0


class _Isolator:
    def __init__(self, variable: str, user_functions: Collection[str], max_passes: int):
        self.variable = variable
        self.user_functions = user_functions
        self.max_passes = max_passes

    def depends(self, expr: Expr) -> bool:
        return contains_var(expr, self.variable)

    def simplify(self, expr: Expr) -> Expr:
        return simplify(expr, self.variable, self.max_passes)

    def solve(self, expr: Expr) -> Expr:
        lhs = self.simplify(expr)
        rhs: Expr = Constant(0.0)
        if not self.depends(lhs):
            raise Unsolvable(self.variable)

        target = Var(self.variable)
        while lhs != target:
            if isinstance(lhs, Add):
                lhs, rhs = self._invert_add(lhs, rhs)
            elif isinstance(lhs, Mul):
                lhs, rhs = self._invert_mul(lhs, rhs)
            elif isinstance(lhs, Pow):
                lhs, rhs = self._invert_pow(lhs, rhs)
            elif isinstance(lhs, Call):
                lhs, rhs = self._invert_call(lhs, rhs)
            else:
                raise NonLinear(self.variable, f"no inverse rule for {lhs}")
            rhs = self.simplify(rhs)

        return rhs

    def _invert_add(self, lhs: Add, rhs: Expr) -> tuple[Expr, Expr]:
        dependent = [t for t in lhs.terms if self.depends(t)]
        if len(dependent) > 1:
            raise NonLinear(
                self.variable,
                "it appears in more than one term: " + ", ".join(str(t) for t in dependent),
            )
        moved = tuple(neg(t) for t in lhs.terms if not self.depends(t))
        return dependent[0], Add((rhs,) + moved)

    def _invert_mul(self, lhs: Mul, rhs: Expr) -> tuple[Expr, Expr]:
        dependent = [f for f in lhs.factors if self.depends(f)]
        if len(dependent) > 1:
            raise NonLinear(
                self.variable,
                "it appears in more than one factor: " + ", ".join(str(f) for f in dependent),
            )
        moved = tuple(inv(f) for f in lhs.factors if not self.depends(f))
        return dependent[0], Mul((rhs,) + moved)

    def _invert_pow(self, lhs: Pow, rhs: Expr) -> tuple[Expr, Expr]:
        in_base = self.depends(lhs.base)
        in_exponent = self.depends(lhs.exponent)
        if in_base and in_exponent:
            raise NonLinear(self.variable, f"it appears in both base and exponent of {lhs}")

        if in_base:
            exponent = lhs.exponent
            if isinstance(exponent, Constant) and isinstance(rhs, Constant):
                # u^n == 0 has the single root u == 0
                if rhs.value == 0 and exponent.value > 0:
                    return lhs.base, rhs
                if rhs.value == 0:
                    raise Unsolvable(self.variable, f"{lhs} is never zero")
                if rhs.value < 0 and (
                    not exponent.value.is_integer() or _is_even_integer(exponent)
                ):
                    raise Unsolvable(self.variable, f"{lhs} is never negative")
            if _is_even_integer(exponent):
                raise MultipleSolutions(
                    self.variable, f"even power {lhs} has a positive and a negative root"
                )
            known_nonnegative = isinstance(rhs, Constant) and rhs.value >= 0
            if (
                is_integer_constant(exponent)
                and not known_nonnegative
                and "root" not in self.user_functions
            ):
                # Real odd root, defined for negative right-hand sides too
                return lhs.base, Call("root", (exponent, rhs))
            return lhs.base, Pow(rhs, inv(exponent))

        base = lhs.base
        if isinstance(base, Constant) and base.value > 0 and isinstance(rhs, Constant):
            if rhs.value <= 0:
                raise Unsolvable(self.variable, f"{lhs} is always positive")
        # b^u == r  ->  u == ln(r) / ln(b)
        return lhs.exponent, Mul((Call("ln", (rhs,)), inv(Call("ln", (lhs.base,)))))

    def _invert_call(self, lhs: Call, rhs: Expr) -> tuple[Expr, Expr]:
        name = lhs.name
        if name in self.user_functions:
            raise NonLinear(self.variable, f"user function '{name}' cannot be inverted")

        if name == "log" and len(lhs.args) == 2:
            base, arg = lhs.args
            if self.depends(base):
                raise NonLinear(self.variable, f"it appears in the base of {lhs}")
            return arg, Pow(base, rhs)

        if len(lhs.args) == 1:
            if name in RANGES and isinstance(rhs, Constant):
                in_range, description = RANGES[name]
                if not in_range(rhs.value):
                    raise Unsolvable(self.variable, f"{description}, but must equal {rhs}")
            if name in INVERSES:
                return lhs.args[0], INVERSES[name](rhs)
            if name in NON_INJECTIVE:
                raise MultipleSolutions(self.variable, f"'{name}' is not one-to-one")

        raise NonLinear(self.variable, f"no inverse rule for {lhs}")


@beartype
def solve_for(
    expr: Expr,
    variable: str,
    user_functions: Collection[str] = (),
    max_passes: int = DEFAULT_MAX_SIMPLIFY_PASSES,
) -> Expr:
    """
    Solve ``expr == 0`` for ``variable``.

    Args:
        expr: Left side of an equation whose right side is zero
        variable: Name of the variable to isolate
        user_functions: Names of user-defined functions; calls to them are
            treated as opaque even when they shadow a built-in
        max_passes: Simplifier pass bound

    Returns:
        A simplified expression for ``variable`` in terms of the other
        free variables

    Raises:
        Unsolvable: the variable does not appear after simplification, or a
            constant right-hand side lies outside the range of the function
            being inverted
        NonLinear: no inverse rule applies
        MultipleSolutions: the inverse is not unique

    Example:
        >>> from symgraph.dsl import parse_expr
        >>> solve_for(parse_expr("2 * x + 4"), "x")
        Constant(value=-2.0)
    """
    return _Isolator(variable, frozenset(user_functions), max_passes).solve(expr)
