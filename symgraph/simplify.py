"""
Algebraic simplification of expression trees.

``simplify(expr, target_variable)`` rewrites a tree into an equivalent,
reduced canonical form. It is pure (a new tree is returned) and runs
bottom-up rewrite passes until a pass produces no change.

Rules applied on every pass:

- Constant folding: all-constant Add/Mul/Pow nodes become one Constant, and
  the constants inside a mixed Add/Mul are folded into one.
- Flattening: Add inside Add and Mul inside Mul merge.
- Identities: 0 terms and 1 factors are dropped; a^1 -> a, a^0 -> 1,
  1^a -> 1, 0^c -> 0 for positive constant c.
- Annihilation: any Mul with a 0 factor is 0.
- Like-term collection: terms sharing the same target-dependent part have
  their coefficients summed (3*x + a*x -> (3 + a)*x); terms free of the
  target merge on their numeric coefficient only (2*a - a -> a).
- Like-factor collection on the target variable: x * x^2 -> x^3. Positive and
  negative integer powers merge separately, so no division by zero is
  introduced or removed (x^3 * x^-1 stays as it is).
- Canonical ordering of Add/Mul children by ``sort_key``.

Calls are opaque: only their arguments are simplified, so recursive
functions can never be unfolded here.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from typing import Optional

import numpy as np
from beartype import beartype

from symgraph.builtins import FP_ERRSTATE
from symgraph.config import DEFAULT_MAX_SIMPLIFY_PASSES
from symgraph.ir.expr import (
    Add,
    Call,
    Constant,
    Expr,
    Mul,
    Pow,
    contains_var,
    is_integer_constant,
    sort_key,
)

ZERO = Constant(0.0)
ONE = Constant(1.0)


def _fold(op: Callable, a: float, b: float) -> Optional[float]:
    """Apply a float64 operation, or None if it is numerically undefined."""
    try:
        with np.errstate(**FP_ERRSTATE):
            result = op(np.float64(a), np.float64(b))
    except FloatingPointError:
        return None
    return float(result)


def _fold_all(op: Callable, values: list[float]) -> Optional[float]:
    total = values[0]
    for v in values[1:]:
        total = _fold(op, total, v)
        if total is None:
            return None
    return total


class Simplifier:
    """One bottom-up rewrite pass with respect to ``target``."""

    def __init__(self, target: str):
        self.target = target

    def visit(self, expr: Expr) -> Expr:
        if isinstance(expr, Add):
            return self.add([self.visit(t) for t in expr.terms])
        if isinstance(expr, Mul):
            return self.mul([self.visit(f) for f in expr.factors])
        if isinstance(expr, Pow):
            return self.pow(self.visit(expr.base), self.visit(expr.exponent))
        if isinstance(expr, Call):
            return Call(expr.name, tuple(self.visit(a) for a in expr.args), expr.recursive)
        return expr

    # ------------------------------------------------------------------ sums

    def add(self, terms: list[Expr]) -> Expr:
        terms = self._collect_terms(_flatten(Add, terms))
        terms = _flatten(Add, terms)

        constants = [t.value for t in terms if isinstance(t, Constant)]
        others = [t for t in terms if not isinstance(t, Constant)]
        if constants:
            total = _fold_all(np.add, constants)
            if total is None:
                others.extend(Constant(c) for c in constants)
            elif total != 0.0:
                others.append(Constant(total))

        if not others:
            return ZERO
        if len(others) == 1:
            return others[0]
        return Add(tuple(sorted(others, key=sort_key)))

    def _split_term(self, term: Expr) -> tuple[Expr, Expr]:
        """
        Split a term into (coefficient, part).

        For a term containing the target, the coefficient is every factor
        free of it. For any other term it is only the numeric factor.
        """
        if not isinstance(term, Mul):
            return ONE, term
        if contains_var(term, self.target):
            kept = [f for f in term.factors if contains_var(f, self.target)]
            coefficient = [f for f in term.factors if not contains_var(f, self.target)]
        else:
            kept = [f for f in term.factors if not isinstance(f, Constant)]
            coefficient = [f for f in term.factors if isinstance(f, Constant)]
        if not kept:
            return ONE, term
        part = kept[0] if len(kept) == 1 else Mul(tuple(kept))
        return self.mul(coefficient), part

    def _collect_terms(self, terms: list[Expr]) -> list[Expr]:
        groups: dict[Expr, list[tuple[Expr, Expr]]] = {}
        result: list[Expr] = []
        for term in terms:
            if isinstance(term, Constant):
                result.append(term)
                continue
            coefficient, part = self._split_term(term)
            groups.setdefault(part, []).append((coefficient, term))

        for part, members in groups.items():
            if len(members) == 1:
                result.append(members[0][1])
                continue
            coefficient = self.add([c for c, _ in members])
            result.append(self.mul([coefficient, part]))
        return result

    # ------------------------------------------------------------------ products

    def mul(self, factors: list[Expr]) -> Expr:
        factors = _flatten(Mul, factors)
        if any(isinstance(f, Constant) and f.value == 0.0 for f in factors):
            return ZERO
        factors = _flatten(Mul, self._collect_factors(factors))

        constants = [f.value for f in factors if isinstance(f, Constant)]
        others = [f for f in factors if not isinstance(f, Constant)]
        if constants:
            product = _fold_all(np.multiply, constants)
            if product is None:
                others.extend(Constant(c) for c in constants)
            elif product == 0.0:
                return ZERO
            elif product != 1.0:
                others.append(Constant(product))

        if not others:
            return ONE
        if len(others) == 1:
            return others[0]
        return Mul(tuple(sorted(others, key=sort_key)))

    def _collect_factors(self, factors: list[Expr]) -> list[Expr]:
        groups: dict[Expr, list[tuple[Expr, Expr]]] = {}
        result: list[Expr] = []
        for factor in factors:
            if not contains_var(factor, self.target):
                result.append(factor)
                continue
            if isinstance(factor, Pow):
                base, exponent = factor.base, factor.exponent
            else:
                base, exponent = factor, ONE
            groups.setdefault(base, []).append((exponent, factor))

        for base, members in groups.items():
            positive = [e.value for e, _ in members if is_integer_constant(e) and e.value > 0]
            negative = [e.value for e, _ in members if is_integer_constant(e) and e.value < 0]
            result.extend(
                f for e, f in members if not (is_integer_constant(e) and e.value != 0.0)
            )
            # Positive and negative powers merge separately: x * x^-1 is undefined at 0
            for same_sign in (positive, negative):
                if same_sign:
                    result.append(self.pow(base, Constant(sum(same_sign))))
        return result

    # ------------------------------------------------------------------ powers

    def pow(self, base: Expr, exponent: Expr) -> Expr:
        if isinstance(base, Constant) and isinstance(exponent, Constant):
            folded = _fold(np.power, base.value, exponent.value)
            if folded is not None:
                return Constant(folded)
            return Pow(base, exponent)

        if isinstance(exponent, Constant):
            if exponent.value == 1.0:
                return base
            if exponent.value == 0.0:
                return ONE
        if isinstance(base, Constant):
            if base.value == 1.0:
                return ONE
            if base.value == 0.0 and isinstance(exponent, Constant) and exponent.value > 0:
                return ZERO

        # (a^i)^j -> a^(i*j) for integers, unless both are negative
        if (
            isinstance(base, Pow)
            and is_integer_constant(base.exponent)
            and is_integer_constant(exponent)
            and not (base.exponent.value < 0 and exponent.value < 0)
        ):
            return self.pow(base.base, Constant(base.exponent.value * exponent.value))

        return Pow(base, exponent)


def _flatten(kind: type, items: list[Expr]) -> list[Expr]:
    flat: list[Expr] = []
    for item in items:
        if isinstance(item, kind):
            flat.extend(item.terms if kind is Add else item.factors)
        else:
            flat.append(item)
    return flat


@beartype
def simplify(
    expr: Expr,
    target_variable: str,
    max_passes: int = DEFAULT_MAX_SIMPLIFY_PASSES,
) -> Expr:
    """
    Simplify ``expr`` with respect to ``target_variable``.

    Args:
        expr: Expression to simplify
        target_variable: Variable that like-term collection is relative to
        max_passes: Upper bound on rewrite passes

    Returns:
        A new, canonical expression equivalent to ``expr``

    Example:
        >>> from symgraph.dsl import parse_expr
        >>> simplify(parse_expr("x + x + x"), "x") == simplify(parse_expr("3 * x"), "x")
        True
    """
    simplifier = Simplifier(target_variable)
    current = expr
    for _ in range(max_passes):
        rewritten = simplifier.visit(current)
        if rewritten == current:
            return rewritten
        current = rewritten

    warnings.warn(
        f"simplify() did not reach a fixed point within {max_passes} passes; "
        f"returning the last rewrite",
        RuntimeWarning,
        stacklevel=2,
    )
    return current
