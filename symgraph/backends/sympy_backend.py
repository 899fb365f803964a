"""
SymPy backend for symgraph expressions.

Converts expression trees into SymPy expressions for pretty printing, LaTeX
output and independent symbolic checks. Variables become real-valued
``Symbol``s; calls to functions that are not built-ins become undefined
``sympy.Function`` applications.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import sympy as sp
from beartype import beartype
from sympy import (
    Abs,
    Max,
    Min,
    Ne,
    Piecewise,
    Symbol,
    acos,
    acosh,
    asin,
    asinh,
    atan,
    atan2,
    atanh,
    ceiling,
    cos,
    cosh,
    exp,
    floor,
    log,
    real_root,
    sign,
    sin,
    sinh,
    sqrt,
    tan,
    tanh,
)

from symgraph.builtins import WHERE
from symgraph.ir.expr import Add, Call, Constant, Expr, Mul, Pow, Var

# =============================================================================
# Call Conversion - Dispatch Table
# =============================================================================


def _log(*args):
    if len(args) == 1:
        return log(args[0], 10)
    base, x = args
    return log(x, base)


def _make_call_handlers() -> dict[str, Callable[..., sp.Expr]]:
    """Create dispatch table from built-in function names to SymPy."""
    unary = {
        "sin": sin,
        "cos": cos,
        "tan": tan,
        "asin": asin,
        "acos": acos,
        "atan": atan,
        "sinh": sinh,
        "cosh": cosh,
        "tanh": tanh,
        "asinh": asinh,
        "acosh": acosh,
        "atanh": atanh,
        "exp": exp,
        "ln": log,
        "sqrt": sqrt,
        "cbrt": lambda x: real_root(x, 3),
        "abs": Abs,
        "floor": floor,
        "ceil": ceiling,
        "sign": sign,
    }

    binary = {
        "atan2": atan2,
        "min": Min,
        "max": Max,
        "root": lambda n, x: real_root(x, n),
    }

    special = {
        "log": _log,
        WHERE: lambda c, a, b: Piecewise((a, Ne(c, 0)), (b, True)),
    }

    return {**unary, **binary, **special}


_CALL_HANDLERS = _make_call_handlers()


def _constant(value: float) -> sp.Expr:
    if value.is_integer():
        return sp.Integer(int(value))
    return sp.Float(value)


@beartype
def to_sympy(
    expr: Expr,
    symbols: Optional[dict[str, Symbol]] = None,
    shadowed: frozenset[str] = frozenset(),
) -> sp.Expr:
    """
    Convert an expression tree to SymPy.

    Args:
        expr: Expression to convert
        symbols: Name -> Symbol cache; filled in as variables are met, so
            several conversions can share symbols
        shadowed: Names of user functions that shadow built-ins; calls to
            them become undefined functions

    Returns:
        The equivalent SymPy expression

    Example:
        >>> from symgraph.dsl import parse_expr
        >>> to_sympy(parse_expr("2 * x ^ 2 + 1"))
        2*x**2 + 1
    """
    if symbols is None:
        symbols = {}

    def convert(e: Expr) -> sp.Expr:
        if isinstance(e, Constant):
            return _constant(e.value)
        if isinstance(e, Var):
            if e.name not in symbols:
                symbols[e.name] = Symbol(e.name, real=True)
            return symbols[e.name]
        if isinstance(e, Add):
            return sp.Add(*[convert(t) for t in e.terms])
        if isinstance(e, Mul):
            return sp.Mul(*[convert(f) for f in e.factors])
        if isinstance(e, Pow):
            return sp.Pow(convert(e.base), convert(e.exponent))
        if isinstance(e, Call):
            args = [convert(a) for a in e.args]
            handler = _CALL_HANDLERS.get(e.name)
            if handler is None or e.name in shadowed:
                return sp.Function(e.name)(*args)
            return handler(*args)
        raise TypeError(f"Cannot convert {type(e).__name__} to SymPy")

    return convert(expr)


@beartype
def latex(expr: Expr) -> str:
    """Render an expression as LaTeX."""
    return sp.latex(to_sympy(expr))
