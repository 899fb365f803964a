"""
Built-in constants and functions available in every Context.

Built-in functions are NumPy ufuncs evaluated on float64 scalars, so
floating-point faults surface through ``numpy.errstate`` exactly like the
arithmetic operators. User-defined functions with the same name shadow them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from collections.abc import Callable
from typing import Optional

import numpy as np

from symgraph.ir.expr import Call, Constant, Expr, Pow

# Floating-point faults reported as errors; underflow silently rounds to 0
FP_ERRSTATE = {"divide": "raise", "over": "raise", "invalid": "raise", "under": "ignore"}

CONSTANTS: dict[str, float] = {
    "e": math.e,
    "pi": math.pi,
}

# Lazily evaluated: where(c, a, b) -> a if c != 0 else b
WHERE = "where"


@dataclass(frozen=True)
class Builtin:
    """A built-in numeric function."""

    name: str
    arities: tuple[int, ...]
    fn: Optional[Callable[..., np.float64]]

    def accepts(self, n_args: int) -> bool:
        return n_args in self.arities


def _log(*args):
    if len(args) == 1:
        return np.log10(args[0])
    base, x = args
    return np.log(x) / np.log(base)


def _root(n, x):
    # Real odd roots of negative numbers, e.g. root(3, -8) == -2
    if x < 0 and float(n).is_integer() and int(n) % 2 == 1:
        return -np.power(-x, 1.0 / n)
    return np.power(x, 1.0 / n)


_UNARY = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "asin": np.arcsin,
    "acos": np.arccos,
    "atan": np.arctan,
    "sinh": np.sinh,
    "cosh": np.cosh,
    "tanh": np.tanh,
    "asinh": np.arcsinh,
    "acosh": np.arccosh,
    "atanh": np.arctanh,
    "exp": np.exp,
    "ln": np.log,
    "sqrt": np.sqrt,
    "cbrt": np.cbrt,
    "abs": np.abs,
    "floor": np.floor,
    "ceil": np.ceil,
    "sign": np.sign,
}

_BINARY = {
    "atan2": np.arctan2,
    "min": np.minimum,
    "max": np.maximum,
    "root": _root,
}

BUILTINS: dict[str, Builtin] = {}
for _name, _fn in _UNARY.items():
    BUILTINS[_name] = Builtin(_name, (1,), _fn)
for _name, _fn in _BINARY.items():
    BUILTINS[_name] = Builtin(_name, (2,), _fn)
BUILTINS["log"] = Builtin("log", (1, 2), _log)
BUILTINS[WHERE] = Builtin(WHERE, (3,), None)
del _name, _fn


# =============================================================================
# Inverses (used by the solver)
# =============================================================================

# f(u) = r  ->  u = INVERSES[f](r), for one-argument functions that are
# injective over the reals.
INVERSES: dict[str, Callable[[Expr], Expr]] = {
    "exp": lambda r: Call("ln", (r,)),
    "ln": lambda r: Call("exp", (r,)),
    "log": lambda r: Pow(Constant(10.0), r),
    "sqrt": lambda r: Pow(r, Constant(2.0)),
    "cbrt": lambda r: Pow(r, Constant(3.0)),
    "sinh": lambda r: Call("asinh", (r,)),
    "asinh": lambda r: Call("sinh", (r,)),
    "tanh": lambda r: Call("atanh", (r,)),
    "atanh": lambda r: Call("tanh", (r,)),
    "asin": lambda r: Call("sin", (r,)),
    "acos": lambda r: Call("cos", (r,)),
    "atan": lambda r: Call("tan", (r,)),
    "acosh": lambda r: Call("cosh", (r,)),
}

# Values each invertible function can produce: f(u) = r has no real solution
# when a constant r falls outside. Keyed like INVERSES.
RANGES: dict[str, tuple[Callable[[float], bool], str]] = {
    "exp": (lambda r: r > 0, "exp is always positive"),
    "sqrt": (lambda r: r >= 0, "sqrt is never negative"),
    "acosh": (lambda r: r >= 0, "acosh is never negative"),
    "tanh": (lambda r: -1 < r < 1, "tanh lies strictly between -1 and 1"),
    "asin": (lambda r: -math.pi / 2 <= r <= math.pi / 2, "asin lies in [-pi/2, pi/2]"),
    "acos": (lambda r: 0 <= r <= math.pi, "acos lies in [0, pi]"),
    "atan": (lambda r: -math.pi / 2 < r < math.pi / 2, "atan lies strictly between -pi/2 and pi/2"),
}

# Periodic or even functions: an inverse exists but is not unique.
NON_INJECTIVE = frozenset({"sin", "cos", "tan", "cosh", "abs", "floor", "ceil", "sign"})
