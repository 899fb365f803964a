"""
Expression representation in the IR.

Expressions are symbolic mathematical expressions that can be:
- Parsed from the DSL
- Simplified with respect to a variable
- Evaluated numerically against a Context
- Solved for a variable
- Exported to SymPy

This is a simple tree-based representation similar to an AST. The tree only
ever contains six node types; subtraction, division and negation are expressed
with Add, Mul and Pow:

    a - b   ->  Add((a, Mul((-1, b))))
    a / b   ->  Mul((a, Pow(b, -1)))
    -a      ->  Mul((-1, a))

All nodes are frozen dataclasses, so trees are immutable, hashable and can be
shared freely between threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Callable, Iterator, Mapping
from typing import Union

ExprLike = Union["Expr", float, int]


@dataclass(frozen=True)
class Expr:
    """Base class for all expressions."""

    # Operators build raw (unsimplified) nodes; see symgraph.simplify.

    def __add__(self, other: ExprLike) -> "Add":
        return Add((self, to_expr(other)))

    def __radd__(self, other: ExprLike) -> "Add":
        return Add((to_expr(other), self))

    def __sub__(self, other: ExprLike) -> "Add":
        return Add((self, neg(to_expr(other))))

    def __rsub__(self, other: ExprLike) -> "Add":
        return Add((to_expr(other), neg(self)))

    def __mul__(self, other: ExprLike) -> "Mul":
        return Mul((self, to_expr(other)))

    def __rmul__(self, other: ExprLike) -> "Mul":
        return Mul((to_expr(other), self))

    def __truediv__(self, other: ExprLike) -> "Mul":
        return Mul((self, inv(to_expr(other))))

    def __rtruediv__(self, other: ExprLike) -> "Mul":
        return Mul((to_expr(other), inv(self)))

    def __pow__(self, other: ExprLike) -> "Pow":
        return Pow(self, to_expr(other))

    def __rpow__(self, other: ExprLike) -> "Pow":
        return Pow(to_expr(other), self)

    def __neg__(self) -> "Mul":
        return neg(self)


@dataclass(frozen=True)
class Constant(Expr):
    """Numeric constant. Always stored as a float."""

    value: float

    def __post_init__(self):
        object.__setattr__(self, "value", float(self.value))

    def __str__(self):
        v = self.value
        if v.is_integer() and abs(v) < 1e15:
            return str(int(v))
        return repr(v)


@dataclass(frozen=True)
class Var(Expr):
    """Named variable, resolved at evaluation or solve time."""

    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Add(Expr):
    """Multi-input sum."""

    terms: tuple[Expr, ...]

    def __str__(self):
        return "(" + " + ".join(str(t) for t in self.terms) + ")"


@dataclass(frozen=True)
class Mul(Expr):
    """Multi-input product."""

    factors: tuple[Expr, ...]

    def __str__(self):
        return "(" + " * ".join(str(f) for f in self.factors) + ")"


@dataclass(frozen=True)
class Pow(Expr):
    """Exponentiation: base ^ exponent."""

    base: Expr
    exponent: Expr

    def __str__(self):
        return f"({self.base} ^ {self.exponent})"


@dataclass(frozen=True)
class Call(Expr):
    """
    Function application: name(args...).

    ``recursive`` mirrors the ``(recursive)`` marker of the called function's
    definition. It tells the evaluator to apply its depth guard; the
    simplifier treats every call as opaque regardless.
    """

    name: str
    args: tuple[Expr, ...] = ()
    recursive: bool = field(default=False, compare=True)

    def __str__(self):
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


# =============================================================================
# Conversion and convenience constructors
# =============================================================================


def to_expr(value: ExprLike) -> Expr:
    """Convert a number or expression to an Expr."""
    if isinstance(value, Expr):
        return value
    if isinstance(value, bool):
        raise TypeError("booleans are not valid expressions")
    if isinstance(value, (int, float)):
        return Constant(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to Expr")


def neg(operand: Expr) -> Mul:
    """-operand"""
    return Mul((Constant(-1.0), operand))


def inv(operand: Expr) -> Pow:
    """1 / operand"""
    return Pow(operand, Constant(-1.0))


class ExprBuilder:
    """Helper class for building expressions with a fluent API."""

    @staticmethod
    def num(value: Union[float, int]) -> Constant:
        """Create a constant."""
        return Constant(value)

    @staticmethod
    def var(name: str) -> Var:
        """Create a variable reference."""
        return Var(name)

    @staticmethod
    def add(*terms: ExprLike) -> Add:
        """terms[0] + terms[1] + ..."""
        return Add(tuple(to_expr(t) for t in terms))

    @staticmethod
    def mul(*factors: ExprLike) -> Mul:
        """factors[0] * factors[1] * ..."""
        return Mul(tuple(to_expr(f) for f in factors))

    @staticmethod
    def pow(base: ExprLike, exponent: ExprLike) -> Pow:
        """base ^ exponent"""
        return Pow(to_expr(base), to_expr(exponent))

    @staticmethod
    def neg(operand: ExprLike) -> Mul:
        """-operand"""
        return neg(to_expr(operand))

    @staticmethod
    def inv(operand: ExprLike) -> Pow:
        """1 / operand"""
        return inv(to_expr(operand))

    @staticmethod
    def sub(left: ExprLike, right: ExprLike) -> Add:
        """left - right"""
        return Add((to_expr(left), neg(to_expr(right))))

    @staticmethod
    def div(left: ExprLike, right: ExprLike) -> Mul:
        """left / right"""
        return Mul((to_expr(left), inv(to_expr(right))))

    @staticmethod
    def call(name: str, *args: ExprLike, recursive: bool = False) -> Call:
        """Create a function call."""
        return Call(name, tuple(to_expr(a) for a in args), recursive)


# Make ExprBuilder available on Expr for convenience
# This allows: Expr.var("x") instead of ExprBuilder.var("x")
for _name in dir(ExprBuilder):
    if not _name.startswith("_"):
        setattr(Expr, _name, getattr(ExprBuilder, _name))
del _name


# =============================================================================
# Tree queries
# =============================================================================


def children(expr: Expr) -> tuple[Expr, ...]:
    """Direct sub-expressions of a node, in stored order."""
    if isinstance(expr, Add):
        return expr.terms
    if isinstance(expr, Mul):
        return expr.factors
    if isinstance(expr, Pow):
        return (expr.base, expr.exponent)
    if isinstance(expr, Call):
        return expr.args
    return ()


def map_children(expr: Expr, fn: Callable[[Expr], Expr]) -> Expr:
    """Rebuild ``expr`` with ``fn`` applied to each direct child."""
    if isinstance(expr, Add):
        return Add(tuple(fn(t) for t in expr.terms))
    if isinstance(expr, Mul):
        return Mul(tuple(fn(f) for f in expr.factors))
    if isinstance(expr, Pow):
        return Pow(fn(expr.base), fn(expr.exponent))
    if isinstance(expr, Call):
        return Call(expr.name, tuple(fn(a) for a in expr.args), expr.recursive)
    return expr


def walk(expr: Expr) -> Iterator[Expr]:
    """Iterate over every node of the tree (pre-order)."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children(node)))


def free_variables(expr: Expr) -> frozenset[str]:
    """Names of all variables referenced in the tree (not inside function bodies)."""
    return frozenset(node.name for node in walk(expr) if isinstance(node, Var))


def contains_var(expr: Expr, name: str) -> bool:
    """True if the variable ``name`` appears anywhere in the tree."""
    return any(isinstance(node, Var) and node.name == name for node in walk(expr))


def called_functions(expr: Expr) -> frozenset[str]:
    """Names of all functions called in the tree."""
    return frozenset(node.name for node in walk(expr) if isinstance(node, Call))


def node_count(expr: Expr) -> int:
    """Number of nodes in the tree."""
    return sum(1 for _ in walk(expr))


def substitute(expr: Expr, mapping: Mapping[str, Expr]) -> Expr:
    """Replace variables by expressions. Substituted trees are not revisited."""
    if not mapping:
        return expr
    if isinstance(expr, Var):
        return mapping.get(expr.name, expr)
    return map_children(expr, lambda c: substitute(c, mapping))


def is_constant(expr: Expr, value: float | None = None) -> bool:
    """True if ``expr`` is a Constant (optionally equal to ``value``)."""
    if not isinstance(expr, Constant):
        return False
    return value is None or expr.value == value


def is_integer_constant(expr: Expr) -> bool:
    return isinstance(expr, Constant) and expr.value.is_integer()


def sort_key(expr: Expr) -> tuple:
    """
    Total, deterministic ordering key used for canonical child order.

    Constants sort first, then expressions by node count, then by their
    rendered form. The dataclass repr breaks the remaining ties (it includes
    the ``recursive`` flag of calls, which the rendering omits).
    """
    rank = 0 if isinstance(expr, Constant) else 1
    return (rank, node_count(expr), str(expr), repr(expr))
