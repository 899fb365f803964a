"""
Statement representation in the IR.

A DSL program is a sequence of statements, each producing one expression:

    y = 3 * x + 1                     -> Assignment
    fn sq(t) = t * t                  -> FunctionDef
    fn f(n) (recursive) = ...         -> FunctionDef with recursive=True
    sq(4) + 1                         -> BareExpr

Statements are executed in order against a Context: assignments bind a
variable, function definitions register a function, bare expressions are
evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass

from symgraph.ir.expr import Expr


@dataclass(frozen=True)
class FunctionDefinition:
    """
    A named function: ``fn name(params) [(recursive)] = body``.

    Parameter names must be unique. Variables in the body that are not
    parameters resolve against the Context at evaluation time.
    """

    name: str
    params: tuple[str, ...]
    body: Expr
    recursive: bool = False

    def __post_init__(self):
        object.__setattr__(self, "params", tuple(self.params))
        seen = set()
        for p in self.params:
            if p in seen:
                raise ValueError(f"Duplicate parameter '{p}' in function '{self.name}'")
            seen.add(p)

    @property
    def arity(self) -> int:
        return len(self.params)

    def __str__(self):
        marker = " (recursive)" if self.recursive else ""
        return f"fn {self.name}({', '.join(self.params)}){marker} = {self.body}"


@dataclass(frozen=True)
class Statement:
    """Base class for all statements."""

    pass


@dataclass(frozen=True)
class Assignment(Statement):
    """
    Assignment statement: variable = expr

    The expression is bound symbolically; it is evaluated lazily whenever the
    variable is read.
    """

    variable: str
    expr: Expr
    line: int = 0

    def __str__(self):
        return f"{self.variable} = {self.expr}"


@dataclass(frozen=True)
class FunctionDef(Statement):
    """Function definition statement."""

    definition: FunctionDefinition
    line: int = 0

    def __str__(self):
        return str(self.definition)


@dataclass(frozen=True)
class BareExpr(Statement):
    """An expression evaluated directly."""

    expr: Expr
    line: int = 0

    def __str__(self):
        return str(self.expr)
