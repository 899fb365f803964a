"""
Evaluation and solve context.

A Context owns the bindings of a program: variable name -> number or
expression, and function name -> FunctionDefinition. Everything that turns
expressions into numbers goes through it.

Example:
    >>> ctx = Context()
    >>> ctx.load('''
    ... fn sq(t) = t * t
    ... y = sq(x) + 1
    ... ''')
    []
    >>> ctx.set_var("x", 3)
    >>> ctx.evaluate(Var("y"))
    10.0
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Optional, Union

import numpy as np
from beartype import beartype

from symgraph.builtins import BUILTINS, CONSTANTS
from symgraph.config import EngineConfig
from symgraph.dsl import parse
from symgraph.errors import ArityMismatch, ProgramError, RecursionLimitExceeded, UnboundVariable
from symgraph.evaluate import Binding, Evaluator
from symgraph.ir.expr import Call, Constant, Expr, Var, map_children, substitute, walk
from symgraph.ir.statement import (
    Assignment,
    BareExpr,
    FunctionDef,
    FunctionDefinition,
    Statement,
)
from symgraph.ir.validation import ValidationResult, check_recursion, validate_program
from symgraph.sampling import PointCloud, sample
from symgraph.simplify import simplify
from symgraph.solve import solve_for

logger = logging.getLogger(__name__)

Domain = Union[Sequence[Union[int, float]], np.ndarray]


class Context:
    """
    Variable and function bindings plus the operations that use them.

    Args:
        config: Engine limits; defaults to ``EngineConfig()``
        builtins: Bind the constants ``e`` and ``pi``

    A Context is not safe to mutate from several threads. ``sample`` gives
    each worker its own ``copy()``.
    """

    def __init__(self, config: Optional[EngineConfig] = None, builtins: bool = True):
        self._config = config if config is not None else EngineConfig()
        self._variables: dict[str, Binding] = {}
        self._functions: dict[str, FunctionDefinition] = {}
        if builtins:
            self._variables.update(CONSTANTS)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def variables(self) -> Mapping[str, Binding]:
        """Read-only view of the variable bindings."""
        return MappingProxyType(self._variables)

    @property
    def functions(self) -> Mapping[str, FunctionDefinition]:
        """Read-only view of the function definitions."""
        return MappingProxyType(self._functions)

    def __repr__(self) -> str:
        return f"Context(variables={sorted(self._variables)}, functions={sorted(self._functions)})"

    # =========================================================================
    # Bindings
    # =========================================================================

    @beartype
    def set_var(self, name: str, value: Union[int, float, Expr]) -> None:
        """Bind ``name`` to a number or an expression, replacing any previous binding."""
        self._variables[name] = value if isinstance(value, Expr) else float(value)

    def get_var(self, name: str) -> Binding:
        try:
            return self._variables[name]
        except KeyError:
            raise UnboundVariable(name) from None

    @beartype
    def define_function(self, definition: FunctionDefinition) -> None:
        """Register ``definition``, replacing any function of the same name."""
        if definition.name in self._functions:
            logger.debug("redefining function %s", definition.name)
        self._functions[definition.name] = definition

    def copy(self) -> "Context":
        """Independent Context with the same bindings. Expression trees are shared."""
        clone = Context(self._config, builtins=False)
        clone._variables = dict(self._variables)
        clone._functions = dict(self._functions)
        return clone

    # =========================================================================
    # Evaluation
    # =========================================================================

    @beartype
    def evaluate(self, expr: Expr) -> float:
        """
        Evaluate ``expr`` to a number.

        Raises:
            UnboundVariable, UnknownFunction, ArityMismatch,
            RecursionLimitExceeded, DivisionByZero, DomainError
        """
        evaluator = Evaluator(self._variables, self._functions, self._config.recursion_limit)
        return evaluator.evaluate(expr)

    def expand(self, expr: Expr, keep: Collection[str] = ()) -> Expr:
        """
        Substitute expression-bound variables and inline non-recursive functions.

        Variables bound to numbers, unbound variables and the names in
        ``keep`` stay symbolic. Calls to recursive functions, built-ins and
        unknown functions stay opaque; their arguments are expanded.

        Raises:
            RecursionLimitExceeded: a variable or an unmarked function
                depends on itself
            ArityMismatch: an inlined call has the wrong number of arguments
        """
        return self._expand(expr, frozenset(keep), frozenset(), frozenset())

    def _expand(self, expr: Expr, keep: frozenset, variables: frozenset, functions: frozenset) -> Expr:
        if isinstance(expr, Var):
            bound = self._variables.get(expr.name)
            if expr.name in keep or not isinstance(bound, Expr):
                return expr
            if expr.name in variables:
                raise RecursionLimitExceeded(
                    expr.name, message=f"Variable '{expr.name}' is defined in terms of itself"
                )
            return self._expand(bound, keep, variables | {expr.name}, functions)

        if isinstance(expr, Call):
            args = tuple(self._expand(a, keep, variables, functions) for a in expr.args)
            definition = self._functions.get(expr.name)
            if definition is None or definition.recursive or expr.recursive:
                return Call(expr.name, args, expr.recursive)
            if definition.arity != len(args):
                raise ArityMismatch(expr.name, definition.arity, len(args))
            if expr.name in functions:
                raise RecursionLimitExceeded(
                    expr.name,
                    message=f"Function '{expr.name}' calls itself but is not marked recursive",
                )
            # Parameters are substituted first; the names left over are globals
            body = substitute(definition.body, dict(zip(definition.params, args)))
            return self._expand(body, keep, variables, functions | {expr.name})

        return map_children(expr, lambda c: self._expand(c, keep, variables, functions))

    @beartype
    def simplify_for_var(
        self, name: str, target: str
    ) -> tuple[Expr, dict[str, FunctionDefinition]]:
        """
        Expand and simplify the expression bound to ``name`` with respect to ``target``.

        Returns:
            The simplified expression, and the recursive functions it (or any
            of them, transitively) still calls
        """
        bound = self.get_var(name)
        if not isinstance(bound, Expr):
            return Constant(bound), {}

        expr = simplify(
            self.expand(bound, keep=(target,)), target, self._config.max_simplify_passes
        )
        return expr, self._needed_functions(expr)

    def _needed_functions(self, expr: Expr) -> dict[str, FunctionDefinition]:
        needed: dict[str, FunctionDefinition] = {}
        pending = [expr]
        while pending:
            for node in walk(pending.pop()):
                if not isinstance(node, Call) or node.name in needed:
                    continue
                definition = self._functions.get(node.name)
                if definition is not None:
                    needed[node.name] = definition
                    pending.append(definition.body)
        return needed

    @beartype
    def solve_for(self, expr: Expr, variable: str) -> Expr:
        """
        Solve ``expr == 0`` for ``variable``.

        Expression-bound variables other than ``variable`` are substituted
        and non-recursive functions inlined before isolating.

        Raises:
            Unsolvable, NonLinear, MultipleSolutions
        """
        expanded = self.expand(expr, keep=(variable,))
        logger.debug("solving %s == 0 for %s", expanded, variable)
        return solve_for(
            expanded,
            variable,
            user_functions=frozenset(self._functions),
            max_passes=self._config.max_simplify_passes,
        )

    # =========================================================================
    # Sampling
    # =========================================================================

    @beartype
    def sample(
        self,
        expr: Expr,
        variable: str,
        domain: Domain,
        workers: Optional[int] = None,
    ) -> PointCloud:
        """Evaluate ``expr`` at each value of ``variable`` in ``domain``."""
        if workers is None:
            workers = self._config.workers
        return sample(self, expr, variable, domain, workers)

    @beartype
    def sample_variable(
        self,
        name: str,
        variable: str,
        domain: Domain,
        workers: Optional[int] = None,
    ) -> PointCloud:
        """Sample the simplified expansion of the variable ``name``."""
        expr, _ = self.simplify_for_var(name, variable)
        logger.debug("sampling %s = %s over %s", name, expr, variable)
        return self.sample(expr, variable, domain, workers)

    # =========================================================================
    # Programs
    # =========================================================================

    def check_for_illegal_recursion(self) -> ValidationResult:
        """Variables defined through themselves and unmarked self-calling functions."""
        return check_recursion(self._variables, self._functions)

    def validate(self) -> ValidationResult:
        """Recursion errors plus warnings for unbound names and arity mismatches."""
        arities = {name: b.arities for name, b in BUILTINS.items()}
        return validate_program(self._variables, self._functions, arities)

    def execute(self, statements: Iterable[Statement]) -> list[float]:
        """
        Apply parsed statements in order.

        Returns:
            The values of the bare expression statements, in order
        """
        results: list[float] = []
        for stmt in statements:
            if isinstance(stmt, Assignment):
                self.set_var(stmt.variable, stmt.expr)
            elif isinstance(stmt, FunctionDef):
                self.define_function(stmt.definition)
            elif isinstance(stmt, BareExpr):
                results.append(self.evaluate(stmt.expr))
            else:
                raise TypeError(f"Unknown statement type: {type(stmt).__name__}")
        return results

    @beartype
    def load(self, source: str) -> list[float]:
        """
        Parse and execute a program.

        The definitions are checked for illegal recursion, then the whole
        program runs against a copy that replaces this Context's bindings only
        once every statement has succeeded. A program that fails at any point
        leaves the Context unchanged.

        Raises:
            ParseError: the source is malformed
            ProgramError: a variable or unmarked function depends on itself
            EvaluationError: a bare expression cannot be evaluated
        """
        statements = parse(source)

        scratch = self.copy()
        scratch.execute(s for s in statements if not isinstance(s, BareExpr))
        result = scratch.check_for_illegal_recursion()
        if result.has_errors:
            raise ProgramError(result.errors)

        staged = self.copy()
        values = staged.execute(statements)
        self._variables = staged._variables
        self._functions = staged._functions
        logger.debug("loaded %d statement(s)", len(statements))
        return values
