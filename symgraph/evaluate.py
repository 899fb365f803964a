"""
Numeric evaluation of expression trees.

The evaluator is an explicit-stack machine rather than a recursive walk, so
the depth of a recursive DSL function is bounded only by the configured
recursion limit, never by the Python interpreter's call stack.

Scoping rules:

- A Var resolves first against the parameters of the function currently
  executing, then against the Context's global bindings. A function body
  never sees the parameters of its caller.
- A global binding holding an Expr is evaluated in the global scope each
  time it is read. A binding that (indirectly) reads itself is reported as
  RecursionLimitExceeded.
- Calls to functions marked recursive (on the Call or on the definition)
  increment a depth counter; passing ``recursion_limit`` raises
  RecursionLimitExceeded. A function *not* marked recursive that re-enters
  itself is reported immediately.

Floating-point faults are detected through ``numpy.errstate``: division by
zero raises DivisionByZero, invalid results and overflow raise DomainError.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import NamedTuple, Optional, Union

import numpy as np

from symgraph.builtins import BUILTINS, FP_ERRSTATE, WHERE
from symgraph.errors import (
    ArityMismatch,
    DivisionByZero,
    DomainError,
    RecursionLimitExceeded,
    UnboundVariable,
    UnknownFunction,
)
from symgraph.ir.expr import Add, Call, Constant, Expr, Mul, Pow, Var, children
from symgraph.ir.statement import FunctionDefinition

Binding = Union[float, Expr]

# Instruction opcodes
_EVAL = 0
_ADD = 1
_MUL = 2
_POW = 3
_CALL = 4
_WHERE = 5


class _Env(NamedTuple):
    """Evaluation environment carried with each pending instruction."""

    scope: Optional[dict]  # parameters of the executing function, None at top level
    depth: int  # nesting of recursive calls
    active: frozenset  # non-recursive functions on the current call chain
    resolving: frozenset  # global variables currently being expanded


_TOP = _Env(None, 0, frozenset(), frozenset())


class Evaluator:
    """
    Evaluates expressions against fixed variable and function bindings.

    The mappings are only read, so one Evaluator may be used from several
    threads as long as nobody mutates the mappings meanwhile.
    """

    def __init__(
        self,
        variables: Mapping[str, Binding],
        functions: Mapping[str, FunctionDefinition],
        recursion_limit: int,
    ):
        self.variables = variables
        self.functions = functions
        self.recursion_limit = recursion_limit

    def evaluate(self, expr: Expr) -> float:
        try:
            with np.errstate(**FP_ERRSTATE):
                return float(self._run(expr))
        except FloatingPointError as exc:
            if "divide" in str(exc):
                raise DivisionByZero(f"Division by zero ({exc})") from None
            raise DomainError(f"Numerically undefined operation ({exc})") from None

    # ------------------------------------------------------------------ machine

    def _run(self, expr: Expr) -> np.float64:
        work: list[tuple] = [(_EVAL, expr, _TOP)]
        values: list[np.float64] = []

        while work:
            instr = work.pop()
            op = instr[0]

            if op == _EVAL:
                self._schedule(instr[1], instr[2], work, values)

            elif op == _ADD:
                n = instr[1]
                operands = values[-n:]
                del values[-n:]
                total = operands[0]
                for v in operands[1:]:
                    total = total + v
                values.append(total)

            elif op == _MUL:
                n = instr[1]
                operands = values[-n:]
                del values[-n:]
                total = operands[0]
                for v in operands[1:]:
                    total = total * v
                values.append(total)

            elif op == _POW:
                exponent = values.pop()
                base = values.pop()
                values.append(np.power(base, exponent))

            elif op == _CALL:
                self._enter_call(instr[1], instr[2], work, values)

            elif op == _WHERE:
                _, if_true, if_false, env = instr
                condition = values.pop()
                work.append((_EVAL, if_true if condition != 0 else if_false, env))

        return values.pop()

    def _schedule(self, expr: Expr, env: _Env, work: list, values: list) -> None:
        """Push a value for leaves, or the instructions computing a node."""
        if isinstance(expr, Constant):
            values.append(np.float64(expr.value))

        elif isinstance(expr, Var):
            self._resolve(expr.name, env, work, values)

        elif isinstance(expr, (Add, Mul)) and not children(expr):
            # Empty sum is 0 and empty product is 1, as in the simplifier
            values.append(np.float64(0.0 if isinstance(expr, Add) else 1.0))

        elif isinstance(expr, Add):
            work.append((_ADD, len(expr.terms)))
            for term in reversed(expr.terms):
                work.append((_EVAL, term, env))

        elif isinstance(expr, Mul):
            work.append((_MUL, len(expr.factors)))
            for factor in reversed(expr.factors):
                work.append((_EVAL, factor, env))

        elif isinstance(expr, Pow):
            work.append((_POW,))
            work.append((_EVAL, expr.exponent, env))
            work.append((_EVAL, expr.base, env))

        elif isinstance(expr, Call):
            self._check_call(expr)
            if expr.name == WHERE and expr.name not in self.functions:
                condition, if_true, if_false = expr.args
                work.append((_WHERE, if_true, if_false, env))
                work.append((_EVAL, condition, env))
                return
            work.append((_CALL, expr, env))
            for arg in reversed(expr.args):
                work.append((_EVAL, arg, env))

        else:
            raise TypeError(f"Cannot evaluate {type(expr).__name__}")

    def _resolve(self, name: str, env: _Env, work: list, values: list) -> None:
        if env.scope is not None and name in env.scope:
            values.append(env.scope[name])
            return

        if name not in self.variables:
            raise UnboundVariable(name)
        bound = self.variables[name]
        if not isinstance(bound, Expr):
            values.append(np.float64(bound))
            return

        if name in env.resolving:
            raise RecursionLimitExceeded(
                name, message=f"Variable '{name}' is defined in terms of itself"
            )
        global_env = _Env(None, env.depth, env.active, env.resolving | {name})
        work.append((_EVAL, bound, global_env))

    def _check_call(self, call: Call) -> None:
        """Fail before evaluating arguments if the call cannot succeed."""
        definition = self.functions.get(call.name)
        if definition is not None:
            if definition.arity != len(call.args):
                raise ArityMismatch(call.name, definition.arity, len(call.args))
            return

        builtin = BUILTINS.get(call.name)
        if builtin is None:
            raise UnknownFunction(call.name)
        if not builtin.accepts(len(call.args)):
            raise ArityMismatch(call.name, builtin.arities[0], len(call.args))

    def _enter_call(self, call: Call, env: _Env, work: list, values: list) -> None:
        n = len(call.args)
        args = values[-n:] if n else []
        if n:
            del values[-n:]

        definition = self.functions.get(call.name)
        if definition is None:
            values.append(np.float64(BUILTINS[call.name].fn(*args)))
            return

        if call.recursive or definition.recursive:
            depth = env.depth + 1
            if depth > self.recursion_limit:
                raise RecursionLimitExceeded(call.name, self.recursion_limit)
            active = env.active
        else:
            if call.name in env.active:
                raise RecursionLimitExceeded(
                    call.name,
                    message=f"Function '{call.name}' calls itself but is not marked recursive",
                )
            depth = env.depth
            active = env.active | {call.name}

        scope = dict(zip(definition.params, args))
        work.append((_EVAL, definition.body, _Env(scope, depth, active, env.resolving)))
