"""
Exception hierarchy for symgraph.

Three families of failures exist:

- ParseError: malformed DSL text, always reported with a line and column.
- EvaluationError: a numeric evaluation that cannot produce a value.
- SolveError: an equation that cannot be isolated for a variable.

All of them derive from SymgraphError so callers can catch everything the
engine raises in one place.
"""

from __future__ import annotations

from typing import Any, Optional


class SymgraphError(Exception):
    """Base class for all errors raised by symgraph."""


# =============================================================================
# Parsing
# =============================================================================


class ParseError(SymgraphError):
    """Malformed DSL source."""

    def __init__(self, reason: str, line: int, column: int):
        super().__init__(f"[ParseError] Line {line}, column {column}: {reason}")
        self.reason = reason
        self.line = line
        self.column = column


class ProgramError(SymgraphError):
    """A parsed program failed validation (e.g. illegal recursion)."""

    def __init__(self, issues: list[Any]):
        lines = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(f"Program is invalid:\n{lines}")
        self.issues = issues


# =============================================================================
# Evaluation
# =============================================================================


class EvaluationError(SymgraphError):
    """Base class for numeric evaluation failures."""


class UnboundVariable(EvaluationError):
    def __init__(self, name: str):
        super().__init__(f"Variable '{name}' has no binding")
        self.name = name


class UnknownFunction(EvaluationError):
    def __init__(self, name: str):
        super().__init__(f"Function '{name}' is not defined")
        self.name = name


class ArityMismatch(EvaluationError):
    def __init__(self, name: str, expected: int, got: int):
        super().__init__(f"Function '{name}' takes {expected} argument(s) but {got} were given")
        self.name = name
        self.expected = expected
        self.got = got


class RecursionLimitExceeded(EvaluationError):
    """Raised when a call chain passes the configured depth fuse."""

    def __init__(self, name: str, limit: Optional[int] = None, message: Optional[str] = None):
        if message is None:
            message = f"Recursion through '{name}' exceeded the depth limit of {limit}"
        super().__init__(message)
        self.name = name
        self.limit = limit


class DivisionByZero(EvaluationError):
    pass


class DomainError(EvaluationError):
    """Numerically undefined operation (e.g. sqrt(-1), overflow)."""


# =============================================================================
# Solving
# =============================================================================


class SolveError(SymgraphError):
    """Base class for equation-solving failures."""

    def __init__(self, variable: str, message: str):
        super().__init__(message)
        self.variable = variable


class Unsolvable(SolveError):
    def __init__(self, variable: str, reason: Optional[str] = None):
        if reason is None:
            message = f"Variable '{variable}' does not appear in the equation"
        else:
            message = f"No real value of '{variable}' solves the equation: {reason}"
        super().__init__(variable, message)
        self.reason = reason


class NonLinear(SolveError):
    def __init__(self, variable: str, reason: str):
        super().__init__(variable, f"Cannot isolate '{variable}': {reason}")
        self.reason = reason


class MultipleSolutions(SolveError):
    def __init__(self, variable: str, reason: str):
        super().__init__(variable, f"'{variable}' has no unique closed form: {reason}")
        self.reason = reason
