"""
symgraph - Symbolic math engine for a graphing calculator

Parses a small expression language, simplifies and solves expressions for a
chosen variable, and samples them over a domain into point clouds.
"""

__version__ = "0.1.0"

from . import ir
from . import dsl
from .config import EngineConfig
from .context import Context
from .dsl import parse, parse_expr
from .errors import (
    ArityMismatch,
    DivisionByZero,
    DomainError,
    EvaluationError,
    MultipleSolutions,
    NonLinear,
    ParseError,
    ProgramError,
    RecursionLimitExceeded,
    SolveError,
    SymgraphError,
    UnboundVariable,
    UnknownFunction,
    Unsolvable,
)
from .sampling import PointCloud, linspace, sample
from .simplify import simplify
from .solve import solve_for

__all__ = [
    "ir",
    "dsl",
    "__version__",
    # Engine
    "Context",
    "EngineConfig",
    "parse",
    "parse_expr",
    "simplify",
    "solve_for",
    "sample",
    "linspace",
    "PointCloud",
    # Errors
    "SymgraphError",
    "ParseError",
    "ProgramError",
    "EvaluationError",
    "UnboundVariable",
    "UnknownFunction",
    "ArityMismatch",
    "RecursionLimitExceeded",
    "DivisionByZero",
    "DomainError",
    "SolveError",
    "Unsolvable",
    "NonLinear",
    "MultipleSolutions",
]
