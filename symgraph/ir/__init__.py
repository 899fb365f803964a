"""
Intermediate Representation (IR) for symgraph programs.

This module provides the core data structures the DSL parser produces and
the simplifier, evaluator and solver consume.
"""

from symgraph.ir.expr import (
    Expr,
    ExprBuilder,
    ExprLike,
    Constant,
    Var,
    Add,
    Mul,
    Pow,
    Call,
    to_expr,
    neg,
    inv,
    children,
    map_children,
    walk,
    free_variables,
    contains_var,
    called_functions,
    node_count,
    substitute,
    sort_key,
)
from symgraph.ir.statement import (
    Statement,
    Assignment,
    FunctionDef,
    BareExpr,
    FunctionDefinition,
)
from symgraph.ir.validation import (
    ValidationCategory,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
    check_recursion,
    validate_program,
)

__all__ = [
    # Expressions
    "Expr",
    "ExprBuilder",
    "ExprLike",
    "Constant",
    "Var",
    "Add",
    "Mul",
    "Pow",
    "Call",
    "to_expr",
    "neg",
    "inv",
    # Tree queries
    "children",
    "map_children",
    "walk",
    "free_variables",
    "contains_var",
    "called_functions",
    "node_count",
    "substitute",
    "sort_key",
    # Statements
    "Statement",
    "Assignment",
    "FunctionDef",
    "BareExpr",
    "FunctionDefinition",
    # Validation
    "ValidationCategory",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSeverity",
    "check_recursion",
    "validate_program",
]
