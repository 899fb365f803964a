"""
Static checks over the bindings of a Context.

- Variables defined in terms of themselves (directly or through others)
- Functions calling themselves without the ``(recursive)`` marker, even
  through misdirection (``f`` calls ``g`` and ``g`` calls ``f``)
- References to names that nothing binds yet
- Calls whose argument count disagrees with the definition

Only illegal recursion is an error. Unbound names are warnings because the
DSL allows deferred binding: they become evaluation errors only if still
unbound when evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Iterable, Mapping
from typing import Optional, Union

from symgraph.ir.expr import Call, Expr, Var, walk
from symgraph.ir.statement import FunctionDefinition

Binding = Union[float, Expr]


class ValidationSeverity(Enum):
    ERROR = "error"  # load() refuses the program
    WARNING = "warning"  # may fail at evaluation time


class ValidationCategory(Enum):
    ILLEGAL_RECURSION = "illegal_recursion"
    UNDEFINED_VARIABLE = "undefined_variable"
    UNKNOWN_FUNCTION = "unknown_function"
    ARITY_MISMATCH = "arity_mismatch"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One finding about a binding.

    ``owner`` names the variable or function whose expression the issue was
    found in, e.g. ``"variable y"``. ``name`` is the offending name itself.
    """

    severity: ValidationSeverity
    category: ValidationCategory
    message: str
    owner: str
    name: str

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.category.value}: {self.message} ({self.owner})"


@dataclass
class ValidationResult:
    """Issues collected by ``check_recursion`` or ``validate_program``."""

    issues: list[ValidationIssue] = field(default_factory=list)

    def _of(self, severity: ValidationSeverity) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is severity]

    @property
    def errors(self) -> list[ValidationIssue]:
        return self._of(ValidationSeverity.ERROR)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return self._of(ValidationSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_valid(self) -> bool:
        """Warnings do not make a program invalid."""
        return not self.has_errors

    def report(
        self,
        severity: ValidationSeverity,
        category: ValidationCategory,
        message: str,
        owner: str,
        name: str,
    ) -> None:
        self.issues.append(ValidationIssue(severity, category, message, owner, name))

    def __str__(self) -> str:
        if not self.issues:
            return "no issues"
        header = f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        return "\n".join([header] + [f"  - {issue}" for issue in self.issues])


# =============================================================================
# Recursion checks
# =============================================================================


def _reaches(start: str, target: str, edges: Mapping[str, frozenset[str]]) -> bool:
    """True if ``target`` is reachable from ``start`` following ``edges``."""
    seen: set[str] = set()
    stack = list(edges.get(start, ()))
    while stack:
        name = stack.pop()
        if name == target:
            return True
        if name in seen:
            continue
        seen.add(name)
        stack.extend(edges.get(name, ()))
    return False


def check_recursion(
    variables: Mapping[str, Binding],
    functions: Mapping[str, FunctionDefinition],
    result: Optional[ValidationResult] = None,
) -> ValidationResult:
    """Report variables and unmarked functions that depend on themselves."""
    if result is None:
        result = ValidationResult()

    var_edges = {
        name: frozenset(n.name for n in walk(value) if isinstance(n, Var) and n.name in variables)
        for name, value in variables.items()
        if isinstance(value, Expr)
    }
    for name in sorted(var_edges):
        if _reaches(name, name, var_edges):
            result.report(
                ValidationSeverity.ERROR,
                ValidationCategory.ILLEGAL_RECURSION,
                f"variable {name} is defined in terms of itself; variables cannot be recursive",
                owner=f"variable {name}",
                name=name,
            )

    fn_edges = {
        name: frozenset(n.name for n in walk(f.body) if isinstance(n, Call) and n.name in functions)
        for name, f in functions.items()
    }
    for name in sorted(fn_edges):
        if functions[name].recursive:
            continue
        if _reaches(name, name, fn_edges):
            result.report(
                ValidationSeverity.ERROR,
                ValidationCategory.ILLEGAL_RECURSION,
                f"function {name} calls itself but is not marked recursive "
                f"(try adding `(recursive)` after the parameter list)",
                owner=f"function {name}",
                name=name,
            )

    return result


# =============================================================================
# Name checks
# =============================================================================


def _check_expr_names(
    expr: Expr,
    owner: str,
    bound: Iterable[str],
    functions: Mapping[str, FunctionDefinition],
    builtin_arities: Mapping[str, tuple[int, ...]],
    result: ValidationResult,
) -> None:
    bound = set(bound)

    def warn(category: ValidationCategory, message: str, name: str) -> None:
        result.report(ValidationSeverity.WARNING, category, message, owner, name)

    for node in walk(expr):
        if isinstance(node, Var) and node.name not in bound:
            warn(
                ValidationCategory.UNDEFINED_VARIABLE,
                f"Reference to unbound variable '{node.name}'",
                node.name,
            )
        elif isinstance(node, Call):
            if node.name in functions:
                expected = (functions[node.name].arity,)
            elif node.name in builtin_arities:
                expected = builtin_arities[node.name]
            else:
                warn(
                    ValidationCategory.UNKNOWN_FUNCTION,
                    f"Call to undefined function '{node.name}'",
                    node.name,
                )
                continue
            if len(node.args) not in expected:
                warn(
                    ValidationCategory.ARITY_MISMATCH,
                    f"'{node.name}' called with {len(node.args)} argument(s), "
                    f"expects {' or '.join(str(n) for n in expected)}",
                    node.name,
                )


def validate_program(
    variables: Mapping[str, Binding],
    functions: Mapping[str, FunctionDefinition],
    builtin_arities: Optional[Mapping[str, tuple[int, ...]]] = None,
) -> ValidationResult:
    """
    Validate the bindings of a program.

    Args:
        variables: Variable name -> numeric value or bound expression
        functions: Function name -> definition
        builtin_arities: Built-in function name -> accepted argument counts

    Returns:
        ValidationResult with recursion errors and name warnings
    """
    builtin_arities = builtin_arities or {}
    result = check_recursion(variables, functions)

    for name, value in variables.items():
        if isinstance(value, Expr):
            _check_expr_names(
                value, f"variable {name}", variables, functions, builtin_arities, result
            )

    for name, f in functions.items():
        _check_expr_names(
            f.body,
            f"function {name}",
            set(variables) | set(f.params),
            functions,
            builtin_arities,
            result,
        )

    return result
