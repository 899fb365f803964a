"""
Sampling an expression over a domain of one variable.

The domain is split into contiguous chunks that run on a thread pool. Each
worker evaluates on its own copy of the Context and writes results by
domain index, so the output order never depends on the worker count.
"""

from __future__ import annotations

import logging
import os
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from collections.abc import Iterator
from typing import TYPE_CHECKING, Optional, Union

import numpy as np
from beartype import beartype

from symgraph.errors import EvaluationError
from symgraph.ir.expr import Expr

if TYPE_CHECKING:
    from symgraph.context import Context

logger = logging.getLogger(__name__)


@dataclass
class PointCloud:
    """
    Sampled (x, y) points in domain order.

    Attributes:
        xs: Sample positions
        ys: Values, nan where evaluation failed
        valid: True where evaluation succeeded
        errors: Domain index -> error raised at that point
    """

    xs: np.ndarray
    ys: np.ndarray
    valid: np.ndarray
    errors: dict[int, EvaluationError] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.xs)

    def __iter__(self) -> Iterator[tuple[float, float]]:
        for x, y in zip(self.xs, self.ys):
            yield float(x), float(y)

    def points(self) -> list[tuple[float, float]]:
        """Only the points that evaluated successfully."""
        return [(float(x), float(y)) for x, y in zip(self.xs[self.valid], self.ys[self.valid])]

    def as_array(self, dtype=np.float64) -> np.ndarray:
        """All points as an (n, 2) array; invalid rows hold nan."""
        return np.column_stack((self.xs, self.ys)).astype(dtype, copy=False)


@beartype
def linspace(start: Union[int, float], stop: Union[int, float], steps: int) -> np.ndarray:
    """``steps`` evenly spaced values from ``start`` to ``stop`` inclusive."""
    if steps < 1:
        raise ValueError(f"steps must be positive, got {steps}")
    return np.linspace(float(start), float(stop), steps)


def _default_workers() -> int:
    # Same default as ThreadPoolExecutor
    return min(32, (os.cpu_count() or 1) + 4)


def _run_chunk(context: "Context", expr: Expr, variable: str, xs: np.ndarray, indices: np.ndarray):
    local = context.copy()
    results = []
    for i in indices:
        local.set_var(variable, float(xs[i]))
        try:
            results.append((int(i), local.evaluate(expr), None))
        except EvaluationError as exc:
            results.append((int(i), np.nan, exc))
    return results


def sample(
    context: "Context",
    expr: Expr,
    variable: str,
    domain,
    workers: Optional[int] = None,
) -> PointCloud:
    """
    Evaluate ``expr`` at each value of ``variable`` in ``domain``.

    Args:
        context: Bindings to evaluate against; it is only read
        expr: Expression to sample
        variable: Name bound to each domain value in turn
        domain: One-dimensional sequence of sample positions
        workers: Number of threads; None uses the executor default

    Returns:
        PointCloud with one entry per domain value. Points whose evaluation
        failed have ``valid`` False, ``y`` nan and an entry in ``errors``.
    """
    xs = np.asarray(domain, dtype=np.float64)
    if xs.ndim != 1:
        raise ValueError(f"domain must be one-dimensional, got shape {xs.shape}")
    if workers is not None and workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")

    n = len(xs)
    ys = np.full(n, np.nan)
    valid = np.zeros(n, dtype=bool)
    errors: dict[int, EvaluationError] = {}
    if n == 0:
        return PointCloud(xs, ys, valid, errors)

    workers = min(workers or _default_workers(), n)
    chunks = np.array_split(np.arange(n), workers)
    logger.debug("sampling %s over %d point(s) with %d worker(s)", expr, n, workers)

    if workers == 1:
        chunk_results = [_run_chunk(context, expr, variable, xs, chunks[0])]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            chunk_results = list(
                pool.map(lambda idx: _run_chunk(context, expr, variable, xs, idx), chunks)
            )

    for results in chunk_results:
        for i, y, exc in results:
            if exc is None:
                ys[i] = y
                valid[i] = True
            else:
                errors[i] = exc

    if errors:
        first = min(errors)
        warnings.warn(
            f"{len(errors)} of {n} point(s) could not be evaluated "
            f"(first at {variable}={xs[first]}: {errors[first]})",
            RuntimeWarning,
            stacklevel=2,
        )
    return PointCloud(xs, ys, valid, errors)
