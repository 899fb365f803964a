"""
Engine configuration.

Settings are plain immutable values passed to a Context. Environment
variables can override the defaults through EngineConfig.from_env():

    SYMGRAPH_RECURSION_LIMIT      depth fuse for recursive functions
    SYMGRAPH_WORKERS              worker threads used by sampling
    SYMGRAPH_MAX_SIMPLIFY_PASSES  bound on simplifier rewrite passes
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from collections.abc import Mapping
from typing import Optional

from beartype import beartype

DEFAULT_RECURSION_LIMIT = 1000
DEFAULT_MAX_SIMPLIFY_PASSES = 64

_ENV_PREFIX = "SYMGRAPH_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for evaluation, simplification and sampling.

    Attributes:
        recursion_limit: Maximum depth of a recursive call chain before
            RecursionLimitExceeded is raised.
        workers: Number of sampling threads. None lets the executor pick.
        max_simplify_passes: Upper bound on bottom-up rewrite passes.
    """

    recursion_limit: int = DEFAULT_RECURSION_LIMIT
    workers: Optional[int] = None
    max_simplify_passes: int = DEFAULT_MAX_SIMPLIFY_PASSES

    def __post_init__(self):
        if self.recursion_limit < 1:
            raise ValueError(f"recursion_limit must be positive, got {self.recursion_limit}")
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.max_simplify_passes < 1:
            raise ValueError(
                f"max_simplify_passes must be positive, got {self.max_simplify_passes}"
            )

    @classmethod
    @beartype
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from SYMGRAPH_* environment variables."""
        env = os.environ if environ is None else environ
        overrides = {}
        for field_name in ("recursion_limit", "workers", "max_simplify_passes"):
            raw = env.get(_ENV_PREFIX + field_name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[field_name] = int(raw)
            except ValueError:
                raise ValueError(
                    f"{_ENV_PREFIX}{field_name.upper()} must be an integer, got {raw!r}"
                ) from None
        return cls(**overrides)

    def with_overrides(self, **changes) -> "EngineConfig":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)
