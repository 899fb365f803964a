"""
Backends converting symgraph expressions to other frameworks.

- SymPy: symbolic export, LaTeX rendering and cross-checking
"""

from symgraph.backends.sympy_backend import latex, to_sympy

__all__ = ["to_sympy", "latex"]
