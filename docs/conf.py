# Sphinx configuration for the symgraph documentation.
#
# Build with:  sphinx-build -b html docs docs/_build/html
# Doctests:    sphinx-build -b doctest docs docs/_build/doctest

import os
import sys

sys.path.insert(0, os.path.abspath(".."))

import symgraph  # noqa: E402

project = "symgraph"
author = "symgraph developers"
copyright = "2026, symgraph developers"
release = symgraph.__version__
version = ".".join(release.split(".")[:2])

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
    "sphinx.ext.doctest",
    "sphinx.ext.intersphinx",
    "sphinx.ext.viewcode",
]

# Google style "Args:/Returns:/Raises:" sections only
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_use_rtype = False

autodoc_member_order = "bysource"
autodoc_typehints = "description"
autosummary_generate = True

doctest_global_setup = """
from symgraph import Context, parse, parse_expr, simplify, solve_for
from symgraph.ir import Constant, Var
"""

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "sympy": ("https://docs.sympy.org/latest/", None),
}

exclude_patterns = ["_build"]
html_theme = "sphinx_rtd_theme"
