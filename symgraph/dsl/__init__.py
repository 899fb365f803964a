"""
The symgraph DSL: text -> statements.

Example:
    >>> from symgraph.dsl import parse
    >>> stmts = parse('''
    ... fn sq(t) = t * t
    ... y = sq(x) - 1
    ... ''')
    >>> [type(s).__name__ for s in stmts]
    ['FunctionDef', 'Assignment']
"""

from symgraph.dsl.lexer import Token, TokenType, tokenize
from symgraph.dsl.parser import Parser, parse, parse_expr

__all__ = ["Token", "TokenType", "tokenize", "Parser", "parse", "parse_expr"]
