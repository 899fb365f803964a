"""
Example: Solving and exporting expressions.

Solves equations of the form expr == 0 for x and prints the results as
plain text and LaTeX through the SymPy backend.
"""

from symgraph import Context, SolveError, parse_expr
from symgraph.backends import latex


def main():
    ctx = Context()
    ctx.load("""
    fn line(t) = m * t + c
    """)

    equations = [
        "2 * x + 4",
        "line(x) - 3",
        "exp(2 * x) - 5",
        "x ^ 3 + 8",
        "x ^ 2 - 4",
        "x * sin(x)",
    ]

    print("=" * 60)
    print("Solving expr == 0 for x")
    print("=" * 60)
    for text in equations:
        try:
            solution = ctx.solve_for(parse_expr(text), "x")
        except SolveError as exc:
            print(f"  {text:<16} -> {exc}")
            continue
        print(f"  {text:<16} -> x = {solution}")
        print(f"  {'':<16}    LaTeX: {latex(solution)}")

    print()
    ctx.set_var("m", 2)
    ctx.set_var("c", 1)
    solution = ctx.solve_for(parse_expr("line(x) - 3"), "x")
    print(f"With m = 2, c = 1: x = {ctx.evaluate(solution)}")


if __name__ == "__main__":
    main()
