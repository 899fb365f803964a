"""
Example: Graphing a small program.

Loads a program with a helper function and a recursive function, samples
the bound variables over x and plots the point clouds with matplotlib.
Points where evaluation fails (here ln of a negative number) show up as
gaps in the curve.
"""

import matplotlib.pyplot as plt

from symgraph import Context, linspace

PROGRAM = """
# helpers
fn sq(t) = t * t
fn fact(n) (recursive) = where(n, n * fact(n - 1), 1)

let a = 0.5
parabola = a * sq(x) - 2
wave = sin(x) * exp(-x / 4)
log_curve = ln(x)
steps = fact(floor(abs(x)))
"""


def main():
    ctx = Context()
    ctx.load(PROGRAM)

    domain = linspace(-6, 6, 601)
    fig, axes = plt.subplots(2, 2, figsize=(10, 8))

    for ax, name in zip(axes.flat, ["parabola", "wave", "log_curve", "steps"]):
        expr, needed = ctx.simplify_for_var(name, "x")
        cloud = ctx.sample(expr, "x", domain)

        # nan rows break the line at failed points
        ax.plot(cloud.xs, cloud.ys)
        ax.set_title(f"{name} = {expr}", fontsize=8)
        ax.grid(True)
        print(f"{name}: {len(cloud.points())}/{len(cloud)} points valid, recursive: {sorted(needed)}")

    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
