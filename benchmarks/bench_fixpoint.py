"""
fixpy Benchmark Suite

Benchmarks:
  1. Fixed-point convergence on standard contractions
  2. Re-convergence cost after a converged run
  3. Pattern-dispatched recurrences (call depth vs. time)
"""

import os
import sys

# Ensure fixpy is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fixpy import FixpointEngine, WILDCARD, ceil_of, parameter_variable
from fixpy.utils.helpers import Timer, format_ns


def contraction_targets(engine):
    """(name, cell) pairs with their self equations attached."""
    targets = []

    x = engine.declare_cell(1.0, name='newton_sqrt2')
    engine.define_self_equation(x, (x + 2 / x) / 2)
    targets.append(('newton √2', x))

    y = engine.declare_cell(10.0, name='halving')
    engine.define_self_equation(y, y / 2 + 1)
    targets.append(('x/2 + 1', y))

    z = engine.declare_cell(0.0, name='continued_fraction')
    engine.define_self_equation(z, 1 + 1 / (z + 1))
    targets.append(('1 + 1/(x+1)', z))

    return targets


def bench_convergence(threshold):
    engine = FixpointEngine(threshold=threshold)
    print(f"  threshold = {threshold:g}")
    print(f"  {'Equation':<16} {'Value':>14} {'Iters':>6} {'Rate':>8} {'Time':>12}")
    for name, cell in contraction_targets(engine):
        with Timer() as t:
            result = engine.iterate_with_report(cell)
        print(f"  {name:<16} {result.final_value:>14.10f} {result.iterations:>6} "
              f"{result.convergence_rate:>8.4f} {format_ns(t.elapsed_ns):>12}")
    print()


def bench_reconvergence():
    engine = FixpointEngine(threshold=1e-10)
    for name, cell in contraction_targets(engine):
        first = engine.iterate_with_report(cell)
        second = engine.iterate_with_report(cell)
        print(f"  {name:<16} cold: {first.iterations:>4} iters   warm: {second.iterations:>4} iters")
    print()


def bench_recurrence():
    engine = FixpointEngine()
    f = engine.declare_cell(0.0, name='halvings')
    n = parameter_variable()
    engine.define_parametrized_equation(f, 1, 0)
    engine.define_parametrized_equation(f, WILDCARD, f(ceil_of(n / 2)) + 1)
    for argument in (2, 64, 4096, 2 ** 20):
        with Timer() as t:
            value = engine.evaluate(f(argument))
        print(f"  f({argument:<8}) = {value:>4.0f}   {format_ns(t.elapsed_ns):>12}")
    stats = engine.get_stats()
    print(f"  scopes: {stats['scopes']}   cache hit rate: {stats['hit_rate']}")
    print()


def run_benchmarks():
    print("=" * 64)
    print("  fixpy benchmark suite")
    print("=" * 64)
    print("\n[1] Convergence on standard contractions")
    for threshold in (0.01, 1e-6, 1e-12):
        bench_convergence(threshold)
    print("[2] Re-convergence from the previous fixed point")
    bench_reconvergence()
    print("[3] Pattern-dispatched recurrence")
    bench_recurrence()


if __name__ == "__main__":
    run_benchmarks()
