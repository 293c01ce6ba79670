"""
Fixpoint Engine
===============

The programmatic surface of fixpy: declare cells, attach equations,
evaluate expressions.

Lifecycle
---------
  1. ``declare_cell(initial)`` creates a cell and returns its handle
  2. ``define_self_equation`` / ``define_parametrized_equation`` attach
     equations built with the builder functions
  3. ``evaluate(node)`` runs one pass: a fresh EvaluationCache is created,
     the tree is walked, the cache is discarded
  4. ``iterate(cell)`` evaluates the cell's self equation

Cell values persist across passes: a converged value becomes the
starting guess of the next iteration over the same cell.

Passes are synchronous. Concurrent passes touching the same cells must
be serialized by the caller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from fixpy.core import builder
from fixpy.core.cells import CellArena, FixpointCell
from fixpy.core.errors import InvalidExpression
from fixpy.core.expressions import (
    CellHandle,
    Call,
    Equation,
    NextLayer,
    as_node,
    render,
)
from fixpy.runtime.cache import EvaluationCache
from fixpy.runtime.evaluator import Evaluator
from fixpy.runtime.iteration import ConvergenceResult, FixedPointIteration
from fixpy.runtime.pattern_matcher import PatternMatcher

logger = logging.getLogger(__name__)


@dataclass
class EngineStats:
    """Counters accumulated over every pass of an engine."""
    evaluations: int = 0
    failures: int = 0
    iterations: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    scopes: int = 0


class FixpointEngine:
    """
    Owns a cell arena and evaluates expressions over it.

    Usage:
        >>> engine = FixpointEngine()
        >>> x = engine.declare_cell(1.0, name='x')
        >>> engine.define_self_equation(x, (x + 2 / x) / 2)
        >>> engine.iterate(x)  # ≈ √2
        1.4142156862745097
    """

    DEFAULT_THRESHOLD = 0.01
    DEFAULT_MAX_ITERATIONS = 10_000

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        time_limit: Optional[float] = None,
        dtype=np.float64,
        enable_logging: bool = False,
    ):
        if np.dtype(dtype).kind != 'f':
            raise ValueError(f"dtype must be a floating type, got {np.dtype(dtype)}")
        self.dtype = np.dtype(dtype).type
        self.arena = CellArena()
        self._iteration = FixedPointIteration(
            threshold=threshold,
            max_iterations=max_iterations,
            time_limit=time_limit,
        )
        self._evaluator = Evaluator(
            self.arena,
            dtype=self.dtype,
            iteration=self._iteration,
            matcher=PatternMatcher(),
        )
        self.stats = EngineStats()

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    @property
    def threshold(self) -> float:
        return self._iteration.threshold

    @property
    def max_iterations(self) -> int:
        return self._iteration.max_iterations

    @property
    def time_limit(self) -> Optional[float]:
        return self._iteration.time_limit

    # ---- Setup ----

    def declare_cell(self, initial, name: Optional[str] = None) -> CellHandle:
        """Create a cell seeded with ``initial``."""
        handle = self.arena.declare(self.dtype(initial), name)
        logger.debug(f"Declared {handle} = {initial}")
        return handle

    def cell(self, handle: CellHandle) -> FixpointCell:
        return self.arena.resolve(handle)

    def lookup(self, name: str) -> CellHandle:
        return self.arena.lookup(name)

    def value_of(self, handle: CellHandle):
        """The cell's live value (last converged or seed)."""
        return self.arena.resolve(handle).value

    def define_self_equation(self, cell: CellHandle, body) -> NextLayer:
        """Attach ``cell := body`` and return the NextLayer node."""
        next_layer = builder.next_layer(cell, body)
        self.arena.resolve(cell).set_self_equation(next_layer)
        return next_layer

    def define_parametrized_equation(self, cell: CellHandle, pattern, body) -> Equation:
        """
        Append ``cell(pattern) = body`` to the cell's equation list.

        ``pattern`` is an int, a ParameterSlot, or WILDCARD. Dispatch
        picks the first match in registration order, so register the
        wildcard fallback last.
        """
        return self.register(builder.equation(cell, pattern, body))

    def register(self, equation: Equation) -> Equation:
        """Register a prebuilt Equation node on the cell it names."""
        if not isinstance(equation, Equation):
            raise InvalidExpression(f"only equations can be registered, got {equation!r}")
        self.arena.resolve(equation.cell).append_equation(equation)
        return equation

    def call(self, cell: CellHandle, argument) -> Call:
        return builder.call(cell, argument)

    # ---- Evaluation ----

    def evaluate(self, node, parameter=None):
        """
        Run one evaluation pass over ``node``.

        Args:
            node: expression to evaluate (nodes, handles and numbers accepted)
            parameter: optional value pre-bound as the active parameter

        Returns:
            A NumPy scalar of the engine's dtype.
        """
        cache = EvaluationCache()
        if parameter is not None:
            cache.bind_parameter(self._evaluator.parameter_dtype(parameter))

        self.stats.evaluations += 1
        iterations_before = self._evaluator.iterations_run
        try:
            return self._evaluator.evaluate(as_node(node), cache)
        except Exception:
            self.stats.failures += 1
            raise
        finally:
            self.stats.iterations += self._evaluator.iterations_run - iterations_before
            self.stats.cache_hits += cache.stats.hits
            self.stats.cache_misses += cache.stats.misses
            self.stats.scopes += cache.stats.scopes

    def iterate(self, cell: CellHandle):
        """Iterate the cell's self equation to convergence."""
        next_layer = self.arena.resolve(cell).self_equation
        if next_layer is None:
            raise InvalidExpression(f"{cell} has no self equation to iterate")
        return self.evaluate(next_layer)

    def iterate_with_report(self, cell: CellHandle) -> ConvergenceResult:
        self.iterate(cell)
        return self._evaluator.convergence[cell]

    def last_convergence(self, cell: CellHandle) -> Optional[ConvergenceResult]:
        """Result of the most recent iteration over ``cell``, if any."""
        return self._evaluator.convergence.get(cell)

    def describe(self, cell: CellHandle) -> str:
        """Every equation defining ``cell``, one per line."""
        target = self.arena.resolve(cell)
        lines = [render(eq) for eq in target.equations]
        if target.self_equation is not None:
            lines.append(render(target.self_equation))
        return "\n".join(lines)

    def get_stats(self) -> Dict[str, object]:
        total = self.stats.cache_hits + self.stats.cache_misses
        return {
            'cells': len(self.arena),
            'evaluations': self.stats.evaluations,
            'failures': self.stats.failures,
            'iterations': self.stats.iterations,
            'cache_hits': self.stats.cache_hits,
            'cache_misses': self.stats.cache_misses,
            'hit_rate': f"{self.stats.cache_hits / total:.1%}" if total else "0.0%",
            'scopes': self.stats.scopes,
        }


# ---------------------------------------------------------------------------
# Module-level convenience API
# ---------------------------------------------------------------------------

_default_engine = FixpointEngine()


def default_engine() -> FixpointEngine:
    return _default_engine


def reset_default_engine(**kwargs) -> FixpointEngine:
    """Replace the default engine; previously declared handles become unknown."""
    global _default_engine
    _default_engine = FixpointEngine(**kwargs)
    return _default_engine


def declare_cell(initial, name: Optional[str] = None) -> CellHandle:
    return _default_engine.declare_cell(initial, name)


def define_self_equation(cell: CellHandle, body) -> NextLayer:
    return _default_engine.define_self_equation(cell, body)


def define_parametrized_equation(cell: CellHandle, pattern, body) -> Equation:
    return _default_engine.define_parametrized_equation(cell, pattern, body)


def call(cell: CellHandle, argument) -> Call:
    return builder.call(cell, argument)


def evaluate(node, parameter=None):
    """
    Module-level evaluation pass on the default engine.

    Usage:
        from fixpy import evaluate, div, constant

        evaluate(div(constant(6), constant(3)))  # 2.0
    """
    return _default_engine.evaluate(node, parameter)


def iterate(cell: CellHandle):
    return _default_engine.iterate(cell)


def iterate_with_report(cell: CellHandle) -> ConvergenceResult:
    return _default_engine.iterate_with_report(cell)
