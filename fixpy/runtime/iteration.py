"""
Fixed-Point Iteration
=====================

Resolves a self-referential cell ``x := body(x)`` by Picard iteration.

Theoretical Foundation:
    If ``body`` is a contraction near its fixed point, i.e. there is
    0 ≤ k < 1 with

        |body(a) - body(b)| ≤ k · |a - b|

    then by Banach's Fixed-Point Theorem the sequence
    x₀, body(x₀), body²(x₀), ... converges to the unique fixed point x*.

    A posteriori error bound after n steps:

        |x_n - x*| ≤ k / (1 - k) · |x_n - x_{n-1}|

Loop
----
    1. old ← cached value of the cell, else its live value (snapshotted)
    2. new ← body evaluated against the cache, which holds the previous
       iterate for the cell; the body never re-enters the cell's own
       definition
    3. store new on the cell and in the cache
    4. stop when |new - old| ≤ threshold, else old ← new and repeat

The converged value stays on the cell and seeds the next iteration.
The loop is bounded by ``max_iterations`` and an optional wall-clock
``time_limit``; hitting either raises ``NonTerminatingIteration``.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Optional

from fixpy.core.cells import FixpointCell
from fixpy.core.errors import NonTerminatingIteration
from fixpy.core.expressions import ExpressionNode
from fixpy.runtime.cache import EvaluationCache
from fixpy.utils.helpers import Timer, format_ns

logger = logging.getLogger(__name__)


class ConvergenceStatus(Enum):
    """Status of fixed-point convergence."""
    ITERATING = auto()           # Loop still running
    CONVERGED = auto()           # Successive iterates within threshold
    MAX_ITERATIONS = auto()      # Iteration bound reached
    TIMED_OUT = auto()           # Wall-clock bound reached
    DIVERGING = auto()           # Steps growing or values non-finite
    OSCILLATING = auto()         # Iterates alternate without settling


@dataclass
class ConvergenceResult:
    """Result of one fixed-point iteration run."""
    cell: str
    status: ConvergenceStatus
    iterations: int
    initial_value: float
    final_value: float
    values_history: List[float] = field(default_factory=list)
    contraction_factors: List[float] = field(default_factory=list)
    convergence_rate: float = 1.0    # Average contraction factor
    error_bound: float = math.inf    # Upper bound on distance to fixed point
    wall_time_seconds: float = 0.0

    @property
    def converged(self) -> bool:
        return self.status is ConvergenceStatus.CONVERGED


class FixedPointIteration:
    """
    Bounded Picard iteration over a cell's self equation.

    Usage:
        iteration = FixedPointIteration(threshold=0.01, max_iterations=1000)
        result = iteration.run(cell, body, cache, evaluator.evaluate)
        print(result.final_value, result.iterations)
    """

    DEFAULT_THRESHOLD = 0.01
    DEFAULT_MAX_ITERATIONS = 10_000

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        time_limit: Optional[float] = None,
        oscillation_window: int = 5,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if time_limit is not None and time_limit <= 0:
            raise ValueError("time_limit must be positive")
        self.threshold = threshold
        self.max_iterations = max_iterations
        self.time_limit = time_limit
        self.oscillation_window = oscillation_window

    def run(
        self,
        cell: FixpointCell,
        body: ExpressionNode,
        cache: EvaluationCache,
        evaluate: Callable[[ExpressionNode, EvaluationCache], object],
    ) -> ConvergenceResult:
        """
        Iterate ``body`` until the cell converges.

        Returns:
            ConvergenceResult with status CONVERGED; the converged value
            is ``result.final_value`` and also ``cell.value``.

        Raises:
            NonTerminatingIteration carrying the failed ConvergenceResult.
        """
        handle = cell.handle
        if cache.contains(handle):
            old = cache.get(handle)
        else:
            old = cache.snapshot(handle, cell.value)

        values = [float(old)]
        contraction_factors: List[float] = []
        status = ConvergenceStatus.ITERATING
        iterations = 0
        new = old

        with Timer() as timer:
            while status is ConvergenceStatus.ITERATING:
                new = evaluate(body, cache)
                cell.value = new
                cache.remember(handle, new)
                iterations += 1
                values.append(float(new))

                dist = abs(float(new) - float(old))
                if len(values) >= 3:
                    prev_dist = abs(values[-2] - values[-3])
                    if prev_dist > 0 and math.isfinite(dist):
                        contraction_factors.append(dist / prev_dist)

                if dist <= self.threshold:
                    status = ConvergenceStatus.CONVERGED
                elif self.time_limit is not None and timer.elapsed_s > self.time_limit:
                    status = ConvergenceStatus.TIMED_OUT
                elif iterations >= self.max_iterations:
                    status = self._classify_failure(values, contraction_factors)
                else:
                    old = new

        result = ConvergenceResult(
            cell=cell.name,
            status=status,
            iterations=iterations,
            initial_value=values[0],
            final_value=float(new),
            values_history=values,
            contraction_factors=contraction_factors,
            convergence_rate=self._avg_contraction(contraction_factors),
            error_bound=self._error_bound(
                abs(values[-1] - values[-2]), contraction_factors
            ),
            wall_time_seconds=timer.elapsed_s,
        )

        if not result.converged:
            logger.warning(f"{cell.name} did not converge: {status.name} after "
                           f"{iterations} iterations ({format_ns(timer.elapsed_ns)})")
            raise NonTerminatingIteration(handle, result)

        logger.debug(f"{cell.name} converged to {result.final_value} in "
                     f"{iterations} iterations ({format_ns(timer.elapsed_ns)})")
        return result

    def _classify_failure(self, values: List[float], factors: List[float]) -> ConvergenceStatus:
        """Name the trajectory of a run that exhausted its iteration budget."""
        if not math.isfinite(values[-1]) or self._avg_contraction(factors[-self.oscillation_window:]) > 1.0:
            return ConvergenceStatus.DIVERGING
        if self._is_oscillating(values):
            return ConvergenceStatus.OSCILLATING
        return ConvergenceStatus.MAX_ITERATIONS

    def _avg_contraction(self, factors: List[float]) -> float:
        """Compute average contraction factor."""
        if not factors:
            return 1.0
        return sum(factors) / len(factors)

    def _error_bound(self, last_dist: float, factors: List[float]) -> float:
        """
        A posteriori bound from Banach's theorem:

        |x_n - x*| ≤ k / (1-k) · |x_n - x_{n-1}|
        """
        k = self._avg_contraction(factors)
        if k >= 1.0 or not math.isfinite(last_dist):
            return math.inf
        return k / (1.0 - k) * last_dist

    def _is_oscillating(self, values: List[float]) -> bool:
        """Detect alternating direction over the last window of iterates."""
        if len(values) < self.oscillation_window + 1:
            return False

        window = values[-self.oscillation_window:]
        directions = []
        for i in range(1, len(window)):
            if window[i] > window[i-1]:
                directions.append(1)
            elif window[i] < window[i-1]:
                directions.append(-1)
            else:
                directions.append(0)

        alternations = sum(
            1 for i in range(1, len(directions))
            if directions[i] != directions[i-1] and directions[i] != 0
        )
        return alternations >= len(directions) - 1
