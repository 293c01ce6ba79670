"""
Evaluation Cache
================

Per-pass memo of cell values plus the single active parameter.

Cycle Breaking
--------------
The first read of a cell within a pass snapshots the cell's live value.
Every later read in the same pass returns the snapshot, so a body that
references its own cell sees the previous iterate instead of recursing
into the cell's definition again.

Scopes
------
A ``Call`` evaluates its equation body in a nested scope: a fresh cache
with the call argument bound as parameter. The nested scope shares the
parent's statistics so one pass reports one set of counters.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from fixpy.core.errors import CacheMiss, ParameterRebound, UnboundParameter
from fixpy.core.expressions import CellHandle


@dataclass
class CacheStats:
    """Counters for one evaluation pass, nested scopes included."""
    hits: int = 0
    misses: int = 0
    writes: int = 0
    scopes: int = 1

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class EvaluationCache:
    """
    Memoized cell snapshots and the active parameter for one pass.

    Usage:
        >>> cache = EvaluationCache()
        >>> cache.remember(x, 1.0)
        >>> cache.get(x)
        1.0
        >>> inner = cache.scope(3)
        >>> inner.parameter()
        3
    """

    def __init__(self, stats: Optional[CacheStats] = None):
        self._values: Dict[CellHandle, object] = {}
        self._parameter = None
        self._has_parameter = False
        self.stats = stats if stats is not None else CacheStats()

    def contains(self, cell: CellHandle) -> bool:
        return cell in self._values

    def get(self, cell: CellHandle):
        try:
            value = self._values[cell]
        except KeyError:
            raise CacheMiss(cell) from None
        self.stats.hits += 1
        return value

    def remember(self, cell: CellHandle, value):
        self._values[cell] = value
        self.stats.writes += 1

    def snapshot(self, cell: CellHandle, live_value):
        """First read of ``cell`` in this pass: store and return its live value."""
        self.stats.misses += 1
        self._values[cell] = live_value
        return live_value

    def bind_parameter(self, value):
        if self._has_parameter:
            raise ParameterRebound(self._parameter, value)
        self._parameter = value
        self._has_parameter = True

    def parameter(self):
        if not self._has_parameter:
            raise UnboundParameter()
        return self._parameter

    @property
    def has_parameter(self) -> bool:
        return self._has_parameter

    def scope(self, parameter) -> 'EvaluationCache':
        """Nested scope for a call body, with ``parameter`` bound."""
        self.stats.scopes += 1
        child = EvaluationCache(stats=self.stats)
        child.bind_parameter(parameter)
        return child

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self):
        bound = f", parameter={self._parameter}" if self._has_parameter else ""
        return f"EvaluationCache({len(self._values)} cells{bound})"
