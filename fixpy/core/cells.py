"""
Fixpoint Cells
==============

A cell is a named mutable numeric quantity. Its value is either defined
self-referentially (a ``NextLayer`` equation iterated to convergence)
or piecewise by an integer argument (an ordered list of ``Equation``s).

Cells live in a ``CellArena`` and are addressed by ``CellHandle``.
Expression trees store handles only, so a cell whose equation refers
to itself is representable without an ownership cycle.

A cell's value changes in exactly two situations:
  1. the iteration loop stores a newly computed approximation
  2. an equation is appended during setup (equations, not the value)

The converged value survives the evaluation call that produced it and
seeds the next one.
"""

import itertools
import logging
from typing import Dict, Iterator, List, Optional

from fixpy.core.errors import InvalidExpression, UnknownCell
from fixpy.core.expressions import CellHandle, Equation, NextLayer, render

logger = logging.getLogger(__name__)

_arena_ids = itertools.count(1)


class FixpointCell:
    """A single cell: current value plus the equations that define it."""

    def __init__(self, handle: CellHandle, value):
        self.handle = handle
        self.value = value
        self.equations: List[Equation] = []
        self.self_equation: Optional[NextLayer] = None

    @property
    def name(self) -> str:
        return str(self.handle)

    def append_equation(self, equation: Equation):
        if equation.cell != self.handle:
            raise InvalidExpression(
                f"equation {render(equation)} belongs to {equation.cell}, not {self.name}",
                equation,
            )
        self.equations.append(equation)
        logger.debug(f"Registered {render(equation)} on {self.name} "
                     f"(#{len(self.equations)})")

    def set_self_equation(self, next_layer: NextLayer):
        if next_layer.cell != self.handle:
            raise InvalidExpression(
                f"self equation {render(next_layer)} does not define {self.name}",
                next_layer,
            )
        self.self_equation = next_layer
        logger.debug(f"Self equation for {self.name}: {render(next_layer)}")

    def __repr__(self):
        return (f"FixpointCell({self.name}, value={self.value}, "
                f"equations={len(self.equations)})")


class CellArena:
    """Owns every cell of an engine, indexed by handle."""

    def __init__(self):
        self.arena_id = next(_arena_ids)
        self._cells: List[FixpointCell] = []
        self._by_name: Dict[str, CellHandle] = {}

    def declare(self, initial, name: Optional[str] = None) -> CellHandle:
        index = len(self._cells)
        handle = CellHandle(index, name or f"cell#{index}", self.arena_id)
        self._cells.append(FixpointCell(handle, initial))
        if name:
            self._by_name[name] = handle
        return handle

    def resolve(self, handle: CellHandle) -> FixpointCell:
        if handle in self:
            return self._cells[handle.index]
        raise UnknownCell(handle)

    def lookup(self, name: str) -> CellHandle:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownCell(name) from None

    def __contains__(self, handle) -> bool:
        return (
            isinstance(handle, CellHandle)
            and handle.arena == self.arena_id
            and 0 <= handle.index < len(self._cells)
        )

    def __iter__(self) -> Iterator[FixpointCell]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)
