"""
Pattern Matcher
===============

Chooses which equation of a piecewise cell applies to an argument.

Equations are scanned in insertion order and the first structural match
wins:

  - a ``variable`` pattern matches any argument
  - a ``constant(k)`` pattern matches when ``k == v`` on the integers;
    a non-integral argument never equals a constant

So constant cases must be registered before the wildcard fallback. A
cell with no matching equation is an explicit ``NoMatchingEquation``.
"""

import logging
import math
from typing import List

from fixpy.core.cells import FixpointCell
from fixpy.core.errors import InvalidExpression, NoMatchingEquation
from fixpy.core.expressions import Equation, ParameterKind, ParameterSlot, render

logger = logging.getLogger(__name__)


class PatternMatcher:
    """First-match dispatch over a cell's equation list."""

    def matches(self, pattern, argument) -> bool:
        if not isinstance(pattern, ParameterSlot):
            raise InvalidExpression(
                f"equation pattern must be a parameter slot, got {render(pattern)}",
                pattern,
            )
        if pattern.kind is ParameterKind.VARIABLE:
            return True
        value = float(argument)
        if not math.isfinite(value) or not value.is_integer():
            return False
        return int(value) == pattern.value

    def candidates(self, cell: FixpointCell, argument) -> List[Equation]:
        """Every equation matching ``argument``, in dispatch order."""
        return [eq for eq in cell.equations if self.matches(eq.pattern, argument)]

    def resolve(self, cell: FixpointCell, argument) -> Equation:
        for position, equation in enumerate(cell.equations):
            if self.matches(equation.pattern, argument):
                logger.debug(f"{cell.name}({argument}) -> equation #{position}")
                return equation
        raise NoMatchingEquation(cell.handle, argument, len(cell.equations))
