"""
Error Taxonomy
==============

Every failure the engine can surface is one of a closed set of kinds.
All of them abort the current evaluation pass; there is no partial
result and no internal recovery.

Arithmetic anomalies (division by zero, overflow) are deliberately
absent: they follow IEEE semantics and propagate as ``inf``/``nan``.
"""

from enum import Enum, auto
from typing import Any, Optional


class ErrorKind(Enum):
    CACHE_MISS = auto()
    UNBOUND_PARAMETER = auto()
    PARAMETER_REBOUND = auto()
    NO_MATCHING_EQUATION = auto()
    NON_TERMINATING_ITERATION = auto()
    INVALID_EXPRESSION = auto()
    UNKNOWN_CELL = auto()
    RECURSION_LIMIT = auto()


class FixpointError(Exception):
    """Base class for all fixpy errors."""

    kind: ErrorKind = ErrorKind.INVALID_EXPRESSION


class CacheMiss(FixpointError):
    """A cell was read from the cache before it was remembered."""

    kind = ErrorKind.CACHE_MISS

    def __init__(self, cell):
        self.cell = cell
        super().__init__(f"cell {cell} has no cached value in this pass")


class UnboundParameter(FixpointError):
    """The active parameter was read before a call bound it."""

    kind = ErrorKind.UNBOUND_PARAMETER

    def __init__(self, message: str = "parameter read before it was bound"):
        super().__init__(message)


class ParameterRebound(FixpointError):
    """A second bind of the active parameter within one pass."""

    kind = ErrorKind.PARAMETER_REBOUND

    def __init__(self, current: Any, attempted: Any):
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"parameter already bound to {current}; refusing to rebind to {attempted}"
        )


class NoMatchingEquation(FixpointError):
    """Pattern dispatch found no applicable equation."""

    kind = ErrorKind.NO_MATCHING_EQUATION

    def __init__(self, cell, argument: Any, equation_count: int = 0):
        self.cell = cell
        self.argument = argument
        self.equation_count = equation_count
        super().__init__(
            f"no equation of {cell} matches argument {argument} "
            f"({equation_count} equations registered)"
        )


class NonTerminatingIteration(FixpointError):
    """The fixed-point loop hit its iteration or time bound."""

    kind = ErrorKind.NON_TERMINATING_ITERATION

    def __init__(self, cell, result):
        self.cell = cell
        self.result = result
        super().__init__(
            f"iteration of {cell} did not converge: {result.status.name} "
            f"after {result.iterations} iterations "
            f"(last value {result.final_value})"
        )


class InvalidExpression(FixpointError):
    """A node that cannot be evaluated or registered."""

    kind = ErrorKind.INVALID_EXPRESSION

    def __init__(self, message: str, node: Optional[Any] = None):
        self.node = node
        super().__init__(message)


class UnknownCell(FixpointError):
    """A handle that does not belong to the engine's arena."""

    kind = ErrorKind.UNKNOWN_CELL

    def __init__(self, handle):
        self.handle = handle
        super().__init__(f"{handle} is not declared in this engine")


class RecursionLimit(FixpointError):
    """A recurrence nested deeper than the interpreter stack allows."""

    kind = ErrorKind.RECURSION_LIMIT

    def __init__(self, cell, argument: Any, limit: int):
        self.cell = cell
        self.argument = argument
        self.limit = limit
        super().__init__(
            f"call {cell}({argument}) nested too deeply "
            f"(interpreter recursion limit {limit})"
        )
