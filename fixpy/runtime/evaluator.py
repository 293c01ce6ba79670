"""
Evaluator
=========

Recursive evaluation of expression trees against an EvaluationCache.

Values are NumPy floating scalars of the engine's dtype. Arithmetic runs
under ``numpy.errstate(all='ignore')``: division by zero and overflow
produce ``inf``/``nan`` and propagate as ordinary values.

Parameter slots, parameter arithmetic and call arguments bound as
parameters are computed in at least float64, so dispatch on integer
arguments stays exact under a narrow dtype such as ``float32``. Values
returned from a pass are cast to the engine dtype.

Evaluation order is left before right. Nested ``Call`` and ``NextLayer``
nodes write to cells and caches, so the order is observable.
"""

import operator
import sys
from typing import Dict, Optional

import numpy as np

from fixpy.core.cells import CellArena
from fixpy.core.errors import (
    InvalidExpression,
    NonTerminatingIteration,
    RecursionLimit,
)
from fixpy.core.expressions import (
    BinaryOp,
    Call,
    CellHandle,
    CellRef,
    Equation,
    Literal,
    NextLayer,
    Operation,
    ParameterExpr,
    ParameterKind,
    ParameterSlot,
    UnaryOp,
    render,
)
from fixpy.runtime.cache import EvaluationCache
from fixpy.runtime.iteration import ConvergenceResult, FixedPointIteration
from fixpy.runtime.pattern_matcher import PatternMatcher

_BINARY = {
    Operation.ADD: operator.add,
    Operation.SUB: operator.sub,
    Operation.MUL: operator.mul,
    Operation.DIV: operator.truediv,
}

_UNARY = {
    Operation.CEIL: np.ceil,
    Operation.FLOOR: np.floor,
}


class Evaluator:
    """
    Walks an expression tree and produces a value.

    Usage:
        >>> evaluator = Evaluator(arena)
        >>> evaluator.evaluate(div(constant(6), constant(3)), EvaluationCache())
        2.0
    """

    def __init__(
        self,
        arena: CellArena,
        dtype=np.float64,
        iteration: Optional[FixedPointIteration] = None,
        matcher: Optional[PatternMatcher] = None,
    ):
        self.arena = arena
        self.dtype = dtype
        self.parameter_dtype = np.promote_types(dtype, np.float64).type
        self.iteration = iteration or FixedPointIteration()
        self.matcher = matcher or PatternMatcher()
        self.convergence: Dict[CellHandle, ConvergenceResult] = {}
        self.iterations_run = 0
        self._innermost_call = None

    def evaluate(self, node, cache: EvaluationCache):
        """Evaluate ``node``; IEEE anomalies propagate as values."""
        self._innermost_call = None
        try:
            with np.errstate(all='ignore'):
                return self.dtype(self._eval(node, cache))
        except RecursionError:
            cell, argument = self._innermost_call or (None, None)
            raise RecursionLimit(cell, argument, sys.getrecursionlimit()) from None

    def _eval(self, node, cache: EvaluationCache):
        if isinstance(node, Literal):
            return self.dtype(node.value)

        if isinstance(node, ParameterSlot):
            if node.kind is ParameterKind.VARIABLE:
                return cache.parameter()
            return self.parameter_dtype(node.value)

        if isinstance(node, ParameterExpr):
            left = self._eval(node.left, cache)
            right = self._eval(node.right, cache)
            return self.parameter_dtype(_BINARY[node.op](left, right))

        if isinstance(node, CellRef):
            return self._read_cell(node.cell, cache)

        if isinstance(node, BinaryOp):
            left = self._eval(node.left, cache)
            right = self._eval(node.right, cache)
            return self.dtype(_BINARY[node.op](left, right))

        if isinstance(node, UnaryOp):
            return self.dtype(_UNARY[node.op](self._eval(node.operand, cache)))

        if isinstance(node, Call):
            return self._call(node, cache)

        if isinstance(node, NextLayer):
            return self._next_layer(node, cache)

        if isinstance(node, Equation):
            raise InvalidExpression(
                f"equation {render(node)} has no value; register it on its cell instead",
                node,
            )

        raise InvalidExpression(f"cannot evaluate {type(node).__name__}", node)

    def _read_cell(self, handle: CellHandle, cache: EvaluationCache):
        if cache.contains(handle):
            return cache.get(handle)
        return cache.snapshot(handle, self.arena.resolve(handle).value)

    def _call(self, node: Call, cache: EvaluationCache):
        argument = self._eval(node.argument, cache)
        cell = self.arena.resolve(node.cell)
        self._innermost_call = (node.cell, argument)
        equation = self.matcher.resolve(cell, argument)
        return self._eval(equation.rhs, cache.scope(argument))

    def _next_layer(self, node: NextLayer, cache: EvaluationCache):
        cell = self.arena.resolve(node.cell)
        try:
            result = self.iteration.run(cell, node.body, cache, self._eval_value)
        except NonTerminatingIteration as exc:
            self.convergence[node.cell] = exc.result
            self.iterations_run += exc.result.iterations
            raise
        self.convergence[node.cell] = result
        self.iterations_run += result.iterations
        return cell.value

    def _eval_value(self, node, cache: EvaluationCache):
        return self.dtype(self._eval(node, cache))
