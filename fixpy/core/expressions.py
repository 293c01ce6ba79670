"""
Expression Nodes
================

Immutable tree nodes describing fixpoint equations.

Node Variants
-------------
  - Literal:        a numeric constant
  - ParameterSlot:  an integer pattern slot, constant (``n = 3``) or
                    variable (wildcard ``n``)
  - ParameterExpr:  integer arithmetic over parameter slots (``n - 1``)
  - CellRef:        a non-owning reference to a cell, by handle
  - BinaryOp:       add / sub / mul / div
  - UnaryOp:        ceil / floor
  - Call:           ``f(argument)``, resolved by pattern dispatch
  - Equation:       ``f(pattern) = body``, registered on a cell
  - NextLayer:      ``x := body(x)``, iterated to a fixed point

Nodes own their children by value. Cells are referenced through a
``CellHandle`` (a stable arena index), so a cell whose equation mentions
the cell itself is a cycle of identity, never of ownership.

The arithmetic operators on nodes and handles are thin sugar over the
builder functions; building a tree never mutates a cell.
"""

import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from fixpy.core.errors import InvalidExpression


class Operation(Enum):
    """Arithmetic operations with their rendering symbol."""
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    CEIL = 'ceil'
    FLOOR = 'floor'


class ParameterKind(Enum):
    CONSTANT = 'constant'
    VARIABLE = 'variable'


BINARY_OPERATIONS = (Operation.ADD, Operation.SUB, Operation.MUL, Operation.DIV)
UNARY_OPERATIONS = (Operation.CEIL, Operation.FLOOR)
PARAMETER_OPERATIONS = (Operation.ADD, Operation.SUB, Operation.MUL)


class _ArithmeticSugar:
    """Python operators mapped onto BinaryOp construction."""

    def __add__(self, other):
        return BinaryOp(Operation.ADD, as_node(self), as_node(other))

    def __radd__(self, other):
        return BinaryOp(Operation.ADD, as_node(other), as_node(self))

    def __sub__(self, other):
        return BinaryOp(Operation.SUB, as_node(self), as_node(other))

    def __rsub__(self, other):
        return BinaryOp(Operation.SUB, as_node(other), as_node(self))

    def __mul__(self, other):
        return BinaryOp(Operation.MUL, as_node(self), as_node(other))

    def __rmul__(self, other):
        return BinaryOp(Operation.MUL, as_node(other), as_node(self))

    def __truediv__(self, other):
        return BinaryOp(Operation.DIV, as_node(self), as_node(other))

    def __rtruediv__(self, other):
        return BinaryOp(Operation.DIV, as_node(other), as_node(self))


@dataclass(frozen=True)
class CellHandle(_ArithmeticSugar):
    """Stable identity of a cell inside a CellArena."""
    index: int
    name: str = field(default='', compare=False)
    arena: int = 0

    def __call__(self, argument) -> 'Call':
        return Call(self, as_parameter(argument))

    def __str__(self):
        return self.name or f"cell#{self.index}"


class ExpressionNode(_ArithmeticSugar):
    """Marker base for every node variant."""

    def __str__(self):
        return render(self)


@dataclass(frozen=True, eq=True)
class Literal(ExpressionNode):
    value: Any


class _ParameterSugar:
    """Integer operands keep parameter arithmetic in the parameter domain."""

    def __add__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.ADD, self, as_parameter(other))
        return super().__add__(other)

    def __radd__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.ADD, as_parameter(other), self)
        return super().__radd__(other)

    def __sub__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.SUB, self, as_parameter(other))
        return super().__sub__(other)

    def __rsub__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.SUB, as_parameter(other), self)
        return super().__rsub__(other)

    def __mul__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.MUL, self, as_parameter(other))
        return super().__mul__(other)

    def __rmul__(self, other):
        if _is_parameter_operand(other):
            return ParameterExpr(Operation.MUL, as_parameter(other), self)
        return super().__rmul__(other)


@dataclass(frozen=True, eq=True)
class ParameterSlot(_ParameterSugar, ExpressionNode):
    kind: ParameterKind
    value: Optional[int] = None

    @property
    def is_variable(self) -> bool:
        return self.kind is ParameterKind.VARIABLE


@dataclass(frozen=True, eq=True)
class ParameterExpr(_ParameterSugar, ExpressionNode):
    op: Operation
    left: 'ParameterNode'
    right: 'ParameterNode'

    def __post_init__(self):
        if self.op not in PARAMETER_OPERATIONS:
            raise InvalidExpression(
                f"{self.op.name} is not an integer parameter operation", self
            )


@dataclass(frozen=True, eq=True)
class CellRef(ExpressionNode):
    cell: CellHandle


@dataclass(frozen=True, eq=True)
class BinaryOp(ExpressionNode):
    op: Operation
    left: ExpressionNode
    right: ExpressionNode

    def __post_init__(self):
        if self.op not in BINARY_OPERATIONS:
            raise InvalidExpression(f"{self.op.name} is not a binary operation", self)


@dataclass(frozen=True, eq=True)
class UnaryOp(ExpressionNode):
    op: Operation
    operand: ExpressionNode

    def __post_init__(self):
        if self.op not in UNARY_OPERATIONS:
            raise InvalidExpression(f"{self.op.name} is not a unary operation", self)


@dataclass(frozen=True, eq=True)
class Call(ExpressionNode):
    cell: CellHandle
    argument: ExpressionNode


@dataclass(frozen=True, eq=True)
class Equation(ExpressionNode):
    lhs: Call
    rhs: ExpressionNode

    @property
    def cell(self) -> CellHandle:
        return self.lhs.cell

    @property
    def pattern(self) -> 'ParameterNode':
        return self.lhs.argument


@dataclass(frozen=True, eq=True)
class NextLayer(ExpressionNode):
    cell: CellHandle
    body: ExpressionNode


ParameterNode = Union[ParameterSlot, ParameterExpr]

# Wildcard pattern marker accepted wherever a pattern is expected.
WILDCARD = ParameterSlot(ParameterKind.VARIABLE)


def _is_parameter_operand(value) -> bool:
    if isinstance(value, (ParameterSlot, ParameterExpr)):
        return True
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def as_node(value) -> ExpressionNode:
    """Coerce a node, handle or plain number into an ExpressionNode."""
    if isinstance(value, ExpressionNode):
        return value
    if isinstance(value, CellHandle):
        return CellRef(value)
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return Literal(value)
    raise InvalidExpression(
        f"cannot use {type(value).__name__} as an expression operand", value
    )


def as_parameter(value) -> ExpressionNode:
    """Coerce an integer into a constant slot; nodes pass through."""
    if isinstance(value, ExpressionNode):
        return value
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return ParameterSlot(ParameterKind.CONSTANT, int(value))
    if isinstance(value, CellHandle):
        return CellRef(value)
    raise InvalidExpression(
        f"cannot use {type(value).__name__} as a call argument", value
    )


def render(node) -> str:
    """Render a node as readable infix text, e.g. ``((x + (2 / x)) / 2)``."""
    if isinstance(node, CellHandle):
        return str(node)
    if isinstance(node, Literal):
        return f"{node.value:g}"
    if isinstance(node, ParameterSlot):
        return 'n' if node.is_variable else str(node.value)
    if isinstance(node, (ParameterExpr, BinaryOp)):
        return f"({render(node.left)} {node.op.value} {render(node.right)})"
    if isinstance(node, CellRef):
        return str(node.cell)
    if isinstance(node, UnaryOp):
        return f"{node.op.value}({render(node.operand)})"
    if isinstance(node, Call):
        argument = render(node.argument)
        if isinstance(node.argument, (ParameterExpr, BinaryOp)):
            argument = argument[1:-1]
        return f"{node.cell}({argument})"
    if isinstance(node, Equation):
        return f"{render(node.lhs)} = {render(node.rhs)}"
    if isinstance(node, NextLayer):
        return f"{node.cell} := {render(node.body)}"
    return f"<{type(node).__name__}>"
