"""
Expression builders.

Pure constructors for every node variant. Operands may be nodes, cell
handles (wrapped in ``CellRef``) or plain numbers (wrapped in
``Literal``). None of these functions touch a cell; attaching
equations to cells is done by the engine.
"""

import numbers

from fixpy.core.errors import InvalidExpression
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
    WILDCARD,
    as_node,
    as_parameter,
)


def constant(value) -> Literal:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidExpression(f"constant must be a real number, got {value!r}")
    return Literal(value)


def reference_to(cell: CellHandle) -> CellRef:
    if not isinstance(cell, CellHandle):
        raise InvalidExpression(f"expected a cell handle, got {cell!r}")
    return CellRef(cell)


def add(a, b) -> BinaryOp:
    return BinaryOp(Operation.ADD, as_node(a), as_node(b))


def sub(a, b) -> BinaryOp:
    return BinaryOp(Operation.SUB, as_node(a), as_node(b))


def mul(a, b) -> BinaryOp:
    return BinaryOp(Operation.MUL, as_node(a), as_node(b))


def div(a, b) -> BinaryOp:
    return BinaryOp(Operation.DIV, as_node(a), as_node(b))


def ceil_of(a) -> UnaryOp:
    return UnaryOp(Operation.CEIL, as_node(a))


def floor_of(a) -> UnaryOp:
    return UnaryOp(Operation.FLOOR, as_node(a))


def parameter_constant(n) -> ParameterSlot:
    """A pattern slot that only matches the integer ``n``."""
    if isinstance(n, bool) or not isinstance(n, numbers.Real):
        raise InvalidExpression(f"parameter constant must be integral, got {n!r}")
    if not isinstance(n, numbers.Integral) and not float(n).is_integer():
        raise InvalidExpression(f"parameter constant must be integral, got {n!r}")
    return ParameterSlot(ParameterKind.CONSTANT, int(n))


def parameter_variable() -> ParameterSlot:
    """The wildcard slot: matches any argument and reads it back."""
    return WILDCARD


def _parameter_operand(value):
    node = as_parameter(value)
    if not isinstance(node, (ParameterSlot, ParameterExpr)):
        raise InvalidExpression(
            f"parameter arithmetic needs parameter operands, got {node}", node
        )
    return node


def parameter_add(a, b) -> ParameterExpr:
    return ParameterExpr(Operation.ADD, _parameter_operand(a), _parameter_operand(b))


def parameter_sub(a, b) -> ParameterExpr:
    return ParameterExpr(Operation.SUB, _parameter_operand(a), _parameter_operand(b))


def parameter_mul(a, b) -> ParameterExpr:
    return ParameterExpr(Operation.MUL, _parameter_operand(a), _parameter_operand(b))


def call(cell: CellHandle, argument) -> Call:
    """Invocation node ``cell(argument)``, dispatched at evaluation time."""
    if not isinstance(cell, CellHandle):
        raise InvalidExpression(f"expected a cell handle, got {cell!r}")
    return Call(cell, as_parameter(argument))


def pattern_of(pattern) -> ParameterSlot:
    """Normalize an equation pattern: an int, a ParameterSlot, or WILDCARD."""
    if isinstance(pattern, ParameterSlot):
        return pattern
    if pattern is None:
        return WILDCARD
    return parameter_constant(pattern)


def equation(cell: CellHandle, pattern, body) -> Equation:
    """``cell(pattern) = body``; registration is the engine's job."""
    return Equation(call(cell, pattern_of(pattern)), as_node(body))


def next_layer(cell: CellHandle, body) -> NextLayer:
    """``cell := body``, where ``body`` is expected to reference ``cell``."""
    if not isinstance(cell, CellHandle):
        raise InvalidExpression(f"expected a cell handle, got {cell!r}")
    return NextLayer(cell, as_node(body))


__all__ = [
    'constant',
    'reference_to',
    'add',
    'sub',
    'mul',
    'div',
    'ceil_of',
    'floor_of',
    'parameter_constant',
    'parameter_variable',
    'parameter_add',
    'parameter_sub',
    'parameter_mul',
    'call',
    'pattern_of',
    'equation',
    'next_layer',
]
