"""
Core data model: expression nodes, builders, cells and errors.
"""

from fixpy.core.expressions import (
    ExpressionNode,
    Literal,
    ParameterSlot,
    ParameterExpr,
    ParameterKind,
    CellHandle,
    CellRef,
    BinaryOp,
    UnaryOp,
    Call,
    Equation,
    NextLayer,
    Operation,
    WILDCARD,
    render,
)
from fixpy.core.cells import CellArena, FixpointCell
from fixpy.core.errors import (
    ErrorKind,
    FixpointError,
    CacheMiss,
    UnboundParameter,
    ParameterRebound,
    RecursionLimit,
    NoMatchingEquation,
    NonTerminatingIteration,
    InvalidExpression,
    UnknownCell,
)

__all__ = [
    'ExpressionNode',
    'Literal',
    'ParameterSlot',
    'ParameterExpr',
    'ParameterKind',
    'CellHandle',
    'CellRef',
    'BinaryOp',
    'UnaryOp',
    'Call',
    'Equation',
    'NextLayer',
    'Operation',
    'WILDCARD',
    'render',
    'CellArena',
    'FixpointCell',
    'ErrorKind',
    'FixpointError',
    'CacheMiss',
    'UnboundParameter',
    'ParameterRebound',
    'RecursionLimit',
    'NoMatchingEquation',
    'NonTerminatingIteration',
    'InvalidExpression',
    'UnknownCell',
]
