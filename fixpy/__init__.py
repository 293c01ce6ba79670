"""
fixpy: Declarative Fixpoint Equations
=====================================

A small engine for numeric quantities defined in terms of themselves.

Core Components:
    - core: immutable expression nodes, builder functions, cells, errors
    - runtime: evaluation cache, evaluator, pattern dispatch and the
      bounded fixed-point iteration loop

Usage:
    >>> import fixpy
    >>> x = fixpy.declare_cell(1.0, name='x')
    >>> fixpy.define_self_equation(x, fixpy.div(fixpy.add(x, fixpy.div(2, x)), 2))
    >>> fixpy.iterate(x)
    1.4142156862745097

    >>> f = fixpy.declare_cell(0.0, name='f')
    >>> n = fixpy.parameter_variable()
    >>> fixpy.define_parametrized_equation(f, 0, 1)
    >>> fixpy.define_parametrized_equation(f, fixpy.WILDCARD, n * f(n - 1))
    >>> fixpy.evaluate(f(5))
    120.0
"""

__version__ = "1.0.0"

from fixpy.core.builder import (
    constant,
    reference_to,
    add,
    sub,
    mul,
    div,
    ceil_of,
    floor_of,
    parameter_constant,
    parameter_variable,
    parameter_add,
    parameter_sub,
    parameter_mul,
    equation,
    next_layer,
)
from fixpy.core.expressions import (
    ExpressionNode,
    CellHandle,
    Equation,
    NextLayer,
    WILDCARD,
    render,
)
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
from fixpy.runtime.cache import EvaluationCache
from fixpy.runtime.iteration import ConvergenceResult, ConvergenceStatus
from fixpy.runtime.engine import (
    FixpointEngine,
    default_engine,
    reset_default_engine,
    declare_cell,
    define_self_equation,
    define_parametrized_equation,
    call,
    evaluate,
    iterate,
    iterate_with_report,
)
