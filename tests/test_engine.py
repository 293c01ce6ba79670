"""
End-to-end tests for FixpointEngine and the module-level API.

Validates:
  - Newton iteration for √2 converges within tolerance
  - converged values persist and seed later iterations
  - piecewise definitions dispatch by argument
  - engine configuration, statistics and error surfacing
"""

import logging

import numpy as np
import pytest

import fixpy
from fixpy import (
    FixpointEngine,
    InvalidExpression,
    NoMatchingEquation,
    NonTerminatingIteration,
    RecursionLimit,
    UnknownCell,
    WILDCARD,
)
from fixpy.runtime.iteration import ConvergenceStatus


SQRT2 = 1.41421356


class TestSelfEquations:
    def setup_method(self):
        self.engine = FixpointEngine()
        self.x = self.engine.declare_cell(1.0, name='x')
        self.engine.define_self_equation(
            self.x, fixpy.div(fixpy.add(self.x, fixpy.div(2, self.x)), 2)
        )

    def test_newton_sqrt2(self):
        value = self.engine.iterate(self.x)
        assert abs(value - SQRT2) <= 0.02

    def test_converged_value_persists(self):
        value = self.engine.iterate(self.x)
        assert self.engine.value_of(self.x) == value

    def test_second_iteration_starts_from_converged_value(self):
        self.engine.iterate(self.x)
        first = self.engine.last_convergence(self.x)
        self.engine.iterate(self.x)
        second = self.engine.last_convergence(self.x)
        assert second.initial_value == first.final_value
        assert second.iterations == 1

    def test_iterate_with_report(self):
        result = self.engine.iterate_with_report(self.x)
        assert result.status is ConvergenceStatus.CONVERGED
        assert result.cell == 'x'
        assert result.values_history[0] == 1.0
        assert abs(result.final_value - SQRT2) <= 0.02

    def test_evaluate_next_layer_node_directly(self):
        layer = self.engine.cell(self.x).self_equation
        assert abs(self.engine.evaluate(layer) - SQRT2) <= 0.02

    def test_iterate_without_self_equation(self):
        y = self.engine.declare_cell(0.0)
        with pytest.raises(InvalidExpression):
            self.engine.iterate(y)

    def test_self_equation_for_other_cell_rejected(self):
        y = self.engine.declare_cell(0.0)
        cell = self.engine.cell(self.x)
        with pytest.raises(InvalidExpression):
            cell.set_self_equation(fixpy.next_layer(y, y * 0.5))

    def test_redefining_replaces_self_equation(self):
        self.engine.define_self_equation(self.x, self.x / 2 + 1)
        assert abs(self.engine.iterate(self.x) - 2.0) <= 0.02


class TestParametrizedEquations:
    def setup_method(self):
        self.engine = FixpointEngine()
        self.f = self.engine.declare_cell(0.0, name='f')

    def test_precedence(self):
        self.engine.define_parametrized_equation(self.f, fixpy.parameter_constant(0), 1.5)
        self.engine.define_parametrized_equation(self.f, WILDCARD, 2.5)
        assert self.engine.evaluate(self.engine.call(self.f, fixpy.parameter_constant(0))) == 1.5
        assert self.engine.evaluate(self.engine.call(self.f, fixpy.parameter_constant(5))) == 2.5

    def test_no_fallback(self):
        self.engine.define_parametrized_equation(self.f, 0, 1.0)
        with pytest.raises(NoMatchingEquation):
            self.engine.evaluate(self.engine.call(self.f, 1))

    def test_factorial(self):
        n = fixpy.parameter_variable()
        self.engine.define_parametrized_equation(self.f, 0, 1)
        self.engine.define_parametrized_equation(self.f, WILDCARD, n * self.f(n - 1))
        assert self.engine.evaluate(self.f(5)) == 120

    def test_ceil_halving_recurrence(self):
        # f(1) = 0, f(n) = f(ceil(n / 2)) + 1: number of halvings to reach 1
        n = fixpy.parameter_variable()
        self.engine.define_parametrized_equation(self.f, 1, 0)
        self.engine.define_parametrized_equation(
            self.f, WILDCARD, self.f(fixpy.ceil_of(n / 2)) + 1
        )
        assert self.engine.evaluate(self.f(8)) == 3
        assert self.engine.evaluate(self.f(9)) == 4

    def test_register_prebuilt_equation(self):
        eq = self.engine.register(fixpy.equation(self.f, WILDCARD, 4))
        assert self.engine.cell(self.f).equations == [eq]
        with pytest.raises(InvalidExpression):
            self.engine.register(fixpy.constant(1))

    def test_evaluate_with_bound_parameter(self):
        n = fixpy.parameter_variable()
        assert self.engine.evaluate(n * 3, parameter=4) == 12

    def test_describe(self):
        self.engine.define_parametrized_equation(self.f, 0, 1)
        self.engine.define_parametrized_equation(self.f, WILDCARD, 2)
        assert self.engine.describe(self.f) == "f(0) = 1\nf(n) = 2"

    def test_iteration_inside_call(self):
        # g(n) iterates x := (x + n / x) / 2, i.e. √n
        x = self.engine.declare_cell(1.0, name='x')
        n = fixpy.parameter_variable()
        self.engine.define_parametrized_equation(
            self.f, WILDCARD, fixpy.next_layer(x, (x + n / x) / 2)
        )
        assert abs(self.engine.evaluate(self.f(9)) - 3.0) <= 0.02
        assert abs(self.engine.value_of(x) - 3.0) <= 0.02


class TestConfiguration:
    def test_defaults(self):
        engine = FixpointEngine()
        assert engine.threshold == 0.01
        assert engine.max_iterations == FixpointEngine.DEFAULT_MAX_ITERATIONS
        assert engine.time_limit is None
        assert engine.dtype is np.float64

    def test_float32(self):
        engine = FixpointEngine(dtype=np.float32)
        x = engine.declare_cell(1.0)
        assert isinstance(engine.value_of(x), np.float32)
        assert isinstance(engine.evaluate(x + 1), np.float32)

    def test_rejects_integer_dtype(self):
        with pytest.raises(ValueError):
            FixpointEngine(dtype=np.int64)

    def test_tight_threshold(self):
        engine = FixpointEngine(threshold=1e-12)
        x = engine.declare_cell(1.0)
        engine.define_self_equation(x, (x + 2 / x) / 2)
        assert abs(engine.iterate(x) - 2 ** 0.5) < 1e-12

    def test_iteration_bound(self):
        engine = FixpointEngine(max_iterations=10)
        x = engine.declare_cell(0.0, name='x')
        engine.define_self_equation(x, x + 1)
        with pytest.raises(NonTerminatingIteration) as info:
            engine.iterate(x)
        assert info.value.cell == x
        assert engine.last_convergence(x).iterations == 10
        assert "x" in str(info.value)

    def test_debug_records_for_convergence(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='fixpy'):
            engine = FixpointEngine()
            x = engine.declare_cell(1.0, name='x')
            engine.define_self_equation(x, (x + 2 / x) / 2)
            engine.iterate(x)
        assert any("converged" in record.getMessage() for record in caplog.records)

    def test_enable_logging_configures_debug_output(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, 'basicConfig', lambda **kwargs: calls.append(kwargs))
        FixpointEngine()
        assert calls == []
        FixpointEngine(enable_logging=True)
        assert calls == [{'level': logging.DEBUG}]


class TestErrorsAndStats:
    def setup_method(self):
        self.engine = FixpointEngine()

    def test_unknown_cell_from_other_engine(self):
        other = FixpointEngine().declare_cell(1.0)
        with pytest.raises(UnknownCell):
            self.engine.evaluate(other)
        with pytest.raises(UnknownCell):
            self.engine.define_self_equation(other, other * 0.5)

    def test_lookup_by_name(self):
        x = self.engine.declare_cell(2.0, name='x')
        assert self.engine.lookup('x') == x
        with pytest.raises(UnknownCell):
            self.engine.lookup('missing')

    def test_all_errors_are_fixpoint_errors(self):
        for exc in (
            InvalidExpression,
            NoMatchingEquation,
            NonTerminatingIteration,
            RecursionLimit,
            UnknownCell,
        ):
            assert issubclass(exc, fixpy.FixpointError)

    def test_failed_pass_leaves_no_partial_result(self):
        f = self.engine.declare_cell(0.0)
        self.engine.define_parametrized_equation(f, 0, 1)
        with pytest.raises(NoMatchingEquation):
            self.engine.evaluate(f(0) + f(1))
        assert self.engine.get_stats()['failures'] == 1

    def test_stats(self):
        x = self.engine.declare_cell(1.0)
        self.engine.define_self_equation(x, (x + 2 / x) / 2)
        self.engine.iterate(x)
        self.engine.evaluate(x * x)
        stats = self.engine.get_stats()
        assert stats['cells'] == 1
        assert stats['evaluations'] == 2
        assert stats['failures'] == 0
        assert stats['iterations'] == self.engine.last_convergence(x).iterations
        assert stats['cache_misses'] == 2
        assert stats['cache_hits'] > 0


class TestModuleLevelAPI:
    def setup_method(self):
        fixpy.reset_default_engine()

    def test_arithmetic_and_rounding(self):
        assert fixpy.evaluate(fixpy.div(fixpy.constant(6), fixpy.constant(3))) == 2
        assert fixpy.evaluate(fixpy.ceil_of(fixpy.constant(2.5))) == 3
        assert fixpy.evaluate(fixpy.floor_of(fixpy.constant(2.5))) == 2

    def test_newton_sqrt2(self):
        x = fixpy.declare_cell(1.0)
        fixpy.define_self_equation(
            x, fixpy.div(fixpy.add(fixpy.reference_to(x), fixpy.div(2, x)), 2)
        )
        assert abs(fixpy.iterate(x) - SQRT2) <= 0.02
        assert fixpy.iterate_with_report(x).converged

    def test_piecewise(self):
        f = fixpy.declare_cell(0.0)
        fixpy.define_parametrized_equation(f, fixpy.parameter_constant(0), 10)
        fixpy.define_parametrized_equation(f, fixpy.parameter_variable(), 20)
        assert fixpy.evaluate(fixpy.call(f, 0)) == 10
        assert fixpy.evaluate(fixpy.call(f, 5)) == 20

    def test_reset_invalidates_old_handles(self):
        x = fixpy.declare_cell(1.0)
        fixpy.reset_default_engine()
        with pytest.raises(UnknownCell):
            fixpy.evaluate(x)

    def test_default_engine(self):
        engine = fixpy.reset_default_engine(threshold=0.5)
        assert fixpy.default_engine() is engine
        assert engine.threshold == 0.5
