"""
Tests for first-match pattern dispatch.
"""

import pytest

from fixpy.core import builder
from fixpy.core.cells import CellArena
from fixpy.core.errors import ErrorKind, InvalidExpression, NoMatchingEquation
from fixpy.core.expressions import WILDCARD
from fixpy.runtime.pattern_matcher import PatternMatcher


class TestMatches:
    def setup_method(self):
        self.matcher = PatternMatcher()

    def test_variable_matches_anything(self):
        for argument in (0, -3, 2.5, float('nan')):
            assert self.matcher.matches(WILDCARD, argument)

    def test_constant_matches_equal_integer(self):
        zero = builder.parameter_constant(0)
        assert self.matcher.matches(zero, 0)
        assert self.matcher.matches(zero, 0.0)
        assert not self.matcher.matches(zero, 1)

    def test_non_integral_argument_never_matches_constant(self):
        two = builder.parameter_constant(2)
        assert not self.matcher.matches(two, 2.5)
        assert not self.matcher.matches(two, float('inf'))
        assert not self.matcher.matches(two, float('nan'))

    def test_composite_pattern_rejected(self):
        pattern = builder.parameter_sub(WILDCARD, 1)
        with pytest.raises(InvalidExpression):
            self.matcher.matches(pattern, 3)


class TestResolve:
    def setup_method(self):
        self.arena = CellArena()
        self.f = self.arena.declare(0.0, name='f')
        self.cell = self.arena.resolve(self.f)
        self.matcher = PatternMatcher()

    def _register(self, pattern, body):
        eq = builder.equation(self.f, pattern, body)
        self.cell.append_equation(eq)
        return eq

    def test_constant_takes_precedence_when_registered_first(self):
        body_a = self._register(0, 10)
        body_b = self._register(WILDCARD, 20)
        assert self.matcher.resolve(self.cell, 0) is body_a
        assert self.matcher.resolve(self.cell, 5) is body_b

    def test_first_match_wins_in_insertion_order(self):
        fallback = self._register(WILDCARD, 20)
        self._register(0, 10)
        assert self.matcher.resolve(self.cell, 0) is fallback

    def test_no_match_is_explicit(self):
        self._register(0, 10)
        with pytest.raises(NoMatchingEquation) as info:
            self.matcher.resolve(self.cell, 1)
        assert info.value.kind is ErrorKind.NO_MATCHING_EQUATION
        assert info.value.cell == self.f
        assert info.value.argument == 1
        assert info.value.equation_count == 1

    def test_empty_cell_has_no_match(self):
        with pytest.raises(NoMatchingEquation):
            self.matcher.resolve(self.cell, 0)

    def test_candidates_lists_all_matches(self):
        zero = self._register(0, 10)
        one = self._register(1, 11)
        fallback = self._register(WILDCARD, 20)
        assert self.matcher.candidates(self.cell, 0) == [zero, fallback]
        assert self.matcher.candidates(self.cell, 1) == [one, fallback]
        assert self.matcher.candidates(self.cell, 7) == [fallback]

    def test_equation_for_other_cell_rejected(self):
        g = self.arena.declare(0.0, name='g')
        with pytest.raises(InvalidExpression):
            self.cell.append_equation(builder.equation(g, 0, 1))
