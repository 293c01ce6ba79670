"""
Evaluation runtime: per-pass cache, pattern dispatch, fixed-point
iteration and the engine that ties them together.
"""

from fixpy.runtime.cache import EvaluationCache, CacheStats
from fixpy.runtime.pattern_matcher import PatternMatcher
from fixpy.runtime.iteration import (
    FixedPointIteration,
    ConvergenceStatus,
    ConvergenceResult,
)
from fixpy.runtime.evaluator import Evaluator
from fixpy.runtime.engine import FixpointEngine, EngineStats

__all__ = [
    'EvaluationCache',
    'CacheStats',
    'PatternMatcher',
    'FixedPointIteration',
    'ConvergenceStatus',
    'ConvergenceResult',
    'Evaluator',
    'FixpointEngine',
    'EngineStats',
]
