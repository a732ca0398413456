"""Regression gating module for benchgate.

This module decides whether a new benchmark run regresses against the
stored historical best.

Example:
    >>> from benchgate.regression import RegressionGate
    >>> from benchgate.benchmarks.targets import ComparePolicy
    >>>
    >>> gate = RegressionGate(ComparePolicy(median="5%", max="10%"))
    >>> verdict = gate.evaluate(best, candidate)
    >>> if not verdict.passed:
    ...     print(verdict.summary())
"""

from __future__ import annotations

from benchgate.regression.gate import RegressionGate
from benchgate.regression.models import GateVerdict, MetricComparison

__all__ = [
    "GateVerdict",
    "MetricComparison",
    "RegressionGate",
]
