"""Regression gate for benchmark statistics.

This module provides the RegressionGate class, which decides whether a new
run is an acceptable successor of the stored historical best.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from benchgate.regression.models import GateVerdict, MetricComparison

if TYPE_CHECKING:
    from benchgate.benchmarks.models import StatsRecord
    from benchgate.benchmarks.targets import ComparePolicy

logger = logging.getLogger(__name__)


def relative_change(best: float, candidate: float) -> float:
    """Relative slowdown of ``candidate`` against ``best``.

    A zero best gives 0.0 when the candidate is also zero and infinity otherwise.
    """
    if best == 0:
        return 0.0 if candidate == 0 else math.inf
    return (candidate - best) / best


class RegressionGate:
    """Compare a candidate StatsRecord against the historical best.

    Lower is better for every compared metric. A metric fails when the
    candidate is slower than the best by more than its threshold; metrics
    without a threshold are ignored, so an empty policy always passes.
    Records with different benchmark names fail closed.

    Attributes:
        policy: Per-metric relative slowdown thresholds.

    Example:
        >>> gate = RegressionGate(ComparePolicy(median="5%"))
        >>> verdict = gate.evaluate(best, candidate)
        >>> verdict.passed
        True
    """

    def __init__(self, policy: ComparePolicy | None = None) -> None:
        """Initialize the gate.

        Args:
            policy: Compare policy. Defaults to no thresholds.
        """
        from benchgate.benchmarks.targets import ComparePolicy

        self.policy = policy or ComparePolicy()

    def evaluate(self, best: StatsRecord, candidate: StatsRecord) -> GateVerdict:
        """Gate a candidate against the historical best.

        Args:
            best: The stored historical best.
            candidate: The new run.

        Returns:
            GateVerdict with a comparison per configured metric.
        """
        logger.info(f"[compare] - best stats {best.model_dump_json()}")
        logger.info(f"[compare] - cmp stats {candidate.model_dump_json()}")
        verdict = GateVerdict(best_name=best.name, candidate_name=candidate.name)

        if verdict.name_mismatch:
            logger.info(f"[compare] - failed: name {candidate.name!r} != {best.name!r}")
            return verdict

        for metric, threshold in self.policy.thresholds().items():
            best_value = getattr(best, metric)
            candidate_value = getattr(candidate, metric)

            comparison = MetricComparison(
                metric=metric,
                best_value=best_value,
                candidate_value=candidate_value,
                relative_change=relative_change(best_value, candidate_value),
                threshold=threshold,
            )
            if comparison.passed:
                logger.info(f"[compare] - done {comparison.relative_change}({metric}) <= {threshold}")
            else:
                logger.info(f"[compare] - failed {comparison.relative_change}({metric}) > {threshold}")
            verdict.comparisons.append(comparison)

        return verdict
