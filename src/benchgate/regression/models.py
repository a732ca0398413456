"""Models for regression gating.

This module provides dataclasses for per-metric comparisons and the
gate verdict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MetricComparison:
    """Comparison of one metric against the historical best.

    Attributes:
        metric: Metric name (median, max, min, mean).
        best_value: Value from the historical best, in seconds.
        candidate_value: Value from the candidate run, in seconds.
        relative_change: (candidate - best) / best; positive means slower.
        threshold: Allowed relative slowdown.

    Example:
        >>> comparison = MetricComparison(
        ...     metric="median",
        ...     best_value=10.0,
        ...     candidate_value=10.6,
        ...     relative_change=0.06,
        ...     threshold=0.05,
        ... )
        >>> comparison.message
        'median slowed by 6.0% (threshold: 5.0%)'
    """

    metric: str
    best_value: float
    candidate_value: float
    relative_change: float
    threshold: float

    @property
    def passed(self) -> bool:
        return self.relative_change <= self.threshold

    @property
    def message(self) -> str:
        """Human-readable comparison message."""
        change = self.relative_change * 100
        direction = "slowed" if change > 0 else "improved"
        return f"{self.metric} {direction} by {abs(change):.1f}% (threshold: {self.threshold * 100:.1f}%)"


@dataclass
class GateVerdict:
    """Result of a regression gate evaluation.

    Attributes:
        best_name: Benchmark name of the historical best.
        candidate_name: Benchmark name of the candidate.
        comparisons: Comparisons for every configured metric.
        timestamp: When the gate was evaluated.

    Example:
        >>> verdict = gate.evaluate(best, candidate)
        >>> if not verdict.passed:
        ...     print(verdict.summary())
    """

    best_name: str
    candidate_name: str
    comparisons: list[MetricComparison] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def name_mismatch(self) -> bool:
        return self.best_name != self.candidate_name

    @property
    def failures(self) -> list[MetricComparison]:
        return [c for c in self.comparisons if not c.passed]

    @property
    def passed(self) -> bool:
        """Whether the candidate is an acceptable successor of the best."""
        return not self.name_mismatch and not self.failures

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        if self.name_mismatch:
            return f"Benchmark name mismatch: best={self.best_name!r}, candidate={self.candidate_name!r}"
        if not self.failures:
            return f"No regressions detected for {self.candidate_name}."

        lines = [f"Regressions detected for {self.candidate_name}:"]
        lines.extend(f"  [FAIL] {c.message}" for c in self.failures)
        return "\n".join(lines)
