"""Repeated execution of benchmark targets.

This module provides the StabilityRunner, which executes a target several
times and either characterizes its noise (stability mode) or retries it until
a run satisfies the target's noise thresholds (threshold mode).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from benchgate.benchmarks.models import BenchmarkRun, StatsRecord
    from benchgate.benchmarks.targets import RetryPolicy, TargetConfig
    from benchgate.core.protocols import ExecutorProtocol

logger = logging.getLogger(__name__)

DEFAULT_STABILITY_ATTEMPTS = 5

# Rank (by ascending stddev) of the record reported as representative.
REPRESENTATIVE_RANK = 2


class AttemptState(str, Enum):
    """State of a bounded retry loop."""

    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ThresholdCheck:
    """One metric checked against its retry threshold.

    Attributes:
        metric: Metric name (iqr_outliers, stddev_outliers, iqr, stddev).
        actual: Observed value (milliseconds for iqr and stddev).
        threshold: Configured maximum.
    """

    metric: str
    actual: float
    threshold: float

    @property
    def passed(self) -> bool:
        return self.actual <= self.threshold


@dataclass
class ThresholdOutcome:
    """Result of threshold-retry mode.

    Attributes:
        target: Test node of the target.
        state: SUCCEEDED or EXHAUSTED.
        attempts: Number of executions performed.
        run: The accepted run, or the last one when exhausted.
        checks: Threshold checks of that run.
    """

    target: str
    state: AttemptState
    attempts: int
    run: BenchmarkRun | None = None
    checks: list[ThresholdCheck] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is AttemptState.SUCCEEDED

    @property
    def failed_metrics(self) -> list[str]:
        return [check.metric for check in self.checks if not check.passed]


@dataclass(frozen=True)
class StabilityReport:
    """Noise profile of a target from stability mode.

    Attributes:
        target: Test node of the target.
        representative_stddev_ms: Stddev of the median-by-stddev run, in ms.
        median_drift_percent: Absolute relative median difference between the
            two lowest-stddev runs, in percent.
        records: Records of every attempt, in execution order.
        last_run: The final run executed.
    """

    target: str
    representative_stddev_ms: float
    median_drift_percent: float
    records: list[StatsRecord] = field(default_factory=list)
    last_run: BenchmarkRun | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to the dictionary written to the stability log."""
        return {
            "target": self.target,
            "stddev": self.representative_stddev_ms,
            "median": self.median_drift_percent,
        }


def check_thresholds(record: StatsRecord, policy: RetryPolicy) -> list[ThresholdCheck]:
    """Check a record against every configured retry threshold.

    Args:
        record: Statistics of one run.
        policy: Retry policy of the target.

    Returns:
        One check per configured threshold, in policy order.
    """
    actual = {
        "iqr_outliers": float(record.iqr_outliers),
        "stddev_outliers": float(record.stddev_outliers),
        "iqr": record.iqr_ms,
        "stddev": record.stddev_ms,
    }
    return [
        ThresholdCheck(metric=metric, actual=actual[metric], threshold=threshold)
        for metric, threshold in policy.thresholds().items()
    ]


def median_drift(first: StatsRecord, second: StatsRecord) -> float:
    """Relative median difference of ``first`` against ``second``.

    Returns:
        The signed fraction, 0.0 when both medians are zero and infinity when
        only the reference median is zero.
    """
    if second.median == 0:
        return 0.0 if first.median == 0 else math.inf
    return (first.median - second.median) / second.median


class StabilityRunner:
    """Execute a benchmark target repeatedly.

    Two modes are provided:
    - assess_stability: always runs K times and reports a noise profile,
      without a verdict (diagnostic use).
    - assess_thresholds: runs until an attempt meets every configured noise
      threshold, or the attempt budget is exhausted.

    Attributes:
        executor: Executes a target once and returns its BenchmarkRun.

    Example:
        >>> runner = StabilityRunner(executor)
        >>> outcome = await runner.assess_thresholds(target)
        >>> if not outcome.succeeded:
        ...     print(outcome.failed_metrics)
    """

    def __init__(self, executor: ExecutorProtocol) -> None:
        self.executor = executor

    async def _attempts(self, target: TargetConfig, limit: int) -> AsyncIterator[tuple[int, BenchmarkRun]]:
        """Yield up to ``limit`` sequential executions of a target."""
        for attempt in range(1, limit + 1):
            logger.info(f"[exec] {attempt}:{limit} {target.test_node}")
            yield attempt, await self.executor.run(target)

    async def assess_stability(
        self,
        target: TargetConfig,
        attempts: int = DEFAULT_STABILITY_ATTEMPTS,
    ) -> StabilityReport:
        """Characterize the noise of a target.

        Runs the target ``attempts`` times unconditionally, ranks the records by
        stddev (stable for ties) and reports the stddev at rank 2 together with
        the median drift between the two lowest-stddev records.

        Args:
            target: The benchmark target.
            attempts: Number of executions, at least 3.

        Returns:
            StabilityReport for the target.

        Raises:
            ValueError: If fewer than 3 attempts are requested.
        """
        if attempts <= REPRESENTATIVE_RANK:
            msg = f"stability mode needs at least {REPRESENTATIVE_RANK + 1} attempts, got {attempts}"
            raise ValueError(msg)

        records: list[StatsRecord] = []
        last_run: BenchmarkRun | None = None
        async for _, run in self._attempts(target, attempts):
            records.append(run.record)
            last_run = run

        ranked = sorted(records, key=lambda record: record.stddev)
        drift = median_drift(ranked[0], ranked[1])
        report = StabilityReport(
            target=target.test_node,
            representative_stddev_ms=ranked[REPRESENTATIVE_RANK].stddev_ms,
            median_drift_percent=abs(drift) * 100,
            records=records,
            last_run=last_run,
        )
        logger.info(
            f"[stability] {target.test_node}: stddev={report.representative_stddev_ms:.4f}ms "
            f"median drift={report.median_drift_percent:.2f}%"
        )
        return report

    async def assess_thresholds(
        self,
        target: TargetConfig,
        policy: RetryPolicy | None = None,
    ) -> ThresholdOutcome:
        """Retry a target until a run meets its noise thresholds.

        Args:
            target: The benchmark target.
            policy: Retry policy (defaults to the target's own).

        Returns:
            ThresholdOutcome, SUCCEEDED on the first passing attempt or
            EXHAUSTED after ``policy.max_attempts`` failing ones.
        """
        policy = policy or target.retry
        outcome = ThresholdOutcome(target=target.test_node, state=AttemptState.ATTEMPTING, attempts=0)

        async for attempt, run in self._attempts(target, policy.max_attempts):
            checks = check_thresholds(run.record, policy)
            for check in checks:
                if check.passed:
                    logger.info(f"[exec] - done: {check.actual}({check.metric}) <= {check.threshold}")
                else:
                    logger.info(f"[exec] - fail: {check.actual}({check.metric}) > {check.threshold}")

            outcome = ThresholdOutcome(
                target=target.test_node,
                state=AttemptState.ATTEMPTING,
                attempts=attempt,
                run=run,
                checks=checks,
            )
            if all(check.passed for check in checks):
                outcome.state = AttemptState.SUCCEEDED
                return outcome

        outcome.state = AttemptState.EXHAUSTED
        return outcome
