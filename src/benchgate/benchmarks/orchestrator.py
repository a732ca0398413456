"""Benchmark orchestration.

This module provides BenchmarkOrchestrator, which drives targets through
execution, artifact publishing, regression gating and baseline seeding.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from benchgate.benchmarks.models import parse_artifact
from benchgate.benchmarks.stability import DEFAULT_STABILITY_ATTEMPTS, StabilityRunner
from benchgate.core.exceptions import (
    NameMismatchError,
    RegressionDetectedError,
    StorageError,
    ThresholdExceededError,
)
from benchgate.regression import RegressionGate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from benchgate.benchmarks.models import BenchmarkRun, StatsRecord
    from benchgate.benchmarks.stability import StabilityReport, ThresholdOutcome
    from benchgate.benchmarks.storage import ObjectStoreProtocol
    from benchgate.benchmarks.targets import TargetConfig
    from benchgate.core.context import RunContext
    from benchgate.core.protocols import ExecutorProtocol
    from benchgate.regression import GateVerdict

logger = logging.getLogger(__name__)

DEFAULT_STABILITY_LOG = "benchmark_stability.jsonl"


class TargetState(str, Enum):
    """Terminal state of a target that did not fail."""

    PASSED = "passed"
    BASELINE_RECORDED = "baseline_recorded"


@dataclass
class TargetResult:
    """Outcome of one target.

    Failed targets raise instead of returning a result.

    Attributes:
        target: Test node of the target.
        benchmark_id: Identifier used in object keys.
        state: PASSED or BASELINE_RECORDED.
        record: Statistics of the published run (None when skipped).
        verdict: Regression gate verdict, when the gate ran.
        thresholds: Threshold-retry outcome (normal mode).
        stability: Stability report (debug mode).
        skipped: True when debug mode found the target already assessed.
    """

    target: str
    benchmark_id: str
    state: TargetState
    record: StatsRecord | None = None
    verdict: GateVerdict | None = None
    thresholds: ThresholdOutcome | None = None
    stability: StabilityReport | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON output."""
        return {
            "target": self.target,
            "benchmark_id": self.benchmark_id,
            "state": self.state.value,
            "skipped": self.skipped,
            "attempts": self.thresholds.attempts if self.thresholds else None,
            "stats": self.record.model_dump() if self.record else None,
            "gate": self.verdict.summary() if self.verdict else None,
            "stability": self.stability.to_dict() if self.stability else None,
        }


class BenchmarkOrchestrator:
    """Drive benchmark targets through stability checks and regression gating.

    For each target:
    1. Fetch the historical best (a store failure counts as "no baseline").
    2. Execute: stability mode in debug mode, threshold-retry mode otherwise.
    3. Publish the run's attachments and raw artifact under the run prefix.
    4. Gate against the historical best (normal mode only).
    5. Seed the historical best when none exists.

    The stored best is never rewritten once it exists. Targets run strictly
    sequentially and the first failure aborts the batch.

    Attributes:
        store: Object store holding history and run archives.
        context: Run context used to build object keys.
        debug_mode: Assess stability instead of gating.
        stability_log: JSON-lines file of debug assessments.
        stability_attempts: Executions per target in debug mode.

    Example:
        >>> orchestrator = BenchmarkOrchestrator(store, executor, context)
        >>> results = await orchestrator.run_batch(targets)
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        executor: ExecutorProtocol,
        context: RunContext,
        *,
        debug_mode: bool = False,
        stability_log: str | Path = DEFAULT_STABILITY_LOG,
        stability_attempts: int = DEFAULT_STABILITY_ATTEMPTS,
    ) -> None:
        self.store = store
        self.context = context
        self.debug_mode = debug_mode
        self.stability_log = Path(stability_log)
        self.stability_attempts = stability_attempts
        self.runner = StabilityRunner(executor)

    async def fetch_best(self, target: TargetConfig) -> StatsRecord | None:
        """Fetch the historical best of a target.

        Returns:
            The stored best record, or None when absent or the store is unavailable.

        Raises:
            MalformedArtifactError: If the stored best is not a valid artifact.
        """
        key = self.context.best_key(target.benchmark_id)
        try:
            payload = await self.store.get(key)
        except StorageError as e:
            logger.warning(f"Historical best unavailable for {target.benchmark_id}, treating as absent: {e}")
            return None
        if payload is None:
            logger.info(f"[best] none stored at {key}")
            return None
        return parse_artifact(payload, source=key).first_record()

    def _already_assessed(self, target: TargetConfig) -> bool:
        if not self.stability_log.exists():
            return False
        for line in self.stability_log.read_text().splitlines():
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring invalid line in {self.stability_log}: {e}")
                continue
            if isinstance(entry, dict) and entry.get("target") == target.test_node:
                return True
        return False

    def _append_stability_log(self, report: StabilityReport) -> None:
        self.stability_log.parent.mkdir(parents=True, exist_ok=True)
        with self.stability_log.open("a") as f:
            f.write(json.dumps(report.to_dict()) + "\n")

    async def publish_run(self, target: TargetConfig, run: BenchmarkRun) -> None:
        """Upload a run's attachments and raw artifact under the run prefix.

        Raises:
            StorageError: If an upload fails.
        """
        for attachment in run.attachments:
            logger.info(f"[file] {attachment.name}")
            await self.store.put(self.context.attachment_key(attachment.name), attachment.read_bytes())
        await self.store.put(self.context.run_key(target.benchmark_id), run.payload)

    async def _execute(self, target: TargetConfig) -> tuple[BenchmarkRun | None, TargetResult]:
        result = TargetResult(target=target.test_node, benchmark_id=target.benchmark_id, state=TargetState.PASSED)

        if self.debug_mode:
            if self._already_assessed(target):
                logger.info(f"[stability] {target.test_node} already assessed in {self.stability_log}, skipping")
                result.skipped = True
                return None, result
            report = await self.runner.assess_stability(target, self.stability_attempts)
            self._append_stability_log(report)
            result.stability = report
            run = report.last_run
        else:
            outcome = await self.runner.assess_thresholds(target)
            if not outcome.succeeded:
                raise ThresholdExceededError(target.test_node, outcome.attempts, outcome.failed_metrics)
            result.thresholds = outcome
            run = outcome.run

        if run is not None:
            result.record = run.record
        return run, result

    async def run_target(self, target: TargetConfig) -> TargetResult:
        """Run one target to a terminal state.

        Args:
            target: The benchmark target.

        Returns:
            TargetResult with state PASSED or BASELINE_RECORDED.

        Raises:
            ThresholdExceededError: If no attempt met the retry thresholds.
            RegressionDetectedError: If the run regressed against the best.
            NameMismatchError: If the run and the best name different benchmarks.
            MalformedArtifactError: If a benchmark artifact is invalid.
            StorageError: If publishing fails.
        """
        best = await self.fetch_best(target)

        run, result = await self._execute(target)
        if run is None:
            return result
        logger.info(f"[task] {target.test_node} benchmark success")

        await self.publish_run(target, run)

        if best is not None:
            if self.debug_mode:
                return result
            gate = RegressionGate(target.compare)
            verdict = gate.evaluate(best, run.record)
            result.verdict = verdict
            if verdict.name_mismatch:
                raise NameMismatchError(target.test_node, verdict.best_name, verdict.candidate_name)
            if not verdict.passed:
                metrics = [comparison.metric for comparison in verdict.failures]
                raise RegressionDetectedError(target.test_node, metrics, verdict.summary())
            logger.info(f"[compare] {target.test_node} passed against historical best")
            return result

        await self.store.put(self.context.best_key(target.benchmark_id), run.payload)
        logger.info(f"[best] seeded historical best for {target.benchmark_id}")
        result.state = TargetState.BASELINE_RECORDED
        return result

    async def run_batch(self, targets: Iterable[TargetConfig]) -> list[TargetResult]:
        """Run targets in order, aborting on the first failure.

        Args:
            targets: Target configurations, processed sequentially.

        Returns:
            Results of every target, in order.
        """
        results: list[TargetResult] = []
        for target in targets:
            results.append(await self.run_target(target))
        return results
