"""Benchmark gating module for benchgate.

This module provides tools for executing benchmark targets, checking their
noise, gating them against the stored historical best and maintaining
that history.

Example:
    >>> from benchgate.benchmarks import BenchmarkOrchestrator, MemoryObjectStore
    >>>
    >>> orchestrator = BenchmarkOrchestrator(MemoryObjectStore(), executor, context)
    >>> results = await orchestrator.run_batch(targets)
"""

from __future__ import annotations

from benchgate.benchmarks.history import BenchmarkHistory
from benchgate.benchmarks.models import BenchmarkArtifact, BenchmarkRun, StatsRecord, parse_artifact
from benchgate.benchmarks.orchestrator import BenchmarkOrchestrator, TargetResult, TargetState
from benchgate.benchmarks.stability import (
    AttemptState,
    StabilityReport,
    StabilityRunner,
    ThresholdCheck,
    ThresholdOutcome,
)
from benchgate.benchmarks.storage import (
    HTTPObjectStore,
    LocalObjectStore,
    MemoryObjectStore,
    ObjectStoreProtocol,
)
from benchgate.benchmarks.targets import ComparePolicy, RetryPolicy, TargetConfig, load_targets

__all__ = [
    "AttemptState",
    "BenchmarkArtifact",
    "BenchmarkHistory",
    "BenchmarkOrchestrator",
    "BenchmarkRun",
    "ComparePolicy",
    "HTTPObjectStore",
    "LocalObjectStore",
    "MemoryObjectStore",
    "ObjectStoreProtocol",
    "RetryPolicy",
    "StabilityReport",
    "StabilityRunner",
    "StatsRecord",
    "TargetConfig",
    "TargetResult",
    "TargetState",
    "ThresholdCheck",
    "ThresholdOutcome",
    "load_targets",
    "parse_artifact",
]
