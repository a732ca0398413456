"""benchgate: benchmark stability checks and regression gating for CI."""

from __future__ import annotations

from benchgate.benchmarks import (
    BenchmarkHistory,
    BenchmarkOrchestrator,
    BenchmarkRun,
    ComparePolicy,
    RetryPolicy,
    StabilityRunner,
    StatsRecord,
    TargetConfig,
)
from benchgate.core.exceptions import BenchgateError
from benchgate.regression import GateVerdict, RegressionGate

__version__ = "0.3.0"
__all__ = [
    # Orchestration
    "BenchmarkHistory",
    "BenchmarkOrchestrator",
    # Models
    "BenchmarkRun",
    "StatsRecord",
    # Policies
    "ComparePolicy",
    "RetryPolicy",
    "TargetConfig",
    # Execution
    "StabilityRunner",
    # Gating
    "GateVerdict",
    "RegressionGate",
    # Errors
    "BenchgateError",
    # Version
    "__version__",
]
