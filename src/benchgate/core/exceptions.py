"""Custom exceptions for benchgate.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchgateError for easy catching.
"""

from __future__ import annotations


class BenchgateError(Exception):
    """Base exception for all benchgate errors.

    All custom exceptions in benchgate inherit from this class,
    making it easy to catch all library-specific errors.

    Example:
        >>> try:
        ...     await orchestrator.run_batch(targets)
        ... except BenchgateError as e:
        ...     print(f"benchmark job failed: {e}")
    """


class ConfigurationError(BenchgateError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("Missing repository context: GITHUB_REPOSITORY")
    """


class StorageError(BenchgateError):
    """Raised when the object store cannot serve a request.

    Lookups of a historical best degrade to "no baseline" on this error;
    writes propagate it.

    Example:
        >>> raise StorageError("Object store error: 503 - Service Unavailable")
    """


class MalformedArtifactError(BenchgateError):
    """Raised when a benchmark JSON artifact is missing or invalid.

    Example:
        >>> raise MalformedArtifactError("benchmark_result/1-gpu-test_add/result.json: no benchmarks")
    """


class ThresholdExceededError(BenchgateError):
    """Raised when every attempt of a target exceeded its noise thresholds.

    Attributes:
        target: Test node of the failing target.
        attempts: Number of executions performed.
        metrics: Names of the metrics that failed on the last attempt.
    """

    def __init__(self, target: str, attempts: int, metrics: list[str]) -> None:
        self.target = target
        self.attempts = attempts
        self.metrics = metrics
        failed = ", ".join(metrics) or "unknown"
        super().__init__(f"[retry] task {target} benchmark failed after {attempts} attempt(s): {failed}")


class RegressionDetectedError(BenchgateError):
    """Raised when a candidate regresses against the historical best.

    Attributes:
        target: Test node of the failing target.
        metrics: Names of the metrics that regressed.
    """

    def __init__(self, target: str, metrics: list[str], detail: str = "") -> None:
        self.target = target
        self.metrics = metrics
        message = f"benchmark {target} regressed: {', '.join(metrics)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NameMismatchError(RegressionDetectedError):
    """Raised when the candidate and historical best describe different benchmarks."""

    def __init__(self, target: str, best_name: str, candidate_name: str) -> None:
        self.best_name = best_name
        self.candidate_name = candidate_name
        super().__init__(target, ["name"], f"best={best_name!r}, candidate={candidate_name!r}")
