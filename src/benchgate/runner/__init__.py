"""Benchmark execution backends.

Example:
    >>> from benchgate.runner import PytestBenchmarkExecutor
    >>> executor = PytestBenchmarkExecutor(container_name="bench-runner")
    >>> collection = await executor.collect("tests/benchmarks")
"""

from __future__ import annotations

from benchgate.runner.pytest_runner import (
    CollectionResult,
    PytestBenchmarkExecutor,
    parse_collection,
)

__all__ = [
    "CollectionResult",
    "PytestBenchmarkExecutor",
    "parse_collection",
]
