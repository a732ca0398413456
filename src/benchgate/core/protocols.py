"""Protocol definitions for benchgate.

This module defines the interface benchmark executors must implement.
Using protocols keeps the stability and gating logic independent of how a
benchmark is actually launched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from benchgate.benchmarks.models import BenchmarkRun
    from benchgate.benchmarks.targets import TargetConfig


@runtime_checkable
class ExecutorProtocol(Protocol):
    """Protocol for benchmark executors.

    Any class with an async ``run`` method can execute targets, without
    needing to inherit from a base class.

    Example:
        >>> class FixedExecutor:
        ...     async def run(self, target: TargetConfig) -> BenchmarkRun:
        ...         return BenchmarkRun(record=record, payload=payload)
        ...
        >>> assert isinstance(FixedExecutor(), ExecutorProtocol)
    """

    async def run(self, target: TargetConfig) -> BenchmarkRun:
        """Execute a target once.

        Args:
            target: The benchmark target.

        Returns:
            The run's statistics, raw artifact and attachments.

        Raises:
            MalformedArtifactError: If the runner produced no valid artifact.
        """
        ...
