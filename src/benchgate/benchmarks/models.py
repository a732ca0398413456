"""Models for benchmark results.

This module provides the StatsRecord value type and the validated schema
of the JSON artifact written by pytest-benchmark.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError, model_validator

from benchgate.core.exceptions import MalformedArtifactError

if TYPE_CHECKING:
    from pathlib import Path


class StatsRecord(BaseModel):
    """Summary statistics of one benchmark execution.

    Timings are in seconds. Records are immutable once created.

    Attributes:
        name: Benchmark name as reported by the runner.
        min: Fastest round.
        max: Slowest round.
        mean: Mean round time.
        median: Median round time.
        stddev: Standard deviation of round times.
        iqr: Interquartile range of round times.
        iqr_outliers: Rounds outside 1.5 IQR.
        stddev_outliers: Rounds outside one standard deviation.

    Example:
        >>> record = StatsRecord(
        ...     name="test_matmul",
        ...     min=0.010, max=0.020, mean=0.012, median=0.011,
        ...     stddev=0.001, iqr=0.002,
        ... )
        >>> record.stddev_ms
        1.0
    """

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Benchmark name")
    min: float = Field(..., ge=0, description="Fastest round (s)")
    max: float = Field(..., ge=0, description="Slowest round (s)")
    mean: float = Field(..., ge=0, description="Mean round time (s)")
    median: float = Field(..., ge=0, description="Median round time (s)")
    stddev: float = Field(..., ge=0, description="Standard deviation (s)")
    iqr: float = Field(..., ge=0, description="Interquartile range (s)")
    iqr_outliers: int = Field(default=0, ge=0, description="Rounds outside 1.5 IQR")
    stddev_outliers: int = Field(default=0, ge=0, description="Rounds outside one stddev")

    @model_validator(mode="after")
    def _check_ordering(self) -> StatsRecord:
        if not self.min <= self.median <= self.max:
            msg = f"expected min <= median <= max, got {self.min} / {self.median} / {self.max}"
            raise ValueError(msg)
        return self

    @property
    def stddev_ms(self) -> float:
        """Standard deviation in milliseconds."""
        return self.stddev * 1000

    @property
    def iqr_ms(self) -> float:
        """Interquartile range in milliseconds."""
        return self.iqr * 1000


class BenchmarkStats(BaseModel):
    """The ``stats`` block of one pytest-benchmark entry.

    Keys not used by the gate (rounds, q1, q3, ops, data, ...) are ignored.
    """

    model_config = {"extra": "ignore"}

    min: float
    max: float
    mean: float
    median: float
    stddev: float
    iqr: float
    iqr_outliers: int = 0
    stddev_outliers: int = 0


class BenchmarkEntry(BaseModel):
    """One entry of the ``benchmarks`` list."""

    model_config = {"extra": "ignore"}

    name: str
    stats: BenchmarkStats

    def to_record(self) -> StatsRecord:
        return StatsRecord(name=self.name, **self.stats.model_dump())


class BenchmarkArtifact(BaseModel):
    """The JSON document written by ``pytest --benchmark-json``.

    Only ``benchmarks[0]`` is consulted when gating a single target.
    """

    model_config = {"extra": "ignore"}

    benchmarks: list[BenchmarkEntry] = Field(default_factory=list)

    def first_record(self) -> StatsRecord:
        """Return the StatsRecord of the first benchmark.

        Raises:
            MalformedArtifactError: If the artifact holds no benchmark.
        """
        if not self.benchmarks:
            raise MalformedArtifactError("benchmark artifact contains no benchmarks")
        try:
            return self.benchmarks[0].to_record()
        except ValidationError as e:
            raise MalformedArtifactError(f"invalid benchmark stats: {e}") from e

    def records(self) -> list[StatsRecord]:
        """Return StatsRecords for every benchmark in the artifact."""
        try:
            return [entry.to_record() for entry in self.benchmarks]
        except ValidationError as e:
            raise MalformedArtifactError(f"invalid benchmark stats: {e}") from e


def parse_artifact(payload: bytes | str, source: str = "artifact") -> BenchmarkArtifact:
    """Validate a pytest-benchmark JSON payload.

    Args:
        payload: Raw JSON document.
        source: Where the payload came from, used in error messages.

    Returns:
        The validated artifact.

    Raises:
        MalformedArtifactError: If the payload is not valid JSON, does not match
            the schema, or lists no benchmarks.
    """
    try:
        artifact = BenchmarkArtifact.model_validate_json(payload)
    except ValidationError as e:
        raise MalformedArtifactError(f"{source}: {e}") from e
    if not artifact.benchmarks:
        raise MalformedArtifactError(f"{source}: no benchmarks")
    return artifact


@dataclass(frozen=True)
class BenchmarkRun:
    """Everything one execution of a target produced.

    Attributes:
        record: Statistics of the first benchmark in the artifact.
        payload: Raw JSON artifact, archived and seeded as-is.
        attachments: Auxiliary files (histogram SVGs) written next to it.
    """

    record: StatsRecord
    payload: bytes
    attachments: list[Path] = field(default_factory=list)
