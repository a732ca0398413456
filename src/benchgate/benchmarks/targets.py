"""Benchmark target configuration.

A target is one pytest benchmark function together with the policies that
decide how often it is retried and how it is compared to history.
Targets arrive either as JSON lines printed during test collection or from
a YAML targets file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator, model_validator

from benchgate.core.exceptions import ConfigurationError

RETRY_METRICS: tuple[str, ...] = ("iqr_outliers", "stddev_outliers", "iqr", "stddev")
COMPARE_METRICS: tuple[str, ...] = ("median", "max", "min", "mean")


class RetryPolicy(BaseModel):
    """Noise thresholds a run must satisfy, and how many attempts it gets.

    ``iqr`` and ``stddev`` are in milliseconds. An unset threshold is not checked.

    Attributes:
        iqr_outliers: Maximum IQR outlier rounds.
        stddev_outliers: Maximum stddev outlier rounds.
        iqr: Maximum interquartile range (ms).
        stddev: Maximum standard deviation (ms).
        max_attempts: Executions allowed before giving up (1 means no retry).
    """

    model_config = {"frozen": True}

    iqr_outliers: int | None = Field(default=None, ge=0)
    stddev_outliers: int | None = Field(default=None, ge=0)
    iqr: float | None = Field(default=None, ge=0)
    stddev: float | None = Field(default=None, ge=0)
    max_attempts: int = Field(default=1, ge=1)

    @model_validator(mode="before")
    @classmethod
    def _retry_times(cls, data: Any) -> Any:
        # Collected configs give the number of retries, not attempts.
        if isinstance(data, dict) and "times" in data:
            data = dict(data)
            times = data.pop("times")
            if "max_attempts" not in data:
                data["max_attempts"] = (times or 0) + 1
        return data

    def thresholds(self) -> dict[str, float]:
        """Configured thresholds keyed by metric name, in check order."""
        configured = {name: getattr(self, name) for name in RETRY_METRICS}
        return {name: value for name, value in configured.items() if value is not None}


class ComparePolicy(BaseModel):
    """Allowed relative slowdown per metric against the historical best.

    Thresholds are fractions (0.05 is 5%). Percentage strings such as ``"5%"``
    are accepted on input. An unset threshold is not compared.
    """

    model_config = {"frozen": True}

    median: float | None = Field(default=None, ge=0)
    max: float | None = Field(default=None, ge=0)
    min: float | None = Field(default=None, ge=0)
    mean: float | None = Field(default=None, ge=0)

    @field_validator("median", "max", "min", "mean", mode="before")
    @classmethod
    def _parse_percent(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            if not text.endswith("%"):
                msg = f"compare threshold must be a percentage like '5%', got {value!r}"
                raise ValueError(msg)
            try:
                return float(text[:-1]) / 100
            except ValueError as e:
                msg = f"invalid percentage: {value!r}"
                raise ValueError(msg) from e
        return value

    def thresholds(self) -> dict[str, float]:
        """Configured thresholds keyed by metric name, in compare order."""
        configured = {name: getattr(self, name) for name in COMPARE_METRICS}
        return {name: value for name, value in configured.items() if value is not None}


class TargetConfig(BaseModel):
    """One benchmark target and its policies.

    Attributes:
        func_name: Benchmark test function.
        file_name: Test file containing the function.
        compare: Regression thresholds against the historical best.
        retry: Noise thresholds and attempt budget.
        device_tag: Prefix of the benchmark id, naming the hardware slot.

    Example:
        >>> target = TargetConfig.model_validate_json(
        ...     '{"func_name": "test_matmul", "file_name": "bench/test_ops.py",'
        ...     ' "compare": {"median": "5%"}, "retry": {"stddev": 2, "times": 2}}'
        ... )
        >>> target.test_node
        'bench/test_ops.py::test_matmul'
        >>> target.retry.max_attempts
        3
    """

    model_config = {"frozen": True}

    func_name: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    compare: ComparePolicy = Field(default_factory=ComparePolicy)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    device_tag: str = Field(default="1-gpu", min_length=1)

    @field_validator("compare", "retry", mode="before")
    @classmethod
    def _null_policy(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return ComparePolicy() if info.field_name == "compare" else RetryPolicy()
        return value

    @property
    def test_node(self) -> str:
        """Pytest node id of the target."""
        return f"{self.file_name}::{self.func_name}"

    @property
    def benchmark_id(self) -> str:
        """Identifier used for result directories and object keys."""
        return f"{self.device_tag}-{self.func_name}"


def parse_target(line: str) -> TargetConfig:
    """Parse one collected target JSON document.

    Raises:
        ConfigurationError: If the document is not a valid target.
    """
    try:
        return TargetConfig.model_validate_json(line)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid benchmark target {line!r}: {e}") from e


def load_targets(path: Path | str) -> list[TargetConfig]:
    """Load targets from a YAML file.

    The file holds a ``targets`` list (or a bare list) of target mappings.

    Args:
        path: Path to the YAML file.

    Returns:
        Targets in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigurationError: If an entry is invalid.
    """
    import yaml

    path = Path(path)
    if not path.exists():
        msg = f"Targets file not found: {path}"
        raise FileNotFoundError(msg)

    data = yaml.safe_load(path.read_text())
    if data is None:
        return []
    entries = data.get("targets", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path}: 'targets' must be a list")

    targets: list[TargetConfig] = []
    for index, entry in enumerate(entries):
        try:
            targets.append(TargetConfig.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationError(f"{path}: invalid target #{index + 1}: {e}") from e
    return targets
