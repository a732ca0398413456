"""Shared fixtures for benchgate unit tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from benchgate.benchmarks.models import BenchmarkRun, StatsRecord
from benchgate.benchmarks.targets import TargetConfig
from benchgate.core.context import RunContext


def _record(name: str = "test_matmul", median: float = 0.010, stddev: float = 0.001, **overrides: Any) -> StatsRecord:
    fields: dict[str, Any] = {
        "name": name,
        "min": median * 0.5,
        "max": median * 2,
        "mean": median * 1.1,
        "median": median,
        "stddev": stddev,
        "iqr": stddev,
        "iqr_outliers": 0,
        "stddev_outliers": 0,
    }
    fields.update(overrides)
    return StatsRecord(**fields)


def render_artifact(record: StatsRecord) -> bytes:
    """Render a single-benchmark pytest-benchmark document for a record."""
    document = {"benchmarks": [{"name": record.name, "stats": record.model_dump(exclude={"name"})}]}
    return json.dumps(document, indent=4).encode("utf-8")


def make_run(record: StatsRecord) -> BenchmarkRun:
    """Build a run whose payload is rendered from the record alone."""
    return BenchmarkRun(record=record, payload=render_artifact(record))


@pytest.fixture
def make_record() -> Callable[..., StatsRecord]:
    """Factory for StatsRecords built around a median."""
    return _record


@pytest.fixture
def context() -> RunContext:
    """Run context for a pull request run."""
    return RunContext(owner="acme", repo="engine", pr_number=42, sha="abc123", run_id="1001")


@pytest.fixture
def target() -> TargetConfig:
    """Target with a median compare threshold and a stddev retry threshold."""
    return TargetConfig(
        func_name="test_matmul",
        file_name="bench/test_ops.py",
        compare={"median": "5%"},
        retry={"stddev": 2.0, "times": 2},
    )
