"""pytest-benchmark executor.

This module runs benchmark targets through pytest-benchmark, optionally
inside a docker container, and collects target configurations from
``pytest --collect-only`` output.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from benchgate.benchmarks.models import BenchmarkRun, parse_artifact
from benchgate.benchmarks.targets import parse_target
from benchgate.core.exceptions import BenchgateError, MalformedArtifactError

if TYPE_CHECKING:
    from benchgate.benchmarks.targets import TargetConfig

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_RESULT_ROOT = "benchmark_result"
DEFAULT_COLLECT_MARKER = "benchmark-function::"
DEFAULT_MIN_ROUNDS = 40

_TEST_FUNCTION = re.compile(r"<Function test")


@dataclass
class CollectionResult:
    """Targets found in ``pytest --collect-only`` output.

    Attributes:
        targets: Targets parsed from marker lines, in output order.
        function_count: Test functions pytest collected.
    """

    targets: list[TargetConfig] = field(default_factory=list)
    function_count: int = 0

    @property
    def complete(self) -> bool:
        """Whether every collected test function declared a target."""
        return self.function_count == len(self.targets)


def parse_collection(output: str, marker: str = DEFAULT_COLLECT_MARKER) -> CollectionResult:
    """Parse target declarations from collection output.

    Args:
        output: Stdout of ``pytest -s --collect-only``.
        marker: Prefix of target declaration lines.

    Returns:
        CollectionResult with the declared targets.

    Raises:
        ConfigurationError: If a declaration is not a valid target.
    """
    result = CollectionResult()
    for line in output.splitlines():
        if _TEST_FUNCTION.search(line):
            result.function_count += 1
        if line.startswith(marker):
            result.targets.append(parse_target(line[len(marker) :]))
    return result


class PytestBenchmarkExecutor:
    """Run benchmark targets with pytest-benchmark.

    Implements ExecutorProtocol. Each target writes its JSON artifact and
    histogram SVGs to ``{result_root}/{benchmark_id}/``. The pytest exit code
    is ignored; the artifact decides whether the run produced data.

    Attributes:
        container_name: Docker container to exec into (None runs locally).
        result_root: Root directory of per-target result directories.
        python: Interpreter used to launch pytest.
        min_rounds: Minimum benchmark rounds.
        workdir: Working directory for pytest.

    Example:
        >>> executor = PytestBenchmarkExecutor(container_name="bench-runner")
        >>> run = await executor.run(target)
        >>> run.record.median
        0.0123
    """

    def __init__(
        self,
        container_name: str | None = None,
        result_root: str | Path = DEFAULT_RESULT_ROOT,
        python: str = "python3",
        min_rounds: int = DEFAULT_MIN_ROUNDS,
        workdir: str | Path | None = None,
    ) -> None:
        self.container_name = container_name
        self.result_root = Path(result_root)
        self.python = python
        self.min_rounds = min_rounds
        self.workdir = Path(workdir) if workdir is not None else Path.cwd()

    def result_dir(self, target: TargetConfig) -> Path:
        return self.result_root / target.benchmark_id

    def _pytest(self, *args: str) -> list[str]:
        command = [self.python, "-m", "pytest", *args]
        if self.container_name:
            return ["docker", "exec", "-w", str(self.workdir), self.container_name, *command]
        return command

    def benchmark_command(self, target: TargetConfig) -> list[str]:
        """Build the pytest-benchmark command line for a target."""
        result_dir = self.result_dir(target)
        return self._pytest(
            "-p",
            "no:randomly",
            "-p",
            "no:cacheprovider",
            "--max-worker-restart=0",
            "-x",
            "--capture=sys",
            "-v",
            f"--benchmark-json={result_dir / 'result.json'}",
            f"--benchmark-storage={result_dir}",
            "--benchmark-disable-gc",
            "--benchmark-warmup=on",
            f"--benchmark-histogram={result_dir / target.benchmark_id}",
            f"--benchmark-min-rounds={self.min_rounds}",
            target.test_node,
        )

    def collect_command(self, collect_path: str) -> list[str]:
        """Build the pytest collection command line."""
        return self._pytest("-s", "--collect-only", collect_path)

    async def _exec(self, command: list[str], capture: bool = False) -> tuple[int, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.workdir,
                stdout=asyncio.subprocess.PIPE if capture else None,
            )
        except OSError as e:
            raise BenchgateError(f"Failed to launch {command[0]}: {e}") from e
        stdout, _ = await process.communicate()
        return process.returncode or 0, (stdout or b"").decode("utf-8", errors="replace")

    async def run(self, target: TargetConfig) -> BenchmarkRun:
        """Execute a target once.

        Args:
            target: The benchmark target.

        Returns:
            BenchmarkRun with the first benchmark's stats, the raw artifact and
            the histogram SVGs.

        Raises:
            MalformedArtifactError: If pytest wrote no valid artifact.
        """
        result_dir = self.result_dir(target)
        result_dir.mkdir(parents=True, exist_ok=True)
        json_path = result_dir / "result.json"
        # A stale artifact must not pass for this attempt's result.
        json_path.unlink(missing_ok=True)

        returncode, _ = await self._exec(self.benchmark_command(target))
        if returncode != 0:
            logger.warning(f"[exec] pytest exited with {returncode} for {target.test_node}")

        if not json_path.exists():
            raise MalformedArtifactError(f"{json_path}: benchmark artifact not written for {target.test_node}")
        payload = json_path.read_bytes()
        artifact = parse_artifact(payload, source=str(json_path))
        record = artifact.first_record()
        logger.info(f"[exec] stats {record.model_dump_json()}")
        return BenchmarkRun(
            record=record,
            payload=payload,
            attachments=sorted(result_dir.glob("*.svg")),
        )

    async def collect(self, collect_path: str, marker: str = DEFAULT_COLLECT_MARKER) -> CollectionResult:
        """Collect benchmark targets declared under a path.

        Args:
            collect_path: Test path to collect.
            marker: Prefix of target declaration lines.

        Returns:
            CollectionResult; an incomplete collection is logged as an error.
        """
        logger.info(f"[task] collect pytest functions in {collect_path}")
        _, output = await self._exec(self.collect_command(collect_path), capture=True)
        result = parse_collection(output, marker)
        if not result.complete:
            logger.error(
                f"[error] benchmark declarations do not cover every test function "
                f"({len(result.targets)} declared, {result.function_count} collected)"
            )
        return result
