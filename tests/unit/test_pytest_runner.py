"""Tests for the pytest-benchmark executor."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from benchgate.benchmarks.targets import TargetConfig
from benchgate.core.exceptions import BenchgateError, ConfigurationError, MalformedArtifactError
from benchgate.core.protocols import ExecutorProtocol
from benchgate.runner import PytestBenchmarkExecutor, parse_collection

from conftest import render_artifact

COLLECT_OUTPUT = """\
============================= test session starts ==============================
collecting ...
benchmark-function::{"func_name": "test_add", "file_name": "bench/test_ops.py", "compare": {"median": "5%"}, "retry": null}
benchmark-function::{"func_name": "test_mul", "file_name": "bench/test_ops.py", "compare": null, "retry": {"stddev": 1, "times": 2}}
<Module bench/test_ops.py>
  <Function test_add>
  <Function test_mul>
  <Function test_div>
"""


class TestParseCollection:
    """Tests for parse_collection."""

    def test_parses_marker_lines(self) -> None:
        result = parse_collection(COLLECT_OUTPUT)

        assert [t.func_name for t in result.targets] == ["test_add", "test_mul"]
        assert result.targets[1].retry.max_attempts == 3
        assert result.function_count == 3
        assert not result.complete

    def test_complete_collection(self) -> None:
        output = COLLECT_OUTPUT.replace("  <Function test_div>\n", "")

        assert parse_collection(output).complete

    def test_custom_marker(self) -> None:
        output = 'bench::{"func_name": "test_add", "file_name": "t.py"}\n<Function test_add>\n'

        result = parse_collection(output, marker="bench::")

        assert result.complete
        assert result.targets[0].test_node == "t.py::test_add"

    def test_invalid_declaration(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_collection("benchmark-function::{not json}\n")

    def test_compare_without_percent_aborts_collection(self) -> None:
        """One declaration with a bare compare number rejects the whole collection."""
        bad = 'benchmark-function::{"func_name": "test_div", "file_name": "t.py", "compare": {"median": "5"}}\n'

        with pytest.raises(ConfigurationError, match="test_div"):
            parse_collection(COLLECT_OUTPUT + bad)


class TestExec:
    """Tests for the subprocess wrapper."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self, tmp_path: Path) -> None:
        executor = PytestBenchmarkExecutor(workdir=tmp_path)

        returncode, output = await executor._exec([sys.executable, "-c", "print('x')"], capture=True)

        assert returncode == 0
        assert output.strip() == "x"

    @pytest.mark.asyncio
    async def test_returns_exit_code(self, tmp_path: Path) -> None:
        executor = PytestBenchmarkExecutor(workdir=tmp_path)

        returncode, output = await executor._exec([sys.executable, "-c", "import sys; sys.exit(3)"])

        assert returncode == 3
        assert output == ""

    @pytest.mark.asyncio
    async def test_missing_program(self, tmp_path: Path) -> None:
        """A command that cannot be launched raises BenchgateError."""
        executor = PytestBenchmarkExecutor(workdir=tmp_path)

        with pytest.raises(BenchgateError, match="Failed to launch"):
            await executor._exec([str(tmp_path / "no-such-program")])


class TestCommands:
    """Tests for command construction."""

    def test_benchmark_command_local(self, target: TargetConfig) -> None:
        executor = PytestBenchmarkExecutor(result_root="results", workdir="/work")

        command = executor.benchmark_command(target)

        assert command[:3] == ["python3", "-m", "pytest"]
        assert "--benchmark-json=results/1-gpu-test_matmul/result.json" in command
        assert "--benchmark-storage=results/1-gpu-test_matmul" in command
        assert "--benchmark-histogram=results/1-gpu-test_matmul/1-gpu-test_matmul" in command
        assert "--benchmark-min-rounds=40" in command
        assert command[-1] == "bench/test_ops.py::test_matmul"

    def test_benchmark_command_in_container(self, target: TargetConfig) -> None:
        """A container name wraps the command in docker exec."""
        executor = PytestBenchmarkExecutor(container_name="bench", workdir="/work")

        command = executor.benchmark_command(target)

        assert command[:5] == ["docker", "exec", "-w", "/work", "bench"]
        assert command[5:8] == ["python3", "-m", "pytest"]

    def test_collect_command(self) -> None:
        executor = PytestBenchmarkExecutor()

        assert executor.collect_command("bench") == ["python3", "-m", "pytest", "-s", "--collect-only", "bench"]

    def test_implements_protocol(self) -> None:
        assert isinstance(PytestBenchmarkExecutor(), ExecutorProtocol)


class TestRun:
    """Tests for PytestBenchmarkExecutor.run."""

    @pytest.mark.asyncio
    async def test_reads_artifact_and_svgs(
        self, make_record, target: TargetConfig, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The artifact written by pytest becomes the run."""
        executor = PytestBenchmarkExecutor(result_root=tmp_path)
        record = make_record()
        commands: list[list[str]] = []

        async def fake_exec(command: list[str], capture: bool = False) -> tuple[int, str]:
            commands.append(command)
            result_dir = tmp_path / target.benchmark_id
            (result_dir / "result.json").write_bytes(render_artifact(record))
            (result_dir / "1-gpu-test_matmul-test_matmul.svg").write_text("<svg/>")
            return 0, ""

        monkeypatch.setattr(executor, "_exec", fake_exec)

        run = await executor.run(target)

        assert len(commands) == 1
        assert run.record == record
        assert json.loads(run.payload)["benchmarks"][0]["name"] == "test_matmul"
        assert [p.name for p in run.attachments] == ["1-gpu-test_matmul-test_matmul.svg"]

    @pytest.mark.asyncio
    async def test_stale_artifact_removed(
        self, make_record, target: TargetConfig, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An artifact left by a previous attempt is not reused."""
        executor = PytestBenchmarkExecutor(result_root=tmp_path)
        result_dir = tmp_path / target.benchmark_id
        result_dir.mkdir(parents=True)
        (result_dir / "result.json").write_bytes(render_artifact(make_record()))

        async def failing_exec(command: list[str], capture: bool = False) -> tuple[int, str]:
            return 1, ""

        monkeypatch.setattr(executor, "_exec", failing_exec)

        with pytest.raises(MalformedArtifactError, match="not written"):
            await executor.run(target)

    @pytest.mark.asyncio
    async def test_invalid_artifact(self, target: TargetConfig, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        executor = PytestBenchmarkExecutor(result_root=tmp_path)

        async def fake_exec(command: list[str], capture: bool = False) -> tuple[int, str]:
            (tmp_path / target.benchmark_id / "result.json").write_text('{"benchmarks": []}')
            return 0, ""

        monkeypatch.setattr(executor, "_exec", fake_exec)

        with pytest.raises(MalformedArtifactError, match="no benchmarks"):
            await executor.run(target)


class TestCollect:
    """Tests for PytestBenchmarkExecutor.collect."""

    @pytest.mark.asyncio
    async def test_collect_parses_output(self, monkeypatch: pytest.MonkeyPatch) -> None:
        executor = PytestBenchmarkExecutor()
        seen: dict[str, object] = {}

        async def fake_exec(command: list[str], capture: bool = False) -> tuple[int, str]:
            seen["command"] = command
            seen["capture"] = capture
            return 0, COLLECT_OUTPUT

        monkeypatch.setattr(executor, "_exec", fake_exec)

        result = await executor.collect("bench")

        assert seen["capture"] is True
        assert seen["command"] == executor.collect_command("bench")
        assert len(result.targets) == 2
