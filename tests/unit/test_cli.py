"""Tests for CLI commands."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from benchgate import __version__
from benchgate.benchmarks.models import BenchmarkRun, StatsRecord
from benchgate.benchmarks.targets import TargetConfig
from benchgate.cli.main import app
from benchgate.runner import PytestBenchmarkExecutor

from conftest import make_run, render_artifact

# Disable rich/typer color output to avoid ANSI escape codes in test assertions
os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"

runner = CliRunner()

BEST_KEY = "acme/engine/best/1-gpu-test_add.json"

TARGETS_YAML = """\
targets:
  - func_name: test_add
    file_name: bench/test_ops.py
    compare:
      median: 5%
    retry:
      stddev: 2
      times: 1
"""


def _record(median: float = 0.010, stddev: float = 0.001) -> StatsRecord:
    return StatsRecord(
        name="test_add",
        min=median / 2,
        max=median * 2,
        mean=median,
        median=median,
        stddev=stddev,
        iqr=stddev,
    )


@pytest.fixture
def ci_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """GitHub Actions context and a local targets file."""
    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/engine")
    monkeypatch.setenv("GITHUB_SHA", "abc123")
    monkeypatch.setenv("GITHUB_RUN_ID", "1001")
    monkeypatch.setenv("GITHUB_REF", "refs/pull/42/merge")
    monkeypatch.setenv("BENCHGATE_STABILITY_LOG", str(tmp_path / "stability.jsonl"))
    monkeypatch.setenv("BENCHGATE_RESULT_ROOT", str(tmp_path / "results"))
    monkeypatch.delenv("BENCHGATE_PR_NUMBER", raising=False)
    monkeypatch.delenv("BENCHGATE_DEBUG_MODE", raising=False)
    targets = tmp_path / "targets.yaml"
    targets.write_text(TARGETS_YAML)
    return targets


def _fake_runs(monkeypatch: pytest.MonkeyPatch, record: StatsRecord) -> list[str]:
    calls: list[str] = []

    async def fake_run(self: PytestBenchmarkExecutor, target: TargetConfig) -> BenchmarkRun:
        calls.append(target.test_node)
        return make_run(record)

    monkeypatch.setattr(PytestBenchmarkExecutor, "run", fake_run)
    return calls


class TestVersionCommand:
    """Tests for version command."""

    def test_version_command(self) -> None:
        """Version command shows version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_version_flag(self) -> None:
        """--version flag shows version and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestRunCommand:
    """Tests for run command."""

    def test_run_no_args_shows_error(self) -> None:
        """Run without a target source shows an error."""
        result = runner.invoke(app, ["run"])

        assert result.exit_code == 2
        assert "Either --collect-path or --targets is required" in result.output

    def test_run_help(self) -> None:
        result = runner.invoke(app, ["run", "--help"])

        assert result.exit_code == 0
        assert "Run benchmark targets" in result.stdout

    def test_run_seeds_best(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A first run records the baseline in the store."""
        calls = _fake_runs(monkeypatch, _record())
        store_dir = tmp_path / "store"

        result = runner.invoke(app, ["run", "--targets", str(ci_env), "--store-dir", str(store_dir)])

        assert result.exit_code == 0
        assert calls == ["bench/test_ops.py::test_add"]
        assert "[baseline_recorded] bench/test_ops.py::test_add" in result.stdout
        assert (store_dir / BEST_KEY).exists()

    def test_run_json_regression(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A regression exits 1 with a failing JSON envelope."""
        store_dir = tmp_path / "store"
        (store_dir / BEST_KEY).parent.mkdir(parents=True)
        (store_dir / BEST_KEY).write_bytes(render_artifact(_record(median=0.010)))
        _fake_runs(monkeypatch, _record(median=0.020))

        result = runner.invoke(
            app,
            ["--json", "--log-level", "CRITICAL", "run", "--targets", str(ci_env), "--store-dir", str(store_dir)],
        )

        assert result.exit_code == 1
        envelope = json.loads(result.stdout)
        assert envelope["command"] == "run"
        assert envelope["status"] == "fail"
        assert envelope["data"]["error_type"] == "RegressionDetectedError"

    def test_run_json_pass(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Passing targets are reported in the JSON envelope."""
        store_dir = tmp_path / "store"
        (store_dir / BEST_KEY).parent.mkdir(parents=True)
        (store_dir / BEST_KEY).write_bytes(render_artifact(_record(median=0.010)))
        _fake_runs(monkeypatch, _record(median=0.0101))

        result = runner.invoke(
            app,
            ["--json", "--log-level", "CRITICAL", "run", "--targets", str(ci_env), "--store-dir", str(store_dir)],
        )

        assert result.exit_code == 0
        envelope = json.loads(result.stdout)
        assert envelope["status"] == "pass"
        assert envelope["version"] == __version__
        [entry] = envelope["data"]["results"]
        assert entry["state"] == "passed"
        assert entry["attempts"] == 1

    def test_run_debug_reports_stability(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Debug mode prints the stability profile."""
        calls = _fake_runs(monkeypatch, _record())

        result = runner.invoke(
            app, ["run", "--targets", str(ci_env), "--store-dir", str(tmp_path / "store"), "--debug"]
        )

        assert result.exit_code == 0
        assert len(calls) == 5
        assert "stability mode" in result.stdout
        assert "median drift" in result.stdout
        assert (tmp_path / "stability.jsonl").exists()

    def test_run_missing_context(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Missing CI context is a configuration error."""
        monkeypatch.delenv("GITHUB_REPOSITORY")

        result = runner.invoke(app, ["run", "--targets", str(ci_env), "--store-dir", str(tmp_path / "store")])

        assert result.exit_code == 1
        assert "GITHUB_REPOSITORY" in result.output

    def test_run_invalid_declaration_aborts(
        self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A bad collected declaration fails the run before any target executes."""
        calls = _fake_runs(monkeypatch, _record())
        output = (
            'benchmark-function::{"func_name": "test_add", "file_name": "t.py"}\n'
            'benchmark-function::{"func_name": "test_mul", "file_name": "t.py", "compare": {"median": "5"}}\n'
        )

        async def fake_exec(
            self: PytestBenchmarkExecutor, command: list[str], capture: bool = False
        ) -> tuple[int, str]:
            return 0, output

        monkeypatch.setattr(PytestBenchmarkExecutor, "_exec", fake_exec)

        result = runner.invoke(app, ["run", "--collect-path", "bench", "--store-dir", str(tmp_path / "store")])

        assert result.exit_code == 1
        assert "Invalid benchmark target" in result.output
        assert calls == []

    def test_run_invalid_settings(self, ci_env: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid environment values exit 1 with an error instead of a traceback."""
        monkeypatch.setenv("BENCHGATE_STABILITY_ATTEMPTS", "2")

        result = runner.invoke(
            app,
            ["--json", "--log-level", "CRITICAL", "run", "--targets", str(ci_env), "--store-dir", str(tmp_path)],
        )

        assert result.exit_code == 1
        envelope = json.loads(result.stdout)
        assert envelope["command"] == "run"
        assert envelope["data"]["error_type"] == "ConfigurationError"
        assert "stability_attempts" in envelope["data"]["error"]

    def test_invalid_settings_without_log_level(self, ci_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BENCHGATE_STABILITY_ATTEMPTS", "2")

        result = runner.invoke(app, ["run", "--targets", str(ci_env)])

        assert result.exit_code == 1
        assert "Error: Invalid configuration" in result.output

    def test_run_missing_targets_file(self, ci_env: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["run", "--targets", str(tmp_path / "missing.yaml"), "--store-dir", str(tmp_path / "store")]
        )

        assert result.exit_code == 1
        assert "Targets file not found" in result.output


class TestUpdateHistoryCommand:
    """Tests for update-history command."""

    def test_update_history(self, ci_env: Path, tmp_path: Path) -> None:
        """The last commit's runs replace the historical bests."""
        store_dir = tmp_path / "store"
        run_file = store_dir / "acme/engine/pr/42/commit/def456/run/2000/1-gpu-test_add.json"
        run_file.parent.mkdir(parents=True)
        run_file.write_bytes(render_artifact(_record()))

        result = runner.invoke(app, ["update-history", "--store-dir", str(store_dir)])

        assert result.exit_code == 0
        assert f"[best] {BEST_KEY}" in result.stdout
        assert (store_dir / BEST_KEY).read_bytes() == run_file.read_bytes()

    def test_update_history_explicit_pr(self, ci_env: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["--json", "--log-level", "CRITICAL", "update-history", "--pr", "7", "--store-dir", str(tmp_path / "store")],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"] == {"updated": []}
