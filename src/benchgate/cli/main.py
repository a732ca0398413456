"""Main CLI entry point for benchgate.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import typer
from pydantic import ValidationError

from benchgate import __version__
from benchgate.benchmarks import BenchmarkHistory, BenchmarkOrchestrator, load_targets
from benchgate.benchmarks.storage import HTTPObjectStore, LocalObjectStore
from benchgate.core.config import Settings
from benchgate.core.exceptions import BenchgateError, ConfigurationError
from benchgate.runner import PytestBenchmarkExecutor

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from benchgate.benchmarks import ObjectStoreProtocol, TargetConfig, TargetResult

# Create the main Typer app
app = typer.Typer(
    name="benchgate",
    help="benchgate: benchmark stability checks and regression gating for CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, Any] = {
    "json": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchgate v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level (defaults to BENCHGATE_LOG_LEVEL or INFO).",
        ),
    ] = None,
) -> None:
    """benchgate: benchmark stability checks and regression gating for CI."""
    state["json"] = json_output
    level = (log_level or _load_settings("benchgate").log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _emit(command: str, status: str, data: dict[str, Any]) -> None:
    """Print a JSON envelope when --json is active."""
    if state["json"]:
        envelope = {"command": command, "status": status, "version": __version__, "data": data}
        typer.echo(json.dumps(envelope, indent=2))


def _fail(command: str, error: Exception) -> NoReturn:
    if state["json"]:
        _emit(command, "fail", {"error": str(error), "error_type": type(error).__name__})
    else:
        typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


def _load_settings(command: str) -> Settings:
    """Load settings, reporting invalid environment values as a CLI error."""
    try:
        return Settings()
    except ValidationError as e:
        _fail(command, ConfigurationError(f"Invalid configuration: {e}"))


@asynccontextmanager
async def _open_store(settings: Settings, store_dir: str | None) -> AsyncIterator[ObjectStoreProtocol]:
    """Open the object store selected by the options."""
    if store_dir:
        yield LocalObjectStore(store_dir)
        return
    if not settings.can_publish:
        typer.echo(
            f"Warning: {settings.owner} is not {settings.publish_owner}, results will not be published.",
            err=True,
        )
    async with HTTPObjectStore(
        settings.store_endpoint,
        settings.store_bucket,
        timeout=settings.store_timeout_seconds,
        read_only=not settings.can_publish,
    ) as store:
        yield store


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchgate v{__version__}")


@app.command()
def run(
    collect_path: Annotated[
        str | None,
        typer.Option(
            "--collect-path",
            "-c",
            help="Test path whose benchmark declarations are collected with pytest.",
        ),
    ] = None,
    targets_file: Annotated[
        str | None,
        typer.Option(
            "--targets",
            "-t",
            help="YAML file listing benchmark targets (instead of collection).",
        ),
    ] = None,
    container: Annotated[
        str | None,
        typer.Option(
            "--container",
            help="Docker container to run pytest in.",
        ),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Assess target stability instead of gating against history.",
        ),
    ] = False,
    store_dir: Annotated[
        str | None,
        typer.Option(
            "--store-dir",
            help="Use a local directory as the object store.",
        ),
    ] = None,
) -> None:
    """Run benchmark targets and gate them against the historical best.

    Examples:
        benchgate run --collect-path tests/benchmarks --container bench
        benchgate run --targets targets.yaml --store-dir .benchgate/store
        benchgate --json run --targets targets.yaml --debug
    """
    if not collect_path and not targets_file:
        typer.echo("Error: Either --collect-path or --targets is required.", err=True)
        typer.echo("Run 'benchgate run --help' for usage.", err=True)
        raise typer.Exit(2)

    settings = _load_settings("run")
    debug_mode = debug or settings.debug_mode
    executor = PytestBenchmarkExecutor(
        container_name=container or settings.container_name,
        result_root=settings.result_root,
    )

    async def run_batch() -> list[TargetResult]:
        context = settings.run_context()
        targets: list[TargetConfig]
        if targets_file:
            targets = load_targets(targets_file)
        else:
            collection = await executor.collect(collect_path or "", settings.collect_marker)
            targets = collection.targets
        if not targets:
            raise ConfigurationError("No benchmark targets found")

        async with _open_store(settings, store_dir) as store:
            orchestrator = BenchmarkOrchestrator(
                store,
                executor,
                context,
                debug_mode=debug_mode,
                stability_log=settings.stability_log,
                stability_attempts=settings.stability_attempts,
            )
            return await orchestrator.run_batch(targets)

    try:
        results = asyncio.run(run_batch())
    except (BenchgateError, FileNotFoundError) as e:
        _fail("run", e)
        return

    if state["json"]:
        _emit("run", "pass", {"debug": debug_mode, "results": [r.to_dict() for r in results]})
        return

    typer.echo()
    typer.echo(f"  Benchmarks ({'stability' if debug_mode else 'gate'} mode)")
    typer.echo("  " + "-" * 40)
    for result in results:
        status = "skipped" if result.skipped else result.state.value
        typer.echo(f"    [{status}] {result.target}")
        if result.stability is not None:
            typer.echo(
                f"        stddev {result.stability.representative_stddev_ms:.4f} ms, "
                f"median drift {result.stability.median_drift_percent:.2f}%"
            )
    typer.echo()


@app.command(name="update-history")
def update_history(
    pr_number: Annotated[
        int | None,
        typer.Option(
            "--pr",
            help="Pull request whose last commit becomes the historical best.",
        ),
    ] = None,
    store_dir: Annotated[
        str | None,
        typer.Option(
            "--store-dir",
            help="Use a local directory as the object store.",
        ),
    ] = None,
) -> None:
    """Copy the latest runs of a pull request over the historical bests.

    Example:
        benchgate update-history --pr 1234
    """
    settings = _load_settings("update-history")

    async def update() -> list[str]:
        owner = settings.owner
        if owner is None or not settings.repository or "/" not in settings.repository:
            raise ConfigurationError("Missing repository context: set GITHUB_REPOSITORY as owner/repo")
        number = pr_number if pr_number is not None else settings.resolve_pr_number()
        if number is None:
            raise ConfigurationError("Missing pull request number: pass --pr")
        repo = settings.repository.split("/", 1)[1]
        async with _open_store(settings, store_dir) as store:
            return await BenchmarkHistory(store, owner, repo).update(number)

    try:
        updated = asyncio.run(update())
    except BenchgateError as e:
        _fail("update-history", e)
        return

    if state["json"]:
        _emit("update-history", "pass", {"updated": updated})
        return
    for key in updated:
        typer.echo(f"  [best] {key}")
    typer.echo(f"  Updated {len(updated)} historical best record(s).")


if __name__ == "__main__":
    app()
