"""Configuration management for benchgate.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

import re

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from benchgate.core.context import RunContext
from benchgate.core.exceptions import ConfigurationError

_PR_REF = re.compile(r"refs/pull/(\d+)/")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Tool settings use the BENCHGATE_ prefix. The run context falls back to
    the variables GitHub Actions exports, so a workflow step usually only
    needs to set the store endpoint.

    Attributes:
        store_endpoint: Base URL of the S3-style object store.
        store_bucket: Bucket holding benchmark results.
        store_timeout_seconds: Transport timeout for object store requests.
        publish_owner: Only this repository owner may write to the store.
        result_root: Local directory for pytest-benchmark outputs.
        collect_marker: Prefix of collected target lines in pytest output.
        container_name: Docker container to run pytest in (None runs locally).
        debug_mode: Run the stability assessment instead of gating.
        stability_attempts: Executions per target in debug mode.
        stability_log: JSON-lines file recording debug assessments.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Example:
        >>> # export BENCHGATE_STORE_ENDPOINT=https://oss-cn-beijing.aliyuncs.com
        >>> # export BENCHGATE_DEBUG_MODE=true
        >>> settings = Settings()
        >>> settings.debug_mode
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Object store
    store_endpoint: str = Field(
        default="http://localhost:9000",
        description="Base URL of the object store",
    )
    store_bucket: str = Field(
        default="benchmarks",
        description="Bucket holding benchmark results",
    )
    store_timeout_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Object store request timeout in seconds",
    )
    publish_owner: str | None = Field(
        default=None,
        description="Repository owner allowed to publish results (None allows all)",
    )

    # Execution
    result_root: str = Field(
        default="benchmark_result",
        description="Local directory for benchmark outputs",
    )
    collect_marker: str = Field(
        default="benchmark-function::",
        description="Prefix of collected benchmark target lines",
    )
    container_name: str | None = Field(
        default=None,
        description="Docker container used to run pytest",
    )
    debug_mode: bool = Field(
        default=False,
        description="Assess stability instead of gating",
    )
    stability_attempts: int = Field(
        default=5,
        ge=3,
        description="Executions per target in debug mode",
    )
    stability_log: str = Field(
        default="benchmark_stability.jsonl",
        description="Debug assessment log file",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Run context
    repository: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BENCHGATE_REPOSITORY", "GITHUB_REPOSITORY"),
    )
    sha: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BENCHGATE_SHA", "GITHUB_SHA"),
    )
    run_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BENCHGATE_RUN_ID", "GITHUB_RUN_ID"),
    )
    pr_number: int | None = Field(
        default=None,
        validation_alias=AliasChoices("BENCHGATE_PR_NUMBER"),
    )
    ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BENCHGATE_REF", "GITHUB_REF"),
    )

    def resolve_pr_number(self) -> int | None:
        """Return the pull-request number, falling back to the git ref."""
        if self.pr_number is not None:
            return self.pr_number
        if self.ref:
            match = _PR_REF.match(self.ref)
            if match:
                return int(match.group(1))
        return None

    def run_context(self) -> RunContext:
        """Build the run context used to lay out object keys.

        Returns:
            RunContext for the current CI run.

        Raises:
            ConfigurationError: If the repository, sha, run id or PR number is missing.
        """
        if not self.repository or "/" not in self.repository:
            raise ConfigurationError("Missing repository context: set GITHUB_REPOSITORY as owner/repo")
        pr_number = self.resolve_pr_number()
        if pr_number is None:
            raise ConfigurationError("Missing pull request number: set BENCHGATE_PR_NUMBER or GITHUB_REF")
        if not self.sha or not self.run_id:
            raise ConfigurationError("Missing commit context: set GITHUB_SHA and GITHUB_RUN_ID")

        owner, repo = self.repository.split("/", 1)
        return RunContext(owner=owner, repo=repo, pr_number=pr_number, sha=self.sha, run_id=self.run_id)

    @property
    def owner(self) -> str | None:
        """Repository owner from the repository slug."""
        if not self.repository:
            return None
        return self.repository.split("/", 1)[0]

    @property
    def can_publish(self) -> bool:
        """Whether this run may write to the object store."""
        return self.publish_owner is None or self.owner == self.publish_owner
