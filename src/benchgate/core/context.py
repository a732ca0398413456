"""Run context and object key layout.

Object keys are hierarchical paths. Historical bests are namespaced per
benchmark id; run archives per pull request, commit, run id and benchmark id.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class RunContext(BaseModel):
    """Identity of one CI run and the object keys derived from it.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
        pr_number: Pull request the run belongs to.
        sha: Commit under test.
        run_id: CI run identifier.

    Example:
        >>> ctx = RunContext(owner="acme", repo="engine", pr_number=7, sha="abc123", run_id="99")
        >>> ctx.best_key("1-gpu-test_matmul")
        'acme/engine/best/1-gpu-test_matmul.json'
        >>> ctx.run_key("1-gpu-test_matmul")
        'acme/engine/pr/7/commit/abc123/run/99/1-gpu-test_matmul.json'
    """

    model_config = {"frozen": True}

    owner: str = Field(..., min_length=1, description="Repository owner")
    repo: str = Field(..., min_length=1, description="Repository name")
    pr_number: int = Field(..., ge=0, description="Pull request number")
    sha: str = Field(..., min_length=1, description="Commit sha")
    run_id: str = Field(..., min_length=1, description="CI run identifier")

    @property
    def pr_prefix(self) -> str:
        return pr_prefix(self.owner, self.repo, self.pr_number)

    @property
    def run_prefix(self) -> str:
        return f"{self.pr_prefix}/commit/{self.sha}/run/{self.run_id}"

    def best_key(self, benchmark_id: str) -> str:
        return best_key(self.owner, self.repo, benchmark_id)

    def run_key(self, benchmark_id: str) -> str:
        return f"{self.run_prefix}/{benchmark_id}.json"

    def attachment_key(self, filename: str) -> str:
        return f"{self.run_prefix}/{filename}"


def pr_prefix(owner: str, repo: str, pr_number: int) -> str:
    """Prefix under which every run of a pull request is archived."""
    return f"{owner}/{repo}/pr/{pr_number}"


def best_key(owner: str, repo: str, benchmark_file: str) -> str:
    """Key of the historical best for a benchmark.

    Args:
        owner: Repository owner.
        repo: Repository name.
        benchmark_file: Benchmark id, with or without the ``.json`` suffix.
    """
    if not benchmark_file.endswith(".json"):
        benchmark_file = f"{benchmark_file}.json"
    return f"{owner}/{repo}/best/{benchmark_file}"
