"""Historical best maintenance.

After a pull request lands, the runs archived for its latest commit replace
the stored historical bests. This module finds that commit and copies its
run artifacts over the bests.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from benchgate.benchmarks.models import parse_artifact
from benchgate.core.context import best_key, pr_prefix

if TYPE_CHECKING:
    from benchgate.benchmarks.models import StatsRecord
    from benchgate.benchmarks.storage import ObjectStoreProtocol

logger = logging.getLogger(__name__)

_RUN_KEY = re.compile(r"(\w+)/run/(\d+)")


def is_improvement(best: list[StatsRecord], candidate: list[StatsRecord]) -> bool:
    """Whether a candidate is at least as fast as the best on every benchmark.

    Both lists must describe the same benchmarks in the same order; the
    candidate must not be slower on min, max, mean or median.
    """
    if len(best) != len(candidate):
        return False
    for best_record, candidate_record in zip(best, candidate):
        if best_record.name != candidate_record.name:
            return False
        if not (
            best_record.min >= candidate_record.min
            and best_record.max >= candidate_record.max
            and best_record.mean >= candidate_record.mean
            and best_record.median >= candidate_record.median
        ):
            return False
    return True


class BenchmarkHistory:
    """Query and update the stored benchmark history of a repository.

    Attributes:
        store: Object store holding history and run archives.
        owner: Repository owner.
        repo: Repository name.

    Example:
        >>> history = BenchmarkHistory(store, "acme", "engine")
        >>> updated = await history.update(pr_number=42)
    """

    def __init__(self, store: ObjectStoreProtocol, owner: str, repo: str) -> None:
        self.store = store
        self.owner = owner
        self.repo = repo

    async def find_last_commit(self, pr_number: int) -> str | None:
        """Find the commit of a pull request with the most recent run.

        Args:
            pr_number: Pull request number.

        Returns:
            The commit sha whose run id is largest, or None without runs.
        """
        max_run_id = 0
        last_commit: str | None = None
        for key in await self.store.list(pr_prefix(self.owner, self.repo, pr_number)):
            match = _RUN_KEY.search(key)
            if match is None:
                continue
            run_id = int(match.group(2))
            if run_id > max_run_id:
                max_run_id = run_id
                last_commit = match.group(1)
        return last_commit

    async def compare(self, best_object: str, candidate_object: str) -> bool:
        """Compare two stored artifacts benchmark by benchmark.

        A missing best counts as "not an improvement"; the caller still
        replaces it.
        """
        best_payload = await self.store.get(best_object)
        candidate_payload = await self.store.get(candidate_object)
        if best_payload is None or candidate_payload is None:
            return False
        best = parse_artifact(best_payload, source=best_object).records()
        candidate = parse_artifact(candidate_payload, source=candidate_object).records()
        return is_improvement(best, candidate)

    async def update(self, pr_number: int) -> list[str]:
        """Replace historical bests with the runs of the PR's last commit.

        Every archived ``*.json`` run of the last commit is copied over the
        historical best with the same benchmark id, whether or not it is faster.

        Args:
            pr_number: Pull request number.

        Returns:
            Keys of the historical bests that were written.

        Raises:
            StorageError: If listing or copying fails.
        """
        commit = await self.find_last_commit(pr_number)
        logger.info(f"[findLastCommit]: {commit}")
        if commit is None:
            logger.warning(f"No archived runs for pull request {pr_number}")
            return []

        run_dir = f"{pr_prefix(self.owner, self.repo, pr_number)}/commit/{commit}/run"
        logger.info(f"[compareWith]: {run_dir}")

        updated: list[str] = []
        for key in await self.store.list(run_dir):
            benchmark_file = key.rsplit("/", 1)[-1]
            if not benchmark_file.endswith(".json"):
                continue
            logger.info(f"[compare]: - {benchmark_file}")

            target_key = best_key(self.owner, self.repo, benchmark_file)
            if await self.compare(target_key, key):
                logger.info(f"[compare]: {key} is better than {target_key}")
            await self.store.copy(target_key, key)
            updated.append(target_key)
        return updated
