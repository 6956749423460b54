"""Best-effort per-commit detail enrichment.

Commit listings carry no line statistics or file lists; those come from one
``GET /repos/{owner}/{repo}/commits/{sha}`` per commit. This second pass is
optional and never affects whether a commit is part of the result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from gh_commit_sync.collect.models import CollectionProgress, CommitRecord

if TYPE_CHECKING:
    from gh_commit_sync.github.rest import RestClient

logger = logging.getLogger(__name__)

DEFAULT_DETAIL_BATCH_SIZE = 10
DEFAULT_DETAIL_BATCH_DELAY = 0.2


async def _enrich_one(rest_client: RestClient, org: str, commit: CommitRecord) -> bool:
    try:
        detail = await rest_client.get_commit(org, commit.repository, commit.sha)
        commit.apply_detail(detail)
    except Exception as e:
        logger.debug("Detail fetch failed for %s@%s: %s", commit.repository, commit.sha, e)
        return False
    return True


async def iter_enrich_commit_details(
    rest_client: RestClient,
    org: str,
    commits: list[CommitRecord],
    batch_size: int = DEFAULT_DETAIL_BATCH_SIZE,
    delay: float = DEFAULT_DETAIL_BATCH_DELAY,
    total_repos: int = 0,
) -> AsyncIterator[CollectionProgress]:
    """Enrich commits in place, yielding progress after every batch.

    Args:
        rest_client: REST API client.
        org: Repository owner.
        commits: Records to enrich; mutated in place.
        batch_size: Detail requests in flight at once.
        delay: Pause after each batch in seconds.
        total_repos: Repository count echoed in progress snapshots.

    Yields:
        A ``details`` progress snapshot per finished batch.
    """
    total = len(commits)
    failures = 0

    for offset in range(0, total, batch_size):
        batch = commits[offset : offset + batch_size]
        outcomes = await asyncio.gather(*(_enrich_one(rest_client, org, c) for c in batch))
        failures += outcomes.count(False)

        done = min(offset + batch_size, total)
        yield CollectionProgress(
            phase="details",
            processed_repos=total_repos,
            total_repos=total_repos,
            processed_commits=done,
            total_commits=total,
            message=f"Fetching commit details... ({done}/{total})",
        )

        if delay:
            await asyncio.sleep(delay)

    if failures:
        logger.warning("Commit detail unavailable for %d of %d commits", failures, total)


async def enrich_commit_details(
    rest_client: RestClient,
    org: str,
    commits: list[CommitRecord],
    batch_size: int = DEFAULT_DETAIL_BATCH_SIZE,
    delay: float = DEFAULT_DETAIL_BATCH_DELAY,
) -> list[CommitRecord]:
    """Enrich commits in place without reporting progress.

    Returns:
        The same list, for chaining.
    """
    async for _ in iter_enrich_commit_details(rest_client, org, commits, batch_size, delay):
        pass
    return commits
