"""Branch enumeration and windowed commit fetching.

A repository's commits for one window are the union of the commits listed on
each of its branches, merged by SHA so shared history appears once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from gh_commit_sync.collect.batches import gather_in_batches
from gh_commit_sync.collect.models import CommitRecord
from gh_commit_sync.github.http import is_expected_absence

if TYPE_CHECKING:
    from gh_commit_sync.collect.windows import MonthWindow
    from gh_commit_sync.github.rest import RestClient

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_BATCH_SIZE = 3


async def list_branch_names(rest_client: RestClient, org: str, repo: str) -> list[str]:
    """List every branch of a repository.

    Empty and not-found repositories have no branches. Any other failure
    propagates so the caller records the month as an error instead of
    mistaking it for a repository without commits.

    Args:
        rest_client: REST API client.
        org: Repository owner.
        repo: Repository name.

    Returns:
        Branch names in listing order.
    """
    names: list[str] = []
    try:
        async for page in rest_client.list_branches(org, repo):
            names.extend(branch["name"] for branch in page)
    except Exception as e:
        if is_expected_absence(e):
            logger.debug("No branches for %s (%s)", repo, e)
            return []
        logger.warning("Error fetching branches for %s: %s", repo, e)
        raise
    return names


async def fetch_branch_commits(
    rest_client: RestClient,
    org: str,
    repo: str,
    branch: str,
    window: MonthWindow,
) -> list[dict[str, Any]]:
    """Fetch raw commits reachable from one branch inside one window.

    Empty-repository and not-found responses mean zero commits. Other failures
    propagate to the caller.
    """
    raw: list[dict[str, Any]] = []
    try:
        async for page in rest_client.list_commits(
            org,
            repo,
            sha=branch,
            since=window.start.isoformat(),
            until=window.end.isoformat(),
        ):
            raw.extend(page)
    except Exception as e:
        if is_expected_absence(e):
            logger.debug("No commits for %s@%s in %s (%s)", repo, branch, window.month_key, e)
            return []
        raise
    return raw


def merge_branch_commits(repo: str, branch_pages: Iterable[list[dict[str, Any]]]) -> list[CommitRecord]:
    """Union per-branch commit listings into one list keyed by SHA.

    The first branch that lists a SHA fixes its position in the output; a later
    listing of the same SHA refreshes its attributes.

    Args:
        repo: Repository name stamped on every record.
        branch_pages: Raw commit lists, one per branch.

    Returns:
        Deduplicated commit records.
    """
    merged: dict[str, CommitRecord] = {}
    for raw_commits in branch_pages:
        for raw in raw_commits:
            merged[raw["sha"]] = CommitRecord.from_api(repo, raw)
    return list(merged.values())


async def fetch_window_commits(
    rest_client: RestClient,
    org: str,
    repo: str,
    branches: list[str],
    window: MonthWindow,
    branch_batch_size: int = DEFAULT_BRANCH_BATCH_SIZE,
) -> list[CommitRecord]:
    """Collect a repository's deduplicated commits for one window.

    Args:
        rest_client: REST API client.
        org: Repository owner.
        repo: Repository name.
        branches: Branches to read; empty means zero commits.
        window: Time window to fetch.
        branch_batch_size: Branches fetched concurrently.

    Returns:
        Commits across all branches, one record per SHA.
    """
    if not branches:
        return []

    async def fetch(branch: str) -> list[dict[str, Any]]:
        return await fetch_branch_commits(rest_client, org, repo, branch, window)

    branch_pages = await gather_in_batches(branches, fetch, branch_batch_size)
    commits = merge_branch_commits(repo, branch_pages)

    logger.debug(
        "%s %s: %d unique commits across %d branches",
        repo,
        window.month_key,
        len(commits),
        len(branches),
    )
    return commits
