"""Month-partitioned commit collection for GitHub organizations."""

from gh_commit_sync.collect.batches import gather_in_batches
from gh_commit_sync.collect.commits import (
    fetch_branch_commits,
    fetch_window_commits,
    list_branch_names,
    merge_branch_commits,
)
from gh_commit_sync.collect.details import enrich_commit_details, iter_enrich_commit_details
from gh_commit_sync.collect.discovery import DiscoveryError, discover_repos
from gh_commit_sync.collect.models import (
    CollectionProgress,
    CollectionResult,
    CommitFileRecord,
    CommitRecord,
    RepoInfo,
)
from gh_commit_sync.collect.orchestrator import CollectionRun, CommitCollector
from gh_commit_sync.collect.windows import MonthWindow, day_bounds, month_key, month_windows

__all__ = [
    "CollectionProgress",
    "CollectionResult",
    "CollectionRun",
    "CommitCollector",
    "CommitFileRecord",
    "CommitRecord",
    "DiscoveryError",
    "MonthWindow",
    "RepoInfo",
    "day_bounds",
    "discover_repos",
    "enrich_commit_details",
    "fetch_branch_commits",
    "fetch_window_commits",
    "gather_in_batches",
    "iter_enrich_commit_details",
    "list_branch_names",
    "merge_branch_commits",
    "month_key",
    "month_windows",
]
