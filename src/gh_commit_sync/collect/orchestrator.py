"""Month-partitioned, resumable commit collection.

Drives discovery, branch enumeration, windowed commit fetching and optional
detail enrichment for a whole organization. Every (repository, month) attempt
is written to the collection ledger as soon as it finishes, so an interrupted
run leaves a clean prefix of completed months that later runs skip.

Progress is exposed as an async stream of CollectionProgress snapshots:

    run = collector.stream(start, end)
    async with run:
        async for progress in run:
            print(progress.message)
    result = run.result
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from gh_commit_sync.collect.batches import gather_in_batches
from gh_commit_sync.collect.commits import fetch_window_commits, list_branch_names
from gh_commit_sync.collect.details import iter_enrich_commit_details
from gh_commit_sync.collect.discovery import DiscoveryError, discover_repos
from gh_commit_sync.collect.models import (
    CollectionProgress,
    CollectionResult,
    CommitRecord,
    RepoInfo,
)
from gh_commit_sync.collect.windows import MonthWindow, day_bounds, month_windows, to_utc
from gh_commit_sync.config import CollectionConfig
from gh_commit_sync.storage.ledger import LedgerStatus

if TYPE_CHECKING:
    from gh_commit_sync.config import Config
    from gh_commit_sync.github.rest import RestClient
    from gh_commit_sync.storage.ledger import CollectionLedger

logger = logging.getLogger(__name__)

NO_REPOSITORIES = "NO_REPOSITORIES"

Emit = Callable[[CollectionProgress], None]

_DONE = object()


class CollectionRun:
    """One collection in flight, consumed as an async stream of progress.

    The collection starts when iteration begins. ``result`` becomes available
    once the stream is exhausted; closing the run early cancels the remaining
    work, and ledger entries already written stay valid. ``collected`` holds
    the commits of every window recorded in the ledger so far, so a caller can
    persist them even when the run never finishes.
    """

    def __init__(
        self, runner: Callable[[Emit, list[CommitRecord]], Awaitable[CollectionResult]]
    ) -> None:
        self._runner = runner
        self._collected: list[CommitRecord] = []
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task[CollectionResult] | None = None
        self._result: CollectionResult | None = None
        self._finished = False

    def _start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._runner(self._queue.put_nowait, self._collected))
            self._task.add_done_callback(lambda _: self._queue.put_nowait(_DONE))

    def __aiter__(self) -> CollectionRun:
        self._start()
        return self

    async def __anext__(self) -> CollectionProgress:
        if self._finished:
            raise StopAsyncIteration
        self._start()

        item = await self._queue.get()
        if item is _DONE:
            self._finished = True
            assert self._task is not None
            self._result = self._task.result()
            raise StopAsyncIteration
        return item  # type: ignore[no-any-return]

    @property
    def result(self) -> CollectionResult:
        """Result of the finished run.

        Raises:
            RuntimeError: If the stream has not been consumed to the end.
        """
        if self._result is None:
            msg = "Collection has not finished; consume the progress stream first"
            raise RuntimeError(msg)
        return self._result

    @property
    def collected(self) -> list[CommitRecord]:
        """Commits of the windows recorded so far, in collection order."""
        return self._collected

    async def aclose(self) -> None:
        """Cancel the collection if it is still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Collection cancelled by caller")
        self._finished = True

    async def __aenter__(self) -> CollectionRun:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


@dataclass
class _RunCounters:
    total_repos: int = 0
    processed_repos: int = 0
    collected_commits: int = 0


class CommitCollector:
    """Collects an organization's commits month by month with resumable state."""

    def __init__(
        self,
        rest_client: RestClient,
        ledger: CollectionLedger,
        org: str,
        settings: CollectionConfig | None = None,
        strict_discovery: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            rest_client: REST API client.
            ledger: Collection state store.
            org: Organization login.
            settings: Batch sizes and delays. Defaults apply when omitted.
            strict_discovery: Report discovery failures with their cause
                instead of as an empty organization.
            clock: Source of "now" in UTC.
        """
        self._rest = rest_client
        self._ledger = ledger
        self._org = org
        self._settings = settings or CollectionConfig()
        self._strict_discovery = strict_discovery
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_config(
        cls,
        config: Config,
        rest_client: RestClient,
        ledger: CollectionLedger,
    ) -> CommitCollector:
        """Build a collector from application configuration."""
        return cls(
            rest_client=rest_client,
            ledger=ledger,
            org=config.github.org,
            settings=config.collection,
            strict_discovery=config.github.strict_discovery,
        )

    def stream(
        self,
        start: datetime | date,
        end: datetime | date,
        include_details: bool = False,
        existing_shas: set[str] | None = None,
    ) -> CollectionRun:
        """Prepare a collection over ``[start, end]`` as a progress stream.

        Plain dates cover whole UTC days: ``end`` extends to 23:59:59.999999.

        Args:
            start: Organization-wide start.
            end: Organization-wide end, inclusive.
            include_details: Fetch line statistics and files per commit.
            existing_shas: SHAs already stored by the caller. Collected SHAs
                are added to this set in place.
        """
        shas = existing_shas if existing_shas is not None else set()
        start_utc = to_utc(start)
        end_utc = to_utc(end, end_of_day=True)

        async def runner(emit: Emit, collected: list[CommitRecord]) -> CollectionResult:
            return await self._run(emit, collected, start_utc, end_utc, include_details, shas)

        return CollectionRun(runner)

    async def collect(
        self,
        start: datetime | date,
        end: datetime | date,
        include_details: bool = False,
        existing_shas: set[str] | None = None,
        on_progress: Emit | None = None,
    ) -> CollectionResult:
        """Collect new commits over ``[start, end]``.

        Args:
            start: Organization-wide start.
            end: Organization-wide end, inclusive.
            include_details: Fetch line statistics and files per commit.
            existing_shas: SHAs to exclude; updated in place.
            on_progress: Called with every progress snapshot.

        Returns:
            New commits sorted by commit time, plus per-partition errors.
        """
        run = self.stream(start, end, include_details, existing_shas)
        async with run:
            async for progress in run:
                if on_progress is not None:
                    on_progress(progress)
        return run.result

    def stream_day(
        self,
        target: date,
        existing_shas: set[str] | None = None,
    ) -> CollectionRun:
        """Prepare a single-day collection as a progress stream.

        Day boundaries follow ``utc_offset_hours``; details are always fetched.
        """
        start, end = day_bounds(target, self._settings.utc_offset_hours)
        return self.stream(start, end, include_details=True, existing_shas=existing_shas)

    async def collect_day(
        self,
        target: date,
        existing_shas: set[str] | None = None,
        on_progress: Emit | None = None,
    ) -> CollectionResult:
        """Collect one day's new commits, with details."""
        start, end = day_bounds(target, self._settings.utc_offset_hours)
        return await self.collect(
            start,
            end,
            include_details=True,
            existing_shas=existing_shas,
            on_progress=on_progress,
        )

    async def _run(
        self,
        emit: Emit,
        collected: list[CommitRecord],
        start: datetime,
        end: datetime,
        include_details: bool,
        existing_shas: set[str],
    ) -> CollectionResult:
        result = CollectionResult()
        counters = _RunCounters()

        logger.info(
            "Starting commit collection for %s: %s to %s (details=%s)",
            self._org,
            start.isoformat(),
            end.isoformat(),
            include_details,
        )
        emit(CollectionProgress(phase="repos", message="Listing repositories..."))

        try:
            repos = await discover_repos(self._rest, self._org, strict=self._strict_discovery)
        except DiscoveryError as e:
            result.errors.append(f"{NO_REPOSITORIES}: {e}")
            return result

        if not repos:
            result.errors.append(f"{NO_REPOSITORIES}: no repositories found for {self._org}")
            logger.error("No repositories to collect for %s", self._org)
            return result

        counters.total_repos = len(repos)
        emit(
            CollectionProgress(
                phase="commits",
                total_repos=len(repos),
                message=f"Collecting {len(repos)} repositories (from each repository's creation date)",
            )
        )

        async def worker(repo: RepoInfo) -> tuple[list[CommitRecord], list[str]]:
            return await self._collect_repo(
                emit, collected, repo, start, end, existing_shas, counters
            )

        per_repo = await gather_in_batches(repos, worker, self._settings.repo_batch_size)
        for commits, errors in per_repo:
            result.commits.extend(commits)
            result.errors.extend(errors)

        if include_details and result.commits:
            emit(
                CollectionProgress(
                    phase="details",
                    processed_repos=len(repos),
                    total_repos=len(repos),
                    total_commits=len(result.commits),
                    message=f"Fetching details for {len(result.commits)} commits...",
                )
            )
            async for progress in iter_enrich_commit_details(
                self._rest,
                self._org,
                result.commits,
                batch_size=self._settings.detail_batch_size,
                delay=self._settings.detail_batch_delay_seconds,
                total_repos=len(repos),
            ):
                emit(progress)

        result.commits.sort(key=lambda c: c.committed_at)

        emit(
            CollectionProgress(
                phase="complete",
                processed_repos=len(repos),
                total_repos=len(repos),
                processed_commits=len(result.commits),
                total_commits=len(result.commits),
                message=f"Collection complete: {len(result.commits)} commits",
            )
        )
        logger.info(
            "Commit collection complete: %d new commits from %d repositories, %d errors",
            len(result.commits),
            len(repos),
            len(result.errors),
        )
        return result

    def _progress(
        self,
        counters: _RunCounters,
        message: str,
        repo: str | None = None,
        month: str | None = None,
    ) -> CollectionProgress:
        return CollectionProgress(
            phase="commits",
            current_repo=repo,
            current_month=month,
            processed_repos=counters.processed_repos,
            total_repos=counters.total_repos,
            processed_commits=counters.collected_commits,
            total_commits=counters.collected_commits,
            message=message,
        )

    async def _collect_repo(
        self,
        emit: Emit,
        collected: list[CommitRecord],
        repo: RepoInfo,
        start: datetime,
        end: datetime,
        existing_shas: set[str],
        counters: _RunCounters,
    ) -> tuple[list[CommitRecord], list[str]]:
        """Collect every uncompleted month of one repository, oldest first."""
        commits: list[CommitRecord] = []
        errors: list[str] = []
        created = repo.created_at.date().isoformat()

        effective_start = max(start, repo.created_at)
        if effective_start > end:
            counters.processed_repos += 1
            emit(self._progress(counters, f"{repo.name} skipped (created {created})", repo.name))
            return commits, errors

        branches: list[str] | None = None

        for window in month_windows(effective_start, end):
            key = window.month_key

            if self._ledger.is_completed(repo.name, key):
                emit(
                    self._progress(
                        counters, f"{repo.name} ({key}) already collected, skipping", repo.name, key
                    )
                )
                continue

            emit(
                self._progress(
                    counters,
                    f"{repo.name} ({key}) collecting commits... (created {created})",
                    repo.name,
                    key,
                )
            )

            try:
                if branches is None:
                    branches = await list_branch_names(self._rest, self._org, repo.name)
                fetched = await fetch_window_commits(
                    self._rest,
                    self._org,
                    repo.name,
                    branches,
                    window,
                    branch_batch_size=self._settings.branch_batch_size,
                )
            except Exception as e:
                message = f"{repo.name}/{key}: {e}"
                errors.append(message)
                logger.error("Failed to collect %s", message)
                self._ledger.record(repo.name, key, LedgerStatus.ERROR, 0, message)
            else:
                new_commits = [c for c in fetched if c.sha not in existing_shas]
                existing_shas.update(c.sha for c in new_commits)
                commits.extend(new_commits)
                collected.extend(new_commits)
                counters.collected_commits += len(new_commits)
                self._record_window(repo, window, len(new_commits))

            if self._settings.window_delay_seconds:
                await asyncio.sleep(self._settings.window_delay_seconds)

        counters.processed_repos += 1
        return commits, errors

    def _record_window(self, repo: RepoInfo, window: MonthWindow, new_count: int) -> None:
        """Mark a successfully fetched window in the ledger.

        Only a window that covers its whole month (or everything since the
        repository was created) and lies entirely in the past proves the month
        complete. Anything narrower is recorded as partial so it is retried.
        """
        if window.spans_month(not_before=repo.created_at) and window.end <= self._clock():
            self._ledger.record(repo.name, window.month_key, LedgerStatus.COMPLETED, new_count)
            return

        self._ledger.record(
            repo.name,
            window.month_key,
            LedgerStatus.PARTIAL,
            new_count,
            f"covered {window.start.isoformat()} to {window.end.isoformat()} only",
        )
