"""Terminal display for collection progress.

Renders the CollectionProgress stream with rich: a repository bar during the
commit phase, a commit bar during detail enrichment, and a status line naming
the repository and month being worked on.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.live import Live
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from types import TracebackType

    from gh_commit_sync.collect.models import CollectionProgress


@dataclass
class ProgressStats:
    """Latest values seen on the progress stream."""

    phase: str = ""
    message: str = ""
    current_repo: str = ""
    current_month: str = ""
    processed_repos: int = 0
    total_repos: int = 0
    processed_commits: int = 0
    total_commits: int = 0
    updates: int = 0
    start_time: float = field(default_factory=time.time)


class ProgressDisplay:
    """Live rich rendering of a collection run.

    Example:
        with ProgressDisplay() as display:
            async for progress in run:
                display.update(progress)
    """

    def __init__(self, quiet: bool = False, console: Console | None = None) -> None:
        """Initialize the display.

        Args:
            quiet: Track progress without rendering anything.
            console: Console to render on. Defaults to stdout.
        """
        self.stats = ProgressStats()
        self.quiet = quiet
        self.console = console or Console()
        self._live: Live | None = None
        self._progress: Progress | None = None
        self._repo_task: TaskID | None = None
        self._detail_task: TaskID | None = None

    def start(self) -> None:
        """Start live rendering."""
        if self.quiet:
            return

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )
        self._repo_task = self._progress.add_task("Repositories", total=None)

        self._live = Live(self._render(), console=self.console, refresh_per_second=4)
        self._live.start()

    def stop(self) -> None:
        """Stop live rendering."""
        if self._live:
            self._live.stop()
            self._live = None
        self._progress = None

    def _render(self) -> Table:
        table = Table(show_header=False, box=None, padding=(0, 1))

        if self._progress is not None:
            table.add_row(self._progress)

        status_parts = []
        if self.stats.phase:
            status_parts.append(f"[bold cyan]Phase:[/] {self.stats.phase.title()}")
        if self.stats.current_repo:
            repo = self.stats.current_repo
            if self.stats.current_month:
                repo = f"{repo} ({self.stats.current_month})"
            status_parts.append(f"[bold cyan]Repo:[/] {repo}")
        if self.stats.processed_commits:
            status_parts.append(f"[bold cyan]Commits:[/] {self.stats.processed_commits}")
        if status_parts:
            table.add_row(" | ".join(status_parts))

        if self.stats.message:
            table.add_row(f"[dim]{self.stats.message}[/]")

        return table

    def update(self, progress: CollectionProgress) -> None:
        """Record one progress snapshot and refresh the display."""
        self.stats.phase = progress.phase
        self.stats.message = progress.message
        self.stats.current_repo = progress.current_repo or ""
        self.stats.current_month = progress.current_month or ""
        self.stats.processed_repos = progress.processed_repos
        self.stats.total_repos = progress.total_repos
        self.stats.processed_commits = progress.processed_commits
        self.stats.total_commits = progress.total_commits
        self.stats.updates += 1

        if self._progress is not None and self._repo_task is not None:
            self._progress.update(
                self._repo_task,
                completed=progress.processed_repos,
                total=progress.total_repos or None,
            )
            if progress.phase == "details":
                if self._detail_task is None:
                    self._detail_task = self._progress.add_task(
                        "Commit details", total=progress.total_commits
                    )
                self._progress.update(
                    self._detail_task,
                    completed=progress.processed_commits,
                    total=progress.total_commits,
                )

        if self._live:
            self._live.update(self._render())

    def get_summary(self) -> dict[str, Any]:
        """Summarize what the display has seen."""
        return {
            "elapsed_seconds": round(time.time() - self.stats.start_time, 2),
            "phase": self.stats.phase,
            "processed_repos": self.stats.processed_repos,
            "total_repos": self.stats.total_repos,
            "processed_commits": self.stats.processed_commits,
            "updates": self.stats.updates,
        }

    def __enter__(self) -> ProgressDisplay:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()
