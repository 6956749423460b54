"""Tests for the progress display."""

import io

from rich.console import Console

from gh_commit_sync.collect.models import CollectionProgress
from gh_commit_sync.collect.progress import ProgressDisplay


def _console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False, width=120)


class TestProgressDisplay:
    """Tests for ProgressDisplay."""

    def test_tracks_latest_snapshot(self) -> None:
        display = ProgressDisplay(quiet=True)

        display.update(CollectionProgress(phase="repos", message="Listing repositories..."))
        display.update(
            CollectionProgress(
                phase="commits",
                message="api (2024-01) collecting commits...",
                processed_repos=1,
                total_repos=3,
                processed_commits=12,
                current_repo="api",
                current_month="2024-01",
            )
        )

        assert display.stats.phase == "commits"
        assert display.stats.current_repo == "api"
        assert display.stats.current_month == "2024-01"
        summary = display.get_summary()
        assert summary["processed_repos"] == 1
        assert summary["total_repos"] == 3
        assert summary["updates"] == 2

    def test_quiet_never_renders(self) -> None:
        console = _console()

        with ProgressDisplay(quiet=True, console=console) as display:
            display.update(CollectionProgress(phase="complete", message="done"))

        assert console.file.getvalue() == ""  # type: ignore[attr-defined]

    def test_live_rendering_through_details(self) -> None:
        console = _console()

        with ProgressDisplay(console=console) as display:
            display.update(CollectionProgress(phase="repos", message="Listing repositories..."))
            display.update(
                CollectionProgress(
                    phase="details",
                    message="Fetching commit details... (10/20)",
                    processed_repos=2,
                    total_repos=2,
                    processed_commits=10,
                    total_commits=20,
                )
            )
            display.update(
                CollectionProgress(
                    phase="complete",
                    message="Collection complete: 20 commits",
                    processed_repos=2,
                    total_repos=2,
                    processed_commits=20,
                    total_commits=20,
                )
            )

        output = console.file.getvalue()  # type: ignore[attr-defined]
        assert "Collection complete: 20 commits" in output
        assert display._live is None
