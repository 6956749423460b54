"""CLI entry point for gh-commit-sync.

Commands:
- collect: Collect an organization's commits month by month (resumable)
- sync-day: Collect a single day's commits with details
- rate-limit: Show the remaining API quota
- ledger: Inspect or reset collection state
- estimate: Rough run-time estimate for a collection
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from gh_commit_sync import __version__
from gh_commit_sync.collect.discovery import discover_repos
from gh_commit_sync.collect.models import CollectionResult, CommitRecord
from gh_commit_sync.collect.orchestrator import CollectionRun, CommitCollector
from gh_commit_sync.collect.progress import ProgressDisplay
from gh_commit_sync.collect.windows import estimate_collection_time, month_windows, to_utc
from gh_commit_sync.config import Config, load_config
from gh_commit_sync.github.auth import AuthenticationError, GitHubAuth
from gh_commit_sync.github.http import GitHubClient
from gh_commit_sync.github.ratelimit import RateLimitStatus, get_rate_limit_status
from gh_commit_sync.github.rest import RestClient
from gh_commit_sync.logging import setup_logging
from gh_commit_sync.storage.ledger import CollectionLedger, LedgerStatus
from gh_commit_sync.storage.writer import CommitJSONLWriter, read_existing_shas

console = Console()

config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to config.yaml file",
)


@click.group()
@click.version_option(version=__version__, prog_name="gh-commit-sync")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also append logs to this file",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, json_logs: bool, log_file: Path | None) -> None:
    """GitHub organization commit collector.

    Collects every commit on every branch of every repository in an
    organization, one calendar month at a time. Finished months are recorded
    in a ledger so interrupted runs resume where they stopped.

    \b
    Quick Start:
        1. Check quota: gh-commit-sync rate-limit --config config.yaml
        2. Backfill history: gh-commit-sync collect --config config.yaml
        3. Daily top-up: gh-commit-sync sync-day --config config.yaml
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose, json_format=json_logs, log_file=log_file)


@asynccontextmanager
async def _rest_client(cfg: Config) -> AsyncIterator[RestClient]:
    auth = GitHubAuth(token_env=cfg.github.auth.token_env)
    async with GitHubClient(
        auth=auth,
        timeout=cfg.http.timeout_seconds,
        max_retries=cfg.http.max_retries,
        base_url=cfg.github.base_url,
    ) as http_client:
        yield RestClient(http_client)


def _load(config: Path) -> Config:
    try:
        return load_config(config)
    except Exception as e:
        console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
        raise click.Abort() from e


def _print_rate_limit(status: RateLimitStatus) -> None:
    reset_at = status.reset.astimezone(UTC)
    color = "green"
    if status.remaining < 100:
        color = "red"
    elif status.remaining < 500:
        color = "yellow"
    console.print(
        f"[bold cyan]Rate limit:[/] [{color}]{status.remaining}[/]/{status.limit} "
        f"(used {status.used}, resets {reset_at:%Y-%m-%d %H:%M:%S} UTC)"
    )


async def _drain(run: CollectionRun) -> CollectionResult:
    with ProgressDisplay(console=console) as display:
        async with run:
            async for progress in run:
                display.update(progress)
    return run.result


def _store_commits(path: Path, commits: list[CommitRecord]) -> int:
    with CommitJSONLWriter(path) as writer:
        return writer.write_batch(commits)


async def _run_collection(
    cfg: Config,
    start: date,
    end: date | datetime,
    include_details: bool,
    single_day: date | None,
) -> CollectionResult | None:
    async with _rest_client(cfg) as rest:
        status = await get_rate_limit_status(rest)
        _print_rate_limit(status)
        if status.is_low(cfg.collection.min_rate_limit_remaining):
            console.print(
                f"[bold red]Remaining quota below {cfg.collection.min_rate_limit_remaining}; "
                f"try again in {int(status.seconds_until_reset / 60) + 1} minutes[/bold red]"
            )
            return None

        commits_path = cfg.storage.commits_path
        existing_shas = read_existing_shas(commits_path)
        console.print(f"  Known commits: {len(existing_shas)}")

        with CollectionLedger(cfg.storage.ledger_path) as ledger:
            collector = CommitCollector.from_config(cfg, rest, ledger)
            if single_day is not None:
                run = collector.stream_day(single_day, existing_shas=existing_shas)
            else:
                run = collector.stream(
                    start, end, include_details=include_details, existing_shas=existing_shas
                )
            try:
                result = await _drain(run)
            except BaseException:
                # months already in the ledger must not lose their commits
                saved = _store_commits(
                    commits_path, sorted(run.collected, key=lambda c: c.committed_at)
                )
                console.print(f"[yellow]Saved {saved} commits from recorded months[/yellow]")
                raise

        _store_commits(commits_path, result.commits)

    return result


def _report(result: CollectionResult, commits_path: Path) -> None:
    console.print()
    console.print("[bold green]Collection complete![/bold green]")
    console.print(f"  New commits: {result.total_processed}")
    console.print(f"  Output: {commits_path}")

    if result.errors:
        console.print(f"\n[yellow]Errors:[/yellow] {len(result.errors)}")
        for error in result.errors:
            console.print(f"  - {error}")


def _execute(
    cfg: Config,
    start: date,
    end: date | datetime,
    include_details: bool,
    single_day: date | None = None,
) -> None:
    try:
        result = asyncio.run(_run_collection(cfg, start, end, include_details, single_day))
    except AuthenticationError as e:
        console.print(f"[bold red]Authentication error:[/bold red] {e}")
        raise click.Abort() from e
    except KeyboardInterrupt:
        console.print("\n[yellow]Collection interrupted; finished months are kept[/yellow]")
        raise click.Abort() from None

    if result is None:
        raise click.Abort()

    _report(result, cfg.storage.commits_path)
    if result.errors and result.errors[0].startswith("NO_REPOSITORIES"):
        raise click.Abort()


@main.command()
@config_option
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Start date (YYYY-MM-DD). Defaults to collection.start_date",
)
@click.option(
    "--end",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="End date, inclusive (YYYY-MM-DD). Defaults to now",
)
@click.option(
    "--include-details/--no-include-details",
    default=None,
    help="Fetch line statistics and changed files per commit",
)
def collect(
    config: Path,
    start: datetime | None,
    end: datetime | None,
    include_details: bool | None,
) -> None:
    """Collect commits for every repository in the organization.

    Each repository is collected from the later of --start and its creation
    date. Months already recorded as completed in the ledger are skipped;
    new commits are appended to the configured commits file.
    """
    cfg = _load(config)

    start_date = start.date() if start else cfg.collection.start_date
    end_value: date | datetime = end.date() if end else datetime.now(UTC)
    details = cfg.collection.include_details if include_details is None else include_details

    console.print(
        f"[bold]Collecting commits for {cfg.github.org} "
        f"({start_date.isoformat()} to {to_utc(end_value, end_of_day=True):%Y-%m-%d})[/bold]"
    )
    _execute(
        cfg,
        start=start_date,
        end=end_value,
        include_details=details,
        single_day=None,
    )


@main.command(name="sync-day")
@config_option
@click.option(
    "--date",
    "target",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Local calendar day (YYYY-MM-DD). Defaults to today",
)
def sync_day(config: Path, target: datetime | None) -> None:
    """Collect one day's commits, with details.

    Day boundaries follow collection.utc_offset_hours. The day's month is
    recorded as partial, so a later full collection still covers it.
    """
    cfg = _load(config)

    if target is not None:
        day = target.date()
    else:
        day = (datetime.now(UTC) + timedelta(hours=cfg.collection.utc_offset_hours)).date()

    console.print(f"[bold]Syncing {cfg.github.org} commits for {day.isoformat()}[/bold]")
    _execute(cfg, start=day, end=day, include_details=True, single_day=day)


@main.command(name="rate-limit")
@config_option
def rate_limit(config: Path) -> None:
    """Show the remaining core API quota."""
    cfg = _load(config)

    async def fetch() -> RateLimitStatus:
        async with _rest_client(cfg) as rest:
            return await get_rate_limit_status(rest)

    try:
        status = asyncio.run(fetch())
    except AuthenticationError as e:
        console.print(f"[bold red]Authentication error:[/bold red] {e}")
        raise click.Abort() from e

    _print_rate_limit(status)


@main.group()
def ledger() -> None:
    """Inspect or reset collection state."""


@ledger.command(name="show")
@config_option
@click.option("--repo", default=None, help="Only show this repository")
def ledger_show(config: Path, repo: str | None) -> None:
    """List recorded months and their status."""
    cfg = _load(config)
    store = CollectionLedger(cfg.storage.ledger_path)
    entries = store.entries(repository=repo)

    if not entries:
        console.print("[yellow]No ledger entries[/yellow]")
        return

    table = Table(title=f"Collection ledger ({cfg.storage.ledger_path})")
    table.add_column("Repository")
    table.add_column("Month")
    table.add_column("Status")
    table.add_column("Commits", justify="right")
    table.add_column("Collected at")
    table.add_column("Error")

    colors = {
        LedgerStatus.COMPLETED: "green",
        LedgerStatus.PARTIAL: "yellow",
        LedgerStatus.ERROR: "red",
    }
    for entry in entries:
        color = colors[entry.status]
        table.add_row(
            entry.repository,
            entry.month_key,
            f"[{color}]{entry.status.value}[/]",
            str(entry.commit_count),
            f"{entry.collected_at:%Y-%m-%d %H:%M}",
            entry.error_message or "",
        )
    console.print(table)

    stats = store.get_stats()
    console.print(
        f"  completed: {stats['completed']}, partial: {stats['partial']}, "
        f"error: {stats['error']}, total: {stats['total']}"
    )


@ledger.command(name="reset")
@config_option
@click.option("--repo", default=None, help="Only reset this repository")
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation")
def ledger_reset(config: Path, repo: str | None, yes: bool) -> None:
    """Delete ledger entries so their months are collected again."""
    cfg = _load(config)
    scope = f"repository {repo}" if repo else "all repositories"

    if not yes:
        click.confirm(f"Reset collection state for {scope}?", abort=True)

    with CollectionLedger(cfg.storage.ledger_path) as store:
        removed = store.clear(repository=repo)

    console.print(f"[bold green]Removed {removed} ledger entries for {scope}[/bold green]")


@main.command()
@config_option
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Start date (YYYY-MM-DD). Defaults to collection.start_date",
)
@click.option(
    "--end",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="End date (YYYY-MM-DD). Defaults to now",
)
def estimate(config: Path, start: datetime | None, end: datetime | None) -> None:
    """Estimate how long a full collection would take."""
    cfg = _load(config)
    start_utc = to_utc(start.date() if start else cfg.collection.start_date)
    end_utc = to_utc(end.date(), end_of_day=True) if end else datetime.now(UTC)

    async def count_repos() -> int:
        async with _rest_client(cfg) as rest:
            repos = await discover_repos(rest, cfg.github.org)
        return len(repos)

    try:
        repo_count = asyncio.run(count_repos())
    except AuthenticationError as e:
        console.print(f"[bold red]Authentication error:[/bold red] {e}")
        raise click.Abort() from e

    month_count = len(month_windows(start_utc, end_utc))
    result = estimate_collection_time(repo_count, month_count)

    console.print(f"[bold]{cfg.github.org}[/bold]: {repo_count} repositories x {month_count} months")
    console.print(f"  Estimated time: {result.description}")


if __name__ == "__main__":
    main()
