"""Records produced and consumed by the commit collector."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

Phase = Literal["repos", "commits", "details", "complete"]

DEFAULT_REPO_CREATED_AT = datetime(2020, 1, 1, tzinfo=UTC)


def parse_github_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as returned by GitHub ("...Z")."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass
class RepoInfo:
    """A repository visible to the collector."""

    name: str
    created_at: datetime

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RepoInfo:
        """Build from a ``/orgs/{org}/repos`` item."""
        return cls(
            name=data["name"],
            created_at=parse_github_datetime(data.get("created_at")) or DEFAULT_REPO_CREATED_AT,
        )


@dataclass
class CommitFileRecord:
    """One file touched by a commit."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CommitFileRecord:
        return cls(
            filename=data["filename"],
            status=data.get("status") or "modified",
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            changes=data.get("changes", 0),
            patch=data.get("patch"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "status": self.status,
            "additions": self.additions,
            "deletions": self.deletions,
            "changes": self.changes,
            "patch": self.patch,
        }


@dataclass
class CommitRecord:
    """One physical commit in one repository.

    Identity is ``(repository, sha)``. Line statistics and the file list stay
    at their defaults until detail enrichment fills them in.
    """

    sha: str
    repository: str
    message: str
    author_name: str
    committed_at: datetime
    url: str = ""
    author_email: str | None = None
    author_avatar_url: str | None = None
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    files: list[CommitFileRecord] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        return (self.repository, self.sha)

    @classmethod
    def from_api(cls, repository: str, data: dict[str, Any]) -> CommitRecord:
        """Build from a ``/repos/{owner}/{repo}/commits`` list item."""
        commit = data.get("commit") or {}
        git_author = commit.get("author") or {}
        account = data.get("author") or {}

        return cls(
            sha=data["sha"],
            repository=repository,
            message=commit.get("message", ""),
            author_name=git_author.get("name") or "Unknown",
            author_email=git_author.get("email") or None,
            author_avatar_url=account.get("avatar_url") or None,
            committed_at=parse_github_datetime(git_author.get("date")) or datetime.now(UTC),
            url=data.get("html_url", ""),
        )

    def apply_detail(self, detail: dict[str, Any]) -> None:
        """Back-fill line statistics and files from a single-commit response."""
        stats = detail.get("stats") or {}
        files = [CommitFileRecord.from_api(f) for f in detail.get("files") or []]
        self.additions = stats.get("additions", 0)
        self.deletions = stats.get("deletions", 0)
        self.files_changed = len(files)
        self.files = files

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "sha": self.sha,
            "repository": self.repository,
            "message": self.message,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "author_avatar_url": self.author_avatar_url,
            "committed_at": self.committed_at.isoformat(),
            "additions": self.additions,
            "deletions": self.deletions,
            "files_changed": self.files_changed,
            "url": self.url,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class CollectionProgress:
    """Progress snapshot emitted while a collection runs.

    Purely informational: nothing in the collector reads these back.
    """

    phase: Phase
    message: str
    processed_repos: int = 0
    total_repos: int = 0
    processed_commits: int = 0
    total_commits: int = 0
    current_repo: str | None = None
    current_month: str | None = None


@dataclass
class CollectionResult:
    """Outcome of one collection run."""

    commits: list[CommitRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.commits)
