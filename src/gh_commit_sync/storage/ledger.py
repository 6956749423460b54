"""Collection ledger: month-level completion state per repository.

One entry per (repository, month key) records whether that calendar month of
that repository has been fully collected. Completed entries are skipped by
later runs; partial and error entries are retried. The ledger is a JSON file
written atomically via temp file + rename after every upsert, and an
exclusive file lock is held while a run has it open.
"""

import fcntl
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LEDGER_VERSION = "1.0"


class LedgerStatus(str, Enum):
    """Status of one (repository, month) partition."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass
class CollectionLogEntry:
    """Ledger row for one repository month."""

    repository: str
    month_key: str
    status: LedgerStatus
    commit_count: int = 0
    error_message: str | None = None
    collected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_completed(self) -> bool:
        return self.status == LedgerStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "repository": self.repository,
            "month_key": self.month_key,
            "status": self.status.value,
            "commit_count": self.commit_count,
            "error_message": self.error_message,
            "collected_at": self.collected_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionLogEntry":
        """Create from dictionary."""
        return cls(
            repository=data["repository"],
            month_key=data["month_key"],
            status=LedgerStatus(data["status"]),
            commit_count=data.get("commit_count", 0),
            error_message=data.get("error_message"),
            collected_at=datetime.fromisoformat(data["collected_at"]),
        )


def _entry_key(repository: str, month_key: str) -> str:
    return f"{repository}::{month_key}"


class CollectionLedger:
    """Durable keyed store of collection state.

    Provides:
    - Lookup and upsert by exact (repository, month_key)
    - Atomic writes via temp file + rename on every upsert
    - Exclusive file locking while used as a context manager
    - Operator listing and reset, optionally scoped to one repository
    """

    def __init__(self, path: Path, lock_path: Path | None = None) -> None:
        """Initialize the ledger.

        Args:
            path: Path to the ledger JSON file. Created on first write.
            lock_path: Path to lock file. Defaults to path + '.lock'.
        """
        self.path = path
        self.lock_path = lock_path or Path(str(path) + ".lock")
        self._entries: dict[str, CollectionLogEntry] = {}
        self._loaded = False
        self._lock_file: Any = None

    def load(self) -> None:
        """Load entries from disk. A missing file is an empty ledger.

        Raises:
            json.JSONDecodeError: If the ledger file is corrupted.
        """
        self._entries = {}
        if self.path.exists():
            with self.path.open() as f:
                data = json.load(f)
            for raw in data.get("entries", []):
                entry = CollectionLogEntry.from_dict(raw)
                self._entries[_entry_key(entry.repository, entry.month_key)] = entry
            logger.debug("Loaded %d ledger entries from %s", len(self._entries), self.path)
        self._loaded = True

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def save(self) -> None:
        """Write the ledger to disk atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=".ledger_",
            suffix=".tmp",
        )
        payload = {
            "version": LEDGER_VERSION,
            "updated_at": datetime.now(UTC).isoformat(),
            "entries": [entry.to_dict() for entry in self._sorted_entries()],
        }

        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            Path(temp_path).replace(self.path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def _sorted_entries(self, repository: str | None = None) -> list[CollectionLogEntry]:
        entries = (
            e for e in self._entries.values() if repository is None or e.repository == repository
        )
        return sorted(entries, key=lambda e: (e.repository, e.month_key))

    def get(self, repository: str, month_key: str) -> CollectionLogEntry | None:
        """Look up the entry for one partition."""
        self._ensure_loaded()
        return self._entries.get(_entry_key(repository, month_key))

    def is_completed(self, repository: str, month_key: str) -> bool:
        """Whether the partition was fully collected by an earlier run."""
        entry = self.get(repository, month_key)
        return entry is not None and entry.is_completed

    def record(
        self,
        repository: str,
        month_key: str,
        status: LedgerStatus,
        commit_count: int = 0,
        error_message: str | None = None,
    ) -> CollectionLogEntry:
        """Upsert the entry for one partition and persist it.

        Args:
            repository: Repository name.
            month_key: Partition key (YYYY-MM).
            status: Outcome of this attempt.
            commit_count: Commits newly collected by this attempt.
            error_message: Failure detail for error/partial attempts.

        Returns:
            The stored entry.
        """
        self._ensure_loaded()
        entry = CollectionLogEntry(
            repository=repository,
            month_key=month_key,
            status=status,
            commit_count=commit_count,
            error_message=error_message,
        )
        self._entries[_entry_key(repository, month_key)] = entry
        self.save()

        if status == LedgerStatus.ERROR:
            logger.warning(
                "Ledger %s/%s marked %s: %s", repository, month_key, status.value, error_message
            )
        else:
            logger.debug(
                "Ledger %s/%s marked %s (%d commits)",
                repository,
                month_key,
                status.value,
                commit_count,
            )
        return entry

    def entries(self, repository: str | None = None) -> list[CollectionLogEntry]:
        """List entries ordered by repository then month.

        Args:
            repository: Only list this repository's entries.
        """
        self._ensure_loaded()
        return self._sorted_entries(repository)

    def clear(self, repository: str | None = None) -> int:
        """Delete entries so the next run re-collects them.

        Args:
            repository: Only reset this repository. None resets everything.

        Returns:
            Number of entries deleted.
        """
        self._ensure_loaded()
        doomed = [
            key
            for key, entry in self._entries.items()
            if repository is None or entry.repository == repository
        ]
        for key in doomed:
            del self._entries[key]

        self.save()
        logger.info(
            "Cleared %d ledger entries%s",
            len(doomed),
            f" for {repository}" if repository else "",
        )
        return len(doomed)

    def get_stats(self) -> dict[str, int]:
        """Count entries per status."""
        self._ensure_loaded()
        stats = {status.value: 0 for status in LedgerStatus}
        for entry in self._entries.values():
            stats[entry.status.value] += 1
        stats["total"] = len(self._entries)
        return stats

    def __enter__(self) -> "CollectionLedger":
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_file = self.lock_path.open("w")
        fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_EX)
        logger.debug("Acquired ledger lock")
        self.load()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._lock_file:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
            self._lock_file.close()
            self._lock_file = None
            logger.debug("Released ledger lock")
