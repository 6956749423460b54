"""JSONL sink for collected commits.

The collector itself stores nothing but ledger state; callers persist the
commits it returns. One line per commit, appended, so that re-reading the
file's SHAs seeds the next run's deduplication set.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from gh_commit_sync.collect.models import CommitRecord

logger = logging.getLogger(__name__)


class CommitJSONLWriter:
    """Append-only JSONL writer for commit records.

    Example:
        with CommitJSONLWriter(Path("data/commits.jsonl")) as writer:
            writer.write_batch(result.commits)
    """

    def __init__(self, path: Path, buffer_size: int = 100) -> None:
        """Initialize the writer.

        Args:
            path: Path to JSONL file.
            buffer_size: Flush buffer after this many records.
        """
        self.path = path
        self.buffer_size = buffer_size
        self._file: Any = None
        self._buffer: list[str] = []
        self.record_count = 0

    def __enter__(self) -> "CommitJSONLWriter":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def open(self) -> None:
        """Open file for appending."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("a")

    def close(self) -> None:
        """Flush buffer and close file."""
        if self._file is not None:
            self.flush()
            self._file.close()
            self._file = None

    def flush(self) -> None:
        """Flush buffered records to disk."""
        if self._buffer and self._file is not None:
            self._file.write("\n".join(self._buffer) + "\n")
            self._file.flush()
            self._buffer.clear()

    def write(self, commit: CommitRecord) -> None:
        """Buffer one commit."""
        self._buffer.append(json.dumps(commit.to_dict(), separators=(",", ":")))
        self.record_count += 1

        if len(self._buffer) >= self.buffer_size:
            self.flush()

    def write_batch(self, commits: Iterable[CommitRecord]) -> int:
        """Buffer many commits.

        Returns:
            Number of commits written.
        """
        written = 0
        for commit in commits:
            self.write(commit)
            written += 1
        return written


def iter_commit_dicts(path: Path) -> Iterator[dict[str, Any]]:
    """Read commit dictionaries from a JSONL file, skipping blank lines.

    Raises:
        FileNotFoundError: If file doesn't exist.
    """
    with path.open() as f:
        for line in f:
            if line.strip():
                yield json.loads(line)


def read_existing_shas(path: Path) -> set[str]:
    """Collect the SHAs already stored in a commits file.

    A missing file yields an empty set. Lines that are not valid JSON are
    skipped with a warning so a torn final line does not block a run.
    """
    if not path.exists():
        return set()

    shas: set[str] = set()
    skipped = 0
    with path.open() as f:
        for line in f:
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            sha = record.get("sha") if isinstance(record, dict) else None
            if sha:
                shas.add(sha)

    if skipped:
        logger.warning("Skipped %d unreadable lines in %s", skipped, path)
    logger.debug("Loaded %d existing commit SHAs from %s", len(shas), path)
    return shas
