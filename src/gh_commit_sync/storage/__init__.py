"""Collection state and commit storage."""

from gh_commit_sync.storage.ledger import CollectionLedger, CollectionLogEntry, LedgerStatus
from gh_commit_sync.storage.writer import CommitJSONLWriter, iter_commit_dicts, read_existing_shas

__all__ = [
    "CollectionLedger",
    "CollectionLogEntry",
    "CommitJSONLWriter",
    "LedgerStatus",
    "iter_commit_dicts",
    "read_existing_shas",
]
