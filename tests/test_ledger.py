"""Tests for the collection ledger."""

import json
from pathlib import Path

import pytest

from gh_commit_sync.storage.ledger import CollectionLedger, CollectionLogEntry, LedgerStatus


class TestCollectionLogEntry:
    """Tests for CollectionLogEntry serialization."""

    def test_dict_roundtrip(self) -> None:
        entry = CollectionLogEntry(
            repository="api",
            month_key="2024-03",
            status=LedgerStatus.ERROR,
            commit_count=0,
            error_message="api/2024-03: boom",
        )

        restored = CollectionLogEntry.from_dict(entry.to_dict())

        assert restored == entry
        assert not restored.is_completed


class TestCollectionLedger:
    """Tests for CollectionLedger."""

    def test_missing_file_is_empty(self, ledger: CollectionLedger) -> None:
        assert ledger.entries() == []
        assert ledger.get("api", "2024-01") is None
        assert not ledger.is_completed("api", "2024-01")

    def test_record_persists_immediately(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED, 12)

        reopened = CollectionLedger(ledger.path)
        entry = reopened.get("api", "2024-01")

        assert entry is not None
        assert entry.status == LedgerStatus.COMPLETED
        assert entry.commit_count == 12
        assert reopened.is_completed("api", "2024-01")

    def test_record_upserts(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.ERROR, 0, "timeout")
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED, 3)

        entries = ledger.entries()
        assert len(entries) == 1
        assert entries[0].status == LedgerStatus.COMPLETED
        assert entries[0].error_message is None

    def test_partial_is_not_completed(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.PARTIAL, 2)
        assert not ledger.is_completed("api", "2024-01")

    def test_keys_are_exact(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)

        assert not ledger.is_completed("api-v2", "2024-01")
        assert not ledger.is_completed("ap", "2024-01")
        assert not ledger.is_completed("api", "2024-1")

    def test_entries_sorted(self, ledger: CollectionLedger) -> None:
        ledger.record("web", "2024-02", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-03", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)

        keys = [(e.repository, e.month_key) for e in ledger.entries()]
        assert keys == [("api", "2024-01"), ("api", "2024-03"), ("web", "2024-02")]

    def test_entries_filtered_by_repository(self, ledger: CollectionLedger) -> None:
        ledger.record("web", "2024-02", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)

        assert [e.repository for e in ledger.entries("web")] == ["web"]

    def test_clear_repository(self, ledger: CollectionLedger) -> None:
        ledger.record("web", "2024-02", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-02", LedgerStatus.ERROR, 0, "boom")

        removed = ledger.clear("api")

        assert removed == 2
        assert [e.repository for e in CollectionLedger(ledger.path).entries()] == ["web"]

    def test_clear_all(self, ledger: CollectionLedger) -> None:
        ledger.record("web", "2024-02", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)

        assert ledger.clear() == 2
        assert CollectionLedger(ledger.path).entries() == []

    def test_get_stats(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-02", LedgerStatus.PARTIAL)
        ledger.record("api", "2024-03", LedgerStatus.ERROR, 0, "boom")

        assert ledger.get_stats() == {"completed": 1, "partial": 1, "error": 1, "total": 3}

    def test_file_format(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED, 4)

        data = json.loads(ledger.path.read_text())

        assert data["version"] == "1.0"
        assert data["entries"][0]["repository"] == "api"
        assert data["entries"][0]["status"] == "completed"

    def test_no_temp_files_left(self, ledger: CollectionLedger) -> None:
        ledger.record("api", "2024-01", LedgerStatus.COMPLETED)
        ledger.record("api", "2024-02", LedgerStatus.COMPLETED)

        leftovers = list(ledger.path.parent.glob(".ledger_*.tmp"))
        assert leftovers == []

    def test_corrupted_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "ledger.json"
        path.write_text("{not json")

        with pytest.raises(json.JSONDecodeError):
            CollectionLedger(path).load()

    def test_context_manager_locks_and_loads(self, ledger: CollectionLedger) -> None:
        CollectionLedger(ledger.path).record("api", "2024-01", LedgerStatus.COMPLETED)

        with ledger as locked:
            assert locked.lock_path.exists()
            assert locked.is_completed("api", "2024-01")

        assert ledger._lock_file is None
