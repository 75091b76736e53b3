"""Pending change ledger and blob persistence."""

from __future__ import annotations

from pathlib import Path

import pytest

from medicontrol.client.blob_store import BlobStore, BlobStoreError
from medicontrol.client.ledger import LEDGER_KEY, PendingChangeLedger


def test_entries_survive_a_restart_in_order(tmp_path: Path) -> None:
    ledger = PendingChangeLedger(BlobStore(tmp_path))
    first = ledger.record("create", "medication", "med-1", {"name": "Sintrom"})
    ledger.record("update", "medication", "med-1", {"name": "Sintrom 4"})
    ledger.record("delete", "caregiver", "cg-1")

    reopened = PendingChangeLedger(BlobStore(tmp_path))
    assert len(reopened) == 3
    assert [entry.operation for entry in reopened.list()] == ["create", "update", "delete"]
    assert reopened.list()[0].id == first.id
    assert reopened.list()[0].payload == {"name": "Sintrom"}


def test_clear_removes_only_confirmed_ids(tmp_path: Path) -> None:
    store = BlobStore(tmp_path)
    ledger = PendingChangeLedger(store)
    keep = ledger.record("create", "dose_record", "dose-1", {})
    drop = ledger.record("update", "dose_record", "dose-1", {})

    assert ledger.clear([]) == 0
    assert ledger.clear([drop.id, "unknown"]) == 1
    assert [entry.id for entry in PendingChangeLedger(store).list()] == [keep.id]


def test_pending_ids_reports_latest_operation(tmp_path: Path) -> None:
    ledger = PendingChangeLedger(BlobStore(tmp_path))
    created = ledger.record("create", "medication", "med-1", {})
    ledger.record("delete", "medication", "med-1")
    ledger.record("update", "medication", "med-2", {})
    ledger.record("update", "caregiver", "cg-1", {})

    assert ledger.pending_ids("medication") == {"med-1": "delete", "med-2": "update"}
    assert ledger.pending_ids("caregiver") == {"cg-1": "update"}
    assert ledger.pending_ids("profile") == {}
    assert ledger.pending_ids("medication", ignore={created.id}) == {
        "med-1": "delete",
        "med-2": "update",
    }


def test_malformed_entries_are_dropped_on_load(tmp_path: Path) -> None:
    store = BlobStore(tmp_path)
    store.put(
        LEDGER_KEY,
        [
            {"operation": "explode", "entity": "medication", "recordId": "x"},
            {"operation": "delete", "entity": "medication", "recordId": "med-9"},
        ],
    )
    ledger = PendingChangeLedger(store)
    assert [entry.record_id for entry in ledger.list()] == ["med-9"]


def test_unreadable_blob_falls_back_to_default(tmp_path: Path) -> None:
    (tmp_path / f"{LEDGER_KEY}.json").write_text("{not json", encoding="utf-8")
    store = BlobStore(tmp_path)
    assert store.get(LEDGER_KEY, []) == []
    assert len(PendingChangeLedger(store)) == 0


def test_blob_keys_are_validated(tmp_path: Path) -> None:
    store = BlobStore(tmp_path)
    store.put("medicontrol-last-sync", "2026-03-10T10:00:00+00:00")
    assert store.keys() == ["medicontrol-last-sync"]
    store.delete("medicontrol-last-sync")
    assert store.get("medicontrol-last-sync") is None
    for key in ("", "../escape", ".hidden"):
        with pytest.raises(BlobStoreError):
            store.put(key, {})
