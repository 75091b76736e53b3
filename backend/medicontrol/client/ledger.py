"""Durable ledger of local mutations awaiting remote confirmation."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from typing import Any

from pydantic import ValidationError

from medicontrol.client.blob_store import BlobStore
from medicontrol.client.records import EntityKind, Operation, PendingChange

logger = logging.getLogger(__name__)

LEDGER_KEY = "medicontrol-pending-changes"


class PendingChangeLedger:
    """Ordered pending changes, written through to the blob store.

    Every mutation gets its own entry; nothing is coalesced. Entries leave
    the ledger only through :meth:`clear`, which the orchestrator calls after
    the matching remote write succeeded.
    """

    def __init__(self, store: BlobStore) -> None:
        self._store = store
        self._entries: list[PendingChange] = []
        for raw in store.get(LEDGER_KEY, []) or []:
            try:
                self._entries.append(PendingChange.model_validate(raw))
            except ValidationError:
                logger.warning("Dropping malformed ledger entry", exc_info=True)

    def __len__(self) -> int:
        return len(self._entries)

    def _persist(self) -> None:
        self._store.put(LEDGER_KEY, [entry.to_blob() for entry in self._entries])

    def append(self, change: PendingChange) -> PendingChange:
        self._entries.append(change)
        self._persist()
        logger.debug("Ledger +%s %s %s", change.operation, change.entity, change.record_id)
        return change

    def record(
        self,
        operation: Operation,
        entity: EntityKind,
        record_id: str,
        payload: dict[str, Any] | None = None,
    ) -> PendingChange:
        return self.append(
            PendingChange(
                operation=operation, entity=entity, record_id=record_id, payload=payload
            )
        )

    def list(self) -> list[PendingChange]:
        """Entries in insertion order."""
        return list(self._entries)

    def clear(self, ids: Iterable[str]) -> int:
        """Drop confirmed entries; returns how many were removed."""
        confirmed = set(ids)
        if not confirmed:
            return 0
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if entry.id not in confirmed]
        removed = before - len(self._entries)
        if removed:
            self._persist()
        return removed

    def pending_ids(
        self, entity: EntityKind, *, ignore: Collection[str] = ()
    ) -> dict[str, Operation]:
        """Latest pending operation per record id of ``entity``.

        Entries whose id is in ``ignore`` (already confirmed) are skipped.
        """
        latest: dict[str, Operation] = {}
        for entry in self._entries:
            if entry.entity == entity and entry.id not in ignore:
                latest[entry.record_id] = entry.operation
        return latest
