"""Push-then-pull sync state machine."""

from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.local_store import LocalStore
from medicontrol.client.mirror import PULL_KINDS, RemoteMirror
from medicontrol.client.records import EntityKind, utcnow

logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    SYNCING = "syncing"
    OFFLINE = "offline"
    ERROR = "error"


class SyncOrchestrator:
    """Reconcile the local store with the backend.

    A full sync verifies connectivity and the session, pushes the ledger in
    insertion order, pulls every kind and replaces the local collections,
    and only then clears the entries whose push was confirmed. A sync
    requested while one is in flight is dropped, not queued.
    """

    def __init__(
        self,
        store: LocalStore,
        ledger: PendingChangeLedger,
        mirror: RemoteMirror,
        *,
        interval_seconds: float = 300,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._mirror = mirror
        self._interval = interval_seconds
        self._state = SyncState.IDLE
        self._last_error: str | None = None
        self._in_flight = False
        self._went_offline = False
        self._timer: asyncio.Task[None] | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_sync(self) -> dt.datetime | None:
        return self._store.last_sync

    @property
    def pending_count(self) -> int:
        return len(self._ledger)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ------------------------------------------------------------------
    # Full sync
    # ------------------------------------------------------------------
    async def sync(self) -> SyncState:
        return await self._guarded(self._run_sync)

    async def _guarded(self, run: Callable[[], Awaitable[None]]) -> SyncState:
        if self._in_flight:
            logger.debug("Sync already in progress; request dropped")
            return self._state
        self._in_flight = True
        self._went_offline = False
        self._state = SyncState.SYNCING
        try:
            await run()
        except Exception:
            self._state = SyncState.ERROR
            self._last_error = "unexpected sync failure"
            logger.exception("Sync aborted")
            raise
        finally:
            self._in_flight = False
            if self._went_offline:
                self._state = SyncState.OFFLINE
        return self._state

    async def _push_ledger(self) -> tuple[list[str], list[str]]:
        """Push entries in insertion order.

        Once an entry fails, later entries for the same record are held back
        so they cannot land ahead of it.
        """
        confirmed: list[str] = []
        failures: list[str] = []
        blocked: set[tuple[str, str]] = set()
        for change in self._ledger.list():
            key = (change.entity, change.record_id)
            if key in blocked:
                continue
            result = await self._mirror.push(change)
            if result.ok:
                confirmed.append(change.id)
            else:
                blocked.add(key)
                failures.append(result.error or "push failed")
        return confirmed, failures

    async def _run_sync(self, *, push: bool = True, failures: list[str] | None = None) -> None:
        if not await self._mirror.check_connectivity():
            self._state = SyncState.OFFLINE
            return
        if not await self._mirror.check_session():
            self._state = SyncState.IDLE
            return

        failures = list(failures or [])
        confirmed: list[str] = []
        if push:
            confirmed, push_failures = await self._push_ledger()
            failures.extend(push_failures)

        for kind in PULL_KINDS:
            pulled = await self._mirror.pull(kind)
            if not pulled.ok:
                failures.append(pulled.error or f"pull {kind} failed")
                continue
            self._replace(kind, pulled.records, ignore=set(confirmed))

        self._ledger.clear(confirmed)

        if failures:
            self._state = SyncState.ERROR
            self._last_error = "; ".join(failures)
            logger.warning(
                "Sync finished with %s failure(s); %s change(s) still pending",
                len(failures),
                len(self._ledger),
            )
            return
        self._store.set_last_sync(utcnow())
        self._state = SyncState.IDLE
        self._last_error = None
        logger.info("Sync complete; %s change(s) confirmed", len(confirmed))

    def _replace(self, kind: EntityKind, remote: list[Any], *, ignore: set[str]) -> None:
        """Overwrite one local collection, keeping records with unconfirmed edits."""
        pending = self._ledger.pending_ids(kind, ignore=ignore)
        if kind == "profile":
            local_profile = self._store.profile
            if local_profile is not None and local_profile.id in pending:
                return
            self._store.set_profile(remote[0] if remote else None)
            return

        getter: Callable[[], list[Any]]
        setter: Callable[[list[Any]], None]
        if kind == "medication":
            getter, setter = (lambda: self._store.medications), self._store.set_medications
        elif kind == "dose_record":
            getter, setter = (lambda: self._store.dose_records), self._store.set_dose_records
        else:
            getter, setter = (lambda: self._store.caregivers), self._store.set_caregivers

        if kind == "dose_record":
            removed = {
                record_id
                for record_id, operation in self._ledger.pending_ids(
                    "medication", ignore=ignore
                ).items()
                if operation == "delete"
            }
            remote = [record for record in remote if record.medication_id not in removed]
        local = {record.id: record for record in getter()}
        merged = []
        for record in remote:
            operation = pending.get(record.id)
            if operation == "delete":
                continue
            if operation is not None and record.id in local:
                merged.append(local[record.id])
            else:
                merged.append(record)
        remote_ids = {record.id for record in remote}
        unpushed = [
            local[record_id]
            for record_id, operation in pending.items()
            if operation != "delete" and record_id in local and record_id not in remote_ids
        ]
        setter(unpushed + merged)

    # ------------------------------------------------------------------
    # Ledger replay and connectivity events
    # ------------------------------------------------------------------
    async def process_pending(self) -> SyncState:
        """Replay the ledger in order, drop what succeeded, then sync.

        Entries that failed the replay are not pushed a second time by the
        sync that follows; they wait for the next one.
        """
        return await self._guarded(self._replay_then_sync)

    async def _replay_then_sync(self) -> None:
        confirmed, failures = await self._push_ledger()
        self._ledger.clear(confirmed)
        if confirmed:
            logger.info("Replayed %s pending change(s)", len(confirmed))
        await self._run_sync(push=False, failures=failures)

    def handle_offline(self) -> None:
        """Force offline; a sync in flight keeps this state when it finishes."""
        self._state = SyncState.OFFLINE
        if self._in_flight:
            self._went_offline = True

    async def handle_online(self) -> SyncState:
        return await self.process_pending()

    # ------------------------------------------------------------------
    # Periodic timer
    # ------------------------------------------------------------------
    async def tick(self) -> None:
        if self._in_flight or not self._mirror.authenticated:
            return
        await self.sync()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Periodic sync failed")

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.create_task(self._loop(), name="medicontrol-sync")

    async def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._timer
        self._timer = None
