"""Push-then-pull reconciliation, connectivity events and the timer."""

from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from medicontrol.client.config import ClientSettings
from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.local_store import LocalStore
from medicontrol.client.mirror import RemoteMirror, row_to_medication
from medicontrol.client.orchestrator import SyncOrchestrator, SyncState
from medicontrol.client.records import DoseRecord, Medication

pytestmark = pytest.mark.asyncio

API_URL = "http://test/api/v1"
DAY = dt.date(2026, 3, 10)

Parts = tuple[PendingChangeLedger, LocalStore, SyncOrchestrator]


def _mirror(
    settings: ClientSettings, transport: httpx.AsyncBaseTransport, *, token: str | None = "t"
) -> RemoteMirror:
    http = httpx.AsyncClient(transport=transport, base_url=API_URL)
    return RemoteMirror(settings, token=token, http_client=http)


def _dose_row(record_id: str, medication_id: str) -> dict[str, Any]:
    return {
        "id": record_id,
        "user_id": "user-1",
        "medication_id": medication_id,
        "scheduled_time": "08:00",
        "date": "2026-03-10",
        "status": "taken",
        "actual_time": "2026-03-10T08:05:00Z",
        "created_at": "2026-03-10T08:05:00Z",
        "updated_at": "2026-03-10T08:05:00Z",
    }


async def test_failed_push_keeps_the_entry_and_the_local_record(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
    medication_row: Callable[..., dict[str, Any]],
) -> None:
    writes_fail = True
    transport = mock_api(
        medications=[medication_row("remote-1", "Omeprazol")],
        fail_writes=lambda: writes_fail,
    )
    ledger, store, orchestrator = build_client(_mirror(client_settings, transport))
    local = store.add_medication(Medication(name="Sintrom", dose=4, schedules=["08:00"]))

    assert await orchestrator.sync() is SyncState.ERROR
    assert "database unavailable" in (orchestrator.last_error or "")
    assert orchestrator.pending_count == 1
    assert orchestrator.last_sync is None
    assert [m.id for m in store.medications] == [local.id, "remote-1"]
    assert store.profile is not None
    assert store.profile.name == "Maria Garcia"

    writes_fail = False
    assert await orchestrator.sync() is SyncState.IDLE
    assert len(ledger) == 0
    assert orchestrator.last_error is None
    assert orchestrator.last_sync is not None


async def test_pull_does_not_overwrite_unconfirmed_changes(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
    medication_row: Callable[..., dict[str, Any]],
) -> None:
    remote_rows = [
        medication_row("med-1", "Remote name"),
        medication_row("med-2", "Retired"),
        medication_row("med-3", "Untouched"),
    ]
    transport = mock_api(
        medications=remote_rows,
        doses=[_dose_row("dose-1", "med-2"), _dose_row("dose-2", "med-3")],
        fail_writes=lambda: True,
    )
    ledger, store, orchestrator = build_client(_mirror(client_settings, transport))
    store.set_medications([row_to_medication(row) for row in remote_rows])
    store.update_medication("med-1", name="Local edit")
    store.delete_medication("med-2")

    assert await orchestrator.sync() is SyncState.ERROR
    assert len(ledger) == 2
    assert store.get_medication("med-1").name == "Local edit"
    assert store.get_medication("med-2") is None
    assert store.get_medication("med-3").name == "Untouched"
    assert [r.id for r in store.dose_records] == ["dose-2"]


async def test_pull_drops_local_records_the_backend_does_not_have(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
    medication_row: Callable[..., dict[str, Any]],
) -> None:
    remote_rows = [medication_row("med-1", "Sintrom"), medication_row("med-2", "Omeprazol")]
    transport = mock_api(medications=remote_rows, doses=[_dose_row("dose-1", "med-1")])
    ledger, store, orchestrator = build_client(_mirror(client_settings, transport))
    stray = Medication(name="Stray", dose=1, schedules=["08:00"])
    store.set_medications([*(row_to_medication(row) for row in remote_rows), stray])
    store.set_dose_records([DoseRecord(medication_id=stray.id, scheduled_time="08:00", date=DAY)])
    assert len(ledger) == 0

    assert await orchestrator.sync() is SyncState.IDLE
    assert sorted(m.id for m in store.medications) == ["med-1", "med-2"]
    assert [r.id for r in store.dose_records] == ["dose-1"]


async def test_a_failed_entry_holds_back_later_entries_for_the_same_record(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
    medication_row: Callable[..., dict[str, Any]],
) -> None:
    remote_rows = [medication_row("med-1", "Sintrom"), medication_row("med-2", "Omeprazol")]
    first_write_fails = iter([True])
    stub = mock_api(medications=remote_rows, fail_writes=lambda: next(first_write_fails, False))
    writes: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        response = stub.handler(request)
        path = request.url.path.removeprefix("/api/v1")
        if request.method != "GET":
            writes.append((request.method, path))
        if request.method == "DELETE" and response.status_code == 204:
            remote_rows[:] = [
                row for row in remote_rows if path != f"/sync/medications/{row['id']}"
            ]
        return response

    ledger, store, orchestrator = build_client(
        _mirror(client_settings, httpx.MockTransport(handler))
    )
    store.set_medications([row_to_medication(row) for row in remote_rows])
    store.update_medication("med-1", name="Sintrom 4mg")
    store.update_medication("med-2", name="Omeprazol 20mg")
    store.delete_medication("med-1")

    assert await orchestrator.sync() is SyncState.ERROR
    assert writes == [("PUT", "/sync/medications/med-1"), ("PUT", "/sync/medications/med-2")]
    assert [(e.operation, e.record_id) for e in ledger.list()] == [
        ("update", "med-1"),
        ("delete", "med-1"),
    ]
    assert store.get_medication("med-1") is None

    writes.clear()
    assert await orchestrator.sync() is SyncState.IDLE
    assert writes == [
        ("PUT", "/sync/medications/med-1"),
        ("DELETE", "/sync/doses"),
        ("DELETE", "/sync/medications/med-1"),
    ]
    assert len(ledger) == 0
    assert [row["id"] for row in remote_rows] == ["med-2"]
    assert [m.id for m in store.medications] == ["med-2"]


async def test_offline_changes_reach_the_backend_when_back_online(
    app_context: dict[str, object],
    patient_mirror: RemoteMirror,
    api_transport: Any,
    build_client: Callable[[RemoteMirror], Parts],
) -> None:
    ledger, store, orchestrator = build_client(patient_mirror)
    medication = store.add_medication(
        Medication(name="Sintrom", dose=4, dose_unit="mg", schedules=["08:00"])
    )
    assert await orchestrator.sync() is SyncState.IDLE
    assert len(ledger) == 0
    assert store.profile.allergies == ["penicillin"]

    api_transport.online = False
    orchestrator.handle_offline()
    assert orchestrator.state is SyncState.OFFLINE
    today = dt.date.today()
    record = store.record_dose(medication.id, today, "08:00", "taken")
    assert len(ledger) == 1
    assert await orchestrator.sync() is SyncState.OFFLINE
    assert len(ledger) == 1

    api_transport.online = True
    assert await orchestrator.handle_online() is SyncState.IDLE
    assert len(ledger) == 0

    remote = await patient_mirror.pull("dose_record")
    assert [(r.id, r.status, r.date) for r in remote.records] == [(record.id, "taken", today)]
    assert [(r.id, r.status, r.date) for r in store.dose_records] == [
        (record.id, "taken", today)
    ]
    assert [m.id for m in store.medications] == [medication.id]


async def test_process_pending_replays_each_entry_once(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    calls: list[tuple[str, str]] = []
    ledger, store, orchestrator = build_client(
        _mirror(client_settings, mock_api(calls=calls))
    )
    store.add_medication(Medication(name="A", dose=1, schedules=["08:00"]))
    store.add_medication(Medication(name="B", dose=1, schedules=["09:00"]))

    assert await orchestrator.process_pending() is SyncState.IDLE
    assert await orchestrator.process_pending() is SyncState.IDLE
    assert len(ledger) == 0
    assert len([call for call in calls if call[0] == "PUT"]) == 2


async def test_process_pending_sends_a_failing_entry_once(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    calls: list[tuple[str, str]] = []
    transport = mock_api(calls=calls, fail_writes=lambda: True)
    ledger, store, orchestrator = build_client(_mirror(client_settings, transport))
    store.add_medication(Medication(name="A", dose=1, schedules=["08:00"]))

    assert await orchestrator.handle_online() is SyncState.ERROR
    assert "database unavailable" in (orchestrator.last_error or "")
    assert len([call for call in calls if call[0] == "PUT"]) == 1
    assert len(ledger) == 1


async def test_going_offline_during_a_sync_is_not_overwritten(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    stub = mock_api()
    entered = asyncio.Event()
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth/session") and not release.is_set():
            entered.set()
            await release.wait()
        return stub.handler(request)

    _, _, orchestrator = build_client(
        _mirror(client_settings, httpx.MockTransport(handler))
    )
    running = asyncio.create_task(orchestrator.sync())
    await entered.wait()

    orchestrator.handle_offline()
    release.set()
    assert await running is SyncState.OFFLINE
    assert orchestrator.state is SyncState.OFFLINE

    assert await orchestrator.sync() is SyncState.IDLE


async def test_overlapping_sync_requests_are_dropped(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    stub = mock_api()
    entered = asyncio.Event()
    release = asyncio.Event()
    health_checks: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/health"):
            health_checks.append(request.method)
            entered.set()
            await release.wait()
        return stub.handler(request)

    _, _, orchestrator = build_client(
        _mirror(client_settings, httpx.MockTransport(handler))
    )
    first = asyncio.create_task(orchestrator.sync())
    await entered.wait()

    assert orchestrator.state is SyncState.SYNCING
    assert await orchestrator.sync() is SyncState.SYNCING
    assert await orchestrator.process_pending() is SyncState.SYNCING
    await orchestrator.tick()

    release.set()
    assert await first is SyncState.IDLE
    assert health_checks == ["GET"]


async def test_without_a_session_nothing_is_pushed(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    calls: list[tuple[str, str]] = []
    mirror = _mirror(client_settings, mock_api(calls=calls), token=None)
    ledger, store, orchestrator = build_client(mirror)
    store.add_medication(Medication(name="A", dose=1, schedules=["08:00"]))

    await orchestrator.tick()
    assert calls == []

    assert await orchestrator.sync() is SyncState.IDLE
    assert calls == [("GET", "/health")]
    assert len(ledger) == 1


async def test_unexpected_failure_marks_error_and_releases_the_guard(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    mirror = _mirror(client_settings, mock_api())
    _, _, orchestrator = build_client(mirror)

    async def _boom(kind: str) -> None:
        raise RuntimeError("corrupt snapshot")

    monkeypatch.setattr(mirror, "pull", _boom)
    with pytest.raises(RuntimeError):
        await orchestrator.sync()
    assert orchestrator.state is SyncState.ERROR

    monkeypatch.undo()
    assert await orchestrator.sync() is SyncState.IDLE


async def test_timer_syncs_periodically_until_stopped(
    client_settings: ClientSettings,
    build_client: Callable[[RemoteMirror], Parts],
    mock_api: Callable[..., httpx.MockTransport],
) -> None:
    mirror = _mirror(client_settings, mock_api())
    ledger, store, _ = build_client(mirror)
    orchestrator = SyncOrchestrator(store, ledger, mirror, interval_seconds=0.01)

    orchestrator.start()
    orchestrator.start()
    assert orchestrator.running
    for _ in range(200):
        if orchestrator.last_sync is not None:
            break
        await asyncio.sleep(0.01)
    await orchestrator.stop()

    assert orchestrator.last_sync is not None
    assert not orchestrator.running
    await orchestrator.stop()
