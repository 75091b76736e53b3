"""Remote mirror against the in-process API and failing transports."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable

import httpx
import pytest

from medicontrol.client.config import ClientSettings
from medicontrol.client.mirror import (
    RemoteMirror,
    dose_record_to_row,
    medication_to_row,
    row_to_dose_record,
)
from medicontrol.client.records import DoseRecord, Medication, PendingChange

pytestmark = pytest.mark.asyncio

API_URL = "http://test/api/v1"


def _change(
    operation: str,
    entity: str,
    record: Medication | DoseRecord | None = None,
    record_id: str | None = None,
) -> PendingChange:
    return PendingChange(
        operation=operation,
        entity=entity,
        record_id=record_id or (record.id if record else ""),
        payload=record.to_blob() if record else None,
    )


async def test_login_and_profile_pull(
    app_context: dict[str, object], patient_mirror: RemoteMirror
) -> None:
    assert patient_mirror.authenticated
    assert patient_mirror.user_id == app_context["patient_id"]
    assert await patient_mirror.check_connectivity() is True

    pulled = await patient_mirror.pull("profile")
    assert pulled.ok
    (profile,) = pulled.records
    assert profile.id == app_context["patient_id"]
    assert profile.name == "Maria Garcia"
    assert profile.allergies == ["penicillin"]
    assert profile.emergency_contact is None


async def test_push_pull_and_cascading_delete(patient_mirror: RemoteMirror) -> None:
    medication = Medication(
        name="Sintrom", dose=4, dose_unit="mg", schedules=["08:00", "20:00"], is_critical=True
    )
    created = await patient_mirror.push(_change("create", "medication", medication))
    assert created.ok, created.error

    today = dt.date.today()
    doses = [
        DoseRecord(medication_id=medication.id, scheduled_time=slot, date=today, status="taken")
        for slot in medication.schedules
    ]
    for dose in doses:
        assert (await patient_mirror.push(_change("create", "dose_record", dose))).ok

    medications = await patient_mirror.pull("medication")
    assert [m.id for m in medications.records] == [medication.id]
    assert medications.records[0].schedules == ["08:00", "20:00"]
    assert medications.records[0].is_critical is True
    pulled_doses = await patient_mirror.pull("dose_record")
    assert {d.id for d in pulled_doses.records} == {d.id for d in doses}

    renamed = medication.model_copy(update={"name": "Sintrom 4"})
    assert (await patient_mirror.push(_change("update", "medication", renamed))).ok
    assert (await patient_mirror.pull("medication")).records[0].name == "Sintrom 4"

    deleted = await patient_mirror.push(_change("delete", "medication", record_id=medication.id))
    assert deleted.ok, deleted.error
    assert (await patient_mirror.pull("medication")).records == []
    assert (await patient_mirror.pull("dose_record")).records == []

    again = await patient_mirror.push(_change("delete", "medication", record_id=medication.id))
    assert again.ok


async def test_rejected_rows_come_back_as_failures(patient_mirror: RemoteMirror) -> None:
    invalid = Medication(name="Bad slot", dose=1, schedules=["25:00"])
    result = await patient_mirror.push(_change("create", "medication", invalid))
    assert not result.ok
    assert result.status_code == 422

    profile_delete = await patient_mirror.push(_change("delete", "profile", record_id="x"))
    assert not profile_delete.ok


async def test_session_check_rejects_bad_token(
    client_settings: ClientSettings, api_http: httpx.AsyncClient
) -> None:
    mirror = RemoteMirror(client_settings, token="not-a-jwt", http_client=api_http)
    assert await mirror.check_connectivity() is True
    assert await mirror.check_session() is False
    assert await RemoteMirror(client_settings, http_client=api_http).check_session() is False
    assert await mirror.login("maria@example.com", "wrong-password") is False


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network unreachable", request=request)


def _maintenance(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, json={"detail": "maintenance"})


@pytest.mark.parametrize("handler", [_unreachable, _maintenance], ids=["network", "server"])
async def test_transport_failures_become_result_values(
    client_settings: ClientSettings, handler: Callable[[httpx.Request], httpx.Response]
) -> None:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_URL)
    mirror = RemoteMirror(client_settings, token="t", user_id="user-1", http_client=http)
    medication = Medication(name="Sintrom", dose=4, schedules=["08:00"])

    assert await mirror.check_connectivity() is False
    pulled = await mirror.pull("medication")
    assert not pulled.ok
    assert pulled.records == []
    pushed = await mirror.push(_change("create", "medication", medication))
    assert not pushed.ok
    assert pushed.change_id is not None
    notifications = await mirror.fetch_notifications()
    assert not notifications.ok
    await http.aclose()


@pytest.mark.parametrize(
    "body",
    [{}, {"user": None}, [], "maintenance"],
    ids=["empty", "no-user", "list", "not-json"],
)
async def test_malformed_session_bodies_are_rejected(
    client_settings: ClientSettings, body: object
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_URL)
    mirror = RemoteMirror(client_settings, token="t", http_client=http)
    assert await mirror.check_session() is False
    assert await mirror.login("maria@example.com", "secret1") is False
    await http.aclose()


async def test_server_error_detail_and_status_are_kept(client_settings: ClientSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "database unavailable"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_URL)
    mirror = RemoteMirror(client_settings, token="t", http_client=http)
    result = await mirror.push(_change("delete", "caregiver", record_id="cg-1"))
    assert result.status_code == 500
    assert "database unavailable" in (result.error or "")
    await http.aclose()


async def test_row_translation_normalizes_clock_and_dates() -> None:
    medication = Medication(
        name="Sintrom", dose=4, schedules=["08:00"], start_date=dt.date(2026, 3, 1)
    )
    row = medication_to_row(medication, user_id="user-1")
    assert row["user_id"] == "user-1"
    assert row["start_date"] == "2026-03-01"
    assert "id" not in row

    record = row_to_dose_record(
        {
            "id": "dose-1",
            "medication_id": medication.id,
            "scheduled_time": "21:30:00",
            "date": "2026-03-10",
            "status": "taken",
            "actual_time": "2026-03-10T21:35:00",
            "created_at": "2026-03-10T21:35:00",
        }
    )
    assert record.scheduled_time == "21:30"
    assert record.date == dt.date(2026, 3, 10)
    assert record.actual_time.tzinfo is not None
    assert dose_record_to_row(record)["date"] == "2026-03-10"
