"""Local snapshot mutations and derived schedule queries."""

from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError

from medicontrol.client.blob_store import MemoryBlobStore
from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.local_store import LocalStore
from medicontrol.client.records import Caregiver, Medication, UserProfile

DAY = dt.date(2026, 3, 10)


@pytest.fixture()
def store(blobs: MemoryBlobStore) -> LocalStore:
    return LocalStore(blobs, PendingChangeLedger(blobs))


def _ledger(store: LocalStore) -> list[tuple[str, str]]:
    return [(entry.operation, entry.entity) for entry in store._ledger.list()]


def test_record_dose_upserts_and_tracks_stock(store: LocalStore) -> None:
    medication = Medication(name="Sintrom", dose=2, schedules=["08:00"], stock=10)
    store.set_medications([medication])
    assert _ledger(store) == []

    taken = store.record_dose(medication.id, DAY, "08:00", "taken")
    assert taken.actual_time is not None
    assert store.get_medication(medication.id).stock == 8
    assert _ledger(store) == [("create", "dose_record"), ("update", "medication")]

    again = store.record_dose(medication.id, DAY, "08:00", "taken", notes="with food")
    assert again.id == taken.id
    assert again.notes == "with food"
    assert store.get_medication(medication.id).stock == 8
    assert len(store.dose_records) == 1

    reset = store.record_dose(medication.id, DAY, "08:00", "pending")
    assert reset.actual_time is None
    assert reset.notes == "with food"
    store.record_dose(medication.id, DAY, "08:00", "taken")
    assert store.get_medication(medication.id).stock == 6


def test_untracked_stock_only_records_the_dose(store: LocalStore) -> None:
    medication = Medication(name="Omeprazol", dose=20, dose_unit="mg", schedules=["09:00"])
    store.set_medications([medication])

    store.record_dose(medication.id, DAY, "09:00", "taken")
    assert _ledger(store) == [("create", "dose_record")]
    assert store.get_medication(medication.id).stock is None


def test_update_stock_operations_clamp_at_zero(store: LocalStore) -> None:
    medication = store.add_medication(
        Medication(name="Enalapril", dose=1, schedules=["08:00"], stock=4)
    )
    assert store.update_stock(medication.id, 6, "add").stock == 10
    assert store.update_stock(medication.id, 3).stock == 3
    updated = store.update_stock(medication.id, 50, "subtract")
    assert updated.stock == 0
    assert updated.last_stock_update is not None
    assert store.update_stock("missing", 1) is None
    with pytest.raises(ValueError):
        store.update_stock(medication.id, 1, "multiply")  # type: ignore[arg-type]


def test_medications_the_backend_would_reject_never_reach_the_ledger(
    store: LocalStore,
) -> None:
    with pytest.raises(ValidationError):
        store.add_medication(Medication(name="No slots", dose=1))
    with pytest.raises(ValidationError):
        store.add_medication(Medication(name="Negative", dose=1, schedules=["08:00"], stock=-3))
    paused = store.add_medication(Medication(name="Paused", dose=1, status="inactive"))
    assert paused.schedules == []

    medication = store.add_medication(Medication(name="Sintrom", dose=4, schedules=["08:00"]))
    with pytest.raises(ValidationError):
        store.update_medication(medication.id, schedules=[])
    with pytest.raises(ValidationError):
        store.update_medication(medication.id, low_stock_threshold=-1)
    with pytest.raises(ValidationError):
        store.update_medication(medication.id, critical_alert_delay=-5)

    assert store.get_medication(medication.id).schedules == ["08:00"]
    assert _ledger(store) == [("create", "medication"), ("create", "medication")]


def test_delete_medication_drops_local_doses_with_one_entry(store: LocalStore) -> None:
    medication = Medication(name="Sintrom", dose=4, schedules=["08:00", "20:00"])
    other = Medication(name="Omeprazol", dose=1, schedules=["08:00"])
    store.set_medications([medication, other])
    store.record_dose(medication.id, DAY, "08:00", "taken")
    store.record_dose(other.id, DAY, "08:00", "taken")
    before = len(store._ledger)

    assert store.delete_medication(medication.id) is True
    assert [m.id for m in store.medications] == [other.id]
    assert {r.medication_id for r in store.dose_records} == {other.id}
    assert len(store._ledger) == before + 1
    assert store._ledger.list()[-1].record_id == medication.id
    assert store.delete_medication(medication.id) is False


def test_caregiver_and_profile_mutations_are_recorded(store: LocalStore) -> None:
    caregiver = store.add_caregiver(Caregiver(name="Ana", phone="+34622222222"))
    store.update_caregiver(caregiver.id, receive_missed_dose=False)
    assert store.get_caregiver(caregiver.id).receive_missed_dose is False
    assert store.delete_caregiver(caregiver.id) is True
    assert store.caregivers == []

    assert store.update_profile(age=70) is None
    store.set_profile(UserProfile(id="user-1", name="Maria Garcia"))
    store.complete_onboarding()
    assert store.onboarding_completed is True
    assert store.profile.onboarding_completed is True
    assert _ledger(store) == [
        ("create", "caregiver"),
        ("update", "caregiver"),
        ("delete", "caregiver"),
        ("update", "profile"),
    ]


def test_snapshot_survives_reload(blobs: MemoryBlobStore, store: LocalStore) -> None:
    medication = store.add_medication(Medication(name="Sintrom", dose=4, schedules=["08:00"]))
    store.record_dose(medication.id, DAY, "08:00", "skipped")
    store.set_last_sync(dt.datetime(2026, 3, 10, 9, 0, tzinfo=dt.UTC))

    reloaded = LocalStore(blobs, PendingChangeLedger(blobs))
    assert [m.id for m in reloaded.medications] == [medication.id]
    assert reloaded.find_dose_record(medication.id, DAY, "08:00").status == "skipped"
    assert reloaded.last_sync == dt.datetime(2026, 3, 10, 9, 0, tzinfo=dt.UTC)


def test_day_summary_and_compliance(store: LocalStore) -> None:
    medication = Medication(
        name="Metformina", dose=850, dose_unit="mg", schedules=["20:00", "08:00", "14:00"]
    )
    store.set_medications([medication])
    store.record_dose(medication.id, DAY, "08:00", "taken")
    store.record_dose(medication.id, DAY, "14:00", "skipped")
    next_day = DAY + dt.timedelta(days=1)
    for slot in medication.schedules:
        store.record_dose(medication.id, next_day, slot, "taken")

    assert [dose.time for dose in store.doses_for_date(DAY)] == ["08:00", "14:00", "20:00"]
    summary = store.day_summary(DAY)
    assert (summary.total, summary.taken, summary.pending, summary.skipped) == (3, 1, 1, 1)
    assert summary.compliance_rate == 33
    assert store.compliance_rate(DAY, next_day) == 67


def test_medications_for_date_respects_window_and_status(store: LocalStore) -> None:
    current = Medication(name="A", dose=1, schedules=["08:00"], start_date=DAY)
    finished = Medication(
        name="B", dose=1, schedules=["08:00"], end_date=DAY - dt.timedelta(days=1)
    )
    suspended = Medication(name="C", dose=1, schedules=["08:00"], status="suspended")
    future = Medication(
        name="D", dose=1, schedules=["08:00"], start_date=DAY + dt.timedelta(days=1)
    )
    store.set_medications([current, finished, suspended, future])

    assert [m.name for m in store.medications_for_date(DAY)] == ["A"]
    assert store.day_summary(DAY).total == 1


def test_low_stock_uses_per_medication_threshold(store: LocalStore) -> None:
    store.set_medications(
        [
            Medication(name="low", dose=1, schedules=["08:00"], stock=3),
            Medication(name="empty", dose=1, schedules=["08:00"], stock=0),
            Medication(
                name="custom", dose=1, schedules=["08:00"], stock=10, low_stock_threshold=12
            ),
            Medication(name="plenty", dose=1, schedules=["08:00"], stock=30),
            Medication(name="untracked", dose=1, schedules=["08:00"]),
            Medication(name="inactive", dose=1, stock=1, status="inactive"),
        ]
    )
    assert [m.name for m in store.low_stock_medications()] == ["low", "custom"]


def test_missed_and_next_dose(store: LocalStore) -> None:
    critical = Medication(
        name="Sintrom",
        dose=4,
        schedules=["08:00", "20:00"],
        is_critical=True,
        critical_alert_delay=30,
    )
    routine = Medication(name="Omeprazol", dose=1, schedules=["07:00"])
    store.set_medications([critical, routine])
    now = dt.datetime(2026, 3, 10, 9, 0)

    missed = store.missed_doses(now)
    assert [(m.medication_name, m.scheduled_time, m.minutes_late) for m in missed] == [
        ("Sintrom", "08:00", 60)
    ]
    store.record_dose(critical.id, DAY, "08:00", "taken")
    assert store.missed_doses(now) == []

    upcoming = store.next_dose(now)
    assert (upcoming.medication.name, upcoming.time) == ("Sintrom", "20:00")

    store.record_dose(critical.id, DAY, "20:00", "taken")
    tomorrow = store.next_dose(now)
    assert (tomorrow.medication.name, tomorrow.time) == ("Omeprazol", "07:00")
