"""Device-side snapshot of the user's records.

Bulk data only enters through the ``set_*`` methods, which replace a whole
collection and never touch the ledger. Every other mutation persists the
collection and appends one ledger entry per change.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import ValidationError

from medicontrol.client.blob_store import BlobStore
from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.records import (
    Caregiver,
    DoseRecord,
    DoseStatus,
    LocalRecord,
    Medication,
    UserProfile,
    utcnow,
)

logger = logging.getLogger(__name__)

MEDICATIONS_KEY = "medicontrol-medications"
DOSE_RECORDS_KEY = "medicontrol-dose-records"
CAREGIVERS_KEY = "medicontrol-caregivers"
PROFILE_KEY = "medicontrol-profile"
ONBOARDING_KEY = "medicontrol-onboarding-completed"
LAST_SYNC_KEY = "medicontrol-last-sync"

DEFAULT_LOW_STOCK_THRESHOLD = 5
DEFAULT_ALERT_DELAY_MINUTES = 60
NEXT_DOSE_LOOKAHEAD_DAYS = 7

StockOperation = Literal["set", "add", "subtract"]
_R = TypeVar("_R", bound=LocalRecord)


@dataclass(frozen=True)
class ScheduledDose:
    medication: Medication
    time: str
    status: DoseStatus
    record: DoseRecord | None = None


@dataclass(frozen=True)
class DaySummary:
    date: dt.date
    total: int
    taken: int
    pending: int
    skipped: int
    postponed: int
    compliance_rate: int


@dataclass(frozen=True)
class MissedDose:
    medication_id: str
    medication_name: str
    scheduled_time: str
    minutes_late: int


def _revise(record: _R, changes: dict[str, Any]) -> _R:
    """Return ``record`` with ``changes`` applied and re-validated."""
    return type(record).model_validate({**record.model_dump(), **changes})


def _load(store: BlobStore, key: str, model: type[_R]) -> list[_R]:
    records: list[_R] = []
    for raw in store.get(key, []) or []:
        try:
            records.append(model.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping unreadable %s entry", key, exc_info=True)
    return records


def _at(day: dt.date, slot: str, now: dt.datetime) -> dt.datetime:
    hour, minute = (int(part) for part in slot.split(":")[:2])
    return dt.datetime.combine(day, dt.time(hour, minute), tzinfo=now.tzinfo)


class LocalStore:
    """In-process owner of the current snapshot, written through to blobs."""

    def __init__(self, store: BlobStore, ledger: PendingChangeLedger) -> None:
        self._store = store
        self._ledger = ledger
        self._medications = _load(store, MEDICATIONS_KEY, Medication)
        self._dose_records = _load(store, DOSE_RECORDS_KEY, DoseRecord)
        self._caregivers = _load(store, CAREGIVERS_KEY, Caregiver)
        raw_profile = store.get(PROFILE_KEY)
        self._profile = UserProfile.model_validate(raw_profile) if raw_profile else None
        self._onboarding_completed = bool(store.get(ONBOARDING_KEY, False))
        raw_last_sync = store.get(LAST_SYNC_KEY)
        self._last_sync = dt.datetime.fromisoformat(raw_last_sync) if raw_last_sync else None

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------
    @property
    def medications(self) -> list[Medication]:
        return list(self._medications)

    @property
    def dose_records(self) -> list[DoseRecord]:
        return list(self._dose_records)

    @property
    def caregivers(self) -> list[Caregiver]:
        return list(self._caregivers)

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def onboarding_completed(self) -> bool:
        return self._onboarding_completed

    @property
    def last_sync(self) -> dt.datetime | None:
        return self._last_sync

    def get_medication(self, medication_id: str) -> Medication | None:
        return next((m for m in self._medications if m.id == medication_id), None)

    def get_dose_record(self, record_id: str) -> DoseRecord | None:
        return next((r for r in self._dose_records if r.id == record_id), None)

    def get_caregiver(self, caregiver_id: str) -> Caregiver | None:
        return next((c for c in self._caregivers if c.id == caregiver_id), None)

    # ------------------------------------------------------------------
    # Whole-collection replacement (pull path)
    # ------------------------------------------------------------------
    def set_medications(self, records: list[Medication]) -> None:
        self._medications = list(records)
        self._save_medications()

    def set_dose_records(self, records: list[DoseRecord]) -> None:
        self._dose_records = list(records)
        self._save_dose_records()

    def set_caregivers(self, records: list[Caregiver]) -> None:
        self._caregivers = list(records)
        self._save_caregivers()

    def set_profile(self, profile: UserProfile | None) -> None:
        self._profile = profile
        if profile is None:
            self._store.delete(PROFILE_KEY)
        else:
            self._store.put(PROFILE_KEY, profile.to_blob())
            if profile.onboarding_completed and not self._onboarding_completed:
                self._set_onboarding(True)

    def set_last_sync(self, when: dt.datetime) -> None:
        self._last_sync = when
        self._store.put(LAST_SYNC_KEY, when.isoformat())

    def _save_medications(self) -> None:
        self._store.put(MEDICATIONS_KEY, [m.to_blob() for m in self._medications])

    def _save_dose_records(self) -> None:
        self._store.put(DOSE_RECORDS_KEY, [r.to_blob() for r in self._dose_records])

    def _save_caregivers(self) -> None:
        self._store.put(CAREGIVERS_KEY, [c.to_blob() for c in self._caregivers])

    def _set_onboarding(self, value: bool) -> None:
        self._onboarding_completed = value
        self._store.put(ONBOARDING_KEY, value)

    # ------------------------------------------------------------------
    # Medications
    # ------------------------------------------------------------------
    def add_medication(self, medication: Medication) -> Medication:
        self._medications.insert(0, medication)
        self._save_medications()
        self._ledger.record("create", "medication", medication.id, medication.to_blob())
        return medication

    def update_medication(self, medication_id: str, **changes: Any) -> Medication | None:
        current = self.get_medication(medication_id)
        if current is None:
            return None
        updated = _revise(current, {**changes, "updated_at": utcnow()})
        self._medications = [updated if m.id == medication_id else m for m in self._medications]
        self._save_medications()
        self._ledger.record("update", "medication", medication_id, updated.to_blob())
        return updated

    def delete_medication(self, medication_id: str) -> bool:
        """Drop a medication and its local dose records.

        Only the parent gets a ledger entry; the mirror removes the remote
        dose records before deleting the medication.
        """
        if self.get_medication(medication_id) is None:
            return False
        self._medications = [m for m in self._medications if m.id != medication_id]
        self._dose_records = [r for r in self._dose_records if r.medication_id != medication_id]
        self._save_medications()
        self._save_dose_records()
        self._ledger.record("delete", "medication", medication_id)
        return True

    def update_stock(
        self, medication_id: str, quantity: float, operation: StockOperation = "set"
    ) -> Medication | None:
        current = self.get_medication(medication_id)
        if current is None:
            return None
        stock = current.stock or 0
        if operation == "set":
            new_stock = quantity
        elif operation == "add":
            new_stock = stock + quantity
        elif operation == "subtract":
            new_stock = stock - quantity
        else:
            raise ValueError(f"Unknown stock operation: {operation}")
        return self.update_medication(
            medication_id, stock=max(0, new_stock), last_stock_update=utcnow()
        )

    # ------------------------------------------------------------------
    # Dose records
    # ------------------------------------------------------------------
    def find_dose_record(
        self, medication_id: str, day: dt.date, scheduled_time: str
    ) -> DoseRecord | None:
        return next(
            (
                r
                for r in self._dose_records
                if r.medication_id == medication_id
                and r.date == day
                and r.scheduled_time == scheduled_time
            ),
            None,
        )

    def record_dose(
        self,
        medication_id: str,
        day: dt.date,
        scheduled_time: str,
        status: DoseStatus,
        notes: str | None = None,
    ) -> DoseRecord:
        """Upsert the record for one (medication, date, time) slot.

        Marking a dose taken stamps ``actual_time`` and, when stock is
        tracked, subtracts the dose from the medication's stock.
        """
        existing = self.find_dose_record(medication_id, day, scheduled_time)
        actual_time = utcnow() if status != "pending" else None
        if existing is None:
            record = DoseRecord(
                medication_id=medication_id,
                scheduled_time=scheduled_time,
                date=day,
                status=status,
                notes=notes,
                actual_time=actual_time,
            )
            self._dose_records.append(record)
            self._save_dose_records()
            self._ledger.record("create", "dose_record", record.id, record.to_blob())
            was_taken = False
        else:
            was_taken = existing.status == "taken"
            changes: dict[str, Any] = {"status": status, "actual_time": actual_time}
            if notes is not None:
                changes["notes"] = notes
            record = self._replace_dose_record(existing, changes)

        if status == "taken" and not was_taken:
            medication = self.get_medication(medication_id)
            if medication is not None and medication.stock is not None:
                self.update_stock(medication_id, medication.dose, "subtract")
        return record

    def update_dose_record(self, record_id: str, **changes: Any) -> DoseRecord | None:
        current = self.get_dose_record(record_id)
        if current is None:
            return None
        return self._replace_dose_record(current, changes)

    def _replace_dose_record(self, current: DoseRecord, changes: dict[str, Any]) -> DoseRecord:
        updated = _revise(current, changes)
        self._dose_records = [updated if r.id == current.id else r for r in self._dose_records]
        self._save_dose_records()
        self._ledger.record("update", "dose_record", updated.id, updated.to_blob())
        return updated

    # ------------------------------------------------------------------
    # Caregivers
    # ------------------------------------------------------------------
    def add_caregiver(self, caregiver: Caregiver) -> Caregiver:
        self._caregivers.insert(0, caregiver)
        self._save_caregivers()
        self._ledger.record("create", "caregiver", caregiver.id, caregiver.to_blob())
        return caregiver

    def update_caregiver(self, caregiver_id: str, **changes: Any) -> Caregiver | None:
        current = self.get_caregiver(caregiver_id)
        if current is None:
            return None
        updated = _revise(current, changes)
        self._caregivers = [updated if c.id == caregiver_id else c for c in self._caregivers]
        self._save_caregivers()
        self._ledger.record("update", "caregiver", caregiver_id, updated.to_blob())
        return updated

    def delete_caregiver(self, caregiver_id: str) -> bool:
        if self.get_caregiver(caregiver_id) is None:
            return False
        self._caregivers = [c for c in self._caregivers if c.id != caregiver_id]
        self._save_caregivers()
        self._ledger.record("delete", "caregiver", caregiver_id)
        return True

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    def update_profile(self, **changes: Any) -> UserProfile | None:
        if self._profile is None:
            return None
        updated = _revise(self._profile, {**changes, "updated_at": utcnow()})
        self._profile = updated
        self._store.put(PROFILE_KEY, updated.to_blob())
        self._ledger.record("update", "profile", updated.id, updated.to_blob())
        return updated

    def complete_onboarding(self) -> None:
        self._set_onboarding(True)
        if self._profile is not None and not self._profile.onboarding_completed:
            self.update_profile(onboarding_completed=True)

    # ------------------------------------------------------------------
    # Derived queries, recomputed on every call
    # ------------------------------------------------------------------
    def medications_for_date(self, day: dt.date) -> list[Medication]:
        return [
            m
            for m in self._medications
            if m.status == "active"
            and (m.start_date is None or m.start_date <= day)
            and (m.end_date is None or m.end_date >= day)
        ]

    def doses_for_date(self, day: dt.date) -> list[ScheduledDose]:
        doses = []
        for medication in self.medications_for_date(day):
            for slot in medication.schedules:
                record = self.find_dose_record(medication.id, day, slot)
                doses.append(
                    ScheduledDose(
                        medication=medication,
                        time=slot,
                        status=record.status if record else "pending",
                        record=record,
                    )
                )
        return sorted(doses, key=lambda dose: dose.time)

    def day_summary(self, day: dt.date) -> DaySummary:
        doses = self.doses_for_date(day)
        counts = {status: 0 for status in ("taken", "pending", "skipped", "postponed")}
        for dose in doses:
            counts[dose.status] += 1
        total = len(doses)
        return DaySummary(
            date=day,
            total=total,
            compliance_rate=round(counts["taken"] / total * 100) if total else 0,
            **counts,
        )

    def compliance_rate(self, start: dt.date, end: dt.date) -> int:
        """Percentage of scheduled doses taken between ``start`` and ``end``."""
        total = taken = 0
        day = start
        while day <= end:
            summary = self.day_summary(day)
            total += summary.total
            taken += summary.taken
            day += dt.timedelta(days=1)
        return round(taken / total * 100) if total else 0

    def low_stock_medications(
        self, default_threshold: float = DEFAULT_LOW_STOCK_THRESHOLD
    ) -> list[Medication]:
        results = []
        for medication in self._medications:
            if medication.status != "active" or medication.stock is None:
                continue
            threshold = medication.low_stock_threshold
            if threshold is None:
                threshold = default_threshold
            if 0 < medication.stock <= threshold:
                results.append(medication)
        return results

    def missed_doses(self, now: dt.datetime | None = None) -> list[MissedDose]:
        """Critical doses still pending today past their alert delay."""
        now = now or dt.datetime.now()
        today = now.date()
        missed = []
        for dose in self.doses_for_date(today):
            medication = dose.medication
            if not medication.is_critical or dose.status != "pending":
                continue
            delay = medication.critical_alert_delay
            if delay is None:
                delay = DEFAULT_ALERT_DELAY_MINUTES
            minutes_late = (now - _at(today, dose.time, now)).total_seconds() / 60
            if minutes_late >= delay:
                missed.append(
                    MissedDose(
                        medication_id=medication.id,
                        medication_name=medication.name,
                        scheduled_time=dose.time,
                        minutes_late=int(minutes_late),
                    )
                )
        return missed

    def next_dose(self, now: dt.datetime | None = None) -> ScheduledDose | None:
        now = now or dt.datetime.now()
        current = now.strftime("%H:%M")
        for dose in self.doses_for_date(now.date()):
            if dose.status == "pending" and dose.time >= current:
                return dose
        for offset in range(1, NEXT_DOSE_LOOKAHEAD_DAYS + 1):
            day = now.date() + dt.timedelta(days=offset)
            for dose in self.doses_for_date(day):
                if dose.status == "pending":
                    return dose
        return None
