"""Missed-dose and reminder passes run by the external scheduler.

Scheduled clock times are interpreted in ``CHECKS_TIMEZONE``. Each dose slot
is alerted at most once per kind thanks to ``AlertRecord``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.core.config import get_settings
from medicontrol.integrations.twilio_client import TwilioClientError
from medicontrol.models import (
    AlertKind,
    AlertRecord,
    Caregiver,
    CaregiverRelationship,
    DoseRecord,
    DoseStatus,
    Medication,
    MedicationStatus,
    NotificationType,
    RelationshipStatus,
)
from medicontrol.services import notifications_service, sms_service

logger = logging.getLogger(__name__)

_Slot = tuple[str, str]


@dataclass(frozen=True, slots=True)
class _Med:
    """Detached copy of the medication columns a pass needs."""

    id: str
    user_id: str
    name: str
    dose: float
    unit: str
    schedules: tuple[str, ...]
    is_critical: bool
    critical_alert_delay: int | None
    stock: float | None
    stock_unit: str | None
    low_stock_threshold: float | None

    @classmethod
    def of(cls, row: Medication) -> "_Med":
        return cls(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            dose=row.dose,
            unit=row.dose_unit.value,
            schedules=tuple(row.schedules or ()),
            is_critical=row.is_critical,
            critical_alert_delay=row.critical_alert_delay,
            stock=row.stock,
            stock_unit=row.stock_unit,
            low_stock_threshold=row.low_stock_threshold,
        )


@dataclass
class CheckReport:
    checked: int = 0
    alerts_sent: int = 0
    errors: list[str] = field(default_factory=list)


def _local_now(now: datetime | None) -> datetime:
    tz = ZoneInfo(get_settings().checks_timezone)
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    return current.astimezone(tz)


def minutes_from(slot: str, day: date, now: datetime) -> float:
    """Minutes elapsed from ``slot`` on ``day`` until ``now`` (negative if ahead)."""
    hour, minute = (int(part) for part in slot.split(":")[:2])
    scheduled = datetime.combine(day, time(hour, minute), tzinfo=now.tzinfo)
    return (now - scheduled).total_seconds() / 60


async def _dose_statuses(
    session: AsyncSession, medication_ids: list[str], day: date
) -> dict[_Slot, set[DoseStatus]]:
    statuses: dict[_Slot, set[DoseStatus]] = defaultdict(set)
    if not medication_ids:
        return statuses
    result = await session.execute(
        select(DoseRecord.medication_id, DoseRecord.scheduled_time, DoseRecord.status).where(
            DoseRecord.medication_id.in_(medication_ids), DoseRecord.date == day
        )
    )
    for medication_id, slot, status in result.all():
        statuses[(medication_id, slot)].add(status)
    return statuses


async def _already_alerted(
    session: AsyncSession, medication_ids: list[str], day: date, kind: AlertKind
) -> set[_Slot]:
    if not medication_ids:
        return set()
    result = await session.execute(
        select(AlertRecord.medication_id, AlertRecord.scheduled_time).where(
            AlertRecord.medication_id.in_(medication_ids),
            AlertRecord.dose_date == day,
            AlertRecord.kind == kind,
        )
    )
    return {(medication_id, slot) for medication_id, slot in result.all()}


async def _active_medications(
    session: AsyncSession, *, day: date, critical_only: bool
) -> list[_Med]:
    """Active medications whose course covers ``day``."""
    stmt = select(Medication).where(
        Medication.status == MedicationStatus.ACTIVE,
        or_(Medication.start_date.is_(None), Medication.start_date <= day),
        or_(Medication.end_date.is_(None), Medication.end_date >= day),
    )
    if critical_only:
        stmt = stmt.where(Medication.is_critical.is_(True))
    result = await session.execute(stmt.order_by(Medication.user_id, Medication.id))
    return [_Med.of(row) for row in result.scalars()]


async def _record_alert(
    session: AsyncSession, medication: _Med, kind: AlertKind, day: date, slot: str
) -> None:
    session.add(
        AlertRecord(
            user_id=medication.user_id,
            medication_id=medication.id,
            kind=kind,
            dose_date=day,
            scheduled_time=slot,
        )
    )
    await session.flush()


async def _alert_missed_dose(
    session: AsyncSession,
    medication: _Med,
    *,
    day: date,
    slot: str,
    minutes_late: int,
) -> tuple[int, list[str]]:
    """Notify the patient and caregivers. Returns (alerts sent, sms targets)."""
    label = f"{medication.name} {medication.dose:g} {medication.unit}"
    data = {
        "medication_id": medication.id,
        "medication_name": medication.name,
        "scheduled_time": slot,
        "date": day.isoformat(),
        "minutes_late": minutes_late,
    }
    await _record_alert(session, medication, AlertKind.MISSED_DOSE, day, slot)
    await notifications_service.notify(
        session,
        user_id=medication.user_id,
        type=NotificationType.MISSED_DOSE,
        title=f"Missed dose: {medication.name}",
        message=f"Your {slot} dose of {label} has not been recorded.",
        priority=3,
        data=data,
        commit=False,
    )
    sent = 1

    relationships = await session.execute(
        select(CaregiverRelationship).where(
            CaregiverRelationship.patient_id == medication.user_id,
            CaregiverRelationship.status == RelationshipStatus.ACTIVE,
            CaregiverRelationship.can_receive_missed_dose.is_(True),
            CaregiverRelationship.caregiver_user_id.is_not(None),
        )
    )
    for relationship in relationships.scalars():
        await notifications_service.notify(
            session,
            user_id=relationship.caregiver_user_id or "",
            type=NotificationType.MISSED_DOSE,
            title=f"Missed critical dose: {medication.name}",
            message=f"The {slot} dose of {label} is {minutes_late} minutes late.",
            priority=3,
            data={**data, "patient_id": medication.user_id},
            commit=False,
        )
        sent += 1
    await session.commit()

    contacts = await session.execute(
        select(Caregiver.phone).where(
            Caregiver.user_id == medication.user_id,
            Caregiver.receive_missed_dose.is_(True),
            Caregiver.phone.is_not(None),
        )
    )
    phones = [phone for phone in contacts.scalars() if phone]
    return sent, phones


async def run_missed_dose_check(
    session: AsyncSession, *, now: datetime | None = None
) -> CheckReport:
    """Alert on critical doses that are late and have no taken record."""
    settings = get_settings()
    local_now = _local_now(now)
    today = local_now.date()
    report = CheckReport()

    medications = await _active_medications(session, day=today, critical_only=True)
    ids = [medication.id for medication in medications]
    statuses = await _dose_statuses(session, ids, today)
    alerted = await _already_alerted(session, ids, today, AlertKind.MISSED_DOSE)

    for medication in medications:
        delay = medication.critical_alert_delay
        if delay is None:
            delay = settings.default_alert_delay_minutes
        for slot in medication.schedules:
            report.checked += 1
            minutes_late = minutes_from(slot, today, local_now)
            if not delay <= minutes_late < delay + settings.missed_dose_window_minutes:
                continue
            if DoseStatus.TAKEN in statuses.get((medication.id, slot), set()):
                continue
            if (medication.id, slot) in alerted:
                continue
            try:
                sent, phones = await _alert_missed_dose(
                    session, medication, day=today, slot=slot, minutes_late=int(minutes_late)
                )
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("Missed-dose alert failed for medication %s", medication.id)
                report.errors.append(f"{medication.id}@{slot}: {exc.__class__.__name__}")
                continue
            report.alerts_sent += sent
            text = (
                f"MediControl: {medication.name} ({slot}) has not been taken. "
                f"{int(minutes_late)} minutes late."
            )
            for phone in phones:
                try:
                    await sms_service.send_alert_sms(to=phone, message=text, priority="critical")
                except (ValueError, TwilioClientError) as exc:
                    report.errors.append(f"{medication.id}@{slot} sms: {exc}")
                else:
                    report.alerts_sent += 1

    logger.info(
        "Missed-dose check: %s slots, %s alerts, %s errors",
        report.checked,
        report.alerts_sent,
        len(report.errors),
    )
    return report


def _is_low_stock(medication: _Med, default_threshold: float) -> bool:
    if medication.stock is None:
        return False
    threshold = medication.low_stock_threshold
    if threshold is None:
        threshold = default_threshold
    return 0 < medication.stock <= threshold


async def run_reminder_check(
    session: AsyncSession, *, now: datetime | None = None
) -> CheckReport:
    """Remind patients of doses due within the advance window; flag low stock."""
    settings = get_settings()
    local_now = _local_now(now)
    today = local_now.date()
    report = CheckReport()

    medications = await _active_medications(session, day=today, critical_only=False)
    ids = [medication.id for medication in medications]
    statuses = await _dose_statuses(session, ids, today)
    reminded = await _already_alerted(session, ids, today, AlertKind.REMINDER)
    stock_flagged = await _already_alerted(session, ids, today, AlertKind.LOW_STOCK)
    settled = {DoseStatus.TAKEN, DoseStatus.SKIPPED}

    for medication in medications:
        for slot in medication.schedules:
            report.checked += 1
            minutes_until = -minutes_from(slot, today, local_now)
            if not 0 <= minutes_until <= settings.reminder_advance_minutes:
                continue
            if statuses.get((medication.id, slot), set()) & settled:
                continue
            if (medication.id, slot) in reminded:
                continue
            try:
                await _record_alert(session, medication, AlertKind.REMINDER, today, slot)
                await notifications_service.notify(
                    session,
                    user_id=medication.user_id,
                    type=NotificationType.MEDICATION_REMINDER,
                    title=f"Time for {medication.name}",
                    message=(
                        f"Take {medication.dose:g} {medication.unit} of "
                        f"{medication.name} at {slot}."
                    ),
                    priority=2 if medication.is_critical else 1,
                    data={
                        "medication_id": medication.id,
                        "scheduled_time": slot,
                        "date": today.isoformat(),
                    },
                )
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("Reminder failed for medication %s", medication.id)
                report.errors.append(f"{medication.id}@{slot}: {exc.__class__.__name__}")
                continue
            report.alerts_sent += 1

        if (medication.id, "00:00") in stock_flagged:
            continue
        if not _is_low_stock(medication, settings.default_low_stock_threshold):
            continue
        try:
            await _record_alert(session, medication, AlertKind.LOW_STOCK, today, "00:00")
            await notifications_service.notify(
                session,
                user_id=medication.user_id,
                type=NotificationType.LOW_STOCK,
                title=f"Low stock: {medication.name}",
                message=(
                    f"Only {medication.stock:g} {medication.stock_unit or 'units'} of "
                    f"{medication.name} left."
                ),
                priority=1,
                data={"medication_id": medication.id, "stock": medication.stock},
            )
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception("Low-stock notice failed for medication %s", medication.id)
            report.errors.append(f"{medication.id} stock: {exc.__class__.__name__}")
            continue
        report.alerts_sent += 1

    logger.info(
        "Reminder check: %s slots, %s notices, %s errors",
        report.checked,
        report.alerts_sent,
        len(report.errors),
    )
    return report
