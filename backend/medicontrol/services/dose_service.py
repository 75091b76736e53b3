"""Dose record services."""
from __future__ import annotations

import datetime as dt
from collections import Counter
from collections.abc import Iterable

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.models import DoseRecord, DoseStatus
from medicontrol.schemas.dose_record import (
    DoseRecordBase,
    DoseRecordBatchItem,
    DoseRecordUpdate,
)


def _coerce_utc(value: dt.datetime | None) -> dt.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


async def list_dose_records(
    session: AsyncSession,
    *,
    user_id: str,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    medication_id: str | None = None,
) -> list[DoseRecord]:
    stmt: Select[tuple[DoseRecord]] = select(DoseRecord).where(DoseRecord.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(DoseRecord.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(DoseRecord.date <= end_date)
    if medication_id is not None:
        stmt = stmt.where(DoseRecord.medication_id == medication_id)
    stmt = stmt.order_by(
        DoseRecord.date.desc(), DoseRecord.scheduled_time.desc(), DoseRecord.id
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_dose_record(
    session: AsyncSession,
    *,
    user_id: str,
    record_id: str,
) -> DoseRecord | None:
    record = await session.get(DoseRecord, record_id)
    if record is None or record.user_id != user_id:
        return None
    return record


def _stage(
    session: AsyncSession,
    existing: DoseRecord | None,
    payload: DoseRecordBase,
    *,
    user_id: str,
    record_id: str,
) -> DoseRecord:
    if existing is not None and existing.user_id != user_id:
        raise ValueError("Dose record not found")
    record = existing or DoseRecord(id=record_id, user_id=user_id)
    values = payload.model_dump(exclude={"id"})
    values["actual_time"] = _coerce_utc(values.get("actual_time"))
    for field, value in values.items():
        setattr(record, field, value)
    if existing is None:
        session.add(record)
    return record


async def upsert_dose_record(
    session: AsyncSession,
    payload: DoseRecordBase,
    *,
    user_id: str,
    record_id: str,
) -> tuple[DoseRecord, bool]:
    existing = await session.get(DoseRecord, record_id)
    record = _stage(session, existing, payload, user_id=user_id, record_id=record_id)
    await session.commit()
    await session.refresh(record)
    return record, existing is None


async def batch_upsert(
    session: AsyncSession,
    items: Iterable[DoseRecordBatchItem],
    *,
    user_id: str,
) -> list[DoseRecord]:
    """Upsert many rows in one transaction; any foreign id aborts the batch."""
    records: list[DoseRecord] = []
    for item in items:
        existing = await session.get(DoseRecord, item.id)
        try:
            records.append(
                _stage(session, existing, item, user_id=user_id, record_id=item.id)
            )
        except ValueError:
            await session.rollback()
            raise
    await session.commit()
    for record in records:
        await session.refresh(record)
    return records


async def update_dose_record(
    session: AsyncSession,
    *,
    record: DoseRecord,
    payload: DoseRecordUpdate,
) -> DoseRecord:
    updates = payload.model_dump(exclude_unset=True)
    if "actual_time" in updates:
        updates["actual_time"] = _coerce_utc(updates["actual_time"])
    elif updates.get("status") == DoseStatus.TAKEN and record.actual_time is None:
        updates["actual_time"] = dt.datetime.now(dt.UTC)
    for field, value in updates.items():
        setattr(record, field, value)
    await session.commit()
    await session.refresh(record)
    return record


async def delete_dose_record(session: AsyncSession, *, record: DoseRecord) -> None:
    await session.delete(record)
    await session.commit()


async def delete_for_medication(
    session: AsyncSession,
    *,
    user_id: str,
    medication_id: str,
) -> int:
    """Remove every dose row of one medication (child rows go before the parent)."""
    result = await session.execute(
        delete(DoseRecord).where(
            DoseRecord.user_id == user_id, DoseRecord.medication_id == medication_id
        )
    )
    await session.commit()
    return result.rowcount or 0


def summarize(records: Iterable[DoseRecord]) -> dict[str, int]:
    counts = Counter(record.status for record in records)
    return {
        "total": sum(counts.values()),
        "taken": counts[DoseStatus.TAKEN],
        "pending": counts[DoseStatus.PENDING],
        "skipped": counts[DoseStatus.SKIPPED],
    }
