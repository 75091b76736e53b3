"""Medication row services backing the sync endpoints."""
from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.models import Medication, MedicationStatus
from medicontrol.schemas.medication import MedicationUpdate, MedicationUpsert


def _coerce_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


async def list_medications(
    session: AsyncSession,
    *,
    user_id: str,
    active_only: bool = False,
) -> list[Medication]:
    stmt: Select[tuple[Medication]] = (
        select(Medication)
        .where(Medication.user_id == user_id)
        .order_by(Medication.created_at.desc(), Medication.id)
    )
    if active_only:
        stmt = stmt.where(Medication.status == MedicationStatus.ACTIVE)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_medication(
    session: AsyncSession,
    *,
    user_id: str,
    medication_id: str,
) -> Medication | None:
    medication = await session.get(Medication, medication_id)
    if medication is None or medication.user_id != user_id:
        return None
    return medication


def _apply(medication: Medication, values: dict) -> None:
    for field, value in values.items():
        if field == "last_stock_update":
            value = _coerce_utc(value)
        setattr(medication, field, value)


async def create_medication(
    session: AsyncSession,
    payload: MedicationUpsert,
    *,
    user_id: str,
) -> Medication:
    medication = Medication(user_id=user_id)
    _apply(medication, payload.model_dump())
    session.add(medication)
    await session.commit()
    await session.refresh(medication)
    return medication


async def upsert_medication(
    session: AsyncSession,
    payload: MedicationUpsert,
    *,
    user_id: str,
    medication_id: str,
) -> tuple[Medication, bool]:
    """Write the full row under a client-chosen id. Returns ``(row, created)``."""
    medication = await session.get(Medication, medication_id)
    if medication is not None and medication.user_id != user_id:
        raise ValueError("Medication not found")
    created = medication is None
    if created:
        medication = Medication(id=medication_id, user_id=user_id)
        session.add(medication)
    _apply(medication, payload.model_dump())
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(medication)
    return medication, created


async def update_medication(
    session: AsyncSession,
    *,
    medication: Medication,
    payload: MedicationUpdate,
) -> Medication:
    updates = payload.model_dump(exclude_unset=True)
    if "stock" in updates and "last_stock_update" not in updates:
        updates["last_stock_update"] = datetime.now(UTC)
    _apply(medication, updates)
    if medication.status == MedicationStatus.ACTIVE and not medication.schedules:
        await session.rollback()
        raise ValueError("An active medication needs at least one scheduled time")
    await session.commit()
    await session.refresh(medication)
    return medication


async def delete_medication(
    session: AsyncSession,
    *,
    medication: Medication,
) -> None:
    """Delete only the medication row; dose rows are removed by the caller first."""
    await session.delete(medication)
    await session.commit()
