"""Dose record rows mirrored by sync clients."""
from __future__ import annotations

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.dose_record import (
    DoseDeleteResult,
    DoseRecordBatch,
    DoseRecordRead,
    DoseRecordUpdate,
    DoseRecordUpsert,
)
from medicontrol.services import dose_service

router = APIRouter(prefix="/sync/doses")


@router.get("", response_model=list[DoseRecordRead], summary="List dose records")
async def list_dose_records(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    medication_id: str | None = None,
) -> list[DoseRecordRead]:
    records = await dose_service.list_dose_records(
        session,
        user_id=current_user.id,
        start_date=start_date,
        end_date=end_date,
        medication_id=medication_id,
    )
    return [DoseRecordRead.model_validate(obj) for obj in records]


@router.post(
    "/batch",
    response_model=list[DoseRecordRead],
    summary="Upsert many dose records at once",
)
async def batch_upsert_dose_records(
    payload: DoseRecordBatch,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[DoseRecordRead]:
    try:
        records = await dose_service.batch_upsert(
            session, payload.records, user_id=current_user.id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [DoseRecordRead.model_validate(obj) for obj in records]


@router.delete(
    "",
    response_model=DoseDeleteResult,
    summary="Delete every dose record of a medication",
)
async def delete_dose_records_for_medication(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    medication_id: Annotated[str, Query(min_length=1)],
) -> DoseDeleteResult:
    deleted = await dose_service.delete_for_medication(
        session, user_id=current_user.id, medication_id=medication_id
    )
    return DoseDeleteResult(deleted=deleted)


@router.put(
    "/{record_id}",
    response_model=DoseRecordRead,
    summary="Create or replace a dose record under a client id",
)
async def upsert_dose_record(
    record_id: str,
    payload: DoseRecordUpsert,
    response: Response,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> DoseRecordRead:
    try:
        record, created = await dose_service.upsert_dose_record(
            session, payload, user_id=current_user.id, record_id=record_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if created:
        response.status_code = status.HTTP_201_CREATED
    return DoseRecordRead.model_validate(record)


@router.patch("/{record_id}", response_model=DoseRecordRead, summary="Update dose record")
async def update_dose_record(
    record_id: str,
    payload: DoseRecordUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> DoseRecordRead:
    record = await dose_service.get_dose_record(
        session, user_id=current_user.id, record_id=record_id
    )
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dose record not found")
    updated = await dose_service.update_dose_record(session, record=record, payload=payload)
    return DoseRecordRead.model_validate(updated)


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete dose record",
)
async def delete_dose_record(
    record_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    record = await dose_service.get_dose_record(
        session, user_id=current_user.id, record_id=record_id
    )
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dose record not found")
    await dose_service.delete_dose_record(session, record=record)
