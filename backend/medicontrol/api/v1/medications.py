"""Medication rows mirrored by sync clients."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.medication import MedicationRead, MedicationUpdate, MedicationUpsert
from medicontrol.services import medication_service

router = APIRouter(prefix="/sync/medications")


@router.get("", response_model=list[MedicationRead], summary="List medications, newest first")
async def list_medications(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[MedicationRead]:
    medications = await medication_service.list_medications(session, user_id=current_user.id)
    return [MedicationRead.model_validate(obj) for obj in medications]


@router.post(
    "",
    response_model=MedicationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create medication with a server-assigned id",
)
async def create_medication(
    payload: MedicationUpsert,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationRead:
    medication = await medication_service.create_medication(
        session, payload, user_id=current_user.id
    )
    return MedicationRead.model_validate(medication)


@router.get("/{medication_id}", response_model=MedicationRead, summary="Get medication")
async def get_medication(
    medication_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationRead:
    medication = await medication_service.get_medication(
        session, user_id=current_user.id, medication_id=medication_id
    )
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    return MedicationRead.model_validate(medication)


@router.put(
    "/{medication_id}",
    response_model=MedicationRead,
    summary="Create or replace medication under a client id",
)
async def upsert_medication(
    medication_id: str,
    payload: MedicationUpsert,
    response: Response,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationRead:
    try:
        medication, created = await medication_service.upsert_medication(
            session, payload, user_id=current_user.id, medication_id=medication_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if created:
        response.status_code = status.HTTP_201_CREATED
    return MedicationRead.model_validate(medication)


@router.patch("/{medication_id}", response_model=MedicationRead, summary="Update medication")
async def update_medication(
    medication_id: str,
    payload: MedicationUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationRead:
    medication = await medication_service.get_medication(
        session, user_id=current_user.id, medication_id=medication_id
    )
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    try:
        updated = await medication_service.update_medication(
            session, medication=medication, payload=payload
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MedicationRead.model_validate(updated)


@router.delete(
    "/{medication_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete medication row (dose rows are not cascaded)",
)
async def delete_medication(
    medication_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    medication = await medication_service.get_medication(
        session, user_id=current_user.id, medication_id=medication_id
    )
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    await medication_service.delete_medication(session, medication=medication)
