"""Caregiver relationship, patient view and help-alert endpoints."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.caregiver import (
    CaregiverAlertCreate,
    CaregiverAlertResult,
    PatientSummary,
    PatientView,
    RelationshipCreate,
    RelationshipRead,
)
from medicontrol.services import caregiver_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/caregiver")


@router.post(
    "/relationships",
    response_model=RelationshipRead,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a caregiver to follow the current patient",
)
async def create_relationship(
    payload: RelationshipCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> RelationshipRead:
    try:
        relationship = await caregiver_service.create_relationship(
            session, payload, patient=current_user
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RelationshipRead.model_validate(relationship)


@router.get(
    "/relationships",
    response_model=list[RelationshipRead],
    summary="List caregivers invited by the current patient",
)
async def list_relationships(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[RelationshipRead]:
    relationships = await caregiver_service.list_relationships(
        session, patient_id=current_user.id
    )
    return [RelationshipRead.model_validate(obj) for obj in relationships]


@router.post(
    "/relationships/{relationship_id}/accept",
    response_model=RelationshipRead,
    summary="Accept a caregiver invitation",
)
async def accept_relationship(
    relationship_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> RelationshipRead:
    try:
        relationship = await caregiver_service.accept_relationship(
            session, caregiver=current_user, relationship_id=relationship_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return RelationshipRead.model_validate(relationship)


@router.delete(
    "/relationships/{relationship_id}",
    response_model=RelationshipRead,
    summary="Revoke a caregiver's access",
)
async def revoke_relationship(
    relationship_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> RelationshipRead:
    try:
        relationship = await caregiver_service.revoke_relationship(
            session, patient=current_user, relationship_id=relationship_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return RelationshipRead.model_validate(relationship)


@router.get(
    "/patients",
    response_model=list[PatientSummary],
    summary="List patients the current user cares for",
)
async def list_patients(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[PatientSummary]:
    return await caregiver_service.list_patients(session, caregiver=current_user)


@router.get(
    "/patients/{patient_id}",
    response_model=PatientView,
    summary="View a patient's data within the granted permissions",
)
async def view_patient(
    patient_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> PatientView:
    try:
        return await caregiver_service.build_patient_view(
            session, caregiver=current_user, patient_id=patient_id
        )
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post(
    "/alert",
    response_model=CaregiverAlertResult,
    status_code=status.HTTP_201_CREATED,
    summary="Ask a caregiver for help",
)
async def send_alert(
    payload: CaregiverAlertCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> CaregiverAlertResult:
    try:
        notification = await caregiver_service.send_caregiver_alert(
            session, payload, patient=current_user
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    logger.info("Caregiver alert %s sent for patient %s", notification.id, current_user.id)
    return CaregiverAlertResult(notification_id=notification.id, recipient_id=notification.user_id)
