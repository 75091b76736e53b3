"""Account, profile and caregiver-contact rows mirrored by sync clients."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.caregiver import CaregiverRead, CaregiverUpsert
from medicontrol.schemas.user import UserProfileRead, UserRead, UserSyncRead, UserSyncUpdate
from medicontrol.services import caregiver_service, user_service

router = APIRouter(prefix="/sync")


@router.get("/user", response_model=UserSyncRead, summary="Fetch account, profile and caregivers")
async def read_user(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserSyncRead:
    profile = await user_service.get_profile(session, user_id=current_user.id)
    caregivers = await caregiver_service.list_caregivers(session, user_id=current_user.id)
    return UserSyncRead(
        user=UserRead.model_validate(current_user),
        profile=UserProfileRead.model_validate(profile) if profile else None,
        caregivers=[CaregiverRead.model_validate(obj) for obj in caregivers],
    )


@router.put("/user", response_model=UserSyncRead, summary="Update account and profile")
async def update_user(
    payload: UserSyncUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserSyncRead:
    user, profile = await user_service.update_user_sync(
        session, user=current_user, payload=payload
    )
    caregivers = await caregiver_service.list_caregivers(session, user_id=user.id)
    return UserSyncRead(
        user=UserRead.model_validate(user),
        profile=UserProfileRead.model_validate(profile),
        caregivers=[CaregiverRead.model_validate(obj) for obj in caregivers],
    )


@router.get("/caregivers", response_model=list[CaregiverRead], summary="List caregiver contacts")
async def list_caregivers(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[CaregiverRead]:
    caregivers = await caregiver_service.list_caregivers(session, user_id=current_user.id)
    return [CaregiverRead.model_validate(obj) for obj in caregivers]


@router.put(
    "/caregivers/{caregiver_id}",
    response_model=CaregiverRead,
    summary="Create or replace a caregiver contact",
)
async def upsert_caregiver(
    caregiver_id: str,
    payload: CaregiverUpsert,
    response: Response,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> CaregiverRead:
    try:
        caregiver, created = await caregiver_service.upsert_caregiver(
            session, payload, user_id=current_user.id, caregiver_id=caregiver_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if created:
        response.status_code = status.HTTP_201_CREATED
    return CaregiverRead.model_validate(caregiver)


@router.delete(
    "/caregivers/{caregiver_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete caregiver contact",
)
async def delete_caregiver(
    caregiver_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    try:
        await caregiver_service.delete_caregiver(
            session, user_id=current_user.id, caregiver_id=caregiver_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
