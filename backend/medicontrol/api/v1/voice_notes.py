"""Voice note endpoints."""
from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.voice_note import VoiceNoteCreate, VoiceNoteRead
from medicontrol.services import voice_note_service

router = APIRouter(prefix="/voice-notes")


@router.get("", response_model=list[VoiceNoteRead], summary="List voice notes")
async def list_voice_notes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    start_date: date | None = None,
    end_date: date | None = None,
    medication_id: str | None = None,
) -> list[VoiceNoteRead]:
    notes = await voice_note_service.list_voice_notes(
        session,
        user_id=current_user.id,
        start_date=start_date,
        end_date=end_date,
        medication_id=medication_id,
    )
    return [VoiceNoteRead.model_validate(obj) for obj in notes]


@router.post(
    "",
    response_model=VoiceNoteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Store a voice note",
)
async def create_voice_note(
    payload: VoiceNoteCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> VoiceNoteRead:
    note = await voice_note_service.create_voice_note(session, payload, user_id=current_user.id)
    return VoiceNoteRead.model_validate(note)


@router.delete(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a voice note",
)
async def delete_voice_note(
    note_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    try:
        await voice_note_service.delete_voice_note(
            session, user_id=current_user.id, note_id=note_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
