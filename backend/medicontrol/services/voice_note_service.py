"""Voice note services."""
from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.models import VoiceNote
from medicontrol.schemas.voice_note import VoiceNoteCreate


async def list_voice_notes(
    session: AsyncSession,
    *,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    medication_id: str | None = None,
) -> list[VoiceNote]:
    stmt = select(VoiceNote).where(VoiceNote.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(VoiceNote.dose_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(VoiceNote.dose_date <= end_date)
    if medication_id is not None:
        stmt = stmt.where(VoiceNote.medication_id == medication_id)
    result = await session.execute(stmt.order_by(VoiceNote.recorded_at.desc()))
    return list(result.scalars().all())


async def create_voice_note(
    session: AsyncSession,
    payload: VoiceNoteCreate,
    *,
    user_id: str,
) -> VoiceNote:
    now = datetime.now(UTC)
    values = payload.model_dump()
    values["dose_date"] = values["dose_date"] or now.date()
    note = VoiceNote(user_id=user_id, recorded_at=now, **values)
    session.add(note)
    await session.commit()
    await session.refresh(note)
    return note


async def delete_voice_note(session: AsyncSession, *, user_id: str, note_id: str) -> None:
    note = await session.get(VoiceNote, note_id)
    if note is None or note.user_id != user_id:
        raise ValueError("Voice note not found")
    await session.delete(note)
    await session.commit()
