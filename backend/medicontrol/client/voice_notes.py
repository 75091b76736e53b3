"""Voice notes kept on the device and mirrored through the API."""

from __future__ import annotations

import datetime as dt
import logging

from pydantic import ValidationError

from medicontrol.client.blob_store import BlobStore
from medicontrol.client.mirror import RemoteMirror
from medicontrol.client.records import VoiceNote

logger = logging.getLogger(__name__)

VOICE_NOTES_KEY = "medicontrol-voice-notes"


class VoiceNoteCache:
    """Attachment-style notes; writes go straight to the backend."""

    def __init__(self, store: BlobStore, mirror: RemoteMirror) -> None:
        self._store = store
        self._mirror = mirror
        self._notes: list[VoiceNote] = []
        for raw in store.get(VOICE_NOTES_KEY, []) or []:
            try:
                self._notes.append(VoiceNote.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping unreadable cached voice note", exc_info=True)

    @property
    def notes(self) -> list[VoiceNote]:
        return list(self._notes)

    def _save(self) -> None:
        self._notes.sort(key=lambda note: note.recorded_at, reverse=True)
        self._store.put(VOICE_NOTES_KEY, [note.to_blob() for note in self._notes])

    async def refresh(
        self,
        *,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        medication_id: str | None = None,
    ) -> bool:
        result = await self._mirror.fetch_voice_notes(
            start_date=start_date, end_date=end_date, medication_id=medication_id
        )
        if not result.ok:
            logger.warning("Voice note refresh failed: %s", result.error)
            return False
        if start_date or end_date or medication_id:
            fetched = {note.id for note in result.records}
            self._notes = [n for n in self._notes if n.id not in fetched] + result.records
        else:
            self._notes = list(result.records)
        self._save()
        return True

    async def create(
        self,
        *,
        audio_base64: str,
        duration_seconds: int = 10,
        medication_id: str | None = None,
        medication_name: str | None = None,
        transcription: str | None = None,
        dose_time: str | None = None,
        dose_date: dt.date | None = None,
        is_shared: bool = False,
    ) -> VoiceNote | None:
        body = {
            "audio_base64": audio_base64,
            "duration_seconds": duration_seconds,
            "medication_id": medication_id,
            "medication_name": medication_name,
            "transcription": transcription,
            "dose_time": dose_time,
            "dose_date": dose_date.isoformat() if dose_date else None,
            "is_shared": is_shared,
        }
        result = await self._mirror.create_voice_note(body)
        if not result.ok:
            logger.warning("Voice note upload failed: %s", result.error)
            return None
        self._notes.append(result.data)
        self._save()
        return result.data

    async def delete(self, note_id: str) -> bool:
        result = await self._mirror.delete_voice_note(note_id)
        if not result.ok:
            logger.warning("Voice note delete failed: %s", result.error)
            return False
        self._notes = [note for note in self._notes if note.id != note_id]
        self._save()
        return True
