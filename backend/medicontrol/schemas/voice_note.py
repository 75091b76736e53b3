"""Voice note schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from medicontrol.schemas.common import ClockTime


class VoiceNoteCreate(BaseModel):
    medication_id: str | None = None
    medication_name: str | None = None
    audio_base64: str = Field(min_length=1)
    duration_seconds: int = Field(default=10, ge=0, le=600)
    transcription: str | None = None
    dose_time: ClockTime | None = None
    dose_date: date | None = None
    is_shared: bool = False


class VoiceNoteRead(BaseModel):
    id: str
    user_id: str
    medication_id: str | None = None
    medication_name: str | None = None
    audio_base64: str
    duration_seconds: int
    transcription: str | None = None
    recorded_at: datetime
    dose_time: str | None = None
    dose_date: date
    is_shared: bool

    model_config = ConfigDict(from_attributes=True)
