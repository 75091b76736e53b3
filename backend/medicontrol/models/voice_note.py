"""Voice note attachments recorded around a dose."""
from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, TimestampMixin


class VoiceNote(IdMixin, TimestampMixin, Base):
    __tablename__ = "voice_notes"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    medication_id: Mapped[str | None] = mapped_column(String(36), index=True)
    medication_name: Mapped[str | None] = mapped_column(String(200))
    audio_base64: Mapped[str] = mapped_column(Text, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    transcription: Mapped[str | None] = mapped_column(Text)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    dose_time: Mapped[str | None] = mapped_column(String(5))
    dose_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    is_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
