"""Dose record model."""
from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, TimestampMixin, enum_column


class DoseStatus(str, enum.Enum):
    PENDING = "pending"
    TAKEN = "taken"
    SKIPPED = "skipped"
    POSTPONED = "postponed"


class DoseRecord(IdMixin, TimestampMixin, Base):
    """One scheduled intake of a medication on a given day.

    ``medication_id`` is a plain indexed column: dose rows are removed
    explicitly before their medication, the database does not cascade.
    """

    __tablename__ = "dose_records"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    medication_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, index=True, nullable=False)
    status: Mapped[DoseStatus] = mapped_column(
        enum_column(DoseStatus), default=DoseStatus.PENDING, nullable=False
    )
    actual_time: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    postponed_to: Mapped[str | None] = mapped_column(String(5))
