"""Log of alerts emitted by the scheduled checks."""
from __future__ import annotations

import enum
from datetime import UTC, date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, enum_column


class AlertKind(str, enum.Enum):
    MISSED_DOSE = "missed_dose"
    REMINDER = "reminder"
    LOW_STOCK = "low_stock"


class AlertRecord(IdMixin, Base):
    """One row per (medication, day, scheduled time, kind) already alerted."""

    __tablename__ = "alert_records"
    __table_args__ = (
        UniqueConstraint(
            "medication_id", "dose_date", "scheduled_time", "kind", name="uq_alert_records_dose"
        ),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    medication_id: Mapped[str] = mapped_column(String(36), nullable=False)
    kind: Mapped[AlertKind] = mapped_column(enum_column(AlertKind), nullable=False)
    dose_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
