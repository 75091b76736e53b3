"""In-app notification model."""
from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, enum_column


class NotificationType(str, enum.Enum):
    CAREGIVER_VIEW = "caregiver_view"
    CAREGIVER_ALERT = "caregiver_alert"
    MEDICATION_REMINDER = "medication_reminder"
    MISSED_DOSE = "missed_dose"
    LOW_STOCK = "low_stock"
    SYSTEM = "system"


class Notification(IdMixin, Base):
    """Message addressed to one user. Only the read flag ever changes."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
