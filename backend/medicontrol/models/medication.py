"""Medication model."""
from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, TimestampMixin, enum_column


class DoseUnit(str, enum.Enum):
    MG = "mg"
    ML = "ml"
    TABLET = "tablet"
    DROP = "drop"
    CAPSULE = "capsule"
    GRAM = "gram"
    UNIT = "unit"


class FrequencyType(str, enum.Enum):
    DAILY = "daily"
    HOURS = "hours"
    WEEKLY = "weekly"
    AS_NEEDED = "as_needed"


class MedicationStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Medication(IdMixin, TimestampMixin, Base):
    """A prescribed medication and its schedule, stock and alert settings."""

    __tablename__ = "medications"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    generic_name: Mapped[str | None] = mapped_column(String(200))
    dose: Mapped[float] = mapped_column(Float, nullable=False)
    dose_unit: Mapped[DoseUnit] = mapped_column(enum_column(DoseUnit), nullable=False)
    frequency_type: Mapped[FrequencyType] = mapped_column(
        enum_column(FrequencyType), default=FrequencyType.DAILY, nullable=False
    )
    frequency_value: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    schedules: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    instructions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[MedicationStatus] = mapped_column(
        enum_column(MedicationStatus), default=MedicationStatus.ACTIVE, nullable=False
    )
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)
    stock: Mapped[float | None] = mapped_column(Float)
    stock_unit: Mapped[str | None] = mapped_column(String(32))
    low_stock_threshold: Mapped[float | None] = mapped_column(Float)
    last_stock_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_critical: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    critical_alert_delay: Mapped[int | None] = mapped_column(Integer)
