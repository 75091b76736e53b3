"""Caregiver contacts and caregiver-to-patient relationships."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, orm
from sqlalchemy.orm import Mapped, mapped_column

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, TimestampMixin, enum_column

if TYPE_CHECKING:  # pragma: no cover - typing only
    from medicontrol.models.user import User


class Caregiver(IdMixin, TimestampMixin, Base):
    """Contact the patient wants alerted; may or may not hold an account."""

    __tablename__ = "caregivers"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(32))
    relationship: Mapped[str] = mapped_column(String(50), default="other", nullable=False)
    receive_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    receive_missed_dose: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    receive_panic_button: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped["User"] = orm.relationship("User", back_populates="caregivers")


class RelationshipStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REVOKED = "revoked"


class CaregiverRelationship(IdMixin, TimestampMixin, Base):
    """Permissioned link from a caregiver account to a patient account."""

    __tablename__ = "caregiver_relationships"

    patient_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    caregiver_user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    caregiver_email: Mapped[str] = mapped_column(String(320), index=True, nullable=False)
    caregiver_name: Mapped[str | None] = mapped_column(String(200))
    relationship: Mapped[str] = mapped_column(String(50), default="other", nullable=False)
    can_view_medications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_view_doses: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_view_history: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_view_reports: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_receive_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_receive_missed_dose: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_receive_panic_button: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    status: Mapped[RelationshipStatus] = mapped_column(
        enum_column(RelationshipStatus), default=RelationshipStatus.PENDING, nullable=False
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    patient: Mapped["User"] = orm.relationship("User", foreign_keys=[patient_id])
