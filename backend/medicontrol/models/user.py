"""User accounts and their health profile."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medicontrol.db.base import Base
from medicontrol.models.mixins import IdMixin, TimestampMixin, enum_column

if TYPE_CHECKING:  # pragma: no cover - typing only
    from medicontrol.models.caregiver import Caregiver


class UserStatus(str, enum.Enum):
    """Enumerates account states."""

    ACTIVE = "active"
    SUSPENDED = "suspended"


class User(IdMixin, TimestampMixin, Base):
    """Patient or caregiver identity used for authentication."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    avatar: Mapped[str | None] = mapped_column(String(500))
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    premium_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sms_credits: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        enum_column(UserStatus), default=UserStatus.ACTIVE, nullable=False
    )

    profile: Mapped["UserProfile | None"] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    caregivers: Mapped[list["Caregiver"]] = relationship(
        "Caregiver", back_populates="user", cascade="all, delete-orphan"
    )


class UserProfile(IdMixin, TimestampMixin, Base):
    """Clinical background and contacts for a user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    age: Mapped[int | None] = mapped_column(Integer)
    allergies: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    conditions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    emergency_contact_name: Mapped[str | None] = mapped_column(String(200))
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(32))
    emergency_contact_relationship: Mapped[str | None] = mapped_column(String(100))
    primary_doctor_name: Mapped[str | None] = mapped_column(String(200))
    primary_doctor_phone: Mapped[str | None] = mapped_column(String(32))
    primary_doctor_specialty: Mapped[str | None] = mapped_column(String(100))
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="profile")
