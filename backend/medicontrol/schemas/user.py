"""User and profile schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from medicontrol.models.user import UserStatus
from medicontrol.schemas.caregiver import CaregiverRead


class UserRead(BaseModel):
    id: str
    email: str
    name: str
    phone: str | None = None
    avatar: str | None = None
    is_premium: bool
    premium_expires_at: datetime | None = None
    sms_credits: int
    status: UserStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileFields(BaseModel):
    """Mutable profile fields."""

    age: int | None = Field(default=None, ge=0, le=150)
    allergies: list[str] | None = None
    conditions: list[str] | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    emergency_contact_relationship: str | None = None
    primary_doctor_name: str | None = None
    primary_doctor_phone: str | None = None
    primary_doctor_specialty: str | None = None
    onboarding_completed: bool | None = None


class UserProfileRead(BaseModel):
    id: str
    user_id: str
    age: int | None = None
    allergies: list[str]
    conditions: list[str]
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    emergency_contact_relationship: str | None = None
    primary_doctor_name: str | None = None
    primary_doctor_phone: str | None = None
    primary_doctor_specialty: str | None = None
    onboarding_completed: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSyncRead(BaseModel):
    """Everything the client mirrors about its own account."""

    user: UserRead
    profile: UserProfileRead | None = None
    caregivers: list[CaregiverRead] = Field(default_factory=list)


class UserSyncUpdate(BaseModel):
    """Partial update of account fields and the embedded profile."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = None
    avatar: str | None = None
    profile: UserProfileFields | None = None
