"""Authentication schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from medicontrol.schemas.user import UserProfileRead, UserRead


class Token(BaseModel):
    """Response body for access tokens."""

    access_token: str
    token_type: str = "bearer"


class RegistrationRequest(BaseModel):
    """Self-service registration payload."""

    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=200)
    phone: str | None = None


class RegistrationResponse(Token):
    """Token plus the freshly created user."""

    user: UserRead


class SessionRead(BaseModel):
    """Current session details."""

    user: UserRead
    profile: UserProfileRead | None = None
    expires_at: datetime | None = None
