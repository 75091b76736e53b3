"""Authentication service helpers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.core.security import create_access_token, verify_password
from medicontrol.models import RevokedToken, User, UserStatus
from medicontrol.services import user_service

logger = logging.getLogger(__name__)


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_email(session, email=email)
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token_for_user(user: User) -> str:
    """Generate a JWT for a user."""
    return create_access_token(user.id, email=user.email)


def token_expiry(claims: dict[str, Any]) -> datetime | None:
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return datetime.fromtimestamp(exp, UTC)
    return None


async def revoke_token(session: AsyncSession, *, claims: dict[str, Any]) -> None:
    """Invalidate the token described by ``claims`` until it would expire anyway."""
    jti = claims.get("jti")
    if not jti:
        raise ValueError("Token cannot be revoked")
    if await session.get(RevokedToken, jti) is None:
        session.add(
            RevokedToken(jti=jti, expires_at=token_expiry(claims) or datetime.now(UTC))
        )
        await session.commit()
    logger.info("Session %s closed for user %s", jti[:8], claims.get("sub"))
