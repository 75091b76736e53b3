"""Common API dependencies."""

from __future__ import annotations

from typing import Annotated, Any
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.core.config import get_settings
from medicontrol.core.security import decode_access_token
from medicontrol.db.session import get_session
from medicontrol.models.revoked_token import RevokedToken
from medicontrol.models.user import User, UserStatus

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/token")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> dict[str, Any]:
    """Decode the bearer token and reject revoked sessions."""
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise _credentials_exception() from exc

    jti = payload.get("jti")
    if jti and await session.get(RevokedToken, jti) is not None:
        raise _credentials_exception()
    return payload


async def get_current_user(
    claims: Annotated[dict[str, Any], Depends(get_token_claims)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate request via bearer token."""
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise _credentials_exception()

    user = await session.get(User, subject)
    if user is None or user.status != UserStatus.ACTIVE:
        raise _credentials_exception()
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the current user is active."""
    return current_user

