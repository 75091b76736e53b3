"""Authentication endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.api.rate_limit import DEFAULT_RATE, LOGIN_RATE
from medicontrol.models.user import User
from medicontrol.schemas.auth import (
    RegistrationRequest,
    RegistrationResponse,
    SessionRead,
    Token,
)
from medicontrol.schemas.user import UserProfileRead, UserRead
from medicontrol.security.redact import mask_email
from medicontrol.services import auth_service, user_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    dependencies=[DEFAULT_RATE],
)
async def register(
    payload: RegistrationRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> RegistrationResponse:
    try:
        user = await user_service.create_user(
            session,
            email=str(payload.email),
            password=payload.password,
            name=payload.name,
            phone=payload.phone,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.info("Registered user %s", mask_email(user.email))
    return RegistrationResponse(
        access_token=auth_service.create_access_token_for_user(user),
        user=UserRead.model_validate(user),
    )


@router.post(
    "/token",
    response_model=Token,
    summary="Obtain access token",
    dependencies=[LOGIN_RATE],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> Token:
    """Validate credentials and issue a bearer token."""
    user = await auth_service.authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=auth_service.create_access_token_for_user(user))


@router.get("/session", response_model=SessionRead, summary="Describe the current session")
async def read_session(
    claims: Annotated[dict[str, Any], Depends(deps.get_token_claims)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> SessionRead:
    profile = await user_service.get_profile(session, user_id=current_user.id)
    return SessionRead(
        user=UserRead.model_validate(current_user),
        profile=UserProfileRead.model_validate(profile) if profile else None,
        expires_at=auth_service.token_expiry(claims),
    )


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out and revoke the current token",
    dependencies=[Depends(deps.get_current_active_user)],
)
async def end_session(
    claims: Annotated[dict[str, Any], Depends(deps.get_token_claims)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> None:
    try:
        await auth_service.revoke_token(session, claims=claims)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
