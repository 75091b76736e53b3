"""User account and profile services."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.core.security import get_password_hash
from medicontrol.models import User, UserProfile
from medicontrol.schemas.user import UserSyncUpdate


async def get_user_by_email(session: AsyncSession, *, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    phone: str | None = None,
) -> User:
    """Create a user together with an empty profile."""
    if await get_user_by_email(session, email=email) is not None:
        raise ValueError("Email already registered")
    user = User(
        email=email.lower(),
        hashed_password=get_password_hash(password),
        name=name.strip(),
        phone=phone,
    )
    session.add(user)
    await session.flush()
    session.add(UserProfile(user_id=user.id, allergies=[], conditions=[]))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValueError("Email already registered") from exc
    await session.refresh(user)
    return user


async def get_profile(session: AsyncSession, *, user_id: str) -> UserProfile | None:
    result = await session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def update_user_sync(
    session: AsyncSession,
    *,
    user: User,
    payload: UserSyncUpdate,
) -> tuple[User, UserProfile]:
    """Apply account and profile edits, creating the profile when missing."""
    updates = payload.model_dump(exclude_unset=True, exclude={"profile"})
    for field, value in updates.items():
        if field == "name" and not value:
            continue
        setattr(user, field, value)

    profile = await get_profile(session, user_id=user.id)
    if profile is None:
        profile = UserProfile(user_id=user.id, allergies=[], conditions=[])
        session.add(profile)
    if payload.profile is not None:
        for field, value in payload.profile.model_dump(exclude_unset=True).items():
            if field in {"allergies", "conditions"} and value is None:
                value = []
            if field == "onboarding_completed" and value is None:
                continue
            setattr(profile, field, value)

    await session.commit()
    await session.refresh(user)
    await session.refresh(profile)
    return user, profile
