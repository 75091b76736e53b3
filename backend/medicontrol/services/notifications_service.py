"""In-app notification helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.models import Notification, NotificationType


async def notify(
    session: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    priority: int = 0,
    data: dict[str, Any] | None = None,
    commit: bool = True,
) -> Notification:
    """Insert a notification; pass ``commit=False`` to join the caller's transaction."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        priority=priority,
        data=data or {},
        created_at=datetime.now(UTC),
    )
    session.add(notification)
    if commit:
        await session.commit()
    else:
        await session.flush()
    return notification


async def list_for_user(
    session: AsyncSession,
    *,
    user_id: str,
    unread_only: bool = False,
    limit: int = 20,
) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.priority.desc(), Notification.created_at.desc())
        .limit(limit)
    )
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def unread_count(session: AsyncSession, *, user_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return int(result.scalar_one())


async def mark_read(
    session: AsyncSession,
    *,
    notification_id: str,
    user_id: str,
) -> Notification:
    notification = await session.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise ValueError("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(UTC)
        await session.commit()
        await session.refresh(notification)
    return notification


async def mark_all_read(session: AsyncSession, *, user_id: str) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(UTC))
    )
    await session.commit()
    return result.rowcount or 0
