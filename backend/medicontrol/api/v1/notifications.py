"""Notification endpoints."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.models.user import User
from medicontrol.schemas.notification import MarkAllReadResult, NotificationList, NotificationRead
from medicontrol.services import notifications_service

router = APIRouter(prefix="/notifications")


@router.get(
    "",
    response_model=NotificationList,
    summary="List notifications by priority then recency",
)
async def list_notifications(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    unread_only: bool = False,
) -> NotificationList:
    items = await notifications_service.list_for_user(
        session, user_id=current_user.id, unread_only=unread_only, limit=limit
    )
    unread = await notifications_service.unread_count(session, user_id=current_user.id)
    return NotificationList(
        items=[NotificationRead.model_validate(obj) for obj in items],
        unread_count=unread,
    )


@router.post(
    "/read-all",
    response_model=MarkAllReadResult,
    summary="Mark every notification as read",
)
async def mark_all_read(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MarkAllReadResult:
    updated = await notifications_service.mark_all_read(session, user_id=current_user.id)
    return MarkAllReadResult(updated=updated)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark one notification as read",
)
async def mark_read(
    notification_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> NotificationRead:
    try:
        notification = await notifications_service.mark_read(
            session, notification_id=notification_id, user_id=current_user.id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return NotificationRead.model_validate(notification)
