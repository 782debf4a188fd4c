"""In-app notifications and per-type notification preferences."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse, MessageResponse
from serenity.schemas.notification import (
    NotificationListResponse,
    NotificationPreferences,
    NotificationResponse,
    UnreadCountResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse, summary="My notifications, newest first")
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    notifications = await notification_service.list_notifications(db, user, unread_only=unread_only, limit=limit)
    return NotificationListResponse(notifications=notifications)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await notification_service.unread_count(db, user))


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={404: {"description": "Notification not found", "model": ErrorResponse}},
)
async def mark_as_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    return await notification_service.mark_as_read(db, user, notification_id)


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    count = await notification_service.mark_all_as_read(db, user)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.delete("", response_model=MessageResponse, summary="Delete all my notifications")
async def clear_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    count = await notification_service.clear_all(db, user)
    return MessageResponse(message=f"{count} notifications deleted")


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(user: User = Depends(get_current_user)) -> NotificationPreferences:
    return NotificationPreferences(**notification_service.get_preferences(user))


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    payload: NotificationPreferences,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationPreferences:
    merged = await notification_service.update_preferences(db, user, payload.model_dump())
    return NotificationPreferences(**merged)
