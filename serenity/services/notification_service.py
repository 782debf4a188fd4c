"""
Serenity Backend — Notification Service
=======================================

What:  Stores in-app notifications and manages per-type opt-outs.
Who:   Called by achievements, friends and group sessions to notify users;
       by /api/notifications for the inbox.

Preferences live in user.preferences["notifications"] as one boolean per
notification type. A missing key means the type is enabled.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import DatabaseError, NotFoundError, SerenityError, ValidationError
from serenity.models.notification import NOTIFICATION_TYPES, Notification
from serenity.models.user import User

logger = logging.getLogger(__name__)


class NotificationService:
    async def create_notification(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """
        Create a notification unless the recipient has muted its type.

        Returns the new Notification, or None when suppressed.
        """
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Unknown notification type '{type}'", field="type")

        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))

        prefs = (user.preferences or {}).get("notifications", {})
        if not prefs.get(type, True):
            logger.debug("Notification '%s' suppressed for user %s", type, user_id)
            return None

        notification = Notification(
            user_id=user_id, type=type, title=title, message=message, data=data or {}
        )
        db.add(notification)
        await db.flush()
        return notification

    async def list_notifications(
        self, db: AsyncSession, user: User, unread_only: bool = False, limit: int = 20
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user.id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def mark_as_read(self, db: AsyncSession, user: User, notification_id: uuid.UUID) -> Notification:
        notification = await db.get(Notification, notification_id)
        # Someone else's notification is reported as missing, not forbidden.
        if notification is None or notification.user_id != user.id:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))
        notification.read = True
        await db.flush()
        return notification

    async def mark_all_as_read(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.read.is_(False))
            .values(read=True)
        )
        return result.rowcount or 0

    async def unread_count(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user.id, Notification.read.is_(False)
            )
        )
        return result.scalar() or 0

    async def clear_all(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(delete(Notification).where(Notification.user_id == user.id))
        return result.rowcount or 0

    def get_preferences(self, user: User) -> Dict[str, bool]:
        stored = (user.preferences or {}).get("notifications", {})
        return {t: bool(stored.get(t, True)) for t in NOTIFICATION_TYPES}

    async def update_preferences(self, db: AsyncSession, user: User, prefs: Dict[str, bool]) -> Dict[str, bool]:
        try:
            merged = {**self.get_preferences(user), **{k: v for k, v in prefs.items() if k in NOTIFICATION_TYPES}}
            # Reassign so the JSON column is flagged dirty.
            user.preferences = {**(user.preferences or {}), "notifications": merged}
            await db.flush()
            return merged
        except SerenityError:
            raise
        except Exception as e:
            logger.error("Failed to update notification preferences: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})


notification_service = NotificationService()
