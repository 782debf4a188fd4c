"""
Serenity Backend — User Service
===============================

What:  Profile reads/updates, password changes, summary stats and the daily
       practice streak.

Streak rules (UTC calendar days, applied when a session completes):
    same day as last_session_date  → unchanged
    the following day              → current_streak + 1, plus streak points
    any later day (or first ever)  → current_streak = 1
    longest_streak tracks the maximum ever reached.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc
from serenity.exceptions import AuthenticationError, ConflictError
from serenity.models.achievement import Achievement, UserPoints
from serenity.models.user import User
from serenity.models.wellness_session import SessionStatus, WellnessSession
from serenity.services.achievement_service import completed_minutes
from serenity.services.auth_service import hash_password, verify_password
from serenity.services.points_service import points_service

logger = logging.getLogger(__name__)

STREAK_BONUS_POINTS = 5


class UserService:
    async def get_profile(self, db: AsyncSession, user: User) -> User:
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        username: Optional[str] = None,
        email: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> User:
        if email is not None and email.lower() != user.email:
            email = email.lower()
            result = await db.execute(select(User.id).where(User.email == email, User.id != user.id))
            if result.first() is not None:
                raise ConflictError("Email already in use", field="email")
            user.email = email

        if username is not None and username != user.username:
            result = await db.execute(select(User.id).where(User.username == username, User.id != user.id))
            if result.first() is not None:
                raise ConflictError("Username already taken", field="username")
            user.username = username

        if preferences is not None:
            user.preferences = {**(user.preferences or {}), **preferences}

        await db.flush()
        logger.info("Profile updated for user %s", user.id)
        return user

    async def change_password(self, db: AsyncSession, user: User, current: str, new: str) -> None:
        if not await asyncio.to_thread(verify_password, current, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        user.password_hash = await asyncio.to_thread(hash_password, new)
        await db.flush()
        logger.info("Password changed for user %s", user.id)

    async def get_stats(self, db: AsyncSession, user: User) -> dict:
        result = await db.execute(
            select(WellnessSession).where(
                WellnessSession.user_id == user.id,
                WellnessSession.status == SessionStatus.COMPLETED,
            )
        )
        sessions = list(result.scalars().all())

        points = await db.execute(select(UserPoints.total).where(UserPoints.user_id == user.id))
        achievements = await db.execute(
            select(func.count(Achievement.id)).where(
                Achievement.user_id == user.id, Achievement.completed.is_(True)
            )
        )
        return {
            "total_sessions": len(sessions),
            "total_minutes": sum(completed_minutes(s) for s in sessions),
            "current_streak": user.current_streak,
            "longest_streak": user.longest_streak,
            "total_points": int(points.scalar() or 0),
            "completed_achievements": int(achievements.scalar() or 0),
        }

    async def record_session_day(self, db: AsyncSession, user: User, when: datetime) -> User:
        day = as_utc(when).date()
        last = user.last_session_date

        if last is not None and day <= last:
            return user

        if last is not None and day == last + timedelta(days=1):
            user.current_streak += 1
            await points_service.add_points(
                db, user.id, STREAK_BONUS_POINTS, "streak", f"{user.current_streak}-day streak"
            )
        else:
            user.current_streak = 1

        user.longest_streak = max(user.longest_streak, user.current_streak)
        user.last_session_date = day
        await db.flush()
        return user


user_service = UserService()
