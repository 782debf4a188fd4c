"""
Serenity Backend — Session Analytics Service
============================================

What:  One denormalized analytics row per wellness session (focus score,
       interruptions, mood change) and the per-user rollups over them.
How:   Rows are upserted by session_id whenever a session starts, is
       interrupted or completes, so the history endpoints never touch the
       polymorphic sessions table.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import utcnow
from serenity.exceptions import NotFoundError
from serenity.models.analytics import SessionAnalytics
from serenity.models.user import User
from serenity.models.wellness_session import WellnessSession, mood_improved

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "start_time",
    "end_time",
    "duration",
    "duration_completed",
    "interruptions",
    "focus_score",
    "mood_before",
    "mood_after",
    "mood_improved",
    "session_type",
)


def focus_score(interruptions: int) -> int:
    return max(0, min(100, 100 - 5 * interruptions))


def analytics_from_session(session: WellnessSession) -> Dict[str, Any]:
    return {
        "session_id": session.id,
        "user_id": session.user_id,
        "start_time": session.start_time,
        "end_time": session.end_time,
        "duration": session.duration or 0,
        "duration_completed": getattr(session, "duration_completed", None) or 0,
        "interruptions": getattr(session, "interruptions", None) or 0,
        "mood_before": session.mood_before,
        "mood_after": session.mood_after,
        "mood_improved": mood_improved(session.mood_before, session.mood_after),
        "session_type": session.session_type,
    }


class SessionAnalyticsService:
    async def _get(self, db: AsyncSession, session_id: uuid.UUID) -> Optional[SessionAnalytics]:
        result = await db.execute(select(SessionAnalytics).where(SessionAnalytics.session_id == session_id))
        return result.scalar_one_or_none()

    async def create_session_analytics(self, db: AsyncSession, data: Dict[str, Any]) -> SessionAnalytics:
        """Insert, or update the existing row for data["session_id"]."""
        row = await self._get(db, data["session_id"])
        if row is None:
            row = SessionAnalytics(**data)
            db.add(row)
        else:
            for field in UPDATABLE_FIELDS:
                if field in data:
                    setattr(row, field, data[field])
        await db.flush()
        return row

    async def update_session_analytics(
        self, db: AsyncSession, session_id: uuid.UUID, data: Dict[str, Any]
    ) -> SessionAnalytics:
        row = await self._get(db, session_id)
        if row is None:
            raise NotFoundError(resource="session analytics", resource_id=str(session_id))
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(row, field, data[field])
        await db.flush()
        return row

    async def get_user_session_history(
        self, db: AsyncSession, user: User, page: int = 1, limit: int = 10
    ) -> dict:
        total = await db.execute(
            select(func.count(SessionAnalytics.id)).where(SessionAnalytics.user_id == user.id)
        )
        total_sessions = int(total.scalar() or 0)
        result = await db.execute(
            select(SessionAnalytics)
            .where(SessionAnalytics.user_id == user.id)
            .order_by(SessionAnalytics.start_time.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "sessions": list(result.scalars().all()),
            "total_sessions": total_sessions,
            "total_pages": math.ceil(total_sessions / limit) if limit else 0,
        }

    async def get_user_stats(
        self,
        db: AsyncSession,
        user: User,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        query = select(
            func.count(SessionAnalytics.id),
            func.coalesce(func.sum(SessionAnalytics.duration_completed), 0),
            func.avg(SessionAnalytics.focus_score),
            func.coalesce(func.sum(SessionAnalytics.interruptions), 0),
        ).where(SessionAnalytics.user_id == user.id)
        if start is not None:
            query = query.where(SessionAnalytics.start_time >= start)
        if end is not None:
            query = query.where(SessionAnalytics.start_time <= end)

        count, minutes, avg_focus, interruptions = (await db.execute(query)).one()
        return {
            "total_sessions": int(count or 0),
            "total_minutes": int(minutes or 0),
            "average_focus_score": round(float(avg_focus), 1) if avg_focus is not None else 0.0,
            "total_interruptions": int(interruptions or 0),
        }

    async def get_mood_improvement_stats(self, db: AsyncSession, user: User, days: int = 30) -> dict:
        since = utcnow() - timedelta(days=days)
        result = await db.execute(
            select(SessionAnalytics.mood_improved).where(
                SessionAnalytics.user_id == user.id,
                SessionAnalytics.start_time >= since,
                SessionAnalytics.mood_after.is_not(None),
            )
        )
        flags = [bool(f) for f in result.scalars().all()]
        improved = sum(flags)
        return {
            "total_improved": improved,
            "total_sessions": len(flags),
            "improvement_rate": round(improved / len(flags) * 100, 1) if flags else 0.0,
        }


session_analytics_service = SessionAnalyticsService()
