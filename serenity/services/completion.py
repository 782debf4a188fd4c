"""
Side effects of finishing a wellness session.

Runs in this order, inside the caller's transaction:
    1. upsert the session's analytics row
    2. extend the user's daily streak
    3. evaluate achievements
    4. award session points (one per completed minute, source "session")
    5. drop the user's cached leaderboard entries
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.user import User
from serenity.models.wellness_session import WellnessSession
from serenity.services.achievement_service import achievement_service, completed_minutes
from serenity.services.leaderboard_service import leaderboard_service
from serenity.services.points_service import points_service
from serenity.services.session_analytics_service import (
    analytics_from_session,
    session_analytics_service,
)
from serenity.services.user_service import user_service

logger = logging.getLogger(__name__)


async def on_session_completed(
    db: AsyncSession,
    user: User,
    session: WellnessSession,
    focus_score: Optional[int] = None,
) -> None:
    data = analytics_from_session(session)
    data["duration_completed"] = completed_minutes(session)
    if focus_score is not None:
        data["focus_score"] = focus_score
    await session_analytics_service.create_session_analytics(db, data)

    await user_service.record_session_day(db, user, session.end_time or session.start_time)
    await achievement_service.process_session(db, user, session)

    minutes = completed_minutes(session)
    if minutes > 0:
        await points_service.add_points(
            db,
            user.id,
            minutes,
            "session",
            f"Completed {session.session_type.replace('_', ' ')} session",
        )

    await leaderboard_service.invalidate_user_cache(user.id)
    logger.info(
        "Session %s completed by user %s (%d min)", session.id, user.id, minutes
    )
