"""
Serenity Backend — Points Service
=================================

What:  Awards points and keeps the per-user running totals.
How:   Every award appends a PointsHistory row (the ledger leaderboards
       aggregate over) and bumps the matching UserPoints bucket:

           achievement → achievements
           streak      → streaks
           anything else (session, challenge, social, other) → recent

       `total` always grows by the awarded amount.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import ValidationError
from serenity.models.achievement import POINT_SOURCES, PointsHistory, UserPoints

logger = logging.getLogger(__name__)

BUCKET_BY_SOURCE = {
    "achievement": "achievements",
    "streak": "streaks",
}


class PointsService:
    async def get_points(self, db: AsyncSession, user_id: uuid.UUID) -> UserPoints:
        """Return the user's totals row, creating an empty one on first use."""
        result = await db.execute(select(UserPoints).where(UserPoints.user_id == user_id))
        points = result.scalar_one_or_none()
        if points is None:
            points = UserPoints(user_id=user_id)
            db.add(points)
            await db.flush()
        return points

    async def add_points(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        points: int,
        source: str,
        description: str = "",
    ) -> UserPoints:
        if source not in POINT_SOURCES:
            raise ValidationError(f"Invalid points source '{source}'", field="source")
        if points <= 0:
            return await self.get_points(db, user_id)

        totals = await self.get_points(db, user_id)
        bucket = BUCKET_BY_SOURCE.get(source, "recent")
        setattr(totals, bucket, getattr(totals, bucket) + points)
        totals.total += points

        db.add(PointsHistory(user_id=user_id, points=points, source=source, description=description))
        await db.flush()
        logger.info("Awarded %d %s points to user %s", points, source, user_id)
        return totals

    async def get_history(self, db: AsyncSession, user_id: uuid.UUID, limit: int = 50) -> List[PointsHistory]:
        result = await db.execute(
            select(PointsHistory)
            .where(PointsHistory.user_id == user_id)
            .order_by(PointsHistory.date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


points_service = PointsService()
