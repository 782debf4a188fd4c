"""
Serenity Backend — Leaderboard Service
======================================

What:  Ranks users by points earned within a period and category.
How:   Aggregates the PointsHistory ledger with SUM(points) GROUP BY user,
       filtered by the period window and the category's point sources.
       Results are cached in Redis through cache_manager.

    Period    Window start
    ───────   ──────────────────────────────
    daily     today 00:00 UTC
    weekly    now − 7 days
    monthly   1st of the current month 00:00 UTC
    all-time  (none)

    Category    Point sources
    ──────────  ──────────────────────────
    total       all
    meditation  achievement, session
    streak      streak
    social      social, challenge

Cache:
    leaderboard:{period}:{category}:{limit}    leaderboard_cache_ttl
    rank:{user_id}:{period}:{category}         leaderboard_cache_ttl
    top_achievers:{limit}                      leaderboard_cache_ttl
    weekly_progress:{user_id}                  weekly_progress_cache_ttl
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.config import settings
from serenity.database import utcnow
from serenity.exceptions import ValidationError
from serenity.models.achievement import Achievement, PointsHistory
from serenity.models.user import User
from serenity.services.cache_manager import cache_manager

logger = logging.getLogger(__name__)

PERIODS = ("daily", "weekly", "monthly", "all-time")
CATEGORY_SOURCES = {
    "total": None,
    "meditation": ("achievement", "session"),
    "streak": ("streak",),
    "social": ("social", "challenge"),
}
DEFAULT_LIMIT = 10
DEFAULT_TOP_ACHIEVERS = 3


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or utcnow()
    if period == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "monthly":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "all-time":
        return None
    raise ValidationError(f"Invalid period '{period}'", field="period")


def _check_category(category: str) -> None:
    if category not in CATEGORY_SOURCES:
        raise ValidationError(f"Invalid category '{category}'", field="category")


class LeaderboardService:
    def _totals_query(self, period: str, category: str):
        _check_category(category)
        since = period_start(period)
        points = func.sum(PointsHistory.points).label("points")
        query = select(PointsHistory.user_id.label("user_id"), points)
        if since is not None:
            query = query.where(PointsHistory.date >= since)
        sources = CATEGORY_SOURCES[category]
        if sources:
            query = query.where(PointsHistory.source.in_(sources))
        return query.group_by(PointsHistory.user_id)

    async def get_leaderboard(
        self, db: AsyncSession, period: str = "all-time", category: str = "total", limit: int = DEFAULT_LIMIT
    ) -> List[dict]:
        cache_key = f"leaderboard:{period}:{category}:{limit}"
        cached = await cache_manager.get(cache_key)
        if cached is not None:
            return cached

        totals = self._totals_query(period, category).subquery()
        result = await db.execute(
            select(totals.c.user_id, User.username, totals.c.points)
            .join(User, User.id == totals.c.user_id)
            .where(totals.c.points > 0)
            .order_by(totals.c.points.desc(), User.username.asc())
            .limit(limit)
        )
        entries = [
            {"user_id": str(row.user_id), "username": row.username, "points": int(row.points), "rank": i + 1}
            for i, row in enumerate(result.all())
        ]
        await cache_manager.set(cache_key, entries, ttl=settings.leaderboard_cache_ttl)
        return entries

    async def get_user_rank(
        self, db: AsyncSession, user: User, period: str = "all-time", category: str = "total"
    ) -> dict:
        cache_key = f"rank:{user.id}:{period}:{category}"
        cached = await cache_manager.get(cache_key)
        if cached is not None:
            return cached

        totals = self._totals_query(period, category).subquery()
        result = await db.execute(select(totals.c.points).where(totals.c.user_id == user.id))
        user_total = int(result.scalar() or 0)

        if user_total <= 0:
            rank = {"rank": 0, "total": 0, "total_users": 0}
        else:
            ahead = await db.execute(select(func.count()).select_from(totals).where(totals.c.points > user_total))
            ranked = await db.execute(select(func.count()).select_from(totals).where(totals.c.points > 0))
            rank = {
                "rank": 1 + int(ahead.scalar() or 0),
                "total": user_total,
                "total_users": int(ranked.scalar() or 0),
            }
        await cache_manager.set(cache_key, rank, ttl=settings.leaderboard_cache_ttl)
        return rank

    async def get_top_achievers(self, db: AsyncSession, limit: int = DEFAULT_TOP_ACHIEVERS) -> List[dict]:
        """Users ranked by points from completed achievements."""
        cache_key = f"top_achievers:{limit}"
        cached = await cache_manager.get(cache_key)
        if cached is not None:
            return cached

        points = func.sum(Achievement.points).label("points")
        result = await db.execute(
            select(Achievement.user_id, User.username, points)
            .join(User, User.id == Achievement.user_id)
            .where(Achievement.completed.is_(True))
            .group_by(Achievement.user_id, User.username)
            .order_by(points.desc(), User.username.asc())
            .limit(limit)
        )
        entries = [
            {"user_id": str(row.user_id), "username": row.username, "points": int(row.points), "rank": i + 1}
            for i, row in enumerate(result.all())
        ]
        await cache_manager.set(cache_key, entries, ttl=settings.leaderboard_cache_ttl)
        return entries

    async def get_weekly_progress(self, db: AsyncSession, user: User) -> dict:
        cache_key = f"weekly_progress:{user.id}"
        cached = await cache_manager.get(cache_key)
        if cached is not None:
            return cached

        now = utcnow()
        week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)
        current = await self._sum_between(db, user.id, week_ago, now)
        previous = await self._sum_between(db, user.id, two_weeks_ago, week_ago)

        change = current - previous
        if previous == 0:
            percent_change = 100.0 if current > 0 else 0.0
        else:
            percent_change = round(change / previous * 100, 1)

        progress = {
            "current_week": current,
            "previous_week": previous,
            "change": change,
            "percent_change": percent_change,
        }
        await cache_manager.set(cache_key, progress, ttl=settings.weekly_progress_cache_ttl)
        return progress

    async def _sum_between(self, db: AsyncSession, user_id: uuid.UUID, start: datetime, end: datetime) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(PointsHistory.points), 0)).where(
                PointsHistory.user_id == user_id,
                PointsHistory.date >= start,
                PointsHistory.date < end,
            )
        )
        return int(result.scalar() or 0)

    async def invalidate_user_cache(self, user_id: uuid.UUID) -> None:
        for period in PERIODS:
            for category in CATEGORY_SOURCES:
                await cache_manager.delete(f"rank:{user_id}:{period}:{category}")
                await cache_manager.delete(f"leaderboard:{period}:{category}:{DEFAULT_LIMIT}")
        await cache_manager.delete(f"weekly_progress:{user_id}")
        await cache_manager.delete(f"top_achievers:{DEFAULT_TOP_ACHIEVERS}")


leaderboard_service = LeaderboardService()
