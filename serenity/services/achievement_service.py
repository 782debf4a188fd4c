"""
Serenity Backend — Achievement Service
======================================

What:  Tracks progress towards every achievement in ACHIEVEMENT_CONFIGS and
       awards points when one completes.
Who:   Called after a wellness session completes (process_session), after a
       group session completes (process_group_session) and when friendships
       form; read by /api/achievements.

Rules applied by process_session (completed sessions only):
    Time       start hour < 8          → early_bird +1
               start hour ≥ 22         → night_owl +1
    Duration   minutes ≥ 30            → marathon_meditator complete
               minutes ≤ 5             → quick_zen +1
               every session           → consistency_master +1, zen_master +1
               distinct session types  → balanced_practice progress
    Streak     current_streak ≥ 7      → week_warrior complete
               current_streak ≥ 30     → monthly_master complete
    Mood       mood improved           → mood_lifter +1, emotional_growth +1
               mood_after = peaceful   → zen_state +1

Completing an achievement is idempotent: points (source "achievement") and
the notification are issued exactly once.
"""

import logging
import uuid
from typing import List

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc, utcnow
from serenity.exceptions import AuthorizationError, NotFoundError, ValidationError
from serenity.models.achievement import ACHIEVEMENT_CONFIGS, Achievement
from serenity.models.user import User
from serenity.models.wellness_session import SessionStatus, WellnessSession, mood_improved
from serenity.services.notification_service import notification_service
from serenity.services.points_service import points_service

logger = logging.getLogger(__name__)


def completed_minutes(session: WellnessSession) -> int:
    minutes = getattr(session, "duration_completed", None)
    if minutes is None:
        minutes = round(session.actual_duration / 60)
    return minutes


class AchievementService:
    # ── Rows ──────────────────────────────────────────────────────────────
    async def initialize_achievements(self, db: AsyncSession, user_id: uuid.UUID) -> List[Achievement]:
        result = await db.execute(select(Achievement).where(Achievement.user_id == user_id))
        existing = {a.type: a for a in result.scalars().all()}

        for achievement_type, config in ACHIEVEMENT_CONFIGS.items():
            if achievement_type in existing:
                continue
            achievement = Achievement(
                user_id=user_id,
                type=achievement_type,
                title=config["title"],
                description=config["description"],
                points=config["points"],
                target=config["target"],
            )
            db.add(achievement)
            existing[achievement_type] = achievement
        await db.flush()
        return [existing[t] for t in ACHIEVEMENT_CONFIGS]

    async def _get_or_create(self, db: AsyncSession, user_id: uuid.UUID, achievement_type: str) -> Achievement:
        if achievement_type not in ACHIEVEMENT_CONFIGS:
            raise ValidationError(f"Unknown achievement type '{achievement_type}'", field="type")
        result = await db.execute(
            select(Achievement).where(
                Achievement.user_id == user_id, Achievement.type == achievement_type
            )
        )
        achievement = result.scalar_one_or_none()
        if achievement is None:
            await self.initialize_achievements(db, user_id)
            result = await db.execute(
                select(Achievement).where(
                    Achievement.user_id == user_id, Achievement.type == achievement_type
                )
            )
            achievement = result.scalar_one()
        return achievement

    # ── Progress ──────────────────────────────────────────────────────────
    async def increment_achievement(
        self, db: AsyncSession, user_id: uuid.UUID, achievement_type: str
    ) -> Achievement:
        achievement = await self._get_or_create(db, user_id, achievement_type)
        if achievement.completed:
            return achievement

        achievement.progress += 1
        if achievement.progress >= achievement.target:
            return await self._mark_complete(db, achievement)
        await db.flush()
        return achievement

    async def set_progress(
        self, db: AsyncSession, user_id: uuid.UUID, achievement_type: str, progress: int
    ) -> Achievement:
        achievement = await self._get_or_create(db, user_id, achievement_type)
        if achievement.completed:
            return achievement
        achievement.progress = max(achievement.progress, min(progress, achievement.target))
        if achievement.progress >= achievement.target:
            return await self._mark_complete(db, achievement)
        await db.flush()
        return achievement

    async def complete_achievement(
        self, db: AsyncSession, user_id: uuid.UUID, achievement_type: str
    ) -> Achievement:
        achievement = await self._get_or_create(db, user_id, achievement_type)
        if achievement.completed:
            return achievement
        return await self._mark_complete(db, achievement)

    async def _mark_complete(self, db: AsyncSession, achievement: Achievement) -> Achievement:
        achievement.completed = True
        achievement.completed_at = utcnow()
        achievement.progress = achievement.target
        await db.flush()

        await points_service.add_points(
            db,
            achievement.user_id,
            achievement.points,
            "achievement",
            f"Achievement unlocked: {achievement.title}",
        )
        await notification_service.create_notification(
            db,
            achievement.user_id,
            "achievement",
            "Achievement Unlocked!",
            f"You earned '{achievement.title}' (+{achievement.points} points)",
            {"achievement_type": achievement.type, "points": achievement.points},
        )
        logger.info("Achievement %s completed for user %s", achievement.type, achievement.user_id)
        return achievement

    # ── Rule processing ───────────────────────────────────────────────────
    async def process_session(self, db: AsyncSession, user: User, session: WellnessSession) -> None:
        if session.status != SessionStatus.COMPLETED:
            return

        hour = as_utc(session.start_time).hour
        if hour < 8:
            await self.increment_achievement(db, user.id, "early_bird")
        elif hour >= 22:
            await self.increment_achievement(db, user.id, "night_owl")

        minutes = completed_minutes(session)
        if minutes >= 30:
            await self.complete_achievement(db, user.id, "marathon_meditator")
        elif minutes <= 5:
            await self.increment_achievement(db, user.id, "quick_zen")
        await self.increment_achievement(db, user.id, "consistency_master")
        await self.increment_achievement(db, user.id, "zen_master")

        result = await db.execute(
            select(func.count(distinct(WellnessSession.session_type))).where(
                WellnessSession.user_id == user.id,
                WellnessSession.status == SessionStatus.COMPLETED,
            )
        )
        await self.set_progress(db, user.id, "balanced_practice", result.scalar() or 0)

        if user.current_streak >= 7:
            await self.complete_achievement(db, user.id, "week_warrior")
        if user.current_streak >= 30:
            await self.complete_achievement(db, user.id, "monthly_master")

        if mood_improved(session.mood_before, session.mood_after):
            await self.increment_achievement(db, user.id, "mood_lifter")
            await self.increment_achievement(db, user.id, "emotional_growth")
        if session.mood_after == "peaceful":
            await self.increment_achievement(db, user.id, "zen_state")

    async def process_group_session(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        participant_count: int,
        is_host: bool,
        with_friend: bool,
    ) -> None:
        await self.increment_achievement(db, user_id, "social_butterfly")
        await self.increment_achievement(db, user_id, "community_pillar")
        if participant_count >= 3:
            await self.complete_achievement(db, user_id, "meditation_circle")
            await self.increment_achievement(db, user_id, "synchronized_souls")
        if is_host:
            await self.increment_achievement(db, user_id, "group_guide")
            await self.increment_achievement(db, user_id, "mindful_mentor")
        if with_friend:
            await self.increment_achievement(db, user_id, "friend_zen")

    # ── Queries ───────────────────────────────────────────────────────────
    async def get_user_achievements(self, db: AsyncSession, user: User) -> List[Achievement]:
        return await self.initialize_achievements(db, user.id)

    async def get_completed_achievements(self, db: AsyncSession, user: User) -> List[Achievement]:
        result = await db.execute(
            select(Achievement)
            .where(Achievement.user_id == user.id, Achievement.completed.is_(True))
            .order_by(Achievement.completed_at.desc())
        )
        return list(result.scalars().all())

    async def get_achievement(self, db: AsyncSession, user: User, achievement_id: uuid.UUID) -> Achievement:
        achievement = await db.get(Achievement, achievement_id)
        if achievement is None:
            raise NotFoundError(resource="achievement", resource_id=str(achievement_id))
        if achievement.user_id != user.id:
            raise AuthorizationError()
        return achievement

    async def get_user_points(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(Achievement.points), 0)).where(
                Achievement.user_id == user_id, Achievement.completed.is_(True)
            )
        )
        return int(result.scalar() or 0)


achievement_service = AchievementService()
