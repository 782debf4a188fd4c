"""
Serenity Backend — Achievements, Points and Leaderboard Tests
=============================================================

What we test:
    ✅ Achievement rows are created lazily, one per configured type
    ✅ Completion awards points exactly once and notifies the user
    ✅ Session rules (time of day, duration, streak, mood)
    ✅ Streak bonus points on consecutive days
    ✅ Leaderboard ranking, categories and periods
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from serenity.database import utcnow
from serenity.exceptions import ValidationError
from serenity.models.achievement import ACHIEVEMENT_CONFIGS, Achievement, PointsHistory
from serenity.models.notification import Notification
from serenity.models.wellness_session import MeditationSession, SessionStatus
from serenity.services.achievement_service import achievement_service
from serenity.services.leaderboard_service import leaderboard_service, period_start
from serenity.services.points_service import points_service
from serenity.services.user_service import user_service


async def _achievement(db, user, achievement_type) -> Achievement:
    result = await db.execute(
        select(Achievement).where(Achievement.user_id == user.id, Achievement.type == achievement_type)
    )
    return result.scalar_one()


def _completed_session(user, hour: int, minutes: int, **kwargs) -> MeditationSession:
    start = datetime(2026, 3, 2, hour, 0, tzinfo=timezone.utc)
    session = MeditationSession(
        user_id=user.id,
        title="Sit",
        duration=minutes,
        start_time=start,
        duration_completed=minutes,
        **kwargs,
    )
    session.complete(mood_after=kwargs.get("mood_after"), at=start + timedelta(minutes=max(minutes, 1)))
    return session


class TestAchievementProgress:
    @pytest.mark.asyncio
    async def test_initialize_creates_every_type(self, db_session, user):
        rows = await achievement_service.initialize_achievements(db_session, user.id)
        assert [r.type for r in rows] == list(ACHIEVEMENT_CONFIGS)
        again = await achievement_service.initialize_achievements(db_session, user.id)
        assert {r.id for r in again} == {r.id for r in rows}

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            await achievement_service.increment_achievement(db_session, user.id, "space_cadet")

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(self, db_session, user):
        await achievement_service.complete_achievement(db_session, user.id, "marathon_meditator")
        await achievement_service.complete_achievement(db_session, user.id, "marathon_meditator")
        await achievement_service.increment_achievement(db_session, user.id, "marathon_meditator")

        totals = await points_service.get_points(db_session, user.id)
        assert totals.achievements == 200
        assert totals.total == 200

        notifications = await db_session.execute(
            select(func.count(Notification.id)).where(Notification.user_id == user.id)
        )
        assert notifications.scalar() == 1

    @pytest.mark.asyncio
    async def test_increment_completes_at_target(self, db_session, user):
        for _ in range(5):
            achievement = await achievement_service.increment_achievement(db_session, user.id, "early_bird")
        assert achievement.completed is True
        assert achievement.progress == 5
        assert achievement.completed_at is not None

    @pytest.mark.asyncio
    async def test_progress_never_exceeds_target(self, db_session, user):
        achievement = await achievement_service.set_progress(db_session, user.id, "balanced_practice", 10)
        assert achievement.progress == achievement.target == 3
        assert achievement.completed is True


class TestSessionRules:
    @pytest.mark.asyncio
    async def test_early_short_session(self, db_session, user):
        session = _completed_session(user, hour=6, minutes=5)
        db_session.add(session)
        await db_session.flush()

        await achievement_service.process_session(db_session, user, session)

        assert (await _achievement(db_session, user, "early_bird")).progress == 1
        assert (await _achievement(db_session, user, "quick_zen")).progress == 1
        assert (await _achievement(db_session, user, "night_owl")).progress == 0
        assert (await _achievement(db_session, user, "balanced_practice")).progress == 1

    @pytest.mark.asyncio
    async def test_late_long_session(self, db_session, user):
        session = _completed_session(user, hour=23, minutes=30)
        db_session.add(session)
        await db_session.flush()

        await achievement_service.process_session(db_session, user, session)

        assert (await _achievement(db_session, user, "night_owl")).progress == 1
        assert (await _achievement(db_session, user, "marathon_meditator")).completed is True
        assert (await _achievement(db_session, user, "quick_zen")).progress == 0

    @pytest.mark.asyncio
    async def test_streak_completes_week_warrior(self, make_user, db_session):
        streaker = await make_user("streaker", current_streak=7)
        session = _completed_session(streaker, hour=12, minutes=10)
        db_session.add(session)
        await db_session.flush()

        await achievement_service.process_session(db_session, streaker, session)

        assert (await _achievement(db_session, streaker, "week_warrior")).completed is True
        assert (await _achievement(db_session, streaker, "monthly_master")).completed is False

    @pytest.mark.asyncio
    async def test_peaceful_mood(self, db_session, user):
        session = _completed_session(user, hour=12, minutes=10, mood_before="calm", mood_after="peaceful")
        db_session.add(session)
        await db_session.flush()

        await achievement_service.process_session(db_session, user, session)

        assert (await _achievement(db_session, user, "zen_state")).progress == 1
        assert (await _achievement(db_session, user, "mood_lifter")).progress == 1

    @pytest.mark.asyncio
    async def test_open_session_ignored(self, db_session, user):
        session = MeditationSession(user_id=user.id, title="Sit", duration=10)
        db_session.add(session)
        await db_session.flush()

        await achievement_service.process_session(db_session, user, session)

        rows = await db_session.execute(select(func.count(Achievement.id)).where(Achievement.user_id == user.id))
        assert rows.scalar() == 0
        assert session.status == SessionStatus.ACTIVE


class TestStreaks:
    @pytest.mark.asyncio
    async def test_consecutive_days_extend_streak(self, db_session, user):
        day = datetime(2026, 5, 1, 10, tzinfo=timezone.utc)
        await user_service.record_session_day(db_session, user, day)
        await user_service.record_session_day(db_session, user, day + timedelta(hours=3))
        await user_service.record_session_day(db_session, user, day + timedelta(days=1))

        assert user.current_streak == 2
        assert user.longest_streak == 2
        totals = await points_service.get_points(db_session, user.id)
        assert totals.streaks == 5

    @pytest.mark.asyncio
    async def test_gap_resets_streak(self, db_session, user):
        day = datetime(2026, 5, 1, 10, tzinfo=timezone.utc)
        for offset in (0, 1, 2):
            await user_service.record_session_day(db_session, user, day + timedelta(days=offset))
        await user_service.record_session_day(db_session, user, day + timedelta(days=5))

        assert user.current_streak == 1
        assert user.longest_streak == 3


class TestPoints:
    @pytest.mark.asyncio
    async def test_invalid_source_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            await points_service.add_points(db_session, user.id, 10, "lottery")

    @pytest.mark.asyncio
    async def test_buckets(self, db_session, user):
        await points_service.add_points(db_session, user.id, 10, "session")
        await points_service.add_points(db_session, user.id, 5, "streak")
        totals = await points_service.add_points(db_session, user.id, 50, "achievement")
        assert (totals.total, totals.recent, totals.streaks, totals.achievements) == (65, 10, 5, 50)

    @pytest.mark.asyncio
    async def test_non_positive_points_ignored(self, db_session, user):
        await points_service.add_points(db_session, user.id, 0, "session")
        history = await points_service.get_history(db_session, user.id)
        assert history == []


class TestLeaderboard:
    def test_period_start(self):
        now = datetime(2026, 6, 17, 15, 30, tzinfo=timezone.utc)
        assert period_start("daily", now) == datetime(2026, 6, 17, tzinfo=timezone.utc)
        assert period_start("weekly", now) == now - timedelta(days=7)
        assert period_start("monthly", now) == datetime(2026, 6, 1, tzinfo=timezone.utc)
        assert period_start("all-time", now) is None
        with pytest.raises(ValidationError):
            period_start("yearly", now)

    @pytest.mark.asyncio
    async def test_ranking(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        await points_service.add_points(db_session, user.id, 30, "session")
        await points_service.add_points(db_session, other_user.id, 50, "session")
        await points_service.add_points(db_session, other_user.id, 20, "social")

        board = await leaderboard_service.get_leaderboard(db_session)
        assert [(e["username"], e["points"], e["rank"]) for e in board] == [("bob", 70, 1), ("alice", 30, 2)]

        social = await leaderboard_service.get_leaderboard(db_session, category="social")
        assert [e["username"] for e in social] == ["bob"]

        rank = await leaderboard_service.get_user_rank(db_session, user)
        assert rank == {"rank": 2, "total": 30, "total_users": 2}
        assert await leaderboard_service.get_user_rank(db_session, carol) == {
            "rank": 0, "total": 0, "total_users": 0,
        }

    @pytest.mark.asyncio
    async def test_period_excludes_old_points(self, db_session, user):
        db_session.add(
            PointsHistory(user_id=user.id, points=40, source="session", date=utcnow() - timedelta(days=20))
        )
        await points_service.add_points(db_session, user.id, 10, "session")

        weekly = await leaderboard_service.get_leaderboard(db_session, period="weekly")
        assert weekly[0]["points"] == 10
        all_time = await leaderboard_service.get_leaderboard(db_session, period="all-time")
        assert all_time[0]["points"] == 50

    @pytest.mark.asyncio
    async def test_invalid_category(self, db_session):
        with pytest.raises(ValidationError):
            await leaderboard_service.get_leaderboard(db_session, category="karma")

    @pytest.mark.asyncio
    async def test_weekly_progress(self, db_session, user):
        db_session.add(
            PointsHistory(user_id=user.id, points=20, source="session", date=utcnow() - timedelta(days=10))
        )
        await points_service.add_points(db_session, user.id, 30, "session")

        progress = await leaderboard_service.get_weekly_progress(db_session, user)
        assert progress == {"current_week": 30, "previous_week": 20, "change": 10, "percent_change": 50.0}
