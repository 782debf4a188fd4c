"""
Serenity Backend — Meditation Session Tests
===========================================

What we test:
    ✅ Lifecycle transitions allowed and rejected by WellnessSession
    ✅ Only one active session per user
    ✅ Completing runs analytics, streak, achievements and points
    ✅ Completing twice is a SessionStateError
    ✅ Other users' sessions are forbidden
    ✅ Listing validates sort options and paginates
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from serenity.database import utcnow
from serenity.exceptions import (
    AuthorizationError,
    NotFoundError,
    SessionStateError,
    ValidationError,
)
from serenity.models.achievement import Achievement, PointsHistory
from serenity.models.analytics import SessionAnalytics
from serenity.models.wellness_session import MeditationSession, SessionStatus, mood_improved
from serenity.services.meditation_session_service import meditation_session_service


def _session(**kwargs) -> MeditationSession:
    kwargs.setdefault("user_id", uuid.uuid4())
    kwargs.setdefault("title", "Morning sit")
    kwargs.setdefault("duration", 10)
    return MeditationSession(**kwargs)


class TestSessionStateMachine:
    """Transitions enforced on the model itself."""

    def test_new_session_is_active(self):
        session = _session()
        assert session.status == SessionStatus.ACTIVE
        assert session.session_type == "meditation"

    def test_pause_and_resume(self):
        session = _session()
        session.pause()
        assert session.status == SessionStatus.PAUSED
        session.resume()
        assert session.status == SessionStatus.ACTIVE

    def test_complete_sets_end_time_after_start(self):
        session = _session()
        session.complete(mood_after="calm")
        assert session.status == SessionStatus.COMPLETED
        assert session.end_time > session.start_time
        assert session.mood_after == "calm"

    def test_paused_session_cannot_complete(self):
        session = _session()
        session.pause()
        with pytest.raises(SessionStateError) as exc:
            session.complete()
        assert exc.value.message == "Cannot complete session in paused status"

    def test_terminal_states_reject_everything(self):
        session = _session()
        session.abandon()
        for action in (session.pause, session.resume, session.complete, session.abandon):
            with pytest.raises(SessionStateError):
                action()

    def test_completed_cannot_resume(self):
        session = _session()
        session.complete()
        with pytest.raises(SessionStateError):
            session.resume()

    def test_guided_requires_guided_meditation_id(self):
        with pytest.raises(ValidationError):
            _session(meditation_type="guided")

    def test_invalid_mood_rejected(self):
        with pytest.raises(ValidationError):
            _session(mood_before="furious")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            _session(duration=-1)

    def test_long_tag_rejected(self):
        with pytest.raises(ValidationError):
            _session(tags=["x" * 31])

    def test_completion_percentage_is_capped(self):
        session = _session(duration=10, duration_completed=15)
        assert session.completion_percentage == 100

    def test_mood_improved(self):
        assert mood_improved("stressed", "calm") is True
        assert mood_improved("calm", "calm") is False
        assert mood_improved(None, "calm") is False


class TestMeditationSessionService:
    @pytest.mark.asyncio
    async def test_start_session(self, db_session, user):
        session = await meditation_session_service.start_session(
            db_session, user, {"title": "Evening", "duration": 15, "mood_before": "anxious"}
        )
        assert session.user_id == user.id
        assert session.status == SessionStatus.ACTIVE

        result = await db_session.execute(
            select(SessionAnalytics).where(SessionAnalytics.session_id == session.id)
        )
        assert result.scalar_one().mood_before == "anxious"

    @pytest.mark.asyncio
    async def test_second_active_session_rejected(self, db_session, user):
        await meditation_session_service.start_session(db_session, user, {"title": "One", "duration": 5})
        with pytest.raises(ValidationError) as exc:
            await meditation_session_service.start_session(db_session, user, {"title": "Two", "duration": 5})
        assert exc.value.message == "Active session already exists"

    @pytest.mark.asyncio
    async def test_paused_session_does_not_block_new_start(self, db_session, user):
        first = await meditation_session_service.start_session(db_session, user, {"title": "One", "duration": 5})
        await meditation_session_service.pause_session(db_session, user, first.id)
        second = await meditation_session_service.start_session(db_session, user, {"title": "Two", "duration": 5})
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_complete_runs_side_effects(self, db_session, user):
        session = await meditation_session_service.start_session(
            db_session, user, {"title": "Sit", "duration": 20, "mood_before": "stressed"}
        )
        completed = await meditation_session_service.complete_session(
            db_session, user, session.id, duration_completed=20, mood_after="peaceful"
        )

        assert completed.status == SessionStatus.COMPLETED
        assert completed.completed is True
        assert user.current_streak == 1
        assert user.last_session_date is not None

        history = (
            await db_session.execute(select(PointsHistory).where(PointsHistory.source == "session"))
        ).scalars().all()
        assert [h.points for h in history] == [20]

        analytics = (
            await db_session.execute(select(SessionAnalytics).where(SessionAnalytics.session_id == session.id))
        ).scalar_one()
        assert analytics.mood_improved is True
        assert analytics.focus_score == 100
        assert analytics.duration_completed == 20

        mood_lifter = (
            await db_session.execute(
                select(Achievement).where(Achievement.user_id == user.id, Achievement.type == "mood_lifter")
            )
        ).scalar_one()
        assert mood_lifter.progress == 1

    @pytest.mark.asyncio
    async def test_complete_twice_rejected(self, db_session, user):
        session = await meditation_session_service.start_session(db_session, user, {"title": "Sit", "duration": 5})
        await meditation_session_service.complete_session(db_session, user, session.id, duration_completed=5)
        with pytest.raises(SessionStateError):
            await meditation_session_service.complete_session(db_session, user, session.id)

    @pytest.mark.asyncio
    async def test_end_requires_active(self, db_session, user):
        session = await meditation_session_service.start_session(db_session, user, {"title": "Sit", "duration": 5})
        await meditation_session_service.pause_session(db_session, user, session.id)
        with pytest.raises(SessionStateError) as exc:
            await meditation_session_service.end_session(db_session, user, session.id)
        assert exc.value.message == "Session is not active"

    @pytest.mark.asyncio
    async def test_interruptions_lower_focus_score(self, db_session, user):
        session = await meditation_session_service.start_session(db_session, user, {"title": "Sit", "duration": 5})
        for _ in range(3):
            await meditation_session_service.record_interruption(db_session, user, session.id)
        await meditation_session_service.end_session(db_session, user, session.id)

        analytics = (
            await db_session.execute(select(SessionAnalytics).where(SessionAnalytics.session_id == session.id))
        ).scalar_one()
        assert analytics.interruptions == 3
        assert analytics.focus_score == 85

    @pytest.mark.asyncio
    async def test_other_users_session_forbidden(self, db_session, user, other_user):
        session = await meditation_session_service.start_session(db_session, user, {"title": "Sit", "duration": 5})
        with pytest.raises(AuthorizationError):
            await meditation_session_service.get_session(db_session, other_user, session.id)

    @pytest.mark.asyncio
    async def test_missing_session_not_found(self, db_session, user):
        with pytest.raises(NotFoundError):
            await meditation_session_service.get_session(db_session, user, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_sessions_paginates(self, db_session, user):
        base = utcnow() - timedelta(days=5)
        for i in range(5):
            db_session.add(
                MeditationSession(
                    user_id=user.id,
                    title=f"Session {i}",
                    duration=10,
                    start_time=base + timedelta(hours=i),
                    status=SessionStatus.ABANDONED,
                )
            )
        await db_session.flush()

        page = await meditation_session_service.list_sessions(
            db_session, user, sort_by="start_time", sort_order="asc", page=2, limit=2
        )
        assert page["total"] == 5
        assert page["total_pages"] == 3
        assert [s.title for s in page["sessions"]] == ["Session 2", "Session 3"]

    @pytest.mark.asyncio
    async def test_list_sessions_rejects_unknown_sort(self, db_session, user):
        with pytest.raises(ValidationError):
            await meditation_session_service.list_sessions(db_session, user, sort_by="password_hash")
