"""
Serenity Backend — Recommendation Tests
=======================================

What we test:
    ✅ Stress level, trigger and time-of-day sources
    ✅ History, unfinished-session and variety sources
    ✅ Stored preferences
    ✅ Priority ordering with insertion order kept for ties
    ✅ Failures yield an empty list
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from serenity.models.stress import StressAssessment
from serenity.models.wellness_session import BreathingSession, MeditationSession, SessionStatus
from serenity.services.recommendation_service import (
    in_time_window,
    recommendation_service,
    time_of_day_recommendations,
    trigger_recommendations,
)

AFTERNOON = datetime(2026, 4, 8, 15, 0, tzinfo=timezone.utc)
LATE_EVENING = datetime(2026, 4, 8, 22, 0, tzinfo=timezone.utc)


def _titles(recs):
    return [r["title"] for r in recs]


async def _add_sessions(db, user, count, status=SessionStatus.ABANDONED):
    base = AFTERNOON - timedelta(days=count)
    for i in range(count):
        db.add(
            MeditationSession(
                user_id=user.id, title=f"Sit {i}", duration=10, start_time=base + timedelta(days=i), status=status
            )
        )
    await db.flush()


class TestSources:
    def test_time_windows(self):
        assert in_time_window(6, "MORNING")
        assert in_time_window(23, "NIGHT")
        assert in_time_window(2, "NIGHT")
        assert not in_time_window(12, "NIGHT")
        assert not in_time_window(12, "BRUNCH")

    def test_time_of_day(self):
        assert _titles(time_of_day_recommendations(7)) == ["Morning Energizing Meditation"]
        assert time_of_day_recommendations(5)[0]["priority"] == 5
        assert _titles(time_of_day_recommendations(12)) == ["Midday Breathing Exercise"]
        assert time_of_day_recommendations(21)[0]["priority"] == 7
        assert time_of_day_recommendations(0)[0]["priority"] == 7
        assert time_of_day_recommendations(23)[0]["priority"] == 9
        assert time_of_day_recommendations(15) == []

    def test_only_first_two_triggers(self):
        recs = trigger_recommendations(["Work", "pets", "family"])
        assert _titles(recs) == ["Work Stress Relief", "Stress Trigger Relief"]
        assert recs[1]["reason"] == "Helps with your identified stress trigger: pets"


class TestPersonalizedRecommendations:
    @pytest.mark.asyncio
    async def test_no_data(self, db_session, user):
        assert await recommendation_service.get_personalized_recommendations(db_session, user, now=AFTERNOON) == []

    @pytest.mark.asyncio
    async def test_high_stress_in_the_evening(self, db_session, user):
        db_session.add(
            StressAssessment(user_id=user.id, stress_level=8, date=AFTERNOON, triggers=["work", "pets"])
        )
        await db_session.flush()

        recs = await recommendation_service.get_personalized_recommendations(
            db_session, user, limit=5, now=LATE_EVENING
        )
        assert _titles(recs) == [
            "Stress Relief Meditation",
            "Quick Stress Relief Breathing",
            "Work Stress Relief",
            "Evening Wind Down",
            "Stress Trigger Relief",
        ]
        assert [r["priority"] for r in recs] == [10, 9, 9, 9, 7]

    @pytest.mark.asyncio
    async def test_default_limit(self, db_session, user):
        db_session.add(StressAssessment(user_id=user.id, stress_level=2, date=AFTERNOON, triggers=[]))
        await db_session.flush()
        recs = await recommendation_service.get_personalized_recommendations(db_session, user, now=LATE_EVENING)
        assert len(recs) == 3
        assert recs[0]["title"] == "Evening Wind Down"

    @pytest.mark.asyncio
    async def test_history_variety_and_preferences(self, db_session, make_user):
        user = await make_user(
            "prefs",
            preferences={
                "preferred_techniques": ["BOX_BREATHING"],
                "preferred_duration": 20,
                "time_preferences": {"preferred_time": ["AFTERNOON"]},
            },
        )
        await _add_sessions(db_session, user, 4)

        recs = await recommendation_service.get_personalized_recommendations(
            db_session, user, limit=4, now=AFTERNOON
        )
        assert _titles(recs) == [
            "Preferred Time Session",
            "Box Breathing Exercise",
            "Meditation Session",
            "Try Breathing",
        ]
        assert recs[1]["type"] == "breathing"
        assert recs[1]["duration"] == 20

    @pytest.mark.asyncio
    async def test_unfinished_session_first(self, db_session, user):
        await _add_sessions(db_session, user, 2)
        active = MeditationSession(user_id=user.id, title="Half done", duration=15, start_time=AFTERNOON)
        db_session.add(active)
        await db_session.flush()

        recs = await recommendation_service.get_personalized_recommendations(db_session, user, now=AFTERNOON)
        assert recs[0]["title"] == "Half done"
        assert recs[0]["session_id"] == active.id

    @pytest.mark.asyncio
    async def test_history_ignores_other_session_types(self, db_session, user):
        for i in range(4):
            db_session.add(
                BreathingSession(
                    user_id=user.id,
                    pattern_name="4-7-8",
                    duration=2,
                    start_time=AFTERNOON - timedelta(days=i + 1),
                    status=SessionStatus.ABANDONED,
                )
            )
        await db_session.flush()

        assert await recommendation_service.get_personalized_recommendations(db_session, user, now=AFTERNOON) == []

    @pytest.mark.asyncio
    async def test_failure_returns_empty_list(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("database went away")
        stub = SimpleNamespace(id="u1", preferences={})
        assert await recommendation_service.get_personalized_recommendations(mock_db_session, stub) == []
