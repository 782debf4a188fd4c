"""
Serenity Backend — Stress Tracking Tests
========================================

What we test:
    ✅ Weighted questionnaire score and LOW / MODERATE / HIGH thresholds
    ✅ Stress change bookkeeping
    ✅ Trend labelling and trigger identification
    ✅ Window analysis with insights
    ✅ Stress management session lifecycle and feedback rules
"""

from datetime import timedelta

import pytest

from serenity.database import utcnow
from serenity.exceptions import AuthorizationError, SessionStateError, ValidationError
from serenity.models.stress import StressAssessment, stress_category
from serenity.services.stress_analysis_service import format_hour, stress_analysis_service
from serenity.services.stress_assessment_service import stress_assessment_service
from serenity.services.stress_management_service import level_from_number, stress_management_service
from serenity.services.stress_session_service import stress_session_service


async def _add_readings(db, user, levels, start, triggers=None, step=timedelta(days=1)):
    triggers = triggers or [[] for _ in levels]
    for i, (level, trig) in enumerate(zip(levels, triggers)):
        db.add(StressAssessment(user_id=user.id, stress_level=level, date=start + step * i, triggers=trig))
    await db.flush()


class TestStressScoring:
    def test_weighted_score(self):
        score = stress_management_service.calculate_stress_score(
            physical=4, emotional=6, behavioral=2, cognitive=8
        )
        assert score == pytest.approx(5.2)

    def test_missing_answers_count_as_zero(self):
        assert stress_management_service.calculate_stress_score(emotional=10) == pytest.approx(3.0)

    def test_out_of_range_answer_rejected(self):
        with pytest.raises(ValidationError):
            stress_management_service.calculate_stress_score(physical=11)

    @pytest.mark.parametrize(
        "score,level",
        [(0, "LOW"), (2.99, "LOW"), (3, "MODERATE"), (6.99, "MODERATE"), (7, "HIGH"), (10, "HIGH")],
    )
    def test_level_thresholds(self, score, level):
        assert stress_management_service.determine_stress_level(score) == level

    def test_level_from_number(self):
        assert level_from_number(3) == "LOW"
        assert level_from_number(7) == "MODERATE"
        assert level_from_number(8) == "HIGH"

    def test_stress_category(self):
        assert stress_category(None) is None
        assert stress_category(2) == "low"
        assert stress_category(5) == "moderate"
        assert stress_category(9) == "high"

    @pytest.mark.asyncio
    async def test_assessment_is_persisted(self, db_session, user):
        result = await stress_management_service.assess_stress_level(
            db_session, user, {"physical": 0, "emotional": 0, "behavioral": 0, "cognitive": 0}
        )
        assert result["level"] == "LOW"
        assessment = await db_session.get(StressAssessment, result["assessment_id"])
        assert assessment.stress_level == 1
        assert assessment.source == "questionnaire"

    def test_record_stress_change(self, user_stub):
        change = stress_management_service.record_stress_change(user_stub, "HIGH", "LOW", "breathing")
        assert change["reduction"] == 2

    def test_record_stress_change_rejects_unknown_level(self, user_stub):
        with pytest.raises(ValidationError):
            stress_management_service.record_stress_change(user_stub, "EXTREME", "LOW", "breathing")

    @pytest.mark.asyncio
    async def test_recommendations_default_to_moderate(self, db_session, user):
        result = await stress_management_service.get_recommendations(db_session, user)
        assert result["level"] == "MODERATE"
        assert len(result["recommendations"]) == 4


@pytest.fixture
def user_stub():
    class _User:
        id = "stub"
    return _User()


class TestStressTrend:
    @pytest.mark.parametrize(
        "levels,trend",
        [
            ([5, 6], "INSUFFICIENT_DATA"),
            ([2, 2, 2], "STABLE"),
            ([8, 8, 7, 5, 3, 3], "IMPROVING"),
            ([3, 3, 5, 7, 8, 8], "WORSENING"),
            ([1, 10, 1, 10], "FLUCTUATING"),
        ],
    )
    def test_calculate_trend(self, levels, trend):
        assert stress_analysis_service.calculate_trend(levels) == trend

    def test_format_hour(self):
        assert format_hour(0) == "12:00 AM"
        assert format_hour(12) == "12:00 PM"
        assert format_hour(15) == "3:00 PM"


class TestStressAnalysis:
    @pytest.mark.asyncio
    async def test_no_data(self, db_session, user):
        result = await stress_analysis_service.analyze_stress_data(db_session, user)
        assert result["stress_trend"] == "INSUFFICIENT_DATA"
        assert result["average_stress_level"] == 0
        assert result["insights"] == ["No stress data available for the specified period."]

    @pytest.mark.asyncio
    async def test_improving_window(self, db_session, user):
        start = (utcnow() - timedelta(days=10)).replace(hour=9, minute=0, second=0, microsecond=0)
        await _add_readings(
            db_session,
            user,
            [8, 8, 7, 5, 3, 3],
            start,
            triggers=[["work"], ["work"], ["work"], ["sleep"], [], []],
        )

        result = await stress_analysis_service.analyze_stress_data(db_session, user)

        assert result["average_stress_level"] == pytest.approx(5.7)
        assert result["stress_trend"] == "IMPROVING"
        assert result["common_triggers"][0] == {"name": "work", "count": 3}
        assert result["peak_stress_times"][0]["time_of_day"] == "9:00 AM"
        insights = result["insights"]
        assert insights[0].startswith("Your stress levels are moderate")
        assert any("improving over time" in i for i in insights)
        assert any("much more frequently" in i for i in insights)

    @pytest.mark.asyncio
    async def test_readings_outside_window_ignored(self, db_session, user):
        await _add_readings(db_session, user, [9], utcnow() - timedelta(days=45))
        result = await stress_analysis_service.analyze_stress_data(db_session, user)
        assert result["stress_trend"] == "INSUFFICIENT_DATA"

    @pytest.mark.asyncio
    async def test_identify_triggers_needs_five_readings(self, db_session, user):
        await _add_readings(db_session, user, [8, 9], utcnow() - timedelta(days=2), triggers=[["work"], ["work"]])
        assert await stress_analysis_service.identify_stress_triggers(db_session, user) == []

    @pytest.mark.asyncio
    async def test_identify_triggers_sorted_by_average(self, db_session, user):
        await _add_readings(
            db_session,
            user,
            [8, 9, 4, 5, 6],
            utcnow() - timedelta(days=6),
            triggers=[["work"], ["work"], ["family"], ["family"], ["traffic"]],
        )
        triggers = await stress_analysis_service.identify_stress_triggers(db_session, user)
        assert triggers == [
            {"trigger": "work", "count": 2, "average_stress": 8.5},
            {"trigger": "family", "count": 2, "average_stress": 4.5},
        ]

    @pytest.mark.asyncio
    async def test_average_stress_level(self, db_session, user):
        now = utcnow()
        await _add_readings(db_session, user, [4, 7], now - timedelta(days=3))
        await _add_readings(db_session, user, [10], now - timedelta(days=40))
        assert await stress_assessment_service.get_average_stress_level(db_session, user) == 5.5

    @pytest.mark.asyncio
    async def test_assessment_owned_by_other_user(self, db_session, user, other_user):
        assessment = await stress_assessment_service.create(db_session, user, {"stress_level": 5})
        with pytest.raises(AuthorizationError):
            await stress_assessment_service.get(db_session, other_user, assessment.id)


class TestStressSessions:
    @pytest.mark.asyncio
    async def test_stress_level_before_required(self, db_session, user):
        with pytest.raises(ValidationError):
            await stress_session_service.start_session(db_session, user, {"technique": "deep_breathing"})

    @pytest.mark.asyncio
    async def test_complete_and_feedback(self, db_session, user):
        session = await stress_session_service.start_session(
            db_session, user, {"technique": "deep_breathing", "stress_level_before": 8}
        )
        with pytest.raises(SessionStateError):
            await stress_session_service.add_feedback(db_session, user, session.id, {"helpful": True})

        completed = await stress_session_service.complete_session(
            db_session, user, session.id, stress_level_after=3, effectiveness=4
        )
        assert completed.stress_reduction == 5
        assert user.current_streak == 1

        await stress_session_service.add_feedback(db_session, user, session.id, {"helpful": True})
        with pytest.raises(SessionStateError):
            await stress_session_service.add_feedback(db_session, user, session.id, {"helpful": False})

    @pytest.mark.asyncio
    async def test_after_level_defaults_to_before(self, db_session, user):
        session = await stress_session_service.start_session(
            db_session, user, {"technique": "mindfulness", "stress_level_before": 6}
        )
        completed = await stress_session_service.complete_session(db_session, user, session.id)
        assert completed.stress_level_after == 6
        assert completed.stress_reduction == 0
