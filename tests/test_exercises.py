"""
Serenity Backend — Breathing and PMR Exercise Tests
===================================================

What we test:
    ✅ Default patterns and muscle groups are seeded once
    ✅ Planned duration derived from the pattern / muscle groups
    ✅ Completion rules (already completed, unknown names, duplicates)
    ✅ Effectiveness summaries
"""

import pytest
from sqlalchemy import func, select

from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.exercise import BreathingPattern, MuscleGroup
from serenity.services.breathing_service import breathing_service
from serenity.services.pmr_service import DEFAULT_MUSCLE_GROUPS, pmr_service


class TestBreathingPatterns:
    @pytest.mark.asyncio
    async def test_defaults_seeded_once(self, db_session):
        await breathing_service.list_patterns(db_session)
        patterns = await breathing_service.list_patterns(db_session)

        assert [p.name for p in patterns] == ["4-7-8", "BOX_BREATHING", "QUICK_BREATH"]
        count = await db_session.execute(select(func.count(BreathingPattern.id)))
        assert count.scalar() == 3

    @pytest.mark.asyncio
    async def test_unknown_pattern(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            await breathing_service.get_pattern(db_session, "FIRE_BREATH")
        assert exc.value.message == "Breathing pattern not found"


class TestBreathingSessions:
    @pytest.mark.asyncio
    async def test_start_uses_pattern(self, db_session, user):
        session = await breathing_service.start_session(db_session, user, "4-7-8", stress_level_before=7)
        assert session.target_cycles == 4
        # (4 + 7 + 8) seconds x 4 cycles = 76s
        assert session.duration == 2
        assert session.session_type == "breathing"

    @pytest.mark.asyncio
    async def test_start_with_invalid_pattern(self, db_session, user):
        with pytest.raises(ValidationError) as exc:
            await breathing_service.start_session(db_session, user, "nope")
        assert exc.value.message == "Invalid pattern"

    @pytest.mark.asyncio
    async def test_complete_once(self, db_session, user):
        session = await breathing_service.start_session(db_session, user, "BOX_BREATHING", stress_level_before=8)
        completed = await breathing_service.complete_session(
            db_session, user, session.id, completed_cycles=4, stress_level_after=3
        )
        assert completed.completed_cycles == 4
        assert completed.status == "completed"

        with pytest.raises(SessionStateError) as exc:
            await breathing_service.complete_session(db_session, user, session.id)
        assert exc.value.message == "Session already completed"

    @pytest.mark.asyncio
    async def test_complete_other_users_session(self, db_session, user, other_user):
        session = await breathing_service.start_session(db_session, user, "QUICK_BREATH")
        with pytest.raises(AuthorizationError):
            await breathing_service.complete_session(db_session, other_user, session.id)

    @pytest.mark.asyncio
    async def test_effectiveness(self, db_session, user):
        for pattern, before, after in (("4-7-8", 8, 2), ("4-7-8", 6, 4), ("QUICK_BREATH", 5, 4)):
            session = await breathing_service.start_session(db_session, user, pattern, stress_level_before=before)
            await breathing_service.complete_session(db_session, user, session.id, stress_level_after=after)

        summary = await breathing_service.get_effectiveness(db_session, user)
        assert summary == {
            "average_stress_reduction": 3.0,
            "total_sessions": 3,
            "most_effective_pattern": "4-7-8",
        }

    @pytest.mark.asyncio
    async def test_effectiveness_without_sessions(self, db_session, user):
        summary = await breathing_service.get_effectiveness(db_session, user)
        assert summary["total_sessions"] == 0
        assert summary["most_effective_pattern"] is None


class TestPMR:
    @pytest.mark.asyncio
    async def test_muscle_groups_in_order(self, db_session):
        groups = await pmr_service.get_muscle_groups(db_session)
        assert groups[0].name == "hands_and_forearms"
        assert groups[-1].name == "legs"
        await pmr_service.get_muscle_groups(db_session)
        count = await db_session.execute(select(func.count(MuscleGroup.id)))
        assert count.scalar() == 7

    @pytest.mark.asyncio
    async def test_start_session(self, db_session, user):
        session = await pmr_service.start_session(db_session, user, stress_level_before=6)
        assert session.total_groups == 7
        assert session.duration == 4

    @pytest.mark.asyncio
    async def test_progress_rules(self, db_session, user):
        session = await pmr_service.start_session(db_session, user, stress_level_before=6)
        await pmr_service.update_progress(db_session, user, session.id, "biceps")

        with pytest.raises(ValidationError) as exc:
            await pmr_service.update_progress(db_session, user, session.id, "biceps")
        assert exc.value.message == "Muscle group already completed"

        with pytest.raises(ValidationError) as exc:
            await pmr_service.update_progress(db_session, user, session.id, "tail")
        assert exc.value.message == "Invalid muscle group name"

    @pytest.mark.asyncio
    async def test_complete_dedupes_groups(self, db_session, user):
        session = await pmr_service.start_session(db_session, user, stress_level_before=7)
        completed = await pmr_service.complete_session(
            db_session, user, session.id, completed_groups=["face", "face", "legs"], stress_level_after=3
        )
        assert completed.completed_groups == ["face", "legs"]
        assert completed.completion_rate == pytest.approx(2 / 7 * 100)

        with pytest.raises(SessionStateError):
            await pmr_service.update_progress(db_session, user, session.id, "biceps")
        with pytest.raises(SessionStateError):
            await pmr_service.complete_session(db_session, user, session.id)

    @pytest.mark.asyncio
    async def test_complete_rejects_unknown_group(self, db_session, user):
        session = await pmr_service.start_session(db_session, user, stress_level_before=7)
        with pytest.raises(ValidationError):
            await pmr_service.complete_session(db_session, user, session.id, completed_groups=["wings"])

    @pytest.mark.asyncio
    async def test_effectiveness(self, db_session, user):
        session = await pmr_service.start_session(db_session, user, stress_level_before=9)
        await pmr_service.complete_session(
            db_session,
            user,
            session.id,
            completed_groups=[name for name, _, _ in DEFAULT_MUSCLE_GROUPS],
            stress_level_after=4,
        )
        summary = await pmr_service.get_effectiveness(db_session, user)
        assert summary == {"average_stress_reduction": 5.0, "total_sessions": 1, "average_completion_rate": 100.0}
