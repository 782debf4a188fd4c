"""
Serenity Backend — Export Tests
===============================

What we test:
    ✅ JSON exports are plain records with ISO timestamps
    ✅ CSV exports carry a header row and flatten lists
    ✅ Combined CSV is split into "# SECTION" blocks
    ✅ Date filters and format validation
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from serenity.exceptions import ValidationError
from serenity.models.stress import StressAssessment
from serenity.models.wellness_session import MeditationSession, SessionStatus
from serenity.services.export_service import MEDITATION_COLUMNS, export_service, to_csv

JAN = datetime(2026, 1, 10, 8, 0, tzinfo=timezone.utc)
FEB = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def history(db_session, user):
    db_session.add_all(
        [
            MeditationSession(
                user_id=user.id, title="January", duration=10, start_time=JAN, status=SessionStatus.ABANDONED
            ),
            MeditationSession(
                user_id=user.id, title="February", duration=20, start_time=FEB, status=SessionStatus.ABANDONED
            ),
            StressAssessment(user_id=user.id, stress_level=6, date=FEB, triggers=["work", "sleep"]),
        ]
    )
    await db_session.flush()


class TestExport:
    def test_to_csv(self):
        text = to_csv([{"title": "Sit", "notes": None}], ["title", "notes"])
        assert text == "title,notes\nSit,\n"

    @pytest.mark.asyncio
    async def test_invalid_format(self, db_session, user):
        with pytest.raises(ValidationError) as exc:
            await export_service.export_meditations(db_session, user, "xml")
        assert exc.value.message == "Format must be json or csv"

    @pytest.mark.asyncio
    async def test_meditations_json(self, db_session, user, history):
        records = await export_service.export_meditations(db_session, user, "json")
        assert [r["title"] for r in records] == ["February", "January"]
        assert records[0]["start_time"] == FEB.isoformat()
        assert set(records[0]) == set(MEDITATION_COLUMNS)

    @pytest.mark.asyncio
    async def test_date_filter(self, db_session, user, history):
        records = await export_service.export_meditations(
            db_session, user, "json", start_date=datetime(2026, 2, 1, tzinfo=timezone.utc)
        )
        assert [r["title"] for r in records] == ["February"]

    @pytest.mark.asyncio
    async def test_stress_csv_flattens_lists(self, db_session, user, history):
        text = await export_service.export_stress_levels(db_session, user, "csv")
        lines = text.splitlines()
        assert lines[0] == "date,stress_level,triggers,physical_symptoms,emotional_symptoms,notes"
        assert '"work, sleep"' in lines[1]

    @pytest.mark.asyncio
    async def test_other_users_data_excluded(self, db_session, other_user, history):
        assert await export_service.export_meditations(db_session, other_user, "json") == []

    @pytest.mark.asyncio
    async def test_user_data_json(self, db_session, user, history):
        data = await export_service.export_user_data(db_session, user, "json")
        assert data["profile"]["username"] == "alice"
        assert len(data["meditations"]) == 2
        assert len(data["stress_levels"]) == 1
        assert data["achievements"] == []

    @pytest.mark.asyncio
    async def test_user_data_csv_sections(self, db_session, user, history):
        text = await export_service.export_user_data(db_session, user, "csv")
        headers = [line for line in text.splitlines() if line.startswith("# ")]
        assert headers == [
            "# USER PROFILE",
            "# ACHIEVEMENTS",
            "# MEDITATION SESSIONS",
            "# STRESS ASSESSMENTS",
        ]
        assert "alice,alice@example.com," in text
