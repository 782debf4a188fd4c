"""
Data export for a single user: achievements, meditation sessions, stress
assessments, or everything at once. JSON returns plain records; CSV returns a
string. The combined CSV joins each section under a "# SECTION" header line.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc
from serenity.exceptions import ValidationError
from serenity.models.achievement import Achievement
from serenity.models.stress import StressAssessment
from serenity.models.user import User
from serenity.models.wellness_session import MeditationSession

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")

ACHIEVEMENT_COLUMNS = ["type", "title", "description", "points", "progress", "target", "completed", "completed_at"]
MEDITATION_COLUMNS = [
    "start_time", "title", "meditation_type", "duration", "duration_completed",
    "status", "mood_before", "mood_after", "notes",
]
STRESS_COLUMNS = ["date", "stress_level", "triggers", "physical_symptoms", "emotional_symptoms", "notes"]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return value


def _record(obj: Any, columns: Sequence[str]) -> Dict[str, Any]:
    record = {}
    for column in columns:
        value = getattr(obj, column)
        record[column] = as_utc(value).isoformat() if isinstance(value, datetime) else value
    return record


def to_csv(records: List[Dict[str, Any]], columns: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for record in records:
        writer.writerow([_cell(record.get(c)) for c in columns])
    return buffer.getvalue()


class ExportService:
    def _check_format(self, fmt: str) -> None:
        if fmt not in EXPORT_FORMATS:
            raise ValidationError("Format must be json or csv", field="format")

    async def _achievements(self, db, user, start_date, end_date) -> List[Dict[str, Any]]:
        query = select(Achievement).where(Achievement.user_id == user.id)
        if start_date:
            query = query.where(Achievement.created_at >= start_date)
        if end_date:
            query = query.where(Achievement.created_at <= end_date)
        result = await db.execute(query.order_by(Achievement.created_at.desc()))
        return [_record(a, ACHIEVEMENT_COLUMNS) for a in result.scalars().all()]

    async def _meditations(self, db, user, start_date, end_date) -> List[Dict[str, Any]]:
        query = select(MeditationSession).where(MeditationSession.user_id == user.id)
        if start_date:
            query = query.where(MeditationSession.start_time >= start_date)
        if end_date:
            query = query.where(MeditationSession.start_time <= end_date)
        result = await db.execute(query.order_by(MeditationSession.start_time.desc()))
        return [_record(s, MEDITATION_COLUMNS) for s in result.scalars().all()]

    async def _stress_levels(self, db, user, start_date, end_date) -> List[Dict[str, Any]]:
        query = select(StressAssessment).where(StressAssessment.user_id == user.id)
        if start_date:
            query = query.where(StressAssessment.date >= start_date)
        if end_date:
            query = query.where(StressAssessment.date <= end_date)
        result = await db.execute(query.order_by(StressAssessment.date.desc()))
        return [_record(a, STRESS_COLUMNS) for a in result.scalars().all()]

    async def export_achievements(
        self,
        db: AsyncSession,
        user: User,
        fmt: str = "json",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        self._check_format(fmt)
        records = await self._achievements(db, user, start_date, end_date)
        return to_csv(records, ACHIEVEMENT_COLUMNS) if fmt == "csv" else records

    async def export_meditations(
        self,
        db: AsyncSession,
        user: User,
        fmt: str = "json",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        self._check_format(fmt)
        records = await self._meditations(db, user, start_date, end_date)
        return to_csv(records, MEDITATION_COLUMNS) if fmt == "csv" else records

    async def export_stress_levels(
        self,
        db: AsyncSession,
        user: User,
        fmt: str = "json",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        self._check_format(fmt)
        records = await self._stress_levels(db, user, start_date, end_date)
        return to_csv(records, STRESS_COLUMNS) if fmt == "csv" else records

    async def export_user_data(
        self,
        db: AsyncSession,
        user: User,
        fmt: str = "json",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        self._check_format(fmt)
        achievements = await self._achievements(db, user, start_date, end_date)
        meditations = await self._meditations(db, user, start_date, end_date)
        stress_levels = await self._stress_levels(db, user, start_date, end_date)
        logger.info("Exporting data for user %s as %s", user.id, fmt)

        if fmt == "json":
            return {
                "profile": {
                    "id": str(user.id),
                    "username": user.username,
                    "email": user.email,
                    "current_streak": user.current_streak,
                    "longest_streak": user.longest_streak,
                    "created_at": as_utc(user.created_at).isoformat(),
                },
                "achievements": achievements,
                "meditations": meditations,
                "stress_levels": stress_levels,
            }

        sections = [
            "# USER PROFILE\n"
            + to_csv(
                [{"username": user.username, "email": user.email, "created_at": user.created_at}],
                ["username", "email", "created_at"],
            ),
            "# ACHIEVEMENTS\n" + to_csv(achievements, ACHIEVEMENT_COLUMNS),
            "# MEDITATION SESSIONS\n" + to_csv(meditations, MEDITATION_COLUMNS),
            "# STRESS ASSESSMENTS\n" + to_csv(stress_levels, STRESS_COLUMNS),
        ]
        return "\n".join(sections)


export_service = ExportService()
