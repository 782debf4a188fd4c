"""Journal entries: owner-only CRUD, filtering and a per-mood summary."""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, ValidationError
from serenity.models.journal import JOURNAL_MOODS, Journal
from serenity.models.user import User
from serenity.models.wellness_session import WellnessSession

logger = logging.getLogger(__name__)


class JournalService:
    async def create(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> Journal:
        meditation_id = data.get("meditation_id")
        if meditation_id is not None:
            linked = await db.get(WellnessSession, meditation_id)
            if linked is None or linked.user_id != user.id:
                raise ValidationError("Linked session not found", field="meditation_id")

        entry = Journal(user_id=user.id, **{k: v for k, v in data.items() if v is not None})
        db.add(entry)
        await db.flush()
        logger.info("Journal entry %s created for user %s", entry.id, user.id)
        return entry

    async def get(self, db: AsyncSession, user: User, entry_id: uuid.UUID) -> Journal:
        entry = await db.get(Journal, entry_id)
        if entry is None:
            raise NotFoundError(resource="journal entry", resource_id=str(entry_id))
        if entry.user_id != user.id:
            raise AuthorizationError()
        return entry

    async def list(
        self,
        db: AsyncSession,
        user: User,
        mood: Optional[str] = None,
        tag: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        filters = [Journal.user_id == user.id]
        if mood:
            filters.append(Journal.mood == mood)
        if start_date:
            filters.append(Journal.created_at >= start_date)
        if end_date:
            filters.append(Journal.created_at <= end_date)

        result = await db.execute(select(Journal).where(*filters).order_by(Journal.created_at.desc()))
        entries = list(result.scalars().all())
        # Tags live in a JSON column; filter after loading.
        if tag:
            entries = [e for e in entries if tag in (e.tags or [])]

        total = len(entries)
        start = (page - 1) * limit
        return {
            "entries": entries[start:start + limit],
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    async def update(
        self, db: AsyncSession, user: User, entry_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Journal:
        entry = await self.get(db, user, entry_id)
        for field, value in changes.items():
            if value is not None:
                setattr(entry, field, value)
        await db.flush()
        return entry

    async def delete(self, db: AsyncSession, user: User, entry_id: uuid.UUID) -> None:
        entry = await self.get(db, user, entry_id)
        await db.delete(entry)
        await db.flush()

    async def get_by_mood(self, db: AsyncSession, user: User, mood: str) -> List[Journal]:
        if mood not in JOURNAL_MOODS:
            raise ValidationError(f"Invalid mood '{mood}'", field="mood")
        result = await db.execute(
            select(Journal)
            .where(Journal.user_id == user.id, Journal.mood == mood)
            .order_by(Journal.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_date_range(
        self, db: AsyncSession, user: User, start_date: datetime, end_date: datetime
    ) -> List[Journal]:
        if end_date < start_date:
            raise ValidationError("End date must be after start date", field="end_date")
        result = await db.execute(
            select(Journal)
            .where(
                Journal.user_id == user.id,
                Journal.created_at >= start_date,
                Journal.created_at <= end_date,
            )
            .order_by(Journal.created_at.desc())
        )
        return list(result.scalars().all())

    async def mood_summary(self, db: AsyncSession, user: User) -> dict:
        result = await db.execute(
            select(Journal.mood, func.count(Journal.id))
            .where(Journal.user_id == user.id, Journal.mood.is_not(None))
            .group_by(Journal.mood)
        )
        counts = {mood: 0 for mood in JOURNAL_MOODS}
        for mood, count in result.all():
            counts[mood] = int(count)
        return {"counts": counts, "total": sum(counts.values())}


journal_service = JournalService()
