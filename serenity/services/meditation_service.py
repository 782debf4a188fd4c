"""
Meditation catalogue: authored guided meditations that users can start.

Only the author may edit or delete an entry. Deletion is soft
(is_active=False); inactive entries disappear from listings but stay
readable by ID so old sessions can still show where they came from.
"""

import logging
import math
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, ValidationError
from serenity.models.meditation import Meditation
from serenity.models.user import User
from serenity.models.wellness_session import MeditationSession, MeditationType
from serenity.services.meditation_session_service import meditation_session_service

logger = logging.getLogger(__name__)


class MeditationService:
    async def create(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> Meditation:
        meditation = Meditation(author_id=user.id, **data)
        db.add(meditation)
        await db.flush()
        logger.info("Meditation %s created by %s", meditation.id, user.id)
        return meditation

    async def get(self, db: AsyncSession, meditation_id: uuid.UUID) -> Meditation:
        meditation = await db.get(Meditation, meditation_id)
        if meditation is None:
            raise NotFoundError(resource="meditation", resource_id=str(meditation_id))
        return meditation

    async def list(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        filters = [Meditation.is_active.is_(True)]
        if category:
            filters.append(Meditation.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                or_(
                    func.lower(Meditation.title).like(pattern),
                    func.lower(Meditation.description).like(pattern),
                )
            )

        count = await db.execute(select(func.count(Meditation.id)).where(*filters))
        total = int(count.scalar() or 0)
        result = await db.execute(
            select(Meditation)
            .where(*filters)
            .order_by(Meditation.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "meditations": list(result.scalars().all()),
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    async def _get_authored(self, db: AsyncSession, user: User, meditation_id: uuid.UUID) -> Meditation:
        meditation = await self.get(db, meditation_id)
        if meditation.author_id != user.id:
            raise AuthorizationError("Only the author can modify this meditation")
        return meditation

    async def update(
        self, db: AsyncSession, user: User, meditation_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Meditation:
        meditation = await self._get_authored(db, user, meditation_id)
        for field, value in changes.items():
            if value is not None:
                setattr(meditation, field, value)
        await db.flush()
        return meditation

    async def delete(self, db: AsyncSession, user: User, meditation_id: uuid.UUID) -> None:
        meditation = await self._get_authored(db, user, meditation_id)
        meditation.is_active = False
        await db.flush()

    async def start(self, db: AsyncSession, user: User, meditation_id: uuid.UUID) -> MeditationSession:
        meditation = await self.get(db, meditation_id)
        if not meditation.is_active:
            raise ValidationError("Meditation is no longer available")

        data = {
            "title": meditation.title,
            "description": (meditation.description or "")[:500] or None,
            "duration": meditation.duration,
            "meditation_id": meditation.id,
            "tags": list(meditation.tags or []),
        }
        if meditation.audio_url:
            data["meditation_type"] = MeditationType.GUIDED
            data["guided_meditation_id"] = meditation.id
        else:
            data["meditation_type"] = MeditationType.TIMED
        return await meditation_session_service.start_session(db, user, data)


meditation_service = MeditationService()
