"""
Serenity Backend — Stress Technique Catalogue Service
=====================================================

What:  CRUD over the stress relief technique catalogue, text search, and
       preference-based picks.
Who:   /api/stress-techniques routes.

Search:
    Case-insensitive substring match over name, description and tags.
    `%` and `_` in the query are literal characters, not LIKE wildcards.

Recommendations:
    user.preferences["stress_management"] merged over DEFAULT_PREFERENCES
      → category in preferred_categories
      → difficulty == difficulty_level
      → duration_minutes <= preferred_duration + DURATION_TOLERANCE
      → highest effectiveness_rating first
"""

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import ConflictError, NotFoundError
from serenity.models.stress import StressTechnique
from serenity.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = {
    "preferred_categories": ["breathing", "meditation"],
    "preferred_duration": 10,
    "difficulty_level": "beginner",
}
DURATION_TOLERANCE = 5


def escape_like(text: str) -> str:
    """Make `text` match literally inside a LIKE pattern using `\\` as the escape."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StressTechniqueService:
    async def list(self, db: AsyncSession, page: int = 1, limit: int = 20) -> List[StressTechnique]:
        result = await db.execute(
            select(StressTechnique)
            .order_by(StressTechnique.name.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, technique_id: uuid.UUID) -> StressTechnique:
        technique = await db.get(StressTechnique, technique_id)
        if technique is None:
            raise NotFoundError(resource="stress technique", resource_id=str(technique_id))
        return technique

    async def by_category(self, db: AsyncSession, category: str) -> List[StressTechnique]:
        result = await db.execute(
            select(StressTechnique)
            .where(StressTechnique.category == category)
            .order_by(StressTechnique.name.asc())
        )
        return list(result.scalars().all())

    async def by_difficulty(self, db: AsyncSession, difficulty: str) -> List[StressTechnique]:
        result = await db.execute(
            select(StressTechnique)
            .where(StressTechnique.difficulty == difficulty)
            .order_by(StressTechnique.name.asc())
        )
        return list(result.scalars().all())

    async def search(self, db: AsyncSession, query: str) -> List[StressTechnique]:
        """
        Find techniques whose name, description or tags contain `query`.

        What:  Case-insensitive substring search, results sorted by name.
        Why:   Users type free text ("sleep", "4-7-8"), not categories.
        How:   Name and description use LIKE with the query's wildcard
               characters escaped. Tags live in a JSON list, so they are
               matched in Python for the rows SQL did not already return.
        """
        needle = query.lower()
        pattern = f"%{escape_like(needle)}%"
        result = await db.execute(
            select(StressTechnique)
            .where(
                or_(
                    func.lower(StressTechnique.name).like(pattern, escape="\\"),
                    func.lower(StressTechnique.description).like(pattern, escape="\\"),
                )
            )
            .order_by(StressTechnique.name.asc())
        )
        matches = list(result.scalars().all())

        # Tags are a JSON list; match them in Python so every backend behaves the same.
        seen = {t.id for t in matches}
        everything = await db.execute(select(StressTechnique).order_by(StressTechnique.name.asc()))
        for technique in everything.scalars().all():
            if technique.id in seen:
                continue
            if any(needle in tag.lower() for tag in technique.tags or []):
                matches.append(technique)
        return sorted(matches, key=lambda t: t.name)

    async def _ensure_unique_name(self, db: AsyncSession, name: str, exclude_id=None) -> None:
        query = select(StressTechnique.id).where(StressTechnique.name == name)
        if exclude_id is not None:
            query = query.where(StressTechnique.id != exclude_id)
        existing = await db.execute(query)
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A technique with this name already exists", field="name")

    async def create(self, db: AsyncSession, data: Dict[str, Any]) -> StressTechnique:
        """
        Add a technique to the catalogue.

        Raises:
            ConflictError: Another technique already has this name (409).
                           Also raised if a concurrent insert wins the
                           unique index race.
        """
        await self._ensure_unique_name(db, data["name"])
        technique = StressTechnique(**{k: v for k, v in data.items() if v is not None})
        db.add(technique)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError("A technique with this name already exists", field="name") from exc
        logger.info("Stress technique '%s' created", technique.name)
        return technique

    async def update(
        self, db: AsyncSession, technique_id: uuid.UUID, changes: Dict[str, Any]
    ) -> StressTechnique:
        """Apply non-None `changes`. Renaming onto an existing name raises ConflictError."""
        technique = await self.get(db, technique_id)
        if changes.get("name") and changes["name"] != technique.name:
            await self._ensure_unique_name(db, changes["name"], exclude_id=technique.id)
        for field, value in changes.items():
            if value is not None:
                setattr(technique, field, value)
        await db.flush()
        return technique

    async def delete(self, db: AsyncSession, technique_id: uuid.UUID) -> None:
        technique = await self.get(db, technique_id)
        await db.delete(technique)
        await db.flush()

    async def recommended_for(self, db: AsyncSession, user: User) -> List[StressTechnique]:
        """
        Techniques matching the user's stress management preferences.

        What:  Filters by preferred categories, difficulty level and a
               duration of at most preferred_duration + DURATION_TOLERANCE.
        How:   Missing preference keys fall back to DEFAULT_PREFERENCES.
               Ordered by effectiveness_rating, best first, then by name.
        """
        prefs = {**DEFAULT_PREFERENCES, **((user.preferences or {}).get("stress_management") or {})}
        max_duration = prefs["preferred_duration"] + DURATION_TOLERANCE

        result = await db.execute(
            select(StressTechnique)
            .where(
                StressTechnique.category.in_(prefs["preferred_categories"]),
                StressTechnique.difficulty == prefs["difficulty_level"],
                StressTechnique.duration_minutes <= max_duration,
            )
            .order_by(StressTechnique.effectiveness_rating.desc(), StressTechnique.name.asc())
        )
        return list(result.scalars().all())


stress_technique_service = StressTechniqueService()
