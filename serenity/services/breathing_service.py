"""
Serenity Backend — Breathing Service
====================================

What:  Paced breathing patterns and the sessions that follow them.
How:   The three default patterns are upserted on first use. A session's
       planned duration is cycle length × cycles, rounded up to whole minutes.
       Completing a session with both stress readings records the change
       through the stress level service.
"""

import logging
import math
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.exercise import BreathingPattern
from serenity.models.user import User
from serenity.models.wellness_session import BreathingSession, SessionStatus
from serenity.services.completion import on_session_completed
from serenity.services.stress_management_service import level_from_number, stress_management_service

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = [
    {
        "name": "4-7-8",
        "inhale": 4,
        "hold": 7,
        "exhale": 8,
        "post_exhale_hold": 0,
        "cycles": 4,
        "description": "Relaxing breath that calms the nervous system",
    },
    {
        "name": "BOX_BREATHING",
        "inhale": 4,
        "hold": 4,
        "exhale": 4,
        "post_exhale_hold": 4,
        "cycles": 4,
        "description": "Equal-count breathing for focus and composure",
    },
    {
        "name": "QUICK_BREATH",
        "inhale": 2,
        "hold": 0,
        "exhale": 4,
        "post_exhale_hold": 0,
        "cycles": 6,
        "description": "Short exhale-weighted breathing for quick relief",
    },
]


class BreathingService:
    # ── Patterns ──────────────────────────────────────────────────────────
    async def initialize_default_patterns(self, db: AsyncSession) -> None:
        result = await db.execute(select(BreathingPattern))
        existing = {p.name: p for p in result.scalars().all()}
        for defaults in DEFAULT_PATTERNS:
            pattern = existing.get(defaults["name"])
            if pattern is None:
                db.add(BreathingPattern(**defaults))
            else:
                for field, value in defaults.items():
                    setattr(pattern, field, value)
        await db.flush()

    async def list_patterns(self, db: AsyncSession) -> List[BreathingPattern]:
        await self.initialize_default_patterns(db)
        result = await db.execute(select(BreathingPattern).order_by(BreathingPattern.name.asc()))
        return list(result.scalars().all())

    async def _find_pattern(self, db: AsyncSession, name: str) -> Optional[BreathingPattern]:
        await self.initialize_default_patterns(db)
        result = await db.execute(select(BreathingPattern).where(BreathingPattern.name == name))
        return result.scalar_one_or_none()

    async def get_pattern(self, db: AsyncSession, name: str) -> BreathingPattern:
        pattern = await self._find_pattern(db, name)
        if pattern is None:
            raise NotFoundError(resource="breathing pattern", message="Breathing pattern not found")
        return pattern

    # ── Sessions ──────────────────────────────────────────────────────────
    async def start_session(
        self,
        db: AsyncSession,
        user: User,
        pattern_name: str,
        stress_level_before: Optional[int] = None,
    ) -> BreathingSession:
        pattern = await self._find_pattern(db, pattern_name)
        if pattern is None:
            raise ValidationError("Invalid pattern", field="pattern_name")

        session = BreathingSession(
            user_id=user.id,
            pattern_name=pattern.name,
            target_cycles=pattern.cycles,
            duration=math.ceil(pattern.cycle_seconds * pattern.cycles / 60),
            stress_level_before=stress_level_before,
        )
        db.add(session)
        await db.flush()
        logger.info("Breathing session %s started with %s", session.id, pattern.name)
        return session

    async def _get_owned(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> BreathingSession:
        result = await db.execute(select(BreathingSession).where(BreathingSession.id == session_id))
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(resource="breathing session", resource_id=str(session_id))
        if session.user_id != user.id:
            raise AuthorizationError()
        return session

    async def complete_session(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        completed_cycles: Optional[int] = None,
        stress_level_after: Optional[int] = None,
    ) -> BreathingSession:
        session = await self._get_owned(db, user, session_id)
        if session.end_time is not None:
            raise SessionStateError("Session already completed", current_status=session.status)

        if completed_cycles is not None:
            session.completed_cycles = completed_cycles
        if stress_level_after is not None:
            session.stress_level_after = stress_level_after
        session.complete()
        await db.flush()

        if session.stress_level_before is not None and session.stress_level_after is not None:
            stress_management_service.record_stress_change(
                user,
                level_from_number(session.stress_level_before),
                level_from_number(session.stress_level_after),
                session.pattern_name,
            )

        await on_session_completed(db, user, session)
        return session

    async def get_user_sessions(self, db: AsyncSession, user: User, limit: int = 10) -> List[BreathingSession]:
        result = await db.execute(
            select(BreathingSession)
            .where(BreathingSession.user_id == user.id)
            .order_by(BreathingSession.start_time.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_effectiveness(self, db: AsyncSession, user: User) -> dict:
        result = await db.execute(
            select(BreathingSession).where(
                BreathingSession.user_id == user.id,
                BreathingSession.status == SessionStatus.COMPLETED,
                BreathingSession.stress_level_before.is_not(None),
                BreathingSession.stress_level_after.is_not(None),
            )
        )
        sessions = list(result.scalars().all())
        if not sessions:
            return {"average_stress_reduction": 0.0, "total_sessions": 0, "most_effective_pattern": None}

        reductions = [s.stress_level_before - s.stress_level_after for s in sessions]
        by_pattern: Dict[str, List[int]] = defaultdict(list)
        for session, reduction in zip(sessions, reductions):
            by_pattern[session.pattern_name].append(reduction)
        best = max(by_pattern.items(), key=lambda item: sum(item[1]) / len(item[1]))

        return {
            "average_stress_reduction": round(sum(reductions) / len(reductions), 2),
            "total_sessions": len(sessions),
            "most_effective_pattern": best[0],
        }


breathing_service = BreathingService()
