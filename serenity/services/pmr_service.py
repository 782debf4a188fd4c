"""
Serenity Backend — Progressive Muscle Relaxation Service
========================================================

What:  PMR sessions. The user works through the muscle groups in order,
       reporting each one as it is finished.
Who:   /api/pmr routes.
How:   Seven default groups are seeded on first use. The planned session
       length is their total time rounded up to whole minutes.

Flow:
    start(stress_level_before) ──▶ active
        │ update_progress(group)    adds one group to completed_groups
        ▼
    complete(completed_groups?, stress_level_after?)
        → stress change recorded, completion pipeline (streak, points, ...)

Effectiveness:
    Over completed sessions with both stress levels:
    average reduction (before - after), session count, average completion rate.
"""

import logging
import math
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.exercise import MuscleGroup
from serenity.models.user import User
from serenity.models.wellness_session import PMRSession, SessionStatus
from serenity.services.completion import on_session_completed
from serenity.services.stress_management_service import level_from_number, stress_management_service

logger = logging.getLogger(__name__)

DEFAULT_MUSCLE_GROUPS = [
    ("hands_and_forearms", "Make tight fists, then release", 30),
    ("biceps", "Bend the elbows and tense the upper arms", 30),
    ("shoulders", "Raise the shoulders towards the ears", 30),
    ("face", "Scrunch the eyes, nose and mouth together", 30),
    ("chest_and_back", "Take a deep breath and squeeze the shoulder blades", 30),
    ("abdomen", "Tighten the stomach muscles", 30),
    ("legs", "Point the toes and tense the thighs and calves", 45),
]


class PMRService:
    async def _ensure_defaults(self, db: AsyncSession) -> None:
        result = await db.execute(select(MuscleGroup.name))
        existing = set(result.scalars().all())
        for order, (name, description, seconds) in enumerate(DEFAULT_MUSCLE_GROUPS, start=1):
            if name not in existing:
                db.add(MuscleGroup(name=name, description=description, order=order, duration_seconds=seconds))
        await db.flush()

    async def get_muscle_groups(self, db: AsyncSession) -> List[MuscleGroup]:
        await self._ensure_defaults(db)
        result = await db.execute(select(MuscleGroup).order_by(MuscleGroup.order.asc()))
        return list(result.scalars().all())

    async def start_session(self, db: AsyncSession, user: User, stress_level_before: int) -> PMRSession:
        groups = await self.get_muscle_groups(db)
        total_seconds = sum(g.duration_seconds for g in groups)

        session = PMRSession(
            user_id=user.id,
            stress_level_before=stress_level_before,
            total_groups=len(groups),
            duration=math.ceil(total_seconds / 60),
        )
        db.add(session)
        await db.flush()
        logger.info("PMR session %s started", session.id)
        return session

    async def _get_owned(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> PMRSession:
        result = await db.execute(select(PMRSession).where(PMRSession.id == session_id))
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(resource="PMR session", resource_id=str(session_id))
        if session.user_id != user.id:
            raise AuthorizationError()
        return session

    async def update_progress(
        self, db: AsyncSession, user: User, session_id: uuid.UUID, muscle_group: str
    ) -> PMRSession:
        session = await self._get_owned(db, user, session_id)
        if session.is_terminal:
            raise SessionStateError(
                f"Cannot update progress of session in {session.status} status",
                current_status=session.status,
            )

        names = [g.name for g in await self.get_muscle_groups(db)]
        if muscle_group not in names:
            raise ValidationError("Invalid muscle group name", field="muscle_group")
        completed = list(session.completed_groups or [])
        if muscle_group in completed:
            raise ValidationError("Muscle group already completed", field="muscle_group")

        session.completed_groups = completed + [muscle_group]
        await db.flush()
        return session

    async def complete_session(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        completed_groups: Optional[List[str]] = None,
        stress_level_after: Optional[int] = None,
    ) -> PMRSession:
        """
        Finish a PMR session.

        Args:
            completed_groups:   Replaces the recorded progress when given.
                                Duplicates are dropped, order is kept.
            stress_level_after: 1-10 rating once finished.

        Raises:
            SessionStateError: Session already ended
            ValidationError:   An unknown muscle group name
        """
        session = await self._get_owned(db, user, session_id)
        if session.end_time is not None:
            raise SessionStateError("Session already completed", current_status=session.status)

        if completed_groups is not None:
            names = {g.name for g in await self.get_muscle_groups(db)}
            unknown = [g for g in completed_groups if g not in names]
            if unknown:
                raise ValidationError("Invalid muscle group name", field="completed_groups")
            session.completed_groups = list(dict.fromkeys(completed_groups))
        if stress_level_after is not None:
            session.stress_level_after = stress_level_after
        session.complete()
        await db.flush()

        if session.stress_level_before is not None and session.stress_level_after is not None:
            stress_management_service.record_stress_change(
                user,
                level_from_number(session.stress_level_before),
                level_from_number(session.stress_level_after),
                "progressive_muscle_relaxation",
            )

        await on_session_completed(db, user, session)
        return session

    async def get_user_sessions(self, db: AsyncSession, user: User, limit: int = 10) -> List[PMRSession]:
        result = await db.execute(
            select(PMRSession)
            .where(PMRSession.user_id == user.id)
            .order_by(PMRSession.start_time.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_effectiveness(self, db: AsyncSession, user: User) -> dict:
        result = await db.execute(
            select(PMRSession).where(
                PMRSession.user_id == user.id,
                PMRSession.status == SessionStatus.COMPLETED,
                PMRSession.stress_level_before.is_not(None),
                PMRSession.stress_level_after.is_not(None),
            )
        )
        sessions = list(result.scalars().all())
        if not sessions:
            return {"average_stress_reduction": 0.0, "total_sessions": 0, "average_completion_rate": 0.0}

        reductions = [s.stress_level_before - s.stress_level_after for s in sessions]
        rates = [s.completion_rate for s in sessions]
        return {
            "average_stress_reduction": round(sum(reductions) / len(reductions), 2),
            "total_sessions": len(sessions),
            "average_completion_rate": round(sum(rates) / len(rates), 1),
        }


pmr_service = PMRService()
