"""
Serenity Backend — Stress Management Session Service
====================================================

What:  Sessions where a technique is practised against a recorded stress
       level, completed with an after-level and optionally rated afterwards.
Who:   /api/stress-management/sessions routes.

Lifecycle:
    start ──▶ active ──complete──▶ completed ──add_feedback (once)──▶ completed + feedback

If no stress_level_after is given on completion, the before-level is kept.
Feedback on a session that is not completed, or a second feedback, raises
SessionStateError (400).
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError
from serenity.models.user import User
from serenity.models.wellness_session import SessionStatus, StressManagementSession
from serenity.services.completion import on_session_completed

logger = logging.getLogger(__name__)


class StressSessionService:
    async def _get_owned(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> StressManagementSession:
        result = await db.execute(
            select(StressManagementSession).where(StressManagementSession.id == session_id)
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(resource="stress management session", resource_id=str(session_id))
        if session.user_id != user.id:
            raise AuthorizationError()
        return session

    async def start_session(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> StressManagementSession:
        session = StressManagementSession(user_id=user.id, **data)
        db.add(session)
        await db.flush()
        logger.info("Stress management session %s started (%s)", session.id, session.technique)
        return session

    async def complete_session(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        stress_level_after: Optional[int] = None,
        mood_after: Optional[str] = None,
        effectiveness: Optional[int] = None,
    ) -> StressManagementSession:
        session = await self._get_owned(db, user, session_id)
        session.complete(mood_after=mood_after)
        session.stress_level_after = (
            stress_level_after if stress_level_after is not None else session.stress_level_before
        )
        if effectiveness is not None:
            session.effectiveness = effectiveness
        await db.flush()
        await on_session_completed(db, user, session)
        return session

    async def add_feedback(
        self, db: AsyncSession, user: User, session_id: uuid.UUID, feedback: Dict[str, Any]
    ) -> StressManagementSession:
        """Attach the user's rating of a completed session. Allowed once."""
        session = await self._get_owned(db, user, session_id)
        if session.status != SessionStatus.COMPLETED:
            raise SessionStateError(
                "Feedback can only be added to completed sessions", current_status=session.status
            )
        if session.feedback:
            raise SessionStateError("Feedback has already been provided", current_status=session.status)
        session.feedback = dict(feedback)
        await db.flush()
        return session

    async def get_user_sessions(self, db: AsyncSession, user: User, limit: int = 10) -> List[StressManagementSession]:
        result = await db.execute(
            select(StressManagementSession)
            .where(StressManagementSession.user_id == user.id)
            .order_by(StressManagementSession.start_time.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


stress_session_service = StressSessionService()
