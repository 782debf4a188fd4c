"""
Serenity Backend — Meditation Session Service
=============================================

What:  Lifecycle of meditation sessions: start, pause/resume, interruptions,
       end/complete, abandon, plus listing and editing.
Why:   Keeps the rules that span several tables (one active session per user,
       analytics mirroring, completion rewards) out of the route handlers.
How:   Lifecycle transitions are delegated to the WellnessSession state
       machine; this service adds the cross-cutting checks around it.

Flow (one session):
    ┌────────┐  start   ┌────────┐ interrupt ┌─────────────┐
    │ client │ ───────▶ │ active │ ────────▶ │ analytics++ │
    └────────┘          └────────┘           └─────────────┘
                          │ end / complete
                          ▼
                ┌─────────────────────────────────────────────────┐
                │ completed → analytics, streak, achievements,    │
                │             session points, leaderboard cache   │
                └─────────────────────────────────────────────────┘

Error Handling Strategy:
    Rule violations raise ValidationError / SessionStateError (400), missing
    rows NotFoundError (404), foreign rows AuthorizationError (403). Unknown
    failures from list queries are wrapped in DatabaseError.
"""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    SerenityError,
    SessionStateError,
    ValidationError,
)
from serenity.models.user import User
from serenity.models.wellness_session import MeditationSession, SessionStatus
from serenity.services.completion import on_session_completed
from serenity.services.session_analytics_service import (
    analytics_from_session,
    focus_score,
    session_analytics_service,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "start_time": MeditationSession.start_time,
    "duration": MeditationSession.duration,
    "created_at": MeditationSession.created_at,
}


class MeditationSessionService:
    async def _get_owned(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        result = await db.execute(select(MeditationSession).where(MeditationSession.id == session_id))
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(resource="meditation session", resource_id=str(session_id))
        if session.user_id != user.id:
            raise AuthorizationError()
        return session

    # ── Lifecycle ─────────────────────────────────────────────────────────
    async def start_session(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> MeditationSession:
        """
        Begin a new meditation session for `user`.

        What:    Creates an active MeditationSession and its analytics row.
        Who:     Called by POST /api/meditation-sessions and by
                 MeditationService.start for catalogue entries.

        Raises:
            ValidationError: The user already has an active session. Paused
                             sessions do not block a new start.
        """
        if await self.get_active_session(db, user) is not None:
            raise ValidationError("Active session already exists")

        session = MeditationSession(user_id=user.id, **data)
        db.add(session)
        await db.flush()
        await session_analytics_service.create_session_analytics(db, analytics_from_session(session))
        logger.info("Meditation session %s started by user %s", session.id, user.id)
        return session

    async def get_active_session(self, db: AsyncSession, user: User) -> Optional[MeditationSession]:
        """The user's most recently started active session, or None."""
        result = await db.execute(
            select(MeditationSession)
            .where(
                MeditationSession.user_id == user.id,
                MeditationSession.status == SessionStatus.ACTIVE,
            )
            .order_by(MeditationSession.start_time.desc())
        )
        return result.scalars().first()

    async def record_interruption(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        """
        Count one interruption on an active session.

        What:    Increments `interruptions` and mirrors the count into the
                 session's analytics row, which lowers its focus score.
        Raises:  SessionStateError when the session is not active.
        """
        session = await self._get_owned(db, user, session_id)
        if session.status != SessionStatus.ACTIVE:
            raise SessionStateError("Session is not active", current_status=session.status)
        session.interruptions = (session.interruptions or 0) + 1
        await db.flush()
        await session_analytics_service.create_session_analytics(
            db, {"session_id": session.id, "user_id": user.id, "start_time": session.start_time,
                 "interruptions": session.interruptions}
        )
        return session

    async def pause_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        session = await self._get_owned(db, user, session_id)
        session.pause()
        await db.flush()
        return session

    async def resume_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        session = await self._get_owned(db, user, session_id)
        session.resume()
        await db.flush()
        return session

    async def abandon_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        """Give up on a session. Records minutes actually sat; no rewards are granted."""
        session = await self._get_owned(db, user, session_id)
        session.abandon()
        session.duration_completed = round(session.actual_duration / 60)
        await db.flush()
        await session_analytics_service.create_session_analytics(db, analytics_from_session(session))
        return session

    async def end_session(
        self, db: AsyncSession, user: User, session_id: uuid.UUID, mood_after: Optional[str] = None
    ) -> MeditationSession:
        """
        Finish an active session now.

        What:    Completes the session with the elapsed time as
                 `duration_completed`, then runs the completion pipeline
                 (analytics, streak, achievements, points, cache).
        Who:     Called by POST /api/meditation-sessions/{id}/end.

        Raises:
            SessionStateError: The session is paused, completed or abandoned.
        """
        session = await self._get_owned(db, user, session_id)
        if session.status != SessionStatus.ACTIVE:
            raise SessionStateError("Session is not active", current_status=session.status)

        session.complete(mood_after=mood_after)
        session.duration_completed = round(session.actual_duration / 60)
        session.completed = True
        await db.flush()
        await on_session_completed(db, user, session, focus_score=focus_score(session.interruptions or 0))
        return session

    async def complete_session(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        duration_completed: Optional[int] = None,
        mood_after: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> MeditationSession:
        """
        Mark a session completed, optionally with the minutes the user reports.

        What:    Like end_session, but the client may supply
                 `duration_completed` and notes.
        When:    The client timer finished.

        Args:
            duration_completed: Minutes sat. Defaults to elapsed time.
            mood_after:         Mood once finished; compared to mood_before.
            notes:              Free text kept on the session.

        Raises:
            SessionStateError: The session is already completed, or is not
                               active (paused and abandoned sessions cannot
                               complete).
        """
        session = await self._get_owned(db, user, session_id)
        if session.status == SessionStatus.COMPLETED:
            raise SessionStateError("Session is already completed", current_status=session.status)

        session.complete(mood_after=mood_after)
        if duration_completed is None:
            duration_completed = round(session.actual_duration / 60)
        session.duration_completed = duration_completed
        session.completed = True
        if notes is not None:
            session.notes = notes
        await db.flush()
        await on_session_completed(db, user, session, focus_score=focus_score(session.interruptions or 0))
        return session

    # ── Reads / edits ─────────────────────────────────────────────────────
    async def get_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> MeditationSession:
        return await self._get_owned(db, user, session_id)

    async def get_user_sessions(self, db: AsyncSession, user: User, limit: int = 10) -> List[MeditationSession]:
        """The user's latest sessions, newest first."""
        result = await db.execute(
            select(MeditationSession)
            .where(MeditationSession.user_id == user.id)
            .order_by(MeditationSession.start_time.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_sessions(
        self,
        db: AsyncSession,
        user: User,
        status: Optional[str] = None,
        meditation_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "start_time",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """
        Filtered, paginated session listing.

        Returns:
            {"sessions": [...], "total": int, "page": int, "total_pages": int}
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort_by}'", field="sort_by")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")

        try:
            filters = [MeditationSession.user_id == user.id]
            if status:
                filters.append(MeditationSession.status == status)
            if meditation_type:
                filters.append(MeditationSession.meditation_type == meditation_type)
            if start_date:
                filters.append(MeditationSession.start_time >= start_date)
            if end_date:
                filters.append(MeditationSession.start_time <= end_date)

            count = await db.execute(select(func.count(MeditationSession.id)).where(*filters))
            total = int(count.scalar() or 0)

            column = SORTABLE_FIELDS[sort_by]
            order = column.asc() if sort_order == "asc" else column.desc()
            result = await db.execute(
                select(MeditationSession)
                .where(*filters)
                .order_by(order)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return {
                "sessions": list(result.scalars().all()),
                "total": total,
                "page": page,
                "total_pages": math.ceil(total / limit) if limit else 0,
            }
        except SerenityError:
            raise
        except Exception as e:
            logger.error("Database error listing meditation sessions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve sessions. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_session(
        self, db: AsyncSession, user: User, session_id: uuid.UUID, changes: Dict[str, Any]
    ) -> MeditationSession:
        """Edit descriptive fields only (title, description, tags, notes). Status and timing are not editable."""
        session = await self._get_owned(db, user, session_id)
        for field in ("title", "description", "tags", "notes"):
            if changes.get(field) is not None:
                setattr(session, field, changes[field])
        await db.flush()
        return session

    async def delete_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> None:
        session = await self._get_owned(db, user, session_id)
        await db.delete(session)
        await db.flush()
        logger.info("Meditation session %s deleted", session_id)


meditation_session_service = MeditationSessionService()
