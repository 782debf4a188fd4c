"""
Serenity Backend — Group Session Service
========================================

What:  Scheduled group meditations that several users join and complete
       together.

Lifecycle:
    scheduled ──start (host)──▶ in_progress ──end (host) / last participant done──▶ completed
        │                            │
        └──────cancel (host)─────────┴──▶ cancelled

Participants: joined ──leave──▶ left ──join──▶ joined
              joined ──complete──▶ completed

Each participant who completes gets group achievement progress and
GROUP_SESSION_POINTS social points. Joins, leaves and host actions post a
system message to the session chat.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc, utcnow
from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.social import (
    GroupSession,
    GroupSessionParticipant,
    GroupSessionStatus,
    ParticipantStatus,
)
from serenity.models.user import User
from serenity.services.achievement_service import achievement_service
from serenity.services.chat_service import chat_service
from serenity.services.friend_service import friend_service
from serenity.services.leaderboard_service import leaderboard_service
from serenity.services.notification_service import notification_service
from serenity.services.points_service import points_service

logger = logging.getLogger(__name__)

GROUP_SESSION_POINTS = 10


class GroupSessionService:
    async def create_session(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> GroupSession:
        """
        Schedule a group session hosted by `user`.

        What:  Stores the session in `scheduled` status. The allow-list is kept
               as strings so it round-trips through the JSON column.
        Why:   A session in the past could never be joined or started.
        How:   Rejects `scheduled_time <= now` with ValidationError, then flushes.
        """
        if as_utc(data["scheduled_time"]) <= utcnow():
            raise ValidationError("Cannot schedule session in the past", field="scheduled_time")

        values = dict(data)
        values["allowed_participants"] = [str(uid) for uid in data.get("allowed_participants") or []]
        session = GroupSession(host_id=user.id, **values)
        db.add(session)
        await db.flush()
        logger.info("Group session %s scheduled by %s", session.id, user.id)
        return session

    async def get_session(self, db: AsyncSession, session_id: uuid.UUID) -> GroupSession:
        """Fetch a session with its participants. Raises NotFoundError."""
        session = await db.get(GroupSession, session_id)
        if session is None:
            raise NotFoundError(resource="group session", resource_id=str(session_id))
        return session

    async def _get_hosted(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        session = await self.get_session(db, session_id)
        if session.host_id != user.id:
            raise AuthorizationError("Only the host can manage this session")
        return session

    # ── Participation ─────────────────────────────────────────────────────
    async def join_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        """
        Add `user` to a scheduled session.

        What:  Creates a participant row, or re-activates one that left.
        Why:   Capacity and privacy are enforced here so every entry point
               (HTTP, host auto-join) shares the same rules.
        How:   Checks in order: status is scheduled (SessionStateError),
               private sessions admit only the host and allow-list
               (AuthorizationError), not already joined, then capacity
               (ValidationError).
        """
        session = await self.get_session(db, session_id)
        if session.status != GroupSessionStatus.SCHEDULED:
            raise SessionStateError("Session is not open for joining", current_status=session.status)
        if (
            session.is_private
            and session.host_id != user.id
            and str(user.id) not in (session.allowed_participants or [])
        ):
            raise AuthorizationError("This session is private")

        existing = session.participant(user.id)
        if existing is not None and existing.status == ParticipantStatus.JOINED:
            raise ValidationError("Already joined this session")
        if session.joined_count >= session.max_participants:
            raise ValidationError("Session is full")

        if existing is not None:
            existing.status = ParticipantStatus.JOINED
            existing.joined_at = utcnow()
            existing.completed_at = None
        else:
            session.participants.append(GroupSessionParticipant(user_id=user.id))
        await db.flush()
        await chat_service.add_system_message(db, session.id, f"{user.username} joined the session")
        return session

    async def leave_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        """Mark a joined participant as left. The row is kept so they can rejoin."""
        session = await self.get_session(db, session_id)
        participant = session.participant(user.id)
        if participant is None or participant.status != ParticipantStatus.JOINED:
            raise ValidationError("Not a participant in this session")
        participant.status = ParticipantStatus.LEFT
        await db.flush()
        await chat_service.add_system_message(db, session.id, f"{user.username} left the session")
        return session

    # ── Host controls ─────────────────────────────────────────────────────
    async def start_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        """
        Move a scheduled session to in_progress.

        What:  Host only. The host becomes a joined participant if not already.
        Why:   Participants need to know the session began.
        How:   Sets start_time, notifies every other joined participant and
               posts a system message to the chat.
        """
        session = await self._get_hosted(db, user, session_id)
        if session.status != GroupSessionStatus.SCHEDULED:
            raise SessionStateError(
                f"Cannot start session in {session.status} status", current_status=session.status
            )

        host = session.participant(user.id)
        if host is None:
            session.participants.append(GroupSessionParticipant(user_id=user.id))
        elif host.status != ParticipantStatus.JOINED:
            host.status = ParticipantStatus.JOINED
        session.status = GroupSessionStatus.IN_PROGRESS
        session.start_time = utcnow()
        await db.flush()

        for participant in session.participants:
            if participant.user_id == user.id or participant.status != ParticipantStatus.JOINED:
                continue
            await notification_service.create_notification(
                db,
                participant.user_id,
                "group_session",
                "Group session started",
                f'"{session.title}" has started',
                {"session_id": str(session.id)},
            )
        await chat_service.add_system_message(db, session.id, "Session started")
        return session

    async def complete_session(
        self, db: AsyncSession, user: User, session_id: uuid.UUID, mood_after: Optional[str] = None
    ) -> GroupSession:
        """
        Record that `user` finished an in-progress session.

        What:  Marks the participant completed and awards group achievement
               progress plus GROUP_SESSION_POINTS social points.
        Why:   The session itself completes when nobody is left in `joined`.
        How:   Friend-based achievements look at the other participants who
               did not leave. The leaderboard cache for `user` is invalidated.
        """
        session = await self.get_session(db, session_id)
        participant = session.participant(user.id)
        if participant is None or participant.status != ParticipantStatus.JOINED:
            raise ValidationError("Not a participant in this session")
        if session.status != GroupSessionStatus.IN_PROGRESS:
            raise SessionStateError(
                f"Cannot complete session in {session.status} status", current_status=session.status
            )

        participant.status = ParticipantStatus.COMPLETED
        participant.completed_at = utcnow()
        participant.mood_after = mood_after

        others = [
            p.user_id
            for p in session.participants
            if p.user_id != user.id and p.status != ParticipantStatus.LEFT
        ]
        with_friend = False
        if others:
            friends = set(await friend_service.friend_ids(db, user.id))
            with_friend = any(uid in friends for uid in others)

        await achievement_service.process_group_session(
            db,
            user.id,
            participant_count=len(others) + 1,
            is_host=session.host_id == user.id,
            with_friend=with_friend,
        )

        if session.joined_count == 0:
            session.status = GroupSessionStatus.COMPLETED
            session.end_time = utcnow()

        await points_service.add_points(
            db, user.id, GROUP_SESSION_POINTS, "social", f'Completed group session "{session.title}"'
        )
        await db.flush()
        await leaderboard_service.invalidate_user_cache(user.id)
        return session

    async def cancel_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        """Host only. Cancels a scheduled or running session and closes its chat."""
        session = await self._get_hosted(db, user, session_id)
        if session.status not in (GroupSessionStatus.SCHEDULED, GroupSessionStatus.IN_PROGRESS):
            raise SessionStateError(
                f"Cannot cancel session in {session.status} status", current_status=session.status
            )
        session.status = GroupSessionStatus.CANCELLED
        await db.flush()
        await chat_service.add_system_message(db, session.id, "Session cancelled")
        logger.info("Group session %s cancelled", session.id)
        return session

    async def end_session(self, db: AsyncSession, user: User, session_id: uuid.UUID) -> GroupSession:
        """Host only. Completes a running session regardless of who finished."""
        session = await self._get_hosted(db, user, session_id)
        if session.status != GroupSessionStatus.IN_PROGRESS:
            raise SessionStateError(
                f"Cannot end session in {session.status} status", current_status=session.status
            )
        session.status = GroupSessionStatus.COMPLETED
        session.end_time = utcnow()
        await db.flush()
        await chat_service.add_system_message(db, session.id, "Session ended")
        return session

    # ── Queries ───────────────────────────────────────────────────────────
    async def get_upcoming_sessions(self, db: AsyncSession, user: User) -> List[GroupSession]:
        """
        Future scheduled sessions `user` may see, soonest first.

        What:  Public sessions, plus private ones where `user` is the host,
               a friend of the host, or on the allow-list.
        How:   Status and time are filtered in SQL. Visibility is filtered in
               Python because the allow-list is a JSON column.
        """
        result = await db.execute(
            select(GroupSession)
            .where(
                GroupSession.status == GroupSessionStatus.SCHEDULED,
                GroupSession.scheduled_time > utcnow(),
            )
            .order_by(GroupSession.scheduled_time.asc())
        )
        friends = set(await friend_service.friend_ids(db, user.id))
        me = str(user.id)
        return [
            s
            for s in result.scalars().all()
            if not s.is_private
            or s.host_id == user.id
            or s.host_id in friends
            or me in (s.allowed_participants or [])
        ]

    async def get_user_sessions(self, db: AsyncSession, user: User) -> List[GroupSession]:
        """Sessions `user` hosts or has ever joined, latest scheduled first."""
        participating = select(GroupSessionParticipant.session_id).where(
            GroupSessionParticipant.user_id == user.id
        )
        result = await db.execute(
            select(GroupSession)
            .where(or_(GroupSession.host_id == user.id, GroupSession.id.in_(participating)))
            .order_by(GroupSession.scheduled_time.desc())
        )
        return list(result.scalars().all())


group_session_service = GroupSessionService()
