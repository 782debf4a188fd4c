"""
Serenity Backend — Group Session Chat Service
=============================================

What:  Text chat attached to a group session, plus system messages the
       session lifecycle posts (started, cancelled, someone joined).
Who:   Called by /api/group-sessions/{id}/messages and by
       GroupSessionService on lifecycle changes.

Posting rules:
    session cancelled               → only system messages
    sender not host and not joined  → 403 "User is not a participant in this session"

Reading:
    Newest first, `limit` per page. Pass the oldest `created_at` seen as
    `before` to fetch the next page. Private sessions are readable by the
    host, anyone who has been a participant, and the allow-list.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError
from serenity.models.social import (
    ChatMessage,
    ChatMessageType,
    GroupSession,
    GroupSessionParticipant,
    GroupSessionStatus,
    ParticipantStatus,
)
from serenity.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def can_post(session: GroupSession, user_id: uuid.UUID) -> bool:
    if session.host_id == user_id:
        return True
    participant = session.participant(user_id)
    return participant is not None and participant.status == ParticipantStatus.JOINED


def can_read(session: GroupSession, user_id: uuid.UUID) -> bool:
    if not session.is_private or session.host_id == user_id:
        return True
    return session.participant(user_id) is not None or str(user_id) in (session.allowed_participants or [])


class ChatService:
    async def _get_session(self, db: AsyncSession, session_id: uuid.UUID) -> GroupSession:
        session = await db.get(GroupSession, session_id)
        if session is None:
            raise NotFoundError(resource="group session", resource_id=str(session_id))
        return session

    async def add_message(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        content: str,
        type: str = ChatMessageType.TEXT,
    ) -> ChatMessage:
        """
        Post a message to a session's chat.

        Raises:
            NotFoundError:      Unknown session
            SessionStateError:  Session cancelled (non-system messages)
            AuthorizationError: Sender is neither host nor a joined participant
            ValidationError:    Empty or over-long content
        """
        session = await self._get_session(db, session_id)
        if session.status == GroupSessionStatus.CANCELLED and type != ChatMessageType.SYSTEM:
            raise SessionStateError(
                "Cannot send messages in a cancelled session", current_status=session.status
            )
        if type != ChatMessageType.SYSTEM and not can_post(session, user.id):
            raise AuthorizationError("User is not a participant in this session")

        message = ChatMessage(session_id=session.id, sender_id=user.id, content=content, type=type)
        db.add(message)
        await db.flush()
        logger.info("Chat message %s posted to group session %s by %s", message.id, session.id, user.id)
        return message

    async def add_system_message(self, db: AsyncSession, session_id: uuid.UUID, content: str) -> ChatMessage:
        """Post a lifecycle notice. System messages are attributed to the host."""
        session = await self._get_session(db, session_id)
        message = ChatMessage(
            session_id=session.id,
            sender_id=session.host_id,
            content=content,
            type=ChatMessageType.SYSTEM,
        )
        db.add(message)
        await db.flush()
        return message

    async def get_session_messages(
        self,
        db: AsyncSession,
        user: User,
        session_id: uuid.UUID,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[ChatMessage]:
        session = await self._get_session(db, session_id)
        if not can_read(session, user.id):
            raise AuthorizationError("This session is private")

        query = select(ChatMessage).where(ChatMessage.session_id == session.id)
        if before is not None:
            query = query.where(ChatMessage.created_at < before)
        result = await db.execute(query.order_by(ChatMessage.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def get_session_participants(self, db: AsyncSession, session_id: uuid.UUID) -> List[Dict[str, Any]]:
        session = await self._get_session(db, session_id)
        result = await db.execute(
            select(GroupSessionParticipant, User.username)
            .join(User, User.id == GroupSessionParticipant.user_id)
            .where(GroupSessionParticipant.session_id == session.id)
            .order_by(GroupSessionParticipant.joined_at.asc())
        )
        return [
            {
                "user_id": participant.user_id,
                "username": username,
                "status": participant.status,
                "joined_at": participant.joined_at,
                "completed_at": participant.completed_at,
            }
            for participant, username in result.all()
        ]


chat_service = ChatService()
