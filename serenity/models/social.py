"""
Social graph and group session models.

A friendship is an accepted FriendRequest; there is no separate friends
table. Blocks are directional rows in user_blocks.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from serenity.database import Base, utcnow
from serenity.exceptions import ValidationError


class FriendRequestStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=FriendRequestStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("status", FriendRequestStatus.PENDING)
        super().__init__(**kwargs)

    def other_party(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.recipient_id if self.requester_id == user_id else self.requester_id


class UserBlock(Base):
    __tablename__ = "user_blocks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    blocker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blocked_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("blocker_id", "blocked_id", name="uq_user_blocks_pair"),)


class GroupSessionStatus:
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus:
    JOINED = "joined"
    LEFT = "left"
    COMPLETED = "completed"


class GroupSession(Base):
    __tablename__ = "group_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    meditation_type: Mapped[str] = mapped_column(String(30), nullable=False, default="guided")
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=GroupSessionStatus.SCHEDULED)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # User IDs (as strings) invited to a private session.
    allowed_participants: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    participants: Mapped[List["GroupSessionParticipant"]] = relationship(
        back_populates="session",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="GroupSessionParticipant.joined_at",
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("status", GroupSessionStatus.SCHEDULED)
        kwargs.setdefault("max_participants", 10)
        kwargs.setdefault("meditation_type", "guided")
        kwargs.setdefault("is_private", False)
        kwargs.setdefault("allowed_participants", [])
        kwargs.setdefault("participants", [])
        super().__init__(**kwargs)

    def participant(self, user_id: uuid.UUID) -> Optional["GroupSessionParticipant"]:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    @property
    def joined_count(self) -> int:
        return sum(1 for p in self.participants if p.status == ParticipantStatus.JOINED)


class GroupSessionParticipant(Base):
    __tablename__ = "group_session_participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ParticipantStatus.JOINED)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    mood_after: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    session: Mapped[GroupSession] = relationship(back_populates="participants")

    __table_args__ = (UniqueConstraint("session_id", "user_id", name="uq_group_participant"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("status", ParticipantStatus.JOINED)
        kwargs.setdefault("joined_at", utcnow())
        super().__init__(**kwargs)


class ChatMessageType:
    TEXT = "text"
    SYSTEM = "system"


CHAT_MESSAGE_TYPES = (ChatMessageType.TEXT, ChatMessageType.SYSTEM)


class ChatMessage(Base):
    """A message in a group session's chat. System messages are sent as the host."""

    __tablename__ = "chat_messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_sessions.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(String(1000), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default=ChatMessageType.TEXT)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("idx_chat_messages_session_created", "session_id", "created_at"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("type", ChatMessageType.TEXT)
        kwargs.setdefault("created_at", utcnow())
        super().__init__(**kwargs)

    @validates("content")
    def _validate_content(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValidationError("Message content is required", field="content")
        if len(value) > 1000:
            raise ValidationError("Message must be at most 1000 characters", field="content")
        return value

    @validates("type")
    def _validate_type(self, key, value):
        if value not in CHAT_MESSAGE_TYPES:
            raise ValidationError(f"Invalid message type '{value}'", field="type")
        return value
