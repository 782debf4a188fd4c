"""
Serenity Backend — Social Schemas
=================================

What:  Friend requests, blocks, group meditation sessions and their chat.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from serenity.schemas.auth import UserSummary
from serenity.schemas.session import Mood


class FriendRequestCreate(BaseModel):
    recipient_id: uuid.UUID


class FriendRequestResponse(BaseModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    recipient_id: uuid.UUID
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FriendListResponse(BaseModel):
    friends: List[UserSummary]


class BlockedUsersResponse(BaseModel):
    blocked: List[UserSummary]


# ══════════════════════════════════════════════════════════════════════════
# Group Sessions
# ══════════════════════════════════════════════════════════════════════════


class GroupSessionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    scheduled_time: datetime
    duration: int = Field(ge=1, le=240)
    meditation_type: str = Field(default="guided", max_length=30)
    max_participants: int = Field(default=10, ge=2, le=100)
    is_private: bool = False
    allowed_participants: List[uuid.UUID] = Field(default_factory=list)


class GroupSessionComplete(BaseModel):
    mood_after: Optional[Mood] = None


class ParticipantResponse(BaseModel):
    user_id: uuid.UUID
    status: str
    joined_at: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GroupSessionResponse(BaseModel):
    id: uuid.UUID
    host_id: uuid.UUID
    title: str
    description: Optional[str] = None
    scheduled_time: datetime
    duration: int
    meditation_type: str
    max_participants: int
    status: str
    is_private: bool
    allowed_participants: List[str] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    participants: List[ParticipantResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ParticipantDetail(ParticipantResponse):
    username: str


# ══════════════════════════════════════════════════════════════════════════
# Group Session Chat
# ══════════════════════════════════════════════════════════════════════════


class ChatMessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=1000, description="Message text")


class ChatMessageResponse(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    type: str
    created_at: datetime

    model_config = {"from_attributes": True}
