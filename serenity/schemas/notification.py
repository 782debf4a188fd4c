"""Notification schemas."""

import uuid
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]


class UnreadCountResponse(BaseModel):
    count: int


class NotificationPreferences(BaseModel):
    """One switch per notification type; anything omitted stays enabled."""
    achievement: bool = True
    friend_request: bool = True
    friend_accepted: bool = True
    group_session: bool = True
    reminder: bool = True
    system: bool = True
