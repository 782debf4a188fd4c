"""In-app notifications."""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow

NOTIFICATION_TYPES = (
    "achievement",
    "friend_request",
    "friend_accepted",
    "group_session",
    "reminder",
    "system",
)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("idx_notifications_user_read_created", "user_id", "read", "created_at"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("data", {})
        kwargs.setdefault("read", False)
        kwargs.setdefault("created_at", utcnow())
        super().__init__(**kwargs)
