"""
User account model.

Preferences are a free-form JSON document with a few well-known keys:

    {
        "notifications": {"achievement": true, "friend_request": true, ...},
        "stress_management": {"preferred_categories": [...], "preferred_duration": 10,
                              "difficulty_level": "beginner"},
        "preferred_techniques": ["4-7-8", ...],
        "preferred_duration": 15,
        "time_preferences": {"preferred_time": ["MORNING"]}
    }

JSON columns are only change-tracked on reassignment, so services always
assign a new dict rather than mutating in place.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # ── Practice streak ───────────────────────────────────────────────────
    # Calendar days (UTC) with at least one completed session, consecutive.
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_session_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("preferences", {})
        kwargs.setdefault("current_streak", 0)
        kwargs.setdefault("longest_streak", 0)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
