"""Journal entries. Private by default; only the owner can read them."""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow

JOURNAL_MOODS = ("very-negative", "negative", "neutral", "positive", "very-positive")


class Journal(Base):
    __tablename__ = "journals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    meditation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("wellness_sessions.id", ondelete="SET NULL"), nullable=True
    )
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_journals_user_created", "user_id", "created_at"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("tags", [])
        kwargs.setdefault("is_private", True)
        kwargs.setdefault("created_at", utcnow())
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Journal(id={self.id}, mood='{self.mood}')>"
