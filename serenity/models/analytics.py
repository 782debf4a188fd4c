"""Per-session analytics rows and cache statistics snapshots."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow


class SessionAnalytics(Base):
    """Denormalized metrics for one wellness session; upserted by session_id."""

    __tablename__ = "session_analytics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wellness_sessions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interruptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    focus_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mood_before: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mood_after: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mood_improved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    session_type: Mapped[str] = mapped_column(String(32), nullable=False, default="meditation")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("duration", 0)
        kwargs.setdefault("duration_completed", 0)
        kwargs.setdefault("interruptions", 0)
        kwargs.setdefault("mood_improved", False)
        kwargs.setdefault("session_type", "meditation")
        super().__init__(**kwargs)


class CacheStatsSnapshot(Base):
    __tablename__ = "cache_stats_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    cache_type: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    misses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    invalidations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_latency: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    bytes_stored: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    key_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
