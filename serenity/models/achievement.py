"""
Achievements and points.

ACHIEVEMENT_CONFIGS is the single source of truth for every achievement a
user can earn. A row per (user, type) is created lazily by
AchievementService.initialize_achievements and progresses towards `target`.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow

ACHIEVEMENT_CONFIGS = {
    # ── Time ──────────────────────────────────────────────────────────────
    "early_bird": {
        "title": "Early Bird",
        "description": "Complete 5 sessions before 8 AM",
        "target": 5,
        "points": 100,
    },
    "night_owl": {
        "title": "Night Owl",
        "description": "Complete 5 sessions after 10 PM",
        "target": 5,
        "points": 100,
    },
    # ── Duration ──────────────────────────────────────────────────────────
    "consistency_master": {
        "title": "Consistency Master",
        "description": "Complete 7 sessions",
        "target": 7,
        "points": 150,
    },
    "marathon_meditator": {
        "title": "Marathon Meditator",
        "description": "Complete a session of 30 minutes or longer",
        "target": 1,
        "points": 200,
    },
    "quick_zen": {
        "title": "Quick Zen",
        "description": "Complete 10 sessions of 5 minutes or less",
        "target": 10,
        "points": 100,
    },
    "balanced_practice": {
        "title": "Balanced Practice",
        "description": "Practice 3 different session types",
        "target": 3,
        "points": 150,
    },
    # ── Streak ────────────────────────────────────────────────────────────
    "week_warrior": {
        "title": "Week Warrior",
        "description": "Practice for 7 consecutive days",
        "target": 7,
        "points": 200,
    },
    "monthly_master": {
        "title": "Monthly Master",
        "description": "Practice for 30 consecutive days",
        "target": 30,
        "points": 500,
    },
    "zen_master": {
        "title": "Zen Master",
        "description": "Complete 100 sessions",
        "target": 100,
        "points": 1000,
    },
    # ── Mood ──────────────────────────────────────────────────────────────
    "mood_lifter": {
        "title": "Mood Lifter",
        "description": "Improve your mood in 10 sessions",
        "target": 10,
        "points": 150,
    },
    "zen_state": {
        "title": "Zen State",
        "description": "Finish 5 sessions feeling peaceful",
        "target": 5,
        "points": 200,
    },
    "emotional_growth": {
        "title": "Emotional Growth",
        "description": "Improve your mood in 20 sessions",
        "target": 20,
        "points": 300,
    },
    # ── Social ────────────────────────────────────────────────────────────
    "social_butterfly": {
        "title": "Social Butterfly",
        "description": "Complete 10 group sessions",
        "target": 10,
        "points": 200,
    },
    "group_guide": {
        "title": "Group Guide",
        "description": "Host 5 group sessions",
        "target": 5,
        "points": 300,
    },
    "community_pillar": {
        "title": "Community Pillar",
        "description": "Take part in 20 group sessions",
        "target": 20,
        "points": 400,
    },
    "synchronized_souls": {
        "title": "Synchronized Souls",
        "description": "Complete 3 group sessions with 3 or more participants",
        "target": 3,
        "points": 250,
    },
    # ── Group ─────────────────────────────────────────────────────────────
    "meditation_circle": {
        "title": "Meditation Circle",
        "description": "Complete a group session with 3 or more participants",
        "target": 1,
        "points": 150,
    },
    "friend_zen": {
        "title": "Friend Zen",
        "description": "Complete 5 group sessions with a friend",
        "target": 5,
        "points": 200,
    },
    "group_streak": {
        "title": "Group Streak",
        "description": "Join group sessions on 7 consecutive days",
        "target": 7,
        "points": 350,
    },
    # ── Mentorship ────────────────────────────────────────────────────────
    "mindful_mentor": {
        "title": "Mindful Mentor",
        "description": "Guide 10 group sessions as host",
        "target": 10,
        "points": 400,
    },
    "harmony_seeker": {
        "title": "Harmony Seeker",
        "description": "Share 15 sessions with your community",
        "target": 15,
        "points": 300,
    },
    "zen_network": {
        "title": "Zen Network",
        "description": "Make 30 friends",
        "target": 30,
        "points": 500,
    },
}

POINT_SOURCES = ("achievement", "streak", "session", "challenge", "social", "other")


class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("progress", 0)
        kwargs.setdefault("completed", False)
        super().__init__(**kwargs)

    @property
    def progress_percentage(self) -> int:
        if not self.target:
            return 0
        return min(100, round(self.progress / self.target * 100))

    def __repr__(self) -> str:
        return f"<Achievement(type='{self.type}', progress={self.progress}/{self.target})>"


class UserPoints(Base):
    """Running point totals per user, split by bucket."""

    __tablename__ = "user_points"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    achievements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streaks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    recent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(self, **kwargs):
        for bucket in ("total", "achievements", "streaks", "recent"):
            kwargs.setdefault(bucket, 0)
        super().__init__(**kwargs)


class PointsHistory(Base):
    """Append-only ledger; leaderboards aggregate over it."""

    __tablename__ = "points_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False, default="")

    __table_args__ = (
        Index("idx_points_history_user_date", "user_id", "date"),
        Index("idx_points_history_source_date", "source", "date"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("date", utcnow())
        super().__init__(**kwargs)
