"""
Stress assessment and stress technique catalogue models.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base, utcnow

ASSESSMENT_SOURCES = ("self_report", "questionnaire")

TECHNIQUE_CATEGORIES = ("breathing", "meditation", "physical", "cognitive", "mindfulness", "social")
TECHNIQUE_DIFFICULTIES = ("beginner", "intermediate", "advanced")
TECHNIQUE_FREQUENCIES = ("daily", "weekly", "as-needed")


def stress_category(level: Optional[int]) -> Optional[str]:
    """Bucket a 1-10 self-reported level into low / moderate / high."""
    if level is None:
        return None
    if level <= 3:
        return "low"
    if level <= 7:
        return "moderate"
    return "high"


class StressAssessment(Base):
    """One stress reading, either self-reported or derived from a questionnaire."""

    __tablename__ = "stress_assessments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    stress_level: Mapped[int] = mapped_column(Integer, nullable=False)
    physical_symptoms: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    emotional_symptoms: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    triggers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="self_report")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_stress_assessments_user_date", "user_id", "date"),)

    def __init__(self, **kwargs):
        kwargs.setdefault("date", utcnow())
        kwargs.setdefault("physical_symptoms", [])
        kwargs.setdefault("emotional_symptoms", [])
        kwargs.setdefault("triggers", [])
        kwargs.setdefault("source", "self_report")
        super().__init__(**kwargs)

    @property
    def stress_category(self) -> Optional[str]:
        return stress_category(self.stress_level)

    def __repr__(self) -> str:
        return f"<StressAssessment(id={self.id}, level={self.stress_level})>"


class StressTechnique(Base):
    __tablename__ = "stress_techniques"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="beginner")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    steps: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    benefits: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    effectiveness_rating: Mapped[float] = mapped_column(Float, nullable=False, default=3)
    recommended_frequency: Mapped[str] = mapped_column(String(20), nullable=False, default="as-needed")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("difficulty", "beginner")
        kwargs.setdefault("steps", [])
        kwargs.setdefault("benefits", [])
        kwargs.setdefault("tags", [])
        kwargs.setdefault("effectiveness_rating", 3)
        kwargs.setdefault("recommended_frequency", "as-needed")
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<StressTechnique(name='{self.name}')>"
