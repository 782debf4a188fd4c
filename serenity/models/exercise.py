"""
Reference data for guided exercises: breathing patterns and PMR muscle groups.

Both tables are seeded by their services on first use.
"""

import uuid
from typing import Optional

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from serenity.database import Base


class BreathingPattern(Base):
    __tablename__ = "breathing_patterns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    inhale: Mapped[int] = mapped_column(Integer, nullable=False)
    hold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exhale: Mapped[int] = mapped_column(Integer, nullable=False)
    post_exhale_hold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cycles: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    @property
    def cycle_seconds(self) -> int:
        return self.inhale + (self.hold or 0) + self.exhale + (self.post_exhale_hold or 0)


class MuscleGroup(Base):
    __tablename__ = "muscle_groups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(300), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
