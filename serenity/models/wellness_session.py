"""
Serenity Backend — Wellness Session Models
==========================================

What:  The shared `wellness_sessions` table and its four subtypes
       (meditation, stress management, breathing, PMR).
How:   SQLAlchemy single-table inheritance. `session_type` is the
       discriminator column; each subtype adds nullable columns to the same
       table and registers its own polymorphic identity. A query against
       WellnessSession returns correctly typed subclass instances.

Lifecycle (enforced by WellnessSession, shared by every subtype):

        ┌────────┐  pause   ┌────────┐
        │ active │ ───────▶ │ paused │
        │        │ ◀─────── │        │
        └────────┘  resume  └────────┘
          │     │               │
 complete │     │ abandon       │ abandon
          ▼     ▼               ▼
    ┌───────────┐         ┌───────────┐
    │ completed │         │ abandoned │     (both terminal)
    └───────────┘         └───────────┘

Any other transition raises SessionStateError
("Cannot {action} session in {status} status"), which the API reports as 400.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from serenity.database import Base, as_utc, utcnow
from serenity.exceptions import SessionStateError, ValidationError


class SessionStatus:
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    ALL = (ACTIVE, PAUSED, COMPLETED, ABANDONED)


VALID_TRANSITIONS = {
    SessionStatus.ACTIVE: {SessionStatus.PAUSED, SessionStatus.COMPLETED, SessionStatus.ABANDONED},
    SessionStatus.PAUSED: {SessionStatus.ACTIVE, SessionStatus.ABANDONED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.ABANDONED: set(),
}

MOODS = ("stressed", "anxious", "neutral", "calm", "peaceful", "energized")

# Ordinal used to decide whether a session improved the user's mood.
MOOD_VALUES = {
    "stressed": 1,
    "anxious": 2,
    "neutral": 3,
    "calm": 4,
    "peaceful": 5,
    "energized": 5,
}


def mood_improved(mood_before: Optional[str], mood_after: Optional[str]) -> bool:
    if not mood_before or not mood_after:
        return False
    return MOOD_VALUES.get(mood_after, 0) > MOOD_VALUES.get(mood_before, 0)


class WellnessSession(Base):
    """
    Common record for every timed wellness activity.

    Never instantiated directly; services create one of the subclasses.
    """

    __tablename__ = "wellness_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_type: Mapped[str] = mapped_column(String(32), nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # Planned length in minutes.
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionStatus.ACTIVE)

    mood_before: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mood_after: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    stress_level_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stress_level_after: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_wellness_sessions_user_type_start", "user_id", "session_type", "start_time"),
        Index("idx_wellness_sessions_user_status", "user_id", "status"),
    )

    __mapper_args__ = {
        "polymorphic_on": "session_type",
        "polymorphic_identity": "wellness",
    }

    def __init__(self, **kwargs):
        # Column defaults only apply at flush; the state machine needs them now.
        kwargs.setdefault("status", SessionStatus.ACTIVE)
        kwargs.setdefault("start_time", utcnow())
        kwargs.setdefault("duration", 0)
        super().__init__(**kwargs)

    # ── Field validation ──────────────────────────────────────────────────
    @validates("duration")
    def _validate_duration(self, key, value):
        if value is not None and value < 0:
            raise ValidationError("Duration cannot be negative", field="duration")
        return value

    @validates("end_time")
    def _validate_end_time(self, key, value):
        if value is not None and self.start_time is not None:
            if as_utc(value) <= as_utc(self.start_time):
                raise ValidationError("End time must be after start time", field="end_time")
        return value

    @validates("mood_before", "mood_after")
    def _validate_mood(self, key, value):
        if value is not None and value not in MOODS:
            raise ValidationError(f"Invalid mood '{value}'", field=key)
        return value

    @validates("notes")
    def _validate_notes(self, key, value):
        if value is not None and len(value) > 1000:
            raise ValidationError("Notes cannot exceed 1000 characters", field="notes")
        return value

    # ── State machine ─────────────────────────────────────────────────────
    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def _transition(self, new_status: str, action: str) -> None:
        if not self.can_transition_to(new_status):
            raise SessionStateError(
                f"Cannot {action} session in {self.status} status",
                current_status=self.status,
            )
        self.status = new_status

    def pause(self) -> None:
        self._transition(SessionStatus.PAUSED, "pause")

    def resume(self) -> None:
        self._transition(SessionStatus.ACTIVE, "resume")

    def complete(self, mood_after: Optional[str] = None, at: Optional[datetime] = None) -> None:
        self._transition(SessionStatus.COMPLETED, "complete")
        self.end_time = self._closing_time(at)
        if mood_after is not None:
            self.mood_after = mood_after

    def abandon(self, at: Optional[datetime] = None) -> None:
        self._transition(SessionStatus.ABANDONED, "abandon")
        self.end_time = self._closing_time(at)

    def _closing_time(self, at: Optional[datetime]) -> datetime:
        end = as_utc(at) if at is not None else utcnow()
        start = as_utc(self.start_time)
        # A session closed in the same instant it started still needs end > start.
        if start is not None and end <= start:
            end = start + timedelta(microseconds=1)
        return end

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)

    @property
    def actual_duration(self) -> int:
        """Elapsed seconds from start to end, or to now while still open."""
        start = as_utc(self.start_time)
        if start is None:
            return 0
        end = as_utc(self.end_time) or utcnow()
        return max(0, int((end - start).total_seconds()))

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, user_id={self.user_id}, "
            f"status='{self.status}')>"
        )



# ══════════════════════════════════════════════════════════════════════════
# Subtypes
# ══════════════════════════════════════════════════════════════════════════

class MeditationType:
    GUIDED = "guided"
    UNGUIDED = "unguided"
    TIMED = "timed"

    ALL = (GUIDED, UNGUIDED, TIMED)


class MeditationSession(WellnessSession):
    """A sitting meditation, optionally started from a catalogue entry."""

    __mapper_args__ = {"polymorphic_identity": "meditation"}

    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    meditation_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    guided_meditation_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    meditation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("meditations.id", ondelete="SET NULL"), nullable=True
    )
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    duration_completed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    interruptions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("meditation_type", MeditationType.TIMED)
        kwargs.setdefault("tags", [])
        kwargs.setdefault("duration_completed", 0)
        kwargs.setdefault("interruptions", 0)
        kwargs.setdefault("completed", False)
        if kwargs["meditation_type"] == MeditationType.GUIDED and not kwargs.get("guided_meditation_id"):
            raise ValidationError(
                "Guided meditation ID is required for guided sessions",
                field="guided_meditation_id",
            )
        super().__init__(**kwargs)

    @validates("title")
    def _validate_title(self, key, value):
        if value is not None and len(value) > 100:
            raise ValidationError("Title cannot exceed 100 characters", field="title")
        return value

    @validates("tags")
    def _validate_tags(self, key, value):
        for tag in value or []:
            if len(tag) > 30:
                raise ValidationError("Tags cannot exceed 30 characters", field="tags")
        return value

    @property
    def duration_minutes(self) -> int:
        return round(self.actual_duration / 60)

    @property
    def completion_percentage(self) -> int:
        if not self.duration:
            return 0
        return min(100, round((self.duration_completed or 0) / self.duration * 100))


class StressTechniqueType:
    ALL = (
        "deep_breathing",
        "progressive_muscle_relaxation",
        "guided_imagery",
        "mindfulness",
        "body_scan",
        "journaling",
        "physical_exercise",
        "other",
    )


class StressManagementSession(WellnessSession):
    """A stress-relief exercise with before/after stress levels and feedback."""

    __mapper_args__ = {"polymorphic_identity": "stress_management"}

    technique: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    triggers: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    physical_symptoms: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    emotional_symptoms: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    effectiveness: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # {effectiveness_rating, stress_reduction_rating, comments, improvements}
    feedback: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("triggers", [])
        kwargs.setdefault("physical_symptoms", [])
        kwargs.setdefault("emotional_symptoms", [])
        if kwargs.get("stress_level_before") is None:
            raise ValidationError("Stress level before is required", field="stress_level_before")
        super().__init__(**kwargs)

    @property
    def stress_reduction(self) -> int:
        if self.stress_level_before is None or self.stress_level_after is None:
            return 0
        return max(0, self.stress_level_before - self.stress_level_after)


class BreathingSession(WellnessSession):
    """A paced breathing exercise following a named pattern."""

    __mapper_args__ = {"polymorphic_identity": "breathing"}

    pattern_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    target_cycles: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_cycles: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("completed_cycles", 0)
        super().__init__(**kwargs)


class PMRSession(WellnessSession):
    """Progressive muscle relaxation, tracked per muscle group."""

    __mapper_args__ = {"polymorphic_identity": "pmr"}

    completed_groups: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    total_groups: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("completed_groups", [])
        super().__init__(**kwargs)

    @property
    def completion_rate(self) -> float:
        if not self.total_groups:
            return 0.0
        return len(self.completed_groups or []) / self.total_groups * 100
