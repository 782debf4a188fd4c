"""
Serenity Backend — Wellness Session Schemas
===========================================

What:  Request/response models for meditation, breathing and PMR sessions.
How:   Every response model reads straight from the ORM subclass via
       from_attributes; computed properties on the model (actual_duration,
       completion_percentage, completion_rate) are exposed as plain fields.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Mood = Literal["stressed", "anxious", "neutral", "calm", "peaceful", "energized"]
SessionStatusLiteral = Literal["active", "paused", "completed", "abandoned"]
MeditationTypeLiteral = Literal["guided", "unguided", "timed"]


class WellnessSessionBase(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    session_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int
    status: str
    mood_before: Optional[str] = None
    mood_after: Optional[str] = None
    stress_level_before: Optional[int] = None
    stress_level_after: Optional[int] = None
    notes: Optional[str] = None
    actual_duration: int = Field(description="Elapsed seconds between start and end (or now)")
    created_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Meditation Sessions
# ══════════════════════════════════════════════════════════════════════════


class MeditationSessionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: int = Field(ge=0, le=720, description="Planned length in minutes")
    meditation_type: MeditationTypeLiteral = "timed"
    guided_meditation_id: Optional[uuid.UUID] = None
    meditation_id: Optional[uuid.UUID] = None
    tags: List[str] = Field(default_factory=list)
    mood_before: Optional[Mood] = None
    stress_level_before: Optional[int] = Field(default=None, ge=0, le=10)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        for tag in v:
            if len(tag) > 30:
                raise ValueError("Tags cannot exceed 30 characters")
        return v


class MeditationSessionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class EndSessionRequest(BaseModel):
    mood_after: Optional[Mood] = None


class CompleteSessionRequest(BaseModel):
    duration_completed: Optional[int] = Field(default=None, ge=0)
    mood_after: Optional[Mood] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class MeditationSessionResponse(WellnessSessionBase):
    title: Optional[str] = None
    description: Optional[str] = None
    meditation_type: Optional[str] = None
    guided_meditation_id: Optional[uuid.UUID] = None
    meditation_id: Optional[uuid.UUID] = None
    tags: List[str] = Field(default_factory=list)
    duration_completed: int = 0
    interruptions: int = 0
    completed: bool = False
    completion_percentage: int = 0


class MeditationSessionListResponse(BaseModel):
    sessions: List[MeditationSessionResponse]
    total: int
    page: int
    total_pages: int


# ══════════════════════════════════════════════════════════════════════════
# Breathing
# ══════════════════════════════════════════════════════════════════════════


class BreathingPatternResponse(BaseModel):
    name: str
    inhale: int
    hold: int
    exhale: int
    post_exhale_hold: int
    cycles: int
    description: Optional[str] = None
    cycle_seconds: int

    model_config = {"from_attributes": True}


class BreathingSessionCreate(BaseModel):
    pattern_name: str = Field(min_length=1, max_length=50)
    stress_level_before: Optional[int] = Field(default=None, ge=0, le=10)


class BreathingSessionComplete(BaseModel):
    completed_cycles: Optional[int] = Field(default=None, ge=0)
    stress_level_after: Optional[int] = Field(default=None, ge=0, le=10)


class BreathingSessionResponse(WellnessSessionBase):
    pattern_name: Optional[str] = None
    target_cycles: Optional[int] = None
    completed_cycles: int = 0


class BreathingEffectivenessResponse(BaseModel):
    average_stress_reduction: float
    total_sessions: int
    most_effective_pattern: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Progressive Muscle Relaxation
# ══════════════════════════════════════════════════════════════════════════


class MuscleGroupResponse(BaseModel):
    name: str
    description: str
    order: int
    duration_seconds: int

    model_config = {"from_attributes": True}


class PMRSessionCreate(BaseModel):
    stress_level_before: int = Field(ge=0, le=10)


class PMRProgressRequest(BaseModel):
    muscle_group: str = Field(min_length=1, max_length=50)


class PMRSessionComplete(BaseModel):
    completed_groups: Optional[List[str]] = None
    stress_level_after: Optional[int] = Field(default=None, ge=0, le=10)


class PMRSessionResponse(WellnessSessionBase):
    completed_groups: List[str] = Field(default_factory=list)
    total_groups: Optional[int] = None
    completion_rate: float = 0.0


class PMREffectivenessResponse(BaseModel):
    average_stress_reduction: float
    total_sessions: int
    average_completion_rate: float
