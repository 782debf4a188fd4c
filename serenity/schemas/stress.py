"""
Serenity Backend — Stress Schemas
=================================

What:  Payloads for stress assessments, the stress-level service, stress
       management sessions, stress analysis and the technique catalogue.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from serenity.schemas.session import Mood, WellnessSessionBase

StressLevelLabel = Literal["LOW", "MODERATE", "HIGH"]
TechniqueLiteral = Literal[
    "deep_breathing",
    "progressive_muscle_relaxation",
    "guided_imagery",
    "mindfulness",
    "body_scan",
    "journaling",
    "physical_exercise",
    "other",
]
TechniqueCategory = Literal["breathing", "meditation", "physical", "cognitive", "mindfulness", "social"]
TechniqueDifficulty = Literal["beginner", "intermediate", "advanced"]
TechniqueFrequency = Literal["daily", "weekly", "as-needed"]


def _check_items(values: Optional[List[str]], max_items: int, max_len: int, label: str):
    if values is None:
        return values
    if len(values) > max_items:
        raise ValueError(f"At most {max_items} {label} allowed")
    for item in values:
        if len(item) > max_len:
            raise ValueError(f"Each {label[:-1]} cannot exceed {max_len} characters")
    return values


# ══════════════════════════════════════════════════════════════════════════
# Stress Level Service
# ══════════════════════════════════════════════════════════════════════════


class StressSymptoms(BaseModel):
    """Questionnaire answers, each on a 0-10 scale. Missing answers count as 0."""
    physical: Optional[float] = Field(default=None, ge=0, le=10)
    emotional: Optional[float] = Field(default=None, ge=0, le=10)
    behavioral: Optional[float] = Field(default=None, ge=0, le=10)
    cognitive: Optional[float] = Field(default=None, ge=0, le=10)


class StressLevelResponse(BaseModel):
    level: StressLevelLabel
    score: float
    assessment_id: Optional[uuid.UUID] = None


class TechniqueRecommendation(BaseModel):
    title: str
    technique: str
    duration: int
    description: str


class StressRecommendationsResponse(BaseModel):
    level: StressLevelLabel
    recommendations: List[TechniqueRecommendation]


class StressChangeRequest(BaseModel):
    before: StressLevelLabel
    after: StressLevelLabel
    technique: str = Field(min_length=1, max_length=100)


class StressChangeResponse(BaseModel):
    before: StressLevelLabel
    after: StressLevelLabel
    technique: str
    reduction: int


class StressAnalyticsResponse(BaseModel):
    average_level: float
    trend: Literal["IMPROVING", "WORSENING", "STABLE"]
    peak_stress_times: List[str]


class StressPatternsResponse(BaseModel):
    weekday_patterns: Dict[str, float]
    time_of_day_patterns: Dict[str, float]
    common_triggers: List[str]


class PeakHoursResponse(BaseModel):
    peak_hours: List[str]


# ══════════════════════════════════════════════════════════════════════════
# Stress Assessments
# ══════════════════════════════════════════════════════════════════════════


class StressAssessmentCreate(BaseModel):
    date: Optional[datetime] = None
    stress_level: int = Field(ge=1, le=10)
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    triggers: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("physical_symptoms", "emotional_symptoms")
    @classmethod
    def validate_symptoms(cls, v):
        return _check_items(v, 10, 50, "symptoms")

    @field_validator("triggers")
    @classmethod
    def validate_triggers(cls, v):
        return _check_items(v, 5, 100, "triggers")


class StressAssessmentUpdate(BaseModel):
    stress_level: Optional[int] = Field(default=None, ge=1, le=10)
    physical_symptoms: Optional[List[str]] = None
    emotional_symptoms: Optional[List[str]] = None
    triggers: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("physical_symptoms", "emotional_symptoms")
    @classmethod
    def validate_symptoms(cls, v):
        return _check_items(v, 10, 50, "symptoms")

    @field_validator("triggers")
    @classmethod
    def validate_triggers(cls, v):
        return _check_items(v, 5, 100, "triggers")


class StressAssessmentResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: datetime
    stress_level: int
    stress_category: str
    physical_symptoms: List[str]
    emotional_symptoms: List[str]
    triggers: List[str]
    notes: Optional[str] = None
    score: Optional[float] = None
    source: str

    model_config = {"from_attributes": True}


class AverageStressResponse(BaseModel):
    average: float
    days: int


# ══════════════════════════════════════════════════════════════════════════
# Stress Management Sessions
# ══════════════════════════════════════════════════════════════════════════


class StressManagementSessionCreate(BaseModel):
    technique: TechniqueLiteral
    duration: int = Field(ge=0, le=720)
    stress_level_before: int = Field(ge=1, le=10)
    mood_before: Optional[Mood] = None
    triggers: List[str] = Field(default_factory=list)
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("triggers")
    @classmethod
    def validate_triggers(cls, v):
        return _check_items(v, 5, 100, "triggers")

    @field_validator("physical_symptoms", "emotional_symptoms")
    @classmethod
    def validate_symptoms(cls, v):
        return _check_items(v, 10, 50, "symptoms")


class StressManagementComplete(BaseModel):
    stress_level_after: Optional[int] = Field(default=None, ge=1, le=10)
    mood_after: Optional[Mood] = None
    effectiveness: Optional[int] = Field(default=None, ge=1, le=5)


class SessionFeedback(BaseModel):
    effectiveness_rating: int = Field(ge=1, le=5)
    stress_reduction_rating: int = Field(ge=1, le=5)
    comments: Optional[str] = Field(default=None, max_length=500)
    improvements: List[str] = Field(default_factory=list, max_length=5)


class StressManagementSessionResponse(WellnessSessionBase):
    technique: Optional[str] = None
    triggers: List[str] = Field(default_factory=list)
    physical_symptoms: List[str] = Field(default_factory=list)
    emotional_symptoms: List[str] = Field(default_factory=list)
    effectiveness: Optional[int] = None
    feedback: Optional[SessionFeedback] = None
    stress_reduction: int = 0


# ══════════════════════════════════════════════════════════════════════════
# Stress Analysis
# ══════════════════════════════════════════════════════════════════════════


class NamedCount(BaseModel):
    name: str
    count: int


class PeakStressTime(BaseModel):
    hour: int
    average_stress: float
    assessment_count: int
    time_of_day: str


class StressAnalysisResponse(BaseModel):
    average_stress_level: float
    stress_trend: Literal["IMPROVING", "WORSENING", "STABLE", "FLUCTUATING", "INSUFFICIENT_DATA"]
    common_triggers: List[NamedCount]
    common_symptoms: List[NamedCount]
    peak_stress_times: List[PeakStressTime]
    insights: List[str]


class TriggerStat(BaseModel):
    trigger: str
    count: int
    average_stress: float


# ══════════════════════════════════════════════════════════════════════════
# Technique Catalogue
# ══════════════════════════════════════════════════════════════════════════


class StressTechniqueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    category: TechniqueCategory
    difficulty: TechniqueDifficulty = "beginner"
    duration_minutes: int = Field(ge=1, le=120)
    steps: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    effectiveness_rating: float = Field(default=3, ge=1, le=5)
    recommended_frequency: TechniqueFrequency = "as-needed"


class StressTechniqueUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    category: Optional[TechniqueCategory] = None
    difficulty: Optional[TechniqueDifficulty] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=120)
    steps: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    effectiveness_rating: Optional[float] = Field(default=None, ge=1, le=5)
    recommended_frequency: Optional[TechniqueFrequency] = None


class StressTechniqueResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    category: str
    difficulty: str
    duration_minutes: int
    steps: List[str]
    benefits: List[str]
    tags: List[str]
    effectiveness_rating: float
    recommended_frequency: str

    model_config = {"from_attributes": True}
