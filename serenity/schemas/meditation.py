"""Meditation catalogue schemas."""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

MeditationCategory = Literal[
    "mindfulness", "focus", "sleep", "stress", "anxiety", "energy", "gratitude", "other"
]


class MeditationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    duration: int = Field(ge=1, le=180, description="Length in minutes")
    category: MeditationCategory = "other"
    audio_url: Optional[str] = Field(default=None, max_length=500)
    tags: List[str] = Field(default_factory=list)


class MeditationUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    duration: Optional[int] = Field(default=None, ge=1, le=180)
    category: Optional[MeditationCategory] = None
    audio_url: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None


class MeditationResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    duration: int
    category: str
    audio_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    author_id: Optional[uuid.UUID] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MeditationListResponse(BaseModel):
    meditations: List[MeditationResponse]
    total: int
    page: int
    total_pages: int
