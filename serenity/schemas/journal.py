"""Journal schemas."""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

JournalMood = Literal["very-negative", "negative", "neutral", "positive", "very-positive"]


class JournalCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=100)
    content: str = Field(min_length=1, max_length=10000)
    mood: Optional[JournalMood] = None
    tags: List[str] = Field(default_factory=list)
    meditation_id: Optional[uuid.UUID] = None
    is_private: bool = True


class JournalUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=100)
    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    mood: Optional[JournalMood] = None
    tags: Optional[List[str]] = None
    is_private: Optional[bool] = None


class JournalResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: Optional[str] = None
    content: str
    mood: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    meditation_id: Optional[uuid.UUID] = None
    is_private: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JournalListResponse(BaseModel):
    entries: List[JournalResponse]
    total: int
    page: int
    total_pages: int


class MoodSummaryResponse(BaseModel):
    counts: Dict[str, int]
    total: int
