"""Achievement and points schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class AchievementResponse(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    description: str
    points: int
    progress: int
    target: int
    completed: bool
    completed_at: Optional[datetime] = None
    progress_percentage: int

    model_config = {"from_attributes": True}


class UserPointsResponse(BaseModel):
    total: int
    achievements: int
    streaks: int
    recent: int
    achievement_points: int

    model_config = {"from_attributes": True}


class PointsHistoryItem(BaseModel):
    date: datetime
    points: int
    source: str
    description: str

    model_config = {"from_attributes": True}


class PointsHistoryResponse(BaseModel):
    history: List[PointsHistoryItem]
