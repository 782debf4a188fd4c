"""
Serenity Backend — Analytics Schemas
====================================

What:  Leaderboards, recommendations, per-session analytics and cache stats.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# ── Leaderboard ───────────────────────────────────────────────────────────


class LeaderboardEntry(BaseModel):
    user_id: uuid.UUID
    username: str
    points: int
    rank: int


class UserRankResponse(BaseModel):
    rank: int
    total: int
    total_users: int


class WeeklyProgressResponse(BaseModel):
    current_week: int
    previous_week: int
    change: int
    percent_change: float


# ── Recommendations ───────────────────────────────────────────────────────


class RecommendationResponse(BaseModel):
    type: str
    title: str
    duration: int
    category: Optional[str] = None
    reason: str
    priority: int
    session_id: Optional[uuid.UUID] = None


# ── Session Analytics ─────────────────────────────────────────────────────


class SessionAnalyticsResponse(BaseModel):
    session_id: uuid.UUID
    session_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int
    duration_completed: int
    interruptions: int
    focus_score: Optional[int] = None
    mood_before: Optional[str] = None
    mood_after: Optional[str] = None
    mood_improved: bool

    model_config = {"from_attributes": True}


class SessionHistoryResponse(BaseModel):
    sessions: List[SessionAnalyticsResponse]
    total_sessions: int
    total_pages: int


class SessionStatsResponse(BaseModel):
    total_sessions: int
    total_minutes: int
    average_focus_score: float
    total_interruptions: int


class MoodImprovementResponse(BaseModel):
    total_improved: int
    total_sessions: int
    improvement_rate: float


# ── Cache Stats ───────────────────────────────────────────────────────────


class CacheStatsEntry(BaseModel):
    cache_type: str
    category: str
    hits: int
    misses: int
    sets: int
    invalidations: int
    errors: int
    avg_latency: float
    bytes_stored: int
    key_count: int
    hit_rate: float


class HitRateResponse(BaseModel):
    hit_rate: float


class CacheSnapshotResponse(BaseModel):
    timestamp: datetime
    cache_type: str
    category: str
    hits: int
    misses: int
    sets: int
    invalidations: int
    errors: int
    avg_latency: float
    bytes_stored: int
    key_count: int

    model_config = {"from_attributes": True}
