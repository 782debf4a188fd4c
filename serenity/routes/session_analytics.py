"""Per-session analytics: history, totals and mood improvement."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.analytics import (
    MoodImprovementResponse,
    SessionHistoryResponse,
    SessionStatsResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.session_analytics_service import session_analytics_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session-analytics", tags=["Session Analytics"])


@router.get("/history", response_model=SessionHistoryResponse, summary="My analysed sessions")
async def history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionHistoryResponse:
    return await session_analytics_service.get_user_session_history(db, user, page=page, limit=limit)


@router.get("/stats", response_model=SessionStatsResponse, summary="Totals over an optional window")
async def stats(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionStatsResponse:
    return await session_analytics_service.get_user_stats(db, user, start=start_date, end=end_date)


@router.get("/mood-stats", response_model=MoodImprovementResponse, summary="How often sessions lift my mood")
async def mood_stats(
    days: int = Query(default=30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MoodImprovementResponse:
    return await session_analytics_service.get_mood_improvement_stats(db, user, days=days)
