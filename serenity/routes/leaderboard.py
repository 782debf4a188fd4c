"""Leaderboards, personal rank and week-over-week progress."""

import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.analytics import LeaderboardEntry, UserRankResponse, WeeklyProgressResponse
from serenity.services.auth_service import get_current_user
from serenity.services.leaderboard_service import leaderboard_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/leaderboard",
    tags=["Leaderboard"],
    dependencies=[Depends(get_current_user)],
)

Period = Literal["daily", "weekly", "monthly", "all-time"]
Category = Literal["total", "meditation", "streak", "social"]


@router.get(
    "",
    response_model=List[LeaderboardEntry],
    summary="Leaderboard",
    description="Users ranked by points earned in the period. Cached for five minutes.",
)
async def get_leaderboard(
    period: Period = Query(default="all-time"),
    category: Category = Query(default="total"),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntry]:
    return await leaderboard_service.get_leaderboard(db, period=period, category=category, limit=limit)


@router.get("/rank", response_model=UserRankResponse, summary="My rank")
async def get_rank(
    period: Period = Query(default="all-time"),
    category: Category = Query(default="total"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserRankResponse:
    return await leaderboard_service.get_user_rank(db, user, period=period, category=category)


@router.get("/top", response_model=List[LeaderboardEntry], summary="Top achievers")
async def top_achievers(
    limit: int = Query(default=3, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntry]:
    return await leaderboard_service.get_top_achievers(db, limit=limit)


@router.get("/weekly-progress", response_model=WeeklyProgressResponse, summary="This week vs last week")
async def weekly_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WeeklyProgressResponse:
    return await leaderboard_service.get_weekly_progress(db, user)
