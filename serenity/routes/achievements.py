"""Achievement progress and points routes."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.achievement import (
    AchievementResponse,
    PointsHistoryResponse,
    UserPointsResponse,
)
from serenity.schemas.common import ErrorResponse
from serenity.services.achievement_service import achievement_service
from serenity.services.auth_service import get_current_user
from serenity.services.points_service import points_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/achievements", tags=["Achievements"])


@router.get(
    "",
    response_model=List[AchievementResponse],
    summary="All my achievements",
    description="Every achievement type with current progress. Missing rows are created on first read.",
)
async def list_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[AchievementResponse]:
    return await achievement_service.get_user_achievements(db, user)


@router.get("/completed", response_model=List[AchievementResponse], summary="My completed achievements")
async def completed_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[AchievementResponse]:
    return await achievement_service.get_completed_achievements(db, user)


@router.get("/points", response_model=UserPointsResponse, summary="My point totals")
async def my_points(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserPointsResponse:
    totals = await points_service.get_points(db, user.id)
    return UserPointsResponse(
        total=totals.total,
        achievements=totals.achievements,
        streaks=totals.streaks,
        recent=totals.recent,
        achievement_points=await achievement_service.get_user_points(db, user.id),
    )


@router.get("/points/history", response_model=PointsHistoryResponse, summary="My points ledger")
async def points_history(
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PointsHistoryResponse:
    history = await points_service.get_history(db, user.id, limit=limit)
    return PointsHistoryResponse(history=history)


@router.get(
    "/{achievement_id}",
    response_model=AchievementResponse,
    responses={
        403: {"description": "Achievement belongs to another user", "model": ErrorResponse},
        404: {"description": "Achievement not found", "model": ErrorResponse},
    },
)
async def get_achievement(
    achievement_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AchievementResponse:
    return await achievement_service.get_achievement(db, user, achievement_id)
