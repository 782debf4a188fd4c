"""Personalized practice recommendations."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.analytics import RecommendationResponse
from serenity.services.auth_service import get_current_user
from serenity.services.recommendation_service import recommendation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.get(
    "",
    response_model=List[RecommendationResponse],
    summary="What to practise next",
    description=(
        "Combines stress level, triggers, session history, time of day, variety and "
        "stored preferences. Returns an empty list if recommendations cannot be built."
    ),
)
async def get_recommendations(
    limit: int = Query(default=3, ge=1, le=20),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[RecommendationResponse]:
    return await recommendation_service.get_personalized_recommendations(db, user, limit=limit)
