"""Stress assessment CRUD plus latest-reading and rolling-average lookups."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.stress import (
    AverageStressResponse,
    StressAssessmentCreate,
    StressAssessmentResponse,
    StressAssessmentUpdate,
)
from serenity.services.auth_service import get_current_user
from serenity.services.stress_assessment_service import stress_assessment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stress-assessments", tags=["Stress Assessments"])

_owned = {
    403: {"description": "Assessment belongs to another user", "model": ErrorResponse},
    404: {"description": "Assessment not found", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=StressAssessmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a stress assessment",
)
async def create_assessment(
    payload: StressAssessmentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressAssessmentResponse:
    return await stress_assessment_service.create(db, user, payload.model_dump())


@router.get("", response_model=List[StressAssessmentResponse], summary="List my assessments")
async def list_assessments(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    limit: int = Query(default=30, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressAssessmentResponse]:
    return await stress_assessment_service.list(db, user, start_date=start_date, end_date=end_date, limit=limit)


@router.get(
    "/latest",
    response_model=Optional[StressAssessmentResponse],
    summary="My latest assessment",
    description="Returns null when no assessment exists.",
)
async def latest_assessment(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[StressAssessmentResponse]:
    return await stress_assessment_service.get_latest(db, user)


@router.get("/average", response_model=AverageStressResponse, summary="Average stress level")
async def average_stress(
    days: int = Query(default=30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AverageStressResponse:
    average = await stress_assessment_service.get_average_stress_level(db, user, days=days)
    return AverageStressResponse(average=average, days=days)


@router.get("/{assessment_id}", response_model=StressAssessmentResponse, responses=_owned)
async def get_assessment(
    assessment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressAssessmentResponse:
    return await stress_assessment_service.get(db, user, assessment_id)


@router.put("/{assessment_id}", response_model=StressAssessmentResponse, responses=_owned)
async def update_assessment(
    assessment_id: UUID,
    payload: StressAssessmentUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressAssessmentResponse:
    return await stress_assessment_service.update(
        db, user, assessment_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_owned)
async def delete_assessment(
    assessment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await stress_assessment_service.delete(db, user, assessment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
