"""
Serenity Backend — Stress Management Routes
===========================================

What:  Questionnaire scoring, technique recommendations, stress analytics and
       stress management sessions.

    /assess, /recommendations, /stress-change      stress level service
    /history, /analytics, /patterns, /peak-hours   last 30 assessments
    /analysis, /triggers                           longer-range analysis
    /sessions...                                   technique sessions
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.stress import (
    PeakHoursResponse,
    SessionFeedback,
    StressAnalysisResponse,
    StressAnalyticsResponse,
    StressAssessmentResponse,
    StressChangeRequest,
    StressChangeResponse,
    StressLevelLabel,
    StressLevelResponse,
    StressManagementComplete,
    StressManagementSessionCreate,
    StressManagementSessionResponse,
    StressPatternsResponse,
    StressRecommendationsResponse,
    StressSymptoms,
    TriggerStat,
)
from serenity.services.auth_service import get_current_user
from serenity.services.stress_analysis_service import stress_analysis_service
from serenity.services.stress_management_service import stress_management_service
from serenity.services.stress_session_service import stress_session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stress-management", tags=["Stress Management"])

_owned = {
    403: {"description": "Session belongs to another user", "model": ErrorResponse},
    404: {"description": "Session not found", "model": ErrorResponse},
}


# ── Stress level ──────────────────────────────────────────────────────────


@router.post(
    "/assess",
    response_model=StressLevelResponse,
    summary="Score a stress questionnaire",
    description="Weighted score of four 0-10 answers, mapped to LOW / MODERATE / HIGH and stored.",
)
async def assess(
    payload: StressSymptoms,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressLevelResponse:
    return await stress_management_service.assess_stress_level(db, user, payload.model_dump())


@router.get("/recommendations", response_model=StressRecommendationsResponse, summary="Technique recommendations")
async def recommendations(
    level: Optional[StressLevelLabel] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressRecommendationsResponse:
    return await stress_management_service.get_recommendations(db, user, level)


@router.post("/stress-change", response_model=StressChangeResponse, summary="Record a before/after change")
async def stress_change(
    payload: StressChangeRequest,
    user: User = Depends(get_current_user),
) -> StressChangeResponse:
    return stress_management_service.record_stress_change(user, payload.before, payload.after, payload.technique)


@router.get("/history", response_model=List[StressAssessmentResponse], summary="Last 30 assessments")
async def history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressAssessmentResponse]:
    return await stress_management_service.get_stress_history(db, user)


@router.get("/analytics", response_model=StressAnalyticsResponse, summary="Average, trend and peak times")
async def analytics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressAnalyticsResponse:
    return await stress_management_service.get_stress_analytics(db, user)


@router.get("/patterns", response_model=StressPatternsResponse, summary="Weekday and time-of-day patterns")
async def patterns(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressPatternsResponse:
    return await stress_management_service.get_stress_patterns(db, user)


@router.get("/peak-hours", response_model=PeakHoursResponse, summary="Hours with the most stress")
async def peak_hours(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PeakHoursResponse:
    return PeakHoursResponse(peak_hours=await stress_management_service.get_peak_stress_hours(db, user))


# ── Analysis ──────────────────────────────────────────────────────────────


@router.get(
    "/analysis",
    response_model=StressAnalysisResponse,
    summary="Stress analysis over a date window",
    description="Defaults to the last 30 days. Includes trend, common triggers and symptoms, and insights.",
)
async def analysis(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressAnalysisResponse:
    return await stress_analysis_service.analyze_stress_data(db, user, start_date, end_date)


@router.get("/triggers", response_model=List[TriggerStat], summary="Triggers ranked by average stress")
async def triggers(
    limit: int = Query(default=5, ge=1, le=20),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[TriggerStat]:
    return await stress_analysis_service.identify_stress_triggers(db, user, limit=limit)


# ── Sessions ──────────────────────────────────────────────────────────────


@router.post(
    "/sessions",
    response_model=StressManagementSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a stress management session",
)
async def start_session(
    payload: StressManagementSessionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressManagementSessionResponse:
    return await stress_session_service.start_session(db, user, payload.model_dump())


@router.get("/sessions", response_model=List[StressManagementSessionResponse], summary="My stress sessions")
async def list_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressManagementSessionResponse]:
    return await stress_session_service.get_user_sessions(db, user, limit=limit)


@router.post(
    "/sessions/{session_id}/complete",
    response_model=StressManagementSessionResponse,
    responses={400: {"description": "Invalid state transition", "model": ErrorResponse}, **_owned},
    summary="Complete a stress session",
)
async def complete_session(
    session_id: UUID,
    payload: StressManagementComplete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressManagementSessionResponse:
    return await stress_session_service.complete_session(
        db,
        user,
        session_id,
        stress_level_after=payload.stress_level_after,
        mood_after=payload.mood_after,
        effectiveness=payload.effectiveness,
    )


@router.post(
    "/sessions/{session_id}/feedback",
    response_model=StressManagementSessionResponse,
    responses={400: {"description": "Session not completed or already rated", "model": ErrorResponse}, **_owned},
    summary="Rate a completed stress session",
)
async def add_feedback(
    session_id: UUID,
    payload: SessionFeedback,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StressManagementSessionResponse:
    return await stress_session_service.add_feedback(db, user, session_id, payload.model_dump())
