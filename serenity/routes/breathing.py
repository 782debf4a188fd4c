"""Breathing patterns and paced breathing sessions."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.session import (
    BreathingEffectivenessResponse,
    BreathingPatternResponse,
    BreathingSessionComplete,
    BreathingSessionCreate,
    BreathingSessionResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.breathing_service import breathing_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/breathing", tags=["Breathing"])


@router.get("/patterns", response_model=List[BreathingPatternResponse], summary="Available patterns")
async def list_patterns(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BreathingPatternResponse]:
    return await breathing_service.list_patterns(db)


@router.get(
    "/patterns/{name}",
    response_model=BreathingPatternResponse,
    responses={404: {"description": "Breathing pattern not found", "model": ErrorResponse}},
)
async def get_pattern(
    name: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BreathingPatternResponse:
    return await breathing_service.get_pattern(db, name)


@router.post(
    "/sessions",
    response_model=BreathingSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid pattern", "model": ErrorResponse}},
    summary="Start a breathing session",
)
async def start_session(
    payload: BreathingSessionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BreathingSessionResponse:
    return await breathing_service.start_session(db, user, payload.pattern_name, payload.stress_level_before)


@router.post(
    "/sessions/{session_id}/complete",
    response_model=BreathingSessionResponse,
    responses={
        400: {"description": "Session already completed", "model": ErrorResponse},
        403: {"description": "Session belongs to another user", "model": ErrorResponse},
        404: {"description": "Session not found", "model": ErrorResponse},
    },
    summary="Complete a breathing session",
)
async def complete_session(
    session_id: UUID,
    payload: BreathingSessionComplete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BreathingSessionResponse:
    return await breathing_service.complete_session(
        db, user, session_id, payload.completed_cycles, payload.stress_level_after
    )


@router.get("/sessions", response_model=List[BreathingSessionResponse], summary="My breathing sessions")
async def list_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BreathingSessionResponse]:
    return await breathing_service.get_user_sessions(db, user, limit=limit)


@router.get("/effectiveness", response_model=BreathingEffectivenessResponse, summary="Stress reduction summary")
async def effectiveness(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BreathingEffectivenessResponse:
    return await breathing_service.get_effectiveness(db, user)
