"""Progressive muscle relaxation routes."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.session import (
    MuscleGroupResponse,
    PMREffectivenessResponse,
    PMRProgressRequest,
    PMRSessionComplete,
    PMRSessionCreate,
    PMRSessionResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.pmr_service import pmr_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pmr", tags=["PMR"])

_owned = {
    400: {"description": "Invalid muscle group or session state", "model": ErrorResponse},
    403: {"description": "Session belongs to another user", "model": ErrorResponse},
    404: {"description": "Session not found", "model": ErrorResponse},
}


@router.get("/muscle-groups", response_model=List[MuscleGroupResponse], summary="Muscle groups in order")
async def muscle_groups(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MuscleGroupResponse]:
    return await pmr_service.get_muscle_groups(db)


@router.post(
    "/sessions",
    response_model=PMRSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a PMR session",
)
async def start_session(
    payload: PMRSessionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PMRSessionResponse:
    return await pmr_service.start_session(db, user, payload.stress_level_before)


@router.post("/sessions/{session_id}/progress", response_model=PMRSessionResponse, responses=_owned)
async def update_progress(
    session_id: UUID,
    payload: PMRProgressRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PMRSessionResponse:
    return await pmr_service.update_progress(db, user, session_id, payload.muscle_group)


@router.post("/sessions/{session_id}/complete", response_model=PMRSessionResponse, responses=_owned)
async def complete_session(
    session_id: UUID,
    payload: PMRSessionComplete,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PMRSessionResponse:
    return await pmr_service.complete_session(
        db, user, session_id, payload.completed_groups, payload.stress_level_after
    )


@router.get("/sessions", response_model=List[PMRSessionResponse], summary="My PMR sessions")
async def list_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PMRSessionResponse]:
    return await pmr_service.get_user_sessions(db, user, limit=limit)


@router.get("/effectiveness", response_model=PMREffectivenessResponse, summary="Stress reduction summary")
async def effectiveness(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PMREffectivenessResponse:
    return await pmr_service.get_effectiveness(db, user)
