"""
Serenity Backend — Meditation Session Routes
============================================

What:  Start, drive and review a user's meditation sessions.
How:   Every lifecycle action maps onto one state-machine transition of the
       session; an invalid transition is reported as 400 (error: session_error).

    POST /                 start (one active session per user)
    POST /{id}/pause       active  → paused
    POST /{id}/resume      paused  → active
    POST /{id}/interrupt   count an interruption on an active session
    POST /{id}/end         active  → completed (duration measured)
    POST /{id}/complete    active  → completed (duration reported)
    POST /{id}/abandon     active|paused → abandoned
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.session import (
    CompleteSessionRequest,
    EndSessionRequest,
    MeditationSessionCreate,
    MeditationSessionListResponse,
    MeditationSessionResponse,
    MeditationSessionUpdate,
)
from serenity.services.auth_service import get_current_user
from serenity.services.meditation_session_service import meditation_session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meditation-sessions", tags=["Meditation Sessions"])

_owned = {
    403: {"description": "Session belongs to another user", "model": ErrorResponse},
    404: {"description": "Session not found", "model": ErrorResponse},
}
_transition = {
    400: {"description": "Invalid state transition", "model": ErrorResponse},
    **_owned,
}


@router.post(
    "",
    response_model=MeditationSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "An active session already exists", "model": ErrorResponse}},
    summary="Start a meditation session",
)
async def start_session(
    payload: MeditationSessionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.start_session(db, user, payload.model_dump())


@router.get(
    "",
    response_model=MeditationSessionListResponse,
    responses={400: {"description": "Invalid sort field", "model": ErrorResponse}},
    summary="List my sessions",
)
async def list_sessions(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    meditation_type: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    sort_by: str = Query(default="start_time"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionListResponse:
    return await meditation_session_service.list_sessions(
        db,
        user,
        status=status_filter,
        meditation_type=meditation_type,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/recent", response_model=List[MeditationSessionResponse], summary="My most recent sessions")
async def recent_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MeditationSessionResponse]:
    return await meditation_session_service.get_user_sessions(db, user, limit=limit)


@router.get(
    "/active",
    response_model=Optional[MeditationSessionResponse],
    summary="My active or paused session",
    description="Returns null when no session is open.",
)
async def active_session(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[MeditationSessionResponse]:
    return await meditation_session_service.get_active_session(db, user)


@router.get("/{session_id}", response_model=MeditationSessionResponse, responses=_owned, summary="Get a session")
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.get_session(db, user, session_id)


@router.patch("/{session_id}", response_model=MeditationSessionResponse, responses=_owned, summary="Edit a session")
async def update_session(
    session_id: UUID,
    payload: MeditationSessionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.update_session(
        db, user, session_id, payload.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_owned,
    summary="Delete a session",
)
async def delete_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await meditation_session_service.delete_session(db, user, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Lifecycle ─────────────────────────────────────────────────────────────


@router.post("/{session_id}/pause", response_model=MeditationSessionResponse, responses=_transition)
async def pause_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.pause_session(db, user, session_id)


@router.post("/{session_id}/resume", response_model=MeditationSessionResponse, responses=_transition)
async def resume_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.resume_session(db, user, session_id)


@router.post("/{session_id}/abandon", response_model=MeditationSessionResponse, responses=_transition)
async def abandon_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.abandon_session(db, user, session_id)


@router.post("/{session_id}/interrupt", response_model=MeditationSessionResponse, responses=_transition)
async def interrupt_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_session_service.record_interruption(db, user, session_id)


@router.post("/{session_id}/end", response_model=MeditationSessionResponse, responses=_transition)
async def end_session(
    session_id: UUID,
    payload: Optional[EndSessionRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    mood_after = payload.mood_after if payload else None
    return await meditation_session_service.end_session(db, user, session_id, mood_after=mood_after)


@router.post(
    "/{session_id}/complete",
    response_model=MeditationSessionResponse,
    responses=_transition,
    summary="Complete a session",
    description="Completes the session and runs analytics, streak, achievements and points.",
)
async def complete_session(
    session_id: UUID,
    payload: Optional[CompleteSessionRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    payload = payload or CompleteSessionRequest()
    return await meditation_session_service.complete_session(
        db,
        user,
        session_id,
        duration_completed=payload.duration_completed,
        mood_after=payload.mood_after,
        notes=payload.notes,
    )
