"""
Serenity Backend — Group Session Routes
=======================================

What:  Schedule, join and run group meditations, and chat inside them.
How:   Host-only actions (start, cancel, end) answer 403 for anyone else;
       invalid lifecycle moves answer 400.
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
from serenity.schemas.social import (
    ChatMessageCreate,
    ChatMessageResponse,
    GroupSessionComplete,
    GroupSessionCreate,
    GroupSessionResponse,
    ParticipantDetail,
)
from serenity.services.auth_service import get_current_user
from serenity.services.chat_service import chat_service
from serenity.services.group_session_service import group_session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/group-sessions", tags=["Group Sessions"])

_errors = {
    400: {"description": "Invalid state or participation", "model": ErrorResponse},
    403: {"description": "Not allowed for this user", "model": ErrorResponse},
    404: {"description": "Group session not found", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=GroupSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Scheduled time in the past", "model": ErrorResponse}},
    summary="Schedule a group session",
)
async def create_session(
    payload: GroupSessionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.create_session(db, user, payload.model_dump())


@router.get("/upcoming", response_model=List[GroupSessionResponse], summary="Upcoming sessions I can join")
async def upcoming_sessions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[GroupSessionResponse]:
    return await group_session_service.get_upcoming_sessions(db, user)


@router.get("/mine", response_model=List[GroupSessionResponse], summary="Sessions I host or joined")
async def my_sessions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[GroupSessionResponse]:
    return await group_session_service.get_user_sessions(db, user)


@router.get("/{session_id}", response_model=GroupSessionResponse, responses=_errors)
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.get_session(db, session_id)


@router.post("/{session_id}/join", response_model=GroupSessionResponse, responses=_errors)
async def join_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.join_session(db, user, session_id)


@router.post("/{session_id}/start", response_model=GroupSessionResponse, responses=_errors)
async def start_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.start_session(db, user, session_id)


@router.post("/{session_id}/complete", response_model=GroupSessionResponse, responses=_errors)
async def complete_session(
    session_id: UUID,
    payload: Optional[GroupSessionComplete] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    mood_after = payload.mood_after if payload else None
    return await group_session_service.complete_session(db, user, session_id, mood_after=mood_after)


@router.post("/{session_id}/leave", response_model=GroupSessionResponse, responses=_errors)
async def leave_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.leave_session(db, user, session_id)


@router.post("/{session_id}/cancel", response_model=GroupSessionResponse, responses=_errors)
async def cancel_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.cancel_session(db, user, session_id)


@router.post("/{session_id}/end", response_model=GroupSessionResponse, responses=_errors)
async def end_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GroupSessionResponse:
    return await group_session_service.end_session(db, user, session_id)


# ── Chat ──────────────────────────────────────────────────────────────────
@router.get("/{session_id}/participants", response_model=List[ParticipantDetail], responses=_errors)
async def session_participants(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ParticipantDetail]:
    return await chat_service.get_session_participants(db, session_id)


@router.get(
    "/{session_id}/messages",
    response_model=List[ChatMessageResponse],
    responses=_errors,
    summary="Chat history, newest first",
)
async def session_messages(
    session_id: UUID,
    before: Optional[datetime] = Query(default=None, description="Only messages older than this"),
    limit: int = Query(default=50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ChatMessageResponse]:
    return await chat_service.get_session_messages(db, user, session_id, before=before, limit=limit)


@router.post(
    "/{session_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
    summary="Post a chat message",
)
async def post_message(
    session_id: UUID,
    payload: ChatMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ChatMessageResponse:
    return await chat_service.add_message(db, user, session_id, payload.content)
