"""Journal entry routes. Entries are visible to their owner only."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.journal import (
    JournalCreate,
    JournalListResponse,
    JournalMood,
    JournalResponse,
    JournalUpdate,
    MoodSummaryResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.journal_service import journal_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/journals", tags=["Journals"])

_owned = {
    403: {"description": "Entry belongs to another user", "model": ErrorResponse},
    404: {"description": "Entry not found", "model": ErrorResponse},
}


@router.post("", response_model=JournalResponse, status_code=status.HTTP_201_CREATED, summary="Write an entry")
async def create_entry(
    payload: JournalCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JournalResponse:
    return await journal_service.create(db, user, payload.model_dump())


@router.get("", response_model=JournalListResponse, summary="List my entries")
async def list_entries(
    mood: Optional[JournalMood] = Query(default=None),
    tag: Optional[str] = Query(default=None, max_length=30),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JournalListResponse:
    return await journal_service.list(
        db, user, mood=mood, tag=tag, start_date=start_date, end_date=end_date, page=page, limit=limit
    )


@router.get("/mood-summary", response_model=MoodSummaryResponse, summary="Entries per mood")
async def mood_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MoodSummaryResponse:
    return await journal_service.mood_summary(db, user)


@router.get("/{entry_id}", response_model=JournalResponse, responses=_owned)
async def get_entry(
    entry_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JournalResponse:
    return await journal_service.get(db, user, entry_id)


@router.put("/{entry_id}", response_model=JournalResponse, responses=_owned)
async def update_entry(
    entry_id: UUID,
    payload: JournalUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JournalResponse:
    return await journal_service.update(db, user, entry_id, payload.model_dump(exclude_unset=True))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_owned)
async def delete_entry(
    entry_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await journal_service.delete(db, user, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
