"""
Serenity Backend — Meditation Catalogue Routes
==============================================

What:  Browse, author and start catalogue meditations.
How:   Listing and detail are public; writes need a token and only the author
       may change or delete an entry.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.meditation import (
    MeditationCreate,
    MeditationListResponse,
    MeditationResponse,
    MeditationUpdate,
)
from serenity.schemas.session import MeditationSessionResponse
from serenity.services.auth_service import get_current_user
from serenity.services.meditation_service import meditation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meditations", tags=["Meditations"])


@router.get(
    "",
    response_model=MeditationListResponse,
    summary="List meditations",
    description="Active catalogue entries, newest first. Filter by category or search title/description.",
)
async def list_meditations(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationListResponse:
    return await meditation_service.list(db, category=category, search=search, page=page, limit=limit)


@router.get(
    "/{meditation_id}",
    response_model=MeditationResponse,
    responses={404: {"description": "Meditation not found", "model": ErrorResponse}},
    summary="Get a meditation",
)
async def get_meditation(
    meditation_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> MeditationResponse:
    return await meditation_service.get(db, meditation_id)


@router.post(
    "",
    response_model=MeditationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a meditation",
)
async def create_meditation(
    payload: MeditationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationResponse:
    return await meditation_service.create(db, user, payload.model_dump())


@router.put(
    "/{meditation_id}",
    response_model=MeditationResponse,
    responses={
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Meditation not found", "model": ErrorResponse},
    },
    summary="Update a meditation",
)
async def update_meditation(
    meditation_id: UUID,
    payload: MeditationUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationResponse:
    return await meditation_service.update(db, user, meditation_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{meditation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Meditation not found", "model": ErrorResponse},
    },
    summary="Delete a meditation",
)
async def delete_meditation(
    meditation_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await meditation_service.delete(db, user, meditation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{meditation_id}/start",
    response_model=MeditationSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Meditation inactive or a session is already active", "model": ErrorResponse},
        404: {"description": "Meditation not found", "model": ErrorResponse},
    },
    summary="Start a session from a meditation",
)
async def start_meditation(
    meditation_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeditationSessionResponse:
    return await meditation_service.start(db, user, meditation_id)
