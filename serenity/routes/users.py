"""User profile, password and practice statistics."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.auth import (
    PasswordChangeRequest,
    ProfileUpdateRequest,
    UserResponse,
    UserStatsResponse,
)
from serenity.schemas.common import ErrorResponse, MessageResponse
from serenity.services.auth_service import get_current_user
from serenity.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me", response_model=UserResponse, summary="Get my profile")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.get_profile(db, user)


@router.patch(
    "/me",
    response_model=UserResponse,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Update my profile",
)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_profile(
        db, user, username=payload.username, email=payload.email, preferences=payload.preferences
    )


@router.post(
    "/me/password",
    response_model=MessageResponse,
    responses={401: {"description": "Current password is incorrect", "model": ErrorResponse}},
    summary="Change my password",
)
async def change_password(
    payload: PasswordChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.change_password(db, user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password updated")


@router.get("/me/stats", response_model=UserStatsResponse, summary="My practice statistics")
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    return await user_service.get_stats(db, user)
