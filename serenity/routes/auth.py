"""
Serenity Backend — Auth Route Handlers
======================================

What:  Registration, login, token refresh and the current-user lookup.
How:   Register and login are public; refresh and /me need a bearer token.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from serenity.schemas.common import ErrorResponse
from serenity.services.auth_service import auth_service, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "User already exists or invalid input", "model": ErrorResponse},
    },
    summary="Create an account",
    description="Registers a new user and returns a bearer token.",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.register(db, payload.username, payload.email, payload.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.login(db, payload.email, payload.password)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Issue a fresh token",
)
async def refresh(user: User = Depends(get_current_user)) -> AuthResponse:
    return await auth_service.refresh_token(user)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user",
)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return user
