"""Friends, friend requests and blocks."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse, MessageResponse
from serenity.schemas.social import (
    BlockedUsersResponse,
    FriendListResponse,
    FriendRequestCreate,
    FriendRequestResponse,
)
from serenity.services.auth_service import get_current_user
from serenity.services.friend_service import friend_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/friends", tags=["Friends"])

_request_errors = {
    400: {"description": "Request is not pending", "model": ErrorResponse},
    403: {"description": "Only the recipient can respond", "model": ErrorResponse},
    404: {"description": "Request not found", "model": ErrorResponse},
}


@router.get("", response_model=FriendListResponse, summary="My friends")
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendListResponse:
    return FriendListResponse(friends=await friend_service.get_friend_list(db, user))


@router.get("/requests", response_model=List[FriendRequestResponse], summary="Incoming pending requests")
async def pending_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FriendRequestResponse]:
    return await friend_service.get_pending_requests(db, user)


@router.post(
    "/requests",
    response_model=FriendRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Self, blocked, already friends or duplicate request", "model": ErrorResponse},
        404: {"description": "Recipient not found", "model": ErrorResponse},
    },
    summary="Send a friend request",
)
async def send_request(
    payload: FriendRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendRequestResponse:
    return await friend_service.send_friend_request(db, user, payload.recipient_id)


@router.post("/requests/{request_id}/accept", response_model=FriendRequestResponse, responses=_request_errors)
async def accept_request(
    request_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendRequestResponse:
    return await friend_service.accept_friend_request(db, user, request_id)


@router.post("/requests/{request_id}/reject", response_model=FriendRequestResponse, responses=_request_errors)
async def reject_request(
    request_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendRequestResponse:
    return await friend_service.reject_friend_request(db, user, request_id)


@router.get("/blocked", response_model=BlockedUsersResponse, summary="Users I have blocked")
async def blocked_users(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BlockedUsersResponse:
    return BlockedUsersResponse(blocked=await friend_service.get_blocked_users(db, user))


@router.post(
    "/block/{user_id}",
    response_model=MessageResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Block a user",
    description="Also removes any friendship or pending request between the two users.",
)
async def block_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await friend_service.block_user(db, user, user_id)
    return MessageResponse(message="User blocked")


@router.delete(
    "/block/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "User is not blocked", "model": ErrorResponse}},
)
async def unblock_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await friend_service.unblock_user(db, user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{friend_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"description": "Users are not friends", "model": ErrorResponse}},
)
async def remove_friend(
    friend_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await friend_service.remove_friend(db, user, friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
