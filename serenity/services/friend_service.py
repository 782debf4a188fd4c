"""
Serenity Backend — Friend Service
=================================

What:  Friend requests, friendships and blocks.
How:   A friendship is a FriendRequest in `accepted` status; lookups check
       both directions. Blocking removes every request between the two users
       in either direction.

Request rules (checked in this order):
    recipient is the sender         → "Cannot send friend request to yourself"
    recipient unknown               → 404
    block in either direction       → "Cannot send friend request to this user"
    already friends                 → "Users are already friends"
    pending request either way      → "Friend request already exists"
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.exceptions import AuthorizationError, NotFoundError, ValidationError
from serenity.models.social import FriendRequest, FriendRequestStatus, UserBlock
from serenity.models.user import User
from serenity.services.achievement_service import achievement_service
from serenity.services.notification_service import notification_service

logger = logging.getLogger(__name__)


def _between(a: uuid.UUID, b: uuid.UUID):
    return or_(
        and_(FriendRequest.requester_id == a, FriendRequest.recipient_id == b),
        and_(FriendRequest.requester_id == b, FriendRequest.recipient_id == a),
    )


class FriendService:
    # ── Lookups ───────────────────────────────────────────────────────────
    async def _request_between(
        self, db: AsyncSession, a: uuid.UUID, b: uuid.UUID, status: str
    ) -> Optional[FriendRequest]:
        result = await db.execute(
            select(FriendRequest).where(_between(a, b), FriendRequest.status == status).limit(1)
        )
        return result.scalar_one_or_none()

    async def is_blocked(self, db: AsyncSession, a: uuid.UUID, b: uuid.UUID) -> bool:
        """True if either user has blocked the other."""
        result = await db.execute(
            select(UserBlock.id).where(
                or_(
                    and_(UserBlock.blocker_id == a, UserBlock.blocked_id == b),
                    and_(UserBlock.blocker_id == b, UserBlock.blocked_id == a),
                )
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def are_friends(self, db: AsyncSession, a: uuid.UUID, b: uuid.UUID) -> bool:
        return await self._request_between(db, a, b, FriendRequestStatus.ACCEPTED) is not None

    async def friend_ids(self, db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
        """Ids of everyone with an accepted request to or from `user_id`."""
        result = await db.execute(
            select(FriendRequest).where(
                FriendRequest.status == FriendRequestStatus.ACCEPTED,
                or_(FriendRequest.requester_id == user_id, FriendRequest.recipient_id == user_id),
            )
        )
        return [r.other_party(user_id) for r in result.scalars().all()]

    # ── Requests ──────────────────────────────────────────────────────────
    async def send_friend_request(self, db: AsyncSession, user: User, recipient_id: uuid.UUID) -> FriendRequest:
        """
        Ask `recipient_id` to become friends with `user`.

        What:    Stores a pending FriendRequest and notifies the recipient.
        Who:     Called by POST /api/friends/requests.

        Raises:
            ValidationError: Self-request, a block either way, already
                             friends, or a pending request either way.
            NotFoundError:   The recipient does not exist.
        """
        if recipient_id == user.id:
            raise ValidationError("Cannot send friend request to yourself")

        recipient = await db.get(User, recipient_id)
        if recipient is None:
            raise NotFoundError(resource="user", resource_id=str(recipient_id))

        if await self.is_blocked(db, user.id, recipient_id):
            raise ValidationError("Cannot send friend request to this user")
        if await self.are_friends(db, user.id, recipient_id):
            raise ValidationError("Users are already friends")
        if await self._request_between(db, user.id, recipient_id, FriendRequestStatus.PENDING):
            raise ValidationError("Friend request already exists")

        request = FriendRequest(requester_id=user.id, recipient_id=recipient_id)
        db.add(request)
        await db.flush()

        await notification_service.create_notification(
            db,
            recipient_id,
            "friend_request",
            "New friend request",
            f"{user.username} sent you a friend request",
            {"request_id": str(request.id), "requester_id": str(user.id)},
        )
        logger.info("Friend request %s: %s -> %s", request.id, user.id, recipient_id)
        return request

    async def _get_incoming(self, db: AsyncSession, user: User, request_id: uuid.UUID) -> FriendRequest:
        request = await db.get(FriendRequest, request_id)
        if request is None:
            raise NotFoundError(resource="friend request", resource_id=str(request_id))
        if request.recipient_id != user.id:
            raise AuthorizationError("Not authorized")
        if request.status != FriendRequestStatus.PENDING:
            raise ValidationError(f"Friend request already {request.status}")
        return request

    async def accept_friend_request(self, db: AsyncSession, user: User, request_id: uuid.UUID) -> FriendRequest:
        """
        Accept a pending request addressed to `user`.

        What:    Marks the request accepted, notifies the requester, and
                 counts one zen_network friend for both sides.
        Raises:
            NotFoundError:      Unknown request
            AuthorizationError: `user` is not the recipient
            ValidationError:    Request is no longer pending
        """
        request = await self._get_incoming(db, user, request_id)
        request.status = FriendRequestStatus.ACCEPTED
        await db.flush()

        await notification_service.create_notification(
            db,
            request.requester_id,
            "friend_accepted",
            "Friend request accepted",
            f"{user.username} accepted your friend request",
            {"friend_id": str(user.id)},
        )
        await achievement_service.increment_achievement(db, request.requester_id, "zen_network")
        await achievement_service.increment_achievement(db, request.recipient_id, "zen_network")
        return request

    async def reject_friend_request(self, db: AsyncSession, user: User, request_id: uuid.UUID) -> FriendRequest:
        request = await self._get_incoming(db, user, request_id)
        request.status = FriendRequestStatus.REJECTED
        await db.flush()
        return request

    async def get_pending_requests(self, db: AsyncSession, user: User) -> List[FriendRequest]:
        result = await db.execute(
            select(FriendRequest)
            .where(
                FriendRequest.recipient_id == user.id,
                FriendRequest.status == FriendRequestStatus.PENDING,
            )
            .order_by(FriendRequest.created_at.desc())
        )
        return list(result.scalars().all())

    # ── Friends ───────────────────────────────────────────────────────────
    async def get_friend_list(self, db: AsyncSession, user: User) -> List[User]:
        ids = await self.friend_ids(db, user.id)
        if not ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(ids)).order_by(User.username.asc()))
        return list(result.scalars().all())

    async def remove_friend(self, db: AsyncSession, user: User, friend_id: uuid.UUID) -> None:
        """Delete the accepted request linking the two users. Raises ValidationError if none."""
        friendship = await self._request_between(db, user.id, friend_id, FriendRequestStatus.ACCEPTED)
        if friendship is None:
            raise ValidationError("Users are not friends")
        await db.delete(friendship)
        await db.flush()

    # ── Blocks ────────────────────────────────────────────────────────────
    async def block_user(self, db: AsyncSession, user: User, target_id: uuid.UUID) -> UserBlock:
        """
        Block `target_id` for `user`. Blocking twice is a no-op.

        What:    Creates the UserBlock and deletes every friend request and
                 friendship between the two users, in both directions.
        Why:     A blocked user must not stay a friend or be able to send a
                 new request.
        """
        if target_id == user.id:
            raise ValidationError("Cannot block yourself")
        if await db.get(User, target_id) is None:
            raise NotFoundError(resource="user", resource_id=str(target_id))

        existing = await db.execute(
            select(UserBlock).where(UserBlock.blocker_id == user.id, UserBlock.blocked_id == target_id)
        )
        block = existing.scalar_one_or_none()
        if block is None:
            block = UserBlock(blocker_id=user.id, blocked_id=target_id)
            db.add(block)

        await db.execute(delete(FriendRequest).where(_between(user.id, target_id)))
        await db.flush()
        logger.info("User %s blocked %s", user.id, target_id)
        return block

    async def unblock_user(self, db: AsyncSession, user: User, target_id: uuid.UUID) -> None:
        result = await db.execute(
            select(UserBlock).where(UserBlock.blocker_id == user.id, UserBlock.blocked_id == target_id)
        )
        block = result.scalar_one_or_none()
        if block is None:
            raise NotFoundError(resource="block", message="User is not blocked")
        await db.delete(block)
        await db.flush()

    async def get_blocked_users(self, db: AsyncSession, user: User) -> List[User]:
        result = await db.execute(
            select(User)
            .join(UserBlock, UserBlock.blocked_id == User.id)
            .where(UserBlock.blocker_id == user.id)
            .order_by(User.username.asc())
        )
        return list(result.scalars().all())


friend_service = FriendService()
