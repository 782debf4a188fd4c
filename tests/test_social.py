"""
Serenity Backend — Friends, Blocks, Group Sessions and Notifications
====================================================================

What we test:
    ✅ Friend request rules and acceptance side effects
    ✅ Blocking removes requests in both directions
    ✅ Group session joining, capacity, privacy and host controls
    ✅ Completion awards social points and closes the session
    ✅ Notification preferences suppress muted types
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from serenity.database import utcnow
from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.achievement import Achievement
from serenity.models.notification import Notification
from serenity.models.social import GroupSessionStatus, ParticipantStatus
from serenity.services.friend_service import friend_service
from serenity.services.group_session_service import GROUP_SESSION_POINTS, group_session_service
from serenity.services.notification_service import notification_service
from serenity.services.points_service import points_service


async def _notifications(db, user, type_=None) -> int:
    query = select(func.count(Notification.id)).where(Notification.user_id == user.id)
    if type_:
        query = query.where(Notification.type == type_)
    return (await db.execute(query)).scalar()


async def _progress(db, user, achievement_type) -> int:
    result = await db.execute(
        select(Achievement.progress).where(Achievement.user_id == user.id, Achievement.type == achievement_type)
    )
    return result.scalar_one()


async def _befriend(db, a, b):
    request = await friend_service.send_friend_request(db, a, b.id)
    return await friend_service.accept_friend_request(db, b, request.id)


def _schedule(**kwargs) -> dict:
    data = {"title": "Lunch sit", "scheduled_time": utcnow() + timedelta(hours=2), "duration": 20}
    data.update(kwargs)
    return data


class TestFriendRequests:
    @pytest.mark.asyncio
    async def test_send_and_accept(self, db_session, user, other_user):
        request = await friend_service.send_friend_request(db_session, user, other_user.id)
        assert await _notifications(db_session, other_user, "friend_request") == 1
        assert [r.id for r in await friend_service.get_pending_requests(db_session, other_user)] == [request.id]

        await friend_service.accept_friend_request(db_session, other_user, request.id)

        assert await friend_service.are_friends(db_session, other_user.id, user.id)
        assert [f.username for f in await friend_service.get_friend_list(db_session, user)] == ["bob"]
        assert await _notifications(db_session, user, "friend_accepted") == 1
        assert await _progress(db_session, user, "zen_network") == 1
        assert await _progress(db_session, other_user, "zen_network") == 1

    @pytest.mark.asyncio
    async def test_request_rules(self, db_session, user, other_user):
        with pytest.raises(ValidationError) as exc:
            await friend_service.send_friend_request(db_session, user, user.id)
        assert exc.value.message == "Cannot send friend request to yourself"

        await friend_service.send_friend_request(db_session, user, other_user.id)
        with pytest.raises(ValidationError) as exc:
            await friend_service.send_friend_request(db_session, other_user, user.id)
        assert exc.value.message == "Friend request already exists"

    @pytest.mark.asyncio
    async def test_already_friends(self, db_session, user, other_user):
        await _befriend(db_session, user, other_user)
        with pytest.raises(ValidationError) as exc:
            await friend_service.send_friend_request(db_session, user, other_user.id)
        assert exc.value.message == "Users are already friends"

    @pytest.mark.asyncio
    async def test_only_recipient_can_respond(self, db_session, user, other_user):
        request = await friend_service.send_friend_request(db_session, user, other_user.id)
        with pytest.raises(AuthorizationError):
            await friend_service.accept_friend_request(db_session, user, request.id)

        await friend_service.reject_friend_request(db_session, other_user, request.id)
        with pytest.raises(ValidationError) as exc:
            await friend_service.accept_friend_request(db_session, other_user, request.id)
        assert exc.value.message == "Friend request already rejected"

    @pytest.mark.asyncio
    async def test_remove_friend(self, db_session, user, other_user):
        await _befriend(db_session, user, other_user)
        await friend_service.remove_friend(db_session, other_user, user.id)
        assert not await friend_service.are_friends(db_session, user.id, other_user.id)
        with pytest.raises(ValidationError):
            await friend_service.remove_friend(db_session, user, other_user.id)


class TestBlocks:
    @pytest.mark.asyncio
    async def test_block_removes_friendship(self, db_session, user, other_user):
        await _befriend(db_session, user, other_user)
        await friend_service.block_user(db_session, other_user, user.id)

        assert not await friend_service.are_friends(db_session, user.id, other_user.id)
        assert [u.username for u in await friend_service.get_blocked_users(db_session, other_user)] == ["alice"]

        # Blocks apply in both directions.
        with pytest.raises(ValidationError) as exc:
            await friend_service.send_friend_request(db_session, user, other_user.id)
        assert exc.value.message == "Cannot send friend request to this user"

    @pytest.mark.asyncio
    async def test_unblock(self, db_session, user, other_user):
        await friend_service.block_user(db_session, user, other_user.id)
        await friend_service.unblock_user(db_session, user, other_user.id)
        assert await friend_service.get_blocked_users(db_session, user) == []

        with pytest.raises(NotFoundError):
            await friend_service.unblock_user(db_session, user, other_user.id)

    @pytest.mark.asyncio
    async def test_cannot_block_self(self, db_session, user):
        with pytest.raises(ValidationError):
            await friend_service.block_user(db_session, user, user.id)


class TestGroupSessions:
    @pytest.mark.asyncio
    async def test_cannot_schedule_in_past(self, db_session, user):
        with pytest.raises(ValidationError):
            await group_session_service.create_session(
                db_session, user, _schedule(scheduled_time=utcnow() - timedelta(minutes=1))
            )

    @pytest.mark.asyncio
    async def test_join_rules(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        session = await group_session_service.create_session(db_session, user, _schedule(max_participants=1))

        await group_session_service.join_session(db_session, other_user, session.id)
        with pytest.raises(ValidationError) as exc:
            await group_session_service.join_session(db_session, other_user, session.id)
        assert exc.value.message == "Already joined this session"

        with pytest.raises(ValidationError) as exc:
            await group_session_service.join_session(db_session, carol, session.id)
        assert exc.value.message == "Session is full"

        await group_session_service.leave_session(db_session, other_user, session.id)
        await group_session_service.join_session(db_session, carol, session.id)
        assert session.joined_count == 1

    @pytest.mark.asyncio
    async def test_private_session(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        session = await group_session_service.create_session(
            db_session, user, _schedule(is_private=True, allowed_participants=[carol.id])
        )
        with pytest.raises(AuthorizationError):
            await group_session_service.join_session(db_session, other_user, session.id)
        await group_session_service.join_session(db_session, carol, session.id)

    @pytest.mark.asyncio
    async def test_only_host_controls(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        with pytest.raises(AuthorizationError):
            await group_session_service.start_session(db_session, other_user, session.id)
        with pytest.raises(AuthorizationError):
            await group_session_service.cancel_session(db_session, other_user, session.id)

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)

        await group_session_service.start_session(db_session, user, session.id)
        assert session.status == GroupSessionStatus.IN_PROGRESS
        assert session.participant(user.id).status == ParticipantStatus.JOINED
        assert await _notifications(db_session, other_user, "group_session") == 1
        assert await _notifications(db_session, user, "group_session") == 0

        with pytest.raises(SessionStateError):
            await group_session_service.join_session(db_session, other_user, session.id)

        await group_session_service.complete_session(db_session, other_user, session.id, mood_after="calm")
        assert session.status == GroupSessionStatus.IN_PROGRESS
        assert (await points_service.get_points(db_session, other_user.id)).total == GROUP_SESSION_POINTS
        assert await _progress(db_session, other_user, "social_butterfly") == 1
        assert await _progress(db_session, other_user, "group_guide") == 0

        await group_session_service.complete_session(db_session, user, session.id)
        assert session.status == GroupSessionStatus.COMPLETED
        assert session.end_time is not None
        assert await _progress(db_session, user, "group_guide") == 1

    @pytest.mark.asyncio
    async def test_completing_with_friend(self, db_session, user, other_user):
        await _befriend(db_session, user, other_user)
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)
        await group_session_service.start_session(db_session, user, session.id)

        await group_session_service.complete_session(db_session, other_user, session.id)
        assert await _progress(db_session, other_user, "friend_zen") == 1

    @pytest.mark.asyncio
    async def test_cancel_then_end_rejected(self, db_session, user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.cancel_session(db_session, user, session.id)
        assert session.status == GroupSessionStatus.CANCELLED
        with pytest.raises(SessionStateError):
            await group_session_service.end_session(db_session, user, session.id)

    @pytest.mark.asyncio
    async def test_upcoming_visibility(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        await _befriend(db_session, user, other_user)
        public = await group_session_service.create_session(db_session, carol, _schedule(title="Open"))
        friends_only = await group_session_service.create_session(
            db_session, other_user, _schedule(title="Bob's", is_private=True)
        )
        hidden = await group_session_service.create_session(
            db_session, carol, _schedule(title="Carol's", is_private=True)
        )

        visible = {s.id for s in await group_session_service.get_upcoming_sessions(db_session, user)}
        assert public.id in visible
        assert friends_only.id in visible
        assert hidden.id not in visible

    @pytest.mark.asyncio
    async def test_user_sessions(self, db_session, user, other_user):
        hosted = await group_session_service.create_session(db_session, user, _schedule())
        joined = await group_session_service.create_session(db_session, other_user, _schedule())
        await group_session_service.join_session(db_session, user, joined.id)

        ids = {s.id for s in await group_session_service.get_user_sessions(db_session, user)}
        assert ids == {hosted.id, joined.id}


class TestNotifications:
    @pytest.mark.asyncio
    async def test_muted_type_is_suppressed(self, db_session, user):
        prefs = await notification_service.update_preferences(db_session, user, {"reminder": False, "bogus": False})
        assert prefs["reminder"] is False
        assert "bogus" not in prefs

        result = await notification_service.create_notification(db_session, user.id, "reminder", "Sit", "Time to sit")
        assert result is None
        assert await _notifications(db_session, user) == 0

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            await notification_service.create_notification(db_session, user.id, "spam", "x", "y")

    @pytest.mark.asyncio
    async def test_read_and_clear(self, db_session, user, other_user):
        first = await notification_service.create_notification(db_session, user.id, "system", "Hi", "Welcome")
        await notification_service.create_notification(db_session, user.id, "system", "Hi", "Again")
        assert await notification_service.unread_count(db_session, user) == 2

        await notification_service.mark_as_read(db_session, user, first.id)
        assert await notification_service.unread_count(db_session, user) == 1
        unread = await notification_service.list_notifications(db_session, user, unread_only=True)
        assert [n.message for n in unread] == ["Again"]

        with pytest.raises(NotFoundError):
            await notification_service.mark_as_read(db_session, other_user, first.id)

        assert await notification_service.mark_all_as_read(db_session, user) == 1
        assert await notification_service.clear_all(db_session, user) == 2
