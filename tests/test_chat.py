"""
Serenity Backend — Group Session Chat Tests
===========================================

What we test:
    ✅ Only the host and joined participants may post
    ✅ Cancelled sessions accept system messages only
    ✅ History is newest first and pages with `before`
    ✅ Private session chat is hidden from outsiders
    ✅ Lifecycle actions post system messages
    ✅ Participant listing carries usernames
    ✅ The HTTP endpoints
"""

import uuid
from datetime import timedelta

import pytest

from serenity.database import utcnow
from serenity.exceptions import AuthorizationError, NotFoundError, SessionStateError, ValidationError
from serenity.models.social import ChatMessageType
from serenity.services.chat_service import chat_service
from serenity.services.group_session_service import group_session_service


def _schedule(**kwargs) -> dict:
    data = {"title": "Evening sit", "scheduled_time": utcnow() + timedelta(hours=2), "duration": 20}
    data.update(kwargs)
    return data


async def _texts(db, user, session_id, **kwargs):
    messages = await chat_service.get_session_messages(db, user, session_id, **kwargs)
    return [m.content for m in messages if m.type == ChatMessageType.TEXT]


class TestPosting:
    @pytest.mark.asyncio
    async def test_host_and_joined_participant_can_post(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)

        from_host = await chat_service.add_message(db_session, user, session.id, "Welcome")
        from_guest = await chat_service.add_message(db_session, other_user, session.id, "  Thanks  ")

        assert from_host.sender_id == user.id
        assert from_host.type == ChatMessageType.TEXT
        assert from_guest.content == "Thanks"

    @pytest.mark.asyncio
    async def test_outsider_cannot_post(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        with pytest.raises(AuthorizationError, match="not a participant"):
            await chat_service.add_message(db_session, other_user, session.id, "Hi")

    @pytest.mark.asyncio
    async def test_participant_who_left_cannot_post(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)
        await group_session_service.leave_session(db_session, other_user, session.id)
        with pytest.raises(AuthorizationError):
            await chat_service.add_message(db_session, other_user, session.id, "Still here?")

    @pytest.mark.asyncio
    async def test_cancelled_session_only_takes_system_messages(self, db_session, user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.cancel_session(db_session, user, session.id)

        with pytest.raises(SessionStateError, match="cancelled session"):
            await chat_service.add_message(db_session, user, session.id, "Anyone?")

        notice = await chat_service.add_system_message(db_session, session.id, "Rescheduled for tomorrow")
        assert notice.type == ChatMessageType.SYSTEM
        assert notice.sender_id == user.id

    @pytest.mark.asyncio
    async def test_blank_and_long_content_rejected(self, db_session, user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        with pytest.raises(ValidationError, match="required"):
            await chat_service.add_message(db_session, user, session.id, "   ")
        with pytest.raises(ValidationError, match="at most 1000"):
            await chat_service.add_message(db_session, user, session.id, "x" * 1001)

    @pytest.mark.asyncio
    async def test_unknown_session(self, db_session, user):
        with pytest.raises(NotFoundError):
            await chat_service.add_message(db_session, user, uuid.uuid4(), "Wrong id")


class TestHistory:
    @pytest.mark.asyncio
    async def test_newest_first_with_before_cursor(self, db_session, user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        base = utcnow() - timedelta(minutes=10)
        for i in range(5):
            message = await chat_service.add_message(db_session, user, session.id, f"m{i}")
            message.created_at = base + timedelta(minutes=i)
        await db_session.flush()

        first_page = await chat_service.get_session_messages(db_session, user, session.id, limit=2)
        assert [m.content for m in first_page] == ["m4", "m3"]

        second_page = await chat_service.get_session_messages(
            db_session, user, session.id, before=first_page[-1].created_at, limit=2
        )
        assert [m.content for m in second_page] == ["m2", "m1"]

        last_page = await chat_service.get_session_messages(
            db_session, user, session.id, before=second_page[-1].created_at, limit=2
        )
        assert [m.content for m in last_page] == ["m0"]

    @pytest.mark.asyncio
    async def test_private_chat_hidden_from_outsiders(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        session = await group_session_service.create_session(
            db_session, user, _schedule(is_private=True, allowed_participants=[carol.id])
        )
        await chat_service.add_message(db_session, user, session.id, "Just us")

        with pytest.raises(AuthorizationError):
            await chat_service.get_session_messages(db_session, other_user, session.id)
        assert await _texts(db_session, carol, session.id) == ["Just us"]

    @pytest.mark.asyncio
    async def test_public_chat_readable_by_anyone(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await chat_service.add_message(db_session, user, session.id, "Open to all")
        assert await _texts(db_session, other_user, session.id) == ["Open to all"]

    @pytest.mark.asyncio
    async def test_lifecycle_posts_system_messages(self, db_session, user, other_user):
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)
        await group_session_service.start_session(db_session, user, session.id)
        await group_session_service.end_session(db_session, user, session.id)

        messages = await chat_service.get_session_messages(db_session, user, session.id)
        system = sorted(m.content for m in messages if m.type == ChatMessageType.SYSTEM)
        assert system == ["Session ended", "Session started", "bob joined the session"]
        assert all(m.sender_id == user.id for m in messages)


class TestParticipants:
    @pytest.mark.asyncio
    async def test_usernames_and_statuses(self, db_session, user, other_user, make_user):
        carol = await make_user("carol")
        session = await group_session_service.create_session(db_session, user, _schedule())
        await group_session_service.join_session(db_session, other_user, session.id)
        await group_session_service.join_session(db_session, carol, session.id)
        await group_session_service.leave_session(db_session, carol, session.id)

        participants = await chat_service.get_session_participants(db_session, session.id)
        assert {p["username"]: p["status"] for p in participants} == {"bob": "joined", "carol": "left"}


class TestChatApi:
    @pytest.mark.asyncio
    async def test_post_and_read(self, test_client, register):
        alice, _ = await register("alice")
        bob, _ = await register("bob")
        scheduled = (utcnow() + timedelta(hours=1)).isoformat()
        created = await test_client.post(
            "/api/group-sessions",
            json={"title": "Sit", "scheduled_time": scheduled, "duration": 15},
            headers=alice,
        )
        session_id = created.json()["id"]

        outsider = await test_client.post(
            f"/api/group-sessions/{session_id}/messages", json={"content": "Hi"}, headers=bob
        )
        assert outsider.status_code == 403

        await test_client.post(f"/api/group-sessions/{session_id}/join", headers=bob)
        posted = await test_client.post(
            f"/api/group-sessions/{session_id}/messages", json={"content": "Hi"}, headers=bob
        )
        assert posted.status_code == 201
        assert posted.json()["type"] == "text"

        history = await test_client.get(
            f"/api/group-sessions/{session_id}/messages", params={"limit": 10}, headers=alice
        )
        assert history.status_code == 200
        assert "Hi" in [m["content"] for m in history.json()]

        participants = await test_client.get(f"/api/group-sessions/{session_id}/participants", headers=alice)
        assert [p["username"] for p in participants.json()] == ["bob"]

    @pytest.mark.asyncio
    async def test_cancelled_session_rejects_messages(self, test_client, register):
        alice, _ = await register("alice")
        scheduled = (utcnow() + timedelta(hours=1)).isoformat()
        created = await test_client.post(
            "/api/group-sessions",
            json={"title": "Sit", "scheduled_time": scheduled, "duration": 15},
            headers=alice,
        )
        session_id = created.json()["id"]
        await test_client.post(f"/api/group-sessions/{session_id}/cancel", headers=alice)

        response = await test_client.post(
            f"/api/group-sessions/{session_id}/messages", json={"content": "Hello?"}, headers=alice
        )
        assert response.status_code == 400
        assert response.json()["error"] == "session_error"

    @pytest.mark.asyncio
    async def test_limit_out_of_range_is_422(self, test_client, register):
        alice, _ = await register("alice")
        response = await test_client.get(
            "/api/group-sessions/00000000-0000-0000-0000-000000000000/messages",
            params={"limit": 101},
            headers=alice,
        )
        assert response.status_code == 422
