"""
Tests for call signalling state transitions.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from datetime import timedelta

import pytest

from db_models import BlockedUser, utcnow
from domain.errors import InvalidTransitionError, PermissionDeniedError, ValidationError
from services import call_service


class TestCallLifecycle:

    @pytest.mark.asyncio
    async def test_start_rings(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id, call_type="video")
        assert call.status == "ringing"
        assert call.call_type == "video"
        assert [c.id for c in await call_service.active_calls(db_session, user_id=bob.id)] == [call.id]

    @pytest.mark.asyncio
    async def test_cannot_call_self(self, db_session, alice):
        with pytest.raises(ValidationError):
            await call_service.start_call(db_session, alice, receiver_id=alice.id)

    @pytest.mark.asyncio
    async def test_unknown_call_type(self, db_session, alice, bob):
        with pytest.raises(ValidationError):
            await call_service.start_call(db_session, alice, receiver_id=bob.id, call_type="fax")

    @pytest.mark.asyncio
    async def test_blocked_users_cannot_call(self, db_session, alice, bob):
        db_session.add(BlockedUser(blocker_id=bob.id, blocked_id=alice.id))
        await db_session.flush()
        with pytest.raises(PermissionDeniedError):
            await call_service.start_call(db_session, alice, receiver_id=bob.id)

    @pytest.mark.asyncio
    async def test_only_receiver_accepts(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        with pytest.raises(PermissionDeniedError):
            await call_service.accept_call(db_session, call_id=call.id, user=alice)
        call = await call_service.accept_call(db_session, call_id=call.id, user=bob)
        assert call.status == "accepted"
        assert call.answered_at is not None

    @pytest.mark.asyncio
    async def test_accept_twice_is_invalid(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        await call_service.accept_call(db_session, call_id=call.id, user=bob)
        with pytest.raises(InvalidTransitionError):
            await call_service.accept_call(db_session, call_id=call.id, user=bob)

    @pytest.mark.asyncio
    async def test_end_derives_duration_from_answer_time(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        await call_service.accept_call(db_session, call_id=call.id, user=bob)
        call.answered_at = utcnow() - timedelta(seconds=90)
        call = await call_service.end_call(db_session, call_id=call.id, user=alice)
        assert call.status == "ended"
        assert 89 <= call.duration <= 91
        assert await call_service.active_calls(db_session, user_id=alice.id) == []

    @pytest.mark.asyncio
    async def test_unanswered_call_ends_with_zero_duration(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        call = await call_service.end_call(db_session, call_id=call.id, user=alice)
        assert call.duration == 0

    @pytest.mark.asyncio
    async def test_reject_from_ringing_and_not_after_end(self, db_session, alice, bob):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        call = await call_service.reject_call(db_session, call_id=call.id, user=bob)
        assert call.status == "rejected"
        with pytest.raises(InvalidTransitionError):
            await call_service.end_call(db_session, call_id=call.id, user=alice)

    @pytest.mark.asyncio
    async def test_outsider_cannot_touch_call(self, db_session, alice, bob, make_user):
        call = await call_service.start_call(db_session, alice, receiver_id=bob.id)
        eve = await make_user(name="Eve")
        with pytest.raises(PermissionDeniedError):
            await call_service.reject_call(db_session, call_id=call.id, user=eve)

    @pytest.mark.asyncio
    async def test_history_includes_both_directions(self, db_session, alice, bob):
        await call_service.start_call(db_session, alice, receiver_id=bob.id)
        await call_service.start_call(db_session, bob, receiver_id=alice.id)
        assert len(await call_service.call_history(db_session, user_id=alice.id)) == 2


class TestCallEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_start_and_end_over_http(self, client, alice, bob, auth_headers):
        caller = await auth_headers(alice)
        started = await client.post("/api/calls/start", headers=caller, json={"receiverId": bob.id})
        assert started.status_code == 200, started.text
        call_id = started.json()["data"]["id"]

        ended = await client.post(f"/api/calls/{call_id}/end", headers=caller, json={"duration": 42})
        assert ended.json()["data"]["status"] == "ended"
        assert ended.json()["data"]["duration"] == 42

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_disabled_flag_blocks_calls(self, client, db_session, alice, bob, auth_headers):
        from db_models import AppFeature

        db_session.add(AppFeature(key="voice_calls", name="Voice calls", is_enabled=False, category="communication"))
        await db_session.commit()

        response = await client.post("/api/calls/start", headers=await auth_headers(alice), json={"receiverId": bob.id})
        assert response.status_code == 403
        body = response.json()
        assert body["error"]["code"] == "featuredisabled"
        assert body["error"]["details"] == {"feature": "voice_calls"}
