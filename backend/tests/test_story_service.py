"""
Tests for expiring stories and view counting.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from datetime import timedelta

import pytest

from db_models import utcnow
from domain.errors import NotFoundError, ValidationError
from services import story_service


class TestStories:

    @pytest.mark.asyncio
    async def test_story_needs_some_content(self, db_session, alice):
        with pytest.raises(ValidationError):
            await story_service.create_story(db_session, alice, content=None)

    @pytest.mark.asyncio
    async def test_expired_stories_disappear(self, db_session, alice):
        story = await story_service.create_story(db_session, alice, content="sunset")
        assert story.location == "Riyadh"
        assert [s.id for s, _ in await story_service.list_active(db_session)] == [story.id]

        story.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.flush()
        assert await story_service.list_active(db_session) == []
        with pytest.raises(NotFoundError):
            await story_service.get_active_story(db_session, story.id)

    @pytest.mark.asyncio
    async def test_location_filter(self, db_session, alice, make_user):
        jeddah = await make_user(name="Sara", location="Jeddah")
        await story_service.create_story(db_session, alice, content="riyadh")
        await story_service.create_story(db_session, jeddah, content="jeddah")
        rows = await story_service.list_active(db_session, location="Jeddah")
        assert [s.content for s, _ in rows] == ["jeddah"]

    @pytest.mark.asyncio
    async def test_view_counted_once_and_not_for_author(self, db_session, alice, bob):
        story = await story_service.create_story(db_session, alice, image_url="/uploads/s.jpg")
        await story_service.record_view(db_session, story_id=story.id, viewer=bob)
        await story_service.record_view(db_session, story_id=story.id, viewer=bob)
        story = await story_service.record_view(db_session, story_id=story.id, viewer=alice)
        assert story.view_count == 1


class TestStoryEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_list_and_view(self, client, alice, bob, auth_headers):
        created = await client.post("/api/stories", headers=await auth_headers(alice), json={"content": "hello"})
        assert created.status_code == 200, created.text
        story_id = created.json()["data"]["id"]

        viewer = await auth_headers(bob)
        listed = await client.get("/api/stories", headers=viewer)
        assert listed.json()["data"][0]["user"]["name"] == "Alice"

        viewed = await client.patch(f"/api/stories/{story_id}/view", headers=viewer)
        assert viewed.json()["data"] == {"id": story_id, "viewCount": 1}
