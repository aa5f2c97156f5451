"""
Tests for the social feed: posts, interactions, follows, reports, blocking
and the notifications they produce.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from sqlalchemy import select

from db_models import Follow, Report
from domain.errors import ConflictError, NotFoundError, ValidationError
from services import notification_service, social_service


class TestPosts:

    @pytest.mark.unit
    def test_hashtags_are_lowercased_and_unique(self):
        assert social_service.extract_hashtags("#Riyadh food #riyadh #قهوة") == ["riyadh", "قهوة"]

    @pytest.mark.asyncio
    async def test_empty_post_rejected(self, db_session, alice):
        with pytest.raises(ValidationError):
            await social_service.create_post(db_session, alice, content="  ")

    @pytest.mark.asyncio
    async def test_location_defaults_to_author(self, db_session, alice):
        post = await social_service.create_post(db_session, alice, content="hello #world")
        assert post.location_name == "Riyadh"
        assert post.hashtags == ["world"]


class TestFeed:

    @pytest.mark.asyncio
    async def test_following_and_business_filters(self, db_session, alice, bob, make_user):
        carol = await make_user(name="Carol")
        await social_service.create_post(db_session, bob, content="from bob")
        await social_service.create_post(db_session, carol, content="cakes for sale", post_type="business")
        await social_service.follow(db_session, follower=alice, following_id=bob.id)

        following = await social_service.get_feed(db_session, alice, filter="following")
        assert [p["content"] for p in following] == ["from bob"]
        assert following[0]["isFollowing"] is True
        assert following[0]["user"]["name"] == "Bob"

        business = await social_service.get_feed(db_session, alice, filter="business")
        assert [p["content"] for p in business] == ["cakes for sale"]

    @pytest.mark.asyncio
    async def test_unknown_filter(self, db_session, alice):
        with pytest.raises(ValidationError):
            await social_service.get_feed(db_session, alice, filter="trending")

    @pytest.mark.asyncio
    async def test_blocked_authors_hidden(self, db_session, alice, bob):
        await social_service.create_post(db_session, bob, content="from bob")
        await social_service.block_user(db_session, blocker=alice, blocked_id=bob.id)
        assert await social_service.get_feed(db_session, alice) == []
        assert await social_service.get_feed(db_session, bob) == []

    @pytest.mark.asyncio
    async def test_followers_only_posts(self, db_session, alice, bob):
        await social_service.create_post(db_session, bob, content="friends only", visibility="followers")
        assert await social_service.get_feed(db_session, alice) == []
        await social_service.follow(db_session, follower=alice, following_id=bob.id)
        assert len(await social_service.get_feed(db_session, alice)) == 1


class TestInteractions:

    @pytest.mark.asyncio
    async def test_like_is_idempotent_and_notifies_author(self, db_session, alice, bob):
        post = await social_service.create_post(db_session, bob, content="hi")
        await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="like")
        post = await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="like")
        assert post.like_count == 1

        notes = await notification_service.list_for_user(db_session, user_id=bob.id)
        assert [n.type for n in notes] == ["like"]

        feed = await social_service.get_feed(db_session, alice)
        assert feed[0]["isLiked"] is True

        post = await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="unlike")
        post = await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="unlike")
        assert post.like_count == 0

    @pytest.mark.asyncio
    async def test_liking_own_post_does_not_notify(self, db_session, alice):
        post = await social_service.create_post(db_session, alice, content="me")
        await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="like")
        assert await notification_service.unread_count(db_session, user_id=alice.id) == 0

    @pytest.mark.asyncio
    async def test_save_counter(self, db_session, alice, bob):
        post = await social_service.create_post(db_session, bob, content="hi")
        post = await social_service.interact(db_session, post_id=post.id, user=alice, interaction_type="save")
        assert post.save_count == 1
        assert post.like_count == 0

    @pytest.mark.asyncio
    async def test_unknown_post(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await social_service.interact(db_session, post_id=999, user=alice, interaction_type="like")


class TestFollowsReportsBlocks:

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, db_session, alice):
        with pytest.raises(ValidationError):
            await social_service.follow(db_session, follower=alice, following_id=alice.id)

    @pytest.mark.asyncio
    async def test_duplicate_follow_conflicts(self, db_session, alice, bob):
        await social_service.follow(db_session, follower=alice, following_id=bob.id)
        with pytest.raises(ConflictError):
            await social_service.follow(db_session, follower=alice, following_id=bob.id)
        assert await social_service.unfollow(db_session, follower=alice, following_id=bob.id) is True

    @pytest.mark.asyncio
    async def test_report_needs_reason_and_target(self, db_session, alice, bob):
        with pytest.raises(ValidationError):
            await social_service.create_report(db_session, alice, reason="", reported_user_id=bob.id)
        with pytest.raises(ValidationError):
            await social_service.create_report(db_session, alice, reason="spam")
        assert (await db_session.execute(select(Report))).scalars().all() == []

        report = await social_service.create_report(db_session, alice, reason=" spam ", reported_user_id=bob.id)
        assert report.reason == "spam"
        assert report.status == "pending"

    @pytest.mark.asyncio
    async def test_block_removes_follows_both_ways(self, db_session, alice, bob):
        await social_service.follow(db_session, follower=alice, following_id=bob.id)
        await social_service.follow(db_session, follower=bob, following_id=alice.id)

        await social_service.block_user(db_session, blocker=alice, blocked_id=bob.id)
        await social_service.block_user(db_session, blocker=alice, blocked_id=bob.id)

        assert (await db_session.execute(select(Follow))).scalars().all() == []
        assert [u.id for u in await social_service.list_blocked(db_session, blocker=alice)] == [bob.id]
        assert await social_service.unblock_user(db_session, blocker=alice, blocked_id=bob.id) is True


class TestSocialEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_post_like_and_notifications(self, client, alice, bob, auth_headers):
        a = await auth_headers(alice)
        b = await auth_headers(bob)

        created = await client.post("/api/posts", headers=b, json={"content": "New menu #food"})
        assert created.status_code == 200, created.text
        post_id = created.json()["data"]["id"]

        liked = await client.post(f"/api/posts/{post_id}/interactions", headers=a, json={"interactionType": "like"})
        assert liked.json()["data"]["likeCount"] == 1

        notes = await client.get("/api/notifications/social", headers=b)
        body = notes.json()["data"]
        assert body["unreadCount"] == 1
        note_id = body["notifications"][0]["id"]

        # someone else's notification
        forbidden = await client.post(f"/api/notifications/social/{note_id}/read", headers=a)
        assert forbidden.status_code == 403

        read_all = await client.post("/api/notifications/social/read-all", headers=b)
        assert read_all.json()["data"]["updated"] == 1
        count = await client.get("/api/notifications/social/unread-count", headers=b)
        assert count.json()["data"]["unreadCount"] == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_empty_post_is_400(self, client, alice, auth_headers):
        response = await client.post("/api/posts", headers=await auth_headers(alice), json={"content": ""})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation"
