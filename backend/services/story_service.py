"""
Stories: short-lived posts that disappear after STORY_TTL_HOURS.
"""
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import Story, StoryView, User, utcnow
from domain.errors import NotFoundError, ValidationError


async def create_story(
    db: AsyncSession,
    user: User,
    *,
    content: str | None,
    image_url: str | None = None,
    video_url: str | None = None,
    background_color: str | None = None,
    text_color: str | None = None,
) -> Story:
    if not (content or image_url or video_url):
        raise ValidationError("A story needs text, an image or a video")

    story = Story(
        user_id=user.id,
        content=content,
        image_url=image_url,
        video_url=video_url,
        background_color=background_color,
        text_color=text_color,
        location=user.location,
        expires_at=utcnow() + timedelta(hours=settings.story_ttl_hours),
    )
    db.add(story)
    await db.flush()
    return story


async def list_active(db: AsyncSession, *, location: str | None = None, user_id: int | None = None) -> list[tuple[Story, User]]:
    query = (
        select(Story, User)
        .join(User, User.id == Story.user_id)
        .where(Story.expires_at > utcnow())
        .order_by(Story.created_at.desc())
    )
    if location:
        query = query.where(Story.location == location)
    if user_id is not None:
        query = query.where(Story.user_id == user_id)
    res = await db.execute(query)
    return res.all()


async def get_active_story(db: AsyncSession, story_id: int) -> Story:
    story = await db.get(Story, story_id)
    if story is None or story.expires_at <= utcnow():
        raise NotFoundError("Story", story_id)
    return story


async def record_view(db: AsyncSession, *, story_id: int, viewer: User) -> Story:
    """Count one view per viewer; the author's own views are not counted."""
    story = await get_active_story(db, story_id)
    if story.user_id == viewer.id:
        return story

    res = await db.execute(
        select(StoryView.id).where(StoryView.story_id == story_id, StoryView.viewer_id == viewer.id)
    )
    if res.scalar_one_or_none() is None:
        db.add(StoryView(story_id=story_id, viewer_id=viewer.id))
        story.view_count = (story.view_count or 0) + 1
        await db.flush()
    return story
