"""
Story endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.responses import success_response
from models import StoryOut, UserSummary, dump
from services import story_service

router = APIRouter(
    prefix="/api",
    tags=["stories"],
    dependencies=[Depends(require_feature("stories"))],
)


class StoryCreateRequest(BaseModel):
    content: Optional[str] = Field(default=None, max_length=1000)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    background_color: Optional[str] = Field(default=None, alias="backgroundColor", max_length=20)
    text_color: Optional[str] = Field(default=None, alias="textColor", max_length=20)


def _with_author(rows) -> list[dict]:
    return [{**dump(StoryOut, story), "user": dump(UserSummary, author)} for story, author in rows]


@router.get("/stories")
async def list_stories(
    location: Optional[str] = Query(None, max_length=100),
    _user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rows = await story_service.list_active(db, location=location)
    return success_response(data=_with_author(rows), meta={"total": len(rows)})


@router.post("/stories")
async def create_story(
    request: StoryCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    story = await story_service.create_story(
        db,
        user,
        content=request.content,
        image_url=request.image_url,
        video_url=request.video_url,
        background_color=request.background_color,
        text_color=request.text_color,
    )
    await db.commit()
    return success_response(data=dump(StoryOut, story))


@router.get("/stories/{story_id}")
async def get_story(
    story_id: int,
    _user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump(StoryOut, await story_service.get_active_story(db, story_id)))


@router.patch("/stories/{story_id}/view")
async def view_story(
    story_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    story = await story_service.record_view(db, story_id=story_id, viewer=user)
    await db.commit()
    return success_response(data={"id": story.id, "viewCount": story.view_count})


@router.get("/users/{user_id}/stories")
async def user_stories(
    user_id: int,
    _user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    rows = await story_service.list_active(db, user_id=user_id)
    return success_response(data=_with_author(rows))
