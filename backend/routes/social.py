"""
Social endpoints: posts, feed, interactions, follows, reports and blocking.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth
from domain.responses import success_response
from models import PostOut, ReportOut, UserSummary, dump, dump_all
from services import social_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["social"])


class PostCreateRequest(BaseModel):
    # content is validated by the service so an empty post gets the domain error
    content: Optional[str] = Field(default=None, max_length=5000)
    images: List[str] = Field(default_factory=list, max_length=10)
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    post_type: str = Field("personal", alias="postType")
    business_info: Optional[dict] = Field(default=None, alias="businessInfo")
    location_name: Optional[str] = Field(default=None, alias="locationName", max_length=100)
    visibility: str = Field("public", pattern="^(public|followers)$")


class InteractionRequest(BaseModel):
    interaction_type: str = Field(..., alias="interactionType")


class ReportRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    reported_user_id: Optional[int] = Field(default=None, alias="reportedUserId")
    post_id: Optional[int] = Field(default=None, alias="postId")


class BlockRequest(BaseModel):
    blocked_user_id: int = Field(..., alias="blockedUserId")


@router.post("/posts")
async def create_post(
    request: PostCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    post = await social_service.create_post(
        db,
        user,
        content=request.content or "",
        images=request.images,
        video_url=request.video_url,
        post_type=request.post_type,
        business_info=request.business_info,
        location_name=request.location_name,
        visibility=request.visibility,
    )
    await db.commit()
    return success_response(data=dump(PostOut, post))


@router.get("/social-feed")
async def social_feed(
    filter: str = Query("all"),
    location: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    feed = await social_service.get_feed(db, user, filter=filter, location=location, limit=limit, offset=offset)
    return success_response(data=feed, meta={"total": len(feed), "limit": limit, "offset": offset})


@router.post("/posts/{post_id}/interactions")
async def interact(
    post_id: int,
    request: InteractionRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    post = await social_service.interact(db, post_id=post_id, user=user, interaction_type=request.interaction_type)
    await db.commit()
    return success_response(data={"postId": post.id, "likeCount": post.like_count, "saveCount": post.save_count})


@router.post("/users/{user_id}/follow")
async def follow_user(
    user_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await social_service.follow(db, follower=user, following_id=user_id)
    await db.commit()
    return success_response(data={"following": True, "userId": user_id})


@router.delete("/users/{user_id}/follow")
async def unfollow_user(
    user_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await social_service.unfollow(db, follower=user, following_id=user_id)
    await db.commit()
    return success_response(data={"following": False, "userId": user_id})


@router.post("/reports")
async def create_report(
    request: ReportRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    report = await social_service.create_report(
        db,
        user,
        reason=request.reason,
        reported_user_id=request.reported_user_id,
        post_id=request.post_id,
        description=request.description,
    )
    await db.commit()
    return success_response(data=dump(ReportOut, report))


@router.get("/blocked-users")
async def list_blocked(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    users = await social_service.list_blocked(db, blocker=user)
    return success_response(data=dump_all(UserSummary, users))


@router.post("/blocked-users")
async def block_user(
    request: BlockRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await social_service.block_user(db, blocker=user, blocked_id=request.blocked_user_id)
    await db.commit()
    return success_response(data={"blocked": True, "userId": request.blocked_user_id})


@router.delete("/blocked-users/{blocked_id}")
async def unblock_user(
    blocked_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    removed = await social_service.unblock_user(db, blocker=user, blocked_id=blocked_id)
    await db.commit()
    return success_response(data={"blocked": False, "removed": removed})
