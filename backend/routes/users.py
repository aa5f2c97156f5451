"""
Current-user profile endpoints and contact search.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth
from domain.responses import success_response
from models import UserProfile, UserSummary, dump, dump_all
from services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["users"])


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = None
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    bio: Optional[str] = Field(default=None, max_length=500)


@router.get("/user/current")
async def current_user(user: User = Depends(require_auth)):
    return success_response(data=dump(UserProfile, user))


@router.put("/user/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await user_service.update_profile(
        db,
        user,
        name=request.name,
        location=request.location,
        avatar=request.avatar_url or request.avatar,
        bio=request.bio,
    )
    await db.commit()
    return success_response(data=dump(UserProfile, user))


@router.delete("/user/delete-account")
async def delete_account(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_account(db, user)
    await db.commit()
    return success_response(data={"deleted": True})


@router.get("/users/search")
async def search_users(
    q: str = Query(..., min_length=1, max_length=100),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.search_users(db, query=q, exclude_user_id=user.id)
    return success_response(data=dump_all(UserSummary, users), meta={"total": len(users)})


@router.get("/users/{user_id}")
async def get_user(
    user_id: int,
    _user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump(UserSummary, await user_service.get_user(db, user_id)))
