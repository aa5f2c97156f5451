"""
Shared FastAPI dependencies.

Routers import auth guards, feature gating and pagination from here so the
wiring lives in one place.
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from domain.errors import FeatureDisabledError, PermissionDeniedError
from middleware.auth import require_admin, require_auth, optional_auth, get_bearer_token
from services import feature_service

__all__ = [
    "Pagination",
    "get_bearer_token",
    "optional_auth",
    "page_params",
    "require_admin",
    "require_auth",
    "require_feature",
    "require_owner_or_admin",
]


class Pagination(TypedDict):
    page: int
    limit: int
    offset: int


def page_params(
    page: int = Query(1, ge=1, le=10_000),
    limit: int = Query(20, ge=1, le=100),
) -> Pagination:
    return {"page": page, "limit": limit, "offset": (page - 1) * limit}


def require_feature(key: str):
    """
    Dependency factory gating a route on a feature flag.

    Usage:
        @router.post("/calls/start", dependencies=[Depends(require_feature("voice_calls"))])
    """
    async def _check_feature(db: AsyncSession = Depends(get_db)) -> None:
        if not await feature_service.is_enabled(db, key):
            raise FeatureDisabledError(key)

    return _check_feature


def require_owner_or_admin(user: User, owner_id: int) -> None:
    if user.id != owner_id and not user.is_admin:
        raise PermissionDeniedError("You do not have access to this resource")
