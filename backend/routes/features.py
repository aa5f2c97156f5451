"""
Feature flag endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_admin
from domain.responses import success_response
from models import FeatureOut, dump, dump_all
from services import feature_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["features"])


class FeatureToggleRequest(BaseModel):
    is_enabled: bool = Field(..., alias="isEnabled")


@router.get("/features")
async def public_features(db: AsyncSession = Depends(get_db)):
    """Flag map for clients: {key: isEnabled}."""
    features = await feature_service.list_features(db)
    return success_response(data={f.key: f.is_enabled for f in features})


@router.get("/admin/features")
async def admin_features(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump_all(FeatureOut, await feature_service.list_features(db)))


@router.put("/admin/features/{key}")
async def toggle_feature(
    key: str,
    request: FeatureToggleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    feature = await feature_service.set_enabled(db, key, request.is_enabled)
    await db.commit()
    logger.info(f"Feature '{key}' set to {request.is_enabled} by admin {admin.id}")
    return success_response(data=dump(FeatureOut, feature))
