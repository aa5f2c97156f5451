"""
Feature flags.

Admins toggle app features from the dashboard; the SPA reads /api/features to
hide disabled sections and the API enforces the same flags on the matching
routes through deps.require_feature.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import AppFeature, utcnow
from domain.constants import DEFAULT_FEATURES
from domain.errors import NotFoundError

logger = logging.getLogger(__name__)


async def seed_default_features(db: AsyncSession) -> int:
    """Insert any default flag that is missing. Returns how many were added."""
    res = await db.execute(select(AppFeature.key))
    existing = set(res.scalars().all())
    added = 0
    for key, name, description, category, priority in DEFAULT_FEATURES:
        if key in existing:
            continue
        db.add(AppFeature(
            key=key,
            name=name,
            description=description,
            category=category,
            priority=priority,
            is_enabled=True,
        ))
        added += 1
    if added:
        await db.flush()
        logger.info(f"Seeded {added} feature flag(s)")
    return added


async def list_features(db: AsyncSession) -> list[AppFeature]:
    res = await db.execute(select(AppFeature).order_by(AppFeature.priority, AppFeature.key))
    return res.scalars().all()


async def is_enabled(db: AsyncSession, key: str) -> bool:
    """Unknown flags count as enabled so a new route never ships switched off."""
    res = await db.execute(select(AppFeature.is_enabled).where(AppFeature.key == key))
    value = res.scalar_one_or_none()
    return True if value is None else bool(value)


async def set_enabled(db: AsyncSession, key: str, enabled: bool) -> AppFeature:
    res = await db.execute(select(AppFeature).where(AppFeature.key == key))
    feature = res.scalar_one_or_none()
    if feature is None:
        raise NotFoundError("Feature", key)
    feature.is_enabled = enabled
    feature.updated_at = utcnow()
    await db.flush()
    logger.info(f"Feature '{key}' {'enabled' if enabled else 'disabled'}")
    return feature
