"""
Social notifications: written by other services, polled by clients.
"""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import SocialNotification, User
from domain.enums import NotificationType
from domain.errors import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    *,
    user_id: int,
    type: NotificationType,
    message: str,
    title: str | None = None,
    actor_id: int | None = None,
    post_id: int | None = None,
) -> SocialNotification:
    notification = SocialNotification(
        user_id=user_id,
        type=type.value,
        message=message,
        title=title,
        actor_id=actor_id,
        post_id=post_id,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_for_user(db: AsyncSession, *, user_id: int, limit: int = 50) -> list[SocialNotification]:
    res = await db.execute(
        select(SocialNotification)
        .where(SocialNotification.user_id == user_id)
        .order_by(SocialNotification.created_at.desc(), SocialNotification.id.desc())
        .limit(limit)
    )
    return res.scalars().all()


async def unread_count(db: AsyncSession, *, user_id: int) -> int:
    res = await db.execute(
        select(func.count(SocialNotification.id)).where(
            SocialNotification.user_id == user_id,
            SocialNotification.is_read == False,  # noqa: E712
        )
    )
    return res.scalar_one()


async def _get_owned(db: AsyncSession, notification_id: int, user_id: int) -> SocialNotification:
    notification = await db.get(SocialNotification, notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    if notification.user_id != user_id:
        raise PermissionDeniedError("Not your notification")
    return notification


async def mark_read(db: AsyncSession, *, notification_id: int, user_id: int) -> SocialNotification:
    notification = await _get_owned(db, notification_id, user_id)
    notification.is_read = True
    await db.flush()
    return notification


async def mark_all_read(db: AsyncSession, *, user_id: int) -> int:
    res = await db.execute(
        update(SocialNotification)
        .where(SocialNotification.user_id == user_id, SocialNotification.is_read == False)  # noqa: E712
        .values(is_read=True)
    )
    return res.rowcount or 0


async def delete_notification(db: AsyncSession, *, notification_id: int, user_id: int) -> None:
    notification = await _get_owned(db, notification_id, user_id)
    await db.delete(notification)
    await db.flush()


async def broadcast_announcement(db: AsyncSession, *, title: str, message: str, sender_id: int) -> int:
    """Notify every non-admin user. Returns the number of notifications created."""
    res = await db.execute(select(User.id).where(User.is_admin == False))  # noqa: E712
    user_ids = res.scalars().all()
    db.add_all([
        SocialNotification(
            user_id=uid,
            actor_id=sender_id,
            type=NotificationType.ANNOUNCEMENT.value,
            title=title,
            message=message,
        )
        for uid in user_ids
    ])
    await db.flush()
    logger.info(f"Announcement '{title}' sent to {len(user_ids)} user(s)")
    return len(user_ids)
