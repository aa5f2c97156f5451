"""
Social notification endpoints (polled by the client).
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth
from domain.responses import success_response
from models import NotificationOut, dump, dump_all
from services import notification_service

router = APIRouter(prefix="/api/notifications/social", tags=["notifications"])


@router.get("")
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_service.list_for_user(db, user_id=user.id, limit=limit)
    unread = await notification_service.unread_count(db, user_id=user.id)
    return success_response(data={"notifications": dump_all(NotificationOut, notifications), "unreadCount": unread})


@router.get("/unread-count")
async def unread_count(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data={"unreadCount": await notification_service.unread_count(db, user_id=user.id)})


@router.post("/read-all")
async def mark_all_read(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_read(db, user_id=user.id)
    await db.commit()
    return success_response(data={"updated": updated})


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.mark_read(db, notification_id=notification_id, user_id=user.id)
    await db.commit()
    return success_response(data=dump(NotificationOut, notification))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await notification_service.delete_notification(db, notification_id=notification_id, user_id=user.id)
    await db.commit()
    return success_response(data={"deleted": True})
