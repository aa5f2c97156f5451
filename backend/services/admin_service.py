"""
Admin back-office queries: dashboard counters and user management.
"""
import logging
from datetime import timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order, Post, Report, User, Vendor, VerificationRequest, utcnow
from domain.enums import OrderStatus, VendorStatus, VerificationStatus
from domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def _count(db: AsyncSession, column, *filters) -> int:
    res = await db.execute(select(func.count(column)).where(*filters))
    return res.scalar_one()


async def dashboard_stats(db: AsyncSession) -> dict:
    since = utcnow() - timedelta(days=1)
    revenue = await db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0.0)).where(
            Order.status == OrderStatus.DELIVERED.value
        )
    )
    return {
        "totalUsers": await _count(db, User.id, User.is_admin == False),  # noqa: E712
        "verifiedUsers": await _count(db, User.id, User.is_verified == True),  # noqa: E712
        "onlineUsers": await _count(db, User.id, User.is_online == True),  # noqa: E712
        "newUsersToday": await _count(db, User.id, User.created_at >= since),
        "totalStores": await _count(db, Vendor.id),
        "pendingStores": await _count(db, Vendor.id, Vendor.status == VendorStatus.PENDING.value),
        "totalOrders": await _count(db, Order.id),
        "pendingOrders": await _count(db, Order.id, Order.status == OrderStatus.PENDING.value),
        "deliveredRevenue": round(float(revenue.scalar_one()), 2),
        "totalPosts": await _count(db, Post.id, Post.is_active == True),  # noqa: E712
        "pendingVerifications": await _count(
            db, VerificationRequest.id, VerificationRequest.status == VerificationStatus.PENDING.value
        ),
        "pendingReports": await _count(db, Report.id, Report.status == "pending"),
    }


async def list_users(
    db: AsyncSession,
    *,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[User], int]:
    filters = []
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(User.name.ilike(pattern), User.phone_number.ilike(pattern), User.email.ilike(pattern)))
    total = await _count(db, User.id, *filters)
    res = await db.execute(
        select(User).where(*filters).order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset)
    )
    return res.scalars().all(), total


async def set_admin(db: AsyncSession, *, user_id: int, is_admin: bool, acting_admin: User) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if user.id == acting_admin.id and not is_admin:
        raise ValidationError("You cannot remove your own admin rights")
    user.is_admin = is_admin
    await db.flush()
    logger.info(f"Admin {acting_admin.id} set is_admin={is_admin} on user {user_id}")
    return user


async def set_verified(db: AsyncSession, *, user_id: int, is_verified: bool) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    user.is_verified = is_verified
    await db.flush()
    return user


async def set_report_status(db: AsyncSession, *, report_id: int, status: str) -> Report:
    if status not in ("pending", "reviewed", "dismissed"):
        raise ValidationError(f"Unknown report status: {status}", field="status")
    report = await db.get(Report, report_id)
    if report is None:
        raise NotFoundError("Report", report_id)
    report.status = status
    await db.flush()
    return report
