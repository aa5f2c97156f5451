"""
Verification requests (blue badge for users and stores).
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import User, Vendor, VerificationRequest, utcnow
from domain.enums import NotificationType, VerificationStatus, VerificationType
from domain.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, PermissionDeniedError, ValidationError,
)
from services import notification_service

logger = logging.getLogger(__name__)


async def create_request(
    db: AsyncSession,
    user: User,
    *,
    request_type: str,
    reason: str | None = None,
    documents: list[str] | None = None,
    store_id: int | None = None,
) -> VerificationRequest:
    try:
        rtype = VerificationType(request_type)
    except ValueError:
        raise ValidationError(f"Unknown request type: {request_type}", field="requestType")

    if rtype == VerificationType.STORE:
        if store_id is None:
            raise ValidationError("storeId is required for store verification", field="storeId")
        vendor = await db.get(Vendor, store_id)
        if vendor is None:
            raise NotFoundError("Store", store_id)
        if vendor.user_id != user.id:
            raise PermissionDeniedError("You can only verify your own store")

    res = await db.execute(
        select(VerificationRequest.id).where(
            VerificationRequest.user_id == user.id,
            VerificationRequest.request_type == rtype.value,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
    )
    if res.scalar_one_or_none() is not None:
        raise ConflictError("You already have a pending request of this type")

    request = VerificationRequest(
        user_id=user.id,
        vendor_id=store_id if rtype == VerificationType.STORE else None,
        request_type=rtype.value,
        reason=reason,
        documents=documents or [],
        status=VerificationStatus.PENDING.value,
    )
    db.add(request)
    await db.flush()
    logger.info(f"Verification request {request.id} ({rtype.value}) from user {user.id}")
    return request


async def get_request(db: AsyncSession, request_id: int) -> VerificationRequest:
    request = await db.get(VerificationRequest, request_id)
    if request is None:
        raise NotFoundError("Verification request", request_id)
    return request


async def list_user_requests(db: AsyncSession, *, user_id: int) -> list[VerificationRequest]:
    res = await db.execute(
        select(VerificationRequest)
        .where(VerificationRequest.user_id == user_id)
        .order_by(VerificationRequest.submitted_at.desc())
    )
    return res.scalars().all()


async def admin_list_requests(
    db: AsyncSession,
    *,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[tuple[VerificationRequest, User]], int]:
    filters = [VerificationRequest.status == status] if status else []
    total = (await db.execute(select(func.count(VerificationRequest.id)).where(*filters))).scalar_one()
    res = await db.execute(
        select(VerificationRequest, User)
        .join(User, User.id == VerificationRequest.user_id)
        .where(*filters)
        .order_by(VerificationRequest.submitted_at.desc(), VerificationRequest.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return res.all(), total


async def review_request(
    db: AsyncSession,
    *,
    request_id: int,
    reviewer: User,
    status: str,
    admin_note: str | None = None,
) -> VerificationRequest:
    """Approve or reject a pending request. Approval sets the verified flag."""
    try:
        decision = VerificationStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown status: {status}", field="status")
    if decision == VerificationStatus.PENDING:
        raise ValidationError("Status must be approved or rejected", field="status")

    request = await get_request(db, request_id)
    if request.status != VerificationStatus.PENDING.value:
        raise InvalidTransitionError("Verification request", request.status, decision.value)

    request.status = decision.value
    request.admin_note = admin_note
    request.reviewed_by = reviewer.id
    request.reviewed_at = utcnow()

    if decision == VerificationStatus.APPROVED:
        if request.request_type == VerificationType.STORE.value and request.vendor_id:
            vendor = await db.get(Vendor, request.vendor_id)
            if vendor is not None:
                vendor.is_verified = True
        else:
            user = await db.get(User, request.user_id)
            if user is not None:
                user.is_verified = True

    outcome = "approved" if decision == VerificationStatus.APPROVED else "rejected"
    await notification_service.create_notification(
        db,
        user_id=request.user_id,
        type=NotificationType.VERIFICATION,
        actor_id=reviewer.id,
        title="Verification request",
        message=f"Your verification request was {outcome}" + (f": {admin_note}" if admin_note else ""),
    )
    await db.flush()
    logger.info(f"Verification request {request.id} {outcome} by admin {reviewer.id}")
    return request
