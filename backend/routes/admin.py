"""
Admin back-office endpoints.

Login is open (rate limited); every other route requires an ``admin-``
session via ``require_admin``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import Pagination, page_params, require_admin
from domain.errors import UnauthorizedError
from domain.responses import paginated_response, success_response
from middleware.auth import create_session
from middleware.rate_limit import rate_limit
from models import (
    OrderOut,
    ReportOut,
    UserProfile,
    UserSummary,
    VendorOut,
    VerificationRequestOut,
    dump,
    dump_all,
)
from services import (
    admin_manager,
    admin_service,
    marketplace_service,
    notification_service,
    order_service,
    social_service,
    verification_service,
)
from services.email_config_manager import email_config_manager
from services.email_service import email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


class AdminLoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=200)


class FlagRequest(BaseModel):
    value: bool


class StatusRequest(BaseModel):
    status: str
    reason: Optional[str] = Field(default=None, max_length=500)


class ReviewRequest(BaseModel):
    status: str
    admin_note: Optional[str] = Field(default=None, alias="adminNote", max_length=2000)


class AnnouncementRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)


class GmailConfigRequest(BaseModel):
    user: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    from_email: Optional[str] = Field(default=None, alias="fromEmail")


class SendGridConfigRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=10)
    from_email: str = Field(..., alias="fromEmail", min_length=3)


# ── Auth ────────────────────────────────────────────────────────────

@router.post("/login")
async def admin_login(
    request: AdminLoginRequest,
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=5, window_seconds=300)),
):
    if not admin_manager.validate_credentials(request.email, request.password):
        logger.warning(f"Failed admin login for {request.email}")
        raise UnauthorizedError("Invalid admin credentials")

    admin = await admin_manager.ensure_admin_user(db)
    await admin_manager.update_last_login(db, admin)
    session = await create_session(db, admin, admin=True)
    await db.commit()
    logger.info(f"Admin {admin.id} logged in")
    return success_response(data={"user": dump(UserProfile, admin), "token": session.token})


@router.get("/dashboard-stats")
async def dashboard_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await admin_service.dashboard_stats(db))


# ── Users ───────────────────────────────────────────────────────────

@router.get("/users")
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    pagination: Pagination = Depends(page_params),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, total = await admin_service.list_users(
        db, search=search, limit=pagination["limit"], offset=pagination["offset"]
    )
    return paginated_response(
        dump_all(UserProfile, users), page=pagination["page"], limit=pagination["limit"], total=total
    )


@router.put("/users/{user_id}/admin")
async def set_admin(
    user_id: int,
    request: FlagRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.set_admin(db, user_id=user_id, is_admin=request.value, acting_admin=admin)
    await db.commit()
    return success_response(data=dump(UserProfile, user))


@router.put("/users/{user_id}/verify")
async def set_verified(
    user_id: int,
    request: FlagRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.set_verified(db, user_id=user_id, is_verified=request.value)
    await db.commit()
    return success_response(data=dump(UserProfile, user))


# ── Stores ──────────────────────────────────────────────────────────

@router.get("/stores")
async def list_stores(
    status: Optional[str] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    stores = await marketplace_service.list_stores(db, status=status)
    return success_response(data=dump_all(VendorOut, stores), meta={"total": len(stores)})


@router.put("/stores/{vendor_id}/status")
async def set_store_status(
    vendor_id: int,
    request: StatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    vendor = await marketplace_service.set_vendor_status(db, vendor_id=vendor_id, status=request.status)
    await db.commit()
    return success_response(data=dump(VendorOut, vendor))


# ── Orders ──────────────────────────────────────────────────────────

@router.get("/orders")
async def list_orders(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: Pagination = Depends(page_params),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    orders, total = await order_service.admin_list_orders(
        db, status=status, search=search, limit=pagination["limit"], offset=pagination["offset"]
    )
    return paginated_response(
        dump_all(OrderOut, orders), page=pagination["page"], limit=pagination["limit"], total=total
    )


@router.put("/orders/{order_id}/status")
async def set_order_status(
    order_id: int,
    request: StatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if request.status == "cancelled":
        order = await order_service.cancel_order(db, order_id=order_id, actor=admin, reason=request.reason)
    else:
        order = await order_service.update_status(db, order_id=order_id, actor=admin, status=request.status)
    await db.commit()
    return success_response(data=dump(OrderOut, order))


# ── Verification ────────────────────────────────────────────────────

@router.get("/verification-requests")
async def list_verification_requests(
    status: Optional[str] = Query(None),
    pagination: Pagination = Depends(page_params),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await verification_service.admin_list_requests(
        db, status=status, limit=pagination["limit"], offset=pagination["offset"]
    )
    items = [
        {**dump(VerificationRequestOut, vr), "user": dump(UserSummary, user)}
        for vr, user in rows
    ]
    return paginated_response(items, page=pagination["page"], limit=pagination["limit"], total=total)


@router.put("/verification-requests/{request_id}")
async def review_verification_request(
    request_id: int,
    request: ReviewRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    vr = await verification_service.review_request(
        db, request_id=request_id, reviewer=admin, status=request.status, admin_note=request.admin_note
    )
    await db.commit()
    return success_response(data=dump(VerificationRequestOut, vr))


# ── Moderation / broadcast ──────────────────────────────────────────

@router.get("/reports")
async def list_reports(
    status: Optional[str] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump_all(ReportOut, await social_service.list_reports(db, status=status)))


@router.put("/reports/{report_id}/status")
async def set_report_status(
    report_id: int,
    request: StatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await admin_service.set_report_status(db, report_id=report_id, status=request.status)
    await db.commit()
    return success_response(data=dump(ReportOut, report))


@router.post("/send-announcement")
async def send_announcement(
    request: AnnouncementRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    sent = await notification_service.broadcast_announcement(
        db, title=request.title, message=request.message, sender_id=admin.id
    )
    await db.commit()
    logger.info(f"Announcement '{request.title}' sent to {sent} users by admin {admin.id}")
    return success_response(data={"sentCount": sent})


# ── Email configuration ─────────────────────────────────────────────

@router.get("/email-config/status")
async def email_config_status(admin: User = Depends(require_admin)):
    return success_response(
        data={**email_config_manager.get_status(), "activeService": email_service.get_available_service()}
    )


@router.post("/email-config/gmail")
async def configure_gmail(request: GmailConfigRequest, admin: User = Depends(require_admin)):
    email_config_manager.update_gmail_config(request.user, request.password, request.from_email)
    return success_response(data=email_config_manager.get_status())


@router.post("/email-config/sendgrid")
async def configure_sendgrid(request: SendGridConfigRequest, admin: User = Depends(require_admin)):
    email_config_manager.update_sendgrid_config(request.api_key, request.from_email)
    return success_response(data=email_config_manager.get_status())


@router.post("/email-config/test")
async def test_email_config(admin: User = Depends(require_admin)):
    return success_response(data=await email_service.test_connection())


@router.get("/health")
async def admin_health(admin: User = Depends(require_admin)):
    return success_response(
        data={
            "admin": admin_manager.get_state(),
            "emailService": email_service.get_available_service(),
        }
    )
