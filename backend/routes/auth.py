"""
Auth endpoints: OTP sign-in.

Flow:
  1) POST /api/auth/send-otp    {phone | phoneNumber | email}
  2) POST /api/auth/verify-otp  {phone | email, code, name?, location?}
        -> {user, token}                 (known user, or profile supplied)
        -> {requiresProfile, signupToken} (new user)
  3) POST /api/auth/create-user {signupToken, name, location} -> {user, token}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from db_models import User
from deps import get_bearer_token, require_auth
from domain.errors import NotFoundError, ValidationError
from domain.responses import success_response
from middleware.rate_limit import rate_limit
from models import UserProfile, dump
from services import auth_service
from services.otp_service import otp_store
from utils.validators import normalize_recipient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])
dev_router = APIRouter(prefix="/api/dev", tags=["dev"])


class RecipientRequest(BaseModel):
    """Accepts the recipient under any of the names the clients send."""
    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    email: Optional[str] = None

    @model_validator(mode="after")
    def _one_recipient(self):
        if not (self.phone or self.phone_number or self.email):
            raise ValueError("phone, phoneNumber or email is required")
        return self

    @property
    def recipient(self) -> str:
        return self.email or self.phone or self.phone_number


class SendOtpRequest(RecipientRequest):
    pass


class VerifyOtpRequest(RecipientRequest):
    code: str = Field(..., min_length=4, max_length=10)
    name: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)


class CreateUserRequest(BaseModel):
    signup_token: str = Field(..., alias="signupToken", min_length=16)
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)


@router.post("/send-otp")
async def send_otp(
    request: SendOtpRequest,
    _rate=Depends(rate_limit(max_requests=10, window_seconds=300)),
):
    result = await auth_service.send_otp(request.recipient)
    message = "Verification code sent"
    if result["devMode"]:
        message = "Delivery unavailable in development; the code was written to the server log"
    return success_response(data={**result, "message": message})


@router.post("/verify-otp")
async def verify_otp(
    request: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=20, window_seconds=300)),
):
    result = await auth_service.verify_otp(
        db,
        raw_recipient=request.recipient,
        code=request.code,
        name=request.name,
        location=request.location,
    )
    await db.commit()

    if result.get("requiresProfile"):
        return success_response(data=result)
    return success_response(
        data={
            "user": dump(UserProfile, result["user"]),
            "token": result["token"],
            "isNewUser": result["isNewUser"],
        }
    )


@router.post("/create-user")
async def create_user(
    request: CreateUserRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await auth_service.complete_signup(
        db,
        signup_token=request.signup_token,
        name=request.name,
        location=request.location,
    )
    await db.commit()
    return success_response(data={"user": dump(UserProfile, result["user"]), "token": result["token"]})


@router.post("/logout")
async def logout(
    user: User = Depends(require_auth),
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, user=user, token=token)
    await db.commit()
    return success_response(data={"loggedOut": True})


@dev_router.get("/last-otp")
async def last_otp(recipient: str = Query(..., min_length=3)):
    """Development helper: the code currently issued to a recipient."""
    if not settings.is_development:
        raise NotFoundError("Route", "/api/dev/last-otp")
    key = normalize_recipient(recipient)
    record = otp_store.peek(key)
    if record is None:
        raise ValidationError("No code issued for this recipient", field="recipient")
    return success_response(data={"recipient": key, "code": record.code, "channel": record.channel})
