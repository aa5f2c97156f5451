"""
Sign-in flow: OTP issue/verify, signup completion and logout.

    send-otp    -> code issued into the OTP store, delivered by WhatsApp
                   (phone) or email
    verify-otp  -> existing user: new session
                   new user with name+location: user created + session
                   new user without profile: signup token
    create-user -> signup token + profile -> user + session
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import User, utcnow
from domain.enums import OtpChannel
from domain.errors import ConflictError, UpstreamServiceError, ValidationError
from middleware.auth import create_session, decode_signup_token, issue_signup_token, revoke_session
from middleware.rate_limit import check_recipient_limit
from services import whatsapp_service
from services.email_service import email_service
from services.otp_service import otp_store
from utils.validators import is_email, normalize_recipient

logger = logging.getLogger(__name__)


async def find_user_by_recipient(db: AsyncSession, recipient: str) -> User | None:
    column = User.email if is_email(recipient) else User.phone_number
    res = await db.execute(select(User).where(column == recipient))
    return res.scalar_one_or_none()


async def send_otp(raw_recipient: str) -> dict:
    """
    Issue and deliver a sign-in code.

    Raises:
        RateLimitError if the recipient asked for too many codes
        UpstreamServiceError if delivery failed (outside development)
    """
    recipient = normalize_recipient(raw_recipient)
    check_recipient_limit(recipient)

    channel = OtpChannel.EMAIL if is_email(recipient) else OtpChannel.WHATSAPP
    code = otp_store.issue(recipient, channel.value)

    if channel == OtpChannel.EMAIL:
        delivered = await email_service.send_otp(recipient, code)
    else:
        delivered = await whatsapp_service.send_otp(recipient, code)

    if not delivered:
        if settings.is_development:
            logger.warning(f"[DEV] OTP delivery via {channel.value} failed; code for {recipient} is {code}")
            return {"recipient": recipient, "channel": channel.value, "devMode": True}
        otp_store.discard(recipient)
        raise UpstreamServiceError(
            f"Could not deliver the verification code via {channel.value}",
            details={"channel": channel.value},
        )

    logger.info(f"OTP sent via {channel.value} to {recipient[:4]}***")
    return {"recipient": recipient, "channel": channel.value, "devMode": False}


async def _register(db: AsyncSession, recipient: str, name: str, location: str) -> User:
    if not name.strip():
        raise ValidationError("Name is required", field="name")
    if not location.strip():
        raise ValidationError("Location is required", field="location")

    user = User(name=name.strip(), location=location.strip(), is_online=True, last_seen=utcnow())
    if is_email(recipient):
        user.email = recipient
    else:
        user.phone_number = recipient
    db.add(user)
    await db.flush()
    logger.info(f"Registered user {user.id} via {'email' if user.email else 'phone'}")
    return user


async def verify_otp(
    db: AsyncSession,
    *,
    raw_recipient: str,
    code: str,
    name: str | None = None,
    location: str | None = None,
) -> dict:
    """
    Returns one of:
        {"user": User, "token": str, "isNewUser": bool}
        {"requiresProfile": True, "signupToken": str, "recipient": str}
    """
    recipient = normalize_recipient(raw_recipient)
    if not otp_store.verify(recipient, code):
        raise ValidationError("Invalid or expired verification code", field="code")

    user = await find_user_by_recipient(db, recipient)
    if user is not None:
        user.is_online = True
        user.last_seen = utcnow()
        session = await create_session(db, user)
        return {"user": user, "token": session.token, "isNewUser": False}

    if name and location:
        user = await _register(db, recipient, name, location)
        session = await create_session(db, user)
        return {"user": user, "token": session.token, "isNewUser": True}

    channel = OtpChannel.EMAIL if is_email(recipient) else OtpChannel.WHATSAPP
    return {
        "requiresProfile": True,
        "signupToken": issue_signup_token(recipient=recipient, channel=channel.value),
        "recipient": recipient,
    }


async def complete_signup(db: AsyncSession, *, signup_token: str, name: str, location: str) -> dict:
    payload = decode_signup_token(signup_token)
    recipient = payload["sub"]

    if await find_user_by_recipient(db, recipient) is not None:
        raise ConflictError("An account already exists for this phone number or email")

    user = await _register(db, recipient, name, location)
    session = await create_session(db, user)
    return {"user": user, "token": session.token}


async def logout(db: AsyncSession, *, user: User, token: str) -> None:
    await revoke_session(db, token)
    user.is_online = False
    user.last_seen = utcnow()
    await db.flush()
