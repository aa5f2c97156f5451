"""
Session authentication.

Clients send ``Authorization: Bearer <token>``. Tokens are opaque random
strings stored in the ``sessions`` table with an expiry:
  - user sessions live ``SESSION_TTL_DAYS`` (7 by default)
  - admin sessions live ``ADMIN_SESSION_TTL_DAYS`` (30) and their token
    starts with ``admin-`` so the admin guard can reject user tokens early

Between OTP verification and profile completion the client holds a
short-lived signup token instead: an HS256 JWT whose subject is the
verified recipient (phone or email). It proves the OTP step happened
without creating a user row.
"""
import logging
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt
from fastapi import Depends, Header
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from db_models import Session, User, utcnow
from domain.constants import ADMIN_TOKEN_PREFIX
from domain.errors import PermissionDeniedError, UnauthorizedError

logger = logging.getLogger(__name__)

_DEV_SIGNUP_SECRET = "bizchat-dev-signup-secret"
SIGNUP_PURPOSE = "signup"


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


# ── Signup tokens (JWT) ─────────────────────────────────────────────

def _signing_secret() -> str:
    if settings.jwt_secret:
        return settings.jwt_secret
    if settings.environment == "production":
        raise UnauthorizedError("Server auth misconfigured (JWT secret missing).")
    return _DEV_SIGNUP_SECRET


def issue_signup_token(*, recipient: str, channel: str) -> str:
    now = datetime.now(timezone.utc)
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.signup_token_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": recipient,
        "purpose": SIGNUP_PURPOSE,
        "channel": channel,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _signing_secret(), algorithm="HS256")


def decode_signup_token(token: str) -> dict:
    """Return the token payload, or raise 403 if it is invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            _signing_secret(),
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise PermissionDeniedError("Signup token expired. Verify your code again.")
    except jwt.InvalidTokenError:
        raise PermissionDeniedError("Invalid signup token.")
    if payload.get("purpose") != SIGNUP_PURPOSE:
        raise PermissionDeniedError("Invalid signup token.")
    return payload


# ── Sessions ────────────────────────────────────────────────────────

async def create_session(db: AsyncSession, user: User, *, admin: bool = False) -> Session:
    """Persist a new bearer session for ``user`` (flush only, caller commits)."""
    if admin:
        token = f"{ADMIN_TOKEN_PREFIX}{secrets.token_urlsafe(32)}"
        ttl = timedelta(days=settings.admin_session_ttl_days)
    else:
        token = secrets.token_urlsafe(32)
        ttl = timedelta(days=settings.session_ttl_days)

    session = Session(
        user_id=user.id,
        token=token,
        is_admin_session=admin,
        expires_at=utcnow() + ttl,
    )
    db.add(session)
    await db.flush()
    return session


async def revoke_session(db: AsyncSession, token: str) -> None:
    await db.execute(delete(Session).where(Session.token == token))


async def _resolve_session(db: AsyncSession, token: str) -> tuple[Session, User]:
    res = await db.execute(
        select(Session, User)
        .join(User, User.id == Session.user_id)
        .where(Session.token == token)
    )
    row = res.first()
    if not row:
        raise UnauthorizedError("Invalid or expired session")

    session, user = row
    if session.expires_at <= utcnow():
        await db.delete(session)
        await db.commit()
        raise UnauthorizedError("Session expired. Please sign in again.")
    return session, user


async def get_bearer_token(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Authentication required. Provide Authorization: Bearer <token>.")
    return token


async def require_auth(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency returning the authenticated user."""
    _, user = await _resolve_session(db, token)
    return user


async def optional_auth(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like require_auth, but anonymous callers get None instead of 401."""
    token = _parse_bearer_token(authorization)
    if not token:
        return None
    try:
        _, user = await _resolve_session(db, token)
    except UnauthorizedError:
        return None
    return user


async def require_admin(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency for /api/admin/* routes.

    The token must carry the admin prefix and belong to a live session whose
    user is an admin. The configured admin account is promoted on the fly
    if its flag was lost (e.g. the row was recreated by a signup).
    """
    if not token.startswith(ADMIN_TOKEN_PREFIX):
        raise PermissionDeniedError("Admin token required")

    _, user = await _resolve_session(db, token)

    if not user.is_admin:
        from services import admin_manager

        admin_email = admin_manager.get_admin_credentials().email
        if user.email and user.email.lower() == admin_email.lower():
            user.is_admin = True
            await db.commit()
            logger.info(f"Promoted configured admin account {user.email} (user {user.id})")
        else:
            logger.warning(f"Non-admin user {user.id} presented an admin token")
            raise PermissionDeniedError("Admin privileges required")
    return user
