"""
Admin account management.

Admin credentials are resolved in this order:
  1. ADMIN_EMAIL / ADMIN_PASSWORD (+ ADMIN_NAME) environment variables
  2. the JSON file at ADMIN_CONFIG_FILE ({"email", "password", "name"})
  3. built-in development defaults, never used in production
"""
import hmac
import json
import logging
import os
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import User, utcnow
from domain.errors import UnauthorizedError

logger = logging.getLogger(__name__)

DEV_ADMIN_EMAIL = "admin@bizchat.com"
DEV_ADMIN_PASSWORD = "admin123456"


@dataclass
class AdminCredentials:
    email: str
    password: str
    name: str
    source: str


def _read_admin_file() -> dict | None:
    path = settings.admin_config_file
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Admin config {path} unreadable: {e}")
        return None


def get_admin_credentials() -> AdminCredentials:
    if settings.admin_email and settings.admin_password:
        return AdminCredentials(
            email=settings.admin_email,
            password=settings.admin_password,
            name=settings.admin_name,
            source="env",
        )

    data = _read_admin_file()
    if data and data.get("email") and data.get("password"):
        return AdminCredentials(
            email=data["email"],
            password=data["password"],
            name=data.get("name") or settings.admin_name,
            source="file",
        )

    if settings.environment == "production":
        # No usable credentials: an empty password never validates.
        return AdminCredentials(email="", password="", name=settings.admin_name, source="none")

    return AdminCredentials(
        email=DEV_ADMIN_EMAIL,
        password=DEV_ADMIN_PASSWORD,
        name=settings.admin_name,
        source="default",
    )


def validate_credentials(email: str, password: str) -> bool:
    creds = get_admin_credentials()
    if not creds.password:
        return False
    email_ok = hmac.compare_digest(email.strip().lower().encode(), creds.email.lower().encode())
    password_ok = hmac.compare_digest(password.encode(), creds.password.encode())
    return email_ok and password_ok


async def ensure_admin_user(db: AsyncSession) -> User:
    """
    Return the admin user row, creating it on first login.

    Lookup is by the configured email first, then any existing admin. The
    found or created user always ends up with is_admin and is_verified set.
    """
    creds = get_admin_credentials()
    if not creds.email:
        raise UnauthorizedError("Admin account is not configured")

    res = await db.execute(select(User).where(User.email == creds.email.lower()))
    user = res.scalar_one_or_none()
    if user is None:
        res = await db.execute(select(User).where(User.is_admin == True).order_by(User.id).limit(1))  # noqa: E712
        user = res.scalar_one_or_none()

    if user is None:
        user = User(email=creds.email.lower(), name=creds.name, location="")
        db.add(user)
        logger.info(f"Created admin user {creds.email}")

    user.is_admin = True
    user.is_verified = True
    await db.flush()
    return user


async def update_last_login(db: AsyncSession, user: User) -> None:
    user.last_login_at = utcnow()
    user.is_online = True
    await db.flush()


def get_state() -> dict:
    """Non-secret summary for the admin health endpoint."""
    creds = get_admin_credentials()
    return {
        "configured": bool(creds.email and creds.password),
        "source": creds.source,
        "email": creds.email,
        "usingDefaults": creds.source == "default",
    }
