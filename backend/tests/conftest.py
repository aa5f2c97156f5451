"""
Pytest configuration and shared fixtures for BizChat tests.

Provides an in-memory SQLite session, an httpx client bound to the ASGI app
with get_db overridden, and factories for users, sessions, stores and
products.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from main import app
from middleware.auth import create_session
from middleware.rate_limit import get_limiter
from services.otp_service import otp_store

# ── Test Configuration ───────────────────────────────────────────────
# Set test-only values for settings that would normally come from .env
if not settings.jwt_secret:
    settings.jwt_secret = "test-jwt-secret-for-pytest-only"
settings.environment = "development"


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Fresh limiter/OTP store and no provider credentials leaking in from the environment."""
    get_limiter().reset()
    otp_store.clear()
    monkeypatch.setattr(settings, "email_config_file", str(tmp_path / "email-config.json"))
    monkeypatch.setattr(settings, "admin_config_file", str(tmp_path / "admin.json"))
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    for name in (
        "sendgrid_api_key", "gmail_user", "gmail_app_password",
        "wawp_instance_id", "wawp_access_token",
        "cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret",
        "admin_email", "admin_password",
    ):
        monkeypatch.setattr(settings, name, "")
    yield
    get_limiter().reset()
    otp_store.clear()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app with the in-memory database.

    ASGITransport does not run the lifespan, so nothing is seeded: unknown
    feature flags count as enabled.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: await make_user(name=..., phone_number=...)."""
    from db_models import User

    counter = {"n": 0}

    async def _make(**fields):
        counter["n"] += 1
        fields.setdefault("name", f"User {counter['n']}")
        fields.setdefault("location", "Riyadh")
        fields.setdefault("phone_number", f"+96650000{counter['n']:04d}")
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers(db_session: AsyncSession):
    """Factory: await auth_headers(user, admin=False) -> {"Authorization": ...}."""
    async def _headers(user, admin: bool = False) -> dict:
        session = await create_session(db_session, user, admin=admin)
        await db_session.commit()
        return {"Authorization": f"Bearer {session.token}"}

    return _headers


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user(name="Alice", phone_number="+966500000001")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user(name="Bob", phone_number="+966500000002")


@pytest_asyncio.fixture
async def admin_user(make_user):
    return await make_user(name="Admin", email="admin@bizchat.com", phone_number=None, is_admin=True)


@pytest_asyncio.fixture
async def store(db_session: AsyncSession, bob):
    """Approved store owned by Bob."""
    from db_models import Vendor

    vendor = Vendor(user_id=bob.id, business_name="Bob's Bakery", display_name="Bob's Bakery", status="approved")
    db_session.add(vendor)
    await db_session.commit()
    await db_session.refresh(vendor)
    return vendor


@pytest_asyncio.fixture
async def product(db_session: AsyncSession, store):
    """Product with five units in stock at Bob's store."""
    from db_models import Product

    item = Product(vendor_id=store.id, name="Date cake", price=12.5, stock_quantity=5)
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item
