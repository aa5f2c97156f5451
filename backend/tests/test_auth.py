"""
Tests for session authentication middleware.

Tests: bearer parsing, signup tokens, require_auth, require_admin.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import time
from datetime import timedelta

import jwt
import pytest
from sqlalchemy import select

from config import settings
from db_models import Session, utcnow
from domain.errors import PermissionDeniedError, UnauthorizedError
from middleware.auth import (
    _parse_bearer_token,
    create_session,
    decode_signup_token,
    issue_signup_token,
    optional_auth,
    require_admin,
    require_auth,
)


class TestBearerParsing:

    @pytest.mark.unit
    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("Bearer   ", None),
        ("Token abc", None),
        ("abc", None),
        (None, None),
    ])
    def test_parse(self, header, expected):
        assert _parse_bearer_token(header) == expected


class TestSignupToken:

    @pytest.mark.unit
    def test_round_trip_carries_recipient(self):
        token = issue_signup_token(recipient="+966500000001", channel="whatsapp")
        payload = decode_signup_token(token)
        assert payload["sub"] == "+966500000001"
        assert payload["channel"] == "whatsapp"

    @pytest.mark.unit
    def test_expired_token_is_rejected(self):
        token = jwt.encode(
            {"iss": settings.jwt_issuer, "sub": "a@b.com", "purpose": "signup", "iat": 1, "exp": 2},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(PermissionDeniedError, match="expired"):
            decode_signup_token(token)

    @pytest.mark.unit
    def test_wrong_purpose_is_rejected(self):
        now = int(time.time())
        token = jwt.encode(
            {"iss": settings.jwt_issuer, "sub": "a@b.com", "purpose": "session", "iat": now, "exp": now + 600},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(PermissionDeniedError):
            decode_signup_token(token)

    @pytest.mark.unit
    def test_tampered_token_is_rejected(self):
        token = issue_signup_token(recipient="a@b.com", channel="email")
        with pytest.raises(PermissionDeniedError):
            decode_signup_token(token[:-2] + ("AA" if token[-2:] != "AA" else "BB"))


class TestRequireAuth:

    @pytest.mark.asyncio
    async def test_valid_session_returns_user(self, db_session, alice):
        session = await create_session(db_session, alice)
        user = await require_auth(token=session.token, db=db_session)
        assert user.id == alice.id

    @pytest.mark.asyncio
    async def test_user_session_ttl_is_seven_days(self, db_session, alice):
        session = await create_session(db_session, alice)
        delta = session.expires_at - utcnow()
        assert timedelta(days=6, hours=23) < delta <= timedelta(days=7)
        assert not session.token.startswith("admin-")

    @pytest.mark.asyncio
    async def test_unknown_token_raises_401(self, db_session):
        with pytest.raises(UnauthorizedError):
            await require_auth(token="nope", db=db_session)

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted(self, db_session, alice):
        session = await create_session(db_session, alice)
        session.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()

        with pytest.raises(UnauthorizedError, match="expired"):
            await require_auth(token=session.token, db=db_session)
        res = await db_session.execute(select(Session).where(Session.token == session.token))
        assert res.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_optional_auth_anonymous(self, db_session):
        assert await optional_auth(authorization=None, db=db_session) is None
        assert await optional_auth(authorization="Bearer bogus", db=db_session) is None


class TestRequireAdmin:

    @pytest.mark.asyncio
    async def test_admin_session_accepted(self, db_session, admin_user):
        session = await create_session(db_session, admin_user, admin=True)
        assert session.token.startswith("admin-")
        user = await require_admin(token=session.token, db=db_session)
        assert user.id == admin_user.id

    @pytest.mark.asyncio
    async def test_user_token_rejected_with_403(self, db_session, admin_user):
        session = await create_session(db_session, admin_user)
        with pytest.raises(PermissionDeniedError):
            await require_admin(token=session.token, db=db_session)

    @pytest.mark.asyncio
    async def test_non_admin_with_admin_token_rejected(self, db_session, alice):
        session = await create_session(db_session, alice, admin=True)
        with pytest.raises(PermissionDeniedError):
            await require_admin(token=session.token, db=db_session)

    @pytest.mark.asyncio
    async def test_configured_admin_email_is_promoted(self, db_session, make_user):
        user = await make_user(name="Owner", email="admin@bizchat.com", phone_number=None)
        session = await create_session(db_session, user, admin=True)
        result = await require_admin(token=session.token, db=db_session)
        assert result.is_admin is True
