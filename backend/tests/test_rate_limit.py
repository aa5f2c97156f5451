"""
Tests for the in-memory rate limiter guarding OTP and admin login.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import time
from unittest.mock import MagicMock

import pytest

from config import settings
from domain.errors import RateLimitError
from middleware.rate_limit import RateLimiter, check_recipient_limit, get_limiter, rate_limit


class TestRateLimiter:

    @pytest.mark.unit
    def test_window_fills_then_blocks(self):
        limiter = RateLimiter()
        results = [limiter.check("10.0.0.1:/api/auth/send-otp", 3, 300) for _ in range(4)]
        assert results == [True, True, True, False]
        assert limiter.remaining("10.0.0.1:/api/auth/send-otp", 3, 300) == 0

    @pytest.mark.unit
    def test_keys_do_not_share_budget(self):
        limiter = RateLimiter()
        assert limiter.check("otp:+966500000001", 1, 60) is True
        assert limiter.check("otp:+966500000001", 1, 60) is False
        assert limiter.check("otp:user@bizchat.com", 1, 60) is True

    @pytest.mark.unit
    def test_hits_outside_window_expire(self):
        limiter = RateLimiter()
        stale = time.time() - 600
        limiter._requests["10.0.0.1:/api/admin/login"] = [stale, stale + 1]
        assert limiter.remaining("10.0.0.1:/api/admin/login", 5, 300) == 5
        assert "10.0.0.1:/api/admin/login" not in limiter._requests

    @pytest.mark.unit
    def test_idle_keys_are_swept(self):
        """Keys of clients that never come back are dropped."""
        limiter = RateLimiter()
        limiter.check("10.0.0.9:/api/auth/send-otp", 3, 60)
        limiter._requests["10.0.0.9:/api/auth/send-otp"] = [time.time() - 120]
        limiter._last_sweep = time.time() - 120
        assert limiter.check("10.0.0.2:/api/auth/send-otp", 3, 60) is True
        assert list(limiter._requests) == ["10.0.0.2:/api/auth/send-otp"]

    @pytest.mark.unit
    def test_shared_instance_reset(self):
        get_limiter().check("a", 1, 60)
        get_limiter().reset()
        assert get_limiter().check("a", 1, 60) is True


class TestRateLimitDependency:

    @staticmethod
    def _request(ip: str, path: str = "/api/auth/send-otp"):
        request = MagicMock()
        request.client.host = ip
        request.url.path = path
        return request

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_raises_429_after_limit(self):
        check = rate_limit(max_requests=2, window_seconds=60)
        await check(self._request("10.0.0.1"))
        await check(self._request("10.0.0.1"))
        with pytest.raises(RateLimitError) as exc_info:
            await check(self._request("10.0.0.1"))
        assert exc_info.value.status_code == 429
        assert exc_info.value.details["limit"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ips_are_independent(self):
        check = rate_limit(max_requests=1, window_seconds=60)
        await check(self._request("10.0.0.1"))
        await check(self._request("10.0.0.2"))


class TestRecipientLimit:

    @pytest.mark.unit
    def test_recipient_throttled_after_max_sends(self, monkeypatch):
        monkeypatch.setattr(settings, "otp_max_sends_per_recipient", 2)
        check_recipient_limit("+966500000001")
        check_recipient_limit("+966500000001")
        with pytest.raises(RateLimitError):
            check_recipient_limit("+966500000001")
        check_recipient_limit("+966500000002")
