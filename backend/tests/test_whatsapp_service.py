"""
Tests for the WAWP WhatsApp gateway client.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from config import settings
from services import whatsapp_service


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "wawp_instance_id", "inst-1")
    monkeypatch.setattr(settings, "wawp_access_token", "tok-1")


class TestWhatsAppService:

    @pytest.mark.asyncio
    async def test_unconfigured_returns_false_without_request(self):
        get = AsyncMock()
        with patch("httpx.AsyncClient.get", get):
            assert await whatsapp_service.send_otp("+966500000001", "123456") is False
        get.assert_not_awaited()
        assert whatsapp_service.is_configured() is False

    @pytest.mark.asyncio
    async def test_sends_get_with_params(self, configured):
        response = MagicMock()
        response.raise_for_status = MagicMock()
        get = AsyncMock(return_value=response)
        with patch("httpx.AsyncClient.get", get):
            assert await whatsapp_service.send_otp("+966500000001", "123456") is True

        assert get.await_args.args[0] == settings.wawp_api_url
        params = get.await_args.kwargs["params"]
        assert params["instance_id"] == "inst-1"
        assert params["access_token"] == "tok-1"
        assert params["chatId"] == "966500000001"
        assert "123456" in params["message"]

    @pytest.mark.asyncio
    async def test_gateway_error_returns_false(self, configured):
        request = httpx.Request("GET", settings.wawp_api_url)
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "500", request=request, response=httpx.Response(500, request=request)
        )
        with patch("httpx.AsyncClient.get", AsyncMock(return_value=response)):
            assert await whatsapp_service.send_otp("+966500000001", "123456") is False

    @pytest.mark.unit
    def test_message_is_arabic_with_code(self):
        message = whatsapp_service.build_otp_message("654321")
        assert message.endswith("654321")
        assert "رمز التحقق" in message
