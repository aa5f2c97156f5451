"""
WhatsApp delivery through the WAWP gateway.

WAWP exposes a single GET endpoint that sends a text message from a linked
WhatsApp instance. Credentials: WAWP_INSTANCE_ID + WAWP_ACCESS_TOKEN.
"""
import logging

import httpx

from config import settings
from exceptions import ProviderNotConfiguredError

logger = logging.getLogger(__name__)

WAWP_TIMEOUT_SECONDS = 30.0


def _get_credentials() -> dict:
    missing = []
    if not settings.wawp_instance_id:
        missing.append("WAWP_INSTANCE_ID")
    if not settings.wawp_access_token:
        missing.append("WAWP_ACCESS_TOKEN")
    if missing:
        raise ProviderNotConfiguredError("WAWP", missing)
    return {
        "instance_id": settings.wawp_instance_id,
        "access_token": settings.wawp_access_token,
    }


def is_configured() -> bool:
    return bool(settings.wawp_instance_id and settings.wawp_access_token)


def build_otp_message(code: str) -> str:
    return f"رمز التحقق الخاص بك: {code}"


async def send_message(phone: str, message: str) -> bool:
    """
    Send a WhatsApp text message.

    Returns:
        True if the gateway accepted it, False if WAWP is not configured
        or the request failed (the failure is logged).
    """
    try:
        params = _get_credentials()
    except ProviderNotConfiguredError as e:
        logger.error(f"WhatsApp send skipped: {e}")
        return False

    params.update({"chatId": phone.lstrip("+"), "message": message})
    try:
        async with httpx.AsyncClient(timeout=WAWP_TIMEOUT_SECONDS) as client:
            response = await client.get(settings.wawp_api_url, params=params)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"WAWP send to {phone[:5]}*** failed: {e}")
        return False

    logger.info(f"WhatsApp message sent to {phone[:5]}***")
    return True


async def send_otp(phone: str, code: str) -> bool:
    return await send_message(phone, build_otp_message(code))
