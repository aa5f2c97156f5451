"""
Transactional email: SendGrid first, Gmail SMTP otherwise.

Provider selection happens per send from whichever credentials are present:
  1. SENDGRID_API_KEY                      -> SendGrid v3 REST API (httpx)
  2. GMAIL_USER + GMAIL_APP_PASSWORD       -> smtp.gmail.com:587 STARTTLS
  3. the admin-managed email-config.json   -> same order, file credentials
There is no fallback at send time: if the chosen provider fails, the send
fails. Every failure is logged and reported as False; nothing is raised to
callers.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx

from config import settings
from services.async_executor import run_blocking
from services.email_config_manager import EmailConfigManager, email_config_manager

logger = logging.getLogger(__name__)

SENDGRID_BASE = "https://api.sendgrid.com/v3"
OTP_SUBJECT = "رمز التحقق - BizChat"


def render_otp_email(code: str) -> str:
    return f"""
<html dir="rtl" lang="ar">
<body style="font-family: Tahoma, Arial, sans-serif; background: #f5f5f5; padding: 20px;">
  <div style="max-width: 480px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px; text-align: center;">
    <h2 style="color: #075e54; margin-top: 0;">BizChat</h2>
    <p style="font-size: 16px; color: #333;">رمز التحقق الخاص بك هو:</p>
    <div style="font-size: 36px; font-weight: bold; letter-spacing: 8px; color: #128c7e; margin: 24px 0;">{code}</div>
    <p style="font-size: 14px; color: #666;">هذا الرمز صالح لمدة {settings.otp_ttl_minutes} دقائق.</p>
    <p style="font-size: 12px; color: #999;">إذا لم تطلب هذا الرمز، يمكنك تجاهل هذه الرسالة.</p>
  </div>
</body>
</html>
"""


class EmailService:
    def __init__(self, config_manager: Optional[EmailConfigManager] = None):
        self._config_manager = config_manager or email_config_manager

    def _resolve_credentials(self) -> dict:
        """Environment credentials, or the admin-managed file when env has none."""
        if settings.sendgrid_api_key or (settings.gmail_user and settings.gmail_app_password):
            return {
                "sendgrid_api_key": settings.sendgrid_api_key,
                "gmail_user": settings.gmail_user,
                "gmail_password": settings.gmail_app_password,
                "from_email": settings.from_email,
                "source": "env",
            }
        creds = self._config_manager.get_email_credentials()
        creds["source"] = "file"
        return creds

    def get_available_service(self) -> str:
        """'SendGrid', 'Gmail' or 'None'."""
        creds = self._resolve_credentials()
        if creds["sendgrid_api_key"]:
            return "SendGrid"
        if creds["gmail_user"] and creds["gmail_password"]:
            return "Gmail"
        return "None"

    async def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
        creds = self._resolve_credentials()
        if creds["sendgrid_api_key"]:
            return await self._send_sendgrid(creds, to_email, subject, html_body)
        if creds["gmail_user"] and creds["gmail_password"]:
            return await self._send_gmail(creds, to_email, subject, html_body)
        logger.error(f"No email service configured; cannot send '{subject}' to {to_email}")
        return False

    async def send_otp(self, to_email: str, code: str) -> bool:
        return await self.send_email(to_email, OTP_SUBJECT, render_otp_email(code))

    async def _send_sendgrid(self, creds: dict, to_email: str, subject: str, html_body: str) -> bool:
        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": creds["from_email"], "name": settings.app_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_body}],
        }
        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(
                    f"{SENDGRID_BASE}/mail/send",
                    headers={"Authorization": f"Bearer {creds['sendgrid_api_key']}"},
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"SendGrid send to {to_email} failed: {e}")
            return False
        logger.info(f"Email sent via SendGrid to {to_email}")
        return True

    def _smtp_send(self, creds: dict, to_email: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.app_name} <{creds['from_email'] or creds['gmail_user']}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20) as server:
            server.starttls()
            server.login(creds["gmail_user"], creds["gmail_password"])
            server.send_message(msg)

    async def _send_gmail(self, creds: dict, to_email: str, subject: str, html_body: str) -> bool:
        try:
            await run_blocking(self._smtp_send, creds, to_email, subject, html_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Gmail SMTP send to {to_email} failed: {type(e).__name__}: {e}")
            return False
        logger.info(f"Email sent via Gmail to {to_email}")
        return True

    def _smtp_login(self, creds: dict) -> None:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20) as server:
            server.starttls()
            server.login(creds["gmail_user"], creds["gmail_password"])

    async def test_connection(self) -> dict:
        """Check the active provider's credentials without sending mail."""
        creds = self._resolve_credentials()
        service = self.get_available_service()

        if service == "SendGrid":
            try:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(
                        f"{SENDGRID_BASE}/scopes",
                        headers={"Authorization": f"Bearer {creds['sendgrid_api_key']}"},
                    )
                    response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"SendGrid connection test failed: {e}")
                return {"success": False, "service": service, "message": f"SendGrid rejected the API key: {e}"}
            return {"success": True, "service": service, "message": "SendGrid API key is valid"}

        if service == "Gmail":
            try:
                await run_blocking(self._smtp_login, creds)
            except (smtplib.SMTPException, OSError) as e:
                logger.error(f"Gmail connection test failed: {e}")
                return {"success": False, "service": service, "message": f"Gmail login failed: {e}"}
            return {"success": True, "service": service, "message": "Gmail SMTP login succeeded"}

        return {"success": False, "service": "None", "message": "No email service configured"}


email_service = EmailService()
