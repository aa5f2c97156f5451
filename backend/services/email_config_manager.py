"""
Admin-editable email configuration, persisted as JSON.

Lets an admin set Gmail or SendGrid credentials from the dashboard when the
deployment has no email environment variables. Environment variables always
win over this file (see email_service._resolve_credentials).

File layout:
    {
      "service": "gmail" | "sendgrid",
      "gmail": {"user": "", "password": ""},
      "sendgrid": {"apiKey": ""},
      "fromEmail": "noreply@bizchat.com",
      "isConfigured": false,
      "lastUpdated": "<iso timestamp>"
    }
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default_config() -> dict:
    return {
        "service": "gmail",
        "gmail": {"user": "", "password": ""},
        "sendgrid": {"apiKey": ""},
        "fromEmail": settings.from_email,
        "isConfigured": False,
        "lastUpdated": _now_iso(),
    }


class EmailConfigManager:
    def __init__(self, path: Optional[str] = None):
        self._path = path

    @property
    def path(self) -> str:
        return self._path or settings.email_config_file

    def ensure(self) -> None:
        """Create the config file with defaults if it does not exist."""
        if os.path.exists(self.path):
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._write(_default_config())
        logger.info(f"Created default email config at {self.path}")

    def read(self) -> dict:
        self.ensure()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Email config unreadable, using defaults: {e}")
            return _default_config()
        return {**_default_config(), **data}

    def _write(self, config: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(config, f, ensure_ascii=False, indent=2)

    def save(self, config: dict) -> dict:
        self.ensure()
        config = {**config, "lastUpdated": _now_iso()}
        self._write(config)
        return config

    def update_gmail_config(self, user: str, password: str, from_email: Optional[str] = None) -> dict:
        config = self.read()
        config["service"] = "gmail"
        config["gmail"] = {"user": user, "password": password}
        config["fromEmail"] = from_email or user
        config["isConfigured"] = bool(user and password)
        logger.info(f"Gmail email config updated for {user}")
        return self.save(config)

    def update_sendgrid_config(self, api_key: str, from_email: str) -> dict:
        config = self.read()
        config["service"] = "sendgrid"
        config["sendgrid"] = {"apiKey": api_key}
        config["fromEmail"] = from_email
        config["isConfigured"] = bool(api_key and from_email)
        logger.info("SendGrid email config updated")
        return self.save(config)

    def get_email_credentials(self) -> dict:
        """Credentials stored in the file, in the shape email_service expects."""
        config = self.read()
        return {
            "sendgrid_api_key": config["sendgrid"].get("apiKey", "") if config["service"] == "sendgrid" else "",
            "gmail_user": config["gmail"].get("user", "") if config["service"] == "gmail" else "",
            "gmail_password": config["gmail"].get("password", "") if config["service"] == "gmail" else "",
            "from_email": config.get("fromEmail") or settings.from_email,
        }

    def get_status(self) -> dict:
        """Configuration summary with secrets removed (safe to return to admins)."""
        config = self.read()
        return {
            "service": config["service"],
            "isConfigured": config["isConfigured"],
            "fromEmail": config["fromEmail"],
            "gmailUser": config["gmail"].get("user", ""),
            "hasGmailPassword": bool(config["gmail"].get("password")),
            "hasSendGridKey": bool(config["sendgrid"].get("apiKey")),
            "lastUpdated": config["lastUpdated"],
            "envOverride": bool(
                settings.sendgrid_api_key or (settings.gmail_user and settings.gmail_app_password)
            ),
        }


email_config_manager = EmailConfigManager()
