"""
Configuration management for the BizChat API.

Loads settings from .env via pydantic-settings.

Notes:
    - validate_production_settings() enforces strict CORS and a JWT secret
      in production and warns about insecure settings elsewhere.
    - Gmail credentials are also accepted under the legacy EMAIL_USER /
      EMAIL_APP_PASSWORD names used by older deployments.
"""
import logging

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    app_name: str = "BizChat"

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/bizchat.db"
    migrations_dir: str = "migrations"

    # ── Auth ────────────────────────────────────────────────────────
    # Sessions are opaque tokens stored in the DB; the JWT secret signs
    # the short-lived signup token handed out after OTP verification.
    jwt_secret: str = ""
    jwt_issuer: str = "bizchat-api"
    signup_token_ttl_minutes: int = 15
    session_ttl_days: int = 7
    admin_session_ttl_days: int = 30

    # ── OTP ─────────────────────────────────────────────────────────
    otp_ttl_minutes: int = 10
    otp_max_sends_per_recipient: int = 5
    otp_send_window_seconds: int = 900

    # ── Email (SendGrid first, Gmail SMTP otherwise) ────────────────
    sendgrid_api_key: str = ""
    from_email: str = "noreply@bizchat.com"
    gmail_user: str = Field("", validation_alias=AliasChoices("gmail_user", "email_user"))
    gmail_app_password: str = Field(
        "", validation_alias=AliasChoices("gmail_app_password", "email_app_password")
    )
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    email_config_file: str = "data/email-config.json"

    # ── WhatsApp (WAWP gateway) ─────────────────────────────────────
    wawp_instance_id: str = ""
    wawp_access_token: str = ""
    wawp_api_url: str = "https://wawp.net/wp-json/awp/v1/send"

    # ── Media (Cloudinary, local fallback) ──────────────────────────
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "bizchat"
    upload_dir: str = "uploads"
    max_upload_mb: int = 50

    # ── Admin ───────────────────────────────────────────────────────
    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "BizChat Admin"
    admin_config_file: str = "data/admin.json"

    # ── Stories ─────────────────────────────────────────────────────
    story_ttl_hours: int = 24

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:5000,http://127.0.0.1:5000,http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
        populate_by_name=True,
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cloudinary_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to sign signup tokens after OTP verification."
                )
            if not (self.admin_email and self.admin_password):
                logger.warning(
                    "ADMIN_EMAIL / ADMIN_PASSWORD not set; admin login relies on admin.json"
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if not self.jwt_secret:
                warnings.append("JWT_SECRET not set (signup tokens use an insecure dev secret)")
            if not (self.wawp_instance_id and self.wawp_access_token):
                warnings.append("WAWP not configured (WhatsApp OTPs are logged, not sent)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
