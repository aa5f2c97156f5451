"""
Input validation utilities for the BizChat API.

Phone numbers are normalized to digits with an optional leading '+', emails
are lower-cased. The normalized value is the OTP store key and the value
persisted on the user row, so both sides must go through these helpers.
"""
import re

from domain.errors import ValidationError

_PHONE_STRIP = re.compile(r"[\s\-().]")
_PHONE_RE = re.compile(r"^\+?\d{8,15}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(phone: str) -> str:
    """
    Normalize and validate a phone number.

    Raises:
        ValidationError(400) if the number is not 8-15 digits
    """
    if not phone:
        raise ValidationError("Phone number is required", field="phone")
    cleaned = _PHONE_STRIP.sub("", phone.strip())
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if not _PHONE_RE.match(cleaned):
        raise ValidationError(f"Invalid phone number: {phone}", field="phone")
    return cleaned


def normalize_email(email: str) -> str:
    """Lower-case and validate an email address."""
    if not email:
        raise ValidationError("Email is required", field="email")
    cleaned = email.strip().lower()
    if not _EMAIL_RE.match(cleaned):
        raise ValidationError(f"Invalid email address: {email}", field="email")
    return cleaned


def is_email(recipient: str) -> bool:
    return "@" in recipient


def normalize_recipient(recipient: str) -> str:
    """Normalize an OTP recipient, which is either an email or a phone number."""
    return normalize_email(recipient) if is_email(recipient) else normalize_phone(recipient)
