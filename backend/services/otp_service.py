"""
OTP store: one-time sign-in codes.

Codes are 6 random digits kept in a process-local dict keyed by the
normalized recipient (phone or email). Each record carries its expiry;
expiry is checked on read and an expired record is purged at that moment.
A successful verification deletes the record, so a code works once.

Records live only in memory and codes are stored as issued, so a restart
invalidates outstanding codes.
"""
import logging
import secrets
import time
from dataclasses import dataclass

from config import settings

logger = logging.getLogger(__name__)


@dataclass
class OtpRecord:
    code: str
    expires_at: float
    channel: str


class OtpStore:
    """In-memory code store; expiry is checked on read and swept on issue."""

    def __init__(self):
        self._records: dict[str, OtpRecord] = {}

    def issue(self, recipient: str, channel: str, ttl_seconds: int | None = None) -> str:
        """Generate a fresh code for ``recipient``, replacing any previous one."""
        self._purge_expired()
        ttl = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_minutes * 60
        code = f"{100000 + secrets.randbelow(900000)}"
        self._records[recipient] = OtpRecord(
            code=code,
            expires_at=time.time() + ttl,
            channel=channel,
        )
        return code

    def verify(self, recipient: str, code: str) -> bool:
        """
        Check ``code`` for ``recipient``.

        Returns False when there is no record, the record expired (it is
        purged) or the code does not match (the record is kept so the user
        can retry until expiry). On a match the record is deleted.
        """
        record = self._records.get(recipient)
        if record is None:
            return False

        if record.expires_at <= time.time():
            del self._records[recipient]
            logger.info(f"Expired OTP purged for {recipient[:4]}***")
            return False

        if not secrets.compare_digest(record.code, str(code).strip()):
            return False

        del self._records[recipient]
        return True

    def _purge_expired(self) -> None:
        now = time.time()
        expired = [key for key, record in self._records.items() if record.expires_at <= now]
        for key in expired:
            del self._records[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired OTP records")

    def discard(self, recipient: str) -> None:
        self._records.pop(recipient, None)

    def peek(self, recipient: str) -> OtpRecord | None:
        """Current record without side effects (dev tooling and tests)."""
        return self._records.get(recipient)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


# Global store instance
otp_store = OtpStore()
