"""
In-memory rate limiting for OTP and admin login endpoints.

Sliding-window counters keyed by client IP + route, plus a per-recipient
counter so one phone number or inbox cannot be flooded with codes from
many IPs. Process-local, like the OTP store: a multi-worker deployment
needs a shared backend for both.
"""
import time
import logging
from collections import defaultdict

from fastapi import Request

from config import settings
from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    Tracks request timestamps per key.
    """

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._max_window = 0
        self._last_sweep = time.time()

    def _cleanup(self, key: str, window_seconds: int):
        now = time.time()
        self._max_window = max(self._max_window, window_seconds)
        if now - self._last_sweep >= self._max_window:
            self._sweep(now)

        cutoff = now - window_seconds
        hits = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if hits:
            self._requests[key] = hits
        else:
            self._requests.pop(key, None)

    def _sweep(self, now: float):
        """Drop keys whose newest hit is older than the longest window in use."""
        cutoff = now - self._max_window
        idle = [key for key, hits in self._requests.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._requests[key]
        self._last_sweep = now
        if idle:
            logger.debug(f"Rate limiter dropped {len(idle)} idle keys")

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a hit for ``key`` if it is under the limit.

        Returns:
            True if allowed, False if rate-limited
        """
        self._cleanup(key, window_seconds)

        if len(self._requests.get(key, ())) >= max_requests:
            return False

        self._requests[key].append(time.time())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        """Get the number of remaining requests in the current window."""
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests.get(key, ())))

    def reset(self):
        self._requests.clear()
        self._max_window = 0
        self._last_sweep = time.time()


# Global rate limiter instance
_limiter = RateLimiter()


def get_limiter() -> RateLimiter:
    return _limiter


def rate_limit(max_requests: int = 10, window_seconds: int = 60):
    """
    FastAPI dependency factory for per-IP rate limiting.

    Usage:
        @router.post("/send-otp")
        async def send_otp(body: SendOtpRequest, _=Depends(rate_limit(5, 300))):
            ...
    """
    async def _check_rate_limit(request: Request):
        client_ip = request.client.host if request.client else "unknown"
        route_path = request.url.path
        key = f"{client_ip}:{route_path}"

        if not _limiter.check(key, max_requests, window_seconds):
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {route_path} "
                f"({max_requests}/{window_seconds}s)"
            )
            raise RateLimitError(
                f"Rate limit exceeded. Maximum {max_requests} requests "
                f"per {window_seconds} seconds. Try again later.",
                details={"retryAfter": window_seconds, "limit": max_requests},
            )

    return _check_rate_limit


def check_recipient_limit(recipient: str) -> None:
    """Throttle OTP sends per normalized recipient."""
    max_sends = settings.otp_max_sends_per_recipient
    window = settings.otp_send_window_seconds
    if not _limiter.check(f"otp:{recipient}", max_sends, window):
        logger.warning(f"OTP send limit reached for {recipient[:4]}***")
        raise RateLimitError(
            f"Too many codes requested for this recipient. Try again in {window // 60} minutes.",
            details={"retryAfter": window, "limit": max_sends},
        )
