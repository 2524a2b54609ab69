"""
Rate limiting for topic submissions, backed by Redis counters
"""
import time
from fastapi import Request
import logging

from app.exceptions import RateLimitError
from app.utils.cache import CacheStore

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window rate limiter

    One counter per client per window, stored in Redis so every API
    process sees the same counts. Counters expire with their window.
    """

    KEY_PREFIX = "ratelimit"

    def __init__(
        self,
        store: CacheStore,
        scope: str,
        requests_per_minute: int = 10,
        requests_per_hour: int = 100
    ):
        self.store = store
        self.scope = scope
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

        return request.client.host if request.client else "unknown"

    def _window_key(self, client_id: str, window_seconds: int, now: float) -> str:
        window = int(now // window_seconds)
        return f"{self.KEY_PREFIX}:{self.scope}:{client_id}:{window_seconds}:{window}"

    def check(self, client_id: str) -> None:
        """
        Count one request for client_id

        Raises:
            RateLimitError: minute or hour limit exceeded
        """
        now = time.time()

        for limit, window_seconds, label in (
            (self.requests_per_minute, 60, "minute"),
            (self.requests_per_hour, 3600, "hour"),
        ):
            count = self.store.incr_window(self._window_key(client_id, window_seconds, now), window_seconds)
            if count > limit:
                logger.warning(f"Rate limit exceeded ({label}): {client_id} on {self.scope}")
                raise RateLimitError(
                    f"Too many requests. Limit: {limit} requests per {label}",
                    retry_after=window_seconds
                )

        logger.debug(f"Rate limit check passed: {client_id} on {self.scope}")

    def __call__(self, request: Request) -> None:
        """FastAPI dependency form; sync so it runs in the threadpool"""
        self.check(self._get_client_id(request))
