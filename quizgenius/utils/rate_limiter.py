"""
Rate limiting for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict
import logging

from quizgenius.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding window rate limiter

    Quiz generation calls a paid model, so limits apply per client across
    every endpoint. Production with several workers needs a shared store.
    """

    EXEMPT_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {client_id: timestamps of requests inside the last hour}
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        """User id set by authentication, else the IP address"""
        # Client-supplied headers are never trusted here
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def reset(self) -> None:
        self.history.clear()

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps older than an hour and clients left with none"""
        cutoff = now - 3600
        for client_id in list(self.history.keys()):
            history = self.history[client_id]
            while history and history[0] <= cutoff:
                history.popleft()
            if not history:
                del self.history[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Record a request and reject it when a limit is exceeded

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        if request.url.path in self.EXEMPT_PATHS:
            return

        client_id = self._get_client_id(request)
        now = time.time()

        self._cleanup_old_entries(now)
        history = self.history[client_id]

        minute_requests = sum(1 for ts in history if ts > now - 60)
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {self.requests_per_minute} requests per minute",
                    "retry_after": 60
                }
            )

        if len(history) >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {self.requests_per_hour} requests per hour",
                    "retry_after": 3600
                }
            )

        history.append(now)
        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests + 1}, hour: {len(history)})")


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
