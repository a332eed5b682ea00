# =============================================================================
# app/rate_limit.py - In-Memory Rate Limiting
# =============================================================================
# Fixed-window request counters, one RateLimiter per policy:
# - llm:  LLM-backed endpoints (snapshot generation, drift, task creation)
# - api:  General authenticated endpoints
# - auth: Unauthenticated auth endpoints, keyed by client IP
#
# Counters live in process memory, so limits apply per worker.
#
# Usage:
#   @router.post("/{project_id}/generate")
#   async def generate(user: AuthUser = Depends(limit_llm)):
#       ...
# =============================================================================

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Request

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

MINUTE = 60
AUTH_WINDOW_SECONDS = 15 * MINUTE


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # unix seconds
    retry_after: int | None = None


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window counter keyed by caller.

    Example:
        limiter = RateLimiter("llm", max_requests=5, window_seconds=60)
        result = limiter.hit("user-123")
        if not result.allowed:
            ...
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def key_for(self, identifier: str) -> str:
        return f"{self.name}:{identifier}"

    def hit(self, identifier: str) -> RateLimitResult:
        """Count one request for `identifier` and report whether it is allowed."""
        now = self._clock()
        key = self.key_for(identifier)

        with self._lock:
            self._prune(now)
            window = self._windows.get(key)

            if window is None:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
                return RateLimitResult(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - 1,
                    reset_at=window.reset_at,
                )

            window.count += 1
            if window.count > self.max_requests:
                return RateLimitResult(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=window.reset_at,
                    retry_after=math.ceil(window.reset_at - now),
                )

            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - window.count,
                reset_at=window.reset_at,
            )

    def check(self, identifier: str) -> RateLimitResult:
        """
        Like hit(), but raise when the limit is exceeded.

        Raises:
            RateLimitExceededError: 429 with Retry-After headers
        """
        result = self.hit(identifier)
        if not result.allowed:
            logger.warning(f"Rate limit '{self.name}' exceeded for {identifier}")
            raise RateLimitExceededError(
                retry_after=result.retry_after,
                limit=result.limit,
                remaining=result.remaining,
                reset_at=result.reset_at,
            )
        return result

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]


# =============================================================================
# Limiters
# =============================================================================

llm_limiter = RateLimiter("llm", settings.LLM_RATE_LIMIT_PER_MINUTE, MINUTE)
api_limiter = RateLimiter("api", settings.API_RATE_LIMIT_PER_MINUTE, MINUTE)
auth_limiter = RateLimiter("auth", settings.AUTH_RATE_LIMIT_PER_WINDOW, AUTH_WINDOW_SECONDS)

ALL_LIMITERS = (llm_limiter, api_limiter, auth_limiter)


def client_ip(request: Request) -> str:
    """Best guess at the caller's IP, honoring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# =============================================================================
# Dependencies
# =============================================================================

async def limit_llm(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Authenticate, then apply the LLM limit per user."""
    llm_limiter.check(str(user.id))
    return user


async def limit_api(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Authenticate, then apply the general API limit per user."""
    api_limiter.check(str(user.id))
    return user


async def limit_auth(request: Request) -> None:
    """Apply the auth limit per client IP (no authentication required)."""
    auth_limiter.check(client_ip(request))
