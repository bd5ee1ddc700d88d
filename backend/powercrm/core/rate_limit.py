"""Per-client request throttling applied as a router dependency.

Each scope (``default``, ``auth``) gets its own request budget inside a shared
window. Counters live in process memory, so limits are per worker.
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from threading import Lock

from fastapi import Request, Response

from powercrm.core.config import settings
from powercrm.core.exceptions import RateLimitExceeded


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_seconds: int


class SlidingWindowLimiter:
    """Remembers hit timestamps per key and refuses once ``limit`` fit in the window."""

    def __init__(self) -> None:
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        """Record one request; returns ``(allowed, remaining, retry_after_seconds)``."""
        if limit <= 0:
            return True, limit, 0
        now = time.time()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                oldest = hits[0]
                return False, 0, max(int(oldest + window_seconds - now), 1)
            hits.append(now)
            return True, limit - len(hits), 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = SlidingWindowLimiter()


def policy_for(scope: str) -> RateLimitPolicy:
    # Login and code verification share the tighter budget.
    limit = settings.RATE_LIMIT_AUTH_MAX_REQUESTS if scope == "auth" else settings.RATE_LIMIT_MAX_REQUESTS
    return RateLimitPolicy(limit=limit, window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str = "default"):
    def _dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        policy = policy_for(scope)
        allowed, remaining, retry_after = _limiter.hit(
            f"{scope}:{client_ip(request)}",
            limit=policy.limit,
            window_seconds=policy.window_seconds,
        )
        if not allowed:
            raise RateLimitExceeded(retry_after=retry_after, limit=policy.limit, window_seconds=policy.window_seconds)
        response.headers["X-RateLimit-Limit"] = str(policy.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

    return _dependency
