"""
In-process sliding-window rate limiter keyed by client IP.

Suitable for a single-instance deployment only; counters are not shared between workers.
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Deque, Dict

from fastapi import HTTPException, Request, Response, status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_after: float


class SlidingWindowRateLimiter:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic, idle_ttl: float = 3600.0) -> None:
        self._clock = clock
        self._idle_ttl = idle_ttl
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def check(self, key: str, *, limit: int, window: float) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._evict_idle(now)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - window:
                hits.popleft()
            if len(hits) >= limit:
                return RateLimitResult(allowed=False, remaining=0, reset_after=hits[0] + window - now)
            hits.append(now)
            return RateLimitResult(allowed=True, remaining=limit - len(hits), reset_after=0.0)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def _evict_idle(self, now: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] > self._idle_ttl]
        for key in stale:
            del self._hits[key]


limiter = SlidingWindowRateLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str, *, limit: int, window: float) -> Callable[[Request, Response], str]:
    """FastAPI dependency factory. The dependency returns the caller's IP and sets X-RateLimit-* headers."""

    def dependency(request: Request, response: Response) -> str:
        ip = client_ip(request)
        result = limiter.check(f"{scope}:{ip}", limit=limit, window=window)
        if not result.allowed:
            logger.warning("rate limit exceeded scope=%s ip=%s", scope, ip)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
                headers={
                    "Retry-After": str(math.ceil(result.reset_after)),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return ip

    return dependency
