"""
Sliding-window rate limiter for a handful of API routes.

State lives in process memory, so each worker enforces its own window.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import HTTPException, Request

from realms.infra.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset: float


class RateLimiter:
    """Allow at most ``limit`` hits per key within a rolling ``interval`` (seconds).

    Keys whose window has emptied are swept at most once every two intervals.
    """

    def __init__(self, limit: int, interval: float = 60.0, name: str = "default",
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.interval = interval
        self.name = name
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.interval * 2:
            return
        self._last_sweep = now
        cutoff = now - self.interval
        for key in list(self._hits):
            kept = [t for t in self._hits[key] if t > cutoff]
            if kept:
                self._hits[key] = kept
            else:
                del self._hits[key]

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()
        self._sweep(now)

        cutoff = now - self.interval
        hits = [t for t in self._hits.get(key, []) if t > cutoff]
        self._hits[key] = hits

        if len(hits) >= self.limit:
            logger.warning("rate_limited", limiter=self.name, key=key)
            return RateLimitResult(success=False, remaining=0, reset=hits[0] + self.interval)

        hits.append(now)
        return RateLimitResult(success=True, remaining=self.limit - len(hits), reset=now + self.interval)

    def reset(self) -> None:
        self._hits.clear()


standard_limiter = RateLimiter(limit=30, name="standard")
strict_limiter = RateLimiter(limit=10, name="strict")
invite_code_limiter = RateLimiter(limit=5, name="invite")

ALL_LIMITERS = (standard_limiter, strict_limiter, invite_code_limiter)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def rate_limited(limiter: RateLimiter, scope: str):
    """FastAPI dependency rejecting the request with 429 once ``limiter`` is exhausted."""

    async def _check(request: Request) -> None:
        result = limiter.check(f"{scope}:{client_ip(request)}")
        if not result.success:
            raise HTTPException(
                status_code=429,
                detail="Too many requests",
                headers={"Retry-After": str(int(limiter.interval))},
            )

    return _check
