"""
Per-IP sliding-window rate limiting for the credential endpoints
(login, password change).

Usage:
    @router.post("/auth/login", dependencies=[Depends(rate_limit("auth_login"))])
"""
import logging
import os
import time
from collections import deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

# operation -> (max requests, window seconds)
RATE_LIMITS = {
    "auth_login": (10, 60),
    "auth_change_password": (5, 60),
    "default": (100, 60),
}

# Peers allowed to set X-Forwarded-For, e.g. "127.0.0.1,10.0.0.2"
TRUSTED_PROXIES = frozenset(
    proxy.strip() for proxy in os.getenv("TRUSTED_PROXIES", "").split(",") if proxy.strip()
)

# Seconds between sweeps of keys whose hits have all left their window
SWEEP_INTERVAL = 60


class SlidingWindowLimiter:
    """In-memory limiter keyed by ``(client_ip, operation)``. Single process only."""

    def __init__(self, limits: Dict[str, tuple]):
        self.limits = limits
        self._hits: Dict[Tuple[str, str], Deque[float]] = {}
        self._last_sweep = 0.0

    def _limit_for(self, operation: str) -> tuple:
        return self.limits.get(operation, self.limits["default"])

    def hit(self, client: str, operation: str, now: Optional[float] = None) -> Optional[int]:
        """
        Record one request.

        Returns None when allowed, otherwise the seconds until the oldest hit
        leaves the window (the request is not recorded).
        """
        limit, window = self._limit_for(operation)
        now = time.time() if now is None else now
        if now - self._last_sweep >= SWEEP_INTERVAL:
            self.sweep(now)

        key = (client, operation)
        hits = self._hits.get(key)
        if hits is not None:
            while hits and now - hits[0] >= window:
                hits.popleft()
            if len(hits) >= limit:
                return max(1, int(window - (now - hits[0])))
        else:
            hits = self._hits[key] = deque()

        hits.append(now)
        return None

    def sweep(self, now: Optional[float] = None) -> None:
        """Drop every key with no hit left inside its window."""
        now = time.time() if now is None else now
        for key in list(self._hits):
            _, window = self._limit_for(key[1])
            hits = self._hits[key]
            if not hits or now - hits[-1] >= window:
                del self._hits[key]
        self._last_sweep = now

    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = 0.0


limiter = SlidingWindowLimiter(RATE_LIMITS)


def get_client_ip(request: Request) -> str:
    """
    The socket peer, or the first X-Forwarded-For hop when the peer is a
    configured trusted proxy. Clients cannot pick their own key.
    """
    peer = request.client.host if request.client else "unknown"
    if peer in TRUSTED_PROXIES:
        forwarded_for = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    return peer


def rate_limit(operation: str):
    """Build a route dependency that answers 429 with Retry-After once the limit is hit."""
    def dependency(request: Request) -> None:
        client_ip = get_client_ip(request)
        retry_after = limiter.hit(client_ip, operation)
        if retry_after is not None:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, operation)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many requests. Try again in {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)},
            )
    return dependency


def clear_rate_limits() -> None:
    """Forget all recorded hits (used between tests)."""
    limiter.reset()
