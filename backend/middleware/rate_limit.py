"""
Per-client rate limiting for the wallet login endpoints.

Each limited route gets its own sliding window, keyed by client IP. Windows
live in process memory, so every worker limits on its own.
"""
import logging
import time
from collections import deque
from typing import Callable

from fastapi import Request, Response

from domain.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


class SlidingWindow:
    """At most `max_requests` hits per key in any `window_seconds` span."""

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque] = {}

    def _expire(self, key: str) -> deque:
        """Hits for `key` still inside the window. Idle keys are dropped."""
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        cutoff = self._clock() - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def hit(self, key: str) -> bool:
        """Count one request for `key`. False (and not counted) when full."""
        hits = self._expire(key)
        if len(hits) >= self.max_requests:
            return False
        hits.append(self._clock())
        self._hits[key] = hits
        return True

    def remaining(self, key: str) -> int:
        return max(0, self.max_requests - len(self._expire(key)))

    def retry_after(self, key: str) -> int:
        """Whole seconds until the oldest hit for `key` leaves the window."""
        hits = self._expire(key)
        if len(hits) < self.max_requests:
            return 0
        return max(1, int(hits[0] + self.window_seconds - self._clock()) + 1)

    def reset(self):
        self._hits.clear()


# scope name -> window, so tests can clear every limiter at once
_windows: dict[str, SlidingWindow] = {}


def reset_rate_limits():
    for window in _windows.values():
        window.reset()


def rate_limit(scope: str, max_requests: int, window_seconds: int):
    """
    FastAPI dependency factory limiting one route per client IP.

        @router.post("/challenge")
        async def create_challenge(..., _rate=Depends(rate_limit("auth:challenge", 20, 60))):
    """
    window = _windows.setdefault(scope, SlidingWindow(max_requests, window_seconds))

    async def _check(request: Request, response: Response):
        client_ip = request.client.host if request.client else "unknown"
        if not window.hit(client_ip):
            logger.warning(f"Rate limit exceeded: {client_ip} on {scope} ({max_requests}/{window_seconds}s)")
            raise RateLimitExceededError(max_requests, window_seconds, window.retry_after(client_ip))
        response.headers["X-RateLimit-Limit"] = str(max_requests)
        response.headers["X-RateLimit-Remaining"] = str(window.remaining(client_ip))

    return _check
