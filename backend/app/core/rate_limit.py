"""
Rate Limiting Middleware.

Fixed-window request limiting per source IP, held in process memory.
"""
import math
import time
from typing import Callable, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware for API rate limiting.

    Each source IP may make ``max_requests`` requests per ``window_sec``
    window to paths under ``path_prefix``.

    Rate limit headers:
    - X-RateLimit-Limit: Maximum requests allowed
    - X-RateLimit-Remaining: Requests remaining
    - X-RateLimit-Reset: Unix timestamp when limit resets
    - Retry-After: Seconds until limit resets (when exceeded)
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_sec: int = 15 * 60,
        path_prefix: str = "/api/",
        trust_forwarded_for: bool = False,
        cleanup_interval: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_sec = window_sec
        self.path_prefix = path_prefix
        self.trust_forwarded_for = trust_forwarded_for
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        # client key -> (window start, request count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_cleanup = clock()

    def _get_client_key(self, request: Request) -> str:
        """
        Get unique identifier for the client.
        X-Forwarded-For is only honoured behind a trusted proxy.
        """
        if self.trust_forwarded_for:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _cleanup_expired(self, now: float) -> None:
        """Drop windows that have ended. Runs at most once per cleanup_interval."""
        if now - self._last_cleanup < self.cleanup_interval:
            return
        self._last_cleanup = now
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_sec]
        for key in expired:
            del self._windows[key]

    def _hit(self, key: str) -> Tuple[bool, int, float]:
        """
        Count one request for ``key``.

        Returns:
            (allowed, remaining, reset_time)
        """
        now = self.clock()
        self._cleanup_expired(now)
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_sec:
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)
        reset_time = start + self.window_sec
        return count <= self.max_requests, max(self.max_requests - count, 0), reset_time

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        allowed, remaining, reset_time = self._hit(self._get_client_key(request))

        if not allowed:
            retry_after = max(int(math.ceil(reset_time - self.clock())), 0)
            return JSONResponse(
                status_code=429,
                content={"success": False, "error": RATE_LIMIT_MESSAGE},
                headers={
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(reset_time)),
                    "Retry-After": str(retry_after),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(reset_time))

        return response
