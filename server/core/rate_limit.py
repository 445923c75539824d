"""
Rate Limiting middleware
- per-client sliding window
- health/docs endpoints are exempt
"""
import logging
import time
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

EXCLUDED_PATHS = ("/", "/health", "/docs", "/redoc", "/openapi.json")


class RateLimiter:
    """Simple in-memory rate limiter (per process)"""

    def __init__(self, max_requests: int = 100, window_seconds: int = 3600):
        self.requests: dict[str, list[float]] = {}
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def is_allowed(self, key: str, now: Optional[float] = None) -> tuple[bool, Optional[int]]:
        """Record a request for key; returns (allowed, seconds until reset when refused)."""
        now = time.time() if now is None else now
        window_start = now - self.window_seconds

        recent = [t for t in self.requests.get(key, ()) if t > window_start]

        if len(recent) >= self.max_requests:
            if recent:
                self.requests[key] = recent
                return False, max(1, int(min(recent) + self.window_seconds - now))
            return False, self.window_seconds

        recent.append(now)
        self.requests[key] = recent
        self._prune(window_start)
        return True, None

    def _prune(self, window_start: float) -> None:
        # drop clients whose every request has left the window
        stale = [k for k, times in self.requests.items() if not times or times[-1] <= window_start]
        for k in stale:
            del self.requests[k]

    def remaining(self, key: str) -> int:
        return max(0, self.max_requests - len(self.requests.get(key, ())))


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_requests: int = 100, window_seconds: int = 3600):
        super().__init__(app)
        self.rate_limiter = RateLimiter(max_requests=max_requests, window_seconds=window_seconds)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, reset_time = self.rate_limiter.is_allowed(client_ip)

        if not allowed:
            logger.warning(f"Rate limit exceeded - client: {client_ip}, path: {request.url.path}")
            response = JSONResponse(
                content={"error": f"Rate limit exceeded. Try again in {reset_time} seconds."},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            )
            response.headers["X-RateLimit-Limit"] = str(self.rate_limiter.max_requests)
            response.headers["X-RateLimit-Remaining"] = "0"
            response.headers["X-RateLimit-Reset"] = str(int(time.time()) + reset_time)
            return response

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.rate_limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.rate_limiter.remaining(client_ip))
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + self.rate_limiter.window_seconds)

        return response
