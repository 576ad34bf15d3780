"""
Rate Limit Middleware

Simple in-memory rate limiting using sliding window.
"""

import hashlib
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

EXEMPT_PATHS = {"/health", "/", "/docs", "/redoc", "/openapi.json"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using sliding window algorithm.

    Requests carrying a bearer token are limited per token with the higher
    authenticated limit; anonymous requests are limited per client IP.
    State is per process.
    """

    def __init__(self, app, window_size: int = 60):
        super().__init__(app)
        self.requests: Dict[str, Deque[float]] = {}
        self.window_size = window_size
        self._last_sweep = 0.0

    def _get_key(self, request: Request) -> Tuple[str, int]:
        """Return (key, limit) for the request."""
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            digest = hashlib.sha256(authorization[7:].encode()).hexdigest()[:16]
            return f"token:{digest}", settings.rate_limit_auth_per_minute

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}", settings.rate_limit_per_minute

    def _evict_idle(self, now: float):
        """Drop keys with no request inside the window. Runs at most once per window."""
        if now - self._last_sweep < self.window_size:
            return
        self._last_sweep = now
        cutoff = now - self.window_size
        idle = [key for key, window in self.requests.items() if not window or window[-1] <= cutoff]
        for key in idle:
            del self.requests[key]

    def _is_rate_limited(self, key: str, limit: int) -> bool:
        now = time.monotonic()
        self._evict_idle(now)
        window = self.requests.setdefault(key, deque())
        while window and window[0] <= now - self.window_size:
            window.popleft()

        if len(window) >= limit:
            return True
        window.append(now)
        return False

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.rate_limit_enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        key, limit = self._get_key(request)
        if self._is_rate_limited(key, limit):
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded. Please try again later.",
                    "retry_after_seconds": self.window_size
                },
                headers={"Retry-After": str(self.window_size)}
            )
        return await call_next(request)
