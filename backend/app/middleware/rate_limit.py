# app/middleware/rate_limit.py
import time
from typing import Dict, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from skillconnect.core.config import settings
from skillconnect.core.error_messages import ErrorResponses

EXEMPT_PATHS = {"/", "/healthz", "/api/v1/ping"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counter per client address."""

    def __init__(
        self,
        app,
        max_requests: int = None,
        window_seconds: int = None,
        trust_forwarded: bool = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        if trust_forwarded is None:
            trust_forwarded = settings.TRUST_FORWARDED_HEADERS
        self.trust_forwarded = trust_forwarded
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = 0.0

    def _client_key(self, request: Request) -> str:
        # X-Forwarded-For is caller-controlled unless a proxy we run rewrites it
        if self.trust_forwarded:
            forwarded = request.headers.get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._windows = {
            key: window
            for key, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_sweep = now

    def hit(self, key: str, now: float) -> bool:
        self._sweep(now)
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)
        if not self.hit(self._client_key(request), time.monotonic()):
            limited = ErrorResponses.TOO_MANY_REQUESTS
            return JSONResponse(
                status_code=limited.status_code,
                content={"success": False, "message": limited.detail},
            )
        return await call_next(request)
