"""
Serenity Backend — Rate Limiting Middleware
===========================================

What:  In-memory sliding-window rate limiter.
How:   Each client key keeps a list of request timestamps; timestamps older
       than the window are dropped on every request, and the request is
       rejected with 429 once the remaining count reaches the limit.

Client key:
    "user:<id>" when the request carries a valid bearer token, so users
    behind a shared NAT (a meditation class on one Wi-Fi) do not throttle
    each other; "ip:<addr>" otherwise.

Single-process only. Multi-worker deployments need a shared store (Redis)
for the counters.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from serenity.config import settings
from serenity.services.auth_service import token_subject

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limiter configured by rate_limit_requests per
    rate_limit_window seconds. Disabled entirely when rate_limit_enabled
    is false.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._request_counter = 0

    @staticmethod
    def client_key(request: Request) -> str:
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            subject = token_subject(auth[7:].strip())
            if subject:
                return f"user:{subject}"
        host = getattr(request.client, "host", None) if request.client else None
        return f"ip:{host or 'unknown'}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not settings.rate_limit_enabled or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                settings.rate_limit_window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._request_counter += 1
        if self._request_counter % 1000 == 0:
            self._cleanup_inactive_keys(window_start)

        return await call_next(request)

    def _cleanup_inactive_keys(self, window_start: float) -> None:
        """Drop keys with no requests inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit keys", len(inactive))
