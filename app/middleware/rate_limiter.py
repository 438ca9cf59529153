import logging
from typing import Iterable, Optional

from fastapi import Request

from ..exceptions import RateLimitExceeded, api_error_response
from ..ratelimit import RateLimiter

logger = logging.getLogger(__name__)

CLIENT_ID_HEADER = "X-Client-Id"
REMAINING_HEADER = "X-Rate-Limit-Remaining"


class RateLimitMiddleware:
    """FastAPI middleware that admits or rejects requests per client"""

    def __init__(self, limiter: RateLimiter, path_prefixes: Optional[Iterable[str]] = None):
        self.limiter = limiter
        if path_prefixes is None:
            path_prefixes = ["/api/transaction"]
        self.path_prefixes = tuple(p.rstrip("/") for p in path_prefixes)

        logger.info(
            f"Rate limiter initialized: {limiter.capacity} requests per "
            f"{limiter.refill_interval:g}s on {', '.join(self.path_prefixes)}"
        )

    async def __call__(self, request: Request, call_next):
        """Process request with rate limiting"""
        if not self._is_rate_limited(request):
            return await call_next(request)

        client_id = self._get_client_identifier(request)
        try:
            remaining = self.limiter.admit(client_id)
        except RateLimitExceeded as exc:
            return api_error_response(request, exc)

        response = await call_next(request)
        response.headers[REMAINING_HEADER] = str(remaining)
        return response

    def _is_rate_limited(self, request: Request) -> bool:
        path = request.url.path.rstrip("/")
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self.path_prefixes)

    def _get_client_identifier(self, request: Request) -> str:
        """Prefer the X-Client-Id header, then the peer address"""
        client_id = request.headers.get(CLIENT_ID_HEADER)
        if client_id:
            return client_id
        return request.client.host if request.client else "unknown"
