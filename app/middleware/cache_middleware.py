from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

class CacheHeaderMiddleware(BaseHTTPMiddleware):
    """Expose how the read-through cache served the request (HIT, MISS or BYPASS)."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        cache_status = getattr(request.state, "cache_status", None)
        if cache_status:
            response.headers["X-Cache"] = cache_status

        cache_key = getattr(request.state, "cache_key", None)
        if cache_key and cache_status != "BYPASS":
            response.headers["X-Cache-Key"] = cache_key

        return response
