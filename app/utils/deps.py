import asyncio
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, Response, status

from app.core.config import settings
from app.core.constants import RouteClass
from app.core.database import get_db
from app.core.errors import RateLimitExceeded
from app.services.read_through import CacheContext
from app.utils.service_registry import ServiceRegistry

ADMIN_KEY_HEADER = "X-Admin-Key"
SESSION_HEADER = "X-Session-ID"


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services

def get_cache_context(request: Request) -> CacheContext:
    return CacheContext(state=request.state)

def _admin_key_matches(api_key: Optional[str]) -> bool:
    return bool(api_key) and secrets.compare_digest(api_key, settings.ADMIN_API_KEY)

def is_admin_request(x_admin_key: Optional[str] = Header(None, alias=ADMIN_KEY_HEADER)) -> bool:
    """Soft check for routes where the admin key only widens what can be seen."""
    return _admin_key_matches(x_admin_key)

def require_admin(x_admin_key: Optional[str] = Header(None, alias=ADMIN_KEY_HEADER)):
    if not x_admin_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin key required")
    if not _admin_key_matches(x_admin_key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")

def get_session_id(x_session_id: Optional[str] = Header(None, alias=SESSION_HEADER)) -> str:
    session_id = (x_session_id or "").strip()
    if not session_id or len(session_id) > 128:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A {SESSION_HEADER} header of at most 128 characters is required",
        )
    return session_id

def client_identity(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"

def rate_limit(route_class: RouteClass):
    """Dependency enforcing the fixed-window quota of `route_class` for the calling client,
    then holding the request back if the client is past the slow-down threshold."""
    async def _check_rate_limit(request: Request, response: Response):
        guard = request.app.state.rate_guard
        client = client_identity(request)
        decision = await guard.allow(client, route_class)
        if not decision.allowed:
            raise RateLimitExceeded(route_class.value, decision.limit, decision.retry_after)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

        delay = await guard.delay_for(client)
        if delay:
            response.headers["X-SlowDown-Delay"] = str(round(delay * 1000))
            await asyncio.sleep(delay)
    return _check_rate_limit
