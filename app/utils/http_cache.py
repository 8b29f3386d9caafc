import hashlib
from typing import Any

from fastapi import Response

from app.core.cache_keys import canonical_json
from app.services.read_through import CacheContext

def etag_for(payload: Any) -> str:
    return f'W/"{hashlib.md5(canonical_json(payload).encode("utf-8")).hexdigest()}"'

def apply_freshness_headers(response: Response, payload: Any, context: CacheContext, private: bool = False):
    """Browser/CDN freshness for a read response, mirroring how long the server itself may reuse it."""
    if context.is_admin:
        response.headers["Cache-Control"] = "no-store"
        return
    if context.ttl:
        response.headers["Cache-Control"] = f"{'private' if private else 'public'}, max-age={context.ttl}"
        response.headers["ETag"] = etag_for(payload)
    else:
        response.headers["Cache-Control"] = "no-cache"
