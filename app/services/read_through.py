import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
import logging

from app.core.cache import CacheStore
from app.core.constants import CacheScope
from app.core.errors import OriginTimeoutError

logger = logging.getLogger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
CACHE_BYPASS = "BYPASS"


@dataclass
class CacheContext:
    """Request-scoped cache tag. `state` is the Starlette request state the headers are read from."""
    scope: CacheScope = CacheScope.PUBLIC
    state: Any = None
    status: Optional[str] = None
    key: Optional[str] = None
    ttl: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.scope == CacheScope.ADMIN

    def record(self, status: str, key: Optional[str] = None, ttl: Optional[int] = None):
        self.status, self.key, self.ttl = status, key, ttl
        if self.state is not None:
            self.state.cache_status = status
            self.state.cache_scope = self.scope.value
            if key:
                self.state.cache_key = key
            if ttl:
                self.state.cache_ttl = ttl


def is_successful_response(value: Any) -> bool:
    return isinstance(value, dict) and value.get("success") is True


class ReadThroughCache:
    def __init__(self, store: CacheStore, origin_timeout: float = 10.0):
        self.store = store
        self.origin_timeout = origin_timeout
        self.stats = {"hits": 0, "misses": 0, "bypasses": 0, "stored": 0}

    async def _compute(self, compute_fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await asyncio.wait_for(compute_fn(), timeout=self.origin_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Origin query timed out after {self.origin_timeout}s")
            raise OriginTimeoutError(self.origin_timeout)

    async def read_through(
        self,
        key: Optional[str],
        ttl: int,
        compute_fn: Callable[[], Awaitable[Any]],
        *,
        context: Optional[CacheContext] = None,
        is_cacheable: Callable[[Any], bool] = is_successful_response,
    ) -> Any:
        context = context or CacheContext()

        # No key (unserializable query) or privileged scope: never read nor write the public cache
        if key is None or context.is_admin:
            self.stats["bypasses"] += 1
            context.record(CACHE_BYPASS)
            logger.debug(f"Cache BYPASS (scope={context.scope.value}, key={key})")
            return await self._compute(compute_fn)

        cached_value = await self.store.get(key)
        if cached_value is not None:
            self.stats["hits"] += 1
            # Downstream caches may keep the copy only as long as this entry lives
            remaining = await self.store.ttl(key)
            context.record(CACHE_HIT, key, min(ttl, remaining) if remaining else ttl)
            logger.debug(f"Cache HIT for key: {key}")
            return cached_value

        self.stats["misses"] += 1
        result = await self._compute(compute_fn)
        context.record(CACHE_MISS, key, ttl)

        if is_cacheable(result):
            if await self.store.set(key, result, ttl=ttl):
                self.stats["stored"] += 1
            logger.debug(f"Cache MISS for key: {key} (stored with TTL {ttl}s)")
        else:
            logger.debug(f"Cache MISS for key: {key} (result not cacheable)")
        return result

    def hit_ratio(self) -> float:
        lookups = self.stats["hits"] + self.stats["misses"]
        return round(self.stats["hits"] / lookups, 4) if lookups else 0.0
