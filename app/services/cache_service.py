from typing import Any, Dict, Optional
import logging

from app.core.cache import CacheStore
from app.core.constants import EntityType
from app.services.cache_invalidation import InvalidationCoordinator, InvalidationReport
from app.services.read_through import ReadThroughCache

logger = logging.getLogger(__name__)


class CacheService:
    """Operator-facing view of the cache: stats, health, key listing and manual purges."""

    def __init__(self, store: CacheStore, read_through: ReadThroughCache, invalidator: InvalidationCoordinator):
        self.store = store
        self.read_through = read_through
        self.invalidator = invalidator

    async def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "store": await self.store.stats(),
            "read_through": dict(self.read_through.stats),
            "hit_ratio": self.read_through.hit_ratio(),
        }

    async def health_check(self) -> Dict[str, Any]:
        if self.store.backend_name == "null":
            # Pass-through mode: every read goes to origin
            return {"status": "degraded", "backend": self.store.backend_name, "healthy": False}
        healthy = await self.store.health_check()
        return {"status": "healthy" if healthy else "unhealthy", "backend": self.store.backend_name, "healthy": healthy}

    async def list_keys(self, prefix: str = "", limit: int = 100) -> Dict[str, Any]:
        keys = await self.store.keys(prefix, limit=limit)
        return {"prefix": prefix, "count": len(keys), "keys": sorted(keys)}

    async def clear(self, prefix: Optional[str] = None) -> Dict[str, Any]:
        if prefix:
            result = await self.store.delete_by_prefix(prefix)
            logger.info(f"Cleared {result.count} cache entries under {prefix}")
            return {"prefix": prefix, "deleted": result.count, "ok": not result.failed}
        cleared = await self.store.clear()
        if cleared:
            logger.warning("Entire cache cleared by operator")
        return {"prefix": None, "deleted": None, "ok": cleared}

    async def invalidate_entity(self, entity_type: EntityType, entity_id: str) -> InvalidationReport:
        return await self.invalidator.invalidate(entity_type, entity_id)
