import asyncio
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence
import logging

from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.core.cache_keys import CacheKeyPolicy
from app.core.constants import EntityType
from app.services.cache_invalidation import InvalidationCoordinator, Relation
from app.services.read_through import CacheContext, ReadThroughCache

logger = logging.getLogger(__name__)


class MutationResult(NamedTuple):
    payload: Dict[str, Any]
    entity_id: Any
    aliases: Sequence[Any] = ()
    relations: Sequence[Relation] = ()


class CachedService:
    """Shared plumbing for services whose reads go through the cache.

    Origin queries use a sync SQLAlchemy session, so they run off the event loop;
    writes commit in the threadpool and invalidation is awaited only once the commit has
    returned, so a read that follows the response can never repopulate old data.
    """
    entity_type: EntityType

    def __init__(self, read_through: ReadThroughCache, invalidator: InvalidationCoordinator, policy: CacheKeyPolicy):
        self.read_through = read_through
        self.invalidator = invalidator
        self.policy = policy

    async def _read(self, key: Optional[str], ttl: int, func: Callable[..., Dict[str, Any]], *args, context: Optional[CacheContext] = None):
        # Executor future: an origin timeout abandons the worker thread
        loop = asyncio.get_running_loop()
        return await self.read_through.read_through(
            key, ttl, lambda: loop.run_in_executor(None, func, *args), context=context
        )

    async def _mutate(self, func: Callable[..., MutationResult], *args) -> Dict[str, Any]:
        result = await run_in_threadpool(func, *args)
        await self.invalidator.invalidate(
            self.entity_type, result.entity_id, result.relations, aliases=result.aliases
        )
        return result.payload

    @staticmethod
    def _require_admin(is_admin: bool, what: str):
        if not is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Admin access is required to {what}",
            )

    @staticmethod
    def _not_found(entity: str, identifier: Any):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} '{identifier}' not found")
