from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query

from app.core.constants import EntityType, RouteClass
from app.schemas.cache import CacheHealth, CacheKeys, CacheStats, InvalidationResult
from app.schemas.response import APIResponse
from app.utils import deps
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.ADMIN))])


@router.get("/cache/stats", response_model=APIResponse[CacheStats], dependencies=[Depends(deps.require_admin)])
async def get_cache_stats(services: ServiceRegistry = Depends(deps.get_services)):
    """Get cache statistics and health info"""
    stats = await services.cache.get_cache_stats()
    return APIResponse(message="Cache statistics retrieved", data=stats)


@router.get("/cache/health", response_model=APIResponse[CacheHealth])
async def cache_health_check(services: ServiceRegistry = Depends(deps.get_services)):
    """Check cache health status"""
    health = await services.cache.health_check()
    return APIResponse(message=f"Cache is {health['status']}", data=health)


@router.get("/cache/keys", response_model=APIResponse[CacheKeys], dependencies=[Depends(deps.require_admin)])
async def list_cache_keys(
    prefix: str = "",
    limit: int = Query(100, ge=1, le=1000),
    services: ServiceRegistry = Depends(deps.get_services),
):
    """List cache keys under a prefix (empty on the pass-through backend)"""
    keys = await services.cache.list_keys(prefix, limit=limit)
    return APIResponse(message=f"Found {keys['count']} cache keys", data=keys)


@router.post("/cache/clear", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def clear_cache(
    prefix: Optional[str] = None,
    services: ServiceRegistry = Depends(deps.get_services),
):
    """Clear cache entries under a prefix, or everything"""
    result = await services.cache.clear(prefix)
    if prefix:
        message = f"Cleared {result['deleted']} cache entries under {prefix}"
    else:
        message = "All cache entries cleared" if result["ok"] else "Cache could not be cleared"
    return APIResponse(message=message, data=result)


@router.post("/cache/invalidate/{entity_type}/{entity_id}", response_model=APIResponse[InvalidationResult],
             dependencies=[Depends(deps.require_admin)])
async def invalidate_entity_cache(
    entity_type: EntityType,
    entity_id: str,
    services: ServiceRegistry = Depends(deps.get_services),
):
    """Invalidate every cache entry an entity change would purge"""
    report = await services.cache.invalidate_entity(entity_type, entity_id)
    return APIResponse(
        message=f"Cache invalidated for {entity_type.value} {entity_id}",
        data=InvalidationResult(
            entity_type=report.entity_type.value,
            entity_id=report.entity_id,
            requested=report.requested,
            deleted=report.deleted,
            failed=report.failed,
            ok=report.ok,
            backend=services.cache.store.backend_name,
        ),
    )
