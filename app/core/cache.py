import json
import asyncio
import functools
import math
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple
import logging

import redis.asyncio as redis

from app.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

_DELETE_CHUNK = 500


class DeleteResult(NamedTuple):
    count: int
    failed: bool = False


class CacheBackend(ABC):
    name = "abstract"
    supports_scan = True

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete_many(self, keys: List[str]) -> int:
        pass

    @abstractmethod
    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        pass

    @abstractmethod
    async def clear(self) -> bool:
        pass

    async def ttl(self, key: str) -> Optional[int]:
        """Seconds left before `key` expires; None when unknown or the key never expires."""
        return None

    async def ping(self) -> bool:
        return True

    async def info(self) -> Dict[str, Any]:
        return {}

    async def close(self) -> None:
        pass


class MemoryCacheBackend(CacheBackend):
    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    def _alive(self, key: str) -> Optional[str]:
        item = self._cache.get(key)
        if item is None:
            return None
        value, expiry = item
        if expiry and self._clock() >= expiry:
            del self._cache[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._alive(key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        expiry = self._clock() + ttl if ttl > 0 else 0
        self._cache[key] = (value, expiry)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def delete_many(self, keys: List[str]) -> int:
        return sum(1 for key in keys if self._cache.pop(key, None) is not None)

    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        self._cleanup_expired()
        keys = [key for key in self._cache if key.startswith(prefix)]
        return keys[:limit] if limit else keys

    async def clear(self) -> bool:
        self._cache.clear()
        return True

    async def ttl(self, key: str) -> Optional[int]:
        if self._alive(key) is None:
            return None
        expiry = self._cache[key][1]
        return max(1, math.ceil(expiry - self._clock())) if expiry else None

    async def info(self) -> Dict[str, Any]:
        self._cleanup_expired()
        return {"memory_cache_size": len(self._cache)}

    def _cleanup_expired(self):
        current_time = self._clock()
        expired_keys = [
            key for key, (_, expiry) in self._cache.items()
            if expiry and current_time >= expiry
        ]
        for key in expired_keys:
            del self._cache[key]


def _escape_glob(prefix: str) -> str:
    return re.sub(r"([*?\[\]\\])", r"\\\1", prefix)


class RedisCacheBackend(CacheBackend):
    name = "redis"

    def __init__(self, client: "redis.Redis"):
        self.redis = client

    @classmethod
    def from_url(cls, redis_url: str, socket_timeout: Optional[float] = None) -> "RedisCacheBackend":
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        if ttl > 0:
            await self.redis.setex(key, ttl, value)
        else:
            await self.redis.set(key, value)
        return True

    async def delete(self, key: str) -> bool:
        return await self.redis.delete(key) > 0

    async def delete_many(self, keys: List[str]) -> int:
        deleted = 0
        for start in range(0, len(keys), _DELETE_CHUNK):
            deleted += await self.redis.delete(*keys[start:start + _DELETE_CHUNK])
        return deleted

    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        keys = []
        async for key in self.redis.scan_iter(match=f"{_escape_glob(prefix)}*", count=_DELETE_CHUNK):
            keys.append(key)
            if limit and len(keys) >= limit:
                break
        return keys

    async def clear(self) -> bool:
        await self.redis.flushdb()
        return True

    async def ttl(self, key: str) -> Optional[int]:
        remaining = await self.redis.ttl(key)
        # -2: missing, -1: no expiry
        return remaining if remaining > 0 else None

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def info(self) -> Dict[str, Any]:
        info = await self.redis.info()
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "redis_version": info.get("redis_version"),
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
            "keyspace_hits": hits,
            "keyspace_misses": misses,
            "hit_ratio": round(hits / max(hits + misses, 1), 4),
        }

    async def close(self) -> None:
        await self.redis.aclose()


class NullCacheBackend(CacheBackend):
    """Pass-through backend: every read misses, every write is dropped."""
    name = "null"
    supports_scan = False

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        return False

    async def delete(self, key: str) -> bool:
        return False

    async def delete_many(self, keys: List[str]) -> int:
        return 0

    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        return []

    async def clear(self) -> bool:
        return True


def cache_safe(default: Any):
    """Run a store operation under the store timeout; on any failure log it and return `default`."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self: "CacheStore", *args, **kwargs):
            try:
                return await asyncio.wait_for(func(self, *args, **kwargs), timeout=self.operation_timeout)
            except Exception as e:
                self._record_failure(StoreUnavailable(func.__name__, e))
                return default() if callable(default) else default
        return wrapper
    return decorator


class CacheStore:
    def __init__(self, backend: CacheBackend, operation_timeout: float = 0.5, default_ttl: int = 300):
        self.backend = backend
        self.operation_timeout = operation_timeout
        self.default_ttl = default_ttl
        self.failures = 0
        self.last_error: Optional[str] = None

    @property
    def backend_name(self) -> str:
        return self.backend.name

    @property
    def supports_prefix_delete(self) -> bool:
        return self.backend.supports_scan

    def _record_failure(self, error: StoreUnavailable):
        self.failures += 1
        self.last_error = str(error)
        logger.warning(str(error))

    async def init(self) -> bool:
        if await self.ping():
            logger.info(f"Cache store ready ({self.backend_name} backend)")
            return True
        logger.warning(f"Cache backend {self.backend_name} unreachable at startup, caching disabled")
        await self.close()
        self.backend = NullCacheBackend()
        return False

    @cache_safe(default=False)
    async def ping(self) -> bool:
        return await self.backend.ping()

    @cache_safe(default=None)
    async def close(self) -> None:
        await self.backend.close()

    @cache_safe(default=None)
    async def get(self, key: str) -> Optional[Any]:
        raw = await self.backend.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    @cache_safe(default=False)
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            serialized = json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            logger.warning(f"Refusing to cache non-JSON value for key {key}: {e}")
            return False
        return await self.backend.set(key, serialized, self.default_ttl if ttl is None else ttl)

    @cache_safe(default=None)
    async def ttl(self, key: str) -> Optional[int]:
        return await self.backend.ttl(key)

    @cache_safe(default=False)
    async def delete(self, key: str) -> bool:
        return await self.backend.delete(key)

    @cache_safe(default=DeleteResult(0, failed=True))
    async def delete_many(self, keys: Iterable[str]) -> DeleteResult:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return DeleteResult(0)
        return DeleteResult(await self.backend.delete_many(keys))

    @cache_safe(default=DeleteResult(0, failed=True))
    async def delete_by_prefix(self, prefix: str, fallback_keys: Iterable[str] = ()) -> DeleteResult:
        if self.backend.supports_scan:
            keys = await self.backend.scan_prefix(prefix)
        else:
            keys = [key for key in fallback_keys if key.startswith(prefix)]
        if not keys:
            return DeleteResult(0)
        return DeleteResult(await self.backend.delete_many(keys))

    @cache_safe(default=list)
    async def keys(self, prefix: str = "", limit: int = 100) -> List[str]:
        return await self.backend.scan_prefix(prefix, limit=limit)

    @cache_safe(default=False)
    async def clear(self) -> bool:
        return await self.backend.clear()

    @cache_safe(default=dict)
    async def _backend_info(self) -> Dict[str, Any]:
        return await self.backend.info()

    async def stats(self) -> Dict[str, Any]:
        stats = {
            "backend": self.backend_name,
            "supports_prefix_delete": self.supports_prefix_delete,
            "failures": self.failures,
            "last_error": self.last_error,
            "timestamp": datetime.utcnow().isoformat(),
        }
        stats.update(await self._backend_info())
        return stats

    async def health_check(self) -> bool:
        test_key = "health_check_test"
        test_value = {"timestamp": datetime.utcnow().isoformat()}

        if not await self.set(test_key, test_value, ttl=10):
            return False
        retrieved = await self.get(test_key)
        await self.delete(test_key)
        return retrieved == test_value


def create_cache_store(settings) -> CacheStore:
    if not settings.CACHE_ENABLED:
        logger.info("Caching disabled by configuration")
        backend: CacheBackend = NullCacheBackend()
    elif settings.REDIS_URL:
        logger.info("Initializing Redis cache backend")
        backend = RedisCacheBackend.from_url(settings.REDIS_URL, socket_timeout=settings.CACHE_OPERATION_TIMEOUT)
    else:
        logger.info("Using in-memory cache backend")
        backend = MemoryCacheBackend()

    return CacheStore(
        backend,
        operation_timeout=settings.CACHE_OPERATION_TIMEOUT,
        default_ttl=settings.CACHE_DEFAULT_TTL,
    )
