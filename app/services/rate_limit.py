import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, NamedTuple, Optional, Tuple
import logging

from app.core.cache import CacheStore, RedisCacheBackend
from app.core.constants import RouteClass

logger = logging.getLogger(__name__)


class RateLimitRule(NamedTuple):
    limit: int
    window: int


class RateDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class SlowDownRule(NamedTuple):
    delay_after: int
    delay_ms: int
    max_delay_ms: int
    window: int


@dataclass
class RateLimitCounter:
    client_key: str
    window_start: float
    window: int
    count: int = 0

    def expired(self, now: float) -> bool:
        return now - self.window_start >= self.window


class CounterBackend(ABC):
    @abstractmethod
    async def hit(self, key: str, window: int) -> Tuple[int, int]:
        """Count one request; return (count in current window, seconds until the window resets)."""


class MemoryCounterBackend(CounterBackend):
    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
        self._counters: Dict[str, RateLimitCounter] = {}
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    @property
    def size(self) -> int:
        return len(self._counters)

    async def hit(self, key: str, window: int) -> Tuple[int, int]:
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self._cleanup_expired(now)

        counter = self._counters.get(key)
        if counter is None or counter.expired(now):
            counter = RateLimitCounter(client_key=key, window_start=now, window=window)
            self._counters[key] = counter
        counter.count += 1
        return counter.count, max(1, math.ceil(counter.window_start + window - now))

    def _cleanup_expired(self, now: float):
        expired_keys = [key for key, counter in self._counters.items() if counter.expired(now)]
        for key in expired_keys:
            del self._counters[key]
        self._last_sweep = now
        if expired_keys:
            logger.debug(f"Dropped {len(expired_keys)} expired rate limit counters")


class RedisCounterBackend(CounterBackend):
    def __init__(self, client):
        self.redis = client

    async def hit(self, key: str, window: int) -> Tuple[int, int]:
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, window)
        ttl = await self.redis.ttl(key)
        if ttl < 0:
            # Counter survived without an expiry (e.g. EXPIRE lost); re-arm it
            await self.redis.expire(key, window)
            ttl = window
        return count, max(1, ttl)


class RateGuard:
    def __init__(
        self,
        backend: CounterBackend,
        rules: Dict[RouteClass, RateLimitRule],
        trusted_clients: Iterable[str] = (),
        timeout: float = 0.5,
        enabled: bool = True,
        slow_down: Optional[SlowDownRule] = None,
    ):
        self.backend = backend
        self.rules = rules
        self.slow_down = slow_down
        self.trusted_clients = frozenset(trusted_clients)
        self.timeout = timeout
        self.enabled = enabled

    def rule_for(self, route_class: RouteClass) -> RateLimitRule:
        return self.rules.get(route_class) or self.rules[RouteClass.GENERAL]

    async def allow(self, client_key: str, route_class: RouteClass) -> RateDecision:
        rule = self.rule_for(route_class)
        if not self.enabled or client_key in self.trusted_clients:
            return RateDecision(True, rule.limit, rule.limit)

        key = f"ratelimit:{route_class.value}:{client_key}"
        try:
            count, reset_in = await asyncio.wait_for(self.backend.hit(key, rule.window), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Rate limiter unavailable, allowing request for {key}: {e}")
            return RateDecision(True, rule.limit, rule.limit)

        if count > rule.limit:
            logger.info(f"Rate limit exceeded for {key} ({count}/{rule.limit})")
            return RateDecision(False, rule.limit, 0, reset_in)
        return RateDecision(True, rule.limit, rule.limit - count)

    async def delay_for(self, client_key: str) -> float:
        """Seconds to hold a request back once the client exceeds the slow-down threshold of its window.

        Each request past `delay_after` adds `delay_ms`, capped at `max_delay_ms`. Throttling never
        rejects; a counter outage means no delay.
        """
        rule = self.slow_down
        if rule is None or not self.enabled or client_key in self.trusted_clients:
            return 0.0

        key = f"slowdown:{client_key}"
        try:
            count, _ = await asyncio.wait_for(self.backend.hit(key, rule.window), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Slow-down counter unavailable for {key}: {e}")
            return 0.0

        over = count - rule.delay_after
        if over <= 0:
            return 0.0
        delay_ms = min(over * rule.delay_ms, rule.max_delay_ms)
        logger.debug(f"Slowing down {key} by {delay_ms}ms ({count} requests in window)")
        return delay_ms / 1000


def rules_from_settings(settings) -> Dict[RouteClass, RateLimitRule]:
    return {
        route_class: RateLimitRule(
            limit=getattr(settings, f"RATE_LIMIT_{route_class.name}"),
            window=getattr(settings, f"RATE_LIMIT_{route_class.name}_WINDOW"),
        )
        for route_class in RouteClass
    }


def slow_down_from_settings(settings) -> Optional[SlowDownRule]:
    if not settings.SLOW_DOWN_ENABLED:
        return None
    return SlowDownRule(
        delay_after=settings.SLOW_DOWN_AFTER,
        delay_ms=settings.SLOW_DOWN_DELAY_MS,
        max_delay_ms=settings.SLOW_DOWN_MAX_DELAY_MS,
        window=settings.SLOW_DOWN_WINDOW,
    )


def create_rate_guard(settings, store: CacheStore) -> RateGuard:
    # Share the cache's Redis connection so limits hold across workers; otherwise count in-process
    if isinstance(store.backend, RedisCacheBackend):
        backend: CounterBackend = RedisCounterBackend(store.backend.redis)
    else:
        backend = MemoryCounterBackend()

    return RateGuard(
        backend,
        rules_from_settings(settings),
        trusted_clients=settings.TRUSTED_IPS,
        timeout=settings.CACHE_OPERATION_TIMEOUT,
        enabled=settings.RATE_LIMIT_ENABLED,
        slow_down=slow_down_from_settings(settings),
    )
