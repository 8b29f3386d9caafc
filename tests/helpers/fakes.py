import asyncio
from typing import List, Optional

from app.core.cache import CacheBackend, MemoryCacheBackend

class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

class FailingBackend(CacheBackend):
    """Every operation raises, like a Redis that went away mid-flight."""
    name = "failing"

    async def get(self, key: str) -> Optional[str]:
        raise ConnectionError("backend down")

    async def set(self, key: str, value: str, ttl: int) -> bool:
        raise ConnectionError("backend down")

    async def delete(self, key: str) -> bool:
        raise ConnectionError("backend down")

    async def delete_many(self, keys: List[str]) -> int:
        raise ConnectionError("backend down")

    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        raise ConnectionError("backend down")

    async def clear(self) -> bool:
        raise ConnectionError("backend down")

    async def ping(self) -> bool:
        raise ConnectionError("backend down")

class SlowBackend(MemoryCacheBackend):
    name = "slow"

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(self.delay)
        return await super().get(key)

class FlakyScanBackend(MemoryCacheBackend):
    """Prefix scans fail; exact deletes work."""
    name = "flaky"

    async def scan_prefix(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        raise TimeoutError("scan timed out")

class NonScanningMemoryBackend(MemoryCacheBackend):
    name = "memory-noscan"
    supports_scan = False
