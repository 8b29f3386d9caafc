from typing import Optional, Sequence


class CacheError(Exception):
    pass

class StoreUnavailable(CacheError):
    """The cache backend could not be reached or did not answer in time."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Cache store unavailable during {operation}: {cause!r}")

class KeySerializationError(CacheError):
    """A cache key could not be derived canonically from the query parameters."""

class PartialInvalidationFailure(CacheError):
    """Some keys of an invalidation could not be purged. Logged, never raised to handlers."""

    def __init__(self, entity: str, failed: Sequence[str]):
        self.entity = entity
        self.failed = list(failed)
        super().__init__(f"Failed to purge {len(self.failed)} cache target(s) for {entity}: {self.failed}")

class OriginTimeoutError(Exception):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Origin query exceeded {timeout}s")

class RateLimitExceeded(Exception):
    def __init__(self, route_class: str, limit: int, retry_after: int):
        self.route_class = route_class
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for {route_class}")
