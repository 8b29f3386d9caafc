import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request, tagged with the request id and how the cache answered it."""

    async def dispatch(self, request: Request, call_next):
        # Honour an upstream id so proxy and app logs can be joined
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        method, path = request.method, request.url.path

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"[{request_id}] {method} {path} failed after {self._elapsed_ms(started)}ms: {exc}",
                extra={"request_id": request_id, "method": method, "path": path},
            )
            raise

        duration_ms = self._elapsed_ms(started)
        cache_status = getattr(request.state, "cache_status", None)
        cache_key = getattr(request.state, "cache_key", None)
        cache_msg = f" cache={cache_status}" if cache_status else ""
        if cache_key and cache_status != "BYPASS":
            cache_msg += f" key={cache_key}"

        logger.log(
            _level_for(response.status_code),
            f"[{request_id}] {method} {path} -> {response.status_code} in {duration_ms}ms{cache_msg}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "cache_status": cache_status,
                "cache_scope": getattr(request.state, "cache_scope", None),
            },
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms / 1000:.4f}"
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
