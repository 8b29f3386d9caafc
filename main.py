from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.cache import create_cache_store
from app.core.cache_keys import CacheKeyPolicy
from app.core.database import Base, engine
from app.core.errors import OriginTimeoutError, RateLimitExceeded
from app.core.logging import configure_logging
from app.endpoints import product, blog, category, brand, promotion, cart, cache_admin
from app.middleware.cache_middleware import CacheHeaderMiddleware
from app.middleware.exceptions import (
    global_exception_handler, http_exception_handler, origin_timeout_exception_handler,
    rate_limit_exception_handler, validation_exception_handler,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.services.cache_invalidation import InvalidationCoordinator
from app.services.rate_limit import create_rate_guard
from app.services.read_through import ReadThroughCache
from app.utils.service_registry import ServiceRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    Base.metadata.create_all(bind=engine)

    store = create_cache_store(settings)
    await store.init()
    policy = CacheKeyPolicy(settings.SUPPORTED_LOCALES, settings.DEFAULT_LOCALE)
    read_through = ReadThroughCache(store, origin_timeout=settings.ORIGIN_QUERY_TIMEOUT)
    invalidator = InvalidationCoordinator(store, policy)

    app.state.cache_store = store
    app.state.rate_guard = create_rate_guard(settings, store)
    app.state.services = ServiceRegistry(store, read_through, invalidator, policy)
    logger.info(f"{settings.PROJECT_NAME} started (cache backend: {store.backend_name})")
    try:
        yield
    finally:
        await store.close()
        logger.info("Cache store closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(CacheHeaderMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Request-ID", "Retry-After", "ETag", "X-SlowDown-Delay"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
app.add_exception_handler(OriginTimeoutError, origin_timeout_exception_handler)

app.include_router(product.router, prefix="/products", tags=["Products"])
app.include_router(blog.router, prefix="/blogs", tags=["Blogs"])
app.include_router(category.router, prefix="/categories", tags=["Categories"])
app.include_router(brand.router, prefix="/brands", tags=["Brands"])
app.include_router(promotion.router, prefix="/promotions", tags=["Promotions"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(cache_admin.router, prefix="/admin", tags=["Admin"])


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "cache_backend": app.state.cache_store.backend_name}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
