from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Storefront Catalog API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Privileged requests (mutations, "all statuses" listings) must send this in X-Admin-Key
    ADMIN_API_KEY: str

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
    ]

    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Cache
    CACHE_ENABLED: bool = True
    REDIS_URL: Optional[str] = None
    CACHE_DEFAULT_TTL: int = 300
    CACHE_OPERATION_TIMEOUT: float = 0.5
    ORIGIN_QUERY_TIMEOUT: float = 10.0

    SUPPORTED_LOCALES: List[str] = ["en", "ur", "ps"]
    DEFAULT_LOCALE: str = "en"

    # Rate limiting: (max requests, window seconds) per route class
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_GENERAL: int = 1000
    RATE_LIMIT_GENERAL_WINDOW: int = 15 * 60
    RATE_LIMIT_AUTH: int = 20
    RATE_LIMIT_AUTH_WINDOW: int = 15 * 60
    RATE_LIMIT_REGISTER: int = 5
    RATE_LIMIT_REGISTER_WINDOW: int = 60 * 60
    RATE_LIMIT_CATALOG: int = 2000
    RATE_LIMIT_CATALOG_WINDOW: int = 15 * 60
    RATE_LIMIT_CART: int = 500
    RATE_LIMIT_CART_WINDOW: int = 15 * 60
    RATE_LIMIT_ORDERS: int = 50
    RATE_LIMIT_ORDERS_WINDOW: int = 15 * 60
    RATE_LIMIT_ADMIN: int = 200
    RATE_LIMIT_ADMIN_WINDOW: int = 15 * 60
    TRUSTED_IPS: List[str] = []

    # Progressive slow-down for sustained traffic: each request past SLOW_DOWN_AFTER in the
    # window waits SLOW_DOWN_DELAY_MS more, up to SLOW_DOWN_MAX_DELAY_MS
    SLOW_DOWN_ENABLED: bool = True
    SLOW_DOWN_AFTER: int = 100
    SLOW_DOWN_DELAY_MS: int = 250
    SLOW_DOWN_MAX_DELAY_MS: int = 3000
    SLOW_DOWN_WINDOW: int = 15 * 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False

    class Config:
        env_file = ".env"

settings = Settings()
