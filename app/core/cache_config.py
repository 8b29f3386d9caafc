"""Cache configuration and TTL settings"""
from app.core.constants import CacheNamespace

# Cache TTL (Time To Live) configurations in seconds
CACHE_TTL = {
    # Paginated listings - churn with every catalog write
    "product_list": 300,      # 5 minutes
    "blog_list": 300,         # 5 minutes
    "promotion_list": 600,    # 10 minutes

    # Single-entity pages - near static
    "product_detail": 900,    # 15 minutes
    "blog_detail": 600,       # 10 minutes
    "featured_blogs": 900,    # 15 minutes
    "category_detail": 900,   # 15 minutes
    "brand_detail": 900,      # 15 minutes

    # Reference data - rarely changes
    "category_list": 1800,    # 30 minutes
    "category_tree": 1800,    # 30 minutes
    "brand_list": 1800,       # 30 minutes

    # Session-bound data
    "cart": 120,              # 2 minutes
}

# Listing pages requested with default parameters; deleted by exact key when the
# backend cannot enumerate keys by prefix
DEFAULT_LISTING_PARAMS = {
    CacheNamespace.PRODUCTS: [
        {"filter": {"is_active": True}, "page": 1, "limit": 12, "sort": "created_at", "order": "desc"},
    ],
    CacheNamespace.BLOGS: [
        {"filter": {"status": "published"}, "page": 1, "limit": 12, "sort": "published_at", "order": "desc"},
        {"filter": {"featured": True, "status": "published"}, "page": 1, "limit": 6, "sort": "published_at", "order": "desc"},
    ],
    CacheNamespace.CATEGORIES: [
        {"filter": {"is_active": True}, "page": 1, "limit": 100, "sort": "name", "order": "asc"},
        {"filter": {"view": "tree"}, "page": 1, "limit": 0, "sort": "name", "order": "asc"},
    ],
    CacheNamespace.BRANDS: [
        {"filter": {"is_active": True}, "page": 1, "limit": 100, "sort": "name", "order": "asc"},
    ],
    CacheNamespace.PROMOTIONS: [
        {"filter": {"is_active": True}, "page": 1, "limit": 0, "sort": "position", "order": "asc"},
    ],
}
