from enum import Enum


class CacheScope(str, Enum):
    PUBLIC = "public"
    ADMIN = "admin"

class CacheNamespace(str, Enum):
    PRODUCTS = "products"
    PRODUCT = "product"
    BLOGS = "blogs"
    BLOG = "blog"
    CATEGORIES = "categories"
    CATEGORY = "category"
    BRANDS = "brands"
    BRAND = "brand"
    PROMOTIONS = "promotions"
    CART = "cart"

# Namespaces whose payloads depend on the requested language
LOCALIZED_NAMESPACES = frozenset({CacheNamespace.BLOGS, CacheNamespace.BLOG})

class EntityType(str, Enum):
    PRODUCT = "product"
    BLOG = "blog"
    CATEGORY = "category"
    BRAND = "brand"
    PROMOTION = "promotion"
    CART = "cart"

class RouteClass(str, Enum):
    GENERAL = "general"
    AUTH = "auth"
    REGISTER = "register"
    CATALOG = "catalog"
    CART = "cart"
    ORDERS = "orders"
    ADMIN = "admin"

class BlogStatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

# Blog listings accept this pseudo-status to show every status (admin view)
ALL_STATUSES = "all"

class SortOrderEnum(str, Enum):
    ASC = "asc"
    DESC = "desc"

# Public product sort names -> (column, direction)
PRODUCT_SORT_OPTIONS = {
    "newest": ("created_at", SortOrderEnum.DESC),
    "oldest": ("created_at", SortOrderEnum.ASC),
    "price_asc": ("price", SortOrderEnum.ASC),
    "price_desc": ("price", SortOrderEnum.DESC),
    "name": ("name", SortOrderEnum.ASC),
}
DEFAULT_PRODUCT_SORT = "newest"

BLOG_SORT_FIELDS = ("published_at", "view_count", "created_at")
DEFAULT_BLOG_SORT = "published_at"

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
