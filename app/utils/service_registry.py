from app.core.cache import CacheStore
from app.core.cache_keys import CacheKeyPolicy
from app.services.blog import BlogService
from app.services.brand import BrandService
from app.services.cache_invalidation import InvalidationCoordinator
from app.services.cache_service import CacheService
from app.services.cart import CartService
from app.services.category import CategoryService
from app.services.product import ProductService
from app.services.promotion import PromotionService
from app.services.read_through import ReadThroughCache

class ServiceRegistry:
    def __init__(self, store: CacheStore, read_through: ReadThroughCache, invalidator: InvalidationCoordinator,
                 policy: CacheKeyPolicy):
        self._product = ProductService(read_through, invalidator, policy)
        self._blog = BlogService(read_through, invalidator, policy)
        self._category = CategoryService(read_through, invalidator, policy)
        self._brand = BrandService(read_through, invalidator, policy)
        self._promotion = PromotionService(read_through, invalidator, policy)
        self._cart = CartService(read_through, invalidator, policy)
        self._cache = CacheService(store, read_through, invalidator)

    @property
    def product(self):
        return self._product
    @property
    def blog(self):
        return self._blog
    @property
    def category(self):
        return self._category
    @property
    def brand(self):
        return self._brand
    @property
    def promotion(self):
        return self._promotion
    @property
    def cart(self):
        return self._cart
    @property
    def cache(self):
        return self._cache
