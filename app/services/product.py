from typing import Any, Dict, List, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import (
    CacheNamespace, CacheScope, EntityType, PRODUCT_SORT_OPTIONS, DEFAULT_PRODUCT_SORT,
)
from app.crud.blog import blog as blog_crud
from app.crud.brand import brand as brand_crud
from app.crud.cart import cart as cart_crud
from app.crud.category import category as category_crud
from app.crud.product import product as product_crud
from app.crud.promotion import promotion as promotion_crud
from app.models.product import Product as ProductModel
from app.schemas.product import BlogSnippet, Product, ProductCreate, ProductDetail, ProductUpdate
from app.schemas.response import APIResponse, Pagination
from app.services.base import CachedService, MutationResult
from app.services.cache_invalidation import Relation
from app.services.read_through import CacheContext
from app.utils.slug import slugify, unique_slug

logger = logging.getLogger(__name__)


class ProductService(CachedService):
    entity_type = EntityType.PRODUCT

    async def list_products(
        self,
        db: Session,
        *,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        page: int = 1,
        limit: int = 12,
        sort: str = DEFAULT_PRODUCT_SORT,
        include_inactive: bool = False,
        is_admin: bool = False,
        context: Optional[CacheContext] = None,
    ) -> Dict[str, Any]:
        if sort not in PRODUCT_SORT_OPTIONS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown sort '{sort}'. Use one of: {', '.join(PRODUCT_SORT_OPTIONS)}",
            )
        context = context or CacheContext()
        if include_inactive:
            self._require_admin(is_admin, "list inactive products")
            context.scope = CacheScope.ADMIN

        sort_column, order = PRODUCT_SORT_OPTIONS[sort]
        search = search.strip() if search else None
        key = self.policy.try_listing_key(
            CacheNamespace.PRODUCTS,
            filters={
                "category": category,
                "brand": brand,
                "search": search,
                "featured": featured,
                "is_active": None if include_inactive else True,
            },
            page=page,
            limit=limit,
            sort=sort_column,
            order=order.value,
            scope=context.scope,
        )
        return await self._read(
            key, CACHE_TTL["product_list"], self._load_listing,
            db, category, brand, search, featured, include_inactive, sort_column, order, page, limit,
            context=context,
        )

    def _load_listing(self, db, category, brand, search, featured, include_inactive, sort_column, order, page, limit):
        items, total = product_crud.list_filtered(
            db,
            category_slug=category,
            brand_slug=brand,
            search=search,
            featured=featured,
            include_inactive=include_inactive,
            sort=sort_column,
            order=order,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return APIResponse(
            message="Products retrieved successfully",
            data=[Product.model_validate(item) for item in items],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        ).model_dump(mode="json")

    async def get_product(self, db: Session, identifier: str, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_detail_key(CacheNamespace.PRODUCT, identifier)
        return await self._read(key, CACHE_TTL["product_detail"], self._load_detail, db, identifier, context=context)

    def _serialize_detail(self, db: Session, product: ProductModel) -> Dict[str, Any]:
        detail = ProductDetail(
            **Product.model_validate(product).model_dump(),
            is_promoted=promotion_crud.has_active_for_product(db, product.id),
        )
        detail.related_blogs = [
            BlogSnippet(id=blog.id, slug=blog.slug, title=blog.title.get("en", ""), published_at=blog.published_at)
            for blog in blog_crud.published_for_product(db, product.id)
        ]
        return detail.model_dump(mode="json")

    def _load_detail(self, db: Session, identifier: str) -> Dict[str, Any]:
        product = product_crud.get_by_id_or_slug(db, identifier)
        if not product or not product.is_active:
            self._not_found("Product", identifier)
        return APIResponse(
            message="Product retrieved successfully",
            data=self._serialize_detail(db, product),
        ).model_dump(mode="json")

    def _validate_references(self, db: Session, category_id: Optional[int], brand_id: Optional[int]):
        if category_id is not None and not category_crud.get(db, category_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Category {category_id} does not exist")
        if brand_id is not None and not brand_crud.get(db, brand_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Brand {brand_id} does not exist")

    def _resolve_slug(self, db: Session, requested: Optional[str], name: str, current_id: Optional[int] = None) -> str:
        if requested:
            slug = slugify(requested)
            existing = product_crud.get_by_slug(db, slug)
            if not slug or slug.isdigit():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Slug must contain letters")
            if existing and existing.id != current_id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Product slug '{slug}' already exists")
            return slug
        return unique_slug(name, lambda s: product_crud.get_by_slug(db, s) is not None)

    def _relations(self, db: Session, product: ProductModel) -> List[Relation]:
        relations = []
        for blog in blog_crud.get_for_product(db, product.id):
            relations += [Relation(EntityType.BLOG, blog.id), Relation(EntityType.BLOG, blog.slug)]
        for promotion in promotion_crud.get_for_product(db, product.id):
            relations.append(Relation(EntityType.PROMOTION, promotion.id))
        for session_id in cart_crud.sessions_for_product(db, product.id):
            relations.append(Relation(EntityType.CART, session_id))
        return relations

    async def create_product(self, db: Session, product_in: ProductCreate) -> Dict[str, Any]:
        return await self._mutate(self._create, db, product_in)

    def _create(self, db: Session, product_in: ProductCreate) -> MutationResult:
        self._validate_references(db, product_in.category_id, product_in.brand_id)
        data = product_in.model_dump()
        data["slug"] = self._resolve_slug(db, product_in.slug, product_in.name)
        product = product_crud.create(db, obj_in=data)
        logger.info(f"Product created: {product.id} ({product.slug})")
        return MutationResult(self._serialize_detail(db, product), product.id, aliases=[product.slug])

    async def update_product(self, db: Session, identifier: str, product_in: ProductUpdate) -> Dict[str, Any]:
        return await self._mutate(self._update, db, identifier, product_in)

    def _update(self, db: Session, identifier: str, product_in: ProductUpdate) -> MutationResult:
        product = product_crud.get_by_id_or_slug(db, identifier)
        if not product:
            self._not_found("Product", identifier)

        update_data = product_in.model_dump(exclude_unset=True)
        self._validate_references(db, update_data.get("category_id"), update_data.get("brand_id"))
        if "category_id" in update_data and update_data["category_id"] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A product must belong to a category")
        if "slug" in update_data:
            update_data["slug"] = self._resolve_slug(db, update_data["slug"], product.name, current_id=product.id)

        old_slug = product.slug
        product = product_crud.update(db, db_obj=product, obj_in=update_data)
        logger.info(f"Product updated: {product.id} ({product.slug})")
        return MutationResult(
            self._serialize_detail(db, product),
            product.id,
            aliases=[old_slug, product.slug],
            relations=self._relations(db, product),
        )

    async def delete_product(self, db: Session, identifier: str) -> Dict[str, Any]:
        return await self._mutate(self._delete, db, identifier)

    def _delete(self, db: Session, identifier: str) -> MutationResult:
        product = product_crud.get_by_id_or_slug(db, identifier)
        if not product:
            self._not_found("Product", identifier)

        relations = self._relations(db, product)
        product_id, slug = product.id, product.slug
        for blog in blog_crud.get_for_product(db, product_id):
            if blog.primary_product_id == product_id:
                blog.primary_product_id = None
            blog.related_products = [p for p in blog.related_products if p.id != product_id]
        for promotion in promotion_crud.get_for_product(db, product_id):
            db.delete(promotion)
        cart_crud.delete_for_product(db, product_id)
        db.delete(product)
        db.commit()
        logger.info(f"Product deleted: {product_id} ({slug})")
        return MutationResult({"id": product_id, "slug": slug}, product_id, aliases=[slug], relations=relations)
