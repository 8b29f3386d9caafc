from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import (
    ALL_STATUSES, BLOG_SORT_FIELDS, BlogStatusEnum, CacheNamespace, CacheScope,
    DEFAULT_BLOG_SORT, EntityType, SortOrderEnum,
)
from app.crud.blog import blog as blog_crud
from app.crud.category import category as category_crud
from app.crud.product import product as product_crud
from app.models.blog import Blog as BlogModel
from app.schemas.blog import Blog, BlogCreate, BlogDetail, BlogUpdate
from app.schemas.category import CategoryRef
from app.schemas.product import ProductSnippet
from app.schemas.response import APIResponse, Pagination
from app.services.base import CachedService, MutationResult
from app.services.cache_invalidation import Relation
from app.services.read_through import CacheContext
from app.utils.slug import slugify, unique_slug

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6


def localize(value: Optional[Dict[str, str]], locale: str) -> str:
    """Pick the requested language, falling back to English."""
    value = value or {}
    return value.get(locale) or value.get("en", "")


class BlogService(CachedService):
    entity_type = EntityType.BLOG

    def _check_locale(self, language: Optional[str]) -> str:
        language = language or self.policy.default_locale
        if language not in self.policy.locales:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported language '{language}'. Use one of: {', '.join(self.policy.locales)}",
            )
        return language

    def _to_summary(self, blog: BlogModel, locale: str) -> Blog:
        return Blog(
            id=blog.id,
            slug=blog.slug,
            language=locale,
            title=localize(blog.title, locale),
            excerpt=localize(blog.excerpt, locale),
            status=blog.status,
            author_name=blog.author_name,
            tags=blog.tags or [],
            is_featured=blog.is_featured,
            category=CategoryRef.model_validate(blog.category) if blog.category else None,
            primary_product=ProductSnippet.model_validate(blog.primary_product) if blog.primary_product else None,
            published_at=blog.published_at,
            created_at=blog.created_at,
        )

    def _to_detail(self, blog: BlogModel, locale: str) -> Dict[str, Any]:
        return BlogDetail(
            **self._to_summary(blog, locale).model_dump(),
            content=localize(blog.content, locale),
            available_languages=[code for code in self.policy.locales if (blog.title or {}).get(code)],
            related_products=[ProductSnippet.model_validate(p) for p in blog.related_products if p.is_active],
        ).model_dump(mode="json")

    async def list_blogs(
        self,
        db: Session,
        *,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        status_filter: str = BlogStatusEnum.PUBLISHED.value,
        language: Optional[str] = None,
        page: int = 1,
        limit: int = 12,
        sort_by: str = DEFAULT_BLOG_SORT,
        sort_order: SortOrderEnum = SortOrderEnum.DESC,
        is_admin: bool = False,
        context: Optional[CacheContext] = None,
        ttl: Optional[int] = None,
    ) -> Dict[str, Any]:
        context = context or CacheContext()
        language = self._check_locale(language)
        if sort_by not in BLOG_SORT_FIELDS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown sort field '{sort_by}'. Use one of: {', '.join(BLOG_SORT_FIELDS)}",
            )

        if status_filter == ALL_STATUSES:
            blog_status = None
        else:
            try:
                blog_status = BlogStatusEnum(status_filter)
            except ValueError:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown blog status '{status_filter}'")
        if blog_status != BlogStatusEnum.PUBLISHED:
            self._require_admin(is_admin, "list unpublished blogs")
            context.scope = CacheScope.ADMIN

        sort_order = SortOrderEnum(sort_order)
        key = self.policy.try_listing_key(
            CacheNamespace.BLOGS,
            filters={"status": status_filter, "category": category, "featured": featured},
            page=page,
            limit=limit,
            sort=sort_by,
            order=sort_order.value,
            locale=language,
            scope=context.scope,
        )
        return await self._read(
            key, ttl or CACHE_TTL["blog_list"], self._load_listing,
            db, blog_status, category, featured, sort_by, sort_order, page, limit, language,
            context=context,
        )

    async def list_featured(self, db: Session, *, language: Optional[str] = None, limit: int = FEATURED_LIMIT,
                            context: Optional[CacheContext] = None) -> Dict[str, Any]:
        return await self.list_blogs(
            db, featured=True, language=language, limit=limit, context=context, ttl=CACHE_TTL["featured_blogs"],
        )

    def _load_listing(self, db, blog_status, category, featured, sort_by, sort_order, page, limit, language):
        items, total = blog_crud.list_filtered(
            db,
            status=blog_status,
            category_slug=category,
            featured=featured,
            sort_by=sort_by,
            order=sort_order,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return APIResponse(
            message="Blogs retrieved successfully",
            data=[self._to_summary(item, language) for item in items],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        ).model_dump(mode="json")

    async def get_blog(self, db: Session, slug: str, *, language: Optional[str] = None, is_admin: bool = False,
                       context: Optional[CacheContext] = None) -> Dict[str, Any]:
        context = context or CacheContext()
        language = self._check_locale(language)
        if is_admin:
            # Admins may preview drafts; their view never touches public keys
            context.scope = CacheScope.ADMIN
        key = self.policy.try_detail_key(CacheNamespace.BLOG, slug, locale=language, scope=context.scope)
        return await self._read(
            key, CACHE_TTL["blog_detail"], self._load_detail, db, slug, language, is_admin, context=context,
        )

    def _load_detail(self, db: Session, slug: str, language: str, include_unpublished: bool) -> Dict[str, Any]:
        blog = blog_crud.get_by_id_or_slug(db, slug)
        if not blog or not blog.is_active:
            self._not_found("Blog", slug)
        if blog.status != BlogStatusEnum.PUBLISHED and not include_unpublished:
            self._not_found("Blog", slug)
        return APIResponse(message="Blog retrieved successfully", data=self._to_detail(blog, language)).model_dump(mode="json")

    def _product_relations(self, blog: BlogModel) -> List[Relation]:
        products = list(blog.related_products)
        if blog.primary_product:
            products.append(blog.primary_product)
        relations = []
        for product in products:
            relations += [Relation(EntityType.PRODUCT, product.id), Relation(EntityType.PRODUCT, product.slug)]
        return relations

    def _validate_references(self, db: Session, data: Dict[str, Any]) -> Optional[list]:
        if data.get("category_id") is not None and not category_crud.get(db, data["category_id"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Category {data['category_id']} does not exist")
        if data.get("primary_product_id") is not None and not product_crud.get(db, data["primary_product_id"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Product {data['primary_product_id']} does not exist")

        related_ids = data.pop("related_product_ids", None)
        if related_ids is None:
            return None
        products = [product_crud.get(db, product_id) for product_id in dict.fromkeys(related_ids)]
        missing = [pid for pid, p in zip(dict.fromkeys(related_ids), products) if p is None]
        if missing:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Products {missing} do not exist")
        return products

    def _resolve_slug(self, db: Session, requested: Optional[str], title: str, current_id: Optional[int] = None) -> str:
        if requested:
            slug = slugify(requested)
            if not slug or slug.isdigit():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Slug must contain letters")
            existing = blog_crud.get_by_slug(db, slug)
            if existing and existing.id != current_id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Blog slug '{slug}' already exists")
            return slug
        return unique_slug(title, lambda s: blog_crud.get_by_slug(db, s) is not None)

    @staticmethod
    def _apply_status(data: Dict[str, Any], blog: Optional[BlogModel] = None):
        if "status" not in data or data["status"] is None:
            data.pop("status", None)
            return
        data["status"] = BlogStatusEnum(data["status"])
        already_published = blog is not None and blog.published_at is not None
        if data["status"] == BlogStatusEnum.PUBLISHED and not already_published:
            data["published_at"] = datetime.now(timezone.utc)

    async def create_blog(self, db: Session, blog_in: BlogCreate) -> Dict[str, Any]:
        return await self._mutate(self._create, db, blog_in)

    def _create(self, db: Session, blog_in: BlogCreate) -> MutationResult:
        data = blog_in.model_dump()
        related = self._validate_references(db, data) or []
        data["slug"] = self._resolve_slug(db, blog_in.slug, blog_in.title["en"])
        self._apply_status(data)

        blog = blog_crud.create(db, obj_in=data, commit=False)
        blog_crud.set_related_products(db, blog=blog, products=related)
        db.commit()
        db.refresh(blog)
        logger.info(f"Blog created: {blog.id} ({blog.slug})")
        return MutationResult(
            self._to_detail(blog, self.policy.default_locale),
            blog.id,
            aliases=[blog.slug],
            relations=self._product_relations(blog),
        )

    async def update_blog(self, db: Session, identifier: str, blog_in: BlogUpdate) -> Dict[str, Any]:
        return await self._mutate(self._update, db, identifier, blog_in)

    def _update(self, db: Session, identifier: str, blog_in: BlogUpdate) -> MutationResult:
        blog = blog_crud.get_by_id_or_slug(db, identifier)
        if not blog:
            self._not_found("Blog", identifier)

        data = blog_in.model_dump(exclude_unset=True)
        if "title" in data and data["title"] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A blog must have a title")
        related = self._validate_references(db, data)
        if "slug" in data:
            data["slug"] = self._resolve_slug(db, data["slug"], blog.title.get("en", ""), current_id=blog.id)
        self._apply_status(data, blog)

        # Products the blog pointed at before the change lose their snippet too
        relations = self._product_relations(blog)
        old_slug = blog.slug
        if related is not None:
            blog_crud.set_related_products(db, blog=blog, products=related)
        blog = blog_crud.update(db, db_obj=blog, obj_in=data)
        relations += self._product_relations(blog)
        logger.info(f"Blog updated: {blog.id} ({blog.slug})")
        return MutationResult(
            self._to_detail(blog, self.policy.default_locale),
            blog.id,
            aliases=[old_slug, blog.slug],
            relations=relations,
        )

    async def delete_blog(self, db: Session, identifier: str) -> Dict[str, Any]:
        return await self._mutate(self._delete, db, identifier)

    def _delete(self, db: Session, identifier: str) -> MutationResult:
        blog = blog_crud.get_by_id_or_slug(db, identifier)
        if not blog:
            self._not_found("Blog", identifier)
        relations = self._product_relations(blog)
        blog_id, slug = blog.id, blog.slug
        blog_crud.delete(db, id=blog_id)
        logger.info(f"Blog deleted: {blog_id} ({slug})")
        return MutationResult({"id": blog_id, "slug": slug}, blog_id, aliases=[slug], relations=relations)
