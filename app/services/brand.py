from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import CacheNamespace, EntityType
from app.crud.brand import brand as brand_crud
from app.crud.product import product as product_crud
from app.schemas.brand import Brand, BrandCreate, BrandUpdate
from app.schemas.response import APIResponse, Pagination
from app.services.base import CachedService, MutationResult
from app.services.read_through import CacheContext
from app.utils.slug import slugify, unique_slug

logger = logging.getLogger(__name__)


class BrandService(CachedService):
    entity_type = EntityType.BRAND

    async def list_brands(self, db: Session, *, page: int = 1, limit: int = 100,
                          context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_listing_key(
            CacheNamespace.BRANDS, filters={"is_active": True}, page=page, limit=limit, sort="name", order="asc",
        )
        return await self._read(key, CACHE_TTL["brand_list"], self._load_listing, db, page, limit, context=context)

    def _load_listing(self, db: Session, page: int, limit: int) -> Dict[str, Any]:
        items = brand_crud.get_active(db, skip=(page - 1) * limit, limit=limit)
        return APIResponse(
            message="Brands retrieved successfully",
            data=[Brand.model_validate(item) for item in items],
            pagination=Pagination.build(page=page, limit=limit, total=brand_crud.count_active(db)),
        ).model_dump(mode="json")

    async def get_brand(self, db: Session, identifier: str, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_detail_key(CacheNamespace.BRAND, identifier)
        return await self._read(key, CACHE_TTL["brand_detail"], self._load_detail, db, identifier, context=context)

    def _load_detail(self, db: Session, identifier: str) -> Dict[str, Any]:
        brand = brand_crud.get_by_id_or_slug(db, identifier)
        if not brand or not brand.is_active:
            self._not_found("Brand", identifier)
        return APIResponse(
            message="Brand retrieved successfully",
            data=Brand.model_validate(brand),
        ).model_dump(mode="json")

    def _resolve_slug(self, db: Session, requested: Optional[str], name: str, current_id: Optional[int] = None) -> str:
        if requested:
            slug = slugify(requested)
            if not slug or slug.isdigit():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Slug must contain letters")
            existing = brand_crud.get_by_slug(db, slug)
            if existing and existing.id != current_id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Brand slug '{slug}' already exists")
            return slug
        return unique_slug(name, lambda s: brand_crud.get_by_slug(db, s) is not None)

    async def create_brand(self, db: Session, brand_in: BrandCreate) -> Dict[str, Any]:
        return await self._mutate(self._create, db, brand_in)

    def _create(self, db: Session, brand_in: BrandCreate) -> MutationResult:
        data = brand_in.model_dump()
        data["slug"] = self._resolve_slug(db, brand_in.slug, brand_in.name)
        brand = brand_crud.create(db, obj_in=data)
        logger.info(f"Brand created: {brand.id} ({brand.slug})")
        return MutationResult(Brand.model_validate(brand).model_dump(mode="json"), brand.id, aliases=[brand.slug])

    async def update_brand(self, db: Session, identifier: str, brand_in: BrandUpdate) -> Dict[str, Any]:
        return await self._mutate(self._update, db, identifier, brand_in)

    def _update(self, db: Session, identifier: str, brand_in: BrandUpdate) -> MutationResult:
        brand = brand_crud.get_by_id_or_slug(db, identifier)
        if not brand:
            self._not_found("Brand", identifier)
        data = brand_in.model_dump(exclude_unset=True)
        if "slug" in data:
            data["slug"] = self._resolve_slug(db, data["slug"], brand.name, current_id=brand.id)
        old_slug = brand.slug
        brand = brand_crud.update(db, db_obj=brand, obj_in=data)
        logger.info(f"Brand updated: {brand.id} ({brand.slug})")
        return MutationResult(Brand.model_validate(brand).model_dump(mode="json"), brand.id, aliases=[old_slug, brand.slug])

    async def delete_brand(self, db: Session, identifier: str) -> Dict[str, Any]:
        return await self._mutate(self._delete, db, identifier)

    def _delete(self, db: Session, identifier: str) -> MutationResult:
        brand = brand_crud.get_by_id_or_slug(db, identifier)
        if not brand:
            self._not_found("Brand", identifier)
        product_count = product_crud.count_by_brand(db, brand.id)
        if product_count:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Brand '{brand.slug}' is still used by {product_count} products",
            )
        brand_id, slug = brand.id, brand.slug
        brand_crud.delete(db, id=brand_id)
        logger.info(f"Brand deleted: {brand_id} ({slug})")
        return MutationResult({"id": brand_id, "slug": slug}, brand_id, aliases=[slug])
