from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import CacheNamespace, EntityType
from app.crud.product import product as product_crud
from app.crud.promotion import promotion as promotion_crud
from app.schemas.promotion import Promotion, PromotionCreate
from app.schemas.response import APIResponse
from app.services.base import CachedService, MutationResult
from app.services.cache_invalidation import Relation
from app.services.read_through import CacheContext

logger = logging.getLogger(__name__)


class PromotionService(CachedService):
    entity_type = EntityType.PROMOTION

    async def list_promotions(self, db: Session, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_listing_key(
            CacheNamespace.PROMOTIONS, filters={"is_active": True}, page=1, limit=0, sort="position", order="asc",
        )
        return await self._read(key, CACHE_TTL["promotion_list"], self._load_listing, db, context=context)

    def _load_listing(self, db: Session) -> Dict[str, Any]:
        promotions = [p for p in promotion_crud.get_active(db) if p.product.is_active]
        return APIResponse(
            message="Promotions retrieved successfully",
            data=[Promotion.model_validate(p) for p in promotions],
        ).model_dump(mode="json")

    async def create_promotion(self, db: Session, promotion_in: PromotionCreate) -> Dict[str, Any]:
        return await self._mutate(self._create, db, promotion_in)

    def _create(self, db: Session, promotion_in: PromotionCreate) -> MutationResult:
        product = product_crud.get(db, promotion_in.product_id)
        if not product:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Product {promotion_in.product_id} does not exist")
        promotion = promotion_crud.create(db, obj_in=promotion_in)
        logger.info(f"Promotion created: {promotion.id} for product {product.id}")
        return MutationResult(
            Promotion.model_validate(promotion).model_dump(mode="json"),
            promotion.id,
            relations=[Relation(EntityType.PRODUCT, product.id), Relation(EntityType.PRODUCT, product.slug)],
        )

    async def delete_promotion(self, db: Session, promotion_id: int) -> Dict[str, Any]:
        return await self._mutate(self._delete, db, promotion_id)

    def _delete(self, db: Session, promotion_id: int) -> MutationResult:
        promotion = promotion_crud.get(db, promotion_id)
        if not promotion:
            self._not_found("Promotion", promotion_id)
        product = promotion.product
        relations = [Relation(EntityType.PRODUCT, product.id), Relation(EntityType.PRODUCT, product.slug)]
        promotion_crud.delete(db, id=promotion_id)
        logger.info(f"Promotion deleted: {promotion_id}")
        return MutationResult({"id": promotion_id}, promotion_id, relations=relations)
