from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import CacheNamespace, EntityType
from app.crud.cart import cart as cart_crud
from app.crud.product import product as product_crud
from app.schemas.cart import Cart, CartItemCreate, CartItemUpdate, CartLine
from app.schemas.product import ProductSnippet
from app.schemas.response import APIResponse
from app.services.base import CachedService, MutationResult
from app.services.read_through import CacheContext

logger = logging.getLogger(__name__)


class CartService(CachedService):
    """Per-session carts. The session id is the cache identifier, so every write purges exactly one key."""
    entity_type = EntityType.CART

    async def get_cart(self, db: Session, session_id: str, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_detail_key(CacheNamespace.CART, session_id)
        return await self._read(key, CACHE_TTL["cart"], self._load_cart, db, session_id, context=context)

    def _build_cart(self, db: Session, session_id: str) -> Dict[str, Any]:
        lines = [
            CartLine(
                product=ProductSnippet.model_validate(item.product),
                quantity=item.quantity,
                line_total=round(item.product.price * item.quantity, 2),
            )
            for item in cart_crud.get_items(db, session_id)
        ]
        return Cart(
            session_id=session_id,
            items=lines,
            item_count=sum(line.quantity for line in lines),
            subtotal=round(sum(line.line_total for line in lines), 2),
        ).model_dump(mode="json")

    def _load_cart(self, db: Session, session_id: str) -> Dict[str, Any]:
        return APIResponse(message="Cart retrieved successfully", data=self._build_cart(db, session_id)).model_dump(mode="json")

    def _check_stock(self, db: Session, product_id: int, quantity: int):
        product = product_crud.get(db, product_id)
        if not product or not product.is_active:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {product_id} is not available")
        if quantity > product.stock:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only {product.stock} units of '{product.name}' are in stock",
            )

    async def add_item(self, db: Session, session_id: str, item_in: CartItemCreate) -> Dict[str, Any]:
        return await self._mutate(self._add_item, db, session_id, item_in)

    def _add_item(self, db: Session, session_id: str, item_in: CartItemCreate) -> MutationResult:
        item = cart_crud.get_item(db, session_id, item_in.product_id)
        quantity = item_in.quantity + (item.quantity if item else 0)
        self._check_stock(db, item_in.product_id, quantity)
        if item:
            cart_crud.update(db, db_obj=item, obj_in={"quantity": quantity})
        else:
            cart_crud.create(db, obj_in={"session_id": session_id, **item_in.model_dump()})
        return MutationResult(self._build_cart(db, session_id), session_id)

    async def update_item(self, db: Session, session_id: str, product_id: int, item_in: CartItemUpdate) -> Dict[str, Any]:
        return await self._mutate(self._update_item, db, session_id, product_id, item_in)

    def _update_item(self, db: Session, session_id: str, product_id: int, item_in: CartItemUpdate) -> MutationResult:
        item = cart_crud.get_item(db, session_id, product_id)
        if not item:
            self._not_found("Cart item", product_id)
        self._check_stock(db, product_id, item_in.quantity)
        cart_crud.update(db, db_obj=item, obj_in={"quantity": item_in.quantity})
        return MutationResult(self._build_cart(db, session_id), session_id)

    async def remove_item(self, db: Session, session_id: str, product_id: int) -> Dict[str, Any]:
        return await self._mutate(self._remove_item, db, session_id, product_id)

    def _remove_item(self, db: Session, session_id: str, product_id: int) -> MutationResult:
        item = cart_crud.get_item(db, session_id, product_id)
        if not item:
            self._not_found("Cart item", product_id)
        cart_crud.delete(db, id=item.id)
        return MutationResult(self._build_cart(db, session_id), session_id)

    async def clear_cart(self, db: Session, session_id: str) -> Dict[str, Any]:
        return await self._mutate(self._clear, db, session_id)

    def _clear(self, db: Session, session_id: str) -> MutationResult:
        removed = cart_crud.clear(db, session_id)
        logger.info(f"Cart {session_id} cleared ({removed} items)")
        return MutationResult(self._build_cart(db, session_id), session_id)
