from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.cart import CartItem
from app.schemas.cart import CartItemCreate, CartItemUpdate


class CRUDCart(CRUDBase[CartItem, CartItemCreate, CartItemUpdate]):

    def get_items(self, db: Session, session_id: str) -> List[CartItem]:
        return db.query(CartItem).options(selectinload(CartItem.product)) \
            .filter(CartItem.session_id == session_id) \
            .order_by(CartItem.id.asc()).all()

    def get_item(self, db: Session, session_id: str, product_id: int) -> Optional[CartItem]:
        return db.query(CartItem).filter(
            CartItem.session_id == session_id,
            CartItem.product_id == product_id,
        ).first()

    def sessions_for_product(self, db: Session, product_id: int) -> List[str]:
        rows = db.query(CartItem.session_id).filter(CartItem.product_id == product_id).distinct().all()
        return [row[0] for row in rows]

    def clear(self, db: Session, session_id: str, commit: bool = True) -> int:
        deleted = db.query(CartItem).filter(CartItem.session_id == session_id).delete()
        if commit:
            db.commit()
        return deleted

    def delete_for_product(self, db: Session, product_id: int) -> int:
        return db.query(CartItem).filter(CartItem.product_id == product_id).delete()


cart = CRUDCart(CartItem)
