from typing import List
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.promotion import HomePromotion
from app.schemas.promotion import PromotionCreate


class CRUDPromotion(CRUDBase[HomePromotion, PromotionCreate, PromotionCreate]):

    def get_active(self, db: Session) -> List[HomePromotion]:
        return db.query(HomePromotion).options(selectinload(HomePromotion.product)) \
            .filter(HomePromotion.is_active.is_(True)) \
            .order_by(HomePromotion.position.asc(), HomePromotion.id.asc()).all()

    def get_for_product(self, db: Session, product_id: int) -> List[HomePromotion]:
        return db.query(HomePromotion).filter(HomePromotion.product_id == product_id).all()

    def has_active_for_product(self, db: Session, product_id: int) -> bool:
        return db.query(HomePromotion).filter(
            HomePromotion.product_id == product_id,
            HomePromotion.is_active.is_(True),
        ).first() is not None


promotion = CRUDPromotion(HomePromotion)
