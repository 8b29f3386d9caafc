from typing import List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.brand import Brand
from app.schemas.brand import BrandCreate, BrandUpdate


class CRUDBrand(CRUDBase[Brand, BrandCreate, BrandUpdate]):

    def get_active(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Brand]:
        return db.query(Brand).filter(Brand.is_active.is_(True)) \
            .order_by(Brand.name.asc(), Brand.id.asc()) \
            .offset(skip).limit(limit).all()

    def count_active(self, db: Session) -> int:
        return db.query(Brand).filter(Brand.is_active.is_(True)).count()


brand = CRUDBrand(Brand)
