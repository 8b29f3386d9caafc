from typing import List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.category import Category
from app.schemas.category import CategoryCreate, CategoryUpdate


class CRUDCategory(CRUDBase[Category, CategoryCreate, CategoryUpdate]):

    def get_active(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Category]:
        return db.query(Category).filter(Category.is_active.is_(True)) \
            .order_by(Category.name.asc(), Category.id.asc()) \
            .offset(skip).limit(limit).all()

    def count_active(self, db: Session) -> int:
        return db.query(Category).filter(Category.is_active.is_(True)).count()

    def count_children(self, db: Session, category_id: int) -> int:
        return db.query(Category).filter(Category.parent_id == category_id).count()


category = CRUDCategory(Category)
