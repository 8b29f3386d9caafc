from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.brand import Brand
from app.models.category import Category
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate
from app.core.constants import SortOrderEnum


class CRUDProduct(CRUDBase[Product, ProductCreate, ProductUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Product).options(
            selectinload(Product.category),
            selectinload(Product.brand),
        )

    def list_filtered(
        self,
        db: Session,
        *,
        category_slug: Optional[str] = None,
        brand_slug: Optional[str] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        include_inactive: bool = False,
        sort: str = "created_at",
        order: SortOrderEnum = SortOrderEnum.DESC,
        skip: int = 0,
        limit: int = 12,
    ) -> Tuple[List[Product], int]:
        query = self._query_with_relationships(db)
        if not include_inactive:
            query = query.filter(Product.is_active.is_(True))
        if category_slug:
            query = query.join(Product.category).filter(Category.slug == category_slug)
        if brand_slug:
            query = query.join(Product.brand).filter(Brand.slug == brand_slug)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        if featured is not None:
            query = query.filter(Product.is_featured.is_(featured))

        total = query.count()
        column = getattr(Product, sort)
        ordering = column.asc() if order == SortOrderEnum.ASC else column.desc()
        # id breaks ties so equal timestamps page deterministically
        tiebreak = Product.id.asc() if order == SortOrderEnum.ASC else Product.id.desc()
        items = query.order_by(ordering, tiebreak).offset(skip).limit(limit).all()
        return items, total

    def count_by_category(self, db: Session, category_id: int) -> int:
        return db.query(Product).filter(Product.category_id == category_id).count()

    def count_by_brand(self, db: Session, brand_id: int) -> int:
        return db.query(Product).filter(Product.brand_id == brand_id).count()


product = CRUDProduct(Product)
