from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.blog import Blog, blog_related_products
from app.models.category import Category
from app.models.product import Product
from app.schemas.blog import BlogCreate, BlogUpdate
from app.core.constants import BlogStatusEnum, SortOrderEnum


class CRUDBlog(CRUDBase[Blog, BlogCreate, BlogUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Blog).options(
            selectinload(Blog.category),
            selectinload(Blog.primary_product),
            selectinload(Blog.related_products),
        )

    def list_filtered(
        self,
        db: Session,
        *,
        status: Optional[BlogStatusEnum] = BlogStatusEnum.PUBLISHED,
        category_slug: Optional[str] = None,
        featured: Optional[bool] = None,
        sort_by: str = "published_at",
        order: SortOrderEnum = SortOrderEnum.DESC,
        skip: int = 0,
        limit: int = 12,
    ) -> Tuple[List[Blog], int]:
        query = self._query_with_relationships(db).filter(Blog.is_active.is_(True))
        if status is not None:
            query = query.filter(Blog.status == status)
        if category_slug:
            query = query.join(Blog.category).filter(Category.slug == category_slug)
        if featured is not None:
            query = query.filter(Blog.is_featured.is_(featured))

        total = query.count()
        column = getattr(Blog, sort_by)
        ordering = column.asc() if order == SortOrderEnum.ASC else column.desc()
        tiebreak = Blog.id.asc() if order == SortOrderEnum.ASC else Blog.id.desc()
        items = query.order_by(ordering, tiebreak).offset(skip).limit(limit).all()
        return items, total

    def get_for_product(self, db: Session, product_id: int) -> List[Blog]:
        """Blogs that feature the product, either as primary product or as a related one."""
        related_ids = db.query(blog_related_products.c.blog_id).filter(
            blog_related_products.c.product_id == product_id
        )
        return self._query_with_relationships(db).filter(
            or_(Blog.primary_product_id == product_id, Blog.id.in_(related_ids))
        ).all()

    def published_for_product(self, db: Session, product_id: int) -> List[Blog]:
        return [
            blog for blog in self.get_for_product(db, product_id)
            if blog.status == BlogStatusEnum.PUBLISHED and blog.is_active
        ]

    def count_by_category(self, db: Session, category_id: int) -> int:
        return db.query(Blog).filter(Blog.category_id == category_id).count()

    def set_related_products(self, db: Session, *, blog: Blog, products: List[Product]) -> Blog:
        blog.related_products = products
        db.add(blog)
        return blog


blog = CRUDBlog(Blog)
