from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Table, Enum, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import BlogStatusEnum

blog_related_products = Table(
    "blog_related_products",
    Base.metadata,
    Column("blog_id", Integer, ForeignKey("blogs.id"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id"), primary_key=True),
)

class Blog(Base):
    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    # Localized fields: {"en": ..., "ur": ..., "ps": ...}
    title = Column(JSON, nullable=False)
    excerpt = Column(JSON, nullable=False, default=dict)
    content = Column(JSON, nullable=False, default=dict)
    status = Column(Enum(BlogStatusEnum), nullable=False, default=BlogStatusEnum.DRAFT, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    primary_product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    author_name = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    is_featured = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    view_count = Column(Integer, nullable=False, default=0)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", back_populates="blogs")
    primary_product = relationship("Product", back_populates="primary_blogs")
    related_products = relationship("Product", secondary=blog_related_products, back_populates="related_blogs")
