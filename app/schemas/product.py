from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime
from app.schemas.brand import BrandRef
from app.schemas.category import CategoryRef

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    is_active: bool = True
    is_featured: bool = False

class ProductCreate(ProductBase):
    slug: Optional[str] = None
    category_id: int
    brand_id: Optional[int] = None

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None

class ProductSnippet(BaseModel):
    id: int
    name: str
    slug: str
    price: float

    model_config = ConfigDict(from_attributes=True)

class BlogSnippet(BaseModel):
    id: int
    slug: str
    title: str
    published_at: Optional[datetime] = None

class Product(ProductBase):
    id: int
    slug: str
    category: CategoryRef
    brand: Optional[BrandRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ProductDetail(Product):
    is_promoted: bool = False
    related_blogs: List[BlogSnippet] = Field(default_factory=list)
