from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from app.core.constants import BlogStatusEnum
from app.schemas.category import CategoryRef
from app.schemas.product import ProductSnippet

def _require_english(value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if value is not None and not value.get("en"):
        raise ValueError("An English ('en') version is required")
    return value

class BlogBase(BaseModel):
    title: Dict[str, str]
    excerpt: Dict[str, str] = Field(default_factory=dict)
    content: Dict[str, str] = Field(default_factory=dict)
    status: BlogStatusEnum = BlogStatusEnum.DRAFT
    category_id: Optional[int] = None
    primary_product_id: Optional[int] = None
    author_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title")
    @classmethod
    def title_has_english(cls, v):
        return _require_english(v)

class BlogCreate(BlogBase):
    slug: Optional[str] = None
    related_product_ids: List[int] = Field(default_factory=list)

class BlogUpdate(BaseModel):
    title: Optional[Dict[str, str]] = None
    slug: Optional[str] = None
    excerpt: Optional[Dict[str, str]] = None
    content: Optional[Dict[str, str]] = None
    status: Optional[BlogStatusEnum] = None
    category_id: Optional[int] = None
    primary_product_id: Optional[int] = None
    author_name: Optional[str] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None
    related_product_ids: Optional[List[int]] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title")
    @classmethod
    def title_has_english(cls, v):
        return _require_english(v)

class Blog(BaseModel):
    """A blog post rendered in a single language."""
    id: int
    slug: str
    language: str
    title: str
    excerpt: str
    status: BlogStatusEnum
    author_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False
    category: Optional[CategoryRef] = None
    primary_product: Optional[ProductSnippet] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class BlogDetail(Blog):
    content: str
    available_languages: List[str] = Field(default_factory=list)
    related_products: List[ProductSnippet] = Field(default_factory=list)
