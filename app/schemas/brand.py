from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

class BrandBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    logo: Optional[str] = None
    is_active: bool = True

class BrandCreate(BrandBase):
    slug: Optional[str] = None

class BrandUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    slug: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    is_active: Optional[bool] = None

class BrandRef(BaseModel):
    id: int
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)

class Brand(BrandBase):
    id: int
    slug: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
