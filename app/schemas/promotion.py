from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from app.schemas.product import ProductSnippet

class PromotionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    product_id: int
    position: int = 0
    is_active: bool = True

class Promotion(BaseModel):
    id: int
    title: str
    position: int
    is_active: bool
    product: ProductSnippet
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
