from pydantic import BaseModel, Field
from typing import List
from app.schemas.product import ProductSnippet

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=99)

class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=99)

class CartLine(BaseModel):
    product: ProductSnippet
    quantity: int
    line_total: float

class Cart(BaseModel):
    session_id: str
    items: List[CartLine] = Field(default_factory=list)
    item_count: int = 0
    subtotal: float = 0.0
