from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

class CacheStats(BaseModel):
    store: Dict[str, Any]
    read_through: Dict[str, int]
    hit_ratio: float

class CacheHealth(BaseModel):
    status: str
    backend: str
    healthy: bool

class CacheKeys(BaseModel):
    prefix: str
    count: int
    keys: List[str] = Field(default_factory=list)

class InvalidationResult(BaseModel):
    entity_type: str
    entity_id: str
    requested: int
    deleted: int
    failed: List[str] = Field(default_factory=list)
    ok: bool
    backend: Optional[str] = None
