from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.constants import RouteClass
from app.schemas.promotion import Promotion, PromotionCreate
from app.schemas.response import APIResponse
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CATALOG))])


@router.get("/", response_model=APIResponse[List[Promotion]])
async def list_promotions(
    response: Response,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.promotion.list_promotions(db, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.post("/", response_model=APIResponse[Promotion], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.require_admin)])
async def create_promotion(
    promotion_in: PromotionCreate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    promotion = await services.promotion.create_promotion(db, promotion_in)
    return APIResponse(message="Promotion created successfully", data=promotion)


@router.delete("/{promotion_id}", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def delete_promotion(
    promotion_id: int,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    deleted = await services.promotion.delete_promotion(db, promotion_id)
    return APIResponse(message="Promotion deleted successfully", data=deleted)
