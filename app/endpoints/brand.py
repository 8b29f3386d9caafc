from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.constants import MAX_PAGE_SIZE, RouteClass
from app.schemas.brand import Brand, BrandCreate, BrandUpdate
from app.schemas.response import APIResponse
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CATALOG))])


@router.get("/", response_model=APIResponse[List[Brand]])
async def list_brands(
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.brand.list_brands(db, page=page, limit=limit, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/{identifier}", response_model=APIResponse[Brand])
async def read_brand(
    identifier: str,
    response: Response,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.brand.get_brand(db, identifier, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.post("/", response_model=APIResponse[Brand], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.require_admin)])
async def create_brand(
    brand_in: BrandCreate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    brand = await services.brand.create_brand(db, brand_in)
    return APIResponse(message="Brand created successfully", data=brand)


@router.put("/{identifier}", response_model=APIResponse[Brand], dependencies=[Depends(deps.require_admin)])
async def update_brand(
    identifier: str,
    brand_in: BrandUpdate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    brand = await services.brand.update_brand(db, identifier, brand_in)
    return APIResponse(message="Brand updated successfully", data=brand)


@router.delete("/{identifier}", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def delete_brand(
    identifier: str,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    deleted = await services.brand.delete_brand(db, identifier)
    return APIResponse(message="Brand deleted successfully", data=deleted)
