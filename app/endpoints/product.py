from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_PAGE_SIZE, DEFAULT_PRODUCT_SORT, MAX_PAGE_SIZE, RouteClass
from app.schemas.product import Product, ProductCreate, ProductDetail, ProductUpdate
from app.schemas.response import APIResponse
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CATALOG))])


@router.get("/", response_model=APIResponse[List[Product]])
async def list_products(
    response: Response,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    featured: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: str = DEFAULT_PRODUCT_SORT,
    include_inactive: bool = False,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
    is_admin: bool = Depends(deps.is_admin_request),
):
    payload = await services.product.list_products(
        db,
        category=category,
        brand=brand,
        search=search,
        featured=featured,
        page=page,
        limit=limit,
        sort=sort,
        include_inactive=include_inactive,
        is_admin=is_admin,
        context=context,
    )
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/{identifier}", response_model=APIResponse[ProductDetail])
async def read_product(
    identifier: str,
    response: Response,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.product.get_product(db, identifier, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.post("/", response_model=APIResponse[ProductDetail], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.require_admin)])
async def create_product(
    product_in: ProductCreate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    product = await services.product.create_product(db, product_in)
    return APIResponse(message="Product created successfully", data=product)


@router.put("/{identifier}", response_model=APIResponse[ProductDetail], dependencies=[Depends(deps.require_admin)])
async def update_product(
    identifier: str,
    product_in: ProductUpdate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    product = await services.product.update_product(db, identifier, product_in)
    return APIResponse(message="Product updated successfully", data=product)


@router.delete("/{identifier}", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def delete_product(
    identifier: str,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    deleted = await services.product.delete_product(db, identifier)
    return APIResponse(message="Product deleted successfully", data=deleted)
