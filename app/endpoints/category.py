from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.constants import MAX_PAGE_SIZE, RouteClass
from app.schemas.category import Category, CategoryCreate, CategoryDetail, CategoryTreeNode, CategoryUpdate
from app.schemas.response import APIResponse
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CATALOG))])


@router.get("/", response_model=APIResponse[List[Category]])
async def list_categories(
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.category.list_categories(db, page=page, limit=limit, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/tree", response_model=APIResponse[List[CategoryTreeNode]])
async def category_tree(
    response: Response,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.category.get_tree(db, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/{identifier}", response_model=APIResponse[CategoryDetail])
async def read_category(
    identifier: str,
    response: Response,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.category.get_category(db, identifier, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.post("/", response_model=APIResponse[CategoryDetail], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.require_admin)])
async def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    category = await services.category.create_category(db, category_in)
    return APIResponse(message="Category created successfully", data=category)


@router.put("/{identifier}", response_model=APIResponse[CategoryDetail], dependencies=[Depends(deps.require_admin)])
async def update_category(
    identifier: str,
    category_in: CategoryUpdate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    category = await services.category.update_category(db, identifier, category_in)
    return APIResponse(message="Category updated successfully", data=category)


@router.delete("/{identifier}", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def delete_category(
    identifier: str,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    deleted = await services.category.delete_category(db, identifier)
    return APIResponse(message="Category deleted successfully", data=deleted)
