from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.constants import (
    DEFAULT_BLOG_SORT, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, BlogStatusEnum, RouteClass, SortOrderEnum,
)
from app.schemas.blog import Blog, BlogCreate, BlogDetail, BlogUpdate
from app.schemas.response import APIResponse
from app.services.blog import FEATURED_LIMIT
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CATALOG))])


@router.get("/", response_model=APIResponse[List[Blog]])
async def list_blogs(
    response: Response,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    status_filter: str = Query(BlogStatusEnum.PUBLISHED.value, alias="status"),
    language: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort_by: str = DEFAULT_BLOG_SORT,
    sort_order: SortOrderEnum = SortOrderEnum.DESC,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
    is_admin: bool = Depends(deps.is_admin_request),
):
    payload = await services.blog.list_blogs(
        db,
        category=category,
        featured=featured,
        status_filter=status_filter,
        language=language,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        is_admin=is_admin,
        context=context,
    )
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/featured", response_model=APIResponse[List[Blog]])
async def list_featured_blogs(
    response: Response,
    language: Optional[str] = None,
    limit: int = Query(FEATURED_LIMIT, ge=1, le=24),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.blog.list_featured(db, language=language, limit=limit, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.get("/{slug}", response_model=APIResponse[BlogDetail])
async def read_blog(
    slug: str,
    response: Response,
    language: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
    is_admin: bool = Depends(deps.is_admin_request),
):
    payload = await services.blog.get_blog(db, slug, language=language, is_admin=is_admin, context=context)
    apply_freshness_headers(response, payload, context)
    return payload


@router.post("/", response_model=APIResponse[BlogDetail], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.require_admin)])
async def create_blog(
    blog_in: BlogCreate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    blog = await services.blog.create_blog(db, blog_in)
    return APIResponse(message="Blog created successfully", data=blog)


@router.put("/{identifier}", response_model=APIResponse[BlogDetail], dependencies=[Depends(deps.require_admin)])
async def update_blog(
    identifier: str,
    blog_in: BlogUpdate,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    blog = await services.blog.update_blog(db, identifier, blog_in)
    return APIResponse(message="Blog updated successfully", data=blog)


@router.delete("/{identifier}", response_model=APIResponse[Dict[str, Any]], dependencies=[Depends(deps.require_admin)])
async def delete_blog(
    identifier: str,
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    deleted = await services.blog.delete_blog(db, identifier)
    return APIResponse(message="Blog deleted successfully", data=deleted)
