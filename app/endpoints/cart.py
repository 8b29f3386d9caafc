from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.constants import RouteClass
from app.schemas.cart import Cart, CartItemCreate, CartItemUpdate
from app.schemas.response import APIResponse
from app.services.read_through import CacheContext
from app.utils import deps
from app.utils.http_cache import apply_freshness_headers
from app.utils.service_registry import ServiceRegistry

router = APIRouter(dependencies=[Depends(deps.rate_limit(RouteClass.CART))])


@router.get("/", response_model=APIResponse[Cart])
async def read_cart(
    response: Response,
    session_id: str = Depends(deps.get_session_id),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
    context: CacheContext = Depends(deps.get_cache_context),
):
    payload = await services.cart.get_cart(db, session_id, context=context)
    apply_freshness_headers(response, payload, context, private=True)
    return payload


@router.post("/items", response_model=APIResponse[Cart], status_code=status.HTTP_201_CREATED)
async def add_cart_item(
    item_in: CartItemCreate,
    session_id: str = Depends(deps.get_session_id),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    cart = await services.cart.add_item(db, session_id, item_in)
    return APIResponse(message="Item added to cart", data=cart)


@router.put("/items/{product_id}", response_model=APIResponse[Cart])
async def update_cart_item(
    product_id: int,
    item_in: CartItemUpdate,
    session_id: str = Depends(deps.get_session_id),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    cart = await services.cart.update_item(db, session_id, product_id, item_in)
    return APIResponse(message="Cart item updated", data=cart)


@router.delete("/items/{product_id}", response_model=APIResponse[Cart])
async def remove_cart_item(
    product_id: int,
    session_id: str = Depends(deps.get_session_id),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    cart = await services.cart.remove_item(db, session_id, product_id)
    return APIResponse(message="Item removed from cart", data=cart)


@router.delete("/", response_model=APIResponse[Cart])
async def clear_cart(
    session_id: str = Depends(deps.get_session_id),
    db: Session = Depends(deps.get_db),
    services: ServiceRegistry = Depends(deps.get_services),
):
    cart = await services.cart.clear_cart(db, session_id)
    return APIResponse(message="Cart cleared", data=cart)
