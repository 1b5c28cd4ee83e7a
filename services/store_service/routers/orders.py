"""Store orders router: pay-on-delivery placement, order history, cancellation."""

from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.store_service.routers._helpers import require_session_id
from services.store_service.schemas import (
    CheckoutData,
    OrderCreateRequest,
    OrderListResponse,
    OrderResponse,
)
from services.store_service.services import cart_ops, order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# PLACEMENT
# ============================================================================


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def place_order(
    request: OrderCreateRequest,
    session_id: str = Depends(require_session_id),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order from the session cart, to be paid on delivery."""
    cart = await cart_ops.get_cart(db, session_id)
    checkout = CheckoutData(
        **request.model_dump(),
        user_id=current_user.user_id if current_user else None,
        cart=cart.items if cart is not None else {},
    )
    order = await order_ops.place_order(db, checkout, notifier, session_id=session_id)
    return OrderResponse.model_validate(order)


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the current user's orders, newest first."""
    orders = await order_ops.list_orders_for_user(db, current_user.user_id)
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: int,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one of the current user's orders."""
    order = await order_ops.get_order(db, order_id, user_id=current_user.user_id)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
    order_id: int,
    current_user: AuthUser = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel a pending or confirmed order and release its stock."""
    order = await order_ops.cancel_order(
        db, order_id, notifier, user_id=current_user.user_id
    )
    return OrderResponse.model_validate(order)
