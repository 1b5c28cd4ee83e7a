"""Shared helpers for store routers."""

from dataclasses import asdict
from typing import Optional

from fastapi import HTTPException, Query
from services.store_service.models import Cart
from services.store_service.schemas import CartItemResponse, CartResponse
from services.store_service.services.cart_ops import CartTotals


def require_session_id(session_id: Optional[str] = Query(None)) -> str:
    """Carts are keyed by the client's session id."""
    if not session_id:
        raise HTTPException(status_code=400, detail="Session ID required for cart")
    return session_id


def cart_response(cart: Cart, totals: CartTotals) -> CartResponse:
    return CartResponse(
        session_id=cart.session_id,
        items=[CartItemResponse(**asdict(line)) for line in totals.items],
        subtotal=totals.subtotal,
        total_items=totals.total_items,
        original_total=totals.original_total,
        campaign_discount=totals.campaign_discount,
    )
