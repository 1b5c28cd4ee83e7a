"""Store cart router: session cart operations."""

from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.routers._helpers import cart_response, require_session_id
from services.store_service.schemas import CartItemCreate, CartItemUpdate, CartResponse
from services.store_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    session_id: str = Depends(require_session_id),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get current cart, priced against live campaigns."""
    cart = await cart_ops.get_or_create_cart(
        db, session_id, current_user.user_id if current_user else None
    )
    await db.commit()
    totals = await cart_ops.calculate_cart_totals(db, cart.items)
    return cart_response(cart, totals)


@router.post("/cart", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemCreate,
    session_id: str = Depends(require_session_id),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product (optionally a color/size variant) to the cart."""
    cart = await cart_ops.get_or_create_cart(
        db, session_id, current_user.user_id if current_user else None
    )
    lines = await cart_ops.add_to_cart(
        db,
        cart.items,
        item_in.product_id,
        item_in.quantity,
        item_in.color_id,
        item_in.size_id,
    )
    cart_ops.save_cart_items(cart, lines)
    await db.commit()

    totals = await cart_ops.calculate_cart_totals(db, cart.items)
    return cart_response(cart, totals)


@router.patch("/cart/items/{cart_key}", response_model=CartResponse)
async def update_cart_item(
    cart_key: str,
    item_in: CartItemUpdate,
    session_id: str = Depends(require_session_id),
    db: AsyncSession = Depends(get_async_db),
):
    """Change the quantity of a cart line."""
    cart = await cart_ops.get_or_create_cart(db, session_id)
    lines = await cart_ops.update_cart_item(db, cart.items, cart_key, item_in.quantity)
    cart_ops.save_cart_items(cart, lines)
    await db.commit()

    totals = await cart_ops.calculate_cart_totals(db, cart.items)
    return cart_response(cart, totals)


@router.delete("/cart/items/{cart_key}", response_model=CartResponse)
async def remove_cart_item(
    cart_key: str,
    session_id: str = Depends(require_session_id),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove a line from the cart."""
    cart = await cart_ops.get_or_create_cart(db, session_id)
    lines = cart_ops.remove_cart_item(cart.items, cart_key)
    cart_ops.save_cart_items(cart, lines)
    await db.commit()

    totals = await cart_ops.calculate_cart_totals(db, cart.items)
    return cart_response(cart, totals)
