"""Online checkout: session cart to unpaid invoice."""

from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.payments_service.pending_orders import (
    PendingOrderCache,
    get_pending_order_cache,
)
from services.payments_service.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    InvoiceResponse,
)
from services.payments_service.services import checkout_ops
from services.store_service.routers._helpers import require_session_id
from services.store_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def start_checkout(
    request: CheckoutRequest,
    session_id: str = Depends(require_session_id),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    cache: PendingOrderCache = Depends(get_pending_order_cache),
    db: AsyncSession = Depends(get_async_db),
):
    """Price the session cart and open an invoice to pay.

    The order itself is created when the payment is verified.
    """
    cart = await cart_ops.get_cart(db, session_id)
    result = await checkout_ops.start_checkout(
        db,
        cache,
        cart=cart.items if cart is not None else {},
        request=request,
        user_id=current_user.user_id if current_user else None,
        session_id=session_id,
    )
    totals = result.payload.totals
    return CheckoutResponse(
        invoice=InvoiceResponse.model_validate(result.invoice),
        total_amount=totals.total_amount,
        delivery_fee=totals.delivery_fee,
        discount_amount=totals.discount_amount,
        final_amount=totals.final_amount,
    )
