"""Checkout hand-off: turn a session cart into an unpaid invoice.

No order is created here. The checkout data is parked in the pending-order
cache and the order is built once the payment is verified.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.payments_service.exceptions import PaymentError
from services.payments_service.models import Invoice, InvoiceStatus, PaymentGateway
from services.payments_service.pending_orders import (
    PendingOrderCache,
    PendingOrderPayload,
    PendingTotals,
    default_ttl,
)
from services.payments_service.schemas import CheckoutRequest
from services.store_service.exceptions import OrderError
from services.store_service.services.cart_ops import CartMap, dump_cart, parse_cart
from services.store_service.services.discount_codes import (
    calculate_discount_amount,
    validate_discount_code,
)
from services.store_service.services.order_totals import calculate_order_totals
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class CheckoutResult:
    invoice: Invoice
    payload: PendingOrderPayload


async def create_invoice(
    db: AsyncSession,
    *,
    amount: int,
    original_amount: int,
    campaign_discount_amount: int = 0,
    discount_code_amount: int = 0,
    payment_gateway_id: Optional[int] = None,
) -> Invoice:
    """Add an unpaid invoice and flush it to get an id. Does not commit."""
    invoice = Invoice(
        invoice_number=Invoice.generate_invoice_number(),
        payment_gateway_id=payment_gateway_id,
        amount=amount,
        original_amount=original_amount,
        campaign_discount_amount=campaign_discount_amount,
        discount_code_amount=discount_code_amount,
        currency=settings.CURRENCY,
        status=InvoiceStatus.UNPAID,
    )
    db.add(invoice)
    await db.flush()
    return invoice


async def start_checkout(
    db: AsyncSession,
    cache: PendingOrderCache,
    *,
    cart: CartMap,
    request: CheckoutRequest,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    ttl: Optional[timedelta] = None,
) -> CheckoutResult:
    """Price the cart, open an invoice and park the checkout data.

    Steps:
    1. Reject an empty cart; price it (live prices, delivery fee).
    2. Preview the discount code when both a code and a user are present.
       It is validated again when the order is created.
    3. Create and commit the unpaid invoice.
    4. Write the pending-order payload to the cache. If that fails the
       invoice is cancelled, so it can never be paid without a payload.
    """
    # 1. Totals
    lines = parse_cart(cart)
    if not lines:
        raise OrderError.empty_cart()
    totals = await calculate_order_totals(db, lines, request.delivery_method_id)
    if not totals.items:
        raise OrderError.invalid_cart()

    if request.payment_gateway_id is not None:
        gateway = await db.get(PaymentGateway, request.payment_gateway_id)
        if gateway is None or not gateway.is_active:
            raise PaymentError.invalid_gateway()

    # 2. Discount preview
    discount_amount = 0
    if request.discount_code and user_id:
        order_amount = totals.total_amount + totals.delivery_fee
        validation = await validate_discount_code(
            db, request.discount_code, user_id, order_amount
        )
        discount_amount = calculate_discount_amount(
            validation.discount_code, order_amount
        )

    final_amount = totals.total_amount + totals.delivery_fee - discount_amount

    # 3. Invoice
    try:
        invoice = await create_invoice(
            db,
            amount=final_amount,
            original_amount=totals.original_amount + totals.delivery_fee,
            campaign_discount_amount=totals.campaign_discount,
            discount_code_amount=discount_amount,
            payment_gateway_id=request.payment_gateway_id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    # 4. Pending order payload
    payload = PendingOrderPayload(
        **request.model_dump(),
        user_id=user_id,
        cart=dump_cart(lines),
        invoice_id=invoice.id,
        session_id=session_id,
        totals=PendingTotals(
            total_amount=totals.total_amount,
            original_amount=totals.original_amount,
            campaign_discount=totals.campaign_discount,
            delivery_fee=totals.delivery_fee,
            discount_amount=discount_amount,
            final_amount=final_amount,
        ),
    )
    try:
        await cache.put(invoice.id, payload, ttl or default_ttl())
    except Exception:
        logger.exception(
            "Failed to cache pending order for invoice %s", invoice.invoice_number
        )
        invoice.status = InvoiceStatus.CANCELLED
        await db.commit()
        raise

    logger.info(
        "Checkout opened invoice %s (amount=%d, items=%d)",
        invoice.invoice_number,
        invoice.amount,
        len(totals.items),
    )
    return CheckoutResult(invoice=invoice, payload=payload)
