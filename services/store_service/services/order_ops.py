"""Order creation and cancellation.

``create_order`` is the transactional core shared by pay-on-delivery placement
and payment verification. It only flushes: the caller owns the transaction and
must commit or roll back, then dispatch the returned effects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.notifications import Effect, EffectKind, Notifier, dispatch_effects
from services.store_service.exceptions import OrderError
from services.store_service.models import (
    CampaignSale,
    DiscountCode,
    DiscountCodeUsage,
    Order,
    OrderItem,
    OrderStatus,
)
from services.store_service.schemas import CheckoutData
from services.store_service.services.cart_ops import clear_cart
from services.store_service.services.discount_codes import (
    calculate_discount_amount,
    record_discount_usage,
    validate_discount_code,
)
from services.store_service.services.inventory import reduce_stock, restore_stock
from services.store_service.services.order_totals import calculate_order_totals
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass
class OrderCreation:
    order: Order
    items: list[OrderItem]
    campaign_sales: list[CampaignSale] = field(default_factory=list)
    discount_usage: Optional[DiscountCodeUsage] = None
    effects: list[Effect] = field(default_factory=list)


def order_created_effect(order: Order) -> Effect:
    return Effect(
        EffectKind.ORDER_CREATED,
        {
            "order_id": order.id,
            "user_id": order.user_id,
            "customer_name": order.customer_name,
            "customer_email": order.customer_email,
            "items": [
                {
                    "title": item.product_title,
                    "variant": item.variant_display_name,
                    "quantity": item.quantity,
                    "line_total": item.line_total,
                }
                for item in order.items
            ],
            "total_amount": order.total_amount,
            "discount_amount": order.discount_amount,
            "delivery_fee": order.delivery_fee,
            "final_amount": order.final_amount,
        },
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def create_order(
    db: AsyncSession, checkout: CheckoutData, now: Optional[datetime] = None
) -> OrderCreation:
    """Create an order, its items, campaign sales and discount usage.

    Steps:
    1. Reject an empty cart before touching the database.
    2. Price the cart (live prices, delivery fee). No priceable lines is fatal.
    3. Validate the discount code when both a code and a user are present,
       against ``total_amount + delivery_fee``.
    4. Persist the order with its item snapshots.
    5. Record a CampaignSale for every item sold under a campaign.
    6. Decrement stock (atomic, may raise InsufficientStockError).
    7. Record the discount code usage when a discount was applied.

    Never commits. Any exception leaves the session dirty; the caller must
    roll back.
    """
    # 1. Precondition
    if not checkout.cart:
        raise OrderError.empty_cart()

    now = now or utc_now()

    # 2. Totals
    totals = await calculate_order_totals(
        db, checkout.cart, checkout.delivery_method_id, now
    )
    if not totals.items:
        raise OrderError.invalid_cart()

    # 3. Discount code
    discount_code: Optional[DiscountCode] = None
    discount_amount = 0
    if checkout.discount_code and checkout.user_id:
        order_amount = totals.total_amount + totals.delivery_fee
        validation = await validate_discount_code(
            db,
            checkout.discount_code,
            checkout.user_id,
            order_amount,
            now,
            lock=True,
        )
        discount_code = validation.discount_code
        discount_amount = calculate_discount_amount(discount_code, order_amount)

    final_amount = totals.total_amount + totals.delivery_fee - discount_amount

    # 4. Order + item snapshots
    order = Order(
        user_id=checkout.user_id,
        customer_name=checkout.customer_name,
        customer_phone=checkout.customer_phone,
        customer_email=checkout.customer_email,
        customer_address=checkout.customer_address,
        delivery_method_id=checkout.delivery_method_id,
        delivery_fee=totals.delivery_fee,
        total_amount=totals.total_amount,
        original_amount=totals.original_amount,
        campaign_discount_amount=totals.campaign_discount,
        discount_code=discount_code.code if discount_code is not None else None,
        discount_amount=discount_amount,
        final_amount=final_amount,
        status=OrderStatus.PENDING,
        receipt_path=checkout.receipt_path,
        notes=checkout.notes,
        items=[
            OrderItem(**snapshot.model_dump(exclude={"cart_key"}))
            for snapshot in totals.items
        ],
    )
    db.add(order)
    await db.flush()

    # 5. Campaign analytics
    campaign_sales = [
        CampaignSale(
            campaign_id=item.campaign_id,
            order_item_id=item.id,
            product_id=item.product_id,
            product_variant_id=item.product_variant_id,
            quantity=item.quantity,
            discount_amount=item.campaign_discount_amount * item.quantity,
            sale_amount=item.line_total,
        )
        for item in order.items
        if item.campaign_id is not None
    ]
    if campaign_sales:
        db.add_all(campaign_sales)
        await db.flush()

    # 6. Stock
    await reduce_stock(db, totals.items, checkout.cart)

    # 7. Discount usage
    usage = None
    if discount_code is not None and discount_amount > 0:
        usage = await record_discount_usage(db, order, discount_code, discount_amount)

    logger.info(
        "Created order %s (items=%d, final_amount=%d, discount=%d)",
        order.id,
        len(order.items),
        order.final_amount,
        discount_amount,
    )
    return OrderCreation(
        order=order,
        items=list(order.items),
        campaign_sales=campaign_sales,
        discount_usage=usage,
        effects=[order_created_effect(order)],
    )


async def place_order(
    db: AsyncSession,
    checkout: CheckoutData,
    notifier: Notifier,
    *,
    session_id: Optional[str] = None,
) -> Order:
    """Create an order without online payment (pay on delivery).

    Commits the order and the cleared session cart together, then
    dispatches effects.
    """
    try:
        creation = await create_order(db, checkout)
        await clear_cart(db, session_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await dispatch_effects(notifier, creation.effects)
    return await get_order(db, creation.order.id)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


async def cancel_order(
    db: AsyncSession,
    order_id: int,
    notifier: Notifier,
    user_id: Optional[str] = None,
) -> Order:
    """Cancel a pending or confirmed order and put its stock back.

    When ``user_id`` is given the order must belong to that user.
    """
    result = await db.execute(
        select(Order).where(Order.id == order_id).with_for_update()
    )
    order = result.scalar_one_or_none()
    if order is None or (user_id is not None and order.user_id != user_id):
        raise OrderError.not_found()

    if not OrderStatus(order.status).is_cancellable:
        raise OrderError.cannot_cancel()

    try:
        await restore_stock(db, order)
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utc_now()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Cancelled order %s", order.id)
    await dispatch_effects(
        notifier,
        [
            Effect(
                EffectKind.ORDER_CANCELLED,
                {"order_id": order.id, "user_id": order.user_id},
            )
        ],
    )
    return await get_order(db, order.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_order(
    db: AsyncSession, order_id: int, user_id: Optional[str] = None
) -> Order:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderError.not_found()
    return order


async def list_orders_for_user(db: AsyncSession, user_id: str) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())
