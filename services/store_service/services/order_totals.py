"""Order-level totals: priced line snapshots plus the delivery fee."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from services.store_service.exceptions import OrderError
from services.store_service.models import DeliveryMethod
from services.store_service.schemas import OrderLineSnapshot
from services.store_service.services.cart_ops import CartMap, parse_cart, resolve_line
from services.store_service.services.pricing import calculate_price
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class OrderTotals:
    items: list[OrderLineSnapshot] = field(default_factory=list)
    total_amount: int = 0
    original_amount: int = 0
    campaign_discount: int = 0
    delivery_fee: int = 0


async def find_delivery_method(
    db: AsyncSession, delivery_method_id: Optional[int]
) -> Optional[DeliveryMethod]:
    if delivery_method_id is None:
        return None
    return await db.get(DeliveryMethod, delivery_method_id)


async def first_active_delivery_method(db: AsyncSession) -> Optional[DeliveryMethod]:
    result = await db.execute(
        select(DeliveryMethod)
        .where(DeliveryMethod.is_active.is_(True))
        .order_by(DeliveryMethod.sort_order.asc(), DeliveryMethod.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def calculate_order_totals(
    db: AsyncSession,
    cart: CartMap,
    delivery_method_id: Optional[int],
    now: Optional[datetime] = None,
) -> OrderTotals:
    """Price a cart for checkout.

    Unlike the cart view, unit prices come from the live product/variant
    price, not the price stored on the cart line. Lines with a non-positive
    quantity or a stale product/variant are skipped.

    Raises:
        OrderError: delivery_method_not_found when the method does not exist.
    """
    delivery_method = await find_delivery_method(db, delivery_method_id)
    if delivery_method is None:
        raise OrderError.delivery_method_not_found(delivery_method_id)

    now = now or utc_now()
    totals = OrderTotals(delivery_fee=delivery_method.fee)

    for cart_key, line in parse_cart(cart).items():
        if line.quantity <= 0:
            continue
        resolved = await resolve_line(db, line)
        if resolved is None:
            continue
        product, variant = resolved

        quote = await calculate_price(db, product, variant, now)
        unit_price = quote.campaign_price if quote.has_discount else quote.original_price
        unit_discount = quote.discount_amount if quote.has_discount else 0
        line_total = unit_price * line.quantity

        totals.items.append(
            OrderLineSnapshot(
                cart_key=cart_key,
                product_id=product.id,
                product_variant_id=variant.id if variant is not None else None,
                color_id=line.color_id,
                size_id=line.size_id,
                variant_display_name=(
                    variant.display_name if variant is not None else None
                ),
                product_title=product.title,
                unit_price=unit_price,
                original_price=quote.original_price,
                campaign_discount_amount=unit_discount,
                campaign_id=quote.campaign_id,
                quantity=line.quantity,
                line_total=line_total,
            )
        )
        totals.total_amount += line_total
        totals.original_amount += quote.original_price * line.quantity
        totals.campaign_discount += unit_discount * line.quantity

    return totals
