"""Stock adjustments for order placement and cancellation.

Both functions run inside the caller's transaction and never commit.
Decrements are a single conditional UPDATE so concurrent orders for the same
row serialize on the database row lock instead of racing a read-then-write.
"""

from typing import Sequence

from libs.common.logging import get_logger
from services.store_service.exceptions import InsufficientStockError
from services.store_service.models import Order, OrderItem, Product, ProductVariant
from services.store_service.schemas import OrderLineSnapshot
from services.store_service.services.cart_ops import CartMap, parse_cart
from services.store_service.services.variants import find_variant
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def decrement_stock(db: AsyncSession, model, row_id: int, quantity: int) -> bool:
    """``UPDATE ... SET stock = stock - :q WHERE id = :id AND stock >= :q``.

    Returns False when the row is missing or holds less than ``quantity``.
    """
    result = await db.execute(
        update(model)
        .where(model.id == row_id, model.stock >= quantity)
        .values(stock=model.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def increment_stock(db: AsyncSession, model, row_id: int, quantity: int) -> None:
    await db.execute(
        update(model)
        .where(model.id == row_id)
        .values(stock=model.stock + quantity)
        .execution_options(synchronize_session=False)
    )


async def current_stock(db: AsyncSession, model, row_id: int) -> int:
    result = await db.execute(select(model.stock).where(model.id == row_id))
    return result.scalar_one_or_none() or 0


async def reduce_stock(
    db: AsyncSession, items: Sequence[OrderLineSnapshot], cart: CartMap
) -> None:
    """Take each order line's quantity out of its product or variant stock.

    Lines whose cart entry has disappeared are skipped. A line that selected
    a color/size draws on the variant, anything else on the product.

    Raises:
        InsufficientStockError: the first line that cannot be covered. The
            caller must roll back; earlier decrements are not undone here.
    """
    lines = parse_cart(cart)
    for item in items:
        line = lines.get(item.cart_key)
        if line is None:
            continue

        if line.selector.is_variant:
            variant_id = item.product_variant_id
            if variant_id is None:
                variant = await find_variant(db, item.product_id, line.selector)
                if variant is None:
                    continue
                variant_id = variant.id
            model, row_id = ProductVariant, variant_id
        else:
            model, row_id = Product, item.product_id

        if not await decrement_stock(db, model, row_id, item.quantity):
            available = await current_stock(db, model, row_id)
            logger.info(
                "Insufficient stock for %s %s: requested=%d available=%d",
                model.__tablename__,
                row_id,
                item.quantity,
                available,
            )
            raise InsufficientStockError(item.product_title, item.quantity, available)


async def restore_stock(db: AsyncSession, order: Order) -> None:
    """Put every order item's quantity back. Used only when cancelling."""
    result = await db.execute(select(OrderItem).where(OrderItem.order_id == order.id))
    for item in result.scalars().all():
        if item.product_variant_id is not None:
            await increment_stock(db, ProductVariant, item.product_variant_id, item.quantity)
        elif item.product_id is not None:
            await increment_stock(db, Product, item.product_id, item.quantity)
