"""Session cart operations: pricing the cart map and mutating it."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping, Optional, Union

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.exceptions import CartError, InsufficientStockError
from services.store_service.models import (
    Cart,
    CartStatus,
    Color,
    Product,
    ProductVariant,
    Size,
)
from services.store_service.schemas import CartLine
from services.store_service.services.pricing import calculate_price
from services.store_service.services.variants import (
    VariantSelector,
    find_variant,
    make_cart_key,
    selector_for,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CART_EXPIRY_DAYS = 7

CartMap = Mapping[str, Union[CartLine, dict]]


@dataclass
class PricedCartLine:
    cart_key: str
    product_id: int
    title: str
    quantity: int
    original_price: int
    final_price: int
    line_total: int
    discount_amount: int
    image: Optional[str] = None
    variant_display_name: Optional[str] = None
    campaign_id: Optional[int] = None


@dataclass
class CartTotals:
    items: list[PricedCartLine] = field(default_factory=list)
    subtotal: int = 0
    total_items: int = 0
    original_total: int = 0
    campaign_discount: int = 0


def parse_cart(cart: CartMap) -> dict[str, CartLine]:
    """Validate raw cart entries (as stored in JSON) into CartLine objects."""
    return {
        key: line if isinstance(line, CartLine) else CartLine.model_validate(line)
        for key, line in (cart or {}).items()
    }


def dump_cart(cart: Mapping[str, CartLine]) -> dict[str, dict]:
    return {key: line.model_dump() for key, line in cart.items()}


# ---------------------------------------------------------------------------
# Live line resolution
# ---------------------------------------------------------------------------


async def resolve_line(
    db: AsyncSession, line: CartLine
) -> Optional[tuple[Product, Optional[ProductVariant]]]:
    """Load the product (and selected variant) behind a cart line.

    Returns None when the line is stale: the product is gone or inactive, or
    a color/size was selected and that variant is gone or inactive.
    """
    product = await db.get(Product, line.product_id)
    if product is None or not product.is_active:
        return None

    selector = line.selector
    if not selector.is_variant:
        return product, None

    variant = await find_variant(db, product.id, selector)
    if variant is None or not variant.is_active:
        return None
    return product, variant


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


async def calculate_cart_totals(
    db: AsyncSession, cart: CartMap, now: Optional[datetime] = None
) -> CartTotals:
    """Price every cart line against live product and campaign state.

    Read-only: the same cart and catalog state always yield the same totals.
    Stale lines are left out of the result rather than failing the cart.
    """
    now = now or utc_now()
    totals = CartTotals()

    for cart_key, line in parse_cart(cart).items():
        if line.quantity <= 0:
            continue
        resolved = await resolve_line(db, line)
        if resolved is None:
            logger.debug("Dropping stale cart line %s", cart_key)
            continue
        product, variant = resolved

        quote = await calculate_price(db, product, variant, now)
        final_price = quote.campaign_price if quote.has_discount else line.price
        item_discount = (
            quote.discount_amount * line.quantity if quote.has_discount else 0
        )
        line_total = final_price * line.quantity

        totals.items.append(
            PricedCartLine(
                cart_key=cart_key,
                product_id=product.id,
                title=product.title,
                image=line.image or product.image,
                variant_display_name=line.variant_display_name,
                quantity=line.quantity,
                original_price=line.price,
                final_price=final_price,
                line_total=line_total,
                discount_amount=item_discount,
                campaign_id=quote.campaign_id,
            )
        )
        totals.subtotal += line_total
        totals.original_total += line.price * line.quantity
        totals.campaign_discount += item_discount
        totals.total_items += line.quantity

    return totals


# ---------------------------------------------------------------------------
# Cart mutations (return a new map, never mutate the input)
# ---------------------------------------------------------------------------


async def _variant_display_name(
    db: AsyncSession, selector: VariantSelector
) -> Optional[str]:
    if not selector.is_variant:
        return None
    parts = []
    if selector.color_id is not None:
        color = await db.get(Color, selector.color_id)
        if color is not None:
            parts.append(color.name)
    if selector.size_id is not None:
        size = await db.get(Size, selector.size_id)
        if size is not None:
            parts.append(size.name)
    return " - ".join(parts)


async def _stock_unit(
    db: AsyncSession, product: Product, selector: VariantSelector
) -> tuple[int, Optional[ProductVariant]]:
    """Available stock for the selection, and the variant that holds it."""
    if not selector.is_variant:
        return product.stock, None
    variant = await find_variant(db, product.id, selector)
    if variant is None or not variant.is_active:
        raise CartError.variant_not_found()
    return variant.stock, variant


async def add_to_cart(
    db: AsyncSession,
    cart: CartMap,
    product_id: int,
    quantity: int,
    color_id: Optional[int] = None,
    size_id: Optional[int] = None,
) -> dict[str, CartLine]:
    """Add a product (or one of its variants) to the cart.

    Adding an existing line increases its quantity; the combined quantity
    must fit in the available stock.
    """
    if quantity <= 0:
        raise CartError.invalid_quantity()

    product = await db.get(Product, product_id)
    if product is None or not product.is_active:
        raise CartError.product_not_found()

    if (product.has_colors and not color_id) or (product.has_sizes and not size_id):
        raise CartError.variant_selection_required()

    selector = selector_for(color_id, size_id)
    cart_key = make_cart_key(product.id, selector)
    lines = parse_cart(cart)

    available, variant = await _stock_unit(db, product, selector)
    current = lines[cart_key].quantity if cart_key in lines else 0
    new_quantity = current + quantity
    if new_quantity > available:
        raise InsufficientStockError(product.title, new_quantity, available)

    price = product.price
    if variant is not None and variant.price is not None:
        price = variant.price
    lines[cart_key] = CartLine(
        product_id=product.id,
        quantity=new_quantity,
        color_id=selector.color_id,
        size_id=selector.size_id,
        price=price,
        title=product.title,
        image=product.image,
        variant_display_name=await _variant_display_name(db, selector),
    )
    return lines


async def update_cart_item(
    db: AsyncSession, cart: CartMap, cart_key: str, quantity: int
) -> dict[str, CartLine]:
    """Set the quantity of an existing line. Use remove_cart_item to delete."""
    lines = parse_cart(cart)
    if cart_key not in lines:
        raise CartError.item_not_found()
    if quantity <= 0:
        raise CartError.invalid_quantity()

    line = lines[cart_key]
    product = await db.get(Product, line.product_id)
    if product is None or not product.is_active:
        raise CartError.product_not_found()

    available, _ = await _stock_unit(db, product, line.selector)
    if quantity > available:
        raise InsufficientStockError(product.title, quantity, available)

    lines[cart_key] = line.model_copy(update={"quantity": quantity})
    return lines


def remove_cart_item(cart: CartMap, cart_key: str) -> dict[str, CartLine]:
    lines = parse_cart(cart)
    if cart_key not in lines:
        raise CartError.item_not_found()
    del lines[cart_key]
    return lines


# ---------------------------------------------------------------------------
# Cart persistence
# ---------------------------------------------------------------------------


async def get_cart(db: AsyncSession, session_id: str) -> Optional[Cart]:
    result = await db.execute(select(Cart).where(Cart.session_id == session_id))
    return result.scalar_one_or_none()


async def get_or_create_cart(
    db: AsyncSession, session_id: str, user_id: Optional[str] = None
) -> Cart:
    """Return the active cart for a session, creating or reopening it.

    A converted cart (its order was placed) is reopened empty. Flushes but
    does not commit.
    """
    cart = await get_cart(db, session_id)
    if cart is None:
        cart = Cart(
            session_id=session_id,
            user_id=user_id,
            items={},
            status=CartStatus.ACTIVE,
            expires_at=utc_now() + timedelta(days=CART_EXPIRY_DAYS),
        )
        db.add(cart)
        await db.flush()
        return cart

    if cart.status != CartStatus.ACTIVE:
        cart.items = {}
        cart.status = CartStatus.ACTIVE
    if user_id and cart.user_id != user_id:
        cart.user_id = user_id
    cart.expires_at = utc_now() + timedelta(days=CART_EXPIRY_DAYS)
    await db.flush()
    return cart


def save_cart_items(cart: Cart, lines: Mapping[str, CartLine]) -> None:
    """Write a cart map back to its row. Assigns a new dict so the change is tracked."""
    cart.items = dump_cart(lines)


async def clear_cart(db: AsyncSession, session_id: Optional[str]) -> None:
    """Empty the session cart after its order was created. Does not commit."""
    if not session_id:
        return
    cart = await get_cart(db, session_id)
    if cart is None:
        return
    cart.items = {}
    cart.status = CartStatus.CONVERTED
    await db.flush()
    logger.info("Cleared cart for session %s", session_id)
