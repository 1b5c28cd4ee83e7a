"""Campaign pricing.

Prices are integer minor units. A product (or the selected variant) is
discounted by at most one campaign: the active, in-window campaign with the
highest priority, ties going to the lowest campaign id.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from services.store_service.models import (
    Campaign,
    DiscountType,
    Product,
    ProductVariant,
    campaign_products,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class PriceQuote:
    has_discount: bool
    original_price: int
    campaign_price: int
    discount_amount: int
    discount_percentage: float
    campaign: Optional[Campaign] = None

    @property
    def campaign_id(self) -> Optional[int]:
        return self.campaign.id if self.campaign is not None else None


# ---------------------------------------------------------------------------
# Pure calculations
# ---------------------------------------------------------------------------


def campaign_discount(discount_type: DiscountType, base_price: int, value: int) -> int:
    """Discount in minor units, never more than the base price."""
    if base_price <= 0:
        return 0
    if discount_type == DiscountType.PERCENTAGE:
        # Integer floor division; percentages above 100 still clamp to base.
        return min(base_price * value // 100, base_price)
    return min(value, base_price)


def quote_price(base_price: int, campaign: Optional[Campaign]) -> PriceQuote:
    if campaign is None:
        return PriceQuote(
            has_discount=False,
            original_price=base_price,
            campaign_price=base_price,
            discount_amount=0,
            discount_percentage=0,
        )

    discount = campaign_discount(
        campaign.discount_type, base_price, campaign.discount_value
    )
    percentage = round(discount / base_price * 100, 2) if base_price > 0 else 0
    return PriceQuote(
        has_discount=True,
        original_price=base_price,
        campaign_price=max(0, base_price - discount),
        discount_amount=discount,
        discount_percentage=percentage,
        campaign=campaign,
    )


def base_price_for(product: Product, variant: Optional[ProductVariant] = None) -> int:
    if variant is not None and variant.price is not None:
        return variant.price
    return product.price


# ---------------------------------------------------------------------------
# Campaign lookup
# ---------------------------------------------------------------------------


async def get_best_campaign(
    db: AsyncSession, product_id: int, now: Optional[datetime] = None
) -> Optional[Campaign]:
    now = now or utc_now()
    result = await db.execute(
        select(Campaign)
        .join(campaign_products, campaign_products.c.campaign_id == Campaign.id)
        .where(
            campaign_products.c.product_id == product_id,
            Campaign.is_active.is_(True),
            Campaign.starts_at <= now,
            Campaign.ends_at >= now,
        )
        .order_by(Campaign.priority.desc(), Campaign.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def calculate_price(
    db: AsyncSession,
    product: Product,
    variant: Optional[ProductVariant] = None,
    now: Optional[datetime] = None,
) -> PriceQuote:
    """Price a product, or one of its variants, under its best live campaign."""
    campaign = await get_best_campaign(db, product.id, now)
    return quote_price(base_price_for(product, variant), campaign)
