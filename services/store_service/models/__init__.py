"""Store Service models package."""

from services.store_service.models.catalog import (
    Campaign,
    Color,
    Product,
    ProductVariant,
    Size,
    campaign_products,
)
from services.store_service.models.commerce import (
    CampaignSale,
    Cart,
    DeliveryMethod,
    Order,
    OrderItem,
)
from services.store_service.models.discounts import DiscountCode, DiscountCodeUsage
from services.store_service.models.enums import (
    CartStatus,
    DiscountType,
    OrderStatus,
)

__all__ = [
    "Campaign",
    "CampaignSale",
    "Cart",
    "CartStatus",
    "Color",
    "DeliveryMethod",
    "DiscountCode",
    "DiscountCodeUsage",
    "DiscountType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "ProductVariant",
    "Size",
    "campaign_products",
]
