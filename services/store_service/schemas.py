"""Pydantic schemas for store service."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.store_service.models import OrderStatus
from services.store_service.services.variants import Selector, selector_for

# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartLine(BaseModel):
    """One entry of the session cart map, as stored on the cart row."""

    product_id: int
    quantity: int
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    # Unit price captured at add time; live pricing always wins at checkout
    price: int = 0
    title: str = ""
    image: Optional[str] = None
    variant_display_name: Optional[str] = None

    @property
    def selector(self) -> Selector:
        return selector_for(self.color_id, self.size_id)


class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(1, gt=0)
    color_id: Optional[int] = None
    size_id: Optional[int] = None


class CartItemUpdate(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    cart_key: str
    product_id: int
    title: str
    image: Optional[str] = None
    variant_display_name: Optional[str] = None
    quantity: int
    original_price: int
    final_price: int
    line_total: int
    discount_amount: int
    campaign_id: Optional[int] = None


class CartResponse(BaseModel):
    session_id: str
    items: list[CartItemResponse] = []
    subtotal: int = 0
    total_items: int = 0
    original_total: int = 0
    campaign_discount: int = 0


# ============================================================================
# CHECKOUT / ORDER SCHEMAS
# ============================================================================


class OrderLineSnapshot(BaseModel):
    """Priced order line, persisted verbatim as an OrderItem.

    Also travels inside the pending-order payload, so it must stay
    JSON-serialisable.
    """

    cart_key: str
    product_id: int
    product_variant_id: Optional[int] = None
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    variant_display_name: Optional[str] = None
    product_title: str
    unit_price: int
    original_price: int
    campaign_discount_amount: int = 0
    campaign_id: Optional[int] = None
    quantity: int
    line_total: int


class CustomerDetails(BaseModel):
    customer_name: str = Field(..., max_length=255)
    customer_phone: str = Field(..., max_length=50)
    customer_email: Optional[EmailStr] = None
    customer_address: str = Field(..., max_length=500)
    delivery_method_id: int
    discount_code: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class CheckoutData(CustomerDetails):
    """Everything needed to create an order from a cart."""

    user_id: Optional[str] = None
    payment_gateway_id: Optional[int] = None
    receipt_path: Optional[str] = None
    cart: dict[str, CartLine] = {}


class OrderCreateRequest(CustomerDetails):
    """Pay-on-delivery order placement from the current session cart."""

    pass


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    product_variant_id: Optional[int] = None
    product_title: str
    variant_display_name: Optional[str] = None
    campaign_id: Optional[int] = None
    original_price: int
    campaign_discount_amount: int
    unit_price: int
    quantity: int
    line_total: int


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    customer_address: str
    delivery_method_id: Optional[int] = None
    delivery_fee: int
    total_amount: int
    original_amount: int
    campaign_discount_amount: int
    discount_code: Optional[str] = None
    discount_amount: int
    final_amount: int
    status: OrderStatus
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
