"""Store commerce models: delivery methods, carts, orders, campaign sales."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import CartStatus, OrderStatus, enum_values
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# DELIVERY METHOD MODEL
# ============================================================================


class DeliveryMethod(Base):
    """Shipping options offered at checkout."""

    __tablename__ = "store_delivery_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    fee: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    def __repr__(self):
        return f"<DeliveryMethod {self.title} fee={self.fee}>"


# ============================================================================
# CART MODEL
# ============================================================================


class Cart(Base):
    """Session-scoped shopping cart.

    ``items`` maps a cart key (see ``make_cart_key``) to a line dict:
    ``{product_id, quantity, color_id, size_id, price, title, image,
    variant_display_name}``. Always assign a new dict when mutating so the
    JSON column is flagged dirty.
    """

    __tablename__ = "store_carts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )

    items: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    status: Mapped[CartStatus] = mapped_column(
        SAEnum(
            CartStatus,
            values_callable=enum_values,
            name="store_cart_status_enum",
        ),
        default=CartStatus.ACTIVE,
        server_default="active",
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Cart {self.session_id} lines={len(self.items or {})}>"


# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Orders. Amounts are integer minor units."""

    __tablename__ = "store_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Customer (user_id is null for guest checkout)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)

    # Delivery
    delivery_method_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("store_delivery_methods.id", ondelete="SET NULL"),
        nullable=True,
    )
    delivery_fee: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Pricing
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    original_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    campaign_discount_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    discount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    final_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
    )
    receipt_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("final_amount >= 0", name="order_final_amount_non_negative"),
        Index("ix_store_orders_user_id_created_at", "user_id", "created_at"),
    )

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    delivery_method = relationship("DeliveryMethod")

    def __repr__(self):
        return f"<Order {self.id} status={self.status}>"


class OrderItem(Base):
    """Order line items (snapshot at order time)."""

    __tablename__ = "store_order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("store_products.id", ondelete="SET NULL"), nullable=True
    )
    product_variant_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("store_product_variants.id", ondelete="SET NULL"),
        nullable=True,
    )
    color_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    size_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    campaign_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("store_campaigns.id", ondelete="SET NULL"), nullable=True
    )

    # Snapshot at order time (products and campaigns may change)
    product_title: Mapped[str] = mapped_column(String(255), nullable=False)
    variant_display_name: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    original_price: Mapped[int] = mapped_column(Integer, nullable=False)
    campaign_discount_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (CheckConstraint("quantity > 0", name="positive_quantity"),)

    # Relationships
    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.product_title} qty={self.quantity}>"


class CampaignSale(Base):
    """Append-only analytics row for an order item sold under a campaign."""

    __tablename__ = "store_campaign_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("store_campaigns.id", ondelete="SET NULL"), nullable=True
    )
    order_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("store_order_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    product_variant_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Total discount across the line, i.e. per-unit discount * quantity
    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<CampaignSale campaign={self.campaign_id} item={self.order_item_id}>"
