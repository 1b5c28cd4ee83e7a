"""Store catalog models: products, colors, sizes, variants, campaigns."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import DiscountType, enum_values
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Table, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# PRODUCT MODELS
# ============================================================================


class Product(Base):
    """Products available in the store.

    A product is the stock and price unit unless the shopper selects a
    color/size, in which case the matching ProductVariant is.
    """

    __tablename__ = "store_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Price in minor units (kobo)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    has_variants: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    has_colors: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    has_sizes: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="product_stock_non_negative"),
    )

    # Relationships
    variants = relationship(
        "ProductVariant", back_populates="product", cascade="all, delete-orphan"
    )
    campaigns = relationship(
        "Campaign", secondary="store_campaign_products", back_populates="products"
    )

    def __repr__(self):
        return f"<Product {self.id} {self.slug}>"


class Color(Base):
    __tablename__ = "store_colors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    hex_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    def __repr__(self):
        return f"<Color {self.name}>"


class Size(Base):
    __tablename__ = "store_sizes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self):
        return f"<Size {self.name}>"


class ProductVariant(Base):
    """A color/size combination of a product with its own stock."""

    __tablename__ = "store_product_variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    color_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("store_colors.id", ondelete="SET NULL"), nullable=True
    )
    size_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("store_sizes.id", ondelete="SET NULL"), nullable=True
    )

    # Overrides the product price when set
    price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="variant_stock_non_negative"),
        UniqueConstraint(
            "product_id", "color_id", "size_id", name="unique_product_color_size"
        ),
    )

    # Relationships
    product = relationship("Product", back_populates="variants")
    color = relationship("Color", lazy="selectin")
    size = relationship("Size", lazy="selectin")

    @property
    def display_name(self) -> str:
        """'Red - XL', 'Red', 'XL' or '' depending on which parts are set."""
        parts = []
        if self.color is not None:
            parts.append(self.color.name)
        if self.size is not None:
            parts.append(self.size.name)
        return " - ".join(parts)

    def __repr__(self):
        return f"<ProductVariant {self.id} product={self.product_id}>"


# ============================================================================
# CAMPAIGN MODELS
# ============================================================================


campaign_products = Table(
    "store_campaign_products",
    Base.metadata,
    Column(
        "campaign_id",
        Integer,
        ForeignKey("store_campaigns.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "product_id",
        Integer,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Campaign(Base):
    """Time-windowed automatic discount applied to specific products."""

    __tablename__ = "store_campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    discount_type: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="store_campaign_discount_type_enum",
        ),
        nullable=False,
    )
    # Percent (0-100) or a fixed amount in minor units
    discount_value: Mapped[int] = mapped_column(Integer, nullable=False)

    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Higher wins
    priority: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_store_campaigns_active_window", "is_active", "starts_at", "ends_at"),
    )

    products = relationship(
        "Product", secondary="store_campaign_products", back_populates="campaigns"
    )

    def __repr__(self):
        return f"<Campaign {self.id} {self.name} priority={self.priority}>"
