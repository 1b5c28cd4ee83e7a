"""Discount code models."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import DiscountType, enum_values
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship


class DiscountCode(Base):
    """User-entered order-level discount codes."""

    __tablename__ = "store_discount_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Stored upper-case
    code: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )

    discount_type: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="store_discount_code_type_enum",
        ),
        nullable=False,
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    min_order_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    starts_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    usages = relationship("DiscountCodeUsage", back_populates="discount_code")

    def __repr__(self):
        return f"<DiscountCode {self.code}>"


class DiscountCodeUsage(Base):
    """One redemption of a discount code. Blocks reuse by the same user."""

    __tablename__ = "store_discount_code_usages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discount_code_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("store_discount_codes.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False
    )

    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    order_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "discount_code_id",
            "user_id",
            name="uq_store_discount_code_usages_code_user",
        ),
    )

    discount_code = relationship("DiscountCode", back_populates="usages")

    def __repr__(self):
        return f"<DiscountCodeUsage code={self.discount_code_id} order={self.order_id}>"
