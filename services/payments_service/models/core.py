import random
import string
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.payments_service.models.enums import (
    GatewayType,
    InvoiceStatus,
    TransactionStatus,
    enum_values,
)
from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship


class PaymentGateway(Base):
    __tablename__ = "payment_gateways"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[GatewayType] = mapped_column(
        SAEnum(
            GatewayType,
            name="payment_gateway_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    # Per-gateway options, e.g. bank details for manual transfers
    config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<PaymentGateway {self.type.value if self.type else None}>"


class Invoice(Base):
    """Payable record created at checkout, before any order exists.

    ``order_id`` stays null until a payment is verified and the order is
    created; it is unique so one invoice can never back two orders.
    """

    __tablename__ = "payment_invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("store_orders.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    payment_gateway_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("payment_gateways.id", ondelete="SET NULL"), nullable=True
    )
    invoice_number: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )

    # Amounts in minor units
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    original_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    campaign_discount_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    discount_code_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    currency: Mapped[str] = mapped_column(String(8), default="NGN", nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(
            InvoiceStatus,
            name="payment_invoice_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=InvoiceStatus.UNPAID,
        nullable=False,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    gateway = relationship("PaymentGateway")
    transactions = relationship(
        "Transaction", back_populates="invoice", order_by="Transaction.id"
    )

    @staticmethod
    def generate_invoice_number() -> str:
        """Generate an invoice number like INV-7G2K9QXA."""
        random_part = "".join(
            random.choices(string.ascii_uppercase + string.digits, k=8)
        )
        return f"INV-{random_part}"

    def __repr__(self):
        return f"<Invoice {self.invoice_number} status={self.status}>"


class Transaction(Base):
    """One attempt to pay an invoice through a gateway."""

    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payment_invoices.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    gateway_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("payment_gateways.id", ondelete="SET NULL"), nullable=True
    )
    method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="payment_transaction_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(128), index=True, nullable=True
    )
    reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    callback_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    invoice = relationship("Invoice", back_populates="transactions")
    gateway = relationship("PaymentGateway")

    def __repr__(self):
        return f"<Transaction {self.id} invoice={self.invoice_id} status={self.status}>"


class PendingOrder(Base):
    """Durable pending-order cache entry, keyed by invoice."""

    __tablename__ = "payment_pending_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer, unique=True, index=True, nullable=False
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
