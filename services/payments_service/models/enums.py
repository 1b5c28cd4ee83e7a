"""Enum definitions for payments service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class GatewayType(str, enum.Enum):
    PAYSTACK = "paystack"
    MANUAL_TRANSFER = "manual_transfer"


class InvoiceStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def is_failed(self) -> bool:
        return self in (TransactionStatus.REJECTED, TransactionStatus.FAILED)
