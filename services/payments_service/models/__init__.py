"""Payments Service models package."""

from services.payments_service.models.core import (
    Invoice,
    PaymentGateway,
    PendingOrder,
    Transaction,
)
from services.payments_service.models.enums import (
    GatewayType,
    InvoiceStatus,
    TransactionStatus,
)

__all__ = [
    "GatewayType",
    "Invoice",
    "InvoiceStatus",
    "PaymentGateway",
    "PendingOrder",
    "Transaction",
    "TransactionStatus",
]
