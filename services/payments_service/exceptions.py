"""Payment-domain failures. Each is rendered as ``{kind, message}``."""

from typing import Optional

from libs.common.errors import ServiceError


class PaymentError(ServiceError):
    default_kind = "payment_error"

    @classmethod
    def initiation_failed(cls, message: str = "Failed to initiate payment"):
        return cls(message, kind="initiation_failed", status_code=502)

    @classmethod
    def verification_failed(cls, message: str = "Payment verification failed"):
        return cls(message, kind="verification_failed", status_code=402)

    @classmethod
    def invalid_gateway(cls, message: str = "Invalid or inactive payment gateway"):
        return cls(message, kind="invalid_gateway")

    @classmethod
    def gateway_unavailable(cls, message: str = "Payment gateway is not available"):
        return cls(message, kind="gateway_unavailable", status_code=503)

    @classmethod
    def invalid_invoice(cls, message: str = "Invoice is not payable"):
        return cls(message, kind="invalid_invoice")

    @classmethod
    def gateway_error(cls, message: str = "Payment gateway request failed"):
        return cls(message, kind="gateway_error", status_code=502)

    @classmethod
    def transaction_not_found(cls, message: str = "Transaction not found"):
        return cls(message, kind="transaction_not_found", status_code=404)

    @classmethod
    def invoice_not_found(cls, message: str = "Invoice not found"):
        return cls(message, kind="invoice_not_found", status_code=404)


class PendingOrderMissingError(PaymentError):
    """A verified payment whose checkout payload is gone.

    Money was taken but no order can be built. Needs manual reconciliation.
    """

    status_code = 500
    default_kind = "pending_order_missing"

    def __init__(self, invoice_id: int, transaction_id: Optional[int] = None):
        self.invoice_id = invoice_id
        self.transaction_id = transaction_id
        super().__init__(
            "Order data not found for this payment. Please contact support."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(invoice_id=self.invoice_id, transaction_id=self.transaction_id)
        return data
