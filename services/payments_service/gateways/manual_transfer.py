"""Manual bank transfer: the shopper pays offline and an admin approves."""

from typing import Optional

from libs.common.config import get_settings
from services.payments_service.gateways.base import (
    CallbackResult,
    InitiateResult,
    PaymentGatewayClient,
    VerifyResult,
)
from services.payments_service.models import Invoice, Transaction

settings = get_settings()


class ManualTransferGateway(PaymentGatewayClient):
    def bank_details(self) -> dict:
        return {
            "account_name": self.config.get("account_name")
            or settings.MANUAL_TRANSFER_ACCOUNT_NAME,
            "account_number": self.config.get("account_number")
            or settings.MANUAL_TRANSFER_ACCOUNT_NUMBER,
            "bank_name": self.config.get("bank_name")
            or settings.MANUAL_TRANSFER_BANK_NAME,
        }

    async def initiate(
        self, invoice: Invoice, transaction: Transaction, extra: Optional[dict] = None
    ) -> InitiateResult:
        return InitiateResult(
            success=True,
            form_data={
                **self.bank_details(),
                "amount": transaction.amount,
                "currency": invoice.currency,
                "narration": invoice.invoice_number,
            },
            message="Transfer the amount and quote the invoice number as narration",
            gateway_transaction_id=f"{invoice.invoice_number}-M{transaction.id}",
        )

    async def verify(
        self, transaction: Transaction, callback_data: Optional[dict] = None
    ) -> VerifyResult:
        """Only an admin review decides a transfer.

        The review route writes ``reviewed_by`` and a boolean ``approved``;
        anything else is not an approval.
        """
        data = callback_data or {}
        if data.get("reviewed_by") and data.get("approved") is True:
            return VerifyResult(verified=True, message="Transfer approved", data=data)
        return VerifyResult(
            verified=False,
            message=data.get("reason") or "Transfer was not approved",
            data=data,
        )

    async def callback(self, raw: dict) -> CallbackResult:
        return CallbackResult(
            success=False, message="Manual transfers are settled by admin review"
        )
