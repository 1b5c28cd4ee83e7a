"""Test doubles for payment gateways."""

from typing import Optional

from services.payments_service.exceptions import PaymentError
from services.payments_service.gateways.base import (
    CallbackResult,
    InitiateResult,
    PaymentGatewayClient,
    VerifyResult,
)


class FakeGateway(PaymentGatewayClient):
    """Scripted gateway. The gateway row's ``config`` decides each outcome:

    * ``initiate``: ``"ok"`` (default) or ``"fail"``
    * ``outcome``: ``"verified"`` (default), ``"declined"`` or ``"error"``
    """

    verify_calls: list[int] = []

    async def initiate(self, invoice, transaction, extra: Optional[dict] = None):
        if self.config.get("initiate") == "fail":
            return InitiateResult(success=False, message="Gateway refused")
        return InitiateResult(
            success=True,
            redirect_url=f"https://pay.example.com/{invoice.invoice_number}",
            gateway_transaction_id=f"FAKE-{transaction.id}",
        )

    async def verify(self, transaction, callback_data: Optional[dict] = None):
        FakeGateway.verify_calls.append(transaction.id)
        outcome = self.config.get("outcome", "verified")
        if outcome == "error":
            raise PaymentError.gateway_error("Gateway timed out")
        if outcome == "declined":
            return VerifyResult(verified=False, message="Declined by issuer")
        return VerifyResult(
            verified=True,
            message="ok",
            data={"ref_id": f"REF-{transaction.id}", "amount": transaction.amount},
        )

    async def callback(self, raw: dict):
        try:
            return CallbackResult(success=True, transaction_id=int(raw["transaction_id"]))
        except (KeyError, TypeError, ValueError):
            return CallbackResult(success=False, message="Unknown transaction")
