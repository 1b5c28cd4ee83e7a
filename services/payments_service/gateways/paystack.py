"""Paystack checkout gateway.

Transactions are initialised server-side and the shopper is redirected to
Paystack. The reference sent to Paystack embeds the local transaction id
(``INV-7G2K9QXA-T42``) so callbacks and webhooks can be mapped back without
an extra lookup table.
"""

import hashlib
import hmac
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.payments_service.exceptions import PaymentError
from services.payments_service.gateways.base import (
    CallbackResult,
    InitiateResult,
    PaymentGatewayClient,
    VerifyResult,
)
from services.payments_service.models import Invoice, PaymentGateway, Transaction

logger = get_logger(__name__)
settings = get_settings()

REFERENCE_SEPARATOR = "-T"


def build_reference(invoice_number: str, transaction_id: int) -> str:
    return f"{invoice_number}{REFERENCE_SEPARATOR}{transaction_id}"


def parse_reference(reference: Optional[str]) -> Optional[int]:
    """Return the transaction id embedded in a reference, or None."""
    if not reference or REFERENCE_SEPARATOR not in reference:
        return None
    _, _, tail = reference.rpartition(REFERENCE_SEPARATOR)
    try:
        return int(tail)
    except ValueError:
        return None


def verify_signature(
    raw_body: bytes, signature: Optional[str], secret_key: Optional[str] = None
) -> bool:
    """Check the ``x-paystack-signature`` header (HMAC-SHA512 of the raw body)."""
    if not signature:
        return False
    secret = (secret_key or settings.PAYSTACK_SECRET_KEY or "").encode("utf-8")
    digest = hmac.new(secret, raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(digest, signature)


class PaystackGateway(PaymentGatewayClient):
    def __init__(
        self,
        gateway: PaymentGateway,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(gateway)
        self.secret_key = (
            secret_key or self.config.get("secret_key") or settings.PAYSTACK_SECRET_KEY
        )
        self.base_url = (base_url or settings.PAYSTACK_API_BASE_URL).rstrip("/")
        self._transport = transport

    def is_available(self) -> bool:
        return super().is_available() and bool(self.secret_key)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self, method: str, path: str, json_data: Optional[dict] = None
    ) -> dict:
        """Call the Paystack API and return the ``data`` object.

        Transport failures and non-success envelopes raise
        ``PaymentError.gateway_error``.
        """
        try:
            async with httpx.AsyncClient(
                timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                resp = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._headers(),
                    json=json_data,
                )
        except httpx.HTTPError as e:
            logger.error("Paystack request %s %s failed: %s", method, path, e)
            raise PaymentError.gateway_error(f"Paystack request failed: {e}") from e

        if resp.status_code >= 400:
            logger.error("Paystack API error: %s - %s", resp.status_code, resp.text)
            raise PaymentError.gateway_error(
                f"Paystack request failed ({resp.status_code})"
            )

        body = resp.json()
        if not body.get("status"):
            raise PaymentError.gateway_error(
                body.get("message") or "Paystack request failed"
            )
        return body.get("data") or {}

    async def initiate(
        self, invoice: Invoice, transaction: Transaction, extra: Optional[dict] = None
    ) -> InitiateResult:
        extra = extra or {}
        email = extra.get("email")
        if not email:
            return InitiateResult(
                success=False, message="An e-mail address is required for Paystack"
            )

        reference = build_reference(invoice.invoice_number, transaction.id)
        payload = {
            "email": email,
            "amount": transaction.amount,
            "currency": invoice.currency,
            "reference": reference,
            "metadata": {
                "invoice_id": invoice.id,
                "transaction_id": transaction.id,
            },
        }
        callback_url = extra.get("callback_url") or settings.PAYSTACK_CALLBACK_URL
        if callback_url:
            payload["callback_url"] = callback_url

        try:
            data = await self._request("POST", "/transaction/initialize", payload)
        except PaymentError as e:
            return InitiateResult(success=False, message=e.message)

        return InitiateResult(
            success=True,
            redirect_url=data.get("authorization_url"),
            form_data={"access_code": data.get("access_code")},
            gateway_transaction_id=data.get("reference") or reference,
        )

    async def verify(
        self, transaction: Transaction, callback_data: Optional[dict] = None
    ) -> VerifyResult:
        reference = transaction.gateway_transaction_id
        if not reference:
            return VerifyResult(verified=False, message="Missing payment reference")

        data = await self._request("GET", f"/transaction/verify/{reference}")
        status = str(data.get("status") or "").lower()
        if status != "success":
            return VerifyResult(
                verified=False,
                message=data.get("gateway_response") or f"Payment {status or 'failed'}",
                data=data,
            )
        if int(data.get("amount") or 0) != transaction.amount:
            logger.warning(
                "Paystack amount mismatch for transaction %s: expected %s got %s",
                transaction.id,
                transaction.amount,
                data.get("amount"),
            )
            return VerifyResult(verified=False, message="Amount mismatch", data=data)

        data = dict(data)
        data["ref_id"] = data.get("reference") or reference
        return VerifyResult(verified=True, message="Payment successful", data=data)

    async def callback(self, raw: dict) -> CallbackResult:
        # Redirects carry ?reference=&trxref=; webhooks nest it under data
        reference = raw.get("reference") or raw.get("trxref")
        if not reference and isinstance(raw.get("data"), dict):
            reference = raw["data"].get("reference")

        transaction_id = parse_reference(reference)
        if transaction_id is None:
            return CallbackResult(success=False, message="Unknown payment reference")
        return CallbackResult(success=True, transaction_id=transaction_id)
