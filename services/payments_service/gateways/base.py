"""Common interface for payment gateway clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from services.payments_service.models import Invoice, PaymentGateway, Transaction


@dataclass
class InitiateResult:
    success: bool
    redirect_url: Optional[str] = None
    form_data: dict = field(default_factory=dict)
    message: str = ""
    gateway_transaction_id: Optional[str] = None


@dataclass
class VerifyResult:
    verified: bool
    message: str = ""
    # Raw gateway response; ``ref_id`` (when present) becomes the transaction reference
    data: dict = field(default_factory=dict)


@dataclass
class CallbackResult:
    success: bool
    transaction_id: Optional[int] = None
    message: str = ""


class PaymentGatewayClient(ABC):
    """One external payment provider.

    ``initiate`` starts a payment for a pending transaction, ``verify`` asks
    the provider whether it was paid, ``callback`` maps a provider redirect or
    webhook payload back to the local transaction id.
    """

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    @property
    def config(self) -> dict:
        return self.gateway.config or {}

    def is_available(self) -> bool:
        return bool(self.gateway.is_active)

    @abstractmethod
    async def initiate(
        self, invoice: Invoice, transaction: Transaction, extra: Optional[dict] = None
    ) -> InitiateResult: ...

    @abstractmethod
    async def verify(
        self, transaction: Transaction, callback_data: Optional[dict] = None
    ) -> VerifyResult: ...

    @abstractmethod
    async def callback(self, raw: dict) -> CallbackResult: ...
