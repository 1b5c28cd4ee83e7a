"""Payment gateway clients."""

from services.payments_service.gateways.base import (
    CallbackResult,
    InitiateResult,
    PaymentGatewayClient,
    VerifyResult,
)
from services.payments_service.gateways.manual_transfer import ManualTransferGateway
from services.payments_service.gateways.paystack import PaystackGateway
from services.payments_service.gateways.registry import (
    GatewayRegistry,
    get_gateway_registry,
)

__all__ = [
    "CallbackResult",
    "GatewayRegistry",
    "InitiateResult",
    "ManualTransferGateway",
    "PaymentGatewayClient",
    "PaystackGateway",
    "VerifyResult",
    "get_gateway_registry",
]
