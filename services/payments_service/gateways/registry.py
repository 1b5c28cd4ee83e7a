"""Maps a gateway row to the client that talks to that provider."""

from typing import Callable, Optional

from services.payments_service.gateways.base import PaymentGatewayClient
from services.payments_service.gateways.manual_transfer import ManualTransferGateway
from services.payments_service.gateways.paystack import PaystackGateway
from services.payments_service.models import GatewayType, PaymentGateway

GatewayFactory = Callable[[PaymentGateway], PaymentGatewayClient]


class GatewayRegistry:
    def __init__(self, factories: Optional[dict[GatewayType, GatewayFactory]] = None):
        self._factories: dict[GatewayType, GatewayFactory] = dict(factories or {})

    def register(self, gateway_type: GatewayType, factory: GatewayFactory) -> None:
        self._factories[GatewayType(gateway_type)] = factory

    def client_for(self, gateway: PaymentGateway) -> Optional[PaymentGatewayClient]:
        """Build the client for a gateway row, or None when no client is registered."""
        factory = self._factories.get(GatewayType(gateway.type))
        if factory is None:
            return None
        return factory(gateway)


def default_registry() -> GatewayRegistry:
    return GatewayRegistry(
        {
            GatewayType.PAYSTACK: PaystackGateway,
            GatewayType.MANUAL_TRANSFER: ManualTransferGateway,
        }
    )


def get_gateway_registry() -> GatewayRegistry:
    """FastAPI dependency returning the gateway registry."""
    return default_registry()
