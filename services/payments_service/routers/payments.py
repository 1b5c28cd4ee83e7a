"""Payment initiation and gateway return callbacks."""

from fastapi import APIRouter, Depends, Request
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.gateways import GatewayRegistry, get_gateway_registry
from services.payments_service.models import GatewayType
from services.payments_service.pending_orders import (
    PendingOrderCache,
    get_pending_order_cache,
)
from services.payments_service.schemas import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    VerificationResponse,
)
from services.payments_service.services import payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initiate", response_model=PaymentInitiateResponse)
async def initiate_payment(
    request: PaymentInitiateRequest,
    registry: GatewayRegistry = Depends(get_gateway_registry),
    db: AsyncSession = Depends(get_async_db),
):
    """Start paying an invoice through a gateway."""
    initiation = await payment_ops.initiate_payment(
        db,
        registry,
        request.invoice_id,
        request.gateway_id,
        extra={"email": request.email, "callback_url": request.callback_url},
    )
    return PaymentInitiateResponse(
        transaction_id=initiation.transaction.id,
        redirect_url=initiation.result.redirect_url,
        form_data=initiation.result.form_data,
        message=initiation.result.message,
    )


async def _callback_payload(request: Request) -> dict:
    """Gateways return with query params (GET) or a form/JSON body (POST)."""
    data = dict(request.query_params)
    if request.method == "POST":
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            body = await request.json()
            if isinstance(body, dict):
                data.update(body)
        else:
            form = await request.form()
            data.update({key: value for key, value in form.items()})
    return data


@router.api_route(
    "/callback/{gateway_type}",
    methods=["GET", "POST"],
    response_model=VerificationResponse,
)
async def payment_callback(
    gateway_type: GatewayType,
    request: Request,
    registry: GatewayRegistry = Depends(get_gateway_registry),
    cache: PendingOrderCache = Depends(get_pending_order_cache),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Handle the shopper's return from a gateway and verify the payment."""
    raw = await _callback_payload(request)
    result = await payment_ops.handle_callback(
        db, registry, cache, notifier, gateway_type, raw
    )
    return VerificationResponse(**vars(result))
