"""Paystack webhook handler."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.exceptions import PaymentError
from services.payments_service.gateways import GatewayRegistry, get_gateway_registry
from services.payments_service.gateways.paystack import verify_signature
from services.payments_service.models import GatewayType
from services.payments_service.pending_orders import (
    PendingOrderCache,
    get_pending_order_cache,
)
from services.payments_service.services import payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)


@router.post("/webhooks/paystack")
async def paystack_webhook(
    request: Request,
    registry: GatewayRegistry = Depends(get_gateway_registry),
    cache: PendingOrderCache = Depends(get_pending_order_cache),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Paystack webhook endpoint (no auth; verified by x-paystack-signature).
    """
    raw = await request.body()
    signature = request.headers.get("x-paystack-signature")
    if not verify_signature(raw, signature):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    payload = json.loads(raw.decode("utf-8") or "{}")
    event = payload.get("event")
    if event != "charge.success":
        return {"received": True}

    try:
        result = await payment_ops.handle_callback(
            db, registry, cache, notifier, GatewayType.PAYSTACK, payload
        )
    except PaymentError as e:
        # Gateway hiccups are retried by Paystack; anything else is final.
        if e.kind == "gateway_error":
            raise
        logger.warning("Paystack webhook not processed: %s", e.message)
        return {"received": True, "processed": False, "kind": e.kind}

    return {"received": True, "processed": result.success, "order_id": result.order_id}
