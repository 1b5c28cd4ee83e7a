"""Payment initiation and gateway callbacks."""

from dataclasses import dataclass
from typing import Optional

from libs.common.logging import get_logger
from libs.common.notifications import Notifier
from services.payments_service.exceptions import PaymentError
from services.payments_service.gateways import GatewayRegistry, InitiateResult
from services.payments_service.models import (
    GatewayType,
    Invoice,
    InvoiceStatus,
    PaymentGateway,
    Transaction,
    TransactionStatus,
)
from services.payments_service.pending_orders import PendingOrderCache
from services.payments_service.services.verification import (
    VerificationResult,
    verify_payment,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class PaymentInitiation:
    transaction: Transaction
    result: InitiateResult


async def list_active_gateways(db: AsyncSession) -> list[PaymentGateway]:
    result = await db.execute(
        select(PaymentGateway)
        .where(PaymentGateway.is_active.is_(True))
        .order_by(PaymentGateway.sort_order.asc(), PaymentGateway.id.asc())
    )
    return list(result.scalars().all())


async def find_gateway_by_type(
    db: AsyncSession, gateway_type: GatewayType
) -> Optional[PaymentGateway]:
    result = await db.execute(
        select(PaymentGateway)
        .where(PaymentGateway.type == gateway_type)
        .order_by(PaymentGateway.is_active.desc(), PaymentGateway.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Initiation
# ---------------------------------------------------------------------------


async def initiate_payment(
    db: AsyncSession,
    registry: GatewayRegistry,
    invoice_id: int,
    gateway_id: int,
    extra: Optional[dict] = None,
) -> PaymentInitiation:
    """Open a pending transaction for an unpaid invoice and start it at the gateway.

    A gateway that refuses to start the payment leaves the transaction
    REJECTED and raises ``initiation_failed``.
    """
    gateway = await db.get(PaymentGateway, gateway_id)
    if gateway is None or not gateway.is_active:
        raise PaymentError.invalid_gateway()

    client = registry.client_for(gateway)
    if client is None or not client.is_available():
        raise PaymentError.gateway_unavailable()

    invoice = await db.get(Invoice, invoice_id)
    if invoice is None:
        raise PaymentError.invoice_not_found()
    if invoice.status != InvoiceStatus.UNPAID:
        raise PaymentError.invalid_invoice()

    transaction = Transaction(
        invoice_id=invoice.id,
        gateway_id=gateway.id,
        method=GatewayType(gateway.type).value,
        amount=invoice.amount,
        status=TransactionStatus.PENDING,
    )
    db.add(transaction)
    await db.flush()

    try:
        result = await client.initiate(invoice, transaction, extra)
    except Exception:
        await db.rollback()
        raise

    if not result.success:
        transaction.status = TransactionStatus.REJECTED
        await db.commit()
        logger.warning(
            "Payment initiation failed for invoice %s: %s",
            invoice.invoice_number,
            result.message,
        )
        raise PaymentError.initiation_failed(
            result.message or "Failed to initiate payment"
        )

    transaction.gateway_transaction_id = result.gateway_transaction_id
    if invoice.payment_gateway_id != gateway.id:
        invoice.payment_gateway_id = gateway.id
    await db.commit()

    logger.info(
        "Initiated %s payment %s for invoice %s",
        transaction.method,
        transaction.id,
        invoice.invoice_number,
    )
    return PaymentInitiation(transaction=transaction, result=result)


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


async def handle_callback(
    db: AsyncSession,
    registry: GatewayRegistry,
    cache: PendingOrderCache,
    notifier: Notifier,
    gateway_type: GatewayType,
    raw: dict,
) -> VerificationResult:
    """Map a gateway redirect or webhook to its transaction and verify it.

    A payload the gateway cannot map to a transaction returns an unsuccessful
    result and changes nothing.
    """
    gateway = await find_gateway_by_type(db, gateway_type)
    if gateway is None:
        logger.error("Payment gateway not found for callback type %s", gateway_type)
        raise PaymentError.invalid_gateway("Payment gateway not found")

    client = registry.client_for(gateway)
    if client is None:
        raise PaymentError.gateway_unavailable()

    mapped = await client.callback(raw)
    if not mapped.success or mapped.transaction_id is None:
        logger.warning(
            "Unmappable %s callback: %s", GatewayType(gateway_type).value, mapped.message
        )
        return VerificationResult(
            success=False,
            verified=False,
            message=mapped.message or "Could not process payment callback",
        )

    transaction = await db.get(Transaction, mapped.transaction_id)
    if transaction is None:
        logger.error("Callback for unknown transaction %s", mapped.transaction_id)
        raise PaymentError.transaction_not_found()

    if transaction.status == TransactionStatus.PENDING:
        transaction.callback_data = raw
        await db.commit()

    return await verify_payment(
        db,
        transaction.id,
        raw,
        registry=registry,
        cache=cache,
        notifier=notifier,
    )
