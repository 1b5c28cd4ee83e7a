"""Payment verification state machine.

Reconciles a gateway payment with the local invoice, transaction and order
exactly once:

    PENDING --verify ok--> VERIFIED (order created, invoice paid)
    PENDING --verify not ok--> REJECTED (invoice cancelled if it has no order)

Repeating a verification for an already verified transaction returns the
existing order without calling the gateway again.
"""

from dataclasses import dataclass
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.notifications import Effect, EffectKind, Notifier, dispatch_effects
from services.payments_service.exceptions import PaymentError, PendingOrderMissingError
from services.payments_service.gateways import GatewayRegistry
from services.payments_service.models import (
    Invoice,
    InvoiceStatus,
    Transaction,
    TransactionStatus,
)
from services.payments_service.pending_orders import PendingOrderCache, default_ttl
from services.store_service.services.cart_ops import clear_cart
from services.store_service.services.order_ops import create_order
from services.store_service.services.order_totals import (
    find_delivery_method,
    first_active_delivery_method,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass
class VerificationResult:
    success: bool
    verified: bool
    message: str
    invoice_id: Optional[int] = None
    order_id: Optional[int] = None


async def get_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .options(selectinload(Transaction.invoice), selectinload(Transaction.gateway))
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise PaymentError.transaction_not_found()
    return transaction


async def _forget_pending_order(cache: PendingOrderCache, invoice_id: int) -> None:
    try:
        await cache.forget(invoice_id)
    except Exception as e:
        # The entry expires on its own; the reconciliation worker purges it.
        logger.error("Failed to purge pending order for invoice %s: %s", invoice_id, e)


async def _lock_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def _already_settled(
    status: TransactionStatus, invoice: Invoice
) -> Optional[VerificationResult]:
    """Outcome of an attempt that needs no gateway answer, or None."""
    if status == TransactionStatus.VERIFIED and invoice.order_id:
        return VerificationResult(
            success=True,
            verified=True,
            message="Payment already verified",
            invoice_id=invoice.id,
            order_id=invoice.order_id,
        )
    # A rejected transaction stays rejected; the shopper retries with a new one
    if status.is_failed:
        raise PaymentError.verification_failed(
            "This payment attempt was already rejected"
        )
    return None


async def verify_payment(
    db: AsyncSession,
    transaction_id: int,
    callback_data: Optional[dict] = None,
    *,
    registry: GatewayRegistry,
    cache: PendingOrderCache,
    notifier: Notifier,
) -> VerificationResult:
    """Verify a transaction with its gateway and create the order once.

    Steps:
    1. The transaction must have a gateway.
    2. Already verified and linked to an order: return that order. Already
       rejected: fail again without asking the gateway or notifying.
    3. Ask the gateway. Transport failures raise ``gateway_error`` and leave
       everything untouched.
    4. Not verified: lock the invoice, reject the transaction, cancel the
       invoice and drop its pending payload only if no other attempt linked
       an order meanwhile, emit ``payment_failed`` and raise
       ``verification_failed``.
    5. Verified, in one database transaction: lock the invoice and re-check
       its order link, load the pending payload, fall back to the first
       active delivery method if the chosen one is gone, mark the
       transaction verified, create the order, mark the invoice paid and
       clear the session cart.
    6. After commit: drop the pending payload, emit ``order_created`` and
       ``payment_verified``.

    Any failure inside step 5 rolls the whole unit back: the transaction stays
    PENDING, the invoice stays unpaid and the payload stays cached, so the
    verification can be retried.
    """
    transaction = await get_transaction(db, transaction_id)

    # 1. Gateway
    gateway = transaction.gateway
    if gateway is None:
        raise PaymentError.invalid_gateway("No payment gateway set for this transaction")

    invoice = transaction.invoice
    invoice_id = invoice.id

    # 2. Fast path
    settled = _already_settled(TransactionStatus(transaction.status), invoice)
    if settled is not None:
        return settled

    client = registry.client_for(gateway)
    if client is None:
        raise PaymentError.gateway_unavailable()

    # 3. Gateway verification
    result = await client.verify(transaction, callback_data)

    # 4. Rejected
    if not result.verified:
        try:
            invoice = await _lock_invoice(db, invoice_id)
            current = await db.scalar(
                select(Transaction.status)
                .where(Transaction.id == transaction_id)
                .with_for_update()
            )
            settled = _already_settled(TransactionStatus(current), invoice)
            if settled is None:
                # Another attempt may have paid the invoice while the gateway answered
                drop_payload = invoice.order_id is None
                linked_order_id = invoice.order_id
                transaction.status = TransactionStatus.REJECTED
                if drop_payload:
                    invoice.status = InvoiceStatus.CANCELLED
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        if settled is not None:
            await db.rollback()
            return settled

        logger.warning(
            "Payment rejected for transaction %s (invoice %s): %s",
            transaction_id,
            invoice.invoice_number,
            result.message,
        )
        if drop_payload:
            await _forget_pending_order(cache, invoice_id)
        await dispatch_effects(
            notifier,
            [
                Effect(
                    EffectKind.PAYMENT_FAILED,
                    {
                        "transaction_id": transaction_id,
                        "invoice_id": invoice_id,
                        "order_id": linked_order_id,
                        "reason": result.message,
                    },
                )
            ],
        )
        raise PaymentError.verification_failed(
            result.message or "Payment verification failed"
        )

    # 5. Verified: create the order exactly once
    try:
        invoice = await _lock_invoice(db, invoice_id)
        if invoice.order_id is not None:
            settled = VerificationResult(
                success=True,
                verified=True,
                message="Payment verified; the order was already created",
                invoice_id=invoice.id,
                order_id=invoice.order_id,
            )
            logger.info(
                "Invoice %s already settled by order %s",
                invoice.invoice_number,
                invoice.order_id,
            )
            # Rollback expires loaded objects; read nothing from them after this
            await db.rollback()
            return settled

        payload = await cache.get(invoice.id)
        if payload is None:
            logger.critical(
                "Pending order data missing for verified payment",
                extra={
                    "extra_fields": {
                        "invoice_id": invoice.id,
                        "transaction_id": transaction.id,
                    }
                },
            )
            raise PendingOrderMissingError(invoice.id, transaction.id)

        delivery_method = await find_delivery_method(db, payload.delivery_method_id)
        if delivery_method is None:
            delivery_method = await first_active_delivery_method(db)
            if delivery_method is None:
                raise PaymentError.verification_failed("No delivery method available")
            payload.delivery_method_id = delivery_method.id
            payload.totals.delivery_fee = delivery_method.fee
            # Written through the cache, outside this unit: a later rollback keeps
            # the patched delivery method for the retry
            await cache.put(invoice.id, payload, default_ttl())
            logger.warning(
                "Delivery method fallback applied during payment verification",
                extra={
                    "extra_fields": {
                        "invoice_id": invoice.id,
                        "transaction_id": transaction.id,
                        "fallback_delivery_method_id": delivery_method.id,
                    }
                },
            )

        now = utc_now()
        transaction.status = TransactionStatus.VERIFIED
        transaction.verified_at = now
        transaction.callback_data = result.data
        transaction.reference = (
            result.data.get("ref_id") or transaction.gateway_transaction_id
        )

        creation = await create_order(db, payload.to_checkout_data(), now)
        order = creation.order
        if order.final_amount != invoice.amount:
            logger.warning(
                "Order %s final amount %d differs from invoice %s amount %d",
                order.id,
                order.final_amount,
                invoice.invoice_number,
                invoice.amount,
            )

        invoice.order_id = order.id
        invoice.status = InvoiceStatus.PAID
        invoice.paid_at = now

        await clear_cart(db, payload.session_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Payment verified for transaction %s; invoice %s paid by order %s",
        transaction.id,
        invoice.invoice_number,
        order.id,
    )

    # 6. After commit
    await _forget_pending_order(cache, invoice.id)
    await dispatch_effects(
        notifier,
        creation.effects
        + [
            Effect(
                EffectKind.PAYMENT_VERIFIED,
                {
                    "transaction_id": transaction.id,
                    "invoice_id": invoice.id,
                    "order_id": order.id,
                    "amount": transaction.amount,
                    "reference": transaction.reference,
                },
            )
        ],
    )
    return VerificationResult(
        success=True,
        verified=True,
        message="Payment verified and order created",
        invoice_id=invoice.id,
        order_id=order.id,
    )
