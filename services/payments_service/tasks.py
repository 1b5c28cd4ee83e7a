"""Background reconciliation tasks for payments service."""

from __future__ import annotations

from datetime import timedelta

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.payments_service.models import Invoice, InvoiceStatus
from services.payments_service.pending_orders import (
    DatabasePendingOrderCache,
    PendingOrderCache,
    default_ttl,
)
from sqlalchemy import select

logger = get_logger(__name__)

BATCH_SIZE = 200


async def expire_stale_invoices(
    session_factory=AsyncSessionLocal,
    cache: PendingOrderCache | None = None,
    max_age: timedelta | None = None,
) -> int:
    """Cancel unpaid, order-less invoices older than the pending-order TTL.

    Their checkout data has expired, so they can no longer become orders.
    Returns the number of invoices cancelled.
    """
    cache = cache or DatabasePendingOrderCache(session_factory)
    cutoff = utc_now() - (max_age if max_age is not None else default_ttl())

    async with session_factory() as db:
        result = await db.execute(
            select(Invoice)
            .where(
                Invoice.status == InvoiceStatus.UNPAID,
                Invoice.order_id.is_(None),
                Invoice.created_at <= cutoff,
            )
            .order_by(Invoice.created_at.asc())
            .limit(BATCH_SIZE)
        )
        stale = list(result.scalars().all())
        for invoice in stale:
            invoice.status = InvoiceStatus.CANCELLED
        await db.commit()

    for invoice in stale:
        try:
            await cache.forget(invoice.id)
        except Exception as exc:
            logger.warning(
                "Failed to purge pending order for invoice %s: %s",
                invoice.invoice_number,
                exc,
            )

    if stale:
        logger.info("Expired %d stale invoices", len(stale))
    return len(stale)


async def purge_expired_pending_orders(session_factory=AsyncSessionLocal) -> int:
    """Delete expired rows from the durable pending-order cache."""
    purged = await DatabasePendingOrderCache(session_factory).purge_expired()
    if purged:
        logger.info("Purged %d expired pending orders", purged)
    return purged
