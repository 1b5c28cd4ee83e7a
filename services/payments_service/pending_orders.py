"""Pending-order cache.

Between checkout and payment verification no order exists yet. The checkout
data needed to build it is parked here, keyed by invoice id, until the
payment is verified (entry consumed) or abandoned (entry expires).

Two backends:

* ``DatabasePendingOrderCache`` - rows in ``payment_pending_orders``. Durable
  across restarts; the default.
* ``RedisPendingOrderCache`` - ``SET ... EX`` keys, for deployments that
  already run Redis and accept its persistence guarantees.

Both open their own connections, so a cache write never rides on (or is
rolled back with) the caller's database transaction.
"""

import json
from datetime import timedelta
from typing import Optional, Protocol

from fastapi import Depends
from libs.common.config import get_settings
from libs.common.datetime_utils import has_passed, utc_now
from libs.common.logging import get_logger
from libs.common.redis import get_redis
from libs.db.session import get_session_factory
from pydantic import BaseModel
from services.payments_service.models import PendingOrder
from services.store_service.schemas import CheckoutData
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

REDIS_KEY_PREFIX = "store:pending_order:"


class PendingTotals(BaseModel):
    """Totals shown to the shopper at checkout, kept for reconciliation."""

    total_amount: int
    original_amount: int
    campaign_discount: int
    delivery_fee: int
    discount_amount: int = 0
    final_amount: int


class PendingOrderPayload(CheckoutData):
    """Checkout data parked until the invoice is paid."""

    invoice_id: int
    session_id: Optional[str] = None
    totals: PendingTotals

    def to_checkout_data(self) -> CheckoutData:
        return CheckoutData.model_validate(
            self.model_dump(include=set(CheckoutData.model_fields))
        )


def default_ttl() -> timedelta:
    return timedelta(hours=get_settings().PENDING_ORDER_TTL_HOURS)


class PendingOrderCache(Protocol):
    async def put(
        self, invoice_id: int, payload: PendingOrderPayload, ttl: timedelta
    ) -> None: ...

    async def get(self, invoice_id: int) -> Optional[PendingOrderPayload]: ...

    async def forget(self, invoice_id: int) -> None: ...


# ---------------------------------------------------------------------------
# Database backend
# ---------------------------------------------------------------------------


class DatabasePendingOrderCache:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def put(
        self, invoice_id: int, payload: PendingOrderPayload, ttl: timedelta
    ) -> None:
        expires_at = utc_now() + ttl
        data = payload.model_dump(mode="json")
        async with self.session_factory() as session:
            result = await session.execute(
                select(PendingOrder).where(PendingOrder.invoice_id == invoice_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(
                    PendingOrder(
                        invoice_id=invoice_id, payload=data, expires_at=expires_at
                    )
                )
            else:
                row.payload = data
                row.expires_at = expires_at
            await session.commit()

    async def get(self, invoice_id: int) -> Optional[PendingOrderPayload]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PendingOrder).where(PendingOrder.invoice_id == invoice_id)
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        if has_passed(row.expires_at):
            logger.info("Pending order for invoice %s has expired", invoice_id)
            return None
        return PendingOrderPayload.model_validate(row.payload)

    async def forget(self, invoice_id: int) -> None:
        async with self.session_factory() as session:
            await session.execute(
                delete(PendingOrder).where(PendingOrder.invoice_id == invoice_id)
            )
            await session.commit()

    async def purge_expired(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(PendingOrder).where(PendingOrder.expires_at <= utc_now())
            )
            await session.commit()
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------


class RedisPendingOrderCache:
    def __init__(self, redis=None):
        self._redis = redis

    async def _client(self):
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    @staticmethod
    def _key(invoice_id: int) -> str:
        return f"{REDIS_KEY_PREFIX}{invoice_id}"

    async def put(
        self, invoice_id: int, payload: PendingOrderPayload, ttl: timedelta
    ) -> None:
        client = await self._client()
        await client.set(
            self._key(invoice_id),
            payload.model_dump_json(),
            ex=int(ttl.total_seconds()),
        )

    async def get(self, invoice_id: int) -> Optional[PendingOrderPayload]:
        client = await self._client()
        raw = await client.get(self._key(invoice_id))
        if raw is None:
            return None
        return PendingOrderPayload.model_validate(json.loads(raw))

    async def forget(self, invoice_id: int) -> None:
        client = await self._client()
        await client.delete(self._key(invoice_id))


def get_pending_order_cache(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PendingOrderCache:
    """FastAPI dependency selecting the cache backend from settings."""
    if get_settings().PENDING_ORDER_CACHE_BACKEND == "redis":
        return RedisPendingOrderCache()
    return DatabasePendingOrderCache(session_factory)
