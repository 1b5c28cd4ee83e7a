"""Unit tests for the pending-order cache backends."""

from datetime import timedelta

import pytest
from services.payments_service.models import PendingOrder
from services.payments_service.pending_orders import (
    DatabasePendingOrderCache,
    RedisPendingOrderCache,
)
from sqlalchemy import func, select
from tests.factories import pending_payload


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def get(self, key):
        return self.store.get(key)

    async def delete(self, key):
        self.store.pop(key, None)


# ---------------------------------------------------------------------------
# Database backend
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_put_get_forget(pending_cache):
    await pending_cache.put(1, pending_payload(1), timedelta(hours=1))

    loaded = await pending_cache.get(1)
    assert loaded == pending_payload(1)
    assert loaded.cart["7"].quantity == 2
    assert loaded.totals.final_amount == 23000

    await pending_cache.forget(1)
    assert await pending_cache.get(1) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_put_replaces_existing_entry(pending_cache, db_session):
    await pending_cache.put(1, pending_payload(1), timedelta(hours=1))
    await pending_cache.put(1, pending_payload(1, delivery_method_id=9), timedelta(hours=1))

    assert (await pending_cache.get(1)).delivery_method_id == 9
    assert await db_session.scalar(select(func.count(PendingOrder.id))) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expired_entry_reads_as_absent(pending_cache):
    await pending_cache.put(1, pending_payload(1), timedelta(seconds=-1))
    await pending_cache.put(2, pending_payload(2), timedelta(hours=1))

    assert await pending_cache.get(1) is None
    assert await pending_cache.purge_expired() == 1
    assert await pending_cache.get(2) is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_entries_survive_a_new_cache_instance(session_factory):
    await DatabasePendingOrderCache(session_factory).put(
        5, pending_payload(5), timedelta(hours=1)
    )

    assert await DatabasePendingOrderCache(session_factory).get(5) == pending_payload(5)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_forget_unknown_invoice_is_noop(pending_cache):
    await pending_cache.forget(404)


@pytest.mark.unit
def test_payload_converts_back_to_checkout_data():
    checkout = pending_payload(1).to_checkout_data()

    assert checkout.user_id == "user-1"
    assert checkout.delivery_method_id == 3
    assert not hasattr(checkout, "invoice_id")
    assert checkout.cart["7"].price == 10000


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_redis_backend_sets_expiry_on_key():
    redis = FakeRedis()
    cache = RedisPendingOrderCache(redis)

    await cache.put(1, pending_payload(1), timedelta(hours=2))

    assert redis.expiry["store:pending_order:1"] == 7200
    assert await cache.get(1) == pending_payload(1)
    await cache.forget(1)
    assert await cache.get(1) is None
