"""Unit tests for the payment verification state machine.

Each test runs the real flow up to the point under test: checkout opens an
invoice and parks the payload, initiation opens a PENDING transaction, and
``FakeGateway`` decides the gateway's answer from its config.
"""

import pytest
from libs.common.notifications import EffectKind
from services.payments_service.exceptions import PaymentError, PendingOrderMissingError
from services.payments_service.gateways import GatewayRegistry
from services.payments_service.gateways.base import VerifyResult
from services.payments_service.models import (
    GatewayType,
    Invoice,
    InvoiceStatus,
    TransactionStatus,
)
from services.payments_service.schemas import CheckoutRequest
from services.payments_service.services.checkout_ops import start_checkout
from services.payments_service.services.payment_ops import (
    handle_callback,
    initiate_payment,
)
from services.payments_service.services.verification import (
    get_transaction,
    verify_payment,
)
from services.store_service.exceptions import InsufficientStockError
from services.store_service.models import (
    CampaignSale,
    Cart,
    CartStatus,
    Order,
    OrderItem,
    Product,
)
from services.store_service.services.inventory import current_stock
from sqlalchemy import func, select, update
from tests.factories import (
    DeliveryMethodFactory,
    PaymentGatewayFactory,
    ProductFactory,
    TransactionFactory,
    add_campaign,
    cart_line,
    persist,
)
from tests.fakes import FakeGateway


async def _checkout(db, cache, registry, *, gateway_overrides=None, stock=10):
    """Product 10000 with 10% off, qty 2, delivery 5000: invoice of 23000."""
    product = await persist(db, ProductFactory.create(price=10000, stock=stock))
    await add_campaign(db, product, discount_value=10)
    delivery = await persist(db, DeliveryMethodFactory.create(fee=5000))
    gateway = await persist(
        db, PaymentGatewayFactory.create(**(gateway_overrides or {}))
    )
    cart = {str(product.id): cart_line(product, quantity=2)}
    db.add(Cart(session_id="sess-1", items=cart))
    await db.commit()

    checkout = await start_checkout(
        db,
        cache,
        cart=cart,
        request=CheckoutRequest(
            customer_name="Ada Obi",
            customer_phone="+2348000000000",
            customer_email="ada@example.com",
            customer_address="12 Marina Road, Lagos",
            delivery_method_id=delivery.id,
            payment_gateway_id=gateway.id,
        ),
        user_id="user-1",
        session_id="sess-1",
    )
    initiation = await initiate_payment(
        db, registry, checkout.invoice.id, gateway.id, {"email": "ada@example.com"}
    )
    return product, delivery, checkout.invoice, initiation.transaction


async def _verify(db, transaction_id, registry, cache, notifier, callback_data=None):
    return await verify_payment(
        db,
        transaction_id,
        callback_data,
        registry=registry,
        cache=cache,
        notifier=notifier,
    )


async def _order_count(db) -> int:
    return await db.scalar(select(func.count(Order.id)))


# ---------------------------------------------------------------------------
# Verified
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verified_payment_creates_exactly_one_order(
    db_session, pending_cache, gateway_registry, notifier
):
    product, _, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )

    result = await _verify(
        db_session, transaction.id, gateway_registry, pending_cache, notifier
    )

    assert result.success and result.verified
    assert result.invoice_id == invoice.id

    transaction = await get_transaction(db_session, transaction.id)
    assert transaction.status == TransactionStatus.VERIFIED
    assert transaction.verified_at is not None
    assert transaction.reference == f"REF-{transaction.id}"
    assert transaction.invoice.status == InvoiceStatus.PAID
    assert transaction.invoice.paid_at is not None
    assert transaction.invoice.order_id == result.order_id

    order = await db_session.get(Order, result.order_id)
    assert order.final_amount == invoice.amount == 23000
    assert order.user_id == "user-1"
    assert await current_stock(db_session, Product, product.id) == 8
    assert await pending_cache.get(invoice.id) is None

    cart = await db_session.scalar(select(Cart).where(Cart.session_id == "sess-1"))
    assert cart.status == CartStatus.CONVERTED
    assert cart.items == {}

    assert notifier.kinds() == [EffectKind.ORDER_CREATED, EffectKind.PAYMENT_VERIFIED]
    verified = notifier.effects[1].payload
    assert verified["order_id"] == result.order_id
    assert verified["amount"] == 23000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_repeat_verification_returns_same_order(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, _, transaction = await _checkout(db_session, pending_cache, gateway_registry)

    first = await _verify(
        db_session, transaction.id, gateway_registry, pending_cache, notifier
    )
    second = await _verify(
        db_session, transaction.id, gateway_registry, pending_cache, notifier
    )

    assert second.success
    assert second.order_id == first.order_id
    assert FakeGateway.verify_calls == [transaction.id]
    assert await _order_count(db_session) == 1
    assert notifier.kinds().count(EffectKind.ORDER_CREATED) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_transaction_on_settled_invoice_reuses_order(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )
    first = await _verify(
        db_session, transaction.id, gateway_registry, pending_cache, notifier
    )
    duplicate = await persist(
        db_session, TransactionFactory.create(invoice.id, transaction.gateway_id)
    )

    result = await _verify(
        db_session, duplicate.id, gateway_registry, pending_cache, notifier
    )

    assert result.success
    assert result.order_id == first.order_id
    assert await _order_count(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_callback_runs_verification(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )

    result = await handle_callback(
        db_session,
        gateway_registry,
        pending_cache,
        notifier,
        GatewayType.PAYSTACK,
        {"transaction_id": str(transaction.id)},
    )

    assert result.success
    assert result.invoice_id == invoice.id
    assert await _order_count(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_delivery_method_falls_back_to_first_active(
    db_session, pending_cache, gateway_registry, notifier
):
    _, delivery, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )
    fallback = await persist(
        db_session, DeliveryMethodFactory.create(title="Pickup", fee=0, sort_order=5)
    )
    await db_session.delete(delivery)
    await db_session.commit()

    result = await _verify(
        db_session, transaction.id, gateway_registry, pending_cache, notifier
    )

    order = await db_session.get(Order, result.order_id)
    assert order.delivery_method_id == fallback.id
    assert order.delivery_fee == 0
    assert order.final_amount == 18000
    # The invoice keeps what the shopper was charged
    assert (await get_transaction(db_session, transaction.id)).invoice.amount == 23000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_manual_transfer_approved_by_admin(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session,
        pending_cache,
        gateway_registry,
        gateway_overrides={"name": "Bank transfer", "type": GatewayType.MANUAL_TRANSFER},
    )
    assert transaction.method == "manual_transfer"

    result = await _verify(
        db_session,
        transaction.id,
        gateway_registry,
        pending_cache,
        notifier,
        callback_data={"approved": True, "reviewed_by": "admin-1"},
    )

    assert result.success
    transaction = await get_transaction(db_session, transaction.id)
    assert transaction.reference == f"{invoice.invoice_number}-M{transaction.id}"


# ---------------------------------------------------------------------------
# Not verified
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_declined_payment_rejects_and_cancels(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session,
        pending_cache,
        gateway_registry,
        gateway_overrides={"config": {"outcome": "declined"}},
    )

    with pytest.raises(PaymentError) as exc_info:
        await _verify(
            db_session, transaction.id, gateway_registry, pending_cache, notifier
        )

    assert exc_info.value.kind == "verification_failed"
    assert exc_info.value.message == "Declined by issuer"
    transaction = await get_transaction(db_session, transaction.id)
    assert transaction.status == TransactionStatus.REJECTED
    assert transaction.invoice.status == InvoiceStatus.CANCELLED
    assert await pending_cache.get(invoice.id) is None
    assert await _order_count(db_session) == 0
    assert notifier.kinds() == [EffectKind.PAYMENT_FAILED]
    assert notifier.effects[0].payload["reason"] == "Declined by issuer"

    # A duplicate callback for the rejected attempt changes nothing
    with pytest.raises(PaymentError):
        await _verify(
            db_session, transaction.id, gateway_registry, pending_cache, notifier
        )
    assert notifier.kinds() == [EffectKind.PAYMENT_FAILED]
    assert FakeGateway.verify_calls == [transaction.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_gateway_error_leaves_state_untouched(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session,
        pending_cache,
        gateway_registry,
        gateway_overrides={"config": {"outcome": "error"}},
    )

    with pytest.raises(PaymentError) as exc_info:
        await _verify(
            db_session, transaction.id, gateway_registry, pending_cache, notifier
        )

    assert exc_info.value.kind == "gateway_error"
    transaction = await get_transaction(db_session, transaction.id)
    assert transaction.status == TransactionStatus.PENDING
    assert transaction.invoice.status == InvoiceStatus.UNPAID
    assert await pending_cache.get(invoice.id) is not None
    assert notifier.effects == []


# ---------------------------------------------------------------------------
# Verified but the order cannot be built
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_payload_is_critical_and_retryable(
    db_session, pending_cache, gateway_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )
    invoice_id, transaction_id = invoice.id, transaction.id
    await pending_cache.forget(invoice_id)

    with pytest.raises(PendingOrderMissingError) as exc_info:
        await _verify(
            db_session, transaction_id, gateway_registry, pending_cache, notifier
        )

    assert exc_info.value.to_dict()["invoice_id"] == invoice_id
    assert exc_info.value.to_dict()["transaction_id"] == transaction_id
    transaction = await get_transaction(db_session, transaction_id)
    assert transaction.status == TransactionStatus.PENDING
    assert transaction.invoice.status == InvoiceStatus.UNPAID
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stock_shortfall_rolls_back_verification(
    db_session, pending_cache, gateway_registry, notifier
):
    product, _, invoice, transaction = await _checkout(
        db_session, pending_cache, gateway_registry
    )
    product_id, invoice_id, transaction_id = product.id, invoice.id, transaction.id
    await db_session.execute(
        update(Product).where(Product.id == product_id).values(stock=1)
    )
    await db_session.commit()

    with pytest.raises(InsufficientStockError):
        await _verify(
            db_session, transaction_id, gateway_registry, pending_cache, notifier
        )

    transaction = await get_transaction(db_session, transaction_id)
    assert transaction.status == TransactionStatus.PENDING
    assert transaction.verified_at is None
    assert transaction.invoice.status == InvoiceStatus.UNPAID
    assert transaction.invoice.order_id is None
    assert await pending_cache.get(invoice_id) is not None
    assert await current_stock(db_session, Product, product_id) == 1
    assert await _order_count(db_session) == 0
    assert notifier.effects == []


# ---------------------------------------------------------------------------
# Competing verifications for one invoice
# ---------------------------------------------------------------------------


class RacingGateway(FakeGateway):
    """The first ``verify`` call runs ``rival`` to completion before answering.

    Transactions listed in ``declined_ids`` are declined.
    """

    rival = None
    declined_ids: set[int] = set()

    async def verify(self, transaction, callback_data=None):
        rival, RacingGateway.rival = RacingGateway.rival, None
        if rival is not None:
            await rival()
        if transaction.id in RacingGateway.declined_ids:
            FakeGateway.verify_calls.append(transaction.id)
            return VerifyResult(verified=False, message="Declined by issuer")
        return await super().verify(transaction, callback_data)


@pytest.fixture
def racing_registry():
    FakeGateway.verify_calls.clear()
    RacingGateway.rival = None
    RacingGateway.declined_ids = set()
    yield GatewayRegistry({GatewayType.PAYSTACK: RacingGateway})
    RacingGateway.rival = None


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def _invoice(db, invoice_id) -> Invoice:
    return await db.scalar(
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verification_in_flight_does_not_create_second_order(
    db_session, session_factory, pending_cache, racing_registry, notifier
):
    _, _, invoice, transaction = await _checkout(
        db_session, pending_cache, racing_registry
    )
    invoice_id, transaction_id = invoice.id, transaction.id
    rival_results = []

    async def rival():
        async with session_factory() as other:
            rival_results.append(
                await _verify(
                    other, transaction_id, racing_registry, pending_cache, notifier
                )
            )

    RacingGateway.rival = rival

    result = await _verify(
        db_session, transaction_id, racing_registry, pending_cache, notifier
    )

    assert result.success and result.verified
    assert result.order_id == rival_results[0].order_id
    assert await _count(db_session, Order) == 1
    assert await _count(db_session, OrderItem) == 1
    assert await _count(db_session, CampaignSale) == 1
    assert (await _invoice(db_session, invoice_id)).order_id == result.order_id
    assert notifier.kinds() == [EffectKind.ORDER_CREATED, EffectKind.PAYMENT_VERIFIED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejection_after_sibling_settled_keeps_invoice_paid(
    db_session, session_factory, pending_cache, racing_registry, notifier
):
    _, _, invoice, paid = await _checkout(db_session, pending_cache, racing_registry)
    declined = await persist(
        db_session, TransactionFactory.create(invoice.id, paid.gateway_id)
    )
    invoice_id, paid_id, declined_id = invoice.id, paid.id, declined.id
    rival_results = []

    async def rival():
        async with session_factory() as other:
            rival_results.append(
                await _verify(other, paid_id, racing_registry, pending_cache, notifier)
            )

    RacingGateway.rival = rival
    RacingGateway.declined_ids = {declined_id}

    with pytest.raises(PaymentError) as exc_info:
        await _verify(
            db_session, declined_id, racing_registry, pending_cache, notifier
        )

    assert exc_info.value.kind == "verification_failed"
    order_id = rival_results[0].order_id
    settled = await _invoice(db_session, invoice_id)
    assert settled.status == InvoiceStatus.PAID
    assert settled.order_id == order_id
    assert (await get_transaction(db_session, declined_id)).status == (
        TransactionStatus.REJECTED
    )
    assert (await get_transaction(db_session, paid_id)).status == (
        TransactionStatus.VERIFIED
    )
    assert await _count(db_session, Order) == 1
    assert notifier.kinds() == [
        EffectKind.ORDER_CREATED,
        EffectKind.PAYMENT_VERIFIED,
        EffectKind.PAYMENT_FAILED,
    ]
    assert notifier.effects[2].payload["order_id"] == order_id
