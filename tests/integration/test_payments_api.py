"""Integration tests for the payments API: checkout, initiation, callbacks,
webhooks and manual transfer review.

The Paystack slot of the gateway registry is filled by ``FakeGateway``.
"""

import hashlib
import hmac
import json

import pytest
from services.payments_service.models import (
    GatewayType,
    Transaction,
    TransactionStatus,
)
from services.store_service.models import Cart, Order
from sqlalchemy import func, select
from tests.factories import (
    DeliveryMethodFactory,
    PaymentGatewayFactory,
    ProductFactory,
    add_campaign,
    cart_line,
    persist,
)

CUSTOMER = {
    "customer_name": "Ada Obi",
    "customer_phone": "+2348000000000",
    "customer_email": "ada@example.com",
    "customer_address": "12 Marina Road, Lagos",
}


async def _seed(db, **gateway_overrides):
    """Session cart of two 10%-off units at 10000, delivery 5000."""
    product = await persist(db, ProductFactory.create(price=10000))
    await add_campaign(db, product, discount_value=10)
    delivery = await persist(db, DeliveryMethodFactory.create(fee=5000))
    gateway = await persist(db, PaymentGatewayFactory.create(**gateway_overrides))
    await persist(
        db,
        Cart(
            session_id="sess-1",
            items={str(product.id): cart_line(product, quantity=2)},
        ),
    )
    return delivery.id, gateway.id


async def _checkout_and_initiate(client, delivery_id, gateway_id, headers=None):
    response = await client.post(
        "/payments/checkout?session_id=sess-1",
        json={
            **CUSTOMER,
            "delivery_method_id": delivery_id,
            "payment_gateway_id": gateway_id,
        },
        headers=headers or {},
    )
    assert response.status_code == 201, response.text
    invoice = response.json()["invoice"]

    response = await client.post(
        "/payments/initiate",
        json={
            "invoice_id": invoice["id"],
            "gateway_id": gateway_id,
            "email": "ada@example.com",
        },
    )
    assert response.status_code == 200, response.text
    return invoice, response.json()


def _signed(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    signature = hmac.new(b"sk_test_storefront", body, hashlib.sha512).hexdigest()
    return body, {
        "x-paystack-signature": signature,
        "content-type": "application/json",
    }


# ---------------------------------------------------------------------------
# Gateways and checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_active_gateways(payments_client, db_session):
    await persist(db_session, PaymentGatewayFactory.create(sort_order=1))
    await persist(
        db_session,
        PaymentGatewayFactory.create(
            name="Bank transfer", type=GatewayType.MANUAL_TRANSFER, sort_order=0
        ),
    )
    await persist(db_session, PaymentGatewayFactory.create(is_active=False))

    response = await payments_client.get("/payments/gateways")

    assert response.status_code == 200
    assert [g["type"] for g in response.json()] == ["manual_transfer", "paystack"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_opens_invoice_without_order(
    payments_client, db_session, auth_headers
):
    delivery_id, gateway_id = await _seed(db_session)

    response = await payments_client.post(
        "/payments/checkout?session_id=sess-1",
        json={
            **CUSTOMER,
            "delivery_method_id": delivery_id,
            "payment_gateway_id": gateway_id,
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["final_amount"] == 23000
    assert data["delivery_fee"] == 5000
    assert data["invoice"]["status"] == "unpaid"
    assert data["invoice"]["order_id"] is None
    assert data["invoice"]["amount"] == 23000


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_with_empty_cart(payments_client, db_session):
    delivery_id, _ = await _seed(db_session)

    response = await payments_client.post(
        "/payments/checkout?session_id=nobody",
        json={**CUSTOMER, "delivery_method_id": delivery_id},
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "empty_cart"


# ---------------------------------------------------------------------------
# Initiation and return callback
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_online_payment_flow(payments_client, db_session, notifier):
    delivery_id, gateway_id = await _seed(db_session)
    invoice, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )
    assert initiation["redirect_url"].endswith(invoice["invoice_number"])

    response = await payments_client.get(
        f"/payments/callback/paystack?transaction_id={initiation['transaction_id']}"
    )

    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    assert result["verified"] is True
    assert result["invoice_id"] == invoice["id"]
    assert result["order_id"] is not None
    assert [kind.value for kind in notifier.kinds()] == [
        "order_created",
        "payment_verified",
    ]

    # The gateway may redirect the shopper more than once
    again = await payments_client.post(
        "/payments/callback/paystack",
        json={"transaction_id": initiation["transaction_id"]},
    )
    assert again.status_code == 200
    assert again.json()["order_id"] == result["order_id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_declined_payment_returns_402(payments_client, db_session, notifier):
    delivery_id, gateway_id = await _seed(
        db_session, config={"outcome": "declined"}
    )
    _, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )

    response = await payments_client.get(
        f"/payments/callback/paystack?transaction_id={initiation['transaction_id']}"
    )

    assert response.status_code == 402
    assert response.json()["kind"] == "verification_failed"
    assert [kind.value for kind in notifier.kinds()] == ["payment_failed"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unmappable_callback(payments_client, db_session):
    await _seed(db_session)

    response = await payments_client.get("/payments/callback/paystack?foo=bar")

    assert response.status_code == 200
    assert response.json()["success"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_initiate_with_unknown_gateway(payments_client, db_session):
    response = await payments_client.post(
        "/payments/initiate", json={"invoice_id": 1, "gateway_id": 999}
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_gateway"


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_rejects_bad_signature(payments_client):
    response = await payments_client.post(
        "/payments/webhooks/paystack",
        content=b'{"event": "charge.success"}',
        headers={"x-paystack-signature": "nope"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_ignores_other_events(payments_client):
    body, headers = _signed({"event": "transfer.success", "data": {}})

    response = await payments_client.post(
        "/payments/webhooks/paystack", content=body, headers=headers
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_charge_success_creates_order(payments_client, db_session):
    delivery_id, gateway_id = await _seed(db_session)
    _, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )
    body, headers = _signed(
        {"event": "charge.success", "transaction_id": initiation["transaction_id"]}
    )

    response = await payments_client.post(
        "/payments/webhooks/paystack", content=body, headers=headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["processed"] is True
    assert data["order_id"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_for_declined_payment_is_acknowledged(
    payments_client, db_session
):
    delivery_id, gateway_id = await _seed(
        db_session, config={"outcome": "declined"}
    )
    _, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )
    body, headers = _signed(
        {"event": "charge.success", "transaction_id": initiation["transaction_id"]}
    )

    response = await payments_client.post(
        "/payments/webhooks/paystack", content=body, headers=headers
    )

    assert response.status_code == 200
    assert response.json() == {
        "received": True,
        "processed": False,
        "kind": "verification_failed",
    }


# ---------------------------------------------------------------------------
# Manual transfer review
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manual_transfer_review_requires_admin(
    payments_client, db_session, auth_headers
):
    response = await payments_client.post(
        "/payments/admin/transactions/1/review",
        json={"approved": True},
        headers=auth_headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_approves_manual_transfer(
    payments_client, db_session, admin_headers
):
    delivery_id, gateway_id = await _seed(
        db_session, name="Bank transfer", type=GatewayType.MANUAL_TRANSFER
    )
    invoice, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )
    assert initiation["form_data"]["narration"] == invoice["invoice_number"]
    assert initiation["form_data"]["amount"] == 23000

    response = await payments_client.post(
        f"/payments/admin/transactions/{initiation['transaction_id']}/review",
        json={"approved": True},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["verified"] is True
    assert response.json()["order_id"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_rejects_manual_transfer(
    payments_client, db_session, admin_headers
):
    delivery_id, gateway_id = await _seed(
        db_session, name="Bank transfer", type=GatewayType.MANUAL_TRANSFER
    )
    _, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )

    response = await payments_client.post(
        f"/payments/admin/transactions/{initiation['transaction_id']}/review",
        json={"approved": False, "reason": "No matching transfer"},
        headers=admin_headers,
    )

    assert response.status_code == 402
    assert response.json()["message"] == "No matching transfer"


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("approved", [True, "false"])
async def test_public_callback_cannot_settle_manual_transfer(
    payments_client, db_session, approved
):
    delivery_id, gateway_id = await _seed(
        db_session, name="Bank transfer", type=GatewayType.MANUAL_TRANSFER
    )
    _, initiation = await _checkout_and_initiate(
        payments_client, delivery_id, gateway_id
    )

    response = await payments_client.post(
        "/payments/callback/manual_transfer",
        json={"transaction_id": initiation["transaction_id"], "approved": approved},
    )

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["order_id"] is None
    assert await db_session.scalar(select(func.count()).select_from(Order)) == 0
    status = await db_session.scalar(
        select(Transaction.status).where(
            Transaction.id == initiation["transaction_id"]
        )
    )
    assert status == TransactionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_reports_service(payments_client):
    response = await payments_client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "payments"}
    assert response.headers["X-Request-ID"] == "req-42"
