"""Unit tests for order e-mails."""

import pytest
from libs.common.emails import core, store
from libs.common.notifications import Effect, EffectKind, EmailNotifier


@pytest.mark.unit
def test_format_money_uses_minor_units():
    assert core.format_money(230000) == "NGN 2,300.00"
    assert core.format_money(5, "USD") == "USD 0.05"


@pytest.mark.unit
def test_build_message_adds_html_alternative():
    msg = core.build_message(
        "ada@example.com", "Order Confirmed - #7", "plain", "<p>html</p>"
    )

    assert msg["To"] == "ada@example.com"
    assert msg["Subject"] == "Order Confirmed - #7"
    assert msg.is_multipart()
    assert [part.get_content_type() for part in msg.iter_parts()] == [
        "text/plain",
        "text/html",
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_send_email_without_credentials_is_skipped():
    sent = await core.send_email("ada@example.com", "Hello", "body")

    assert sent is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_email_notifier_sends_confirmation_for_new_orders(monkeypatch):
    calls = []

    async def fake_send(to_email, subject, body, html_body=None):
        calls.append((to_email, subject, body))
        return True

    monkeypatch.setattr(store, "send_email", fake_send)
    notifier = EmailNotifier()

    await notifier.notify(
        Effect(
            EffectKind.ORDER_CREATED,
            {
                "order_id": 12,
                "customer_name": "Ada",
                "customer_email": "ada@example.com",
                "items": [{"title": "Goggles", "quantity": 2, "line_total": 18000}],
                "total_amount": 18000,
                "discount_amount": 0,
                "delivery_fee": 5000,
                "final_amount": 23000,
            },
        )
    )
    await notifier.notify(Effect(EffectKind.ORDER_CANCELLED, {"order_id": 12}))
    await notifier.notify(
        Effect(EffectKind.ORDER_CREATED, {"order_id": 13, "customer_email": None})
    )

    assert len(calls) == 1
    to_email, subject, body = calls[0]
    assert to_email == "ada@example.com"
    assert subject == "Order Confirmed - #12"
    assert "Goggles x2 - NGN 180.00" in body
    assert "Total: NGN 230.00" in body
