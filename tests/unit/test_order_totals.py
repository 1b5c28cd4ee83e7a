"""Unit tests for order totals."""

import pytest
from services.store_service.exceptions import OrderError
from services.store_service.services.order_totals import (
    calculate_order_totals,
    first_active_delivery_method,
)
from tests.factories import (
    ColorFactory,
    DeliveryMethodFactory,
    ProductFactory,
    VariantFactory,
    add_campaign,
    cart_line,
    persist,
)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_totals_with_delivery_fee(db_session):
    product = await persist(db_session, ProductFactory.create(price=10000))
    campaign = await add_campaign(db_session, product, discount_value=10)
    delivery = await persist(db_session, DeliveryMethodFactory.create(fee=5000))
    cart = {str(product.id): cart_line(product, quantity=2)}

    totals = await calculate_order_totals(db_session, cart, delivery.id)

    assert totals.total_amount == 18000
    assert totals.original_amount == 20000
    assert totals.campaign_discount == 2000
    assert totals.delivery_fee == 5000
    [item] = totals.items
    assert item.cart_key == str(product.id)
    assert item.unit_price == 9000
    assert item.original_price == 10000
    assert item.campaign_discount_amount == 1000
    assert item.campaign_id == campaign.id
    assert item.line_total == 18000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unit_price_comes_from_product_not_cart(db_session):
    product = await persist(db_session, ProductFactory.create(price=12000))
    delivery = await persist(db_session, DeliveryMethodFactory.create(fee=0))
    cart = {str(product.id): cart_line(product, quantity=1, price=9000)}

    totals = await calculate_order_totals(db_session, cart, delivery.id)

    assert totals.total_amount == 12000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_variant_snapshot_fields(db_session):
    product = await persist(db_session, ProductFactory.create(title="Cap"))
    color = await persist(db_session, ColorFactory.create(name="Green"))
    variant = await persist(
        db_session, VariantFactory.create(product.id, color_id=color.id, price=7000)
    )
    delivery = await persist(db_session, DeliveryMethodFactory.create())
    key = f"{product.id}_{color.id}"
    cart = {key: cart_line(product, quantity=1, color_id=color.id)}

    totals = await calculate_order_totals(db_session, cart, delivery.id)

    [item] = totals.items
    assert item.product_variant_id == variant.id
    assert item.color_id == color.id
    assert item.variant_display_name == "Green"
    assert item.unit_price == 7000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_zero_quantity_and_stale_lines_are_skipped(db_session):
    product = await persist(db_session, ProductFactory.create())
    gone = await persist(db_session, ProductFactory.create(is_active=False))
    delivery = await persist(db_session, DeliveryMethodFactory.create())
    cart = {
        str(product.id): cart_line(product, quantity=0),
        str(gone.id): cart_line(gone, quantity=1),
    }

    totals = await calculate_order_totals(db_session, cart, delivery.id)

    assert totals.items == []
    assert totals.total_amount == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_delivery_method_fails(db_session):
    product = await persist(db_session, ProductFactory.create())

    with pytest.raises(OrderError) as exc_info:
        await calculate_order_totals(
            db_session, {str(product.id): cart_line(product)}, 404
        )

    assert exc_info.value.kind == "delivery_method_not_found"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_first_active_delivery_method_by_sort_order(db_session):
    await persist(
        db_session,
        DeliveryMethodFactory.create(title="Off", is_active=False, sort_order=0),
    )
    await persist(db_session, DeliveryMethodFactory.create(title="Later", sort_order=5))
    first = await persist(
        db_session, DeliveryMethodFactory.create(title="First", sort_order=1)
    )

    assert (await first_active_delivery_method(db_session)).id == first.id
