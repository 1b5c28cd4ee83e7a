"""initial_store_and_payments_schema

Revision ID: 3f9c1d2e7a41
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1d2e7a41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - Store catalog, orders and payment ledger."""

    # Catalog
    op.create_table(
        'store_products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('has_variants', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('has_colors', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('has_sizes', sa.Boolean(), server_default='false', nullable=True),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='product_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_table(
        'store_colors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('hex_code', sa.String(length=7), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'store_sizes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'store_product_variants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('color_id', sa.Integer(), nullable=True),
        sa.Column('size_id', sa.Integer(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('stock >= 0', name='variant_stock_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['color_id'], ['store_colors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['size_id'], ['store_sizes.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'color_id', 'size_id', name='unique_product_color_size')
    )

    # Campaigns
    op.create_table(
        'store_campaigns',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('discount_type', sa.Enum('percentage', 'fixed', name='store_campaign_discount_type_enum'), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('priority', sa.Integer(), server_default='0', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_store_campaigns_active_window', 'store_campaigns', ['is_active', 'starts_at', 'ends_at'], unique=False)
    op.create_table(
        'store_campaign_products',
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['campaign_id'], ['store_campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('campaign_id', 'product_id')
    )

    # Discount codes
    op.create_table(
        'store_discount_codes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('discount_type', sa.Enum('percentage', 'fixed', name='store_discount_code_type_enum'), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('min_order_amount', sa.Integer(), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_store_discount_codes_code'), 'store_discount_codes', ['code'], unique=True)

    # Delivery, carts, orders
    op.create_table(
        'store_delivery_methods',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('fee', sa.Integer(), server_default='0', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'store_carts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('status', sa.Enum('active', 'converted', 'abandoned', name='store_cart_status_enum'), server_default='active', nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_store_carts_session_id'), 'store_carts', ['session_id'], unique=True)
    op.create_index(op.f('ix_store_carts_user_id'), 'store_carts', ['user_id'], unique=False)
    op.create_table(
        'store_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=50), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=False),
        sa.Column('delivery_method_id', sa.Integer(), nullable=True),
        sa.Column('delivery_fee', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('original_amount', sa.Integer(), nullable=False),
        sa.Column('campaign_discount_amount', sa.Integer(), server_default='0', nullable=True),
        sa.Column('discount_code', sa.String(length=50), nullable=True),
        sa.Column('discount_amount', sa.Integer(), server_default='0', nullable=True),
        sa.Column('final_amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'confirmed', 'shipped', 'cancelled', name='store_order_status_enum'), server_default='pending', nullable=True),
        sa.Column('receipt_path', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('final_amount >= 0', name='order_final_amount_non_negative'),
        sa.ForeignKeyConstraint(['delivery_method_id'], ['store_delivery_methods.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_store_orders_user_id'), 'store_orders', ['user_id'], unique=False)
    op.create_index('ix_store_orders_user_id_created_at', 'store_orders', ['user_id', 'created_at'], unique=False)
    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_variant_id', sa.Integer(), nullable=True),
        sa.Column('color_id', sa.Integer(), nullable=True),
        sa.Column('size_id', sa.Integer(), nullable=True),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('product_title', sa.String(length=255), nullable=False),
        sa.Column('variant_display_name', sa.String(length=255), nullable=True),
        sa.Column('original_price', sa.Integer(), nullable=False),
        sa.Column('campaign_discount_amount', sa.Integer(), server_default='0', nullable=True),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_total', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='positive_quantity'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['product_variant_id'], ['store_product_variants.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['campaign_id'], ['store_campaigns.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'store_campaign_sales',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('order_item_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_variant_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False),
        sa.Column('sale_amount', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['store_campaigns.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['order_item_id'], ['store_order_items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'store_discount_code_usages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('discount_code_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False),
        sa.Column('order_amount', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['discount_code_id'], ['store_discount_codes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('discount_code_id', 'user_id', name='uq_store_discount_code_usages_code_user')
    )

    # Payments
    op.create_table(
        'payment_gateways',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.Enum('paystack', 'manual_transfer', name='payment_gateway_type_enum'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=True),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'payment_invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('payment_gateway_id', sa.Integer(), nullable=True),
        sa.Column('invoice_number', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('original_amount', sa.Integer(), nullable=False),
        sa.Column('campaign_discount_amount', sa.Integer(), server_default='0', nullable=True),
        sa.Column('discount_code_amount', sa.Integer(), server_default='0', nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('status', sa.Enum('unpaid', 'paid', 'cancelled', 'refunded', name='payment_invoice_status_enum'), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['payment_gateway_id'], ['payment_gateways.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id')
    )
    op.create_index(op.f('ix_payment_invoices_invoice_number'), 'payment_invoices', ['invoice_number'], unique=True)
    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('gateway_id', sa.Integer(), nullable=True),
        sa.Column('method', sa.String(length=32), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'verified', 'rejected', 'failed', name='payment_transaction_status_enum'), nullable=False),
        sa.Column('gateway_transaction_id', sa.String(length=128), nullable=True),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('callback_data', sa.JSON(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['invoice_id'], ['payment_invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['gateway_id'], ['payment_gateways.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payment_transactions_invoice_id'), 'payment_transactions', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_payment_transactions_gateway_transaction_id'), 'payment_transactions', ['gateway_transaction_id'], unique=False)
    op.create_table(
        'payment_pending_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payment_pending_orders_invoice_id'), 'payment_pending_orders', ['invoice_id'], unique=True)
    op.create_index(op.f('ix_payment_pending_orders_expires_at'), 'payment_pending_orders', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('payment_pending_orders')
    op.drop_table('payment_transactions')
    op.drop_table('payment_invoices')
    op.drop_table('payment_gateways')
    op.drop_table('store_discount_code_usages')
    op.drop_table('store_campaign_sales')
    op.drop_table('store_order_items')
    op.drop_table('store_orders')
    op.drop_table('store_carts')
    op.drop_table('store_delivery_methods')
    op.drop_table('store_discount_codes')
    op.drop_table('store_campaign_products')
    op.drop_table('store_campaigns')
    op.drop_table('store_product_variants')
    op.drop_table('store_sizes')
    op.drop_table('store_colors')
    op.drop_table('store_products')
    for enum_name in (
        'payment_transaction_status_enum',
        'payment_invoice_status_enum',
        'payment_gateway_type_enum',
        'store_order_status_enum',
        'store_cart_status_enum',
        'store_discount_code_type_enum',
        'store_campaign_discount_type_enum',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
