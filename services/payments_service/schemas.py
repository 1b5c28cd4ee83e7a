"""Pydantic schemas for payments service."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.payments_service.models import (
    GatewayType,
    InvoiceStatus,
    TransactionStatus,
)
from services.store_service.schemas import CustomerDetails

# ============================================================================
# GATEWAY SCHEMAS
# ============================================================================


class PaymentGatewayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: GatewayType
    sort_order: int


# ============================================================================
# CHECKOUT / INVOICE SCHEMAS
# ============================================================================


class CheckoutRequest(CustomerDetails):
    """Start an online-paid checkout from the current session cart."""

    payment_gateway_id: Optional[int] = None


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int] = None
    payment_gateway_id: Optional[int] = None
    invoice_number: str
    amount: int
    original_amount: int
    campaign_discount_amount: int
    discount_code_amount: int
    currency: str
    status: InvoiceStatus
    paid_at: Optional[datetime] = None
    created_at: datetime


class CheckoutResponse(BaseModel):
    invoice: InvoiceResponse
    total_amount: int
    delivery_fee: int
    discount_amount: int
    final_amount: int


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class PaymentInitiateRequest(BaseModel):
    invoice_id: int
    gateway_id: int
    email: Optional[str] = None
    callback_url: Optional[str] = None


class PaymentInitiateResponse(BaseModel):
    transaction_id: int
    redirect_url: Optional[str] = None
    form_data: dict = Field(default_factory=dict)
    message: str = ""


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    gateway_id: Optional[int] = None
    method: Optional[str] = None
    amount: int
    status: TransactionStatus
    gateway_transaction_id: Optional[str] = None
    reference: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class VerificationResponse(BaseModel):
    success: bool
    verified: bool
    message: str
    invoice_id: Optional[int] = None
    order_id: Optional[int] = None


class ManualReviewRequest(BaseModel):
    approved: bool
    reason: Optional[str] = Field(None, max_length=500)
