"""Stripe payment schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime


class StripeConfigResponse(BaseModel):
    publishable_key: Optional[str] = None
    currency: str
    mock_mode: bool


class SessionPaymentRequest(StrictRequestModel):
    session_id: str
    amount: Optional[Decimal] = Field(default=None, gt=0, description="Defaults to the course price")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=500)


class CreditPaymentRequest(StrictRequestModel):
    package_id: str


class ConfirmPaymentRequest(StrictRequestModel):
    payment_method_id: Optional[str] = None


class RefundRequest(StrictRequestModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, description="Defaults to the full amount")
    reason: Optional[str] = Field(default=None, max_length=500)


class PaymentResponse(StandardizedModel):
    id: str
    session_id: Optional[str] = None
    credit_purchase_id: Optional[str] = None
    user_id: str
    stripe_payment_id: str
    amount: Money
    currency: str
    status: str
    refunded: bool = False
    refund_amount: Optional[Money] = None
    refund_reason: Optional[str] = None
    created_at: Optional[UTCDateTime] = None


class PaymentIntentResponse(PaymentResponse):
    """Returned once on creation; the client secret is needed to confirm in the browser."""

    client_secret: Optional[str] = None


class WebhookResult(BaseModel):
    event_type: Optional[str] = None
    handled: bool
    payment_id: Optional[str] = None
    status: Optional[str] = None
    changed: bool = False
