# coachhub/routes/v1/payments.py
"""
Payment routes - API v1

Stripe payments for sessions and credit packages under /api/v1/payments.
Without a Stripe secret key the service runs in mock mode: intents get
``mock_pi_*`` ids and confirmation succeeds immediately.

Endpoints:
    GET  /config                 → Publishable key, currency, mock flag
    GET  /                       → Own payments (all payments for admins)
    POST /                       → PaymentIntent for a booked session
    POST /credits                → PaymentIntent for a credit package
    POST /webhook/stripe         → Handle Stripe webhooks (signature verified)
    GET  /{payment_id}           → One payment
    POST /{payment_id}/confirm   → Confirm a pending payment
    POST /{payment_id}/refund    → Full or partial refund (payer or admin)
    POST /{payment_id}/cancel    → Cancel a pending payment
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_payment_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import PaymentStatus
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.base_responses import ApiResponse, PaginatedData
from ...schemas.payment import (
    ConfirmPaymentRequest,
    CreditPaymentRequest,
    PaymentIntentResponse,
    PaymentResponse,
    RefundRequest,
    SessionPaymentRequest,
    StripeConfigResponse,
    WebhookResult,
)
from ...services.payment_service import StripePaymentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


@router.get("/config", response_model=ApiResponse[StripeConfigResponse])
async def get_stripe_config(
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[StripeConfigResponse]:
    return ApiResponse[StripeConfigResponse].ok(
        StripeConfigResponse(**payment_service.get_config()), "Payment configuration retrieved"
    )


@router.get("", response_model=ApiResponse[PaginatedData[PaymentResponse]])
async def list_payments(
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaginatedData[PaymentResponse]]:
    try:
        payments, total = await asyncio.to_thread(
            lambda: payment_service.list_payments(
                current_user,
                status=status_filter.value if status_filter else None,
                page=page,
                limit=limit,
            )
        )
    except DomainException as e:
        raise e.to_http_exception()
    items = [PaymentResponse.model_validate(payment) for payment in payments]
    return ApiResponse[PaginatedData[PaymentResponse]].ok(
        PaginatedData[PaymentResponse].build(items, page, limit, total), "Payments retrieved"
    )


@router.post("", response_model=ApiResponse[PaymentIntentResponse], status_code=status.HTTP_201_CREATED)
async def create_session_payment(
    payload: SessionPaymentRequest,
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentIntentResponse]:
    """Amount defaults to the course price and is charged in cents."""
    try:
        payment = await asyncio.to_thread(
            payment_service.create_session_payment,
            current_user,
            payload.session_id,
            payload.amount,
            payload.currency,
            payload.description,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentIntentResponse].ok(
        PaymentIntentResponse.model_validate(payment), "Payment intent created", status.HTTP_201_CREATED
    )


@router.post("/credits", response_model=ApiResponse[PaymentIntentResponse], status_code=status.HTTP_201_CREATED)
async def create_credit_payment(
    payload: CreditPaymentRequest,
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentIntentResponse]:
    """Credits are granted once the payment succeeds (confirm or webhook)."""
    try:
        payment = await asyncio.to_thread(payment_service.create_credit_payment, current_user, payload.package_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentIntentResponse].ok(
        PaymentIntentResponse.model_validate(payment), "Credit payment intent created", status.HTTP_201_CREATED
    )


@router.post("/webhook/stripe", response_model=ApiResponse[WebhookResult])
async def handle_stripe_webhook(
    request: Request,
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[WebhookResult]:
    """
    Handle Stripe webhook events.

    No authentication: the ``Stripe-Signature`` header is verified against
    the configured webhook secret. Replayed events are acknowledged without
    changing anything.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        result = await asyncio.to_thread(payment_service.handle_webhook, payload, signature)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[WebhookResult].ok(WebhookResult(**result), "Webhook processed")


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
async def get_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentResponse]:
    try:
        payment = await asyncio.to_thread(payment_service.get_payment, current_user, payment_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentResponse].ok(PaymentResponse.model_validate(payment), "Payment retrieved")


@router.post("/{payment_id}/confirm", response_model=ApiResponse[PaymentResponse])
async def confirm_payment(
    payment_id: str,
    payload: Optional[ConfirmPaymentRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentResponse]:
    payment_method_id = payload.payment_method_id if payload else None
    try:
        payment = await asyncio.to_thread(
            payment_service.confirm_payment, current_user, payment_id, payment_method_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentResponse].ok(PaymentResponse.model_validate(payment), "Payment confirmed")


@router.post("/{payment_id}/refund", response_model=ApiResponse[PaymentResponse])
async def refund_payment(
    payment_id: str,
    payload: Optional[RefundRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentResponse]:
    """Omit ``amount`` for a full refund."""
    amount = payload.amount if payload else None
    reason = payload.reason if payload else None
    try:
        payment = await asyncio.to_thread(payment_service.refund_payment, current_user, payment_id, amount, reason)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentResponse].ok(PaymentResponse.model_validate(payment), "Payment refunded")


@router.post("/{payment_id}/cancel", response_model=ApiResponse[PaymentResponse])
async def cancel_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    payment_service: StripePaymentService = Depends(get_payment_service),
) -> ApiResponse[PaymentResponse]:
    try:
        payment = await asyncio.to_thread(payment_service.cancel_payment, current_user, payment_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaymentResponse].ok(PaymentResponse.model_validate(payment), "Payment cancelled")
