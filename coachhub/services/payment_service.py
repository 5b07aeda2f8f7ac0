# coachhub/services/payment_service.py
"""
Stripe Service for the CoachHub platform.

Parents pay either for a single coaching session or for a credit package.
Each payment is a Stripe PaymentIntent mirrored by a local Payment row
keyed on the intent id. Stripe's webhook is the source of truth for the
final status: ``payment_intent.succeeded`` marks the payment SUCCEEDED and,
for credit packages, grants the credits; ``payment_intent.payment_failed``
marks it FAILED. Deliveries are idempotent.

Without a secret key the service runs in mock mode: no network calls,
intents get ``mock_pi_<payment id>`` ids and confirm succeeds immediately.
"""

from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
import stripe
import ulid

from ..core.config import settings
from ..core.constants import CENTS_PER_UNIT
from ..core.enums import CreditPurchaseStatus, PaymentStatus
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..models.payment import Payment
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService
from .credit_ledger_service import CreditLedgerService

logger = logging.getLogger(__name__)

OPEN_PAYMENT_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.SUCCEEDED.value)


def to_cents(amount: Decimal) -> int:
    """Convert a currency amount into Stripe's smallest unit."""
    return int((Decimal(str(amount)) * CENTS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentService(BaseService):
    """Service for all Stripe API interactions and payment bookkeeping."""

    def __init__(self, db: Session, credit_service: Optional[CreditLedgerService] = None):
        super().__init__(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.purchase_repository = RepositoryFactory.create_credit_purchase_repository(db)
        self.credit_service = credit_service or CreditLedgerService(db)

        self.stripe_configured = settings.stripe_configured
        if self.stripe_configured:
            stripe.api_key = settings.stripe_secret_key.get_secret_value()
            stripe.max_network_retries = 1
        else:
            self.logger.debug("Stripe secret key not configured - operating in mock mode")

    def get_config(self) -> Dict[str, Any]:
        return {
            "publishable_key": settings.stripe_publishable_key,
            "currency": settings.stripe_currency,
            "mock_mode": not self.stripe_configured,
        }

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def list_payments(
        self, user: User, *, status: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Payment], int]:
        """Admins see every payment, everyone else their own."""
        if status:
            status = PaymentStatus(status).value
        user_id = None if user.is_admin else user.id
        return self.payment_repository.list_payments(user_id=user_id, status=status, page=page, limit=limit)

    def get_payment(self, user: User, payment_id: str) -> Payment:
        payment = self.payment_repository.get_by_id(payment_id)
        if not payment or (payment.user_id != user.id and not user.is_admin):
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        return payment

    # ------------------------------------------------------------------
    # Intent creation
    # ------------------------------------------------------------------

    def _create_intent(
        self, payment_id: str, amount: Decimal, currency: str, description: str, metadata: Dict[str, str]
    ) -> Tuple[str, Optional[str]]:
        if not self.stripe_configured:
            return f"mock_pi_{payment_id}", f"mock_secret_{payment_id}"
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_cents(amount),
                currency=currency.lower(),
                description=description,
                metadata={**metadata, "payment_id": payment_id, "platform": "coachhub"},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise ServiceException("Payment processing failed", code="STRIPE_ERROR")
        return intent.id, intent.client_secret

    @BaseService.measure_operation("create_session_payment")
    def create_session_payment(
        self,
        user: User,
        session_id: str,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Payment:
        """
        Create a PaymentIntent for one session booked by ``user``.

        ``amount`` defaults to the course price.

        Raises:
            NotFoundException: Session missing or not booked by the user
            ValidationException: Session already paid or amount not positive
        """
        session = self.session_repository.get_by_id(session_id)
        if not session or session.student_id != user.id:
            raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")

        existing, _ = self.payment_repository.list_payments(user_id=user.id, page=1, limit=100)
        if any(p.session_id == session.id and p.status in OPEN_PAYMENT_STATUSES for p in existing):
            raise ValidationException("Payment already exists for this session", code="PAYMENT_EXISTS")

        amount = Decimal(str(amount)) if amount is not None else Decimal(session.course.price or 0)
        if amount <= 0:
            raise ValidationException("Payment amount must be positive", code="INVALID_AMOUNT")
        currency = (currency or session.course.currency or settings.stripe_currency).lower()
        description = description or f"Payment for {session.course.title}"

        payment_id = str(ulid.ULID())
        intent_id, client_secret = self._create_intent(
            payment_id, amount, currency, description, {"session_id": session.id}
        )
        with self.transaction():
            payment = self.payment_repository.create(
                id=payment_id,
                session_id=session.id,
                user_id=user.id,
                stripe_payment_id=intent_id,
                client_secret=client_secret,
                amount=amount,
                currency=currency,
                status=PaymentStatus.PENDING.value,
                payment_metadata={"description": description},
            )
        self.logger.info(f"Payment created: {payment.id} for session {session.id} by user {user.id}")
        return payment

    @BaseService.measure_operation("create_credit_payment")
    def create_credit_payment(self, user: User, package_id: str) -> Payment:
        """Create a pending CreditPurchase and the PaymentIntent that pays for it."""
        purchase = self.credit_service.purchase_package(user.id, package_id)

        payment_id = str(ulid.ULID())
        try:
            intent_id, client_secret = self._create_intent(
                payment_id,
                purchase.amount,
                purchase.currency,
                f"Credit package: {purchase.package_name}",
                {"credit_purchase_id": purchase.id},
            )
        except ServiceException:
            self.credit_service.fail_purchase(purchase.id)
            raise

        with self.transaction():
            payment = self.payment_repository.create(
                id=payment_id,
                credit_purchase_id=purchase.id,
                user_id=user.id,
                stripe_payment_id=intent_id,
                client_secret=client_secret,
                amount=purchase.amount,
                currency=purchase.currency,
                status=PaymentStatus.PENDING.value,
                payment_metadata={"package_id": package_id, "credits": str(purchase.credits)},
            )
            purchase.payment_id = intent_id
        self.logger.info(f"Credit payment created: {payment.id} for purchase {purchase.id}")
        return payment

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def _mark_succeeded(self, payment: Payment) -> None:
        """Must run inside a transaction. No-op for an already settled payment."""
        if payment.status != PaymentStatus.PENDING.value:
            return
        payment.status = PaymentStatus.SUCCEEDED.value
        if payment.credit_purchase_id:
            self.credit_service.complete_purchase(
                payment.credit_purchase_id, payment.stripe_payment_id, use_transaction=False
            )

    def _mark_failed(self, payment: Payment, status: PaymentStatus) -> None:
        if payment.status != PaymentStatus.PENDING.value:
            return
        payment.status = status.value
        if payment.credit_purchase_id:
            purchase = self.purchase_repository.get_for_update(payment.credit_purchase_id)
            if purchase and purchase.status == CreditPurchaseStatus.PENDING.value:
                purchase.status = (
                    CreditPurchaseStatus.CANCELLED.value
                    if status == PaymentStatus.CANCELLED
                    else CreditPurchaseStatus.FAILED.value
                )

    def _require_own_pending(self, user: User, payment_id: str) -> Payment:
        payment = self.payment_repository.get_by_id(payment_id)
        if not payment or payment.user_id != user.id:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if payment.status != PaymentStatus.PENDING.value:
            raise ValidationException(
                f"Payment is already {payment.status.lower()}",
                code="INVALID_PAYMENT_STATUS",
                details={"status": payment.status},
            )
        return payment

    @BaseService.measure_operation("confirm_payment")
    def confirm_payment(self, user: User, payment_id: str, payment_method_id: Optional[str] = None) -> Payment:
        payment = self._require_own_pending(user, payment_id)

        intent_status = "succeeded"
        if self.stripe_configured:
            try:
                params: Dict[str, Any] = {"return_url": f"{settings.frontend_url}/payment/complete"}
                if payment_method_id:
                    params["payment_method"] = payment_method_id
                intent = stripe.PaymentIntent.confirm(payment.stripe_payment_id, **params)
                intent_status = intent.status
            except stripe.StripeError as e:
                self.logger.error(f"Stripe error confirming payment {payment.id}: {str(e)}")
                raise ValidationException("Payment confirmation failed", code="PAYMENT_CONFIRMATION_FAILED")

        if intent_status in ("processing", "requires_action"):
            return payment
        if intent_status != "succeeded":
            raise ValidationException(
                "Payment confirmation failed",
                code="PAYMENT_CONFIRMATION_FAILED",
                details={"intent_status": intent_status},
            )

        with self.transaction():
            locked = self.payment_repository.get_by_stripe_id(payment.stripe_payment_id, for_update=True)
            self._mark_succeeded(locked)
        self.logger.info(f"Payment confirmed: {payment.id}")
        return locked

    @BaseService.measure_operation("refund_payment")
    def refund_payment(
        self,
        user: User,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Payment:
        """
        Refund a succeeded payment in full or in part.

        Only the payer or an administrator may refund. Partial refunds
        accumulate in ``refund_amount`` and the payment stays SUCCEEDED
        until the whole amount is returned; it then becomes REFUNDED, along
        with its credit purchase. Credits already granted stay on the
        balance for an administrator to adjust.
        """
        payment = self.payment_repository.get_by_id(payment_id)
        if not payment:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if payment.user_id != user.id and not user.is_admin:
            raise ForbiddenException("Access denied", code="FORBIDDEN")
        if payment.status != PaymentStatus.SUCCEEDED.value:
            raise ValidationException(
                "Only succeeded payments can be refunded",
                code="INVALID_PAYMENT_STATUS",
                details={"status": payment.status},
            )

        already_refunded = Decimal(payment.refund_amount or 0)
        remaining = Decimal(payment.amount) - already_refunded
        refund_amount = Decimal(str(amount)) if amount is not None else remaining
        if refund_amount <= 0 or refund_amount > remaining:
            raise ValidationException(
                "Refund amount must be positive and not exceed the amount still refundable",
                code="INVALID_REFUND_AMOUNT",
                details={"amount": str(refund_amount), "refundable": str(remaining)},
            )

        refund_ids = list((payment.payment_metadata or {}).get("refund_ids", []))
        refund_id = f"mock_re_{payment.id}_{len(refund_ids) + 1}"
        if self.stripe_configured:
            try:
                refund = stripe.Refund.create(
                    payment_intent=payment.stripe_payment_id,
                    amount=to_cents(refund_amount),
                    reason="requested_by_customer",
                )
                refund_id = refund.id
            except stripe.StripeError as e:
                self.logger.error(f"Stripe error refunding payment {payment.id}: {str(e)}")
                raise ValidationException("Refund processing failed", code="REFUND_FAILED")

        total_refunded = already_refunded + refund_amount
        fully_refunded = total_refunded == Decimal(payment.amount)
        with self.transaction():
            payment.refunded = True
            payment.refund_amount = total_refunded
            payment.refund_reason = reason or payment.refund_reason
            payment.payment_metadata = {
                **(payment.payment_metadata or {}),
                "refund_ids": refund_ids + [refund_id],
            }
            if fully_refunded:
                payment.status = PaymentStatus.REFUNDED.value
                if payment.credit_purchase is not None:
                    payment.credit_purchase.status = CreditPurchaseStatus.REFUNDED.value
        self.log_operation(
            "payment_refunded",
            payment_id=payment.id,
            amount=str(refund_amount),
            total_refunded=str(total_refunded),
            by=user.id,
        )
        return payment

    @BaseService.measure_operation("cancel_payment")
    def cancel_payment(self, user: User, payment_id: str) -> Payment:
        payment = self._require_own_pending(user, payment_id)
        if self.stripe_configured:
            try:
                stripe.PaymentIntent.cancel(payment.stripe_payment_id)
            except stripe.StripeError as e:
                self.logger.error(f"Stripe error cancelling payment {payment.id}: {str(e)}")
                raise ValidationException("Payment cancellation failed", code="PAYMENT_CANCELLATION_FAILED")

        with self.transaction():
            self._mark_failed(payment, PaymentStatus.CANCELLED)
        self.logger.info(f"Payment cancelled: {payment.id}")
        return payment

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the Stripe signature and parse the event.

        Raises:
            ServiceException: Webhook secret not configured
            ValidationException: Bad signature or malformed payload
        """
        webhook_secret = settings.stripe_webhook_secret.get_secret_value()
        if not webhook_secret:
            raise ServiceException("Webhook secret not configured", code="WEBHOOK_NOT_CONFIGURED")
        if not signature:
            raise ValidationException("Missing Stripe signature", code="INVALID_SIGNATURE")
        try:
            return stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except stripe.SignatureVerificationError:
            self.logger.warning("Invalid webhook signature")
            raise ValidationException("Invalid webhook signature", code="INVALID_SIGNATURE")
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise ValidationException("Invalid webhook payload", code="INVALID_PAYLOAD")

    @BaseService.measure_operation("handle_webhook")
    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        event = self.construct_event(payload, signature)
        return self.handle_webhook_event(event)

    def handle_webhook_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Apply an already verified event. Replayed deliveries change nothing."""
        event_type = event.get("type", "")
        self.logger.info(f"Processing webhook event: {event_type}")

        transitions = {
            "payment_intent.succeeded": None,
            "payment_intent.payment_failed": PaymentStatus.FAILED,
            "payment_intent.canceled": PaymentStatus.CANCELLED,
        }
        if event_type not in transitions:
            self.logger.info(f"Unhandled webhook event type: {event_type}")
            return {"event_type": event_type, "handled": False}

        intent_id = event["data"]["object"]["id"]
        with self.transaction():
            payment = self.payment_repository.get_by_stripe_id(intent_id, for_update=True)
            if payment is None:
                self.logger.warning(f"Payment record not found for webhook event {intent_id}")
                return {"event_type": event_type, "handled": False}
            previous = payment.status
            target = transitions[event_type]
            if target is None:
                self._mark_succeeded(payment)
            else:
                self._mark_failed(payment, target)

        self.log_operation(
            "webhook_applied", event_type=event_type, payment_id=payment.id, previous=previous, status=payment.status
        )
        return {
            "event_type": event_type,
            "handled": True,
            "payment_id": payment.id,
            "status": payment.status,
            "changed": previous != payment.status,
        }
