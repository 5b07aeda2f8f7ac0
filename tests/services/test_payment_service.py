from decimal import Decimal
import unittest.mock

from pydantic import SecretStr
import pytest
import stripe

from coachhub.core.config import settings
from coachhub.core.enums import CreditPurchaseStatus, PaymentStatus
from coachhub.core.exceptions import NotFoundException, ServiceException, ValidationException
from coachhub.services.credit_ledger_service import CreditLedgerService
from coachhub.services.payment_service import StripePaymentService

from tests.conftest import future, make_package, make_session


@pytest.fixture
def service(db):
    return StripePaymentService(db)


def _event(event_type, intent_id):
    return {"type": event_type, "data": {"object": {"id": intent_id}}}


class TestMockMode:
    def test_session_payment_uses_course_price(self, db, service, parent, course):
        session = make_session(db, course, parent, future())

        payment = service.create_session_payment(parent, session.id)

        assert payment.amount == Decimal("50.00")
        assert payment.stripe_payment_id == f"mock_pi_{payment.id}"
        assert payment.client_secret == f"mock_secret_{payment.id}"
        assert payment.status == PaymentStatus.PENDING.value

    def test_second_open_payment_for_session_rejected(self, db, service, parent, course):
        session = make_session(db, course, parent, future())
        service.create_session_payment(parent, session.id)

        with pytest.raises(ValidationException) as exc:
            service.create_session_payment(parent, session.id)
        assert exc.value.code == "PAYMENT_EXISTS"

    def test_only_the_student_can_pay(self, db, service, parent, other_parent, course):
        session = make_session(db, course, parent, future())
        with pytest.raises(NotFoundException):
            service.create_session_payment(other_parent, session.id)

    def test_confirm_succeeds_immediately(self, db, service, parent, course):
        payment = service.create_session_payment(parent, make_session(db, course, parent, future()).id)

        confirmed = service.confirm_payment(parent, payment.id)

        assert confirmed.status == PaymentStatus.SUCCEEDED.value

    def test_refund_requires_succeeded_payment(self, db, service, parent, course):
        payment = service.create_session_payment(parent, make_session(db, course, parent, future()).id)

        with pytest.raises(ValidationException):
            service.refund_payment(parent, payment.id)

        service.confirm_payment(parent, payment.id)
        refunded = service.refund_payment(parent, payment.id, Decimal("20"), "Changed plans")

        assert refunded.status == PaymentStatus.SUCCEEDED.value
        assert refunded.refund_amount == Decimal("20.00")

    def test_partial_refunds_accumulate_until_fully_refunded(self, db, service, parent):
        package = make_package(db)
        payment = service.create_credit_payment(parent, package.id)
        service.confirm_payment(parent, payment.id)

        service.refund_payment(parent, payment.id, Decimal("30"), "First part")
        assert payment.credit_purchase.status == CreditPurchaseStatus.COMPLETED.value

        with pytest.raises(ValidationException) as exc:
            service.refund_payment(parent, payment.id, Decimal("61"))
        assert exc.value.code == "INVALID_REFUND_AMOUNT"

        refunded = service.refund_payment(parent, payment.id)

        assert refunded.status == PaymentStatus.REFUNDED.value
        assert refunded.refund_amount == Decimal("90.00")
        assert len(refunded.payment_metadata["refund_ids"]) == 2
        assert payment.credit_purchase.status == CreditPurchaseStatus.REFUNDED.value
        with pytest.raises(ValidationException):
            service.refund_payment(parent, payment.id, Decimal("1"))

    def test_cancel_marks_credit_purchase_cancelled(self, db, service, parent):
        package = make_package(db)
        payment = service.create_credit_payment(parent, package.id)

        service.cancel_payment(parent, payment.id)

        assert payment.status == PaymentStatus.CANCELLED.value
        assert payment.credit_purchase.status == CreditPurchaseStatus.CANCELLED.value


class TestWebhookEvents:
    def test_succeeded_grants_credits_once(self, db, service, parent):
        package = make_package(db)
        payment = service.create_credit_payment(parent, package.id)
        event = _event("payment_intent.succeeded", payment.stripe_payment_id)

        first = service.handle_webhook_event(event)
        second = service.handle_webhook_event(event)

        assert first["changed"] is True
        assert first["status"] == PaymentStatus.SUCCEEDED.value
        assert second["changed"] is False
        balance = CreditLedgerService(db).get_balance(parent.id)
        assert balance.balance == Decimal("110.00")

    def test_failed_after_success_is_ignored(self, db, service, parent, course):
        payment = service.create_session_payment(parent, make_session(db, course, parent, future()).id)
        service.handle_webhook_event(_event("payment_intent.succeeded", payment.stripe_payment_id))

        result = service.handle_webhook_event(_event("payment_intent.payment_failed", payment.stripe_payment_id))

        assert result["changed"] is False
        assert result["status"] == PaymentStatus.SUCCEEDED.value

    def test_failed_marks_purchase_failed(self, db, service, parent):
        payment = service.create_credit_payment(parent, make_package(db).id)

        service.handle_webhook_event(_event("payment_intent.payment_failed", payment.stripe_payment_id))

        assert payment.status == PaymentStatus.FAILED.value
        assert payment.credit_purchase.status == CreditPurchaseStatus.FAILED.value

    def test_unknown_intent_and_type_are_not_handled(self, service):
        assert service.handle_webhook_event(_event("payment_intent.succeeded", "pi_unknown"))["handled"] is False
        assert service.handle_webhook_event(_event("charge.refunded", "ch_1"))["handled"] is False


class TestSignatureVerification:
    def test_secret_required(self, service):
        with pytest.raises(ServiceException) as exc:
            service.handle_webhook(b"{}", "t=1,v1=abc")
        assert exc.value.code == "WEBHOOK_NOT_CONFIGURED"

    def test_bad_signature_rejected(self, service, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
        error = stripe.SignatureVerificationError("bad signature", "t=1,v1=abc")
        with unittest.mock.patch("stripe.Webhook.construct_event", side_effect=error):
            with pytest.raises(ValidationException) as exc:
                service.handle_webhook(b"{}", "t=1,v1=abc")
        assert exc.value.code == "INVALID_SIGNATURE"

    def test_missing_signature_rejected(self, service, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
        with pytest.raises(ValidationException):
            service.handle_webhook(b"{}", None)
