from decimal import Decimal
import threading
import unittest.mock

import pytest

from coachhub.core.enums import CreditPurchaseStatus, CreditTransactionType, UserRole
from coachhub.core.exceptions import (
    ConflictException,
    InsufficientCreditsException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from coachhub.database import Database
from coachhub.models.child import Enrollment
from coachhub.models.credit import CreditBalance, CreditTransaction
from coachhub.repositories.credit_repository import CreditTransactionRepository
from coachhub.services.credit_ledger_service import CreditLedgerService, to_credits

from tests.conftest import make_child, make_course, make_package, make_user


@pytest.fixture
def ledger(db):
    return CreditLedgerService(db)


def _fund(ledger, user_id, amount="100"):
    return ledger.apply_transaction(user_id, CreditTransactionType.PURCHASE, amount, "Top up")


class TestBalances:
    def test_get_or_create_balance_is_idempotent(self, db, ledger, parent):
        first = ledger.get_or_create_balance(parent.id)
        second = ledger.get_or_create_balance(parent.id)

        assert first.id == second.id
        assert first.balance == Decimal("0")
        assert db.query(CreditBalance).filter_by(user_id=parent.id).count() == 1

    def test_unknown_user(self, ledger):
        with pytest.raises(NotFoundException):
            ledger.get_or_create_balance("01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_concurrent_first_reads_create_one_row(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
        database.create_all()
        setup = database.session_factory()
        user = make_user(setup, "racer@example.com", UserRole.PARENT)
        user_id = user.id
        setup.close()

        barrier = threading.Barrier(2)
        balances, errors = [], []

        def read_balance():
            session = database.session_factory()
            try:
                barrier.wait()
                balances.append(CreditLedgerService(session).get_or_create_balance(user_id).id)
            except Exception as exc:
                errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=read_balance) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        check = database.session_factory()
        rows = check.query(CreditBalance).filter_by(user_id=user_id).all()
        check.close()
        database.dispose()

        assert errors == []
        assert len(set(balances)) == 1
        assert len(rows) == 1
        assert rows[0].balance == Decimal("0")


class TestApplyTransaction:
    def test_credit_types_add(self, ledger, parent):
        balance, tx = _fund(ledger, parent.id, "25.5")

        assert balance.balance == Decimal("25.50")
        assert balance.total_earned == Decimal("25.50")
        assert tx.amount == Decimal("25.50")
        assert tx.balance == Decimal("25.50")

    def test_debit_types_subtract_and_store_negative_amount(self, ledger, parent):
        _fund(ledger, parent.id, "50")
        balance, tx = ledger.apply_transaction(parent.id, CreditTransactionType.SPENT, "20", "Course")

        assert balance.balance == Decimal("30.00")
        assert balance.total_spent == Decimal("20.00")
        assert tx.amount == Decimal("-20.00")
        assert tx.balance == Decimal("30.00")

    def test_transfer_is_a_debit(self, ledger, parent):
        _fund(ledger, parent.id, "10")
        balance, tx = ledger.apply_transaction(parent.id, "TRANSFER", "4", "Moved")

        assert balance.balance == Decimal("6.00")
        assert tx.amount == Decimal("-4.00")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_amount_must_be_positive_magnitude(self, ledger, parent, amount):
        with pytest.raises(ValidationException):
            ledger.apply_transaction(parent.id, CreditTransactionType.BONUS, amount, "Bonus")

    def test_description_required(self, ledger, parent):
        with pytest.raises(ValidationException) as exc:
            ledger.apply_transaction(parent.id, CreditTransactionType.BONUS, "5", "   ")
        assert exc.value.code == "DESCRIPTION_REQUIRED"

    def test_unknown_type(self, ledger, parent):
        with pytest.raises(ValidationException) as exc:
            ledger.apply_transaction(parent.id, "GIFT", "5", "Gift")
        assert exc.value.code == "INVALID_TRANSACTION_TYPE"

    def test_overdraft_rejected_and_nothing_written(self, db, ledger, parent):
        _fund(ledger, parent.id, "5")

        with pytest.raises(InsufficientCreditsException):
            ledger.apply_transaction(parent.id, CreditTransactionType.SPENT, "6", "Too much")

        assert ledger.get_balance(parent.id).balance == Decimal("5.00")
        assert db.query(CreditTransaction).filter_by(user_id=parent.id).count() == 1

    def test_failed_entry_insert_leaves_balance_untouched(self, db, ledger, parent):
        _fund(ledger, parent.id, "50")

        with unittest.mock.patch.object(
            CreditTransactionRepository, "create", side_effect=ServiceException("insert failed")
        ):
            with pytest.raises(ServiceException):
                ledger.apply_transaction(parent.id, CreditTransactionType.SPENT, "20", "Lost write")

        db.expire_all()
        balance = db.query(CreditBalance).filter_by(user_id=parent.id).one()
        assert balance.balance == Decimal("50.00")
        assert balance.total_spent == Decimal("0")
        assert db.query(CreditTransaction).filter_by(user_id=parent.id).count() == 1

    def test_admin_override_allows_negative(self, ledger, parent, admin):
        balance, tx = ledger.admin_adjust_balance(
            parent.id, admin.id, CreditTransactionType.EXPIRED, "3", "Expired credits", allow_negative=True
        )

        assert balance.balance == Decimal("-3.00")
        assert tx.reference_type == "ADMIN"
        assert tx.transaction_metadata["adjusted_by"] == admin.id

    def test_replay_matches_stored_balance(self, ledger, parent):
        _fund(ledger, parent.id, "40")
        ledger.apply_transaction(parent.id, CreditTransactionType.SPENT, "15", "Course")
        ledger.apply_transaction(parent.id, CreditTransactionType.REFUND, "5", "Refund")

        assert ledger.replay_balance(parent.id) == ledger.get_balance(parent.id).balance == Decimal("30.00")


class TestEnrollWithCredits:
    def test_enrolls_every_child_with_one_spent_entry(self, db, ledger, parent, course):
        _fund(ledger, parent.id, "50")
        first = make_child(db, parent, "Robin")
        second = make_child(db, parent, "Sam", years=7)

        result = ledger.enroll_with_credits(parent.id, course.id, [first.id, second.id, first.id])

        assert result.total_cost == Decimal("20.00")
        assert result.child_ids == [first.id, second.id]
        assert result.balance.balance == Decimal("30.00")
        assert result.transaction.type == CreditTransactionType.SPENT.value
        assert {e.child_id for e in result.enrollments} == {first.id, second.id}
        assert all(e.credit_transaction_id == result.transaction.id for e in result.enrollments)
        spent = db.query(CreditTransaction).filter_by(user_id=parent.id, type="SPENT").count()
        assert spent == 1

    def test_insufficient_credits_leaves_no_trace(self, db, ledger, parent, course, child):
        _fund(ledger, parent.id, "5")

        with pytest.raises(InsufficientCreditsException):
            ledger.enroll_with_credits(parent.id, course.id, [child.id])

        assert db.query(Enrollment).count() == 0
        assert ledger.get_balance(parent.id).balance == Decimal("5.00")

    def test_foreign_child_rejected(self, db, ledger, parent, other_parent, course):
        _fund(ledger, parent.id, "50")
        stranger = make_child(db, other_parent, "Alex")

        with pytest.raises(NotFoundException) as exc:
            ledger.enroll_with_credits(parent.id, course.id, [stranger.id])
        assert exc.value.details["missing"] == [stranger.id]

    def test_duplicate_enrollment_conflicts(self, ledger, parent, course, child):
        _fund(ledger, parent.id, "50")
        ledger.enroll_with_credits(parent.id, course.id, [child.id])

        with pytest.raises(ConflictException):
            ledger.enroll_with_credits(parent.id, course.id, [child.id])
        assert ledger.get_balance(parent.id).balance == Decimal("40.00")

    def test_inactive_course_rejected(self, db, ledger, parent, coach, child):
        inactive = make_course(db, coach, title="Closed", is_active=False)

        with pytest.raises(ValidationException):
            ledger.enroll_with_credits(parent.id, inactive.id, [child.id])

    def test_free_course_cannot_be_bought_with_credits(self, db, ledger, parent, coach, child):
        free = make_course(db, coach, title="Free", credit_cost=Decimal("0"))

        with pytest.raises(ValidationException) as exc:
            ledger.enroll_with_credits(parent.id, free.id, [child.id])
        assert exc.value.code == "INVALID_CREDIT_COST"


class TestPurchases:
    def test_pending_purchase_grants_nothing_until_completed(self, db, ledger, parent):
        package = make_package(db)

        purchase = ledger.purchase_package(parent.id, package.id)
        assert purchase.status == CreditPurchaseStatus.PENDING.value
        assert ledger.get_balance(parent.id).balance == Decimal("0")

        ledger.complete_purchase(purchase.id, "pi_123")
        ledger.complete_purchase(purchase.id, "pi_123")

        assert purchase.status == CreditPurchaseStatus.COMPLETED.value
        assert ledger.get_balance(parent.id).balance == Decimal("110.00")

    def test_purchase_with_payment_id_completes_immediately(self, db, ledger, parent):
        package = make_package(db, credits="20", bonus="0", price="20")

        purchase = ledger.purchase_package(parent.id, package.id, payment_id="pi_settled")

        assert purchase.status == CreditPurchaseStatus.COMPLETED.value
        assert ledger.get_balance(parent.id).balance == Decimal("20.00")

    def test_inactive_package_rejected(self, db, ledger, parent):
        package = make_package(db)
        ledger.update_package(package.id, {"is_active": False})

        with pytest.raises(ValidationException):
            ledger.purchase_package(parent.id, package.id)


class TestQueries:
    def test_system_stats(self, db, ledger, parent):
        other = make_user(db, "second@example.com", UserRole.PARENT)
        _fund(ledger, parent.id, "10")
        _fund(ledger, other.id, "5")
        ledger.apply_transaction(other.id, CreditTransactionType.SPENT, "2", "Course")

        stats = ledger.system_stats()

        assert stats["users_with_balance"] == 2
        assert stats["total_balance"] == Decimal("13.00")
        assert stats["transactions_by_type"]["PURCHASE"]["count"] == 2
        assert stats["transaction_count"] == 3

    def test_to_credits_normalises_to_cents(self):
        assert to_credits("2.5") == Decimal("2.50")
        assert to_credits(3) == Decimal("3.00")
        with pytest.raises(ValidationException):
            to_credits("lots")
