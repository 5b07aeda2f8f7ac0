# coachhub/services/credit_ledger_service.py
"""
Credit ledger for the CoachHub platform.

Every change to a user's credit balance goes through ``apply_transaction``:
callers pass an unsigned magnitude and a transaction type, and the ledger
decides the sign. Credit types (PURCHASE, EARNED, BONUS, REFUND) add,
debit types (SPENT, EXPIRED, TRANSFER) subtract. A balance never goes
below zero unless an administrator explicitly allows it.

Each write locks the balance row, updates the running totals and appends
one signed CreditTransaction carrying the post-transaction balance, all
inside one database transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..core.enums import (
    CreditPurchaseStatus,
    CreditTransactionType,
    EnrollmentStatus,
    ReferenceType,
)
from ..core.exceptions import (
    ConflictException,
    InsufficientCreditsException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..models.child import Enrollment
from ..models.credit import CreditBalance, CreditPackage, CreditPurchase, CreditTransaction
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")

AmountLike = Union[Decimal, int, float, str]


def to_credits(value: AmountLike) -> Decimal:
    """Parse an amount into a two-decimal Decimal."""
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationException(
            f"Invalid credit amount: {value!r}", code="INVALID_AMOUNT", details={"amount": str(value)}
        )


@dataclass
class EnrollmentResult:
    enrollments: List[Enrollment]
    transaction: CreditTransaction
    balance: CreditBalance
    total_cost: Decimal
    child_ids: List[str] = field(default_factory=list)


class CreditLedgerService(BaseService):
    """Balances, ledger entries, packages and purchases."""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.balance_repository = RepositoryFactory.create_credit_balance_repository(db)
        self.transaction_repository = RepositoryFactory.create_credit_transaction_repository(db)
        self.package_repository = RepositoryFactory.create_credit_package_repository(db)
        self.purchase_repository = RepositoryFactory.create_credit_purchase_repository(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.child_repository = RepositoryFactory.create_child_repository(db)
        self.enrollment_repository = RepositoryFactory.create_enrollment_repository(db)
        self.admin_activity_repository = RepositoryFactory.create_admin_activity_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    # Balances

    def _require_user(self, user_id: str):
        user = self.user_repository.get_by_id(user_id, load_relationships=False)
        if not user:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")
        return user

    def _ensure_balance_row(self, user_id: str) -> CreditBalance:
        balance = self.balance_repository.get_by_user_id(user_id)
        if balance is not None:
            return balance
        self.balance_repository.insert_if_absent(user_id)
        balance = self.balance_repository.get_by_user_id(user_id)
        if balance is None:
            raise ServiceException(f"Credit balance for user {user_id} could not be created")
        return balance

    @BaseService.measure_operation("get_or_create_balance")
    def get_or_create_balance(self, user_id: str) -> CreditBalance:
        """
        Return the user's balance, creating it at zero on first use.

        Safe to call concurrently: the insert is ON CONFLICT DO NOTHING,
        so every caller ends up reading the same single row.
        """
        self._require_user(user_id)
        with self.transaction():
            balance = self._ensure_balance_row(user_id)
        return balance

    def get_balance(self, user_id: str) -> CreditBalance:
        return self.get_or_create_balance(user_id)

    # Ledger writes

    @BaseService.measure_operation("apply_transaction")
    def apply_transaction(
        self,
        user_id: str,
        transaction_type: Union[CreditTransactionType, str],
        amount: AmountLike,
        description: str,
        reference_id: Optional[str] = None,
        reference_type: Optional[Union[ReferenceType, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        allow_negative: bool = False,
        use_transaction: bool = True,
    ) -> Tuple[CreditBalance, CreditTransaction]:
        """
        Apply one signed ledger entry to a user's balance.

        Args:
            user_id: Owner of the balance
            transaction_type: PURCHASE, EARNED, SPENT, REFUND, BONUS, EXPIRED or TRANSFER
            amount: Unsigned, non-zero magnitude
            description: Human readable reason, required
            reference_id: Optional id of the course, purchase or session involved
            reference_type: Kind of entity ``reference_id`` points to
            metadata: Free-form JSON stored with the entry
            allow_negative: Administrative override of the non-negative rule
            use_transaction: False when the caller already owns the transaction

        Returns:
            (updated balance, created transaction)

        Raises:
            ValidationException: Bad type, amount or description
            InsufficientCreditsException: A debit would go below zero
        """
        tx_type = self._parse_type(transaction_type)
        magnitude = self._parse_magnitude(amount)
        if not description or not description.strip():
            raise ValidationException("Transaction description is required", code="DESCRIPTION_REQUIRED")
        ref_type = reference_type.value if isinstance(reference_type, ReferenceType) else reference_type

        def _apply() -> Tuple[CreditBalance, CreditTransaction]:
            return self._apply_locked(
                user_id,
                tx_type,
                magnitude,
                description.strip(),
                reference_id,
                ref_type,
                metadata,
                allow_negative,
            )

        self._require_user(user_id)
        if use_transaction:
            with self.transaction():
                result = _apply()
        else:
            result = _apply()

        prometheus_metrics.inc_credit_transaction(tx_type.value)
        return result

    def _apply_locked(
        self,
        user_id: str,
        tx_type: CreditTransactionType,
        magnitude: Decimal,
        description: str,
        reference_id: Optional[str],
        reference_type: Optional[str],
        metadata: Optional[Dict[str, Any]],
        allow_negative: bool,
    ) -> Tuple[CreditBalance, CreditTransaction]:
        self._ensure_balance_row(user_id)
        balance = self.balance_repository.get_for_update(user_id)
        if balance is None:
            raise ServiceException(f"Credit balance for user {user_id} disappeared")

        current = Decimal(balance.balance or 0)
        signed_amount = magnitude if tx_type.is_credit else -magnitude
        new_balance = (current + signed_amount).quantize(CENTS)

        if new_balance < ZERO and not allow_negative:
            self.logger.warning(
                f"Rejected {tx_type.value} of {magnitude} for user {user_id}: balance {current}"
            )
            raise InsufficientCreditsException(required=magnitude, available=current)

        balance.balance = new_balance
        if tx_type.is_credit:
            balance.total_earned = Decimal(balance.total_earned or 0) + magnitude
        if tx_type == CreditTransactionType.SPENT:
            balance.total_spent = Decimal(balance.total_spent or 0) + magnitude
        balance.last_updated = datetime.now(timezone.utc)

        transaction = self.transaction_repository.create(
            user_id=user_id,
            type=tx_type.value,
            amount=signed_amount,
            balance=new_balance,
            description=description,
            reference_id=reference_id,
            reference_type=reference_type,
            transaction_metadata=metadata or {},
        )

        self.logger.info(
            f"Applied {tx_type.value} {signed_amount} to user {user_id}; balance now {new_balance}"
        )
        return balance, transaction

    @staticmethod
    def _parse_type(value: Union[CreditTransactionType, str]) -> CreditTransactionType:
        try:
            return CreditTransactionType(value)
        except ValueError:
            raise ValidationException(
                f"Invalid transaction type: {value}",
                code="INVALID_TRANSACTION_TYPE",
                details={"allowed": [t.value for t in CreditTransactionType]},
            )

    @staticmethod
    def _parse_magnitude(value: AmountLike) -> Decimal:
        magnitude = to_credits(value)
        if magnitude <= ZERO:
            raise ValidationException(
                "Amount must be a positive magnitude; the transaction type sets the sign",
                code="INVALID_AMOUNT",
                details={"amount": str(value)},
            )
        return magnitude

    @BaseService.measure_operation("admin_adjust_balance")
    def admin_adjust_balance(
        self,
        user_id: str,
        admin_id: str,
        transaction_type: Union[CreditTransactionType, str],
        amount: AmountLike,
        description: str,
        allow_negative: bool = False,
    ) -> Tuple[CreditBalance, CreditTransaction]:
        """Administrative balance change, audited in the admin activity log."""
        with self.transaction():
            balance, transaction = self.apply_transaction(
                user_id,
                transaction_type,
                amount,
                description,
                reference_id=admin_id,
                reference_type=ReferenceType.ADMIN,
                metadata={"adjusted_by": admin_id, "allow_negative": allow_negative},
                allow_negative=allow_negative,
                use_transaction=False,
            )
            self.admin_activity_repository.record(
                admin_id,
                "adjust_credits",
                "USER",
                user_id,
                {
                    "type": transaction.type,
                    "amount": str(transaction.amount),
                    "balance": str(transaction.balance),
                },
            )
        return balance, transaction

    # Enrollment

    @BaseService.measure_operation("enroll_with_credits")
    def enroll_with_credits(self, user_id: str, course_id: str, child_ids: List[str]) -> EnrollmentResult:
        """
        Enroll children in a course, paying ``credit_cost`` per child.

        All or nothing: the single SPENT entry and every Enrollment row are
        written in one transaction. The coach is emailed afterwards; a
        failed email does not undo the enrollment.

        Raises:
            NotFoundException: Course missing, or a child not owned by the user
            ValidationException: Course inactive, no children, zero cost
            ConflictException: A child is already enrolled
            InsufficientCreditsException: Balance below the total cost
        """
        unique_child_ids = list(dict.fromkeys(child_ids or []))
        if not unique_child_ids:
            raise ValidationException("At least one child is required", code="CHILDREN_REQUIRED")

        parent = self._require_user(user_id)
        course = self.course_repository.get_by_id(course_id)
        if not course:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        if not course.is_active:
            raise ValidationException("Course is not available for enrollment", code="COURSE_INACTIVE")

        children = self.child_repository.get_many_for_parent(unique_child_ids, user_id)
        if len(children) != len(unique_child_ids):
            found = {child.id for child in children}
            raise NotFoundException(
                "One or more children not found",
                code="CHILD_NOT_FOUND",
                details={"missing": [cid for cid in unique_child_ids if cid not in found]},
            )

        credit_cost = to_credits(course.credit_cost or 0)
        total_cost = (credit_cost * len(unique_child_ids)).quantize(CENTS)
        if total_cost <= ZERO:
            raise ValidationException(
                "This course cannot be purchased with credits", code="INVALID_CREDIT_COST"
            )

        already = self.enrollment_repository.get_open_enrollments(unique_child_ids, course_id)
        if already:
            raise ConflictException(
                "One or more children are already enrolled in this course",
                code="ALREADY_ENROLLED",
                details={"child_ids": sorted({e.child_id for e in already})},
            )

        with self.transaction():
            balance, transaction = self.apply_transaction(
                user_id,
                CreditTransactionType.SPENT,
                total_cost,
                f"Enrollment in {course.title} for {len(unique_child_ids)} child(ren)",
                reference_id=course.id,
                reference_type=ReferenceType.COURSE,
                metadata={"child_ids": unique_child_ids, "credit_cost": str(credit_cost)},
                use_transaction=False,
            )
            enrollments = self.enrollment_repository.bulk_create(
                [
                    {
                        "child_id": child_id,
                        "course_id": course.id,
                        "status": EnrollmentStatus.ACTIVE.value,
                        "credits_spent": credit_cost,
                        "credit_transaction_id": transaction.id,
                    }
                    for child_id in unique_child_ids
                ]
            )

        self.log_operation(
            "credits_enrollment",
            user_id=user_id,
            course_id=course.id,
            children=len(unique_child_ids),
            total_cost=str(total_cost),
        )

        coach_user = course.coach.user if course.coach is not None else None
        if coach_user is not None:
            by_id = {child.id: child for child in children}
            self.notification_service.send_enrollment_notice(
                coach_user, parent, course, [by_id[cid].full_name for cid in unique_child_ids]
            )

        return EnrollmentResult(
            enrollments=enrollments,
            transaction=transaction,
            balance=balance,
            total_cost=total_cost,
            child_ids=unique_child_ids,
        )

    # Queries

    def list_transactions(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        transaction_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[CreditTransaction], int]:
        if transaction_type:
            transaction_type = self._parse_type(transaction_type).value
        return self.transaction_repository.list_for_user(
            user_id,
            transaction_type=transaction_type,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )

    def replay_balance(self, user_id: str) -> Decimal:
        """Recompute a balance from the ledger (sum of signed amounts)."""
        return self.transaction_repository.sum_amounts(user_id).quantize(CENTS)

    def list_balances(
        self,
        *,
        search: Optional[str] = None,
        min_balance: Optional[Decimal] = None,
        max_balance: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ):
        return self.balance_repository.list_balances(
            search=search, min_balance=min_balance, max_balance=max_balance, page=page, limit=limit
        )

    @BaseService.measure_operation("credit_system_stats")
    def system_stats(self) -> Dict[str, Any]:
        totals = self.balance_repository.totals()
        by_type = self.transaction_repository.totals_by_type()
        return {
            **totals,
            "transactions_by_type": by_type,
            "transaction_count": sum(entry["count"] for entry in by_type.values()),
            "active_packages": len(self.package_repository.list_packages()),
            "completed_purchases": self.purchase_repository.count(
                status=CreditPurchaseStatus.COMPLETED.value
            ),
        }

    # Packages

    def list_packages(self, include_inactive: bool = False) -> List[CreditPackage]:
        return self.package_repository.list_packages(include_inactive=include_inactive)

    def get_package(self, package_id: str) -> CreditPackage:
        package = self.package_repository.get_by_id(package_id)
        if not package:
            raise NotFoundException("Credit package not found", code="PACKAGE_NOT_FOUND")
        return package

    def create_package(self, data: Dict[str, Any]) -> CreditPackage:
        with self.transaction():
            package = self.package_repository.create(**data)
        self.logger.info(f"Created credit package {package.name}")
        return package

    def update_package(self, package_id: str, data: Dict[str, Any]) -> CreditPackage:
        with self.transaction():
            package = self.package_repository.update(package_id, **data)
            if not package:
                raise NotFoundException("Credit package not found", code="PACKAGE_NOT_FOUND")
        return package

    def delete_package(self, package_id: str) -> None:
        with self.transaction():
            if not self.package_repository.delete(package_id):
                raise NotFoundException("Credit package not found", code="PACKAGE_NOT_FOUND")

    # Purchases

    @BaseService.measure_operation("purchase_package")
    def purchase_package(
        self, user_id: str, package_id: str, payment_id: Optional[str] = None
    ) -> CreditPurchase:
        """
        Record a package purchase.

        Without ``payment_id`` the purchase stays PENDING until the payment
        succeeds; with it the credits are granted immediately.
        """
        self._require_user(user_id)
        package = self.get_package(package_id)
        if not package.is_active:
            raise ValidationException("Credit package is not available", code="PACKAGE_INACTIVE")

        with self.transaction():
            purchase = self.purchase_repository.create(
                user_id=user_id,
                package_id=package.id,
                package_name=package.name,
                credits=package.total_credits,
                amount=package.price,
                currency=package.currency,
                status=CreditPurchaseStatus.PENDING.value,
            )
            if payment_id:
                self._complete_purchase_locked(purchase, payment_id, package.valid_days)
        return purchase

    @BaseService.measure_operation("complete_purchase")
    def complete_purchase(
        self, purchase_id: str, payment_id: str, *, use_transaction: bool = True
    ) -> CreditPurchase:
        """Grant a pending purchase's credits. Completing twice is a no-op."""

        def _complete() -> CreditPurchase:
            purchase = self.purchase_repository.get_for_update(purchase_id)
            if not purchase:
                raise NotFoundException("Credit purchase not found", code="PURCHASE_NOT_FOUND")
            if purchase.status == CreditPurchaseStatus.COMPLETED.value:
                return purchase
            if purchase.status != CreditPurchaseStatus.PENDING.value:
                raise ValidationException(
                    f"Cannot complete a purchase in status {purchase.status}",
                    code="INVALID_PURCHASE_STATUS",
                )
            valid_days = purchase.package.valid_days if purchase.package is not None else None
            self._complete_purchase_locked(purchase, payment_id, valid_days)
            return purchase

        if use_transaction:
            with self.transaction():
                return _complete()
        return _complete()

    def _complete_purchase_locked(
        self, purchase: CreditPurchase, payment_id: str, valid_days: Optional[int]
    ) -> None:
        now = datetime.now(timezone.utc)
        purchase.status = CreditPurchaseStatus.COMPLETED.value
        purchase.payment_id = payment_id
        purchase.expires_at = now + timedelta(days=valid_days) if valid_days else None
        self.apply_transaction(
            purchase.user_id,
            CreditTransactionType.PURCHASE,
            purchase.credits,
            f"Purchased {purchase.package_name}",
            reference_id=purchase.id,
            reference_type=ReferenceType.PURCHASE,
            metadata={"payment_id": payment_id, "package_id": purchase.package_id},
            use_transaction=False,
        )

    def fail_purchase(self, purchase_id: str, *, use_transaction: bool = True) -> Optional[CreditPurchase]:
        def _fail() -> Optional[CreditPurchase]:
            purchase = self.purchase_repository.get_for_update(purchase_id)
            if purchase and purchase.status == CreditPurchaseStatus.PENDING.value:
                purchase.status = CreditPurchaseStatus.FAILED.value
            return purchase

        if use_transaction:
            with self.transaction():
                return _fail()
        return _fail()

    def list_purchases(self, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[CreditPurchase], int]:
        return self.purchase_repository.list_for_user(user_id, page=page, limit=limit)
