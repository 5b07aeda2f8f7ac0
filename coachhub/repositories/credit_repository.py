# coachhub/repositories/credit_repository.py
"""
Credit ledger data access.

Balance rows are created with an idempotent insert: concurrent callers both
issue ``INSERT ... ON CONFLICT (user_id) DO NOTHING`` and then read back the
single surviving row. Debits lock that row with ``SELECT ... FOR UPDATE``
before computing the new balance.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, insert, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import RepositoryException
from ..models.credit import CreditBalance, CreditPackage, CreditPurchase, CreditTransaction
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class CreditBalanceRepository(BaseRepository[CreditBalance]):
    def __init__(self, db: Session):
        super().__init__(db, CreditBalance)
        self.logger = logging.getLogger(__name__)

    def get_by_user_id(self, user_id: str) -> Optional[CreditBalance]:
        return self.find_one_by(user_id=user_id)

    def insert_if_absent(self, user_id: str) -> None:
        """Create a zero balance for ``user_id`` unless one already exists."""
        values: Dict[str, Any] = {
            "id": str(ulid.ULID()),
            "user_id": user_id,
            "balance": ZERO,
            "total_earned": ZERO,
            "total_spent": ZERO,
            "last_updated": datetime.now(timezone.utc),
        }
        dialect = self.dialect_name
        try:
            if dialect == "postgresql":
                stmt = pg_insert(CreditBalance).values(**values).on_conflict_do_nothing(
                    index_elements=["user_id"]
                )
                self.db.execute(stmt)
            elif dialect == "sqlite":
                stmt = sqlite_insert(CreditBalance).values(**values).on_conflict_do_nothing(
                    index_elements=["user_id"]
                )
                self.db.execute(stmt)
            else:
                # Generic fallback: a savepoint keeps the outer transaction usable
                with self.db.begin_nested():
                    try:
                        self.db.execute(insert(CreditBalance).values(**values))
                    except IntegrityError:
                        self.logger.debug("Balance for user %s already exists", user_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating balance for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to create credit balance: {str(e)}")

    def get_for_update(self, user_id: str) -> Optional[CreditBalance]:
        """Load the balance row with a row lock held until commit."""
        try:
            return (
                self.db.query(CreditBalance)
                .filter(CreditBalance.user_id == user_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking balance for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock credit balance: {str(e)}")

    def list_balances(
        self,
        *,
        search: Optional[str] = None,
        min_balance: Optional[Decimal] = None,
        max_balance: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Tuple[CreditBalance, User]], int]:
        query = self.db.query(CreditBalance, User).join(User, CreditBalance.user_id == User.id)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        if min_balance is not None:
            query = query.filter(CreditBalance.balance >= min_balance)
        if max_balance is not None:
            query = query.filter(CreditBalance.balance <= max_balance)
        query = query.order_by(CreditBalance.balance.desc())
        return self._paginate(query, page, limit)

    def totals(self) -> Dict[str, Any]:
        try:
            row = self.db.query(
                func.count(CreditBalance.id),
                func.coalesce(func.sum(CreditBalance.balance), 0),
                func.coalesce(func.sum(CreditBalance.total_earned), 0),
                func.coalesce(func.sum(CreditBalance.total_spent), 0),
            ).one()
            return {
                "users_with_balance": int(row[0]),
                "total_balance": Decimal(str(row[1])),
                "total_earned": Decimal(str(row[2])),
                "total_spent": Decimal(str(row[3])),
            }
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating balances: {str(e)}")
            raise RepositoryException(f"Failed to aggregate balances: {str(e)}")


class CreditTransactionRepository(BaseRepository[CreditTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, CreditTransaction)

    def list_for_user(
        self,
        user_id: str,
        *,
        transaction_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[CreditTransaction], int]:
        query = self.db.query(CreditTransaction).filter(CreditTransaction.user_id == user_id)
        if transaction_type:
            query = query.filter(CreditTransaction.type == transaction_type)
        if start_date:
            query = query.filter(CreditTransaction.created_at >= start_date)
        if end_date:
            query = query.filter(CreditTransaction.created_at <= end_date)
        query = query.order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        return self._paginate(query, page, limit)

    def sum_amounts(self, user_id: str) -> Decimal:
        value = self._execute_scalar(
            self.db.query(func.coalesce(func.sum(CreditTransaction.amount), 0)).filter(
                CreditTransaction.user_id == user_id
            )
        )
        return Decimal(str(value))

    def totals_by_type(self) -> Dict[str, Dict[str, Any]]:
        try:
            rows = (
                self.db.query(
                    CreditTransaction.type,
                    func.count(CreditTransaction.id),
                    func.coalesce(func.sum(CreditTransaction.amount), 0),
                )
                .group_by(CreditTransaction.type)
                .all()
            )
            return {
                tx_type: {"count": int(count), "amount": Decimal(str(amount))}
                for tx_type, count, amount in rows
            }
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating transactions: {str(e)}")
            raise RepositoryException(f"Failed to aggregate transactions: {str(e)}")


class CreditPackageRepository(BaseRepository[CreditPackage]):
    def __init__(self, db: Session):
        super().__init__(db, CreditPackage)

    def list_packages(self, include_inactive: bool = False) -> List[CreditPackage]:
        query = self.db.query(CreditPackage)
        if not include_inactive:
            query = query.filter(CreditPackage.is_active.is_(True))
        return self._execute_query(
            query.order_by(CreditPackage.is_popular.desc(), CreditPackage.credits.asc())
        )


class CreditPurchaseRepository(BaseRepository[CreditPurchase]):
    def __init__(self, db: Session):
        super().__init__(db, CreditPurchase)

    def list_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[CreditPurchase], int]:
        query = (
            self.db.query(CreditPurchase)
            .filter(CreditPurchase.user_id == user_id)
            .order_by(CreditPurchase.created_at.desc())
        )
        return self._paginate(query, page, limit)

    def get_for_update(self, purchase_id: str) -> Optional[CreditPurchase]:
        try:
            return (
                self.db.query(CreditPurchase)
                .filter(CreditPurchase.id == purchase_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking purchase {purchase_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock purchase: {str(e)}")
