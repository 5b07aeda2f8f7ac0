# coachhub/repositories/payment_repository.py
"""Payment records keyed by Stripe PaymentIntent id."""

from decimal import Decimal
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PaymentStatus
from ..core.exceptions import RepositoryException
from ..models.payment import Payment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)
        self.logger = logging.getLogger(__name__)

    def get_by_stripe_id(self, stripe_payment_id: str, for_update: bool = False) -> Optional[Payment]:
        try:
            query = self.db.query(Payment).filter(Payment.stripe_payment_id == stripe_payment_id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting payment {stripe_payment_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve payment: {str(e)}")

    def list_payments(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Payment], int]:
        query = self.db.query(Payment)
        if user_id:
            query = query.filter(Payment.user_id == user_id)
        if status:
            query = query.filter(Payment.status == status)
        return self._paginate(query.order_by(Payment.created_at.desc()), page, limit)

    def total_revenue(self) -> Decimal:
        """Succeeded payment amounts net of refunds."""
        try:
            gross, refunded = (
                self.db.query(
                    func.coalesce(func.sum(Payment.amount), 0),
                    func.coalesce(func.sum(Payment.refund_amount), 0),
                )
                .filter(Payment.status.in_([PaymentStatus.SUCCEEDED.value, PaymentStatus.REFUNDED.value]))
                .one()
            )
            return Decimal(str(gross)) - Decimal(str(refunded))
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing revenue: {str(e)}")
            raise RepositoryException(f"Failed to compute revenue: {str(e)}")
