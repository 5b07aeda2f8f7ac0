"""
Payment model for Stripe integration.

A payment pays either for one coaching session or for one credit package
purchase. The Stripe PaymentIntent id is unique so webhook deliveries are
idempotent.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..core.enums import PaymentStatus
from ..database import Base


class Payment(Base):
    """Stripe payment intents for sessions and credit packages."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    session_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    credit_purchase_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("credit_purchases.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stripe_payment_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    client_secret: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    payment_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    session = relationship("CoachingSession")
    credit_purchase = relationship("CreditPurchase")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<Payment(stripe_id={self.stripe_payment_id}, amount={self.amount}, status={self.status})>"
