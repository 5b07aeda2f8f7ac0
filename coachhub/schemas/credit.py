"""Credit ledger, package and enrollment schemas."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..core.enums import CreditTransactionType
from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime


class BalanceResponse(StandardizedModel):
    user_id: str
    balance: Money
    total_earned: Money
    total_spent: Money
    last_updated: Optional[UTCDateTime] = None


class TransactionResponse(StandardizedModel):
    id: str
    user_id: str
    type: str
    amount: Money = Field(description="Signed: positive for credits, negative for debits")
    balance: Money = Field(description="Balance after this entry")
    description: str
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    transaction_metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("transaction_metadata", "metadata"),
        serialization_alias="metadata",
    )
    created_at: Optional[UTCDateTime] = None


class PackageResponse(StandardizedModel):
    id: str
    name: str
    description: Optional[str] = None
    credits: Money
    bonus_credits: Money
    total_credits: Money
    price: Money
    currency: str
    is_active: bool
    is_popular: bool
    valid_days: Optional[int] = None


class PackageCreate(StrictRequestModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    credits: Decimal = Field(gt=0)
    bonus_credits: Decimal = Field(default=Decimal("0"), ge=0)
    price: Decimal = Field(ge=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    is_active: bool = True
    is_popular: bool = False
    valid_days: Optional[int] = Field(default=None, gt=0)


class PackageUpdate(StrictRequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    credits: Optional[Decimal] = Field(default=None, gt=0)
    bonus_credits: Optional[Decimal] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None
    valid_days: Optional[int] = Field(default=None, gt=0)


class PurchaseRequest(StrictRequestModel):
    """``payment_id`` marks an already settled payment (admins only) and grants the credits at once."""

    package_id: str
    payment_id: Optional[str] = None


class PurchaseResponse(StandardizedModel):
    id: str
    user_id: str
    package_id: Optional[str] = None
    package_name: str
    credits: Money
    amount: Money
    currency: str
    payment_id: Optional[str] = None
    status: str
    expires_at: Optional[UTCDateTime] = None
    created_at: Optional[UTCDateTime] = None


class EnrollRequest(StrictRequestModel):
    course_id: str
    child_ids: List[str] = Field(min_length=1)


class EnrollmentResponse(StandardizedModel):
    id: str
    child_id: str
    course_id: str
    status: str
    enrolled_at: Optional[UTCDateTime] = None
    credits_spent: Money
    credit_transaction_id: Optional[str] = None


class EnrollResultResponse(BaseModel):
    enrollments: List[EnrollmentResponse]
    transaction: TransactionResponse
    balance: BalanceResponse
    total_cost: Money
    child_ids: List[str]


class AdjustBalanceRequest(StrictRequestModel):
    """Admin adjustment. ``amount`` is unsigned; the type decides the direction."""

    type: CreditTransactionType
    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1, max_length=500)
    allow_negative: bool = False


class AdjustBalanceResponse(BaseModel):
    balance: BalanceResponse
    transaction: TransactionResponse


class UserBalanceResponse(BaseModel):
    user_id: str
    email: str
    full_name: str
    balance: Money
    total_earned: Money
    total_spent: Money


class TypeTotals(BaseModel):
    count: int
    amount: Money


class CreditStatsResponse(BaseModel):
    users_with_balance: int
    total_balance: Money
    total_earned: Money
    total_spent: Money
    transactions_by_type: Dict[str, TypeTotals]
    transaction_count: int
    active_packages: int
    completed_purchases: int


class ReplayResponse(BaseModel):
    user_id: str
    stored_balance: Money
    ledger_balance: Money
    consistent: bool
