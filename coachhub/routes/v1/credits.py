# coachhub/routes/v1/credits.py
"""
Credit routes - API v1

Credit balances, the ledger, packages, purchases and credit enrollment
under /api/v1/credits. Per-user endpoints are open to the user themselves
and to administrators.

Endpoints:
    GET    /packages                 → Active packages (admins: ?include_inactive=true)
    POST   /packages                 → Create a package (admin)
    GET    /packages/{package_id}    → One package
    PUT    /packages/{package_id}    → Update a package (admin)
    DELETE /packages/{package_id}    → Delete a package (admin)
    GET    /admin/balances           → Every balance, searchable (admin)
    GET    /admin/stats              → System-wide credit totals (admin)
    GET    /admin/replay/{user_id}   → Compare stored balance with the ledger sum (admin)
    GET    /balance/{user_id}        → Balance (created at zero on first read)
    PUT    /balance/{user_id}        → Administrative adjustment
    GET    /transactions/{user_id}   → Ledger entries, filterable
    POST   /purchase/{user_id}       → Purchase a package
    GET    /purchases/{user_id}      → Purchase history
    POST   /enroll/{user_id}         → Enroll children in a course with credits
"""

import asyncio
from datetime import datetime
from decimal import Decimal
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_user, require_admin
from ...api.dependencies.services import get_credit_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import CreditTransactionType
from ...core.exceptions import DomainException, ForbiddenException
from ...models.user import User
from ...schemas.base_responses import ApiResponse, MessageData, PaginatedData
from ...schemas.credit import (
    AdjustBalanceRequest,
    AdjustBalanceResponse,
    BalanceResponse,
    CreditStatsResponse,
    EnrollmentResponse,
    EnrollRequest,
    EnrollResultResponse,
    PackageCreate,
    PackageResponse,
    PackageUpdate,
    PurchaseRequest,
    PurchaseResponse,
    ReplayResponse,
    TransactionResponse,
    UserBalanceResponse,
)
from ...services.credit_ledger_service import CreditLedgerService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["credits-v1"])


def _ensure_self_or_admin(current_user: User, user_id: str) -> None:
    if current_user.id != user_id and not current_user.is_admin:
        raise ForbiddenException("Access denied", code="FORBIDDEN").to_http_exception()


# Packages


@router.get("/packages", response_model=ApiResponse[List[PackageResponse]])
async def list_packages(
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[List[PackageResponse]]:
    packages = await asyncio.to_thread(
        credit_service.list_packages, include_inactive and current_user.is_admin
    )
    return ApiResponse[List[PackageResponse]].ok(
        [PackageResponse.model_validate(package) for package in packages], "Credit packages retrieved"
    )


@router.post("/packages", response_model=ApiResponse[PackageResponse], status_code=status.HTTP_201_CREATED)
async def create_package(
    payload: PackageCreate,
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PackageResponse]:
    try:
        package = await asyncio.to_thread(credit_service.create_package, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PackageResponse].ok(
        PackageResponse.model_validate(package), "Credit package created", status.HTTP_201_CREATED
    )


@router.get("/packages/{package_id}", response_model=ApiResponse[PackageResponse])
async def get_package(
    package_id: str,
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PackageResponse]:
    try:
        package = await asyncio.to_thread(credit_service.get_package, package_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PackageResponse].ok(PackageResponse.model_validate(package), "Credit package retrieved")


@router.put("/packages/{package_id}", response_model=ApiResponse[PackageResponse])
async def update_package(
    package_id: str,
    payload: PackageUpdate,
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PackageResponse]:
    try:
        package = await asyncio.to_thread(
            credit_service.update_package, package_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PackageResponse].ok(PackageResponse.model_validate(package), "Credit package updated")


@router.delete("/packages/{package_id}", response_model=ApiResponse[MessageData])
async def delete_package(
    package_id: str,
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[MessageData]:
    try:
        await asyncio.to_thread(credit_service.delete_package, package_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[MessageData].ok(MessageData(id=package_id), "Credit package deleted")


# Administration


@router.get("/admin/balances", response_model=ApiResponse[PaginatedData[UserBalanceResponse]])
async def list_balances(
    search: Optional[str] = Query(None, max_length=100),
    min_balance: Optional[Decimal] = None,
    max_balance: Optional[Decimal] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PaginatedData[UserBalanceResponse]]:
    rows, total = await asyncio.to_thread(
        lambda: credit_service.list_balances(
            search=search, min_balance=min_balance, max_balance=max_balance, page=page, limit=limit
        )
    )
    items = [
        UserBalanceResponse(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            balance=balance.balance,
            total_earned=balance.total_earned,
            total_spent=balance.total_spent,
        )
        for balance, user in rows
    ]
    return ApiResponse[PaginatedData[UserBalanceResponse]].ok(
        PaginatedData[UserBalanceResponse].build(items, page, limit, total), "Balances retrieved"
    )


@router.get("/admin/stats", response_model=ApiResponse[CreditStatsResponse])
async def credit_stats(
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[CreditStatsResponse]:
    stats = await asyncio.to_thread(credit_service.system_stats)
    return ApiResponse[CreditStatsResponse].ok(CreditStatsResponse(**stats), "Credit statistics retrieved")


@router.get("/admin/replay/{user_id}", response_model=ApiResponse[ReplayResponse])
async def replay_balance(
    user_id: str,
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[ReplayResponse]:
    """Audit a balance: the stored value must equal the sum of its ledger entries."""
    try:
        balance = await asyncio.to_thread(credit_service.get_balance, user_id)
        ledger_balance = await asyncio.to_thread(credit_service.replay_balance, user_id)
    except DomainException as e:
        raise e.to_http_exception()
    stored = Decimal(balance.balance)
    return ApiResponse[ReplayResponse].ok(
        ReplayResponse(
            user_id=user_id,
            stored_balance=stored,
            ledger_balance=ledger_balance,
            consistent=stored == ledger_balance,
        ),
        "Ledger replayed",
    )


# Per-user


@router.get("/balance/{user_id}", response_model=ApiResponse[BalanceResponse])
async def get_balance(
    user_id: str,
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[BalanceResponse]:
    _ensure_self_or_admin(current_user, user_id)
    try:
        balance = await asyncio.to_thread(credit_service.get_balance, user_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[BalanceResponse].ok(BalanceResponse.model_validate(balance), "Balance retrieved")


@router.put("/balance/{user_id}", response_model=ApiResponse[AdjustBalanceResponse])
async def adjust_balance(
    user_id: str,
    payload: AdjustBalanceRequest,
    admin: User = Depends(require_admin),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[AdjustBalanceResponse]:
    """
    Administrative adjustment.

    ``amount`` is unsigned; the transaction type decides the direction.
    Debits that would overdraw the balance fail unless ``allow_negative``
    is set.
    """
    try:
        balance, transaction = await asyncio.to_thread(
            credit_service.admin_adjust_balance,
            user_id,
            admin.id,
            payload.type,
            payload.amount,
            payload.description,
            payload.allow_negative,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[AdjustBalanceResponse].ok(
        AdjustBalanceResponse(
            balance=BalanceResponse.model_validate(balance),
            transaction=TransactionResponse.model_validate(transaction),
        ),
        "Balance adjusted",
    )


@router.get("/transactions/{user_id}", response_model=ApiResponse[PaginatedData[TransactionResponse]])
async def list_transactions(
    user_id: str,
    transaction_type: Optional[CreditTransactionType] = Query(None, alias="type"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PaginatedData[TransactionResponse]]:
    _ensure_self_or_admin(current_user, user_id)
    try:
        transactions, total = await asyncio.to_thread(
            lambda: credit_service.list_transactions(
                user_id,
                page=page,
                limit=limit,
                transaction_type=transaction_type.value if transaction_type else None,
                start_date=start_date,
                end_date=end_date,
            )
        )
    except DomainException as e:
        raise e.to_http_exception()
    items = [TransactionResponse.model_validate(tx) for tx in transactions]
    return ApiResponse[PaginatedData[TransactionResponse]].ok(
        PaginatedData[TransactionResponse].build(items, page, limit, total), "Transactions retrieved"
    )


@router.post(
    "/purchase/{user_id}",
    response_model=ApiResponse[PurchaseResponse],
    status_code=status.HTTP_201_CREATED,
)
async def purchase_package(
    user_id: str,
    payload: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PurchaseResponse]:
    """
    Record a package purchase.

    Users normally pay through ``POST /payments/credits``; a purchase made
    here stays PENDING. Administrators may pass ``payment_id`` for a payment
    settled elsewhere, which grants the credits immediately.
    """
    _ensure_self_or_admin(current_user, user_id)
    if payload.payment_id and not current_user.is_admin:
        raise ForbiddenException(
            "Only administrators can record settled payments", code="FORBIDDEN"
        ).to_http_exception()
    try:
        purchase = await asyncio.to_thread(
            credit_service.purchase_package, user_id, payload.package_id, payload.payment_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PurchaseResponse].ok(
        PurchaseResponse.model_validate(purchase), "Credit purchase recorded", status.HTTP_201_CREATED
    )


@router.get("/purchases/{user_id}", response_model=ApiResponse[PaginatedData[PurchaseResponse]])
async def list_purchases(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[PaginatedData[PurchaseResponse]]:
    _ensure_self_or_admin(current_user, user_id)
    purchases, total = await asyncio.to_thread(credit_service.list_purchases, user_id, page, limit)
    items = [PurchaseResponse.model_validate(purchase) for purchase in purchases]
    return ApiResponse[PaginatedData[PurchaseResponse]].ok(
        PaginatedData[PurchaseResponse].build(items, page, limit, total), "Purchases retrieved"
    )


@router.post(
    "/enroll/{user_id}",
    response_model=ApiResponse[EnrollResultResponse],
    status_code=status.HTTP_201_CREATED,
)
async def enroll_with_credits(
    user_id: str,
    payload: EnrollRequest,
    current_user: User = Depends(get_current_user),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> ApiResponse[EnrollResultResponse]:
    """
    Enroll children in a course, paying the course's credit cost per child.

    All or nothing: one SPENT entry and one enrollment per child, or no
    change at all.
    """
    _ensure_self_or_admin(current_user, user_id)
    try:
        result = await asyncio.to_thread(
            credit_service.enroll_with_credits, user_id, payload.course_id, payload.child_ids
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[EnrollResultResponse].ok(
        EnrollResultResponse(
            enrollments=[EnrollmentResponse.model_validate(enrollment) for enrollment in result.enrollments],
            transaction=TransactionResponse.model_validate(result.transaction),
            balance=BalanceResponse.model_validate(result.balance),
            total_cost=result.total_cost,
            child_ids=result.child_ids,
        ),
        f"Enrolled {len(result.enrollments)} children",
        status.HTTP_201_CREATED,
    )
