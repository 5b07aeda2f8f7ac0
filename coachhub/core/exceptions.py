# coachhub/core/exceptions.py
"""
Domain-specific exceptions for the CoachHub platform.

Every business failure is raised as a DomainException subclass that knows
its HTTP status. The API layer converts them into the standard JSON
envelope; nothing below the routes deals with HTTP directly.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the structured detail."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"WWW-Authenticate": "Bearer"}
        return exc


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class AccountLockedException(DomainException):
    """Raised when login is attempted on a temporarily locked account."""

    status_code = status.HTTP_423_LOCKED

    def __init__(self, minutes_remaining: int):
        super().__init__(
            message=f"Account is locked. Try again in {minutes_remaining} minutes.",
            code="ACCOUNT_LOCKED",
            details={"minutes_remaining": minutes_remaining},
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a session window overlaps a live session for the same coach."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Scheduling conflict detected",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class InsufficientCreditsException(ValidationException):
    """Raised when a debit would drive a credit balance below zero."""

    def __init__(self, required: Any, available: Any):
        super().__init__(
            message=f"Insufficient credits. Required: {required}, Available: {available}",
            code="INSUFFICIENT_CREDITS",
            details={"required": str(required), "available": str(available)},
        )


class InvalidSessionTransitionException(ValidationException):
    """Raised when a session status change is not allowed."""

    def __init__(self, message: str, *, current_status: str, target_status: str):
        super().__init__(
            message=message,
            code="INVALID_SESSION_TRANSITION",
            details={"current_status": current_status, "target_status": target_status},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
