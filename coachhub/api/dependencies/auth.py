# coachhub/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

Bearer tokens carry the user id in ``sub``. The user is loaded with the
request's own session so handlers see the same row the services update.
"""

import logging
from typing import Awaitable, Callable, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import oauth2_scheme, user_id_from_token
from ...core.enums import CoachStatus, UserRole
from ...models.coach import Coach
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def _unauthorized(message: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "code": "UNAUTHORIZED", "details": {}},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(message: str, code: str = "FORBIDDEN") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"message": message, "code": code, "details": {}},
    )


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the database.

    Raises:
        HTTPException: 401 when the token is missing, invalid or points at
            no user; 403 when the account is deactivated
    """
    if not token:
        raise _unauthorized("Not authenticated")

    user_id = user_id_from_token(token)
    if not user_id:
        raise _unauthorized()

    user = RepositoryFactory.create_user_repository(db).get_by_id(user_id, load_relationships=False)
    if user is None:
        raise _unauthorized()
    if not user.is_active:
        raise _forbidden("Account is deactivated", code="ACCOUNT_INACTIVE")
    return user


async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The authenticated user when a valid token is sent, otherwise None."""
    user_id = user_id_from_token(token)
    if not user_id:
        return None
    user = RepositoryFactory.create_user_repository(db).get_by_id(user_id, load_relationships=False)
    if user is None or not user.is_active:
        return None
    return user


def require_role(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """Dependency factory allowing only the given roles."""
    allowed = {role.value for role in roles}

    async def verify_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.info(f"User {current_user.id} with role {current_user.role} denied; requires {sorted(allowed)}")
            raise _forbidden("You do not have permission to perform this action")
        return current_user

    return verify_role


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that ensures the caller has administrator privileges."""

    if not user.is_admin:
        raise _forbidden("Admin access required")
    return user


async def require_coach(user: User = Depends(get_current_user)) -> User:
    if not user.is_coach:
        raise _forbidden("Coach access required")
    return user


async def require_parent(user: User = Depends(get_current_user)) -> User:
    if not user.is_parent:
        raise _forbidden("Parent access required")
    return user


async def get_current_coach(
    user: User = Depends(require_coach),
    db: Session = Depends(get_db),
) -> Coach:
    """
    Coach profile of the authenticated user.

    Raises:
        HTTPException: 404 without a profile, 403 unless APPROVED and not frozen
    """
    coach = RepositoryFactory.create_coach_repository(db).get_by_user_id(user.id)
    if coach is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Coach profile not found", "code": "COACH_NOT_FOUND", "details": {}},
        )
    if coach.status != CoachStatus.APPROVED.value or coach.is_frozen:
        raise _forbidden("Coach account is not approved", code="COACH_NOT_APPROVED")
    return coach
