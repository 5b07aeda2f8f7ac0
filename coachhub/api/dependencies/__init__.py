# coachhub/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_coach,
    get_current_user,
    get_current_user_optional,
    require_admin,
    require_coach,
    require_parent,
    require_role,
)
from .database import get_database, get_db
from .services import (
    get_admin_service,
    get_auth_service,
    get_availability_service,
    get_child_service,
    get_course_service,
    get_credit_service,
    get_notification_service,
    get_payment_service,
    get_session_service,
    get_storage,
    get_video_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_user_optional",
    "get_current_coach",
    "require_role",
    "require_admin",
    "require_coach",
    "require_parent",
    # Database
    "get_db",
    "get_database",
    # Services
    "get_admin_service",
    "get_auth_service",
    "get_availability_service",
    "get_child_service",
    "get_course_service",
    "get_credit_service",
    "get_notification_service",
    "get_payment_service",
    "get_session_service",
    "get_storage",
    "get_video_service",
]
