# coachhub/routes/v1/auth.py
"""
Authentication routes - API v1

Versioned authentication endpoints under /api/v1/auth.
All business logic delegated to AuthService.

Endpoints:
    POST /register/parent          → Create a parent account
    POST /register/coach           → Create a coach account (PENDING approval)
    POST /login                    → Parent or coach login
    POST /admin/login              → Administrator login
    POST /logout                   → Revoke the refresh token
    POST /refresh                  → Rotate the token pair
    GET  /verify-email/{token}     → Confirm an email address
    POST /resend-verification      → New verification link
    POST /forgot-password          → Password reset link (always succeeds)
    POST /reset-password/{token}   → Set a new password
    GET  /profile                  → Current user (and coach profile)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_auth_service
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.auth import (
    AdminLoginRequest,
    CoachRegisterRequest,
    EmailRequest,
    LoginRequest,
    ParentRegisterRequest,
    ProfileResponse,
    RefreshRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from ...schemas.base_responses import ApiResponse, MessageData
from ...services.auth_service import AuthResult, AuthService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["auth-v1"])


def _token_response(result: AuthResult) -> TokenResponse:
    return TokenResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        token_type=result.token_type,
    )


@router.post(
    "/register/parent",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_parent(
    payload: ParentRegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    """Register a parent; a verification email is sent."""
    try:
        user = await asyncio.to_thread(auth_service.register_parent, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[UserResponse].ok(
        UserResponse.model_validate(user),
        "Registration successful. Please check your email to verify your account.",
        status.HTTP_201_CREATED,
    )


@router.post(
    "/register/coach",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_coach(
    payload: CoachRegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    """Register a coach. The profile stays PENDING until an admin approves it."""
    try:
        user = await asyncio.to_thread(auth_service.register_coach, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[UserResponse].ok(
        UserResponse.model_validate(user),
        "Coach registration submitted. Your profile will be reviewed by an administrator.",
        status.HTTP_201_CREATED,
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenResponse]:
    """
    Parent or coach login.

    Five failed attempts lock the account for 30 minutes (423). Coaches
    must be approved.
    """
    try:
        result = await asyncio.to_thread(auth_service.login, payload.email, payload.password, payload.role)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[TokenResponse].ok(_token_response(result), "Login successful")


@router.post("/admin/login", response_model=ApiResponse[TokenResponse])
async def admin_login(
    payload: AdminLoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenResponse]:
    try:
        result = await asyncio.to_thread(auth_service.admin_login, payload.email, payload.password)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[TokenResponse].ok(_token_response(result), "Admin login successful")


@router.post("/logout", response_model=ApiResponse[MessageData])
async def logout(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[MessageData]:
    await asyncio.to_thread(auth_service.logout, current_user)
    return ApiResponse[MessageData].ok(MessageData(id=current_user.id), "Logged out successfully")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh(
    payload: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenResponse]:
    try:
        result = await asyncio.to_thread(auth_service.refresh, payload.refresh_token)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[TokenResponse].ok(_token_response(result), "Token refreshed")


@router.get("/verify-email/{token}", response_model=ApiResponse[UserResponse])
async def verify_email(
    token: str,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    try:
        user = await asyncio.to_thread(auth_service.verify_email, token)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[UserResponse].ok(UserResponse.model_validate(user), "Email verified successfully")


@router.post("/resend-verification", response_model=ApiResponse[MessageData])
async def resend_verification(
    payload: EmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[MessageData]:
    await asyncio.to_thread(auth_service.resend_verification, payload.email, payload.role)
    return ApiResponse[MessageData].ok(
        MessageData(detail="If an unverified account exists, a new link has been sent"),
        "Verification email sent",
    )


@router.post("/forgot-password", response_model=ApiResponse[MessageData])
async def forgot_password(
    payload: EmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[MessageData]:
    """Always answers 200 so the endpoint does not reveal which accounts exist."""
    await asyncio.to_thread(auth_service.forgot_password, payload.email, payload.role)
    return ApiResponse[MessageData].ok(
        MessageData(detail="If an account exists for this email, a reset link has been sent"),
        "Password reset requested",
    )


@router.post("/reset-password/{token}", response_model=ApiResponse[MessageData])
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[MessageData]:
    try:
        user = await asyncio.to_thread(auth_service.reset_password, token, payload.password)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[MessageData].ok(MessageData(id=user.id), "Password reset successfully")


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[ProfileResponse]:
    try:
        profile = await asyncio.to_thread(auth_service.get_profile, current_user)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ProfileResponse].ok(
        ProfileResponse.model_validate(profile, from_attributes=True), "Profile retrieved"
    )
