# coachhub/auth.py
"""
Password hashing and JWT helpers.

Tokens identify the account by user id (``sub``) because the same email may
be registered once per role. Access and refresh tokens carry a ``type``
claim so one can never be used in place of the other.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
import logging
import secrets
from typing import Any, Dict, Optional, cast

from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from .core.config import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


@lru_cache(maxsize=1)
def get_pwd_context() -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Returns:
        bool: True if password matches, False otherwise
    """
    try:
        return bool(get_pwd_context().verify(plain_password, hashed_password))
    except Exception as e:
        logger.error(f"Error verifying password: {str(e)}")
        return False


def get_password_hash(password: str) -> str:
    return str(get_pwd_context().hash(password))


def generate_token() -> str:
    """Random URL-safe token for email verification and password reset links."""
    return secrets.token_urlsafe(32)


def _encode(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({"exp": now + expires_delta, "iat": now, "type": token_type})
    return cast(
        str,
        jwt.encode(to_encode, _secret_value(settings.secret_key), algorithm=settings.algorithm),
    )


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; ``sub`` must be the user id
        expires_delta: Optional expiration time delta
    """
    token = _encode(
        data,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )
    logger.debug(f"Created access token for user: {data.get('sub')}")
    return token


def create_refresh_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Refresh tokens carry a random jti, so each rotation issues a new token."""
    return _encode(
        {**data, "jti": secrets.token_hex(16)},
        REFRESH_TOKEN_TYPE,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Dict[str, Any]:
    """
    Decode and validate a token of the given type.

    Raises:
        PyJWTError: If the signature, expiry or type is invalid
    """
    payload = cast(
        Dict[str, Any],
        jwt.decode(token, _secret_value(settings.secret_key), algorithms=[settings.algorithm]),
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    if not isinstance(payload.get("sub"), str):
        raise jwt.InvalidTokenError("Token payload missing 'sub' field")
    return payload


def user_id_from_token(token: Optional[str]) -> Optional[str]:
    """User id from an access token, None when absent or invalid."""
    if not token:
        return None
    try:
        return cast(str, decode_token(token)["sub"])
    except PyJWTError as e:
        logger.debug(f"JWT validation error: {str(e)}")
        return None
