# coachhub/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    ACCOUNT_LOCK_MINUTES,
    BRAND_NAME,
    MAX_LOGIN_ATTEMPTS,
    RESET_TOKEN_HOURS,
    SESSION_START_WINDOW_MINUTES,
    VERIFICATION_TOKEN_HOURS,
)

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    if env_path.exists():
        logger.info(f"[CONFIG] Loading environment from {env_path}")
        load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database
    database_url: str = Field(default="sqlite:///./coachhub.db", alias="DATABASE_URL")
    database_echo: bool = False
    database_pool_size: int = 10
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_pool_recycle: int = 1800
    create_tables_on_startup: bool = Field(default=True, alias="CREATE_TABLES_ON_STARTUP")

    # Auth
    secret_key: SecretStr = Field(
        default=SecretStr("dev-secret-key-change-me"),
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    max_login_attempts: int = MAX_LOGIN_ATTEMPTS
    account_lock_minutes: int = ACCOUNT_LOCK_MINUTES
    verification_token_hours: int = VERIFICATION_TOKEN_HOURS
    reset_token_hours: int = RESET_TOKEN_HOURS

    # Sessions
    session_start_window_minutes: int = SESSION_START_WINDOW_MINUTES

    # Email settings
    email_enabled: bool = Field(default=True, alias="EMAIL_ENABLED")
    resend_api_key: Optional[str] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    from_email: str = f"{BRAND_NAME} <hello@coachhub.app>"
    admin_email: str = Field(default="admin@coachhub.app", alias="ADMIN_EMAIL")

    # Frontend URL used in email links
    frontend_url: str = "http://localhost:3000"
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Stripe Configuration
    stripe_publishable_key: str = Field(
        default="", description="Stripe publishable key for frontend"
    )
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret",
    )
    stripe_currency: str = Field(default="usd", description="Default currency for payments")

    # Object storage (S3-compatible)
    storage_endpoint: str = Field(default="", alias="STORAGE_ENDPOINT")
    storage_bucket: str = Field(default="coachhub-media", alias="STORAGE_BUCKET")
    storage_access_key_id: str = Field(default="", alias="STORAGE_ACCESS_KEY_ID")
    storage_secret_access_key: SecretStr = Field(
        default=SecretStr(""), alias="STORAGE_SECRET_ACCESS_KEY"
    )
    storage_region: str = Field(default="auto", alias="STORAGE_REGION")
    storage_presign_expiry_seconds: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip().startswith("["):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"prod", "production"}

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())

    @property
    def storage_configured(self) -> bool:
        return bool(
            self.storage_endpoint
            and self.storage_access_key_id
            and self.storage_secret_access_key.get_secret_value()
        )


settings = Settings()
