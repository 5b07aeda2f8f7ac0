# coachhub/main.py
"""
Application entry point.

``create_app`` builds the FastAPI application. The database client is
created in the lifespan and disposed on shutdown; a ``Database`` passed in
by the caller (tests, scripts) is used as-is and left to its owner.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_V1_PREFIX, API_VERSION, BRAND_NAME
from .database import Database
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .routes import health, prometheus
from .routes.v1 import (
    admin as admin_v1,
    auth as auth_v1,
    availability as availability_v1,
    children as children_v1,
    coaches as coaches_v1,
    courses as courses_v1,
    credits as credits_v1,
    payments as payments_v1,
    sessions as sessions_v1,
    videos as videos_v1,
)

logger = logging.getLogger(__name__)


def build_api_v1() -> APIRouter:
    api_v1 = APIRouter(prefix=API_V1_PREFIX)
    api_v1.include_router(auth_v1.router, prefix="/auth")
    api_v1.include_router(courses_v1.router, prefix="/courses")
    api_v1.include_router(sessions_v1.router, prefix="/sessions")
    api_v1.include_router(availability_v1.router, prefix="/availability")
    api_v1.include_router(payments_v1.router, prefix="/payments")
    api_v1.include_router(credits_v1.router, prefix="/credits")
    api_v1.include_router(admin_v1.router, prefix="/admin")
    api_v1.include_router(children_v1.router, prefix="/children")
    api_v1.include_router(videos_v1.router, prefix="/videos")
    api_v1.include_router(coaches_v1.router, prefix="/coaches")
    return api_v1


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Args:
        database: Client to use instead of one built from settings. The
            caller keeps ownership and must dispose it.
    """

    @asynccontextmanager
    async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(f"{BRAND_NAME} API starting up...")
        logger.info(f"Environment: {settings.environment}")
        if is_running_tests():
            logger.info("Running under pytest (test mode active)")

        owns_database = database is None
        db = database if database is not None else Database.from_settings(settings)
        app.state.database = db
        if settings.create_tables_on_startup:
            db.create_all()
        if not settings.stripe_configured:
            logger.warning("Stripe secret key not set; payments run in mock mode")
        if not settings.storage_configured:
            logger.warning("Object storage not configured; upload URLs will be empty")

        yield

        logger.info(f"{BRAND_NAME} API shutting down...")
        if owns_database:
            db.dispose()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=app_lifespan,
    )
    if database is not None:
        # Usable before startup runs, e.g. by a TestClient not used as a context manager
        app.state.database = database

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
    logger.info("CORS allow_origins=%s allow_credentials=%s", settings.cors_origins, True)
    app.add_middleware(PrometheusMiddleware)

    app.include_router(health.router)
    app.include_router(prometheus.router)
    app.include_router(build_api_v1())
    return app


def run() -> None:
    """Development server: ``coachhub`` console script."""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("coachhub.main:create_app", factory=True, host="0.0.0.0", port=8000, log_level="info")
