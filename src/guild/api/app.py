"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from guild.api.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
    TenantValidationMiddleware,
)
from guild.api.middleware.errors import request_validation_handler
from guild.api.routers import health_router, v1_router
from guild.config.settings import Settings, get_settings
from guild.core.logging import setup_logging
from guild.db.config import close_db, create_engine, create_session_factory, init_db

logger = structlog.get_logger("guild.api")


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the application factory that assembles all components:
    - Middleware (in correct order)
    - Routers
    - Exception handlers
    - Lifespan management

    Args:
        settings: Optional settings override (useful for testing)
        session_factory: Optional session factory; when omitted an engine is
            created from ``settings.DATABASE_URL`` and disposed on shutdown

    Returns:
        Configured FastAPI application

    Example:
        # Production
        app = create_app()

        # Testing
        app = create_app(settings=test_settings, session_factory=factory)

        # Run with uvicorn
        uvicorn guild.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings=settings)

    app = FastAPI(
        title="Guild API",
        description="Alumni verification and multi-tenant feature entitlements",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    # Store settings and database access on app state for dependencies and middleware
    app.state.settings = settings
    if session_factory is None:
        app.state.engine = create_engine(settings)
        app.state.session_factory = create_session_factory(app.state.engine)
    else:
        app.state.engine = None
        app.state.session_factory = session_factory

    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Configure middleware (order matters - outermost to innermost)
    _configure_middleware(app, settings)

    # Include routers
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Verifies database connectivity on startup and releases the engine's
    connections on shutdown. An engine supplied from outside is left to
    its owner.
    """
    logger.info("api_starting", environment=app.state.settings.ENVIRONMENT)

    engine = app.state.engine
    if engine is not None:
        try:
            await init_db(engine)
            logger.info("database_connected")
        except Exception as e:
            logger.warning("database_initialization_skipped", error=str(e))

    yield

    logger.info("api_stopping")
    if engine is not None:
        try:
            await close_db(engine)
            logger.info("database_connections_closed")
        except Exception as e:
            logger.warning("database_shutdown_error", error=str(e))


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Logs all requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    3. CORSMiddleware - Handles CORS (if configured)
    4. AuthenticationMiddleware - Validates Bearer token
    5. TenantValidationMiddleware - Resolves X-Tenant-Code
    6. RequestContextMiddleware - Sets ContextVar for request context

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    # Innermost: Request context (needs tenant and actor from upstream)
    app.add_middleware(RequestContextMiddleware)

    # Tenant validation (needs auth first)
    app.add_middleware(TenantValidationMiddleware)

    # Authentication
    app.add_middleware(AuthenticationMiddleware)

    # CORS (if origins configured)
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Error handling (catches exceptions from all inner middleware)
    app.add_middleware(ErrorHandlingMiddleware)

    # Outermost: Request logging
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI) -> None:
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)

    # API v1 routers
    app.include_router(v1_router)
