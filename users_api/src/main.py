"""
FastAPI application entry point for the Users API.

This module provides the application factory with:
- Explicit composition of store, password hasher, token service and user service
- Health, readiness and Prometheus metrics endpoints
- Authentication middleware ahead of protected routes
- Request logging with correlation IDs, security headers and CORS
- Exception handlers mapping service errors to HTTP status codes
- Store startup and shutdown in the application lifespan
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import CONTENT_TYPE_LATEST

from shared.logging import configure_logging
from shared.metrics import ServiceMetrics, get_metrics_handler
from users_api.src import __version__
from users_api.src.config import get_settings, Settings
from users_api.src.middleware.auth import AuthMiddleware
from users_api.src.middleware.request_logging import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from users_api.src.repositories.user_repo import (
    InMemoryUserRepository,
    PostgresUserRepository,
    UserRepository,
)
from users_api.src.routers import users
from users_api.src.services.errors import UserServiceError
from users_api.src.services.security import PasswordHasher, TokenService
from users_api.src.services.user_service import UserService

logger = structlog.get_logger(__name__)


def build_user_repository(settings: Settings) -> UserRepository:
    """Create the user store selected by settings.storage_backend."""
    if settings.storage_backend == "postgres":
        return PostgresUserRepository(
            settings.database_url,
            pool_size=settings.database_pool_size,
            command_timeout=settings.database_command_timeout
        )
    return InMemoryUserRepository()


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Opens the user store on startup and closes it on shutdown.
    """
    settings: Settings = app.state.settings

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=settings.storage_backend
    )

    try:
        await app.state.user_repo.connect()
    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    logger.info("application_started", app_name=settings.app_name)

    try:
        yield
    finally:
        logger.info("application_shutting_down")
        try:
            await app.state.user_repo.close()
            logger.info("application_shutdown_complete")
        except Exception as e:
            logger.error("application_shutdown_failed", error=str(e), exc_info=True)


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    user_repo: Optional[UserRepository] = None
) -> FastAPI:
    """
    Build the FastAPI application and its collaborators.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        user_repo: User store to use (defaults to the configured backend)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment
    )

    metrics = ServiceMetrics()
    user_repo = user_repo if user_repo is not None else build_user_repository(settings)
    user_service = UserService(
        user_repo=user_repo,
        password_hasher=PasswordHasher(rounds=settings.password_bcrypt_rounds),
        token_service=TokenService.from_settings(settings),
        password_min_length=settings.password_min_length,
        metrics=metrics.users
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version or __version__,
        description=(
            "User management API. Register users, log in to obtain a bearer "
            "token, and list users with that token."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.user_repo = user_repo
    app.state.user_service = user_service

    _configure_middleware(app, settings, user_service, metrics)
    _register_exception_handlers(app)
    _register_system_routes(app, settings, metrics)
    app.include_router(users.router)

    return app


# ============================================================================
# Middleware Configuration
# ============================================================================

def _configure_middleware(
    app: FastAPI,
    settings: Settings,
    user_service: UserService,
    metrics: ServiceMetrics
) -> None:
    # Added innermost first: authentication runs right before the router
    app.add_middleware(AuthMiddleware, user_service=user_service)

    if settings.cors_enabled:
        logger.info("configuring_cors", origins=settings.cors_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=settings.cors_expose_headers,
        )

    if settings.security_headers_enabled:
        app.add_middleware(
            SecurityHeadersMiddleware,
            hsts_max_age=settings.security_hsts_max_age if settings.security_require_https else None
        )

    app.add_middleware(RequestLoggingMiddleware, metrics=metrics.http)


# ============================================================================
# Exception Handlers
# ============================================================================

def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(UserServiceError)
    async def user_service_exception_handler(request: Request, exc: UserServiceError):
        """Map service errors to their HTTP status codes."""
        logger.warning(
            "user_service_error",
            path=request.url.path,
            status_code=exc.status_code,
            error_code=exc.error_code,
            detail=exc.message
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error_code": exc.error_code},
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors as 400 Bad Request."""
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors()), "error_code": "REQUEST_INVALID"}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        logger.warning(
            "http_exception",
            path=request.url.path,
            status_code=exc.status_code,
            detail=exc.detail
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            "unexpected_exception",
            path=request.url.path,
            error=str(exc),
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )


# ============================================================================
# Health, Readiness and Metrics Endpoints
# ============================================================================

def _register_system_routes(app: FastAPI, settings: Settings, metrics: ServiceMetrics) -> None:

    @app.get("/health", tags=["Health"], response_class=JSONResponse)
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns basic health status without checking dependencies.
        """
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment
        }

    @app.get("/ready", tags=["Health"], response_class=JSONResponse)
    async def readiness_check(request: Request) -> JSONResponse:
        """
        Readiness check endpoint.

        Reports 503 while the user store cannot serve requests.
        """
        store_ok = await request.app.state.user_repo.ping()
        checks = {"user_store": "healthy" if store_ok else "unhealthy"}

        return JSONResponse(
            status_code=status.HTTP_200_OK if store_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if store_ok else "not_ready",
                "service": settings.app_name,
                "version": settings.app_version,
                "checks": checks
            }
        )

    if settings.metrics_enabled:
        metrics_handler = get_metrics_handler(metrics.registry)

        @app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
        async def prometheus_metrics() -> Response:
            """Prometheus metrics endpoint."""
            return Response(content=metrics_handler(), media_type=CONTENT_TYPE_LATEST)


# ============================================================================
# Application Entry Point
# ============================================================================

def run() -> None:
    """Run the application with Uvicorn."""
    settings = get_settings()

    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
