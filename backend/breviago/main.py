"""
Breviago Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       lifespan() prepares the schema and seed data on startup and releases
       connections on shutdown.
Who:   uvicorn breviago.main:app

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain (outermost first):                         │
    │  RateLimit → RequestID → Logging → Authentication → GZip → CORS
    │                                                              │
    │  Routes:                                                     │
    │  /  /health  /api/v1/auth  /api/v1/users  /api/v1/acronyms   │
    │  /api/v1/labels  /api/v1/organizations  /api/v1/folders      │
    │  /api/v1/documents                                           │
    │                                                              │
    │  Exception Handlers:                                         │
    │  Validation→400 │ Auth→401 │ Permission→403 │ NotFound→404   │
    │  Conflict→409 │ RateLimit→429 │ DB→500 │ Authz backend→503   │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Report development-default settings (logged, not fatal)
    3. Create missing tables (AUTO_CREATE_SCHEMA)
    4. Seed admin user and default content (SEED_DEFAULTS)

    Shutdown:
    1. Close the authorization backend's HTTP client
    2. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from breviago import __version__
from breviago.config import settings
from breviago.database import dispose_engine, init_models
from breviago.exceptions import (
    AuthenticationError,
    AuthorizationServiceError,
    BreviagoError,
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationError,
)
from breviago.middleware.authentication import AuthenticationMiddleware
from breviago.middleware.logging import RequestLoggingMiddleware
from breviago.middleware.rate_limit import RateLimitMiddleware
from breviago.middleware.request_id import RequestIDMiddleware, request_id_var
from breviago.routes import acronyms, auth, folders, health, index, labels, organizations, users
from breviago.services.authorization import authorization_service
from breviago.services.bootstrap import run_bootstrap

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2026-01-01T12:00:00 [INFO] breviago.services.user_service: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request and per-statement chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Breviago %s starting up (authz backend: %s)", __version__, authorization_service.backend)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts so that /health can report the problem
        logger.error("Configuration error: %s", str(e))

    if settings.auto_create_schema:
        await init_models()
    if settings.seed_defaults:
        await run_bootstrap()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Breviago shutting down...")
    await authorization_service.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": error, "message": message}
    if details:
        content["details"] = details
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the standard error body.

    Handler table:
        ValidationError, RequestValidationError → 400 validation_error
        AuthenticationError                     → 401 <exc.code>
        PermissionDeniedError                   → 403 permission_denied
        NotFoundError                           → 404 not_found
        HTTPException (raised by the router)    → 404 not_found, 405 method_not_allowed
        ConflictError                           → 409 conflict
        RateLimitExceededError                  → 429 rate_limit_exceeded
        DatabaseError, SQLAlchemyError          → 500 server_error
        AuthorizationServiceError               → 503 authorization_unavailable
        CircuitBreakerOpenError                 → 503 service_unavailable
        BreviagoError, Exception                → 500 internal_server_error

    Server-side failures never echo internals; their context goes to the log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return _error_response(400, "validation_error", "Request validation failed", {"errors": errors})

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, exc.code, exc.message, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        # (user, relation, object) stays in the log
        logger.info("[%s] Permission denied: %s", request_id_var.get(""), exc.context)
        return _error_response(403, "permission_denied", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Unknown routes and disallowed methods raised by the router itself
        error = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(exc.status_code, error, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message, exc.context)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(AuthorizationServiceError)
    async def handle_authorization_service_error(request: Request, exc: AuthorizationServiceError):
        logger.error(
            "[%s] Authorization backend error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, "authorization_unavailable", exc.message, headers=headers)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(SQLAlchemyError)
    async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
        logger.error("[%s] Database error: %s", request_id_var.get(""), type(exc).__name__, exc_info=True)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(BreviagoError)
    async def handle_breviago_error(request: Request, exc: BreviagoError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "internal_server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Breviago API",
        description=(
            "Acronym vault with users, organizations, folders and documents. "
            "Every protected request carries a JWT; object access is decided by "
            "relationship-based checks (OpenFGA or the built-in local backend)."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RateLimit → RequestID → Logging → Authentication → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(index.router)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(acronyms.router)
    app.include_router(labels.router)
    app.include_router(organizations.router)
    app.include_router(folders.router)

    return app


app = create_app()
