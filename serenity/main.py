"""
Serenity Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers.
       uvicorn loads the module-level `app` (uvicorn serenity.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                     FastAPI App                         │
    │                                                         │
    │  Middleware Chain:                                      │
    │  RateLimit → RequestID → RequestLogging → GZip → CORS   │
    │                                                         │
    │  Routers:                                               │
    │  auth, users, meditations, meditation-sessions,         │
    │  stress-*, breathing, pmr, journals, achievements,      │
    │  friends, group-sessions, leaderboard, notifications,   │
    │  recommendations, session-analytics, cache-stats,       │
    │  export, health                                         │
    │                                                         │
    │  Exception Handlers:                                    │
    │  Validation→400 │ Auth→401/403 │ NotFound→404 │         │
    │  Conflict→409 │ RateLimit→429 │ DB→500 │ Cache→503      │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)

    Shutdown:
    1. Close the cache connection
    2. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from serenity import __version__
from serenity.config import settings
from serenity.database import dispose_engine
from serenity.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    RateLimitExceededError,
    SessionStateError,
    ValidationError,
)
from serenity.middleware.logging import RequestLoggingMiddleware
from serenity.middleware.rate_limit import RateLimitMiddleware
from serenity.middleware.request_id import RequestIDMiddleware, request_id_var
from serenity.routes import (
    achievements,
    auth,
    breathing,
    cache_stats,
    export,
    friends,
    group_sessions,
    health,
    journals,
    leaderboard,
    meditation_sessions,
    meditations,
    notifications,
    pmr,
    recommendations,
    session_analytics,
    stress_assessments,
    stress_management,
    stress_techniques,
    users,
)
from serenity.services.cache_manager import cache_manager

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Handlers write to stdout; the container runtime collects them.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup validates configuration; shutdown releases cache and database connections."""
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Serenity Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report the problem
        logger.error("Configuration error: %s", str(e))

    if not settings.redis_url:
        logger.info("REDIS_URL not set; caching disabled")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Serenity Backend shutting down...")
    await cache_manager.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    return {
        "error": error,
        "message": message,
        "details": details or {},
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 validation_error
        SessionStateError       → 400 session_error
        AuthenticationError     → 401 authentication_error
        AuthorizationError      → 403 forbidden
        NotFoundError           → 404 not_found
        ConflictError           → 409 conflict
        RateLimitExceededError  → 429 rate_limit_exceeded
        DatabaseError           → 500 server_error
        CircuitBreakerOpenError → 503 service_unavailable
        Exception (fallback)    → 500 internal_server_error

    5xx responses never include exception context; it is logged server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client broke a business rule."""
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(SessionStateError)
    async def handle_session_error(request: Request, exc: SessionStateError):
        """Lifecycle transition not allowed from the session's current status."""
        logger.warning("[%s] Session state error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("session_error", exc.message, exc.context),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_error", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning("[%s] Forbidden: %s %s", request_id_var.get(""), request.method, request.url.path)
        return JSONResponse(
            status_code=403,
            content=_error_body("forbidden", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        """Requested resource doesn't exist."""
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message, exc.context),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        """Client exceeded rate limit; tell them when they can retry."""
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Generic message to the client, full context in the log."""
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body("service_unavailable", exc.message, {"recovery_time": exc.recovery_time}),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        Returns a generic 500 with the request ID for support tickets.
        The stack trace is logged server-side only.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests call this directly to get a fresh instance with dependency
    overrides; uvicorn uses the module-level `app` below.
    """
    app = FastAPI(
        title="Serenity API",
        description=(
            "Wellness and meditation tracking: guided sessions, stress management, "
            "journaling, achievements, friends, group sessions and leaderboards."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Retry-After",
            "Content-Disposition",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(meditations.router)
    app.include_router(meditation_sessions.router)
    app.include_router(stress_management.router)
    app.include_router(stress_assessments.router)
    app.include_router(stress_techniques.router)
    app.include_router(breathing.router)
    app.include_router(pmr.router)
    app.include_router(journals.router)
    app.include_router(achievements.router)
    app.include_router(friends.router)
    app.include_router(group_sessions.router)
    app.include_router(leaderboard.router)
    app.include_router(notifications.router)
    app.include_router(recommendations.router)
    app.include_router(session_analytics.router)
    app.include_router(cache_stats.router)
    app.include_router(export.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
