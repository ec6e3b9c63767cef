"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Tests build their own instance with dependency overrides

2. Lifespan Events
   - startup: create the upload directory, warm up the lock backend
   - shutdown: log and dispose of the engine

3. Middleware Stack
   - Rate limiting (slowapi)
   - CORS: Allow cross-origin requests

4. Exception Handlers
   - LendingError → {"detail", "code"} with the kind's HTTP status
   - Timeouts also carry Retry-After
   - Database errors and anything unexpected → 500
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from booknet import __version__
from booknet.config import get_settings
from booknet.database import engine
from booknet.errors import ErrorKind, LendingError
from booknet.routers import auth_router, books_router, feedback_router, lending_router
from booknet.services.locks import get_lock_manager
from booknet.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")
    logger.info(f"API version: {settings.api_version}")

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    # Fails fast if the redis lock backend is configured but unreachable
    locks = get_lock_manager()
    logger.info(f"Lending locks: {type(locks).__name__}")

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    engine.dispose()


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Book Network API

Members publish their books and lend them to each other.

### Features
- **Books**: publish, offer for borrowing, archive, upload covers
- **Lending**: borrow → return → owner approves the return
- **History**: what you borrowed, what you lent

### Authentication
Bearer JWT from `/api/v1/auth/login`.

### Errors
Lending failures answer `{"detail": ..., "code": ...}` where `code` is a
stable value such as `already_borrowed` or `own_book`.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(LendingError)
    async def lending_exception_handler(
        request: Request,
        exc: LendingError,
    ) -> JSONResponse:
        """
        Render a lending failure.

        The status comes from the error kind; the stable code goes in the
        body so clients never parse the message.
        """
        headers = None
        if exc.kind is ErrorKind.TIMEOUT:
            headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code.value},
            headers=headers,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error while hiding details from users.
        """
        logger.error(f"Database error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "A database error occurred. Please try again later."},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        In debug mode the message is shown; otherwise it is hidden.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        if settings.debug:
            return JSONResponse(status_code=500, content={"detail": str(exc)})

        return JSONResponse(
            status_code=500,
            content={"detail": "An internal error occurred."},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{settings.api_version}"

    app.include_router(auth_router, prefix=api_prefix)
    # Lending router must come before books router
    # so that /books/borrowed and /books/returned match before /books/{book_id}
    app.include_router(lending_router, prefix=api_prefix)
    app.include_router(books_router, prefix=api_prefix)
    app.include_router(feedback_router, prefix=api_prefix)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check if the API is running and healthy.",
    )
    async def health_check() -> dict:
        """
        Health check endpoint.

        Used by load balancers, container probes and monitoring.
        """
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": __version__,
            "environment": settings.environment,
            "locks": {
                "backend": settings.lock_backend,
                "timeout_seconds": settings.lock_timeout_seconds,
            },
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
                "write_limit": settings.rate_limit_write,
            },
            "mail": {"enabled": settings.mail_enabled},
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn booknet.main:app

app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# This allows running the app directly with: python -m booknet.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "booknet.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
