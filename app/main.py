"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Easier to test (can create multiple instances)

2. Lifespan Events
   - startup: make sure the image directory exists
   - shutdown: log and release resources

3. Middleware Stack
   - Rate limiting (slowapi)
   - CORS: Allow cross-origin requests

4. Exception Handlers
   - Domain errors → their HTTP status with {"detail": ...}
   - Validation errors → 400 with field-level details
   - Database errors → 409 for unique violations, 500 otherwise

5. Static Files
   - Normalized covers are served at /images/<filename>
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.config import get_settings
from app.database import create_tables
from app.exceptions import CatalogueError
from app.routers import auth_router, books_router
from app.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


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
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Image directory: {settings.images_path}")

    if not settings.secret_key:
        logger.warning("SECRET_KEY is not set - login and authenticated endpoints will fail")

    # SQLite is for development and tests; PostgreSQL uses Alembic migrations
    if settings.is_sqlite:
        create_tables()

    yield

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")


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
## Book Catalogue API

### Features
- **Accounts**: Signup and login with bearer tokens
- **Books**: Create, update and delete books with a cover image
- **Ratings**: One grade per user per book, with a cached average
- **Best rated**: The top books by average rating
        """,
        version="1.0.0",
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
    # Browsers refuse credentials with a wildcard origin
    allow_all_origins = settings.allowed_origins_list == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=not allow_all_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(CatalogueError)
    async def catalogue_exception_handler(
        request: Request,
        exc: CatalogueError,
    ) -> JSONResponse:
        """Convert domain errors to their HTTP status."""
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """
        Report invalid payloads as 400 with field-level details.

        Covers bad JSON, missing fields and out-of-range values alike.
        """
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid input",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(
        request: Request,
        exc: IntegrityError,
    ) -> JSONResponse:
        """Unique or constraint violations that reached the database."""
        logger.warning(f"Integrity error: {exc.orig}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "Conflict: a unique constraint was violated"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error for debugging while hiding details from users.
        """
        logger.error(f"Database error: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "A database error occurred. Please try again later."
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        Internal details are shown only in debug mode outside production.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        if settings.debug and not settings.is_production:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": str(exc)},
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An internal error occurred."},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{settings.api_version}"

    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(books_router, prefix=api_prefix)

    # -------------------------------------------------------------------------
    # Static Images
    # -------------------------------------------------------------------------
    settings.images_path.mkdir(parents=True, exist_ok=True)
    app.mount(
        "/images",
        StaticFiles(directory=settings.images_path),
        name="images",
    )

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
    )
    async def health_check() -> dict:
        """Report API status and whether required configuration is present."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.api_version,
            "environment": settings.environment,
            "authentication": {
                "configured": bool(settings.secret_key),
            },
            "images": {
                "directory_exists": settings.images_path.is_dir(),
            },
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
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
# This is what uvicorn imports: uvicorn app.main:app

app = create_app()


# This allows running the app directly with: python -m app.main
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
