"""SB0 Pay Merchant Portal - FastAPI Application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import register_routers
from src.api.api_key_auth import ApiUsageMiddleware, PublicApiError, public_api_error_handler
from src.core.config import get_settings
from src.core.logging import configure_logging
from src.db import async_session_factory, close_db, init_db
from src.schemas.public_api import PublicErrorCode

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: Initialize database tables
    Shutdown: Close database connections
    """
    # Startup
    await init_db()
    yield
    # Shutdown
    await close_db()


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors, public API callers get the error envelope."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if request.url.path.startswith("/api/v1"):
        return await public_api_error_handler(
            request,
            PublicApiError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                PublicErrorCode.INTERNAL_ERROR,
                "Internal server error",
                "api_error",
            ),
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Merchant portal and public payments API for the AllPay gateway",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.session_factory = async_session_factory

    # Usage logging wraps the routes so it sees the final status code
    app.add_middleware(ApiUsageMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PublicApiError, public_api_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    register_routers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Application instance
app = create_app()
