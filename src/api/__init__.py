"""API module - route handlers and common dependencies."""

from fastapi import FastAPI

from src.api.deps import CurrentUser

__all__ = [
    "CurrentUser",
    "register_routers",
]


def register_routers(app: FastAPI) -> None:
    """Register all API routers to the application.

    Args:
        app: FastAPI application instance
    """
    # Merchant dashboard (Clerk session auth)
    from src.api.api_keys import router as api_keys_router
    from src.api.transactions import router as transactions_router
    from src.api.users import router as users_router

    app.include_router(users_router, prefix="/api")
    app.include_router(api_keys_router, prefix="/api")
    app.include_router(transactions_router, prefix="/api")

    # Public API v1 (API key auth)
    from src.api.public_api import router as public_api_router

    app.include_router(public_api_router)
