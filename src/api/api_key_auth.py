"""SB0 Pay Merchant Portal - API key authentication for the public API.

Clients send ``Authorization: Bearer sb0_live_...``. Failures are returned in
the public error envelope::

    {"error": {"code", "message", "type"}, "timestamp", "request_id"}
"""

import logging
import uuid
from typing import Annotated

from fastapi import Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from src.db import async_session_factory, get_db
from src.models.api_key import ApiKey, ApiKeyAction, ApiKeyResource
from src.schemas.public_api import PublicErrorCode, PublicErrorType
from src.services.api_key_service import ApiKeyService
from src.utils.helpers import format_utc_datetime, get_client_ip, utc_now

logger = logging.getLogger(__name__)


class PublicApiError(Exception):
    """Error rendered in the public API envelope."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        error_type: PublicErrorType = "invalid_request",
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        self.error_type = error_type
        super().__init__(message)


def get_request_id(request: Request) -> str:
    """Request ID from ``X-Request-ID`` or a fresh UUID, stored on request state."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


async def public_api_error_handler(request: Request, exc: PublicApiError) -> JSONResponse:
    """Render PublicApiError as the public error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "type": exc.error_type,
            },
            "timestamp": format_utc_datetime(utc_now()),
            "request_id": get_request_id(request),
        },
    )


def _extract_bearer_key(request: Request) -> str:
    authorization = request.headers.get("authorization")
    if not authorization:
        raise PublicApiError(
            status.HTTP_401_UNAUTHORIZED,
            PublicErrorCode.MISSING_API_KEY,
            "API key is required. Include it in the Authorization header as 'Bearer <api_key>'",
            "authentication_error",
        )

    scheme, _, credentials = authorization.partition(" ")
    if scheme != "Bearer" or not credentials.strip():
        raise PublicApiError(
            status.HTTP_401_UNAUTHORIZED,
            PublicErrorCode.INVALID_AUTH_FORMAT,
            "Authorization header must use Bearer token format",
            "authentication_error",
        )
    return credentials.strip()


def require_api_key(resource: ApiKeyResource, action: ApiKeyAction):
    """Factory for an API key dependency that also checks one permission.

    The validated key ID is stored on ``request.state`` before the
    permission check so rejected calls are still recorded as usage.

    Usage:
        @router.get("/payments")
        async def list_payments(
            api_key: ApiKey = Depends(require_api_key(ApiKeyResource.PAYMENTS, ApiKeyAction.READ))
        ):
            ...
    """

    async def api_key_checker(
        request: Request,
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> ApiKey:
        get_request_id(request)
        key = _extract_bearer_key(request)

        service = ApiKeyService(db)
        result = await service.validate_api_key(key)
        if not result.is_valid or result.api_key is None:
            raise PublicApiError(
                status.HTTP_401_UNAUTHORIZED,
                PublicErrorCode.INVALID_API_KEY,
                result.error or "Invalid API key",
                "authentication_error",
            )

        api_key = result.api_key
        # plain values survive the session rollback of a rejected request
        request.state.api_key_id = api_key.id
        request.state.api_key_prefix = api_key.prefix

        if not service.has_permission(api_key, resource, action):
            raise PublicApiError(
                status.HTTP_403_FORBIDDEN,
                PublicErrorCode.INSUFFICIENT_PERMISSIONS,
                f"API key does not have {action.value} permission for {resource.value}",
                "authentication_error",
            )
        return api_key

    return api_key_checker


class ApiUsageMiddleware(BaseHTTPMiddleware):
    """Record every API key authenticated request with its final status code.

    Uses ``app.state.session_factory`` when set, else the default factory.
    Failing to write the log never affects the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            response = await call_next(request)
        except Exception:
            # rendered by the outermost error handler as a 500
            await self._record(request, status.HTTP_500_INTERNAL_SERVER_ERROR)
            raise

        await self._record(request, response.status_code)
        return response

    async def _record(self, request: Request, status_code: int) -> None:
        api_key_id = getattr(request.state, "api_key_id", None)
        if api_key_id is None:
            return

        session_factory = getattr(request.app.state, "session_factory", None) or async_session_factory
        try:
            async with session_factory() as db:
                await ApiKeyService(db).log_usage(
                    api_key_id=api_key_id,
                    endpoint=request.url.path,
                    method=request.method,
                    status_code=status_code,
                    ip_address=get_client_ip(request.headers),
                    user_agent=request.headers.get("user-agent"),
                    request_id=getattr(request.state, "request_id", None),
                )
        except Exception:
            logger.exception(
                f"Failed to record API usage for key {request.state.api_key_prefix}"
            )
